"""
Copyright 2025 DNAi inc.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

"""
ZIP format constants including signatures, compression methods, flags, and version numbers.

This module defines the constants used throughout memzip for encoding and
decoding classic (non-ZIP64) archives.
"""

# ZIP record signatures (magic numbers)
LOCAL_FILE_HEADER = 0x04034B50  # "PK\x03\x04"
CENTRAL_DIR_HEADER = 0x02014B50  # "PK\x01\x02"
END_OF_CENTRAL_DIR = 0x06054B50  # "PK\x05\x06"
DATA_DESCRIPTOR = 0x08074B50  # "PK\x07\x08"

SIGNATURE_NAMES = {
    LOCAL_FILE_HEADER: "local file header",
    CENTRAL_DIR_HEADER: "central directory header",
    END_OF_CENTRAL_DIR: "end of central directory",
    DATA_DESCRIPTOR: "data descriptor",
}

# Compression methods
COMP_STORED = 0  # No compression
COMP_DEFLATE = 8  # Deflate compression (zlib)

# Compression method names (for API)
COMPRESSION_STORED = "stored"
COMPRESSION_DEFLATE = "deflate"

# Compression method mapping
COMPRESSION_METHODS = {
    COMPRESSION_STORED: COMP_STORED,
    COMPRESSION_DEFLATE: COMP_DEFLATE,
}

# Reverse mapping
METHOD_TO_NAME = {
    COMP_STORED: COMPRESSION_STORED,
    COMP_DEFLATE: COMPRESSION_DEFLATE,
}

# General purpose bit flags
FLAG_ENCRYPTED = 0x0001  # File is encrypted
FLAG_DATA_DESCRIPTOR = 0x0008  # CRC and sizes follow the file data
FLAG_UTF8 = 0x0800  # UTF-8 encoding for filename/comment

# ZIP version constants
VERSION_DEFAULT = 20  # 2.0: deflate, directories
VERSION_MADE_BY_DEFAULT = (3 << 8) | VERSION_DEFAULT  # Host Unix, format version 2.0

# Default external attributes (Unix mode in the high 16 bits)
EXTERNAL_ATTRS_FILE = 0o100644 << 16
EXTERNAL_ATTRS_DIR = 0o040755 << 16

# Classic ZIP limits (32-bit)
MAX_FILE_SIZE = 0xFFFFFFFF
MAX_ENTRIES = 0xFFFF
MAX_CD_SIZE = 0xFFFFFFFF
MAX_CD_OFFSET = 0xFFFFFFFF
MAX_FIELD_LENGTH = 0xFFFF  # Any u16 length-prefixed field

# Record sizes including the 4-byte signature, excluding variable fields
LOCAL_FILE_HEADER_SIZE = 30
CENTRAL_DIR_HEADER_SIZE = 46
END_OF_CENTRAL_DIR_SIZE = 22
DATA_DESCRIPTOR_SIZE = 16

# File name extensions the default extraction classifier treats as text
TEXT_EXTENSIONS = frozenset(
    {
        ".txt",
        ".md",
        ".rst",
        ".csv",
        ".tsv",
        ".json",
        ".xml",
        ".html",
        ".htm",
        ".css",
        ".js",
        ".py",
        ".ini",
        ".cfg",
        ".toml",
        ".yaml",
        ".yml",
        ".log",
        ".svg",
    }
)
