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
Debugging utilities for memzip.

This module provides tools for analyzing and debugging ZIP byte streams.
"""

import io
from typing import Optional

from .constants import (
    CENTRAL_DIR_HEADER,
    DATA_DESCRIPTOR,
    DATA_DESCRIPTOR_SIZE,
    END_OF_CENTRAL_DIR,
    LOCAL_FILE_HEADER,
    SIGNATURE_NAMES,
)
from .decoder import Decoder, decode
from .errors import ZipError
from .extract import decompress_entry
from .structures import parse_central_directory_header, parse_eocd, parse_local_file_header
from .utils import read_uint32


def hex_dump(data: bytes, offset: int = 0, length: Optional[int] = None) -> str:
    """Format 'data' as 16-byte hex rows with an ASCII column.

    'offset' is only used for the row labels; 'length' truncates the input.
    """
    if length is not None:
        data = data[:length]

    lines = []
    for i in range(0, len(data), 16):
        chunk = data[i : i + 16]
        hex_part = " ".join(f"{b:02X}" for b in chunk)
        ascii_part = "".join(chr(b) if 32 <= b < 127 else "." for b in chunk)
        lines.append(f"{offset + i:08X}  {hex_part:<48}  {ascii_part}")

    return "\n".join(lines)


def scan_records(data: bytes) -> list[tuple[int, int]]:
    """Find record signatures by walking the buffer from the start.

    Known records are skipped as a whole; anywhere else the scan advances
    one byte at a time, so damaged archives still yield what can be found.

    Returns:
        (offset, signature) pairs in file order.
    """
    found: list[tuple[int, int]] = []
    stream = io.BytesIO(data)
    offset = 0

    while offset + 4 <= len(data):
        stream.seek(offset)
        sig = read_uint32(stream)
        stream.seek(offset)
        try:
            if sig == LOCAL_FILE_HEADER:
                header = parse_local_file_header(stream)
                end = stream.tell() + header.compressed_size
            elif sig == CENTRAL_DIR_HEADER:
                parse_central_directory_header(stream)
                end = stream.tell()
            elif sig == END_OF_CENTRAL_DIR:
                parse_eocd(stream)
                end = stream.tell()
            elif sig == DATA_DESCRIPTOR:
                end = offset + DATA_DESCRIPTOR_SIZE
            else:
                offset += 1
                continue
        except ZipError:
            offset += 1
            continue

        found.append((offset, sig))
        offset = end

    return found


def dump_zip_structure(data: bytes, label: str = "<memory>") -> str:
    """Dump the record layout of a ZIP byte stream.

    Args:
        data: Archive bytes.
        label: Name shown in the report header.

    Returns:
        Formatted string describing the ZIP structure.
    """
    output = []
    output.append(f"ZIP Structure: {label}\n")
    output.append("=" * 80)
    output.append(f"\nSize: {len(data)} bytes ({len(data) / 1024 / 1024:.2f} MB)")

    records = scan_records(data)
    for sig in (LOCAL_FILE_HEADER, DATA_DESCRIPTOR, CENTRAL_DIR_HEADER, END_OF_CENTRAL_DIR):
        offsets = [off for off, found in records if found == sig]
        if not offsets:
            continue
        title = SIGNATURE_NAMES[sig].title()
        output.append(f"\n{title} records: {len(offsets)}")
        for i, off in enumerate(offsets[:10]):  # Show first 10
            output.append(f"  [{i}] Offset: 0x{off:08X}")

    return "\n".join(output)


def verify_zip_structure(data: bytes, decoder: Optional[Decoder] = None) -> tuple[bool, list[str]]:
    """Verify that an archive decodes and every entry reads back.

    Args:
        data: Archive bytes.
        decoder: Decoding strategy (anchored by default).

    Returns:
        Tuple of (is_valid, list_of_errors).
    """
    errors = []

    try:
        zip_file = decode(data, decoder)
    except ZipError as e:
        return False, [f"Error decoding archive: {e}"]

    for name, entry in zip_file.possibly_compressed.items():
        try:
            decompress_entry(name, entry)
        except ZipError as e:
            errors.append(f"Error reading {name}: {e}")

    return len(errors) == 0, errors
