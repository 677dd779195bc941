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
Byte-transform collaborators used by the encoder and the extraction engine.

The archive code never calls a compressor directly; it goes through a
``Codec`` so callers can substitute their own deflate/CRC implementation.
``ZlibCodec`` is the default and produces raw deflate streams (no zlib
header), which is what ZIP method 8 stores.
"""

import zlib
from typing import Protocol

from .errors import ZipCompressionError
from .utils import crc32


class Codec(Protocol):
    """Compression and checksum service consumed by memzip."""

    def compress(self, data: bytes) -> bytes:
        """Return the raw deflate stream for 'data'."""
        ...

    def decompress(self, data: bytes) -> bytes:
        """Inflate a raw deflate stream.

        Raises:
            ZipCompressionError: If the stream is corrupt or incomplete.
        """
        ...

    def checksum(self, data: bytes) -> int:
        """Return the CRC32 of 'data' as an unsigned 32-bit integer."""
        ...


class ZlibCodec:
    """Codec backed by the standard library zlib module."""

    def __init__(self, level: int = zlib.Z_DEFAULT_COMPRESSION):
        if not (level == zlib.Z_DEFAULT_COMPRESSION or 0 <= level <= 9):
            raise ValueError(f"Invalid compression level: {level} (must be 0-9 or -1)")
        self.level = level

    def compress(self, data: bytes) -> bytes:
        compressor = zlib.compressobj(level=self.level, wbits=-zlib.MAX_WBITS)
        return compressor.compress(data) + compressor.flush()

    def decompress(self, data: bytes) -> bytes:
        try:
            decompressor = zlib.decompressobj(-zlib.MAX_WBITS)
            result = decompressor.decompress(data)
        except zlib.error as e:
            raise ZipCompressionError(f"Deflate decompression failed: {e}") from e
        if not decompressor.eof:
            raise ZipCompressionError("Deflate stream ended before its final block")
        if decompressor.unused_data:
            raise ZipCompressionError("Extra data after compressed stream")
        return result

    def checksum(self, data: bytes) -> int:
        return crc32(data)


DEFAULT_CODEC = ZlibCodec()
