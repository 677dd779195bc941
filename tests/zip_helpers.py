"""Helpers for building and damaging archives in tests."""

import struct
from dataclasses import replace

from memzip.archive import CompressedEntry, ZipFile
from memzip.codec import ZlibCodec
from memzip.constants import END_OF_CENTRAL_DIR_SIZE, LOCAL_FILE_HEADER_SIZE
from memzip.decoder import AnchoredDecoder
from memzip.errors import ZipCompressionError

COMPRESSIBLE = ("hello world " * 200).encode("utf-8")


def payload_span(data: bytes, name: str) -> tuple[int, int]:
    """Return (offset, length) of an entry's payload inside archive bytes."""
    zip_file = AnchoredDecoder().decode(data)
    for central in zip_file.centrals:
        if central.name == name:
            start = central.local_header_offset + LOCAL_FILE_HEADER_SIZE + len(central.filename)
            return start, central.compressed_size
    raise KeyError(name)


def corrupt_payload(data: bytes, name: str) -> bytes:
    """Overwrite an entry's payload with 0xFF bytes, keeping every offset valid."""
    start, length = payload_span(data, name)
    return data[:start] + b"\xff" * length + data[start + length :]


def patch_uint16(data: bytes, offset: int, value: int) -> bytes:
    buf = bytearray(data)
    struct.pack_into("<H", buf, offset, value)
    return bytes(buf)


def patch_uint32(data: bytes, offset: int, value: int) -> bytes:
    buf = bytearray(data)
    struct.pack_into("<I", buf, offset, value)
    return bytes(buf)


def eocd_offset(data: bytes) -> int:
    return len(data) - END_OF_CENTRAL_DIR_SIZE


def replace_header(zip_file: ZipFile, name: str, **changes) -> None:
    """Swap the local header of a pending entry for a modified copy."""
    entry = zip_file.possibly_compressed[name]
    zip_file.possibly_compressed[name] = CompressedEntry(
        header=replace(entry.header, **changes),
        compressed_content=entry.compressed_content,
    )


class FlakyCodec:
    """Codec whose first ``failures`` decompressions fail."""

    def __init__(self, failures: int):
        self.failures = failures
        self.calls = 0
        self._inner = ZlibCodec()

    def compress(self, data: bytes) -> bytes:
        return self._inner.compress(data)

    def decompress(self, data: bytes) -> bytes:
        self.calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise ZipCompressionError("simulated decompression failure")
        return self._inner.decompress(data)

    def checksum(self, data: bytes) -> int:
        return self._inner.checksum(data)
