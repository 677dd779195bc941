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
Utility functions for memzip.

This module provides helper functions for CRC32 calculation, DOS date/time
conversion, entry name handling, and safe binary I/O operations over
in-memory cursors.
"""

import struct
import zlib
from datetime import datetime
from typing import BinaryIO

from .constants import SIGNATURE_NAMES
from .errors import ZipFormatError, ZipSignatureError, ZipTruncatedError


def crc32(data: bytes) -> int:
    """Return the CRC32 of 'data' as an unsigned 32-bit value."""
    return zlib.crc32(data) & 0xFFFFFFFF


def dos_datetime_to_timestamp(dos_date: int, dos_time: int) -> datetime:
    """Unpack a DOS (date, time) pair into a datetime.

    The date packs day in bits 0-4, month in 5-8 and years since 1980 in
    9-15. The time packs seconds/2 in bits 0-4, minutes in 5-10 and hours
    in 11-15, so only even seconds survive a round trip.

    Returns:
        The decoded datetime, or 1980-01-01 00:00:00 if the fields do not
        form a valid date (e.g. a zero day).
    """
    day = dos_date & 0x1F
    month = (dos_date >> 5) & 0x0F
    year = ((dos_date >> 9) & 0x7F) + 1980

    second = (dos_time & 0x1F) * 2
    minute = (dos_time >> 5) & 0x3F
    hour = (dos_time >> 11) & 0x1F

    try:
        return datetime(year, month, day, hour, minute, second)
    except ValueError:
        return datetime(1980, 1, 1)


def timestamp_to_dos_datetime(dt: datetime) -> tuple[int, int]:
    """Pack a datetime into a DOS (date, time) pair.

    DOS dates cover 1980-2107; years outside that range are clamped.
    """
    year = min(max(dt.year - 1980, 0), 127)
    dos_date = dt.day | (dt.month << 5) | (year << 9)
    dos_time = (dt.second // 2) | (dt.minute << 5) | (dt.hour << 11)
    return dos_date, dos_time


def decode_entry_name(raw: bytes) -> str:
    """Decode a raw entry name into the normalized string form.

    Names are decoded as UTF-8 (invalid sequences replaced) and path
    separators are normalized to forward slashes.
    """
    name = raw.decode("utf-8", errors="replace")
    if "\\" in name:
        name = name.replace("\\", "/")
    return name


def read_exact(f: BinaryIO, size: int) -> bytes:
    """Read exactly 'size' bytes from 'f'.

    Every declared length in a record goes through here, so a length that
    runs past the end of the buffer surfaces as ZipTruncatedError.

    Raises:
        ZipFormatError: If size is negative.
        ZipTruncatedError: If fewer than 'size' bytes remain.
    """
    if size < 0:
        raise ZipFormatError(f"Negative read size: {size}")

    data = f.read(size)
    if len(data) != size:
        raise ZipTruncatedError(
            f"Unexpected end of data at offset {f.tell()}: needed {size} bytes, {len(data)} left"
        )
    return data


def read_uint16(f: BinaryIO) -> int:
    return struct.unpack("<H", read_exact(f, 2))[0]


def read_uint32(f: BinaryIO) -> int:
    return struct.unpack("<I", read_exact(f, 4))[0]


def read_signature(f: BinaryIO, expected: int) -> int:
    """Read a 32-bit record signature and check it against 'expected'.

    Raises:
        ZipSignatureError: If the value read differs from 'expected'.
        ZipTruncatedError: If fewer than four bytes remain.
    """
    position = f.tell()
    signature = read_uint32(f)
    if signature != expected:
        record = SIGNATURE_NAMES.get(expected, "record")
        raise ZipSignatureError(
            f"Invalid {record} signature at offset {position}: 0x{signature:08X}, "
            f"expected 0x{expected:08X}"
        )
    return signature


def write_bytes(f: BinaryIO, data: bytes) -> None:
    """Write 'data' to 'f' in full.

    Raises:
        ZipFormatError: If the stream accepts fewer bytes than given.
    """
    written = f.write(data)
    if written != len(data):
        raise ZipFormatError(f"Short write: {written} of {len(data)} bytes")


def write_uint16(f: BinaryIO, value: int) -> None:
    write_bytes(f, struct.pack("<H", value & 0xFFFF))


def write_uint32(f: BinaryIO, value: int) -> None:
    write_bytes(f, struct.pack("<I", value & 0xFFFFFFFF))
