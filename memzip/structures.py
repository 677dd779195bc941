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
ZIP structure definitions with parsing and encoding functions.

This module defines dataclasses for the ZIP records (local file headers,
data descriptors, central directory headers and the end of central
directory record). Every ``parse_*`` function reads one record from a
binary cursor; every ``encode_*`` function turns a record back into bytes.
"""

import io
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Optional

from .constants import (
    CENTRAL_DIR_HEADER,
    DATA_DESCRIPTOR,
    END_OF_CENTRAL_DIR,
    FLAG_DATA_DESCRIPTOR,
    FLAG_ENCRYPTED,
    LOCAL_FILE_HEADER,
)
from .utils import (
    decode_entry_name,
    dos_datetime_to_timestamp,
    read_exact,
    read_signature,
    read_uint16,
    read_uint32,
    write_bytes,
    write_uint16,
    write_uint32,
)


@dataclass
class LocalFileHeader:
    """Local file header structure.

    This header appears before each file's compressed data in the ZIP archive.
    Name and extra field lengths are derived from ``filename`` and ``extra``.
    """

    version: int
    flags: int
    compression_method: int
    mod_time: int
    mod_date: int
    crc32: int
    compressed_size: int
    uncompressed_size: int
    filename: bytes
    extra: bytes = b""

    @property
    def name(self) -> str:
        """Entry name decoded from ``filename``."""
        return decode_entry_name(self.filename)

    @property
    def date_time(self) -> datetime:
        """Get modification date/time as datetime object."""
        return dos_datetime_to_timestamp(self.mod_date, self.mod_time)

    @property
    def has_data_descriptor(self) -> bool:
        """True when CRC and sizes are deferred to a trailing data descriptor."""
        return bool(self.flags & FLAG_DATA_DESCRIPTOR)

    @property
    def is_encrypted(self) -> bool:
        return bool(self.flags & FLAG_ENCRYPTED)


@dataclass
class DataDescriptor:
    """Data descriptor structure.

    Follows the compressed data when the data descriptor flag is set in the
    local file header. ``signature`` is None when the optional signature
    was absent from the byte stream.
    """

    crc32: int
    compressed_size: int
    uncompressed_size: int
    signature: Optional[int] = DATA_DESCRIPTOR


@dataclass
class CentralDirectoryHeader:
    """Central directory header structure.

    This header appears in the central directory and contains information
    about a file entry, including a pointer to the local file header.
    """

    version_made_by: int
    version: int
    flags: int
    compression_method: int
    mod_time: int
    mod_date: int
    crc32: int
    compressed_size: int
    uncompressed_size: int
    disk_num: int
    internal_attrs: int
    external_attrs: int
    local_header_offset: int
    filename: bytes
    extra: bytes = b""
    comment: bytes = b""

    @property
    def name(self) -> str:
        """Entry name decoded from ``filename``."""
        return decode_entry_name(self.filename)

    @property
    def date_time(self) -> datetime:
        """Get modification date/time as datetime object."""
        return dos_datetime_to_timestamp(self.mod_date, self.mod_time)

    @property
    def is_dir(self) -> bool:
        """True for directory entries (trailing slash or Unix directory mode)."""
        if self.name.endswith("/"):
            return True
        return (self.external_attrs >> 16) & 0o040000 != 0


@dataclass
class EndOfCentralDirectory:
    """End of Central Directory record.

    This record marks the end of the central directory and contains
    information needed to locate the central directory.
    """

    disk_num: int
    cd_disk: int
    cd_records_on_disk: int
    cd_records_total: int
    cd_size: int
    cd_offset: int
    comment: bytes = b""


@dataclass
class ZipEntry:
    """ZIP entry metadata, as reported by ``overview()``.

    Combines central directory information with the extraction state of
    the entry: ``"pending"``, ``"extracted"`` or ``"skipped"``.
    """

    name: str
    is_dir: bool
    compressed_size: int
    uncompressed_size: int
    crc32: int
    compression_method: int
    flags: int
    date_time: datetime
    local_header_offset: int
    external_attrs: int
    comment: bytes = b""
    state: str = "pending"


def parse_local_file_header(f: BinaryIO) -> LocalFileHeader:
    """Parse a local file header from the current position.

    The name and extra lengths are read with the fixed fields, before the
    variable-length name and extra field they gate.

    Args:
        f: Binary file-like object positioned at the start of a local file header.

    Returns:
        LocalFileHeader object.

    Raises:
        ZipSignatureError: If the signature is invalid.
        ZipTruncatedError: If the buffer ends inside the record.
    """
    read_signature(f, LOCAL_FILE_HEADER)

    version = read_uint16(f)
    flags = read_uint16(f)
    compression_method = read_uint16(f)
    mod_time = read_uint16(f)
    mod_date = read_uint16(f)
    crc32 = read_uint32(f)
    compressed_size = read_uint32(f)
    uncompressed_size = read_uint32(f)
    filename_len = read_uint16(f)
    extra_len = read_uint16(f)

    filename = read_exact(f, filename_len)
    extra = read_exact(f, extra_len)

    return LocalFileHeader(
        version=version,
        flags=flags,
        compression_method=compression_method,
        mod_time=mod_time,
        mod_date=mod_date,
        crc32=crc32,
        compressed_size=compressed_size,
        uncompressed_size=uncompressed_size,
        filename=filename,
        extra=extra,
    )


def parse_data_descriptor(f: BinaryIO) -> DataDescriptor:
    """Parse a data descriptor from the current position.

    The first word is either the optional descriptor signature or the
    CRC32 itself. When it equals the signature, three words follow (crc,
    compressed size, uncompressed size); otherwise only the two sizes do.

    Args:
        f: Binary file-like object positioned right after the compressed data.

    Returns:
        DataDescriptor object.

    Raises:
        ZipTruncatedError: If the buffer ends inside the record.
    """
    first = read_uint32(f)
    if first == DATA_DESCRIPTOR:
        signature: Optional[int] = first
        crc32 = read_uint32(f)
    else:
        signature = None
        crc32 = first

    compressed_size = read_uint32(f)
    uncompressed_size = read_uint32(f)

    return DataDescriptor(
        crc32=crc32,
        compressed_size=compressed_size,
        uncompressed_size=uncompressed_size,
        signature=signature,
    )


def parse_central_directory_header(f: BinaryIO) -> CentralDirectoryHeader:
    """Parse a central directory header from the current position.

    Args:
        f: Binary file-like object positioned at the start of a central directory header.

    Returns:
        CentralDirectoryHeader object.

    Raises:
        ZipSignatureError: If the signature is invalid.
        ZipTruncatedError: If the buffer ends inside the record.
    """
    read_signature(f, CENTRAL_DIR_HEADER)

    version_made_by = read_uint16(f)
    version = read_uint16(f)
    flags = read_uint16(f)
    compression_method = read_uint16(f)
    mod_time = read_uint16(f)
    mod_date = read_uint16(f)
    crc32 = read_uint32(f)
    compressed_size = read_uint32(f)
    uncompressed_size = read_uint32(f)
    filename_len = read_uint16(f)
    extra_len = read_uint16(f)
    comment_len = read_uint16(f)
    disk_num = read_uint16(f)
    internal_attrs = read_uint16(f)
    external_attrs = read_uint32(f)
    local_header_offset = read_uint32(f)

    filename = read_exact(f, filename_len)
    extra = read_exact(f, extra_len)
    comment = read_exact(f, comment_len)

    return CentralDirectoryHeader(
        version_made_by=version_made_by,
        version=version,
        flags=flags,
        compression_method=compression_method,
        mod_time=mod_time,
        mod_date=mod_date,
        crc32=crc32,
        compressed_size=compressed_size,
        uncompressed_size=uncompressed_size,
        disk_num=disk_num,
        internal_attrs=internal_attrs,
        external_attrs=external_attrs,
        local_header_offset=local_header_offset,
        filename=filename,
        extra=extra,
        comment=comment,
    )


def parse_eocd(f: BinaryIO) -> EndOfCentralDirectory:
    """Parse an End of Central Directory record from the current position.

    Args:
        f: Binary file-like object positioned at the start of an EOCD record.

    Returns:
        EndOfCentralDirectory object.

    Raises:
        ZipSignatureError: If the signature is invalid.
        ZipTruncatedError: If the buffer ends inside the record or its comment.
    """
    read_signature(f, END_OF_CENTRAL_DIR)

    disk_num = read_uint16(f)
    cd_disk = read_uint16(f)
    cd_records_on_disk = read_uint16(f)
    cd_records_total = read_uint16(f)
    cd_size = read_uint32(f)
    cd_offset = read_uint32(f)
    comment_len = read_uint16(f)
    comment = read_exact(f, comment_len)

    return EndOfCentralDirectory(
        disk_num=disk_num,
        cd_disk=cd_disk,
        cd_records_on_disk=cd_records_on_disk,
        cd_records_total=cd_records_total,
        cd_size=cd_size,
        cd_offset=cd_offset,
        comment=comment,
    )


def encode_local_file_header(header: LocalFileHeader) -> bytes:
    """Encode a local file header, including its name and extra field."""
    out = io.BytesIO()
    write_uint32(out, LOCAL_FILE_HEADER)
    write_uint16(out, header.version)
    write_uint16(out, header.flags)
    write_uint16(out, header.compression_method)
    write_uint16(out, header.mod_time)
    write_uint16(out, header.mod_date)
    write_uint32(out, header.crc32)
    write_uint32(out, header.compressed_size)
    write_uint32(out, header.uncompressed_size)
    write_uint16(out, len(header.filename))
    write_uint16(out, len(header.extra))
    write_bytes(out, header.filename)
    write_bytes(out, header.extra)
    return out.getvalue()


def encode_data_descriptor(descriptor: DataDescriptor) -> bytes:
    """Encode a data descriptor.

    The optional signature is written unless ``descriptor.signature`` is None.
    """
    out = io.BytesIO()
    if descriptor.signature is not None:
        write_uint32(out, DATA_DESCRIPTOR)
    write_uint32(out, descriptor.crc32)
    write_uint32(out, descriptor.compressed_size)
    write_uint32(out, descriptor.uncompressed_size)
    return out.getvalue()


def encode_central_directory_header(header: CentralDirectoryHeader) -> bytes:
    """Encode a central directory header with its name, extra field and comment."""
    out = io.BytesIO()
    write_uint32(out, CENTRAL_DIR_HEADER)
    write_uint16(out, header.version_made_by)
    write_uint16(out, header.version)
    write_uint16(out, header.flags)
    write_uint16(out, header.compression_method)
    write_uint16(out, header.mod_time)
    write_uint16(out, header.mod_date)
    write_uint32(out, header.crc32)
    write_uint32(out, header.compressed_size)
    write_uint32(out, header.uncompressed_size)
    write_uint16(out, len(header.filename))
    write_uint16(out, len(header.extra))
    write_uint16(out, len(header.comment))
    write_uint16(out, header.disk_num)
    write_uint16(out, header.internal_attrs)
    write_uint32(out, header.external_attrs)
    write_uint32(out, header.local_header_offset)
    write_bytes(out, header.filename)
    write_bytes(out, header.extra)
    write_bytes(out, header.comment)
    return out.getvalue()


def encode_eocd(end: EndOfCentralDirectory) -> bytes:
    """Encode an End of Central Directory record with its comment."""
    out = io.BytesIO()
    write_uint32(out, END_OF_CENTRAL_DIR)
    write_uint16(out, end.disk_num)
    write_uint16(out, end.cd_disk)
    write_uint16(out, end.cd_records_on_disk)
    write_uint16(out, end.cd_records_total)
    write_uint32(out, end.cd_size)
    write_uint32(out, end.cd_offset)
    write_uint16(out, len(end.comment))
    write_bytes(out, end.comment)
    return out.getvalue()
