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
ZIP archive encoder.

This module turns in-memory entries into archive bytes. ``build()`` is the
one-shot API; ``ZipWriter`` accumulates entries and writes the archive to
a path or file object on close.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Callable, Iterable, Optional, Union

from .codec import DEFAULT_CODEC, Codec
from .constants import (
    COMP_DEFLATE,
    COMP_STORED,
    COMPRESSION_DEFLATE,
    COMPRESSION_METHODS,
    EXTERNAL_ATTRS_DIR,
    EXTERNAL_ATTRS_FILE,
    FLAG_DATA_DESCRIPTOR,
    FLAG_UTF8,
    MAX_CD_OFFSET,
    MAX_CD_SIZE,
    MAX_ENTRIES,
    MAX_FIELD_LENGTH,
    MAX_FILE_SIZE,
    VERSION_DEFAULT,
    VERSION_MADE_BY_DEFAULT,
)
from .errors import ZipFormatError, ZipUnsupportedFeature
from .structures import (
    CentralDirectoryHeader,
    DataDescriptor,
    EndOfCentralDirectory,
    LocalFileHeader,
    encode_central_directory_header,
    encode_data_descriptor,
    encode_eocd,
    encode_local_file_header,
)
from .utils import timestamp_to_dos_datetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextEntry:
    """An entry whose content is text, stored as UTF-8."""

    name: str
    content: str
    date_time: Optional[datetime] = None

    def to_bytes(self) -> bytes:
        return self.content.encode("utf-8")


@dataclass(frozen=True)
class RawEntry:
    """An entry whose content is stored byte for byte."""

    name: str
    content: bytes
    date_time: Optional[datetime] = None

    def to_bytes(self) -> bytes:
        return bytes(self.content)


Entry = Union[TextEntry, RawEntry]

# A compression name, or a function choosing one per entry
CompressionPolicy = Union[str, Callable[[Entry], str]]


@dataclass(frozen=True)
class EncodedFile:
    """An entry after checksum and compression selection, ready to lay out."""

    name: str
    payload: bytes
    uncompressed_size: int
    compressed_size: int
    compression_method: int
    crc32: int
    mod_time: int
    mod_date: int


def normalize_entry_name(name: str) -> str:
    """Validate an entry name and normalize its path separators.

    Raises:
        ZipFormatError: If the name is empty, contains NUL bytes, or does
            not fit a 16-bit length field once encoded.
    """
    if not name:
        raise ZipFormatError("Entry name cannot be empty")
    if "\x00" in name:
        raise ZipFormatError("Entry name cannot contain null bytes")

    if "\\" in name:
        name = name.replace("\\", "/")

    encoded_len = len(name.encode("utf-8"))
    if encoded_len > MAX_FIELD_LENGTH:
        raise ZipFormatError(f"Entry name too long: {encoded_len} bytes (max {MAX_FIELD_LENGTH})")
    return name


def _resolve_compression(entry: Entry, compression: CompressionPolicy) -> str:
    method = compression(entry) if callable(compression) else compression
    if method not in COMPRESSION_METHODS:
        raise ZipUnsupportedFeature(f"Unsupported compression method: {method}")
    return method


def encode_entry(
    entry: Entry,
    compression: CompressionPolicy = COMPRESSION_DEFLATE,
    codec: Optional[Codec] = None,
    date_time: Optional[datetime] = None,
) -> EncodedFile:
    """Checksum and compress one entry.

    Deflate is only kept when it is strictly smaller than the original
    bytes; otherwise the entry is stored.

    Args:
        entry: Entry to encode.
        compression: "stored", "deflate", or a function returning one of them.
        codec: Compression/checksum collaborator (zlib by default).
        date_time: Modification time used when the entry has none.

    Returns:
        EncodedFile for the entry.

    Raises:
        ZipFormatError: If the entry name is invalid.
        ZipUnsupportedFeature: If the compression method is unknown or the
            entry is too large for a classic archive.
    """
    codec = codec or DEFAULT_CODEC
    name = normalize_entry_name(entry.name)
    method = _resolve_compression(entry, compression)

    data = entry.to_bytes()
    if len(data) > MAX_FILE_SIZE:
        raise ZipUnsupportedFeature(f"Entry {name!r} is {len(data)} bytes; ZIP64 is not supported")

    checksum = codec.checksum(data)

    payload = data
    compression_method = COMP_STORED
    if COMPRESSION_METHODS[method] == COMP_DEFLATE:
        candidate = codec.compress(data)
        if len(candidate) < len(data):
            payload = candidate
            compression_method = COMP_DEFLATE

    mod_date, mod_time = timestamp_to_dos_datetime(entry.date_time or date_time or datetime.now())

    return EncodedFile(
        name=name,
        payload=payload,
        uncompressed_size=len(data),
        compressed_size=len(payload),
        compression_method=compression_method,
        crc32=checksum,
        mod_time=mod_time,
        mod_date=mod_date,
    )


def _local_header_for(encoded: EncodedFile, use_data_descriptor: bool) -> LocalFileHeader:
    if use_data_descriptor:
        return LocalFileHeader(
            version=VERSION_DEFAULT,
            flags=FLAG_UTF8 | FLAG_DATA_DESCRIPTOR,
            compression_method=encoded.compression_method,
            mod_time=encoded.mod_time,
            mod_date=encoded.mod_date,
            crc32=0,
            compressed_size=0,
            uncompressed_size=0,
            filename=encoded.name.encode("utf-8"),
        )
    return LocalFileHeader(
        version=VERSION_DEFAULT,
        flags=FLAG_UTF8,
        compression_method=encoded.compression_method,
        mod_time=encoded.mod_time,
        mod_date=encoded.mod_date,
        crc32=encoded.crc32,
        compressed_size=encoded.compressed_size,
        uncompressed_size=encoded.uncompressed_size,
        filename=encoded.name.encode("utf-8"),
    )


def _central_header_for(encoded: EncodedFile, flags: int, offset: int) -> CentralDirectoryHeader:
    # Names are already normalized to forward slashes.
    if encoded.name.endswith("/"):
        external_attrs = EXTERNAL_ATTRS_DIR
    else:
        external_attrs = EXTERNAL_ATTRS_FILE

    return CentralDirectoryHeader(
        version_made_by=VERSION_MADE_BY_DEFAULT,
        version=VERSION_DEFAULT,
        flags=flags,
        compression_method=encoded.compression_method,
        mod_time=encoded.mod_time,
        mod_date=encoded.mod_date,
        crc32=encoded.crc32,
        compressed_size=encoded.compressed_size,
        uncompressed_size=encoded.uncompressed_size,
        disk_num=0,
        internal_attrs=0,
        external_attrs=external_attrs,
        local_header_offset=offset,
        filename=encoded.name.encode("utf-8"),
    )


def encode_archive(files: Iterable[EncodedFile], use_data_descriptor: bool = False) -> bytes:
    """Lay out encoded files as a complete archive.

    Local entries are written first, each one's offset being the number of
    bytes already emitted; the central directory follows them directly and
    the End of Central Directory record closes the archive.

    Args:
        files: Encoded files in archive order.
        use_data_descriptor: Defer CRC and sizes to a data descriptor after
            each payload, as a streaming producer would.

    Returns:
        The archive bytes.

    Raises:
        ZipFormatError: If two files share a name.
        ZipUnsupportedFeature: If offsets, sizes or the entry count need ZIP64.
    """
    out = bytearray()
    centrals: list[CentralDirectoryHeader] = []
    names: set[str] = set()

    for encoded in files:
        if encoded.name in names:
            raise ZipFormatError(f"Duplicate entry name: {encoded.name!r}")
        names.add(encoded.name)

        offset = len(out)
        if offset > MAX_FILE_SIZE:
            raise ZipUnsupportedFeature(f"Local header offset {offset} needs ZIP64, which is not supported")

        local = _local_header_for(encoded, use_data_descriptor)
        out += encode_local_file_header(local)
        out += encoded.payload
        if use_data_descriptor:
            out += encode_data_descriptor(
                DataDescriptor(
                    crc32=encoded.crc32,
                    compressed_size=encoded.compressed_size,
                    uncompressed_size=encoded.uncompressed_size,
                )
            )
        centrals.append(_central_header_for(encoded, local.flags, offset))

    cd_offset = len(out)
    for central in centrals:
        out += encode_central_directory_header(central)
    cd_size = len(out) - cd_offset

    if len(centrals) > MAX_ENTRIES:
        raise ZipUnsupportedFeature(f"{len(centrals)} entries need ZIP64 (max {MAX_ENTRIES})")
    if cd_offset > MAX_CD_OFFSET or cd_size > MAX_CD_SIZE:
        raise ZipUnsupportedFeature("Central directory position needs ZIP64, which is not supported")

    out += encode_eocd(
        EndOfCentralDirectory(
            disk_num=0,
            cd_disk=0,
            cd_records_on_disk=len(centrals),
            cd_records_total=len(centrals),
            cd_size=cd_size,
            cd_offset=cd_offset,
        )
    )
    logger.debug("Encoded %d entries into %d bytes", len(centrals), len(out))
    return bytes(out)


def build(
    entries: Iterable[Entry],
    compression: CompressionPolicy = COMPRESSION_DEFLATE,
    codec: Optional[Codec] = None,
    use_data_descriptor: bool = False,
) -> bytes:
    """Build a ZIP archive from in-memory entries.

    Example:
        data = build([TextEntry("hello.txt", "Hello, World!")])

    Args:
        entries: Entries in the order they should appear in the archive.
        compression: "stored", "deflate", or a per-entry policy function.
        codec: Compression/checksum collaborator (zlib by default).
        use_data_descriptor: Write sizes and CRC after each payload.

    Returns:
        The archive bytes.
    """
    now = datetime.now()
    files = [encode_entry(entry, compression, codec, date_time=now) for entry in entries]
    return encode_archive(files, use_data_descriptor=use_data_descriptor)


class ZipWriter:
    """Incremental writer for ZIP archives.

    Entries are checksummed and compressed as they are added; the archive
    is laid out when ``getvalue()`` or ``close()`` is called.

    Example:
        with ZipWriter("archive.zip") as z:
            z.add_text("hello.txt", "Hello, World!")
            z.add_file("doc.pdf", "/path/to/doc.pdf")
    """

    def __init__(
        self,
        file: Union[str, "os.PathLike[str]", BinaryIO, None] = None,
        compression: CompressionPolicy = COMPRESSION_DEFLATE,
        codec: Optional[Codec] = None,
        use_data_descriptor: bool = False,
    ):
        """Initialize ZipWriter.

        Args:
            file: Destination path or binary file-like object. When None the
                archive is only available through ``getvalue()``.
            compression: Default compression for added entries.
            codec: Compression/checksum collaborator (zlib by default).
            use_data_descriptor: Write sizes and CRC after each payload.

        Raises:
            ZipFormatError: If the file-like object has no write() method.
        """
        if hasattr(file, "__fspath__"):
            file = os.fspath(file)

        if file is not None and not isinstance(file, str) and not hasattr(file, "write"):
            raise ZipFormatError("File-like object must have a write() method")

        self._file = file
        self._compression = compression
        self._codec = codec or DEFAULT_CODEC
        self._use_data_descriptor = use_data_descriptor
        self._files: list[EncodedFile] = []
        self._names: set[str] = set()
        self._closed: bool = False

    def add(self, entry: Entry, compression: Optional[CompressionPolicy] = None) -> EncodedFile:
        """Add an entry.

        Raises:
            ZipFormatError: If the archive is closed or the name is already used.
        """
        if self._closed:
            raise ZipFormatError("Archive is closed")

        encoded = encode_entry(entry, compression or self._compression, self._codec)
        if encoded.name in self._names:
            raise ZipFormatError(f"Duplicate entry name: {encoded.name!r}")

        self._names.add(encoded.name)
        self._files.append(encoded)
        logger.debug(
            "Added %r: %d -> %d bytes (method %d)",
            encoded.name, encoded.uncompressed_size, encoded.compressed_size, encoded.compression_method,
        )
        return encoded

    def add_bytes(self, name: str, data: bytes, compression: Optional[CompressionPolicy] = None) -> EncodedFile:
        """Add an entry from bytes data."""
        return self.add(RawEntry(name, data), compression)

    def add_text(self, name: str, text: str, compression: Optional[CompressionPolicy] = None) -> EncodedFile:
        """Add an entry from a string, stored as UTF-8."""
        return self.add(TextEntry(name, text), compression)

    def add_file(
        self, name_in_zip: str, source_path: str, compression: Optional[CompressionPolicy] = None
    ) -> EncodedFile:
        """Add an entry from a file on disk.

        The entry keeps the file's modification time.

        Raises:
            ZipFormatError: If the source file cannot be read.
        """
        if not os.path.exists(source_path):
            raise ZipFormatError(f"Source file not found: {source_path}")

        try:
            with open(source_path, "rb") as f:
                data = f.read()
            modified = datetime.fromtimestamp(os.path.getmtime(source_path))
        except PermissionError as e:
            raise ZipFormatError(f"Permission denied reading file: {source_path}") from e
        except OSError as e:
            raise ZipFormatError(f"Error reading file {source_path}: {e}") from e

        return self.add(RawEntry(name_in_zip, data, date_time=modified), compression)

    @property
    def files(self) -> list[EncodedFile]:
        """Entries added so far, in archive order."""
        return list(self._files)

    def getvalue(self) -> bytes:
        """Return the archive bytes for the entries added so far."""
        return encode_archive(self._files, use_data_descriptor=self._use_data_descriptor)

    def close(self) -> None:
        """Lay out the archive and write it to the destination, if any."""
        if self._closed:
            return

        try:
            if self._file is None:
                return
            data = self.getvalue()
            if isinstance(self._file, str):
                with open(self._file, "wb") as f:
                    f.write(data)
            else:
                self._file.write(data)
        finally:
            self._closed = True

    def __enter__(self) -> "ZipWriter":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
