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
ZIP archive decoders.

Two interchangeable strategies turn archive bytes into a ``ZipFile``:

- ``AnchoredDecoder`` locates the End of Central Directory record at the
  tail of the buffer, decodes the central directory it points to, then
  follows each central header's offset to its local header and payload.
  This is the default.
- ``SequentialDecoder`` walks the buffer from the start, one record
  signature at a time, and needs no random access.

Both raise ``ZipError`` subclasses on any structural problem; ``read()``
wraps the default decoder and returns None instead.
"""

import io
import logging
import zlib
from dataclasses import replace
from typing import Optional, Protocol

from .archive import CompressedEntry, ZipFile
from .constants import (
    CENTRAL_DIR_HEADER,
    COMP_DEFLATE,
    END_OF_CENTRAL_DIR,
    END_OF_CENTRAL_DIR_SIZE,
    LOCAL_FILE_HEADER,
)
from .errors import (
    ZipCompressionError,
    ZipError,
    ZipFormatError,
    ZipSignatureError,
    ZipTruncatedError,
    ZipUnsupportedFeature,
)
from .structures import (
    CentralDirectoryHeader,
    EndOfCentralDirectory,
    LocalFileHeader,
    parse_central_directory_header,
    parse_data_descriptor,
    parse_eocd,
    parse_local_file_header,
)
from .utils import read_exact, read_uint32

logger = logging.getLogger(__name__)

# Inflate granularity when delimiting deferred-size deflate entries
_INFLATE_CHUNK = 64 * 1024


class Decoder(Protocol):
    """A strategy that turns archive bytes into a ``ZipFile``."""

    def decode(self, data: bytes) -> ZipFile:
        ...


def _check_single_disk(end: EndOfCentralDirectory) -> None:
    if end.disk_num != 0 or end.cd_disk != 0 or end.cd_records_on_disk != end.cd_records_total:
        raise ZipUnsupportedFeature(
            f"Multi-disk archives are not supported (disk {end.disk_num}, "
            f"central directory on disk {end.cd_disk})"
        )


def _add_entry(
    entries: dict[str, CompressedEntry], name: str, header: LocalFileHeader, payload: bytes
) -> None:
    if name in entries:
        raise ZipFormatError(f"Duplicate entry name in archive: {name!r}")
    entries[name] = CompressedEntry(header=header, compressed_content=payload)


def _complete_from_central(header: LocalFileHeader, central: CentralDirectoryHeader) -> LocalFileHeader:
    """Fill deferred CRC and sizes of a local header from its central header."""
    return replace(
        header,
        crc32=central.crc32,
        compressed_size=central.compressed_size,
        uncompressed_size=central.uncompressed_size,
    )


class AnchoredDecoder:
    """Random-access decoder anchored on the End of Central Directory record.

    The EOCD is expected in the last 22 bytes, i.e. with an empty archive
    comment. Archives carrying a trailing comment are not located.
    """

    def decode(self, data: bytes) -> ZipFile:
        """Decode ``data`` into a ``ZipFile``.

        Args:
            data: The complete archive.

        Returns:
            ZipFile with every entry in ``possibly_compressed``.

        Raises:
            ZipSignatureError: If a record is not where the archive says it is.
            ZipTruncatedError: If a declared length or offset runs past the buffer.
            ZipFormatError: If records contradict each other.
            ZipUnsupportedFeature: If the archive spans several disks.
        """
        data = bytes(data)
        end = self._find_eocd(data)
        centrals = self._parse_central_directory(data, end)

        # Local entries end where the central directory begins.
        local_region = io.BytesIO(data[: end.cd_offset])
        entries: dict[str, CompressedEntry] = {}
        for central in centrals:
            header, payload = self._read_local_entry(local_region, central, end.cd_offset)
            _add_entry(entries, central.name, header, payload)

        logger.debug("Decoded %d entries (central directory at offset %d)", len(entries), end.cd_offset)
        return ZipFile(possibly_compressed=entries, uncompressed={}, centrals=centrals, end=end)

    def _find_eocd(self, data: bytes) -> EndOfCentralDirectory:
        if len(data) < END_OF_CENTRAL_DIR_SIZE:
            raise ZipTruncatedError(
                f"Archive too small for an End of Central Directory record: {len(data)} bytes"
            )
        end = parse_eocd(io.BytesIO(data[-END_OF_CENTRAL_DIR_SIZE:]))
        _check_single_disk(end)
        return end

    def _parse_central_directory(self, data: bytes, end: EndOfCentralDirectory) -> list[CentralDirectoryHeader]:
        eocd_offset = len(data) - END_OF_CENTRAL_DIR_SIZE
        if end.cd_offset + end.cd_size > eocd_offset:
            raise ZipTruncatedError(
                f"Central directory extends beyond archive: offset {end.cd_offset}, "
                f"size {end.cd_size} (End of Central Directory at {eocd_offset})"
            )

        region = io.BytesIO(data[end.cd_offset : end.cd_offset + end.cd_size])
        centrals = [parse_central_directory_header(region) for _ in range(end.cd_records_total)]

        consumed = region.tell()
        if consumed != end.cd_size:
            raise ZipFormatError(
                f"Central directory size mismatch: declared {end.cd_size} bytes, "
                f"{end.cd_records_total} headers use {consumed}"
            )
        return centrals

    def _read_local_entry(
        self, stream: io.BytesIO, central: CentralDirectoryHeader, cd_offset: int
    ) -> tuple[LocalFileHeader, bytes]:
        offset = central.local_header_offset
        if offset >= cd_offset:
            raise ZipFormatError(
                f"Local header offset for entry {central.name!r} points into the central directory: {offset}"
            )

        stream.seek(offset)
        header = parse_local_file_header(stream)
        if header.name != central.name:
            raise ZipFormatError(
                f"Local header at offset {offset} names {header.name!r}, "
                f"central directory names {central.name!r}"
            )

        if header.has_data_descriptor:
            header = _complete_from_central(header, central)

        payload = read_exact(stream, header.compressed_size)
        return header, payload


class SequentialDecoder:
    """Streaming decoder that reads records in file order.

    Each step reads a signature at the cursor and dispatches on it; the
    walk ends at the End of Central Directory record. Entries whose sizes
    are deferred to a data descriptor can only be delimited when they are
    deflate-compressed, since the deflate stream marks its own end.
    """

    def decode(self, data: bytes) -> ZipFile:
        """Decode ``data`` into a ``ZipFile`` by scanning from the start.

        Raises:
            ZipSignatureError: If an unknown signature is found.
            ZipTruncatedError: If the data ends before the EOCD record.
            ZipFormatError: If the central directory and local entries disagree.
            ZipUnsupportedFeature: For multi-disk archives and deferred-size stored entries.
        """
        data = bytes(data)
        stream = io.BytesIO(data)
        view = memoryview(data)
        locals_: dict[str, CompressedEntry] = {}
        centrals: list[CentralDirectoryHeader] = []

        while True:
            position = stream.tell()
            signature = read_uint32(stream)
            stream.seek(position)

            if signature == LOCAL_FILE_HEADER:
                header = parse_local_file_header(stream)
                header, payload = self._read_payload(stream, view, header)
                _add_entry(locals_, header.name, header, payload)
            elif signature == CENTRAL_DIR_HEADER:
                centrals.append(parse_central_directory_header(stream))
            elif signature == END_OF_CENTRAL_DIR:
                end = parse_eocd(stream)
                break
            else:
                raise ZipSignatureError(
                    f"Unexpected signature at offset {position}: 0x{signature:08X}"
                )

        _check_single_disk(end)
        if len(centrals) != end.cd_records_total:
            raise ZipFormatError(
                f"Entry count mismatch: End of Central Directory declares {end.cd_records_total}, "
                f"found {len(centrals)} central directory headers"
            )

        # Keep central directory order, as the anchored decoder does.
        entries: dict[str, CompressedEntry] = {}
        for central in centrals:
            entry = locals_.get(central.name)
            if entry is None:
                raise ZipFormatError(f"Central directory entry {central.name!r} has no local file header")
            entries[central.name] = entry

        orphans = [name for name in locals_ if name not in entries]
        if orphans:
            logger.warning(
                "Ignoring %d local entries not listed in the central directory: %s",
                len(orphans), ", ".join(repr(name) for name in orphans),
            )

        logger.debug("Sequentially decoded %d entries", len(entries))
        return ZipFile(possibly_compressed=entries, uncompressed={}, centrals=centrals, end=end)

    def _read_payload(
        self, stream: io.BytesIO, view: memoryview, header: LocalFileHeader
    ) -> tuple[LocalFileHeader, bytes]:
        if not header.has_data_descriptor:
            return header, read_exact(stream, header.compressed_size)

        if header.compression_method != COMP_DEFLATE:
            raise ZipUnsupportedFeature(
                f"Cannot delimit entry {header.name!r}: sizes are deferred to a data descriptor "
                f"and method {header.compression_method} does not mark its own end"
            )

        start = stream.tell()
        consumed = _deflate_stream_length(view, start, header.name)
        stream.seek(start + consumed)
        descriptor = parse_data_descriptor(stream)
        if descriptor.compressed_size != consumed:
            raise ZipFormatError(
                f"Data descriptor of entry {header.name!r} declares {descriptor.compressed_size} "
                f"compressed bytes, stream uses {consumed}"
            )

        logger.debug(
            "Entry %r: data descriptor %s signature", header.name,
            "with" if descriptor.signature is not None else "without",
        )
        header = replace(
            header,
            crc32=descriptor.crc32,
            compressed_size=descriptor.compressed_size,
            uncompressed_size=descriptor.uncompressed_size,
        )
        return header, bytes(view[start : start + consumed])


def _deflate_stream_length(view: memoryview, start: int, name: str) -> int:
    """Return how many bytes from ``start`` the raw deflate stream occupies.

    Input is fed and output drained in ``_INFLATE_CHUNK`` pieces, and the
    inflated bytes are dropped, so memory stays bounded however far the
    stream expands.
    """
    decompressor = zlib.decompressobj(-zlib.MAX_WBITS)
    position = start
    try:
        while not decompressor.eof:
            if position >= len(view):
                raise ZipTruncatedError(f"Deflate stream of entry {name!r} runs past the end of the archive")
            pending = view[position : position + _INFLATE_CHUNK]
            position += len(pending)
            while not decompressor.eof:
                produced = decompressor.decompress(pending, _INFLATE_CHUNK)
                pending = decompressor.unconsumed_tail
                if not pending and not produced:
                    break
    except zlib.error as e:
        raise ZipCompressionError(f"Cannot delimit deflate stream of entry {name!r}: {e}") from e

    return position - start - len(decompressor.unused_data)


def decode(data: bytes, decoder: Optional[Decoder] = None) -> ZipFile:
    """Decode ``data`` with ``decoder`` (an ``AnchoredDecoder`` by default).

    Raises:
        ZipError: If the archive cannot be decoded.
    """
    if decoder is None:
        decoder = AnchoredDecoder()
    return decoder.decode(data)


def read(data: bytes, decoder: Optional[Decoder] = None) -> Optional[ZipFile]:
    """Decode ``data``, returning None instead of raising on failure."""
    try:
        return decode(data, decoder)
    except ZipError as e:
        logger.warning("Could not decode archive (%d bytes): %s", len(data), e)
        return None
