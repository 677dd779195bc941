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
Decoded archive model.

A ``ZipFile`` is what the decoders produce and what the extraction engine
consumes. Entries start in ``possibly_compressed`` and are moved by the
engine into ``uncompressed`` (or ``skipped``); a name is never in more
than one of the three maps.
"""

from dataclasses import dataclass, field
from typing import NamedTuple

from .errors import ZipError
from .structures import CentralDirectoryHeader, EndOfCentralDirectory, LocalFileHeader, ZipEntry


@dataclass
class CompressedEntry:
    """A local file header together with its raw (possibly compressed) payload."""

    header: LocalFileHeader
    compressed_content: bytes


@dataclass
class ZipFile:
    """A decoded archive.

    Attributes:
        possibly_compressed: Entries not yet processed, keyed by name, in
            central directory order.
        uncompressed: Plain bytes of processed entries, keyed by name.
        centrals: Central directory headers in archive order.
        end: The End of Central Directory record.
        skipped: Entries the extraction engine gave up on, with the reason.
        attempts: Failed decompression attempts per pending entry.
    """

    possibly_compressed: dict[str, CompressedEntry]
    uncompressed: dict[str, bytes]
    centrals: list[CentralDirectoryHeader]
    end: EndOfCentralDirectory
    skipped: dict[str, ZipError] = field(default_factory=dict)
    attempts: dict[str, int] = field(default_factory=dict)

    def names(self) -> list[str]:
        """Entry names in central directory order."""
        return [central.name for central in self.centrals]

    @property
    def is_done(self) -> bool:
        return not self.possibly_compressed


class Progress(NamedTuple):
    """Entry counts reported between extraction steps."""

    uncompressed_count: int
    possibly_compressed_count: int
    total: int


def progress(zip_file: ZipFile) -> Progress:
    """Return current extraction counts for ``zip_file``."""
    return Progress(
        uncompressed_count=len(zip_file.uncompressed),
        possibly_compressed_count=len(zip_file.possibly_compressed),
        total=len(zip_file.centrals),
    )


def _entry_state(zip_file: ZipFile, name: str) -> str:
    if name in zip_file.uncompressed:
        return "extracted"
    if name in zip_file.skipped:
        return "skipped"
    return "pending"


def overview(zip_file: ZipFile) -> list[ZipEntry]:
    """Describe every entry of ``zip_file`` from its central directory.

    This is a read-only query; calling it repeatedly without extracting in
    between returns equal results.
    """
    return [
        ZipEntry(
            name=central.name,
            is_dir=central.is_dir,
            compressed_size=central.compressed_size,
            uncompressed_size=central.uncompressed_size,
            crc32=central.crc32,
            compression_method=central.compression_method,
            flags=central.flags,
            date_time=central.date_time,
            local_header_offset=central.local_header_offset,
            external_attrs=central.external_attrs,
            comment=central.comment,
            state=_entry_state(zip_file, central.name),
        )
        for central in zip_file.centrals
    ]
