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
Random access to the entries of an archive held in memory.

``ZipReader`` is the file-style front end over ``decode()`` and
``decompress_entry()``; it shares its ``ZipFile`` with the extraction
engine, so entries extracted in steps are not decompressed twice.
"""

import io
import os
from typing import BinaryIO, Optional, Union

from .archive import ZipFile, overview
from .codec import DEFAULT_CODEC, Codec
from .decoder import Decoder, decode
from .errors import ZipFormatError
from .extract import decompress_entry
from .structures import ZipEntry


class ZipReader:
    """Reader for ZIP archives.

    The whole archive is loaded into memory and decoded once; entries are
    decompressed and CRC-checked when opened.

    Example:
        with ZipReader("archive.zip") as z:
            print(z.list())
            data = z.open("file.txt").read()
    """

    def __init__(
        self,
        file: Union[bytes, bytearray, str, "os.PathLike[str]", BinaryIO],
        decoder: Optional[Decoder] = None,
        codec: Optional[Codec] = None,
    ):
        """Initialize ZipReader with archive bytes, a path, or a file-like object.

        Args:
            file: Archive bytes, path to a ZIP file, or binary file-like object.
            decoder: Decoding strategy (anchored by default).
            codec: Compression/checksum collaborator (zlib by default).

        Raises:
            ZipFormatError: If the file-like object cannot be read or the
                archive is not valid.
        """
        if hasattr(file, "__fspath__"):
            file = os.fspath(file)

        if isinstance(file, (bytes, bytearray)):
            data = bytes(file)
        elif isinstance(file, str):
            with open(file, "rb") as f:
                data = f.read()
        else:
            if not hasattr(file, "read"):
                raise ZipFormatError("File-like object must have a read() method")
            data = file.read()

        self._codec = codec or DEFAULT_CODEC
        self._zip = decode(data, decoder)
        self._entries: dict[str, ZipEntry] = {entry.name: entry for entry in overview(self._zip)}
        self._closed: bool = False

    @property
    def zip_file(self) -> ZipFile:
        """The decoded archive, for use with the extraction engine."""
        return self._zip

    def list(self) -> list[str]:
        """Entry names in central directory order, directories included."""
        return [entry.name for entry in self._entries.values()]

    def get_info(self, name: str) -> Optional[ZipEntry]:
        """Return the overview row for 'name', or None if there is no such entry.

        The row reflects the entry's state when the reader was created.
        """
        return self._entries.get(self._normalize(name))

    def read(self, name: str) -> bytes:
        """Return the plain bytes of an entry.

        Entries the extraction engine already processed are served from
        ``zip_file``; entries it gave up on re-raise the recorded error.
        Pending entries are decompressed and CRC-checked on demand.

        Raises:
            KeyError: For unknown names.
            ZipFormatError: After ``close()``.
            ZipError: Whatever ``decompress_entry`` raises for the entry.
        """
        if self._closed:
            raise ZipFormatError("Reader is closed")

        name = self._normalize(name)
        info = self._entries.get(name)
        if info is None:
            raise KeyError(f"No entry named {name!r}")
        if info.is_dir:
            return b""

        if name in self._zip.uncompressed:
            return self._zip.uncompressed[name]
        if name in self._zip.skipped:
            raise self._zip.skipped[name]
        return decompress_entry(name, self._zip.possibly_compressed[name], self._codec)

    def open(self, name: str) -> BinaryIO:
        """Like ``read()``, wrapped in a binary stream."""
        return io.BytesIO(self.read(name))

    def close(self) -> None:
        """Release the archive; further reads fail."""
        self._closed = True

    @staticmethod
    def _normalize(name: str) -> str:
        return name.replace("\\", "/")

    def __enter__(self) -> "ZipReader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
