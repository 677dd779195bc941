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
memzip - in-memory ZIP codec in pure Python.

Build archives from named entries with ``build()`` or ``ZipWriter``, decode
them with ``decode()``/``read()``, and decompress them incrementally with
``extract()`` or all at once with ``extract_all()``.
"""

from .archive import CompressedEntry, Progress, ZipFile, overview, progress
from .codec import Codec, ZlibCodec
from .decoder import AnchoredDecoder, Decoder, SequentialDecoder, decode, read
from .extract import (
    BinaryContent,
    Done,
    ExtractionConfig,
    FailedContent,
    Loop,
    TextContent,
    extract,
    extract_all,
)
from .reader import ZipReader
from .writer import EncodedFile, RawEntry, TextEntry, ZipWriter, build

__all__ = [
    "AnchoredDecoder",
    "BinaryContent",
    "Codec",
    "CompressedEntry",
    "Decoder",
    "Done",
    "EncodedFile",
    "ExtractionConfig",
    "FailedContent",
    "Loop",
    "Progress",
    "RawEntry",
    "SequentialDecoder",
    "TextContent",
    "TextEntry",
    "ZipFile",
    "ZipReader",
    "ZipWriter",
    "ZlibCodec",
    "build",
    "decode",
    "extract",
    "extract_all",
    "overview",
    "progress",
    "read",
]

__version__ = "0.1.0"
