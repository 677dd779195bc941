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
Incremental extraction engine.

``extract()`` performs a bounded amount of decompression on a ``ZipFile``
and returns immediately, either with ``Loop`` (call again later) or with
``Done`` (every entry resolved). The caller owns the loop and decides what
happens between steps, e.g. redrawing a progress display:

    step = extract(config, zip_file)
    while isinstance(step, Loop):
        show(progress(step.zip_file))
        step = extract(config, step.zip_file)

Failures stay local to their entry: a corrupt deflate stream is retried on
later steps up to ``max_attempts`` times, unsupported or checksum-failing
entries are set aside in ``ZipFile.skipped``, and text that does not
decode is returned as ``FailedContent``.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from .archive import CompressedEntry, Progress, ZipFile, progress
from .codec import DEFAULT_CODEC, Codec
from .constants import COMP_DEFLATE, COMP_STORED, TEXT_EXTENSIONS
from .errors import ZipCompressionError, ZipCrcError, ZipError, ZipTextDecodeError, ZipUnsupportedFeature

logger = logging.getLogger(__name__)


def is_text_name(name: str) -> bool:
    """Default text classifier: decide by file name extension."""
    return os.path.splitext(name)[1].lower() in TEXT_EXTENSIONS


@dataclass
class ExtractionConfig:
    """Per-step limits and result interpretation for ``extract()``.

    Attributes:
        max_entries_per_step: Deflate entries attempted per step.
        max_bytes_per_step: Compressed bytes inflated per step, or None for
            no byte limit. The first deflate entry of a step is always
            attempted, so entries larger than the budget still progress.
        classify_as_text: Decides which entry names are decoded as UTF-8 text.
        max_attempts: Failed decompressions tolerated before an entry is skipped.
        verify_crc: Check each entry's CRC32 against its header.
    """

    max_entries_per_step: int = 1
    max_bytes_per_step: Optional[int] = None
    classify_as_text: Callable[[str], bool] = is_text_name
    max_attempts: int = 3
    verify_crc: bool = True

    def __post_init__(self) -> None:
        if self.max_entries_per_step < 1:
            raise ValueError(f"max_entries_per_step must be at least 1, got {self.max_entries_per_step}")
        if self.max_bytes_per_step is not None and self.max_bytes_per_step < 1:
            raise ValueError(f"max_bytes_per_step must be positive or None, got {self.max_bytes_per_step}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")


@dataclass(frozen=True)
class TextContent:
    text: str


@dataclass(frozen=True)
class BinaryContent:
    data: bytes


@dataclass(frozen=True)
class FailedContent:
    """Bytes requested as text that are not valid UTF-8."""

    data: bytes


ExtractionContent = Union[TextContent, BinaryContent, FailedContent]


@dataclass
class Loop:
    """More work is pending; call ``extract()`` again with ``zip_file``."""

    zip_file: ZipFile


@dataclass
class Done:
    """Extraction finished.

    Attributes:
        entries: (name, content) pairs in central directory order.
        skipped: Entries left out of ``entries`` and why.
    """

    entries: list[tuple[str, ExtractionContent]]
    skipped: dict[str, ZipError] = field(default_factory=dict)

    def as_dict(self) -> dict[str, ExtractionContent]:
        return dict(self.entries)


Step = Union[Loop, Done]


def _check_crc(name: str, data: bytes, expected: int, codec: Codec) -> None:
    actual = codec.checksum(data)
    if actual != expected:
        raise ZipCrcError(
            f"CRC32 mismatch for entry {name!r}: expected 0x{expected:08X}, got 0x{actual:08X}"
        )


def decompress_entry(
    name: str, entry: CompressedEntry, codec: Optional[Codec] = None, verify_crc: bool = True
) -> bytes:
    """Return the plain bytes of one entry.

    Args:
        name: Entry name, for error messages.
        entry: Local header and payload.
        codec: Compression/checksum collaborator (zlib by default).
        verify_crc: Check the result against the header's CRC32.

    Raises:
        ZipUnsupportedFeature: If the entry is encrypted or uses another method.
        ZipCompressionError: If the deflate stream is corrupt.
        ZipCrcError: If the checksum does not match.
    """
    codec = codec or DEFAULT_CODEC
    header = entry.header

    if header.is_encrypted:
        raise ZipUnsupportedFeature(f"Entry {name!r} is encrypted (encryption not supported)")

    if header.compression_method == COMP_STORED:
        data = entry.compressed_content
    elif header.compression_method == COMP_DEFLATE:
        data = codec.decompress(entry.compressed_content)
    else:
        raise ZipUnsupportedFeature(
            f"Unsupported compression method {header.compression_method} for entry {name!r}"
        )

    if verify_crc:
        _check_crc(name, data, header.crc32, codec)
    return data


def decode_text(name: str, data: bytes) -> str:
    """Decode entry bytes as strict UTF-8.

    Raises:
        ZipTextDecodeError: If the bytes are not valid UTF-8.
    """
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ZipTextDecodeError(f"Entry {name!r} is not valid UTF-8: {e}") from e


def interpret(name: str, data: bytes, classify_as_text: Callable[[str], bool]) -> ExtractionContent:
    """Turn extracted bytes into text, binary or failed-text content."""
    if not classify_as_text(name):
        return BinaryContent(data)
    try:
        return TextContent(decode_text(name, data))
    except ZipTextDecodeError as e:
        logger.debug("%s", e)
        return FailedContent(data)


def _skip(zip_file: ZipFile, name: str, reason: ZipError) -> None:
    del zip_file.possibly_compressed[name]
    zip_file.attempts.pop(name, None)
    zip_file.skipped[name] = reason


def _record_failure(zip_file: ZipFile, name: str, error: ZipCompressionError, max_attempts: int) -> None:
    attempts = zip_file.attempts.get(name, 0) + 1
    if attempts >= max_attempts:
        logger.warning("Giving up on %r after %d attempts: %s", name, attempts, error)
        _skip(zip_file, name, error)
    else:
        zip_file.attempts[name] = attempts
        logger.info("Decompression of %r failed (attempt %d of %d): %s", name, attempts, max_attempts, error)


def _finish(config: ExtractionConfig, zip_file: ZipFile) -> Done:
    entries = [
        (name, interpret(name, zip_file.uncompressed[name], config.classify_as_text))
        for name in zip_file.names()
        if name in zip_file.uncompressed
    ]
    return Done(entries=entries, skipped=dict(zip_file.skipped))


def extract(config: ExtractionConfig, zip_file: ZipFile, codec: Optional[Codec] = None) -> Step:
    """Run one bounded extraction step over ``zip_file``.

    Stored entries are moved to ``uncompressed`` without counting against
    the step's quota. Deflate entries are inflated while the entry and
    byte quotas allow; entries that do not fit are left for a later step,
    and scanning continues so that cheaper entries behind them still move.

    Args:
        config: Step limits and text classification.
        zip_file: Archive being extracted; updated in place.
        codec: Compression/checksum collaborator (zlib by default).

    Returns:
        ``Loop(zip_file)`` while entries remain, otherwise ``Done``.
    """
    codec = codec or DEFAULT_CODEC
    inflated = 0
    budget = config.max_bytes_per_step

    for name, entry in list(zip_file.possibly_compressed.items()):
        header = entry.header
        try:
            if header.compression_method != COMP_DEFLATE or header.is_encrypted:
                # Stored entries are free; anything else is rejected as unsupported.
                data = decompress_entry(name, entry, codec, config.verify_crc)
            else:
                size = len(entry.compressed_content)
                if inflated >= config.max_entries_per_step:
                    continue
                if budget is not None and inflated > 0 and size >= budget:
                    continue
                inflated += 1
                data = decompress_entry(name, entry, codec, config.verify_crc)
                if budget is not None:
                    budget = max(budget - size, 0)
        except ZipCompressionError as e:
            _record_failure(zip_file, name, e, config.max_attempts)
            continue
        except (ZipUnsupportedFeature, ZipCrcError) as e:
            logger.warning("Skipping %r: %s", name, e)
            _skip(zip_file, name, e)
            continue

        del zip_file.possibly_compressed[name]
        zip_file.attempts.pop(name, None)
        zip_file.uncompressed[name] = data

    current = progress(zip_file)
    logger.info(
        "Extraction step: %d/%d extracted, %d pending, %d skipped",
        current.uncompressed_count, current.total, current.possibly_compressed_count, len(zip_file.skipped),
    )

    if zip_file.possibly_compressed:
        return Loop(zip_file)
    return _finish(config, zip_file)


def extract_all(
    zip_file: ZipFile,
    config: Optional[ExtractionConfig] = None,
    codec: Optional[Codec] = None,
    on_progress: Optional[Callable[[Progress], None]] = None,
) -> Done:
    """Drive ``extract()`` until it reports ``Done``.

    Args:
        zip_file: Archive to extract; updated in place.
        config: Step configuration (defaults to ``ExtractionConfig()``).
        codec: Compression/checksum collaborator (zlib by default).
        on_progress: Called with the current counts after every ``Loop`` step.

    Returns:
        The final ``Done`` result.
    """
    config = config or ExtractionConfig()
    step = extract(config, zip_file, codec)
    while isinstance(step, Loop):
        if on_progress is not None:
            on_progress(progress(step.zip_file))
        step = extract(config, step.zip_file, codec)
    return step
