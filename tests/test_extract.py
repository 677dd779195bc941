"""Tests for the incremental extraction engine."""

import logging

import pytest
from zip_helpers import COMPRESSIBLE, FlakyCodec, corrupt_payload, replace_header

from memzip import (
    BinaryContent,
    Done,
    ExtractionConfig,
    FailedContent,
    Loop,
    RawEntry,
    TextContent,
    TextEntry,
    build,
    decode,
    extract,
    extract_all,
    overview,
    progress,
    read,
)
from memzip.constants import FLAG_ENCRYPTED
from memzip.errors import ZipCompressionError, ZipCrcError, ZipUnsupportedFeature
from memzip.extract import decompress_entry, is_text_name


def run_to_done(config, zip_file, codec=None, limit=100):
    """Drive extract() and record the zip_file counts after every step."""
    history = []
    step = extract(config, zip_file, codec)
    while isinstance(step, Loop):
        history.append(progress(step.zip_file))
        assert len(history) < limit, "extraction did not terminate"
        step = extract(config, step.zip_file, codec)
    return step, history


def assert_partitioned(zip_file):
    """Every name is in exactly one of the three state maps."""
    for name in zip_file.names():
        places = [
            name in zip_file.possibly_compressed,
            name in zip_file.uncompressed,
            name in zip_file.skipped,
        ]
        assert places.count(True) == 1, name


class TestExtractionConfig:
    def test_defaults(self):
        config = ExtractionConfig()
        assert config.max_entries_per_step == 1
        assert config.max_bytes_per_step is None
        assert config.verify_crc

    @pytest.mark.parametrize(
        "kwargs",
        [{"max_entries_per_step": 0}, {"max_bytes_per_step": 0}, {"max_attempts": 0}],
    )
    def test_rejects_non_positive_limits(self, kwargs):
        with pytest.raises(ValueError):
            ExtractionConfig(**kwargs)

    def test_text_classifier(self):
        assert is_text_name("notes/README.MD")
        assert not is_text_name("image.png")


class TestExtractResults:
    def test_round_trip(self, sample_entries, sample_archive):
        done = extract_all(read(sample_archive))

        assert isinstance(done, Done)
        assert done.skipped == {}
        assert [name for name, _ in done.entries] == [entry.name for entry in sample_entries]

        results = done.as_dict()
        assert results["readme.txt"] == TextContent("hello world " * 200)
        assert results["data/noise.bin"] == BinaryContent(sample_entries[1].content)
        assert results["data/repeat.bin"] == BinaryContent(COMPRESSIBLE)
        assert results["empty.txt"] == TextContent("")

    def test_custom_classifier(self, sample_archive):
        config = ExtractionConfig(classify_as_text=lambda name: False)
        done = extract_all(decode(sample_archive), config)
        assert all(isinstance(content, BinaryContent) for _, content in done.entries)

    def test_invalid_utf8_text_is_failed_content(self):
        data = build([RawEntry("notes.txt", b"\xff\xfe not utf-8")])
        done = extract_all(decode(data))
        assert done.as_dict() == {"notes.txt": FailedContent(b"\xff\xfe not utf-8")}

    def test_empty_archive_is_done_immediately(self):
        step = extract(ExtractionConfig(), decode(build([])))
        assert step == Done(entries=[], skipped={})

    def test_stored_entries_are_free(self, random_bytes):
        entries = [
            RawEntry("stored1.bin", random_bytes),
            RawEntry("deflate1.bin", COMPRESSIBLE),
            RawEntry("stored2.bin", random_bytes[::-1]),
            RawEntry("deflate2.bin", COMPRESSIBLE + b"!"),
        ]
        zip_file = decode(build(entries))

        step = extract(ExtractionConfig(max_entries_per_step=1), zip_file)

        assert isinstance(step, Loop)
        assert set(zip_file.uncompressed) == {"stored1.bin", "deflate1.bin", "stored2.bin"}
        assert list(zip_file.possibly_compressed) == ["deflate2.bin"]


class TestQuotas:
    @pytest.mark.parametrize("per_step", [1, 3, 10])
    def test_entry_quota(self, deflate_archive, per_step):
        zip_file = decode(deflate_archive)
        config = ExtractionConfig(max_entries_per_step=per_step)

        done, history = run_to_done(config, zip_file)

        previous = 0
        for counts in history:
            assert 0 < counts.uncompressed_count - previous <= per_step
            assert counts.uncompressed_count + counts.possibly_compressed_count == counts.total
            previous = counts.uncompressed_count
        assert len(history) == -(-10 // per_step) - 1
        assert len(done.entries) == 10

    def test_byte_quota_admits_one_entry_per_step(self, deflate_archive):
        zip_file = decode(deflate_archive)
        config = ExtractionConfig(max_entries_per_step=10, max_bytes_per_step=1)

        step = extract(config, zip_file)

        assert isinstance(step, Loop)
        assert progress(zip_file).uncompressed_count == 1
        assert list(zip_file.uncompressed) == ["file00.bin"]

    def test_byte_quota_large_enough_for_all(self, deflate_archive):
        zip_file = decode(deflate_archive)
        total = sum(len(entry.compressed_content) for entry in zip_file.possibly_compressed.values())
        config = ExtractionConfig(max_entries_per_step=10, max_bytes_per_step=total + 1)

        assert isinstance(extract(config, zip_file), Done)

    def test_state_maps_stay_partitioned(self, deflate_archive):
        corrupted = corrupt_payload(deflate_archive, "file03.bin")
        zip_file = decode(corrupted)
        config = ExtractionConfig(max_entries_per_step=2, max_attempts=2)

        step = extract(config, zip_file)
        while isinstance(step, Loop):
            assert_partitioned(step.zip_file)
            step = extract(config, step.zip_file)
        assert_partitioned(zip_file)


class TestFailures:
    def test_corrupt_entry_is_isolated(self):
        data = build([RawEntry("bad.bin", COMPRESSIBLE), TextEntry("good.txt", "fine " * 100)])
        zip_file = decode(corrupt_payload(data, "bad.bin"))
        config = ExtractionConfig(max_entries_per_step=10, max_attempts=3)

        done, history = run_to_done(config, zip_file)

        # two failed attempts keep the entry pending, the third gives up
        assert len(history) == 2
        assert done.as_dict() == {"good.txt": TextContent("fine " * 100)}
        assert isinstance(done.skipped["bad.bin"], ZipCompressionError)
        assert "bad.bin" not in zip_file.uncompressed
        assert zip_file.attempts == {}

    def test_transient_failure_is_retried(self):
        zip_file = decode(build([RawEntry("a.bin", COMPRESSIBLE)]))
        codec = FlakyCodec(failures=1)

        step = extract(ExtractionConfig(), zip_file, codec)
        assert isinstance(step, Loop)
        assert zip_file.attempts == {"a.bin": 1}

        step = extract(ExtractionConfig(), zip_file, codec)
        assert step == Done(entries=[("a.bin", BinaryContent(COMPRESSIBLE))], skipped={})
        assert codec.calls == 2

    def test_gives_up_after_max_attempts(self, caplog):
        zip_file = decode(build([RawEntry("a.bin", COMPRESSIBLE)]))
        codec = FlakyCodec(failures=10)

        with caplog.at_level(logging.WARNING, logger="memzip.extract"):
            done, history = run_to_done(ExtractionConfig(max_attempts=4), zip_file, codec)

        assert codec.calls == 4
        assert len(history) == 3
        assert done.entries == []
        assert "Giving up" in caplog.text

    def test_unsupported_method_is_skipped(self, sample_archive):
        zip_file = decode(sample_archive)
        replace_header(zip_file, "data/repeat.bin", compression_method=12)

        done = extract_all(zip_file, ExtractionConfig(max_entries_per_step=10))

        assert "data/repeat.bin" not in done.as_dict()
        assert isinstance(done.skipped["data/repeat.bin"], ZipUnsupportedFeature)
        assert len(done.entries) == 3

    def test_encrypted_entry_is_skipped(self, sample_archive):
        zip_file = decode(sample_archive)
        replace_header(zip_file, "readme.txt", flags=FLAG_ENCRYPTED)

        done = extract_all(zip_file)
        assert isinstance(done.skipped["readme.txt"], ZipUnsupportedFeature)

    def test_crc_mismatch(self, sample_archive):
        zip_file = decode(sample_archive)
        header = zip_file.possibly_compressed["readme.txt"].header
        replace_header(zip_file, "readme.txt", crc32=header.crc32 ^ 0xFFFFFFFF)

        done = extract_all(zip_file)
        assert isinstance(done.skipped["readme.txt"], ZipCrcError)

    def test_crc_check_can_be_disabled(self, sample_archive):
        zip_file = decode(sample_archive)
        replace_header(zip_file, "readme.txt", crc32=0)

        done = extract_all(zip_file, ExtractionConfig(verify_crc=False))
        assert done.skipped == {}
        assert done.as_dict()["readme.txt"] == TextContent("hello world " * 200)


class TestDecompressEntry:
    def test_stored_and_deflate(self, sample_archive):
        zip_file = decode(sample_archive)
        assert decompress_entry("data/repeat.bin", zip_file.possibly_compressed["data/repeat.bin"]) == COMPRESSIBLE
        assert decompress_entry("empty.txt", zip_file.possibly_compressed["empty.txt"]) == b""

    def test_corrupt_stream(self):
        data = build([RawEntry("a.bin", COMPRESSIBLE)])
        zip_file = decode(corrupt_payload(data, "a.bin"))
        with pytest.raises(ZipCompressionError):
            decompress_entry("a.bin", zip_file.possibly_compressed["a.bin"])


class TestProgressAndOverview:
    def test_progress_counts(self, deflate_archive):
        zip_file = decode(deflate_archive)
        assert tuple(progress(zip_file)) == (0, 10, 10)

        extract(ExtractionConfig(max_entries_per_step=4), zip_file)
        current = progress(zip_file)
        assert current.uncompressed_count == 4
        assert current.possibly_compressed_count == 6
        assert current.total == 10

    def test_overview_is_repeatable(self, sample_archive):
        zip_file = decode(sample_archive)
        first = overview(zip_file)
        assert overview(zip_file) == first
        assert [entry.name for entry in first] == zip_file.names()
        assert {entry.state for entry in first} == {"pending"}

    def test_overview_tracks_state(self):
        data = build([RawEntry("bad.bin", COMPRESSIBLE), RawEntry("good.bin", COMPRESSIBLE + b"x")])
        zip_file = decode(corrupt_payload(data, "bad.bin"))

        extract_all(zip_file, ExtractionConfig(max_entries_per_step=2, max_attempts=1))

        states = {entry.name: entry.state for entry in overview(zip_file)}
        assert states == {"bad.bin": "skipped", "good.bin": "extracted"}

    def test_overview_reports_central_metadata(self, sample_archive, fixed_time):
        entries = {entry.name: entry for entry in overview(decode(sample_archive))}
        readme = entries["readme.txt"]
        assert readme.uncompressed_size == len("hello world " * 200)
        assert readme.compressed_size < readme.uncompressed_size
        assert readme.date_time == fixed_time
        assert not readme.is_dir

    def test_extract_all_reports_progress(self, deflate_archive):
        seen = []
        extract_all(decode(deflate_archive), ExtractionConfig(max_entries_per_step=3), on_progress=seen.append)
        assert [p.uncompressed_count for p in seen] == [3, 6, 9]
