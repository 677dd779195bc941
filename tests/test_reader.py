"""Tests for ZipReader."""

import io

import pytest
from zip_helpers import COMPRESSIBLE, corrupt_payload

from memzip import ExtractionConfig, RawEntry, SequentialDecoder, TextEntry, ZipReader, build, extract_all
from memzip.errors import ZipCompressionError, ZipFormatError, ZipSignatureError


class TestZipReader:
    def test_list_and_read(self, sample_entries, sample_archive):
        with ZipReader(sample_archive) as reader:
            assert reader.list() == [entry.name for entry in sample_entries]
            for entry in sample_entries:
                assert reader.read(entry.name) == entry.to_bytes()

    def test_open_returns_stream(self, sample_archive):
        reader = ZipReader(sample_archive)
        assert reader.open("data/repeat.bin").read() == COMPRESSIBLE

    def test_from_path_and_file_object(self, tmp_path, sample_archive):
        path = tmp_path / "archive.zip"
        path.write_bytes(sample_archive)

        assert ZipReader(path).list() == ZipReader(str(path)).list()
        assert ZipReader(io.BytesIO(sample_archive)).list() == ZipReader(path).list()

    def test_get_info(self, sample_archive):
        reader = ZipReader(sample_archive)
        info = reader.get_info("data\\repeat.bin")
        assert info is not None
        assert info.uncompressed_size == len(COMPRESSIBLE)
        assert reader.get_info("missing.txt") is None

    def test_missing_entry(self, sample_archive):
        with pytest.raises(KeyError):
            ZipReader(sample_archive).read("missing.txt")

    def test_directory_entry_reads_empty(self):
        reader = ZipReader(build([RawEntry("folder/", b""), TextEntry("folder/a.txt", "a")]))
        assert reader.get_info("folder/").is_dir
        assert reader.read("folder/") == b""

    def test_closed_reader(self, sample_archive):
        reader = ZipReader(sample_archive)
        reader.close()
        with pytest.raises(ZipFormatError):
            reader.read("readme.txt")

    def test_invalid_archive(self):
        with pytest.raises(ZipSignatureError):
            ZipReader(b"\x00" * 64)

    def test_not_a_file_object(self):
        with pytest.raises(ZipFormatError):
            ZipReader(42)

    def test_sequential_decoder(self, sample_archive):
        assert ZipReader(sample_archive, decoder=SequentialDecoder()).list() == ZipReader(sample_archive).list()

    def test_reads_after_extraction(self):
        data = build([RawEntry("bad.bin", COMPRESSIBLE), RawEntry("good.bin", COMPRESSIBLE + b"x")])
        reader = ZipReader(corrupt_payload(data, "bad.bin"))

        extract_all(reader.zip_file, ExtractionConfig(max_entries_per_step=2, max_attempts=1))

        assert reader.read("good.bin") == COMPRESSIBLE + b"x"
        with pytest.raises(ZipCompressionError):
            reader.read("bad.bin")
