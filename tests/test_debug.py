"""Tests for debugging utilities."""

from zip_helpers import COMPRESSIBLE, corrupt_payload

from memzip import RawEntry, SequentialDecoder, TextEntry, build
from memzip.constants import (
    CENTRAL_DIR_HEADER,
    DATA_DESCRIPTOR,
    DATA_DESCRIPTOR_SIZE,
    END_OF_CENTRAL_DIR,
    LOCAL_FILE_HEADER,
)
from memzip.debug import dump_zip_structure, hex_dump, scan_records, verify_zip_structure


class TestHexDump:
    def test_format(self):
        dump = hex_dump(b"PK\x03\x04" + b"A" * 14, offset=0x10)
        lines = dump.splitlines()

        assert len(lines) == 2
        assert lines[0].startswith("00000010  50 4B 03 04 41")
        assert lines[0].endswith("PK..AAAAAAAAAAAA")
        assert lines[1].startswith("00000020  41 41")

    def test_length_limit(self):
        dump = hex_dump(b"abcdef", length=2)
        assert "61 62" in dump
        assert "63" not in dump
        assert dump.endswith("ab")


class TestScanRecords:
    def test_record_order(self):
        data = build([TextEntry("a.txt", "alpha"), TextEntry("b.txt", "beta")], compression="stored")
        signatures = [sig for _, sig in scan_records(data)]
        assert signatures == [
            LOCAL_FILE_HEADER,
            LOCAL_FILE_HEADER,
            CENTRAL_DIR_HEADER,
            CENTRAL_DIR_HEADER,
            END_OF_CENTRAL_DIR,
        ]

    def test_data_descriptors(self):
        data = build([RawEntry("a.bin", COMPRESSIBLE)], compression="stored", use_data_descriptor=True)
        records = scan_records(data)
        assert [sig for _, sig in records][:3] == [LOCAL_FILE_HEADER, DATA_DESCRIPTOR, CENTRAL_DIR_HEADER]
        # the scan resumes right after the fixed-size descriptor
        assert records[2][0] == records[1][0] + DATA_DESCRIPTOR_SIZE

    def test_skips_leading_garbage(self):
        data = build([TextEntry("a.txt", "alpha")])
        records = scan_records(b"xyz" + data)
        assert records[0] == (3, LOCAL_FILE_HEADER)


class TestDumpAndVerify:
    def test_dump_counts_records(self, sample_archive):
        report = dump_zip_structure(sample_archive, label="sample.zip")
        assert "ZIP Structure: sample.zip" in report
        assert "Local File Header records: 4" in report
        assert "Central Directory Header records: 4" in report
        assert "End Of Central Directory records: 1" in report

    def test_verify_valid(self, sample_archive):
        assert verify_zip_structure(sample_archive) == (True, [])

    def test_verify_corrupt_entry(self):
        data = build([RawEntry("a.bin", COMPRESSIBLE), TextEntry("b.txt", "ok")])
        ok, errors = verify_zip_structure(corrupt_payload(data, "a.bin"))
        assert not ok
        assert len(errors) == 1
        assert "a.bin" in errors[0]

    def test_verify_undecodable(self):
        ok, errors = verify_zip_structure(b"garbage" * 10)
        assert not ok
        assert errors[0].startswith("Error decoding archive")

    def test_verify_with_sequential_decoder(self, sample_archive):
        assert verify_zip_structure(b"xx" + sample_archive, SequentialDecoder())[0] is False
