"""Shared fixtures for memzip tests."""

import random
from datetime import datetime

import pytest
from zip_helpers import COMPRESSIBLE

from memzip import RawEntry, TextEntry, build

FIXED_TIME = datetime(2024, 5, 17, 13, 45, 30)


@pytest.fixture
def fixed_time():
    return FIXED_TIME


@pytest.fixture
def random_bytes():
    """Bytes deflate cannot shrink."""
    return random.Random(1234).randbytes(1024)


@pytest.fixture
def sample_entries(random_bytes):
    """A mix of compressible text, incompressible binary and an empty file."""
    return [
        TextEntry("readme.txt", "hello world " * 200, date_time=FIXED_TIME),
        RawEntry("data/noise.bin", random_bytes, date_time=FIXED_TIME),
        RawEntry("data/repeat.bin", COMPRESSIBLE, date_time=FIXED_TIME),
        TextEntry("empty.txt", "", date_time=FIXED_TIME),
    ]


@pytest.fixture
def sample_archive(sample_entries):
    return build(sample_entries)


@pytest.fixture
def deflate_archive():
    """Ten deflate entries, named in order."""
    entries = [
        RawEntry(f"file{i:02d}.bin", COMPRESSIBLE + bytes([i]), date_time=FIXED_TIME) for i in range(10)
    ]
    return build(entries)
