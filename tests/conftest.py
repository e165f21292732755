"""Shared test fixtures."""

from pathlib import Path

import pytest

from gigrecon.reader import read_records
from gigrecon.store import load_reference


DATA_DIR = Path(__file__).resolve().parent.parent / 'data'


@pytest.fixture(scope='session')
def data_dir() -> Path:
    """Path to the data directory."""
    return DATA_DIR


@pytest.fixture
def reference_store():
    """Canonical store loaded from reference.json."""
    return load_reference(DATA_DIR / 'reference.json')


@pytest.fixture
def sample_records():
    """All records from sample_import.csv."""
    return read_records(DATA_DIR / 'sample_import.csv')
