
import sys
import os
from tempfile import TemporaryDirectory
import pytest
# Ensure the project root is on sys.path for all tests
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from test_utils import SAMPLE_DAT


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with TemporaryDirectory() as dir_path:
        yield dir_path


@pytest.fixture
def sample_dat():
    """A small, fully valid level."""
    return SAMPLE_DAT


@pytest.fixture
def sample_file(temp_dir, sample_dat):
    """The sample level written to disk."""
    path = os.path.join(temp_dir, "sample.dat")
    with open(path, 'w') as f:
        f.write(sample_dat)
    return path
