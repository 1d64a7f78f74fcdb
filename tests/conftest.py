import logging
import sys
from pathlib import Path

import pytest

# Flat layout: make the top-level modules importable without installing
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture(autouse=True)
def restore_root_logging():
    """The CLI reconfigures the root logger; put it back after each test."""
    root = logging.getLogger()
    level = root.level
    yield
    for h in root.handlers[:]:
        if type(h) in (logging.StreamHandler, logging.FileHandler):
            root.removeHandler(h)
            h.close()
    root.setLevel(level)


@pytest.fixture
def twin_file(tmp_path):
    path = tmp_path / "twin.txt"
    path.write_text("(3, 5)\n(5, 7)\n(11, 13)\n(17, 19)\n")
    return path


@pytest.fixture
def pi_file(tmp_path):
    path = tmp_path / "pi.txt"
    path.write_text("3.14159265358979323846264338327950288419716939937510")
    return path
