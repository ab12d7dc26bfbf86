# tests/conftest.py
import os
import struct
import sys

import pytest

# Add project root to sys.path so `lc3vm` is importable without installing
ROOT = os.path.dirname(os.path.dirname(__file__))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from lc3vm.console import BufferConsole
from lc3vm.lc3 import LC3, PC_START


@pytest.fixture
def console():
    return BufferConsole()


@pytest.fixture
def lc3(console):
    return LC3(console)


@pytest.fixture
def program(lc3):
    """Place instruction words in memory and point the PC at them."""
    def load(*words, origin=PC_START):
        for offset, word in enumerate(words):
            lc3.set_memory(origin + offset, word)
        lc3.set_pc(origin)
        return lc3
    return load


@pytest.fixture
def make_image(tmp_path):
    """Write a big-endian object file: origin word, then the program words."""
    def make(origin, words, name="image.obj"):
        path = tmp_path / name
        path.write_bytes(struct.pack(">%dH" % (len(words) + 1), origin, *words))
        return str(path)
    return make
