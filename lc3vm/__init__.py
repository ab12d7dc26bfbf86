from ._version import __version__
from .lc3 import LC3
