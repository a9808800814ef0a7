"""conftest.py — puts the project root and tests dir on sys.path for pytest."""
import sys
from pathlib import Path

_TESTS = Path(__file__).resolve().parent
_ROOT = _TESTS.parent

for _p in [str(_ROOT), str(_TESTS)]:
    if _p not in sys.path:
        sys.path.insert(0, _p)
