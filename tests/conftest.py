import sys
from pathlib import Path
import importlib
import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture()
def m():
    """Lazily import the main module for tests to avoid module-level import."""
    return importlib.import_module("main")


@pytest.fixture()
def no_progress(monkeypatch, m):
    """Suppress progress rendering in main module during tests."""
    calls = []

    def _stub(line: str):
        calls.append(line)

    monkeypatch.setattr(m, "_print_progress", _stub)
    return calls


@pytest.fixture()
def progress_recorder():
    """Provide a reusable progress callback and its call log."""
    calls = []

    def cb(done, total):
        calls.append((done, total))

    return cb, calls


@pytest.fixture()
def sample_files(tmp_path: Path):
    """Create an input file and the paths for encode/decode outputs.

    Returns a tuple ``(input, compressed, freq, decoded)`` of paths.
    """
    src = tmp_path / "input.txt"
    src.write_bytes(b"she sells sea shells by the sea shore\n" * 20)
    return (
        src,
        tmp_path / "input.huf",
        tmp_path / "input.freq",
        tmp_path / "decoded.txt",
    )
