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
def recording_viewer():
    """Viewer that keeps every message it receives."""
    from viewer import Viewer

    class RecordingViewer(Viewer):
        def __init__(self):
            self.messages = []
            self.errors = []

        def show_message(self, text):
            self.messages.append(text)

        def show_error(self, text):
            self.errors.append(text)

    return RecordingViewer()


@pytest.fixture()
def sample_text():
    return (b"The quick brown fox jumps over the lazy dog. " * 20
            + b"abracadabra abracadabra\n")


@pytest.fixture()
def sample_file(tmp_path: Path, sample_text):
    """Write ``sample_text`` to a file and return its path."""
    path = tmp_path / "input.txt"
    path.write_bytes(sample_text)
    return path
