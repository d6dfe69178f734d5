"""
Pytest configuration for the dubqueue test suite.

Shared fakes: a probe table standing in for ffprobe, a fake encoder
process standing in for ffmpeg, and a manual clock.
"""

import sys
from pathlib import Path

import pytest

# Add backend to Python path for test imports
backend_path = Path(__file__).parent.parent
sys.path.insert(0, str(backend_path))

from dubqueue.metadata import MediaProbe, MetadataExtractionError  # noqa: E402
from dubqueue.presets import Preset, PresetStore  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "e2e: marks tests as end-to-end (requires FFmpeg)"
    )


class FakeProbe:
    """Callable probe backed by a path -> MediaProbe table."""

    def __init__(self, table=None):
        self.table = dict(table or {})
        self.calls = []

    def add(self, path, duration=10.0, has_audio=True, width=1920, height=1080):
        self.table[str(path)] = MediaProbe(
            path=str(path),
            duration_seconds=duration,
            has_audio=has_audio,
            has_video=True,
            width=width,
            height=height,
        )

    def __call__(self, path):
        self.calls.append(path)
        if path not in self.table:
            raise MetadataExtractionError(path, "File does not exist")
        return self.table[path]


class FakeProcess:
    """Popen stand-in that replays progress lines and exits with ``returncode``."""

    _next_pid = 4000

    def __init__(self, stdout_lines=(), stderr_lines=(), returncode=0, on_wait=None):
        FakeProcess._next_pid += 1
        self.pid = FakeProcess._next_pid
        self.stdout = iter(stdout_lines)
        self.stderr = iter(stderr_lines)
        self.returncode = None
        self._exit_code = returncode
        self.terminated = False
        self.killed = False
        self._on_wait = on_wait

    def poll(self):
        return self.returncode

    def wait(self, timeout=None):
        if self.returncode is None:
            self.returncode = -15 if self.terminated else self._exit_code
            if self._on_wait is not None:
                self._on_wait()
        return self.returncode

    def terminate(self):
        self.terminated = True
        self.returncode = -15

    def kill(self):
        self.killed = True
        self.returncode = -9


class FakePopen:
    """Records spawned commands and hands out prepared FakeProcess objects."""

    def __init__(self, *processes):
        self.processes = list(processes)
        self.commands = []
        self.options = []

    def __call__(self, cmd, **kwargs):
        self.commands.append(cmd)
        self.options.append(kwargs)
        if self.processes:
            return self.processes.pop(0)
        return FakeProcess(["progress=end\n"])


class ManualClock:
    def __init__(self, start=100.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def fake_probe():
    return FakeProbe()


@pytest.fixture
def preset_store(tmp_path):
    store = PresetStore(tmp_path / "presets")
    store.save(Preset(name="Default"))
    return store


def make_media(directory, name, content="fake media"):
    """Create a placeholder file and return its path as a string."""
    path = Path(directory) / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return str(path)
