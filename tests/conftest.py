"""Pytest configuration: project root on sys.path, fake process factories, logging isolation."""
import asyncio
import logging
import os
import subprocess
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class _FakePopen:
    def __init__(self, owner, argv, kwargs):
        self._owner = owner
        self.argv = argv
        self.kwargs = kwargs
        self.returncode = None
        self.killed = False

    def communicate(self, timeout=None):
        if self._owner.hang and not self.killed:
            raise subprocess.TimeoutExpired(self.argv, timeout)
        self.returncode = self._owner.returncode
        return self._owner.stdout, self._owner.stderr

    def kill(self):
        self.killed = True


class FakeSubprocess:
    """Stand-in for the `subprocess` module accepted by toolchains.runner.run_command."""

    PIPE = subprocess.PIPE
    TimeoutExpired = subprocess.TimeoutExpired

    def __init__(self, returncode=0, stdout="", stderr="", hang=False, on_run=None):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.hang = hang
        self.on_run = on_run
        self.calls = []

    def Popen(self, argv, **kwargs):
        self.calls.append((list(argv), kwargs))
        if self.on_run is not None:
            self.on_run(list(argv), kwargs)
        return _FakePopen(self, argv, kwargs)


class _FakeAsyncProcess:
    def __init__(self, returncode, stdout, stderr, hang):
        self._rc = returncode
        self.returncode = None
        self.stdout = asyncio.StreamReader()
        self.stdout.feed_data(stdout)
        self.stdout.feed_eof()
        self.stderr = asyncio.StreamReader()
        self.stderr.feed_data(stderr)
        self.stderr.feed_eof()
        self._hang = hang
        self._killed = asyncio.Event()

    async def wait(self):
        if self._hang:
            await self._killed.wait()
            self.returncode = -9
            return -9
        self.returncode = self._rc
        return self._rc

    def kill(self):
        self._killed.set()


class FakeSpawn:
    """Stand-in for asyncio.create_subprocess_exec accepted by toolchains.runner.run_streaming."""

    def __init__(self, returncode=0, stdout=b"", stderr=b"", hang=False):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.hang = hang
        self.calls = []

    async def __call__(self, *argv, **kwargs):
        self.calls.append((list(argv), kwargs))
        return _FakeAsyncProcess(self.returncode, self.stdout, self.stderr, self.hang)


@pytest.fixture
def fake_subprocess():
    return FakeSubprocess


@pytest.fixture
def fake_spawn():
    return FakeSpawn


@pytest.fixture
def fake_tool(tmp_path):
    """Create an executable placeholder file and return its absolute path."""

    def _make(name: str, directory: Path = None) -> str:
        d = directory or (tmp_path / "bin")
        d.mkdir(parents=True, exist_ok=True)
        p = d / name
        p.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
        os.chmod(p, 0o755)
        return str(p)

    return _make


@pytest.fixture(autouse=True)
def _isolate_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    root.setLevel(level)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "ANDROID_HOME",
        "ANDROID_SDK_ROOT",
        "APPSHELL_ANDROID_TARGET",
        "APPSHELL_ANDROID_EXECUTABLE",
        "APPSHELL_CONVERTER",
        "APPSHELL_LOG_LEVEL",
        "APPSHELL_LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
