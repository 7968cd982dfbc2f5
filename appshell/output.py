# appshell/output.py
"""
User-facing output channel.

Toolchain wrappers report progress through an ``Output`` instead of printing:
info/warning/error messages go to the ``appshell`` logger (and from there to
whatever handlers configure_logging installed), ``write`` prints raw text such
as help and version banners straight to stdout.
"""

from __future__ import annotations

import logging
import sys
from typing import List, Optional, TextIO


class Output:
    def __init__(self, logger: Optional[logging.Logger] = None, stream: Optional[TextIO] = None):
        self._log = logger or logging.getLogger("appshell")
        self._stream = stream

    def info(self, msg: str, **extra) -> None:
        self._log.info(msg, extra=extra or None)

    def warning(self, msg: str, **extra) -> None:
        self._log.warning(msg, extra=extra or None)

    def error(self, msg: str, **extra) -> None:
        self._log.error(msg, extra=extra or None)

    def write(self, text: str) -> None:
        stream = self._stream or sys.stdout
        stream.write(text if text.endswith("\n") else text + "\n")
        stream.flush()


class RecordingOutput(Output):
    """Keeps every message in memory; used by tests and embedding callers."""

    def __init__(self):
        super().__init__()
        self.infos: List[str] = []
        self.warnings: List[str] = []
        self.errors: List[str] = []
        self.written: List[str] = []

    def info(self, msg: str, **extra) -> None:
        self.infos.append(msg)

    def warning(self, msg: str, **extra) -> None:
        self.warnings.append(msg)

    def error(self, msg: str, **extra) -> None:
        self.errors.append(msg)

    def write(self, text: str) -> None:
        self.written.append(text)
