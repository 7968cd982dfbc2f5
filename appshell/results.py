# appshell/results.py
"""
Tagged results returned by every appshell operation.

Each operation resolves to exactly one result object whose ``ok`` flag is the
success/failure discriminant. Failed results also carry an ``error_kind`` and
a human-readable ``diagnostic``; nothing is signalled through exceptions past
the command seam in appshell.core.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from appshell.metadata import PackageMetadata


class ErrorKind(str, enum.Enum):
    ENVIRONMENT = "environment"
    SUBPROCESS = "subprocess"
    TIMEOUT = "timeout"
    INVALID_INPUT = "invalid_input"
    USAGE = "usage"


class InvalidInputError(ValueError):
    """Raised for user-supplied values that fail validation (package id, version...)."""


def error_kind_for(res: Dict[str, Any]) -> Optional[ErrorKind]:
    """Map a toolchains.runner result dict onto an ErrorKind (None when ok)."""
    if res.get("ok"):
        return None
    if res.get("missing_executable"):
        return ErrorKind.ENVIRONMENT
    if res.get("timed_out"):
        return ErrorKind.TIMEOUT
    return ErrorKind.SUBPROCESS


@dataclass(frozen=True)
class ToolchainStatus:
    """Outcome of looking up an external SDK tool before using it."""

    available: bool
    tool: str
    path: Optional[str] = None
    diagnostic: str = ""


@dataclass(frozen=True)
class PackagingResult:
    ok: bool
    metadata: PackageMetadata
    artifact: Optional[Path] = None
    error_kind: Optional[ErrorKind] = None
    diagnostic: str = ""
    returncode: Optional[int] = None


@dataclass(frozen=True)
class CreateResult:
    ok: bool
    package_id: str
    project_dir: Optional[Path] = None
    error_kind: Optional[ErrorKind] = None
    diagnostic: str = ""
    returncode: Optional[int] = None


@dataclass(frozen=True)
class BuildResult:
    ok: bool
    build_type: str
    artifacts: list = field(default_factory=list)
    error_kind: Optional[ErrorKind] = None
    diagnostic: str = ""
    returncode: Optional[int] = None


__all__ = [
    "ErrorKind",
    "InvalidInputError",
    "error_kind_for",
    "ToolchainStatus",
    "PackagingResult",
    "CreateResult",
    "BuildResult",
]
