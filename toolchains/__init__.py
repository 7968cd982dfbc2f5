# toolchains/__init__.py
"""
toolchains package public surface.

Wrappers around the external SDK tools appshell drives (Android SDK `android`
and `ant`, Windows Desktop App Converter). Every process is started through
toolchains.runner so resolution and result shapes stay consistent.
"""

from __future__ import annotations

from .runner import run_command, run_streaming, resolve_binary, UnresolvedCommandError

__all__ = [
    "run_command",
    "run_streaming",
    "resolve_binary",
    "UnresolvedCommandError",
]
