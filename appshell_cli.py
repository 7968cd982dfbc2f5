# appshell_cli.py
from __future__ import annotations

"""
Thin CLI shim for appshell.

Routes all behavior through `appshell.core.main()`; the only thing handled
here is `--sdk-root DIR`, which is stripped from argv and exported as
ANDROID_HOME so the Android tool lookup sees it.

Examples:
  $ appshell create com.example.Foo
  $ appshell --project-root com.example.Foo build debug
  $ appshell --sdk-root ~/android-sdk create com.example.Foo
"""

import os
import sys


def _extract_sdk_root(argv: list[str]) -> None:
    """Convert --sdk-root[=DIR] / --sdk-root DIR into ANDROID_HOME and strip it."""
    i = 1  # start scanning after program name
    while i < len(argv):
        arg = argv[i]
        if arg.startswith("--sdk-root="):
            _, val = arg.split("=", 1)
            del argv[i]
        elif arg == "--sdk-root":
            del argv[i]
            val = ""
            if i < len(argv) and not argv[i].startswith("-"):
                val = argv[i]
                del argv[i]
        else:
            i += 1
            continue
        if val.strip():
            os.environ["ANDROID_HOME"] = os.path.expanduser(val.strip())


def main() -> int:
    _extract_sdk_root(sys.argv)
    from appshell.core import main as core_main  # local import to keep CLI lightweight
    return core_main(sys.argv[1:])


if __name__ == "__main__":
    raise SystemExit(main())
