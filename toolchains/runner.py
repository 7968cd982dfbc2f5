# toolchains/runner.py
"""
Canonical subprocess runner for the toolchains package.

Every SDK tool (android, ant, DesktopAppConverter) is launched from here so
executable resolution and result shapes stay identical across callers.

- Commands are always explicit argument lists; nothing goes through a shell.
- Executables are resolved against PATH (or taken as-is when they look like a path).
- Missing executables return a structured result instead of raising.
- Text is decoded as utf-8 with errors="replace" (cp1252 consoles on Windows).

Return shape (always a dict):
  {
    "returncode": int | None,
    "stdout": str,
    "stderr": str,
    "timed_out": bool,
    "missing_executable": bool,
    "resolved_path": str | None,
    "elapsed_sec": float,
    "ok": bool,
    "error": str | None,
  }

Two entry points:
  run_command(argv, ...)          blocking, captures output
  await run_streaming(argv, ...)  async, feeds each stdout/stderr line to hooks
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import subprocess
import sys
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

LineHook = Callable[[str], None]


class UnresolvedCommandError(FileNotFoundError):
    """Raised when the requested command binary cannot be resolved."""

    def __init__(self, command: Sequence[str]):
        super().__init__(f"command not found: {' '.join(map(str, command))}")


def _is_windows() -> bool:
    return sys.platform.startswith("win")


def resolve_binary(exe: str, extra_dirs: Sequence[str] = ()) -> Tuple[Optional[str], Optional[str]]:
    """
    Resolve an executable name to an absolute path.

    Path-like names are checked directly. Bare names are looked up on PATH and
    then in ``extra_dirs`` (e.g. "$ANDROID_HOME/tools").

    Returns (resolved_path, error_msg). If resolved_path is None, error_msg is set.
    """
    if not exe:
        return None, "empty command provided"

    looks_like_path = (os.path.sep in exe) or ("/" in exe) or (_is_windows() and ":" in exe)
    resolved: Optional[str] = None

    if looks_like_path:
        abs_path = os.path.abspath(exe)
        if os.path.isfile(abs_path):
            resolved = abs_path
        else:
            resolved = shutil.which(exe)
    else:
        resolved = shutil.which(exe)
        if not resolved:
            for d in extra_dirs:
                if d:
                    resolved = shutil.which(exe, path=str(d))
                    if resolved:
                        break

    if not resolved:
        return None, f"executable not found: {exe}"
    return os.path.abspath(resolved), None


def _normalize_output(val: Any) -> str:
    if val is None:
        return ""
    if isinstance(val, str):
        return val
    if isinstance(val, (bytes, bytearray)):
        return val.decode("utf-8", errors="replace")
    return str(val)


def _empty_result() -> Dict[str, Any]:
    return {
        "returncode": None,
        "stdout": "",
        "stderr": "",
        "timed_out": False,
        "missing_executable": False,
        "resolved_path": None,
        "elapsed_sec": 0.0,
        "ok": False,
        "error": None,
    }


def _prepare(cmd: Sequence[str], result: Dict[str, Any], raise_on_missing: bool) -> Optional[List[str]]:
    argv = [str(x) for x in cmd]
    if not argv:
        result["error"] = "empty command provided"
        return None
    resolved, err = resolve_binary(argv[0])
    if not resolved:
        if raise_on_missing:
            raise UnresolvedCommandError(argv)
        result["missing_executable"] = True
        result["error"] = err
        return None
    result["resolved_path"] = resolved
    argv[0] = resolved
    return argv


def _finish(result: Dict[str, Any], t0: float) -> Dict[str, Any]:
    result["elapsed_sec"] = round(time.time() - t0, 6)
    result["ok"] = (
        result["returncode"] == 0
        and not bool(result["timed_out"])
        and not bool(result["missing_executable"])
    )
    logger.debug(
        "command finished",
        extra={"returncode": result["returncode"], "elapsed_sec": result["elapsed_sec"]},
    )
    return result


def run_command(
    cmd: Sequence[str],
    *,
    cwd: Optional[str] = None,
    timeout: Optional[float] = None,
    env: Optional[Dict[str, str]] = None,
    raise_on_missing: bool = False,
    subprocess_module=None,
) -> Dict[str, Any]:
    """
    Run a command to completion and return a structured result. By default this
    function does NOT raise for missing executables; set raise_on_missing=True
    to raise UnresolvedCommandError.

    `subprocess_module` is injectable for tests (defaults to stdlib subprocess).
    """
    if subprocess_module is None:
        subprocess_module = subprocess

    t0 = time.time()
    result = _empty_result()

    proc_env = os.environ.copy()
    if env:
        proc_env.update(env)

    argv = _prepare(cmd, result, raise_on_missing)
    if argv is None:
        return _finish(result, t0)

    logger.debug("running %s", subprocess.list2cmdline(argv), extra={"tool": os.path.basename(argv[0])})

    try:
        proc = subprocess_module.Popen(
            argv,
            cwd=cwd,
            env=proc_env,
            stdout=subprocess_module.PIPE,
            stderr=subprocess_module.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except FileNotFoundError as e:
        # Executable vanished between resolution and exec.
        result["missing_executable"] = True
        result["error"] = str(e)
        return _finish(result, t0)
    except OSError as e:
        result["error"] = str(e)
        return _finish(result, t0)

    try:
        out, err = proc.communicate(timeout=timeout)
        result["returncode"] = proc.returncode
        result["stdout"] = _normalize_output(out)
        result["stderr"] = _normalize_output(err)
    except subprocess_module.TimeoutExpired:
        result["timed_out"] = True
        result["error"] = "timeout"
        proc.kill()
        out, err = proc.communicate()
        result["stdout"] = _normalize_output(out)
        result["stderr"] = _normalize_output(err)
    return _finish(result, t0)


# Read size for streamed output; lines are split here so no line length limit applies.
_CHUNK = 64 * 1024


def _emit(raw: bytes, hook: Optional[LineHook], sink: List[str]) -> None:
    line = _normalize_output(raw)
    sink.append(line)
    if hook is not None:
        hook(line.rstrip("\r\n"))


async def _pump(stream: Optional[asyncio.StreamReader], hook: Optional[LineHook], sink: List[str]) -> None:
    if stream is None:
        return
    pending = b""
    while True:
        chunk = await stream.read(_CHUNK)
        if not chunk:
            break
        pending += chunk
        *lines, pending = pending.split(b"\n")
        for raw in lines:
            _emit(raw + b"\n", hook, sink)
    if pending:
        _emit(pending, hook, sink)


async def _kill(proc) -> None:
    try:
        proc.kill()
    except ProcessLookupError:
        pass
    await proc.wait()


async def run_streaming(
    cmd: Sequence[str],
    *,
    cwd: Optional[str] = None,
    timeout: Optional[float] = None,
    env: Optional[Dict[str, str]] = None,
    on_stdout: Optional[LineHook] = None,
    on_stderr: Optional[LineHook] = None,
    create_subprocess_exec=None,
) -> Dict[str, Any]:
    """
    Run a command asynchronously, feeding each output line to the given hooks
    as it arrives. The full output is also collected into the result dict.

    With ``timeout=None`` the coroutine waits for the child indefinitely.
    Any failure while reading output (including a raising hook) kills the
    child and comes back as ``error`` in the result dict; it is never raised.

    `create_subprocess_exec` is injectable for tests (defaults to
    asyncio.create_subprocess_exec).
    """
    if create_subprocess_exec is None:
        create_subprocess_exec = asyncio.create_subprocess_exec

    t0 = time.time()
    result = _empty_result()

    proc_env = os.environ.copy()
    if env:
        proc_env.update(env)

    argv = _prepare(cmd, result, raise_on_missing=False)
    if argv is None:
        return _finish(result, t0)

    try:
        proc = await create_subprocess_exec(
            *argv,
            cwd=cwd,
            env=proc_env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        result["missing_executable"] = True
        result["error"] = str(e)
        return _finish(result, t0)
    except OSError as e:
        result["error"] = str(e)
        return _finish(result, t0)

    out_lines: List[str] = []
    err_lines: List[str] = []
    pumps = [
        asyncio.ensure_future(_pump(proc.stdout, on_stdout, out_lines)),
        asyncio.ensure_future(_pump(proc.stderr, on_stderr, err_lines)),
    ]

    async def _drain() -> int:
        await asyncio.gather(*pumps)
        return await proc.wait()

    try:
        result["returncode"] = await asyncio.wait_for(_drain(), timeout=timeout)
    except asyncio.TimeoutError:
        result["timed_out"] = True
        result["error"] = "timeout"
        await _kill(proc)
    except Exception as e:
        logger.warning("reading output of %s failed: %s", argv[0], e, extra={"tool": os.path.basename(argv[0])})
        result["error"] = f"output stream failed: {e}"
        await _kill(proc)
    finally:
        for task in pumps:
            task.cancel()
        await asyncio.gather(*pumps, return_exceptions=True)
        result["stdout"] = "".join(out_lines)
        result["stderr"] = "".join(err_lines)
    return _finish(result, t0)


__all__ = ["run_command", "run_streaming", "resolve_binary", "UnresolvedCommandError"]
