# toolchains/desktop_converter.py
"""
Windows packaging through the Desktop App Converter.

DesktopAppConverter turns a classic installer into an .appx package:

    DesktopAppConverter.cmd -Installer app.msi -InstallerArguments /S
        -Destination Foo-1.0-appx -Version 1.0 -Publisher CN=Acme
        -PackageName "My App" -AppDisplayName "My App"
        -PackagePublisherDisplayName Acme -MakeAppx

The argument list is built explicitly and handed to the runner without a
shell. A .cmd/.bat converter is still started through cmd.exe by Windows,
which re-parses the command line and does not honor backslash-escaped
quotes, so values holding cmd.exe metacharacters are refused for such
converters before anything is launched.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from appshell.metadata import PackageMetadata
from appshell.output import Output
from appshell.results import ErrorKind, PackagingResult, ToolchainStatus, error_kind_for
from toolchains.runner import resolve_binary, run_streaming

logger = logging.getLogger(__name__)

DEFAULT_CONVERTER = "DesktopAppConverter.cmd"
SILENT_INSTALL = "/S"

CompletionHook = Callable[[PackagingResult], None]

_BATCH_SUFFIXES = (".cmd", ".bat")
_CMD_METACHARS = frozenset('"&|<>^%')


def unsafe_batch_values(argv: List[str]) -> List[str]:
    """Arguments cmd.exe would interpret if argv[0] is a batch script."""
    if not argv or not argv[0].lower().endswith(_BATCH_SUFFIXES):
        return []
    return [a for a in argv[1:] if _CMD_METACHARS.intersection(a)]


def converter_argv(
    metadata: PackageMetadata,
    converter: str = DEFAULT_CONVERTER,
    installer_arguments: str = SILENT_INSTALL,
) -> List[str]:
    basename = metadata.basename
    return [
        converter,
        "-Installer", metadata.installer,
        "-InstallerArguments", installer_arguments,
        "-Destination", f"{basename}-appx",
        "-Version", metadata.version,
        "-Publisher", f"CN={metadata.manufacturer}",
        "-PackageName", metadata.app_name,
        "-AppDisplayName", metadata.app_name,
        "-PackagePublisherDisplayName", metadata.manufacturer,
        "-MakeAppx",
    ]


def format_command_line(argv: List[str]) -> str:
    """Render argv the way Windows will see it (for logs only)."""
    return subprocess.list2cmdline(argv)


class DesktopAppConverter:
    """
    Wraps a single converter run:
      1) check the converter is installed (ToolchainStatus)
      2) run it, streaming stdout to on_data and stderr to output.warning
      3) on exit code 0: resolve <basename>.appx, drop <basename>-appx/
    """
    name = "desktop-app-converter"

    def __init__(
        self,
        root_path: Union[str, Path, None] = None,
        output: Optional[Output] = None,
        cfg: Optional[Dict[str, object]] = None,
        create_subprocess_exec=None,
    ):
        self.root = Path(root_path).resolve() if root_path else Path.cwd().resolve()
        self.output = output or Output()
        win = dict((cfg or {}).get("windows") or {})
        self.converter = str(win.get("converter") or DEFAULT_CONVERTER)
        self.installer_arguments = str(win.get("installer_arguments") or SILENT_INSTALL)
        timeout = win.get("timeout_sec")
        self.timeout = float(timeout) if timeout is not None else None
        self._spawn = create_subprocess_exec

    def detect(self) -> ToolchainStatus:
        path, err = resolve_binary(self.converter)
        if not path:
            return ToolchainStatus(available=False, tool=self.converter, diagnostic=err or "")
        return ToolchainStatus(available=True, tool=self.converter, path=path)

    def on_data(self, line: str) -> None:
        logger.debug(line, extra={"tool": self.name})

    async def generate_appx(
        self,
        metadata: PackageMetadata,
        on_complete: Optional[CompletionHook] = None,
    ) -> PackagingResult:
        basename = metadata.basename
        self.output.info(f"{basename}-appx", basename=basename)

        status = self.detect()
        if not status.available:
            self.output.error(
                f"Error: the Desktop App Converter ({self.converter}) could not be found. "
                "Make sure it is installed and its directory is on PATH."
            )
            result = PackagingResult(
                ok=False,
                metadata=metadata,
                error_kind=ErrorKind.ENVIRONMENT,
                diagnostic=status.diagnostic,
            )
        else:
            result = await self._run_converter(metadata, status.path or self.converter)

        if on_complete is not None:
            on_complete(result)
        return result

    async def _run_converter(self, metadata: PackageMetadata, converter: str) -> PackagingResult:
        basename = metadata.basename
        argv = converter_argv(metadata, converter, self.installer_arguments)
        unsafe = unsafe_batch_values(argv)
        if unsafe:
            diagnostic = (
                f"Refusing to run {os.path.basename(converter)}: "
                f"values may not contain any of {''.join(sorted(_CMD_METACHARS))} "
                f"({', '.join(unsafe)})"
            )
            self.output.error(diagnostic, tool=self.name)
            return PackagingResult(
                ok=False,
                metadata=metadata,
                error_kind=ErrorKind.INVALID_INPUT,
                diagnostic=diagnostic,
            )
        self.output.info(f"Running '{format_command_line(argv)}'", tool=self.name, basename=basename)

        res = await run_streaming(
            argv,
            cwd=str(self.root),
            timeout=self.timeout,
            on_stdout=self.on_data,
            on_stderr=self.output.warning,
            create_subprocess_exec=self._spawn,
        )

        code = res.get("returncode")
        kind = error_kind_for(res)
        if kind is not None:
            if code:
                diagnostic = f"Unhandled error {code}"
            else:
                diagnostic = str(res.get("error") or "converter failed")
            self.output.error(diagnostic, tool=self.name, returncode=code)
            stderr_tail = (res.get("stderr") or "").strip()[-2000:]
            if stderr_tail:
                diagnostic = f"{diagnostic}\n{stderr_tail}"
            return PackagingResult(
                ok=False,
                metadata=metadata,
                error_kind=kind,
                diagnostic=diagnostic,
                returncode=code,
            )

        artifact = (self.root / f"{basename}.appx").resolve()
        # Intermediate tree is kept on failure for debugging.
        self._remove_build_dir(self.root / f"{basename}-appx")
        return PackagingResult(
            ok=True,
            metadata=metadata.with_artifact(str(artifact)),
            artifact=artifact,
            returncode=code,
        )

    def _remove_build_dir(self, path: Path) -> None:
        if not path.exists():
            return
        try:
            shutil.rmtree(path)
        except OSError as e:
            self.output.warning(f"Could not remove {path}: {e}")
        else:
            logger.debug("removed %s", path, extra={"path": os.fspath(path)})


__all__ = ["DesktopAppConverter", "converter_argv", "format_command_line", "unsafe_batch_values"]
