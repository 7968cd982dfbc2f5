# toolchains/android.py
from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Dict, List, Optional, Union

from appshell.config import config_path_for, sdk_search_dirs, update_project_config
from appshell.output import Output
from appshell.results import (
    BuildResult,
    CreateResult,
    ErrorKind,
    InvalidInputError,
    ToolchainStatus,
    error_kind_for,
)
from toolchains.runner import resolve_binary, run_command

logger = logging.getLogger(__name__)

_TAIL = int(os.getenv("APPSHELL_ANDROID_LOG_TAIL", "2000"))

_JAVA_IDENT = r"[A-Za-z_][A-Za-z0-9_]*"
_PACKAGE_ID_RE = re.compile(rf"^{_JAVA_IDENT}(\.{_JAVA_IDENT})+$")

BUILD_TYPES = ("debug", "release")


def _tail(s: str, n: int = _TAIL) -> str:
    s = s or ""
    return s if len(s) <= n else s[-n:]


def validate_package_id(package_id: str) -> str:
    """
    Check an identifier of the form com.example.Foo: two or more dot-separated
    Java identifiers. Returns the stripped id, raises InvalidInputError otherwise.
    """
    pid = (package_id or "").strip()
    if not _PACKAGE_ID_RE.match(pid):
        raise InvalidInputError(
            f"Invalid package id '{package_id}': expected the form com.example.Foo"
        )
    return pid


class AndroidProject:
    """
    Android SDK project generator:
      - detect():   locate the `android` tool (PATH, then $ANDROID_HOME/tools)
      - generate(): android create project ... for a package id
      - build():    ant debug|release inside a generated project
    """
    name = "android"

    def __init__(
        self,
        root_path: Union[str, Path, None] = None,
        output: Optional[Output] = None,
        cfg: Optional[Dict[str, object]] = None,
        subprocess_module=None,
    ):
        self.root = Path(root_path).resolve() if root_path else Path.cwd().resolve()
        self.output = output or Output()
        android = dict((cfg or {}).get("android") or {})
        self.executable = str(android.get("executable") or "android")
        self.target = str(android.get("target") or "android-21")
        self.activity = str(android.get("activity") or "MainActivity")
        self.build_tool = str(android.get("build_tool") or "ant")
        timeout = android.get("timeout_sec")
        self.timeout = float(timeout) if timeout is not None else None
        self._subprocess = subprocess_module

    def detect(self) -> ToolchainStatus:
        path, err = resolve_binary(self.executable, extra_dirs=sdk_search_dirs())
        if not path:
            return ToolchainStatus(available=False, tool=self.executable, diagnostic=err or "")
        logger.debug("android sdk tool at %s", path, extra={"tool": self.name})
        return ToolchainStatus(available=True, tool=self.executable, path=path)

    def create_argv(self, package_id: str, sdk_tool: str) -> List[str]:
        name = package_id.split(".")[-1]
        return [
            sdk_tool, "create", "project",
            "--target", self.target,
            "--name", name,
            "--path", str(self.root / package_id),
            "--activity", self.activity,
            "--package", package_id,
        ]

    def generate(self, package_id: str) -> CreateResult:
        pid = validate_package_id(package_id)

        status = self.detect()
        if not status.available:
            self.output.error(
                "Error: The Android SDK could not be found. "
                "Make sure the directory containing the 'android' "
                "executable is mentioned in the PATH environment variable."
            )
            return CreateResult(
                ok=False,
                package_id=pid,
                error_kind=ErrorKind.ENVIRONMENT,
                diagnostic=status.diagnostic,
            )

        project_dir = self.root / pid
        if project_dir.exists():
            msg = f"Error: {project_dir} already exists"
            self.output.error(msg)
            return CreateResult(ok=False, package_id=pid, error_kind=ErrorKind.INVALID_INPUT, diagnostic=msg)

        argv = self.create_argv(pid, status.path or self.executable)
        self.output.info(f"Creating project {pid}", package_id=pid, tool=self.name)
        res = run_command(argv, cwd=str(self.root), timeout=self.timeout, subprocess_module=self._subprocess)

        kind = error_kind_for(res)
        if kind is not None:
            rc = res.get("returncode")
            self.output.error(f"Error: project creation failed (rc={rc}).", returncode=rc, tool=self.name)
            return CreateResult(
                ok=False,
                package_id=pid,
                error_kind=kind,
                diagnostic=_tail(res.get("stderr") or res.get("error") or ""),
                returncode=rc,
            )

        update_project_config(
            config_path_for(project_dir),
            {"package": {"id": pid, "product": pid.split(".")[-1], "app_name": pid.split(".")[-1]}},
        )
        self.output.info(f"Project created in {project_dir}", path=str(project_dir))
        return CreateResult(ok=True, package_id=pid, project_dir=project_dir, returncode=res.get("returncode"))

    def build(self, build_type: str) -> BuildResult:
        if build_type not in BUILD_TYPES:
            raise InvalidInputError(
                f"Unknown build type '{build_type}': expected one of {', '.join(BUILD_TYPES)}"
            )
        if not (self.root / "build.xml").exists():
            msg = f"Error: {self.root} is not an Android project (no build.xml)"
            self.output.error(msg)
            return BuildResult(ok=False, build_type=build_type, error_kind=ErrorKind.INVALID_INPUT, diagnostic=msg)

        tool, err = resolve_binary(self.build_tool)
        if not tool:
            self.output.error(f"Error: '{self.build_tool}' could not be found on PATH.")
            return BuildResult(ok=False, build_type=build_type, error_kind=ErrorKind.ENVIRONMENT, diagnostic=err or "")

        self.output.info(f"Building {build_type}", build_type=build_type, tool=self.build_tool)
        res = run_command([tool, build_type], cwd=str(self.root), timeout=self.timeout, subprocess_module=self._subprocess)

        kind = error_kind_for(res)
        if kind is not None:
            rc = res.get("returncode")
            self.output.error(f"Error: {build_type} build failed (rc={rc}).", returncode=rc)
            return BuildResult(
                ok=False,
                build_type=build_type,
                error_kind=kind,
                diagnostic=_tail((res.get("stdout") or "") + (res.get("stderr") or "")),
                returncode=rc,
            )

        artifacts = sorted((self.root / "bin").glob(f"*-{build_type}*.apk"))
        for apk in artifacts:
            self.output.info(f"  {apk}", path=str(apk))
        return BuildResult(ok=True, build_type=build_type, artifacts=artifacts, returncode=res.get("returncode"))


__all__ = ["AndroidProject", "validate_package_id", "BUILD_TYPES"]
