# appshell/core.py
"""
Command handlers and dispatch for the appshell CLI.

Every handler takes the parsed command line plus an AppContext and returns a
process exit code:
  0  success
  1  the operation ran and failed (SDK missing, tool exited non-zero, bad input)
  2  usage error (unknown command, missing parameter)

Library-level failures arrive as tagged results (appshell.results); the only
exceptions converted here are input validation errors, at the handler seam.
"""

from __future__ import annotations

import asyncio
import logging
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from appshell import __version__
from appshell.cli import COMMANDS, CommandParser
from appshell.config import load_env_variables, load_project_config, update_project_config
from appshell.logging_utils import configure_logging
from appshell.metadata import PackageMetadata
from appshell.output import Output
from appshell.results import (
    BuildResult,
    CreateResult,
    ErrorKind,
    InvalidInputError,
    PackagingResult,
)
from toolchains.android import AndroidProject
from toolchains.desktop_converter import DesktopAppConverter

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

_VERSION_RE = re.compile(r"^\d+(\.\d+){0,3}$")


@dataclass
class AppContext:
    project_root: Path
    cfg: Dict[str, Any]
    cfg_path: Path
    output: Output = field(default_factory=Output)


Handler = Callable[[CommandParser, AppContext], int]


# ---------- Operations (return tagged results)

def create(package_id: str, ctx: AppContext, project: Optional[AndroidProject] = None) -> CreateResult:
    """Create a skeleton Android project named after ``package_id`` under the project root."""
    project = project or AndroidProject(ctx.project_root, ctx.output, ctx.cfg)
    try:
        return project.generate(package_id)
    except InvalidInputError as e:
        ctx.output.error(f"Error: {e}")
        return CreateResult(ok=False, package_id=package_id, error_kind=ErrorKind.INVALID_INPUT, diagnostic=str(e))


def update(version: str, ctx: AppContext) -> bool:
    """Record ``version`` as the runtime version in the project config."""
    v = (version or "").strip()
    if not _VERSION_RE.match(v):
        ctx.output.error(f"Error: invalid version '{version}', expected e.g. 18.46.452.10")
        return False
    previous = str((ctx.cfg.get("runtime") or {}).get("version") or "")
    merged = update_project_config(ctx.cfg_path, {"runtime": {"version": v}})
    ctx.cfg["runtime"] = merged.get("runtime", {"version": v})
    if previous and previous != v:
        ctx.output.info(f"Runtime version updated from {previous} to {v}")
    else:
        ctx.output.info(f"Runtime version set to {v}")
    return True


def package_appx(
    ctx: AppContext,
    converter: Optional[DesktopAppConverter] = None,
) -> PackagingResult:
    """Build PackageMetadata from the `package` config section and run the converter."""
    raw = dict(ctx.cfg.get("package") or {})
    try:
        metadata = PackageMetadata(**raw)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        msg = f"Error: incomplete or invalid packaging metadata in {ctx.cfg_path} ({fields})"
        ctx.output.error(msg)
        return PackagingResult(
            ok=False,
            metadata=PackageMetadata.model_construct(**raw),
            error_kind=ErrorKind.INVALID_INPUT,
            diagnostic=msg,
        )

    converter = converter or DesktopAppConverter(ctx.project_root, ctx.output, ctx.cfg)
    result = asyncio.run(converter.generate_appx(metadata))
    if result.ok:
        ctx.output.info(f"Package written to {result.artifact}", path=str(result.artifact))
    return result


def build(build_type: str, ctx: AppContext, project: Optional[AndroidProject] = None) -> BuildResult:
    if build_type == "appx":
        res = package_appx(ctx)
        return BuildResult(
            ok=res.ok,
            build_type=build_type,
            artifacts=[res.artifact] if res.artifact else [],
            error_kind=res.error_kind,
            diagnostic=res.diagnostic,
            returncode=res.returncode,
        )
    project = project or AndroidProject(ctx.project_root, ctx.output, ctx.cfg)
    try:
        return project.build(build_type)
    except InvalidInputError as e:
        ctx.output.error(f"Error: {e}")
        return BuildResult(ok=False, build_type=build_type, error_kind=ErrorKind.INVALID_INPUT, diagnostic=str(e))


# ---------- CLI handlers (return exit codes)

def _missing(ctx: AppContext, parser: CommandParser, what: str, cmd: str) -> int:
    ctx.output.error(f"Error: '{cmd}' needs a {what}")
    ctx.output.write(parser.help())
    return EXIT_USAGE


def handle_create(parser: CommandParser, ctx: AppContext) -> int:
    package_id = parser.create_get_package_id()
    if not package_id:
        return _missing(ctx, parser, "package id", "create")
    return EXIT_OK if create(package_id, ctx).ok else EXIT_FAILURE


def handle_update(parser: CommandParser, ctx: AppContext) -> int:
    version = parser.update_get_version()
    if not version:
        return _missing(ctx, parser, "version", "update")
    return EXIT_OK if update(version, ctx) else EXIT_FAILURE


def handle_build(parser: CommandParser, ctx: AppContext) -> int:
    build_type = parser.build_get_type()
    if not build_type:
        return _missing(ctx, parser, "build type", "build")
    return EXIT_OK if build(build_type, ctx).ok else EXIT_FAILURE


def handle_help(parser: CommandParser, ctx: AppContext) -> int:
    ctx.output.write(parser.help())
    return EXIT_OK


def handle_version(parser: CommandParser, ctx: AppContext) -> int:
    ctx.output.write(__version__)
    return EXIT_OK


HANDLERS: Dict[str, Handler] = {
    "create": handle_create,
    "update": handle_update,
    "build": handle_build,
    "help": handle_help,
    "version": handle_version,
}


def dispatch_command(
    parser: CommandParser,
    ctx: AppContext,
    handlers: Optional[Dict[str, Handler]] = None,
) -> int:
    """Route the parsed command to its handler; no command means help."""
    handlers = HANDLERS if handlers is None else handlers
    cmd = parser.get_command()
    if cmd is None:
        return handlers["help"](parser, ctx)

    handler = handlers.get(cmd) if cmd in COMMANDS else None
    if handler is None:
        ctx.output.error(f"Unknown command '{cmd}'. Run 'appshell help' for usage.", command=cmd)
        return EXIT_USAGE

    logger.debug("dispatching %s", cmd, extra={"command": cmd})
    return handler(parser, ctx)


def _configure_logging_from(cfg: Dict[str, Any], parser: CommandParser, project_root: Path) -> None:
    log_cfg = dict(cfg.get("logging") or {})
    log_file = log_cfg.get("file")
    if log_file and not Path(log_file).is_absolute():
        log_file = str(project_root / log_file)
    configure_logging(
        level=parser.args.log_level or log_cfg.get("level"),
        verbose=parser.args.verbose,
        structured=parser.args.json_logs or bool(log_cfg.get("structured")),
        log_file=log_file or None,
        max_bytes=int(log_cfg.get("max_bytes") or 2_000_000),
        backup_count=int(log_cfg.get("backup_count") or 3),
    )


def main(argv: List[str] | None = None, output: Optional[Output] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    try:
        parser = CommandParser(argv)
    except SystemExit as e:
        # argparse already printed the problem
        return int(e.code or 0)

    load_env_variables()

    project_root = Path(parser.args.project_root).resolve() if parser.args.project_root else Path.cwd().resolve()
    cfg, cfg_path = load_project_config(project_root, parser.args.config or None)
    _configure_logging_from(cfg, parser, project_root)

    ctx = AppContext(project_root=project_root, cfg=cfg, cfg_path=cfg_path, output=output or Output())
    return dispatch_command(parser, ctx)
