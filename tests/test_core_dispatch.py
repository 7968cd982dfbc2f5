"""Tests for command parsing, dispatch and the CLI entry point."""

import json
from pathlib import Path

import pytest

from appshell import __version__
from appshell.cli import CommandParser
from appshell.config import load_project_config
from appshell.core import (
    EXIT_FAILURE,
    EXIT_OK,
    EXIT_USAGE,
    AppContext,
    dispatch_command,
    main,
    package_appx,
)
from appshell.output import RecordingOutput
from appshell.results import ErrorKind


def _ctx(tmp_path: Path) -> AppContext:
    cfg, cfg_path = load_project_config(tmp_path)
    return AppContext(project_root=tmp_path, cfg=cfg, cfg_path=cfg_path, output=RecordingOutput())


def _spy_handlers():
    calls = []

    def make(name):
        def handler(parser, ctx):
            calls.append(name)
            return EXIT_OK
        return handler

    return calls, {n: make(n) for n in ("create", "update", "build", "help", "version")}


def test_parser_extracts_command_and_parameters() -> None:
    parser = CommandParser(["--verbose", "create", "com.example.Foo"])
    assert parser.get_command() == "create"
    assert parser.create_get_package_id() == "com.example.Foo"
    assert parser.args.verbose is True
    assert CommandParser(["update", "18.46.452.10"]).update_get_version() == "18.46.452.10"
    assert CommandParser(["build", "release"]).build_get_type() == "release"
    assert CommandParser(["build"]).build_get_type() is None
    assert CommandParser([]).get_command() is None
    assert CommandParser(["--help"]).get_command() == "help"


def test_no_command_shows_help(tmp_path: Path) -> None:
    calls, handlers = _spy_handlers()
    assert dispatch_command(CommandParser([]), _ctx(tmp_path), handlers) == EXIT_OK
    assert calls == ["help"]


@pytest.mark.parametrize("cmd", ["create", "update", "build", "help", "version"])
def test_known_commands_route_to_their_handler(tmp_path: Path, cmd: str) -> None:
    calls, handlers = _spy_handlers()
    dispatch_command(CommandParser([cmd, "x"]), _ctx(tmp_path), handlers)
    assert calls == [cmd]


def test_unknown_command_invokes_no_handler(tmp_path: Path) -> None:
    calls, handlers = _spy_handlers()
    ctx = _ctx(tmp_path)

    code = dispatch_command(CommandParser(["frobnicate"]), ctx, handlers)

    assert calls == []
    assert code == EXIT_USAGE
    assert ctx.output.errors == ["Unknown command 'frobnicate'. Run 'appshell help' for usage."]


def test_create_without_package_id_is_usage_error(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path)
    assert dispatch_command(CommandParser(["create"]), ctx) == EXIT_USAGE
    assert "package id" in ctx.output.errors[0]
    assert ctx.output.written and "Usage: appshell" in ctx.output.written[0]


def test_create_with_invalid_package_id_fails_without_sdk_call(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path)
    assert dispatch_command(CommandParser(["create", "NotAPackage"]), ctx) == EXIT_FAILURE
    assert "Invalid package id" in ctx.output.errors[0]


def test_update_persists_runtime_version(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path)
    assert dispatch_command(CommandParser(["update", "18.46.452.10"]), ctx) == EXIT_OK
    saved = json.loads(ctx.cfg_path.read_text(encoding="utf-8"))
    assert saved["runtime"]["version"] == "18.46.452.10"

    assert dispatch_command(CommandParser(["update", "19.0"]), ctx) == EXIT_OK
    assert ctx.output.infos[-1] == "Runtime version updated from 18.46.452.10 to 19.0"


def test_update_rejects_bad_version(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path)
    assert dispatch_command(CommandParser(["update", "latest"]), ctx) == EXIT_FAILURE
    assert not ctx.cfg_path.exists()


def test_build_appx_with_incomplete_metadata(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path)
    result = package_appx(ctx)
    assert result.ok is False
    assert result.error_kind is ErrorKind.INVALID_INPUT
    assert "product" in ctx.output.errors[0]
    assert dispatch_command(CommandParser(["build", "appx"]), ctx) == EXIT_FAILURE


def test_build_appx_runs_converter_from_config(tmp_path: Path, fake_tool, fake_spawn) -> None:
    from toolchains.desktop_converter import DesktopAppConverter

    ctx = _ctx(tmp_path)
    ctx.cfg["package"].update(
        {"product": "Foo", "version": "1.0", "manufacturer": "Acme", "app_name": "Foo", "installer": "foo.msi"}
    )
    spawn = fake_spawn(returncode=0)
    converter = DesktopAppConverter(
        tmp_path, ctx.output, {"windows": {"converter": fake_tool("DesktopAppConverter.cmd")}},
        create_subprocess_exec=spawn,
    )

    result = package_appx(ctx, converter=converter)

    assert result.ok is True
    assert result.artifact == (tmp_path / "Foo-1.0.appx").resolve()
    assert len(spawn.calls) == 1


def test_main_version_and_help(tmp_path: Path) -> None:
    out = RecordingOutput()
    assert main(["--project-root", str(tmp_path), "version"], output=out) == EXIT_OK
    assert out.written == [__version__]

    out = RecordingOutput()
    assert main(["--project-root", str(tmp_path)], output=out) == EXIT_OK
    assert "create <packageId>" in out.written[0]


def test_main_unknown_command_does_not_raise(tmp_path: Path) -> None:
    out = RecordingOutput()
    assert main(["--project-root", str(tmp_path), "frobnicate"], output=out) == EXIT_USAGE
    assert out.written == []


def test_main_bad_option_returns_usage_code(tmp_path: Path) -> None:
    assert main(["--project-root", str(tmp_path), "--no-such-option"], output=RecordingOutput()) == EXIT_USAGE


def test_plain_run_leaves_no_files_in_project(tmp_path: Path) -> None:
    assert main(["--project-root", str(tmp_path), "help"], output=RecordingOutput()) == EXIT_OK
    assert main(["--project-root", str(tmp_path), "version"], output=RecordingOutput()) == EXIT_OK
    assert list(tmp_path.iterdir()) == []


def test_configured_log_file_resolves_against_project_root(tmp_path: Path) -> None:
    (tmp_path / ".appshell").mkdir()
    (tmp_path / ".appshell" / "config.json").write_text(
        json.dumps({"logging": {"file": "logs/appshell.log"}}), encoding="utf-8"
    )
    assert main(["--project-root", str(tmp_path), "version"], output=RecordingOutput()) == EXIT_OK
    assert (tmp_path / "logs" / "appshell.log").exists()


def test_build_appx_rejects_flag_shaped_metadata(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path)
    ctx.cfg["package"].update(
        {"product": "Foo", "version": "1.0", "manufacturer": "Acme", "app_name": "-MakeAppx", "installer": "foo.msi"}
    )
    result = package_appx(ctx)
    assert result.error_kind is ErrorKind.INVALID_INPUT
    assert "app_name" in ctx.output.errors[0]
