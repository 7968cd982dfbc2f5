# appshell/cli.py
from __future__ import annotations

import argparse
from typing import List, Optional

COMMANDS = ("create", "update", "build", "help", "version")

_USAGE = """\
Usage: appshell [options] <command> [<args>]

Commands:
  create <packageId>   Create a new project, e.g. `appshell create com.example.Foo`
  update <version>     Pin the runtime version used by the project in this directory
  build <type>         Build the project; <type> is one of: debug, release, appx
  help                 Show this help
  version              Show the appshell version

Options:
  --project-root DIR   Directory to operate in (default: current directory)
  --config FILE        Explicit config file (default: <root>/.appshell/config.json)
  --log-level LEVEL    Logging level (default from config, INFO)
  --verbose            Shorthand for --log-level DEBUG
  --json-logs          Emit compact JSON log lines
"""


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser("appshell", add_help=False, usage=argparse.SUPPRESS)
    p.add_argument("--project-root", default="", help="Directory to operate in")
    p.add_argument("--config", default="", help="Path to .appshell/config.json (optional)")
    p.add_argument("--log-level", default="", help="Logging level")
    p.add_argument("--verbose", action="store_true", help="Debug logging")
    p.add_argument("--json-logs", action="store_true", help="JSON log lines")
    p.add_argument("-h", "--help", dest="show_help", action="store_true")
    p.add_argument("command", nargs="?", default=None)
    p.add_argument("params", nargs="*", default=[])
    return p


class CommandParser:
    """
    Splits process arguments into a command name and its positional parameters.

    ``argv`` excludes the program name. Parameter getters return None when the
    parameter is absent; deciding what that means is up to the caller.
    """

    def __init__(self, argv: Optional[List[str]] = None):
        self.argv = list(argv or [])
        self.args = _build_parser().parse_args(self.argv)

    def get_command(self) -> Optional[str]:
        if self.args.show_help:
            return "help"
        cmd = self.args.command
        return cmd.strip().lower() if cmd else None

    def _param(self, index: int) -> Optional[str]:
        params = self.args.params or []
        if index < len(params):
            val = str(params[index]).strip()
            return val or None
        return None

    def create_get_package_id(self) -> Optional[str]:
        return self._param(0)

    def update_get_version(self) -> Optional[str]:
        return self._param(0)

    def build_get_type(self) -> Optional[str]:
        return self._param(0)

    def help(self) -> str:
        return _USAGE
