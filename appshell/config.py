# appshell/config.py
from __future__ import annotations
"""
Configuration loader for appshell.

Project settings live in `<project>/.appshell/config.json` and are deep-merged
onto DEFAULT_CONFIG. A local .env is loaded non-destructively first, and the
environment variables below win over both file and defaults:

# Android SDK
- ANDROID_HOME / ANDROID_SDK_ROOT   # searched for tools/android when not on PATH
- APPSHELL_ANDROID_TARGET=android-21
- APPSHELL_ANDROID_EXECUTABLE=android

# Windows Desktop App Converter
- APPSHELL_CONVERTER=DesktopAppConverter.cmd

# Logging
- APPSHELL_LOG_LEVEL=INFO
- APPSHELL_LOG_FILE=.appshell/appshell.log   # unset by default: no log file
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Tuple

import jsonschema
from dotenv import find_dotenv, load_dotenv

CONFIG_DIRNAME = ".appshell"
CONFIG_FILENAME = "config.json"


def load_env_variables() -> None:
    """Load a local .env if present (non-destructive)."""
    load_dotenv(find_dotenv(usecwd=True), override=False)


DEFAULT_CONFIG: Dict[str, Any] = {
    "android": {
        "executable": "android",
        "target": "android-21",
        "activity": "MainActivity",
        "build_tool": "ant",
        "timeout_sec": 600.0,
    },
    "windows": {
        "converter": "DesktopAppConverter.cmd",
        "installer_arguments": "/S",
        # None waits for the converter indefinitely.
        "timeout_sec": None,
    },
    # Packaging metadata used by `build appx`; filled in by `create` or by hand.
    "package": {
        "id": "",
        "product": "",
        "version": "",
        "manufacturer": "",
        "app_name": "",
        "installer": "",
    },
    "runtime": {
        "version": "",
    },
    "logging": {
        "level": "INFO",
        "structured": False,
        # Relative paths resolve against the project root; None logs to stdout only.
        "file": None,
        "max_bytes": 2_000_000,
        "backup_count": 3,
    },
}


CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "android": {
            "type": "object",
            "properties": {
                "executable": {"type": "string"},
                "target": {"type": "string"},
                "activity": {"type": "string"},
                "build_tool": {"type": "string"},
                "timeout_sec": {"type": ["number", "null"]},
            },
            "required": ["executable", "target", "activity"],
        },
        "windows": {
            "type": "object",
            "properties": {
                "converter": {"type": "string"},
                "installer_arguments": {"type": "string"},
                "timeout_sec": {"type": ["number", "null"]},
            },
            "required": ["converter"],
        },
        "package": {
            "type": "object",
            "additionalProperties": {"type": "string"},
        },
        "runtime": {
            "type": "object",
            "properties": {"version": {"type": "string"}},
        },
        "logging": {
            "type": "object",
            "properties": {
                "level": {"type": "string"},
                "structured": {"type": "boolean"},
                "file": {"type": ["string", "null"]},
                "max_bytes": {"type": "integer"},
                "backup_count": {"type": "integer"},
            },
        },
    },
    "additionalProperties": True,
}


def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(a)
    for k, v in b.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _validate(cfg: Dict[str, Any]) -> None:
    try:
        jsonschema.validate(cfg, CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        logging.getLogger(__name__).debug("config schema validation failed: %s", e.message)


def _apply_env_overrides(cfg: Dict[str, Any]) -> None:
    """Environment wins over project config and defaults (mutates cfg)."""
    android = cfg.setdefault("android", {})
    windows = cfg.setdefault("windows", {})
    log_cfg = cfg.setdefault("logging", {})

    for env_name, section, key in (
        ("APPSHELL_ANDROID_TARGET", android, "target"),
        ("APPSHELL_ANDROID_EXECUTABLE", android, "executable"),
        ("APPSHELL_CONVERTER", windows, "converter"),
        ("APPSHELL_LOG_LEVEL", log_cfg, "level"),
        ("APPSHELL_LOG_FILE", log_cfg, "file"),
    ):
        val = os.getenv(env_name)
        if val and val.strip():
            section[key] = val.strip()


def sdk_search_dirs() -> list[str]:
    """Directories that may hold the `android` tool besides PATH."""
    dirs: list[str] = []
    for name in ("ANDROID_HOME", "ANDROID_SDK_ROOT"):
        root = os.getenv(name)
        if root and root.strip():
            dirs.append(os.path.join(root.strip(), "tools"))
    return dirs


def config_path_for(project_root: Path) -> Path:
    return Path(project_root).resolve() / CONFIG_DIRNAME / CONFIG_FILENAME


def load_project_config(project_root: Path, explicit_path: str | None = None) -> Tuple[Dict[str, Any], Path]:
    """
    Load `.appshell/config.json` if present, deep-merge onto defaults, then
    apply environment overrides. Returns (config, path_used).

    A file that cannot be read or decoded as UTF-8 JSON is logged and ignored.
    """
    path = Path(explicit_path).resolve() if explicit_path else config_path_for(project_root)

    cfg = json.loads(json.dumps(DEFAULT_CONFIG))
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logging.getLogger(__name__).warning("ignoring unreadable config %s: %s", path, e)
        else:
            if isinstance(data, dict):
                cfg = _deep_merge(cfg, data)

    _apply_env_overrides(cfg)
    _validate(cfg)
    return cfg, path


def save_project_config(path: Path, cfg: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(cfg, indent=2, ensure_ascii=False)
    path.write_text(text + "\n", encoding="utf-8")


def update_project_config(path: Path, changes: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merge ``changes`` into the JSON file at ``path`` (created if missing)."""
    current: Dict[str, Any] = {}
    if path.exists():
        try:
            loaded = json.loads(path.read_text(encoding="utf-8"))
            if isinstance(loaded, dict):
                current = loaded
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logging.getLogger(__name__).warning("overwriting unreadable config %s: %s", path, e)
    merged = _deep_merge(current, changes)
    save_project_config(path, merged)
    return merged
