# appshell/logging_utils.py
from __future__ import annotations
import datetime
import json
import logging
import logging.handlers as lh
import os
import sys
from typing import Optional


# LogRecord attributes promoted into the JSON "meta" object when present.
_META_FIELDS = (
    "command",
    "tool",
    "package_id",
    "basename",
    "build_type",
    "returncode",
    "elapsed_sec",
    "path",
    "status",
)


class JsonFormatter(logging.Formatter):
    """Compact single-line JSON formatter for logs.

    Emits objects with keys: ts (ISO8601 UTC), level, module, msg, meta.
    meta is taken from record.__dict__.get('meta') and enriched with the fields
    callers attach through ``extra=`` (command, tool, returncode, basename, ...).
    Output has no spaces so it is safe for JSONL files/streams.
    """

    def _safe(self, v):
        # Ensure value is JSON serializable; fallback to str()
        try:
            json.dumps(v)
            return v
        except (TypeError, ValueError):
            return str(v)

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.datetime.now(datetime.timezone.utc).isoformat().replace("+00:00", "Z")
        meta = {}
        raw_meta = record.__dict__.get("meta")
        if isinstance(raw_meta, dict):
            meta.update(raw_meta)

        for k in _META_FIELDS:
            if record.__dict__.get(k) is not None:
                meta[k] = self._safe(record.__dict__[k])

        if record.exc_info:
            meta["exc"] = self.formatException(record.exc_info)

        payload = {
            "ts": ts,
            "level": record.levelname.lower(),
            "module": record.name,
            "msg": record.getMessage(),
            "meta": meta,
        }
        return json.dumps(payload, separators=(",", ":"))


def _level_from(name: Optional[str], verbose: bool) -> int:
    if verbose:
        return logging.DEBUG
    if not name:
        return logging.INFO
    return getattr(logging, str(name).upper(), logging.INFO)


def configure_logging(
    level: Optional[str] = None,
    verbose: bool = False,
    structured: bool = False,
    log_file: Optional[str] = None,
    max_bytes: int = 2_000_000,
    backup_count: int = 3,
) -> None:
    """Configure global logging for the CLI.

    Idempotent: calling it again updates formatter/level on the handlers it owns
    instead of stacking duplicates. ``structured=True`` switches stdout and the
    rotating file to compact JSON lines. ``log_file=None`` disables the file.
    """
    lg = logging.getLogger()
    lvl = _level_from(level, verbose)
    lg.setLevel(lvl)

    json_fmt = JsonFormatter()
    human_fmt = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    console_fmt = logging.Formatter("%(levelname)s: %(message)s")

    if log_file:
        path = os.path.abspath(log_file)
        fh = None
        for h in lg.handlers:
            if getattr(h, "baseFilename", None) and os.path.abspath(h.baseFilename) == path:
                fh = h
                break
        if fh is None:
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            fh = lh.RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
            lg.addHandler(fh)
        fh.setFormatter(json_fmt if structured else human_fmt)

    sh = None
    for h in lg.handlers:
        if isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stdout:
            sh = h
            break
    if sh is None:
        sh = logging.StreamHandler(sys.stdout)
        lg.addHandler(sh)
    sh.setFormatter(json_fmt if structured else console_fmt)
