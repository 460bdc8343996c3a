"""
JSONL logging bootstrap.

The CLI installs one JSONL file sink at start-up. Loader modules attach
package context to their records with ``extra=``:

    logger.debug("resolved", extra={"package": name, "layer": "local"})

and those fields become top-level keys of the JSON line.
"""

import json
import logging
import os
from datetime import UTC
from datetime import datetime
from pathlib import Path

DEFAULT_PATH = os.environ.get("PKGLOADER_LOG_PATH", "./pkgloader.log.jsonl")
DEFAULT_LEVEL = os.environ.get("PKGLOADER_LOG_LEVEL", "INFO").upper()

SCHEMA = {"name": "pkgloader.log", "ver": "1.1.0"}

# Package context a record may carry, in output order.
CONTEXT_FIELDS = ("package", "layer", "role", "where", "extension", "directory")


class JsonlHandler(logging.Handler):
    """Append one JSON object per record to ``path``."""

    def __init__(self, path: str | Path):
        super().__init__()
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def format_record(self, record: logging.LogRecord) -> dict:
        entry = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(timespec="milliseconds"),
            "lvl": record.levelname,
            "schema": SCHEMA,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info:
            entry["exc"] = logging.Formatter().formatException(record.exc_info)
        return entry

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = json.dumps(self.format_record(record), ensure_ascii=False, default=str)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except Exception:
            self.handleError(record)


def init_json_logging(path: str | None = None, level: str | None = None) -> None:
    """Route the root logger to a JSONL file, replacing an earlier JSONL sink."""
    path = path or DEFAULT_PATH
    level = (level or DEFAULT_LEVEL).upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))
    for h in list(root.handlers):
        if isinstance(h, JsonlHandler):
            root.removeHandler(h)
    root.addHandler(JsonlHandler(path))
