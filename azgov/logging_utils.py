from __future__ import annotations

import json as _json
import logging
import sys


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        base = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return _json.dumps(base, ensure_ascii=False)


def setup_logging(level: str = "WARNING", json: bool = False) -> None:
    """Initialize logging for the CLI.

    Args:
        level: Logging level name (e.g., DEBUG, INFO, WARNING).
        json: If True, emit JSON logs with a simple structure.
    """
    lvl = getattr(logging, level.upper(), logging.WARNING)

    handler = logging.StreamHandler(sys.stderr)
    if json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logging.root.handlers[:] = [handler]
    logging.root.setLevel(lvl)
