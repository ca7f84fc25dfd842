"""Logging setup for the API process.

Plain text by default; ``LOG_JSON=true`` switches to one JSON object per
line for log shippers.
"""

import json
import logging
from datetime import datetime, timezone

from academy.core.config import get_settings

_PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Extra attributes worth keeping when callers pass ``extra=...``.
_CONTEXT_FIELDS = ("student_id", "event", "lesson_id", "package_id", "teacher_id")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging() -> None:
    settings = get_settings()
    level = getattr(logging, str(settings.log_level or "INFO").upper(), logging.INFO)

    handler = logging.StreamHandler()
    if settings.log_json:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(_PLAIN_FORMAT))

    root = logging.getLogger()
    # Idempotent: uvicorn --reload and tests import main more than once.
    for existing in list(root.handlers):
        if getattr(existing, "_academy_handler", False):
            root.removeHandler(existing)
    handler._academy_handler = True
    root.addHandler(handler)
    root.setLevel(level)

    # SQL echo stays off unless explicitly debugging.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
