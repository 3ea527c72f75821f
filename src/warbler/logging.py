"""Log output setup for the ``warbler.*`` loggers.

Library code only creates named loggers; nothing is printed until the
application (or ``warbler run``) calls ``configure_logging``. Two formats,
matching the server's ``log_format`` option:

- ``"text"``: one human-readable line per record;
- ``"json"``: one JSON object per record, including the request fields
  (``path``, ``user_agent``, ``stage``, ``kind``) passed via ``extra``.
"""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import IO

LOGGER_NAME = "warbler"

# Request fields attached to records through ``extra=``
CONTEXT_FIELDS = ("path", "user_agent", "stage", "kind", "pid", "exitcode", "security_event")

_HANDLER_MARK = "_warbler_handler"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                data[name] = value
        if record.exc_info:
            data["exc"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-8s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        stage = getattr(record, "stage", None)
        path = getattr(record, "path", None)
        if stage and path:
            first, sep, rest = line.partition("\n")
            line = f"{first} [{stage} {path}]{sep}{rest}"
        return line


def configure_logging(
    level: str | int = "info",
    fmt: str = "text",
    *,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Install one handler on the ``warbler`` logger.

    Calling it again replaces the handler it installed earlier, so
    reconfiguring in tests or after a reload does not duplicate output.
    """
    if fmt not in ("text", "json"):
        msg = f"log format must be 'text' or 'json', got {fmt!r}"
        raise ValueError(msg)

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter() if fmt == "json" else TextFormatter())
    setattr(handler, _HANDLER_MARK, True)
    logger.addHandler(handler)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    return logger
