"""Security audit events.

Opt-in event channel for credential and login telemetry. Applications
register a sink to forward events to logs, metrics, or a SIEM;
``logging_sink`` is the ready-made one that writes to the
``warbler.security`` logger.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from time import time
from typing import Any

_log = logging.getLogger("warbler.security")


@dataclass(frozen=True, slots=True)
class SecurityEvent:
    """A structured security event."""

    name: str
    timestamp: float = field(default_factory=time)
    path: str | None = None
    method: str | None = None
    user_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


type SecurityEventSink = Callable[[SecurityEvent], None]


_sink_lock = threading.Lock()
_sink: SecurityEventSink | None = None


def set_security_event_sink(sink: SecurityEventSink | None) -> None:
    """Set the per-process sink for security events.

    Pass ``None`` to disable event delivery.
    """
    global _sink
    with _sink_lock:
        _sink = sink


def logging_sink(event: SecurityEvent) -> None:
    """Write *event* to the ``warbler.security`` logger at WARNING."""
    _log.warning(
        "%s path=%s user=%s %s",
        event.name,
        event.path,
        event.user_id,
        event.details,
        extra={"security_event": event.name, "path": event.path},
    )


def emit_security_event(
    name: str,
    *,
    request: Any | None = None,
    user_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Emit a best-effort security event to the configured sink."""
    with _sink_lock:
        sink = _sink
    if sink is None:
        return

    event = SecurityEvent(
        name=name,
        path=getattr(request, "path", None),
        method=getattr(request, "method", None),
        user_id=user_id,
        details=details or {},
    )
    sink(event)
