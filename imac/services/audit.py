"""Business events emitted by the auth services (informational, never consulted)."""

import enum
import logging
from datetime import UTC, datetime
from typing import Any, Protocol

logger = logging.getLogger(__name__)

# Keys containing any of these (case-insensitive) are redacted before logging.
SENSITIVE_FIELDS = (
    "password",
    "senha",
    "pwd",
    "token",
    "jwt",
    "secret",
    "api_key",
    "apikey",
    "private_key",
)

REDACTED = "[REDACTED]"


class BusinessEvent(str, enum.Enum):
    LOGIN_SUCCESS = "AUTH.LOGIN_SUCCESS"
    LOGIN_FAILED = "AUTH.LOGIN_FAILED"
    LOGOUT = "AUTH.LOGOUT"
    PASSWORD_RESET_REQUESTED = "AUTH.PASSWORD_RESET_REQUESTED"
    PASSWORD_RESET_COMPLETED = "AUTH.PASSWORD_RESET_COMPLETED"
    ACCOUNT_LOCKED = "AUTH.ACCOUNT_LOCKED"
    USER_CREATED = "USER.CREATED"


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(field in lowered for field in SENSITIVE_FIELDS)


def sanitize_details(data: Any) -> Any:
    """Return a copy of data with sensitive keys redacted, recursing into dicts and lists."""
    if isinstance(data, dict):
        return {
            key: REDACTED if _is_sensitive(str(key)) else sanitize_details(value)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [sanitize_details(item) for item in data]
    return data


class AuditSink(Protocol):
    def record(
        self,
        event: BusinessEvent,
        user_id: int | None,
        details: dict[str, Any] | None = None,
    ) -> None: ...


class LoggingAuditSink:
    """Writes business events to the `imac.audit` logger as structured records."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logging.getLogger("imac.audit")

    def record(
        self,
        event: BusinessEvent,
        user_id: int | None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self._log.info(
            "Business event",
            extra={
                "event_type": "BUSINESS",
                "event": event.value,
                "user_id": user_id,
                "details": sanitize_details(details or {}),
                "event_timestamp": datetime.now(UTC).isoformat(),
            },
        )


def emit_event(
    sink: AuditSink,
    event: BusinessEvent,
    user_id: int | None,
    details: dict[str, Any] | None = None,
) -> None:
    """Send an event to the sink; a failing sink is logged and otherwise ignored."""
    try:
        sink.record(event, user_id, details)
    except Exception:
        logger.warning(
            "Audit sink failed to record event",
            extra={"event": event.value, "user_id": user_id},
            exc_info=True,
        )
