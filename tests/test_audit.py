"""Business event redaction and sink failure isolation."""

import logging
import unittest
from unittest.mock import MagicMock

from imac.services.audit import (
    REDACTED,
    BusinessEvent,
    LoggingAuditSink,
    emit_event,
    sanitize_details,
)


class TestSanitizeDetails(unittest.TestCase):
    def test_sensitive_keys_redacted(self) -> None:
        out = sanitize_details(
            {"email": "a@example.com", "password": "p", "refresh_token": "t", "JWT_SECRET": "s"}
        )
        self.assertEqual(out["email"], "a@example.com")
        self.assertEqual(out["password"], REDACTED)
        self.assertEqual(out["refresh_token"], REDACTED)
        self.assertEqual(out["JWT_SECRET"], REDACTED)

    def test_nested(self) -> None:
        out = sanitize_details({"outer": [{"senha": "x", "ok": 1}], "n": 2})
        self.assertEqual(out, {"outer": [{"senha": REDACTED, "ok": 1}], "n": 2})

    def test_input_not_mutated(self) -> None:
        data = {"password": "p"}
        sanitize_details(data)
        self.assertEqual(data, {"password": "p"})


class TestEmitEvent(unittest.TestCase):
    def test_delivers_to_sink(self) -> None:
        sink = MagicMock()
        emit_event(sink, BusinessEvent.LOGOUT, 7, {"ip": "10.0.0.1"})
        sink.record.assert_called_once_with(BusinessEvent.LOGOUT, 7, {"ip": "10.0.0.1"})

    def test_failing_sink_is_swallowed(self) -> None:
        sink = MagicMock()
        sink.record.side_effect = RuntimeError("sink down")
        with self.assertLogs("imac.services.audit", level="WARNING"):
            emit_event(sink, BusinessEvent.LOGIN_SUCCESS, 1)


class TestLoggingAuditSink(unittest.TestCase):
    def test_structured_record(self) -> None:
        log = logging.getLogger("imac.audit.test")
        with self.assertLogs(log, level="INFO") as captured:
            LoggingAuditSink(log).record(
                BusinessEvent.USER_CREATED, 3, {"role": "ADMIN", "password": "p"}
            )
        record = captured.records[0]
        self.assertEqual(record.event, "USER.CREATED")
        self.assertEqual(record.event_type, "BUSINESS")
        self.assertEqual(record.user_id, 3)
        self.assertEqual(record.details, {"role": "ADMIN", "password": REDACTED})


if __name__ == "__main__":
    unittest.main()
