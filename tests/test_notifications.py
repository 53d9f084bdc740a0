"""Password reset delivery: SMTP and logging notifiers."""

import unittest
from unittest.mock import patch

from imac.services.notifications import (
    LoggingResetNotifier,
    SmtpResetNotifier,
    build_reset_link,
    get_reset_notifier,
)
from tests.support import make_settings

TOKEN = "ab" * 32


class TestResetLink(unittest.TestCase):
    def test_link_points_at_frontend(self) -> None:
        s = make_settings(FRONTEND_URL="https://imac.example.com/")
        self.assertEqual(
            build_reset_link(s, TOKEN),
            f"https://imac.example.com/reset-password?token={TOKEN}",
        )


class TestNotifierSelection(unittest.TestCase):
    def test_logging_without_smtp_host(self) -> None:
        self.assertIsInstance(get_reset_notifier(make_settings()), LoggingResetNotifier)

    def test_smtp_with_host(self) -> None:
        s = make_settings(SMTP_HOST="smtp.example.com")
        self.assertIsInstance(get_reset_notifier(s), SmtpResetNotifier)


class TestLoggingResetNotifier(unittest.TestCase):
    def test_dev_logs_preview_not_full_token(self) -> None:
        with self.assertLogs("imac.services.notifications", level="INFO") as captured:
            LoggingResetNotifier(make_settings()).send_password_reset(1, "a@example.com", TOKEN)
        record = captured.records[0]
        self.assertEqual(record.token_preview, f"{TOKEN[:8]}...")
        self.assertNotIn(TOKEN, record.reset_link)

    def test_prod_logs_user_only(self) -> None:
        s = make_settings(APP_ENV="prod", BCRYPT_ROUNDS=10)
        with self.assertLogs("imac.services.notifications", level="INFO") as captured:
            LoggingResetNotifier(s).send_password_reset(1, "a@example.com", TOKEN)
        record = captured.records[0]
        self.assertEqual(record.user_id, 1)
        self.assertFalse(hasattr(record, "token_preview"))


class TestSmtpResetNotifier(unittest.TestCase):
    def test_sends_with_tls_and_login(self) -> None:
        s = make_settings(
            SMTP_HOST="smtp.example.com",
            SMTP_PORT=2525,
            SMTP_USERNAME="mailer",
            SMTP_PASSWORD="mail-secret",
        )
        with patch("imac.services.notifications.smtplib.SMTP") as smtp_cls:
            SmtpResetNotifier(s).send_password_reset(1, "a@example.com", TOKEN)
        smtp_cls.assert_called_once_with("smtp.example.com", 2525)
        server = smtp_cls.return_value.__enter__.return_value
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mailer", "mail-secret")
        server.send_message.assert_called_once()
        msg = server.send_message.call_args.args[0]
        self.assertEqual(msg["To"], "a@example.com")
        self.assertEqual(msg["Subject"], "IMAC - Password reset")

    def test_no_tls_no_login(self) -> None:
        s = make_settings(SMTP_HOST="localhost", SMTP_USE_TLS=False)
        with patch("imac.services.notifications.smtplib.SMTP") as smtp_cls:
            SmtpResetNotifier(s).send_password_reset(1, "a@example.com", TOKEN)
        server = smtp_cls.return_value.__enter__.return_value
        server.starttls.assert_not_called()
        server.login.assert_not_called()
        server.send_message.assert_called_once()

    def test_message_contains_link(self) -> None:
        s = make_settings(SMTP_HOST="localhost")
        msg = SmtpResetNotifier(s)._build_message("a@example.com", TOKEN)
        plain = msg.get_payload()[0].get_payload(decode=True).decode("utf-8")
        self.assertIn(build_reset_link(s, TOKEN), plain)


if __name__ == "__main__":
    unittest.main()
