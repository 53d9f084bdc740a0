"""Shared test helpers: in-memory SQLite store, fast settings, recording collaborators."""

from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from imac.core.config import Settings
from imac.models import Base

STRONG_PASSWORD = "Str0ng!Pass"
OTHER_STRONG_PASSWORD = "An0ther#Secret"


def make_settings(**overrides: Any) -> Settings:
    """Settings with the minimum bcrypt cost so tests stay fast."""
    values: dict[str, Any] = {"APP_ENV": "dev", "BCRYPT_ROUNDS": 4}
    values.update(overrides)
    return Settings(**values)


def make_engine() -> Engine:
    """Fresh in-memory database with all tables and foreign keys enforced."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


class RecordingAuditSink:
    def __init__(self) -> None:
        self.events: list[tuple[Any, int | None, dict[str, Any]]] = []

    def record(self, event: Any, user_id: int | None, details: dict[str, Any] | None = None) -> None:
        self.events.append((event, user_id, details or {}))

    def names(self) -> list[str]:
        return [e.value for e, _, _ in self.events]


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[int, str, str]] = []

    def send_password_reset(self, user_id: int, email: str, token: str) -> None:
        self.sent.append((user_id, email, token))


class FakeClock:
    """Controllable clock for lockout and expiry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime.now(UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)
