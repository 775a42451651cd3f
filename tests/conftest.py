import os
import tempfile
import uuid

import pytest

# Settings are read at import time; point them at a throwaway database first.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("AUTO_MIGRATE", "false")
os.environ.setdefault("NOTIFY_MATRIX", "{}")
os.environ.setdefault("BLOCKED_SITES", "")


def pytest_configure():
    fd, path = tempfile.mkstemp(prefix="windtrack_test_", suffix=".db")
    os.close(fd)
    os.environ["DATABASE_URL"] = f"sqlite+pysqlite:///{path}"

    from apps.visit_backend.migrate import upgrade_head

    upgrade_head(os.environ["DATABASE_URL"])


class RecordingSink:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[str, str, list[str]]] = []

    def send(self, subject, body, recipients):
        if self.fail:
            raise ConnectionRefusedError("smtp down")
        self.sent.append((subject, body, list(recipients)))


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def app():
    from apps.visit_backend.main import app as fastapi_app
    from apps.visit_backend.rate_limit import build_limiter

    fastapi_app.state.rate_guard = build_limiter()
    fastapi_app.state.notifier = RecordingSink()
    return fastapi_app


@pytest.fixture()
def client(app):
    from fastapi.testclient import TestClient

    return TestClient(app)


@pytest.fixture()
def sink(app):
    return app.state.notifier


@pytest.fixture()
def site():
    return f"Park-{uuid.uuid4().hex[:8]}"


@pytest.fixture()
def db():
    from common_core.db import SessionLocal

    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def failing_sink(app):
    app.state.notifier = RecordingSink(fail=True)
    return app.state.notifier
