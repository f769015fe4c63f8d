import uuid
from datetime import timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from rentloop_worker import main as worker_main
from rentloop_worker.main import ping


class _DummySession:
    def __init__(self, row: object = None, rowcount: int = 0) -> None:
        self.row = row
        self.rowcount = rowcount
        self.commits = 0
        self.added: list[object] = []
        self.statements: list[object] = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def scalar(self, stmt):  # noqa: ANN001
        return self.row

    def execute(self, stmt):  # noqa: ANN001
        self.statements.append(stmt)
        return SimpleNamespace(rowcount=self.rowcount)

    def add(self, row: object) -> None:
        self.added.append(row)

    def flush(self) -> None:
        return None

    def commit(self) -> None:
        self.commits += 1


def test_ping_task() -> None:
    assert ping() == "pong"


def test_deliver_stamps_delivered_at(monkeypatch: pytest.MonkeyPatch) -> None:
    notification = SimpleNamespace(id=uuid.uuid4(), delivered_at=None)
    session = _DummySession(row=notification)
    monkeypatch.setattr(worker_main, "SessionLocal", lambda: session)

    assert worker_main.deliver_notification(str(notification.id)) == "delivered"
    assert notification.delivered_at is not None
    assert session.commits == 1


def test_deliver_is_idempotent(monkeypatch: pytest.MonkeyPatch) -> None:
    stamped = worker_main._now() - timedelta(minutes=5)
    notification = SimpleNamespace(id=uuid.uuid4(), delivered_at=stamped)
    session = _DummySession(row=notification)
    monkeypatch.setattr(worker_main, "SessionLocal", lambda: session)

    assert worker_main.deliver_notification(str(notification.id)) == "already_delivered"
    assert notification.delivered_at == stamped
    assert session.commits == 0


def test_deliver_handles_missing_notification(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(worker_main, "SessionLocal", lambda: _DummySession(row=None))
    assert worker_main.deliver_notification(str(uuid.uuid4())) == "missing"


def test_deliver_retries_on_database_error(monkeypatch: pytest.MonkeyPatch) -> None:
    class _BrokenSession(_DummySession):
        def scalar(self, stmt):  # noqa: ANN001
            raise OperationalError("SELECT", {}, Exception("db down"))

    class _Retry(Exception):
        pass

    def _fake_retry(*args: object, **kwargs: object) -> Exception:
        return _Retry()

    monkeypatch.setattr(worker_main, "SessionLocal", lambda: _BrokenSession())
    monkeypatch.setattr(worker_main.deliver_notification, "retry", _fake_retry)

    with pytest.raises(_Retry):
        worker_main.deliver_notification(str(uuid.uuid4()))


def test_purge_read_reports_count_and_audits(monkeypatch: pytest.MonkeyPatch) -> None:
    session = _DummySession(rowcount=3)
    monkeypatch.setattr(worker_main, "SessionLocal", lambda: session)

    assert worker_main.purge_read_notifications() == 3
    assert session.commits == 1
    assert [row.action for row in session.added] == ["notifications.purged"]


def test_purge_read_noop(monkeypatch: pytest.MonkeyPatch) -> None:
    session = _DummySession(rowcount=0)
    monkeypatch.setattr(worker_main, "SessionLocal", lambda: session)

    assert worker_main.purge_read_notifications() == 0
    assert session.added == []


def test_beat_schedules_purge() -> None:
    schedule = worker_main.app.conf.beat_schedule
    assert schedule["purge-read-notifications"]["task"] == "worker.notifications.purge_read"
