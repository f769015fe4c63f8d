from __future__ import annotations
# ruff: noqa: E402

import os
import sys
import uuid
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

API_ROOT = Path(__file__).resolve().parents[1]
WORKER_ROOT = Path(__file__).resolve().parents[2] / "worker"
REPO_ROOT = Path(__file__).resolve().parents[3]
for path in (API_ROOT, WORKER_ROOT, REPO_ROOT):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

os.environ.setdefault("DATABASE_URL", "sqlite://")

from app.context import RequestContext
from app.db import build_engine, get_db
from app.main import app
from app.models import Base, Property, Role, User
from app.settings import settings
from packages.lifecycle import Furnishing, PropertyStatus

OWNER_ID = uuid.UUID("aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa")
TENANT_ID = uuid.UUID("bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb")
OTHER_TENANT_ID = uuid.UUID("cccccccc-cccc-cccc-cccc-cccccccccccc")
ADMIN_ID = uuid.UUID("dddddddd-dddd-dddd-dddd-dddddddddddd")
OTHER_OWNER_ID = uuid.UUID("eeeeeeee-eeee-eeee-eeee-eeeeeeeeeeee")


@pytest.fixture(autouse=True)
def _test_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "dev_auth_bypass", False)
    monkeypatch.setattr(settings, "notification_dispatch_mode", "mock")
    monkeypatch.setattr(settings, "message_rate_limit_per_minute", 0)


@pytest.fixture()
def db_engine(tmp_path: Path) -> Generator[Engine, None, None]:
    engine = build_engine(f"sqlite:///{tmp_path / 'rentloop-test.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(db_engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=db_engine, autocommit=False, autoflush=False, class_=Session)


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session
        session.rollback()


@pytest.fixture()
def api_db(session_factory: sessionmaker[Session]) -> Generator[None, None, None]:
    def _get_test_db() -> Generator[Session, None, None]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_test_db
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
def users(db_session: Session) -> dict[str, User]:
    rows = {
        "owner": User(id=OWNER_ID, name="Olivia Owner", email="owner@example.com", role=Role.OWNER),
        "other_owner": User(id=OTHER_OWNER_ID, name="Oscar Owner", email="oscar@example.com", role=Role.OWNER),
        "tenant": User(id=TENANT_ID, name="Tara Tenant", email="tara@example.com", phone="+15550100", role=Role.TENANT),
        "other_tenant": User(id=OTHER_TENANT_ID, name="Theo Tenant", email="theo@example.com", role=Role.TENANT),
        "admin": User(id=ADMIN_ID, name="Ada Admin", email="admin@example.com", role=Role.ADMIN),
    }
    db_session.add_all(rows.values())
    db_session.commit()
    return rows


@pytest.fixture()
def headers(users: dict[str, User]) -> dict[str, dict[str, str]]:
    return {key: {"X-Rentloop-User-Id": str(user.id)} for key, user in users.items()}


@pytest.fixture()
def contexts(users: dict[str, User]) -> dict[str, RequestContext]:
    return {key: RequestContext(current_user_id=user.id, current_role=user.role) for key, user in users.items()}


@pytest.fixture()
def property_factory(db_session: Session, users: dict[str, User]) -> Callable[..., Property]:
    def _make(
        owner: str = "owner",
        status: PropertyStatus = PropertyStatus.AVAILABLE,
        **overrides: object,
    ) -> Property:
        values: dict[str, object] = {
            "owner_id": users[owner].id,
            "title": "Garden flat near the river",
            "description": "Two bedroom garden flat with a renovated kitchen.",
            "address": "7 River Road",
            "latitude": 51.5,
            "longitude": -0.12,
            "price": 1800.0,
            "bedrooms": 2,
            "bathrooms": 1,
            "area": 72.0,
            "furnishing": Furnishing.FURNISHED,
            "status": status,
            "available": status not in (PropertyStatus.RENTED, PropertyStatus.ARCHIVED),
            "images_json": [],
        }
        values.update(overrides)
        row = Property(**values)
        db_session.add(row)
        db_session.commit()
        db_session.refresh(row)
        return row

    return _make


@pytest.fixture()
def approved_property(property_factory: Callable[..., Property]) -> Property:
    return property_factory(status=PropertyStatus.APPROVED)
