from __future__ import annotations

import uuid

import pytest
from fastapi import HTTPException
from httpx import ASGITransport, AsyncClient

from app.context import RequestContext, require_role
from app.main import app
from app.models import Role, User
from app.settings import settings


def test_require_role_allows_listed_roles() -> None:
    context = RequestContext(current_user_id=uuid.uuid4(), current_role=Role.OWNER)
    require_role(context, Role.OWNER, Role.ADMIN)

    with pytest.raises(HTTPException) as exc_info:
        require_role(context, Role.ADMIN)
    assert exc_info.value.status_code == 403


@pytest.mark.usefixtures("api_db")
async def test_unknown_user_is_unauthorized(users: dict[str, User]) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/notifications", headers={"X-Rentloop-User-Id": str(uuid.uuid4())})

    assert response.status_code == 401


@pytest.mark.usefixtures("api_db")
async def test_dev_bypass_uses_configured_identity(monkeypatch: pytest.MonkeyPatch, users: dict[str, User]) -> None:
    monkeypatch.setattr(settings, "dev_auth_bypass", True)
    monkeypatch.setattr(settings, "dev_user_id", str(users["owner"].id))
    monkeypatch.setattr(settings, "dev_role", "owner")
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/properties/mine")

    assert response.status_code == 200
    assert response.json() == []
