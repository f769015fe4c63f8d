from __future__ import annotations

from collections.abc import Callable

import pytest
from httpx import ASGITransport, AsyncClient

from app.main import app
from app.models import Property, User
from packages.lifecycle import PropertyStatus

pytestmark = pytest.mark.usefixtures("api_db")


async def test_admin_hides_and_restores_listing(
    headers: dict[str, dict[str, str]],
    property_factory: Callable[..., Property],
) -> None:
    row = property_factory()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        hidden = await client.patch(
            f"/admin/listings/{row.id}/visibility",
            headers=headers["admin"],
            json={"hide": True, "reason": "misleading photos"},
        )
        assert hidden.status_code == 200
        assert hidden.json()["hidden"] is True
        assert hidden.json()["hidden_reason"] == "misleading photos"

        search = await client.get("/properties/search", headers=headers["tenant"])
        assert search.json()["items"] == []

        by_owner = await client.patch(
            f"/admin/listings/{row.id}/visibility", headers=headers["owner"], json={"hide": False}
        )
        assert by_owner.status_code == 403

        shown = await client.patch(f"/admin/listings/{row.id}/visibility", headers=headers["admin"], json={"hide": False})
        assert shown.json()["hidden"] is False
        assert shown.json()["hidden_at"] is None


async def test_admin_listings_include_deleted(
    headers: dict[str, dict[str, str]],
    property_factory: Callable[..., Property],
) -> None:
    kept = property_factory()
    removed = property_factory(title="Studio by the station")
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.delete(f"/properties/{removed.id}", headers=headers["owner"])
        listings = await client.get("/admin/listings", headers=headers["admin"])
        denied = await client.get("/admin/listings", headers=headers["owner"])

    assert denied.status_code == 403
    body = listings.json()
    assert {item["id"] for item in body["items"]} == {str(kept.id), str(removed.id)}
    assert body["counts"] == {"total": 2, "active": 1, "deleted": 1, "hidden": 0}


async def test_admin_receipts_and_stats(
    headers: dict[str, dict[str, str]],
    users: dict[str, User],
    property_factory: Callable[..., Property],
) -> None:
    first = property_factory(status=PropertyStatus.APPROVED)
    second = property_factory(status=PropertyStatus.APPROVED)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        for row, tenant in ((first, users["tenant"]), (second, users["other_tenant"])):
            confirmed = await client.post(
                "/deals/confirm",
                headers=headers["owner"],
                json={"property_id": str(row.id), "tenant_id": str(tenant.id), "agreed_rent": 1500},
            )
            assert confirmed.status_code == 201
        receipt_id = confirmed.json()["id"]
        await client.patch(f"/deals/receipts/{receipt_id}/cancel", headers=headers["admin"], json={"reason": "fraud"})

        receipts = await client.get("/admin/receipts", headers=headers["admin"])
        cancelled = await client.get("/admin/receipts", headers=headers["admin"], params={"status": "cancelled"})
        stats = await client.get("/admin/stats", headers=headers["admin"])

    assert receipts.json()["pagination"]["total"] == 2
    assert [item["id"] for item in cancelled.json()["items"]] == [receipt_id]
    body = stats.json()
    assert body["users"]["total"] == 5
    assert body["users"]["owner"] == 2
    assert body["listings"]["rented"] == 1
    assert body["listings"]["available"] == 1
    assert body["receipts"] == {"confirmed": 1, "cancelled": 1, "completed": 0, "total": 2}


async def test_suspension_toggles_and_blocks_access(headers: dict[str, dict[str, str]], users: dict[str, User]) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        suspended = await client.patch(f"/admin/users/{users['tenant'].id}/suspension", headers=headers["admin"])
        assert suspended.json()["suspended"] is True

        blocked = await client.get("/notifications", headers=headers["tenant"])
        assert blocked.status_code == 403

        admin_target = await client.patch(f"/admin/users/{users['admin'].id}/suspension", headers=headers["admin"])
        assert admin_target.status_code == 400

        reinstated = await client.patch(f"/admin/users/{users['tenant'].id}/suspension", headers=headers["admin"])
        assert reinstated.json()["suspended"] is False
        assert reinstated.json()["suspended_at"] is None

        allowed = await client.get("/notifications", headers=headers["tenant"])
        assert allowed.status_code == 200
