"""
Tests for admin dashboard, user listing, audit trail and driver lookup.
"""

from datetime import timedelta

from backend.app.core.timeutils import utc_now
from backend.app.models.enums import UserRole
from backend.app.services.analytics import AnalyticsService
from backend.app.services.audit import AuditAction


async def _complete(client, request_id, driver):
    for target in ("in_progress", "completed"):
        response = await client.patch(
            f"/v1/transport-requests/{request_id}/status", json={"status": target}, headers=driver.headers
        )
        assert response.status_code == 200


async def test_admin_stats(client, admin, client_user, driver, other_driver, new_request, assigned_request):
    await new_request(client_user)
    await new_request(client_user)
    finished = await assigned_request()
    await _complete(client, finished.id, driver)

    response = await client.get("/v1/admin/stats", headers=admin.headers)

    assert response.status_code == 200
    assert response.json() == {
        "total_requests": 3,
        "active_drivers": 2,
        "pending_approval": 2,
        "completed_today": 1,
    }


async def test_completed_today_uses_current_day_only(client, db_session, assigned_request, driver):
    finished = await assigned_request()
    await _complete(client, finished.id, driver)

    tomorrow = await AnalyticsService.get_admin_stats(db_session, now=utc_now() + timedelta(days=1))
    assert tomorrow.completed_today == 0


async def test_stats_require_admin(client, client_user, driver):
    for account in (client_user, driver):
        response = await client.get("/v1/admin/stats", headers=account.headers)
        assert response.status_code == 403
        assert response.json()["error_code"] == "ERR_PERM_001"


async def test_list_users_with_role_filter_and_pages(client, admin, make_user):
    for _ in range(3):
        await make_user(UserRole.DRIVER)
    await make_user(UserRole.CLIENT)

    everyone = await client.get("/v1/admin/users", headers=admin.headers)
    assert everyone.json()["total"] == 5

    drivers = await client.get("/v1/admin/users?role=driver&page_size=2", headers=admin.headers)
    body = drivers.json()
    assert body["total"] == 3
    assert body["page_size"] == 2
    assert len(body["users"]) == 2
    assert all(u["role"] == "driver" for u in body["users"])

    page_two = await client.get("/v1/admin/users?role=driver&page_size=2&page=2", headers=admin.headers)
    assert len(page_two.json()["users"]) == 1


async def test_audit_trail_records_business_events(client, admin, client_user, driver, request_body, bid_body):
    created = await client.post("/v1/transport-requests", json=request_body(), headers=client_user.headers)
    request_id = created.json()["id"]
    await client.post("/v1/bids", json=bid_body(request_id), headers=driver.headers)
    await client.patch(
        f"/v1/transport-requests/{request_id}/assign", json={"driver_id": driver.id}, headers=admin.headers
    )

    response = await client.get(
        f"/v1/admin/audit-logs?entity_type=transport_request&entity_id={request_id}",
        headers=admin.headers
    )

    assert response.status_code == 200
    actions = {log["action"] for log in response.json()["logs"]}
    assert actions == {AuditAction.REQUEST_CREATED, AuditAction.DRIVER_ASSIGNED}

    bids = await client.get(
        f"/v1/admin/audit-logs?action={AuditAction.BID_SUBMITTED}", headers=admin.headers
    )
    assert bids.json()["total"] == 1
    assert bids.json()["logs"][0]["actor_id"] == driver.id


async def test_driver_profile_lookup(client, admin, client_user, driver):
    for account in (admin, client_user):
        response = await client.get(f"/v1/drivers/{driver.id}", headers=account.headers)
        assert response.status_code == 200
        assert response.json()["email"] == driver.email
        assert "hashed_password" not in response.json()


async def test_driver_profile_only_for_drivers(client, admin, client_user, other_driver):
    not_a_driver = await client.get(f"/v1/drivers/{client_user.id}", headers=admin.headers)
    assert not_a_driver.status_code == 404

    from_driver = await client.get(f"/v1/drivers/{other_driver.id}", headers=other_driver.headers)
    assert from_driver.status_code == 403


async def test_health_and_root(client):
    health = await client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"
    assert health.json()["redis"] == "connected"

    root = await client.get("/")
    assert root.json()["docs"] == "/docs"
    assert "X-Correlation-ID" in root.headers
