"""
Integration tests for security features.

Tests token revocation on block, admin APIs, role guards and audit logging.
"""

import pytest

from paylog.app.core.security import get_password_hash
from paylog.app.models.enums import UserRole
from paylog.app.models.user import User


def auth(token):
    return {"Authorization": f"Bearer {token}"}


# TEST 1: Token Revocation
@pytest.mark.asyncio
async def test_blocked_user_loses_access_immediately(client, admin_token, user_token):
    """
    Blocked user should receive 401 immediately, not after token expiry.
    """
    token, user_id = user_token

    me_response = await client.get("/v1/auth/me", headers=auth(token))
    assert me_response.status_code == 200

    block_response = await client.post(
        f"/v1/admin/users/{user_id}/block",
        headers=auth(admin_token),
        json={"reason": "Left the company"}
    )
    assert block_response.status_code == 200
    assert block_response.json()["action"] == "USER_BLOCKED"

    me_after_block = await client.get("/v1/auth/me", headers=auth(token))
    assert me_after_block.status_code == 401
    assert me_after_block.json()["message"] == "User access has been revoked"


# TEST 2: Unblock User
@pytest.mark.asyncio
async def test_unblock_user_allows_login(client, admin_token, user_token):
    """
    Blocked users cannot log in; after unblocking they can.
    """
    _, user_id = user_token

    await client.post(f"/v1/admin/users/{user_id}/block", headers=auth(admin_token), json={})

    login_response = await client.post("/v1/auth/login", json={
        "username": "clerk",
        "password": "password123"
    })
    assert login_response.status_code == 403

    unblock_response = await client.post(
        f"/v1/admin/users/{user_id}/unblock",
        headers=auth(admin_token),
        json={"reason": "Back from leave"}
    )
    assert unblock_response.status_code == 200

    login_response = await client.post("/v1/auth/login", json={
        "username": "clerk",
        "password": "password123"
    })
    assert login_response.status_code == 200

    me_response = await client.get("/v1/auth/me", headers=auth(login_response.json()["access_token"]))
    assert me_response.status_code == 200


@pytest.mark.asyncio
async def test_block_twice_and_unblock_active_user(client, admin_token, user_token):
    _, user_id = user_token

    first = await client.post(f"/v1/admin/users/{user_id}/block", headers=auth(admin_token), json={})
    assert first.status_code == 200

    second = await client.post(f"/v1/admin/users/{user_id}/block", headers=auth(admin_token), json={})
    assert second.status_code == 400
    assert second.json()["message"] == "User is already blocked"

    await client.post(f"/v1/admin/users/{user_id}/unblock", headers=auth(admin_token), json={})
    again = await client.post(f"/v1/admin/users/{user_id}/unblock", headers=auth(admin_token), json={})
    assert again.status_code == 400


# TEST 3: Admin hierarchy
@pytest.mark.asyncio
async def test_admin_cannot_block_admin(client, db_session, admin_token):
    """
    Only a SUPER_ADMIN may block another admin.
    """
    other_admin = User(
        email="second@test.com",
        username="second",
        hashed_password=get_password_hash("admin123"),
        role=UserRole.ADMIN,
        is_active=True
    )
    db_session.add(other_admin)
    await db_session.commit()

    response = await client.post(
        f"/v1/admin/users/{other_admin.id}/block",
        headers=auth(admin_token),
        json={}
    )
    assert response.status_code == 403
    assert response.json()["message"] == "Cannot block another admin user"


@pytest.mark.asyncio
async def test_super_admin_can_block_admin(client, admin_token, super_admin_token):
    users = await client.get("/v1/admin/users?role=ADMIN", headers=auth(super_admin_token))
    admin_id = users.json()["users"][0]["id"]

    response = await client.post(f"/v1/admin/users/{admin_id}/block", headers=auth(super_admin_token), json={})
    assert response.status_code == 200

    me_response = await client.get("/v1/auth/me", headers=auth(admin_token))
    assert me_response.status_code == 401


@pytest.mark.asyncio
async def test_cannot_block_yourself(client, super_admin_token):
    me = await client.get("/v1/auth/me", headers=auth(super_admin_token))

    response = await client.post(
        f"/v1/admin/users/{me.json()['id']}/block",
        headers=auth(super_admin_token),
        json={}
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot block yourself"


@pytest.mark.asyncio
async def test_block_unknown_user(client, admin_token):
    response = await client.post("/v1/admin/users/9999/block", headers=auth(admin_token), json={})
    assert response.status_code == 404


# TEST 4: Admin Can List Users
@pytest.mark.asyncio
async def test_admin_can_list_users(client, admin_token, user_token):
    response = await client.get("/v1/admin/users", headers=auth(admin_token))
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert {u["username"] for u in data["users"]} == {"admin", "clerk"}

    filtered = await client.get("/v1/admin/users?role=STANDARD_USER", headers=auth(admin_token))
    assert [u["username"] for u in filtered.json()["users"]] == ["clerk"]


# TEST 5: Non-Admin Cannot Access Admin Endpoints
@pytest.mark.asyncio
@pytest.mark.parametrize("method, path", [
    ("get", "/v1/admin/users"),
    ("get", "/v1/admin/audit-logs"),
    ("post", "/v1/admin/invoices/recalculate-status"),
    ("post", "/v1/master-data/entities"),
    ("post", "/v1/master-data/vendors/1/approve"),
    ("post", "/v1/payments/1/approve"),
])
async def test_standard_user_gets_403_on_admin_endpoints(client, user_token, method, path):
    token, _ = user_token

    kwargs = {"headers": auth(token)}
    if method == "post":
        kwargs["json"] = {"name": "Anything"}
    response = await getattr(client, method)(path, **kwargs)

    assert response.status_code == 403


# TEST 6: Audit Logging
@pytest.mark.asyncio
async def test_block_action_is_audited(client, admin_token, user_token):
    _, user_id = user_token

    block_response = await client.post(
        f"/v1/admin/users/{user_id}/block",
        headers=auth(admin_token),
        json={"reason": "Test audit"}
    )
    audit_log_id = block_response.json()["audit_log_id"]

    audit_response = await client.get(
        f"/v1/admin/audit-logs?user_id={user_id}",
        headers=auth(admin_token)
    )
    assert audit_response.status_code == 200
    logs = audit_response.json()["logs"]
    blocked = [log for log in logs if log["action"] == "USER_BLOCKED"]
    assert len(blocked) == 1
    assert blocked[0]["id"] == audit_log_id
    assert blocked[0]["meta_data"] == {"reason": "Test audit"}


@pytest.mark.asyncio
async def test_failed_login_is_audited(client, admin_token):
    login_response = await client.post("/v1/auth/login", json={
        "username": "admin",
        "password": "wrongpassword"
    })
    assert login_response.status_code == 401

    audit_response = await client.get(
        "/v1/admin/audit-logs?action=LOGIN_FAILED",
        headers=auth(admin_token)
    )
    logs = audit_response.json()["logs"]
    assert len(logs) == 1
    assert logs[0]["meta_data"]["reason"] == "Invalid password"
