"""
Integration tests for master data: vendors, entities, categories, profiles
and payment types.
"""

import pytest


def auth(token):
    return {"Authorization": f"Bearer {token}"}


async def create_vendor(client, token, name, **extra):
    return await client.post("/v1/master-data/vendors", json={"name": name, **extra}, headers=auth(token))


@pytest.mark.asyncio
async def test_admin_vendor_is_approved_immediately(client, admin_token):
    response = await create_vendor(client, admin_token, "Acme Corp", address="12 MG Road", gst_exemption=True)

    assert response.status_code == 201
    vendor = response.json()["vendor"]
    assert vendor["name"] == "Acme Corp"
    assert vendor["status"] == "APPROVED"
    assert vendor["gst_exemption"] is True
    assert vendor["approved_at"] is not None
    assert response.json()["similar_vendors"] == []


@pytest.mark.asyncio
@pytest.mark.parametrize("duplicate", ["Acme Corp", "ACME CORP", "  acme corp  "])
async def test_exact_duplicate_is_rejected(client, admin_token, duplicate):
    await create_vendor(client, admin_token, "Acme Corp")

    response = await create_vendor(client, admin_token, duplicate)

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_DUPLICATE_001"


@pytest.mark.asyncio
async def test_similar_name_warns_but_creates(client, admin_token):
    await create_vendor(client, admin_token, "Acme Corp")

    response = await create_vendor(client, admin_token, "Acme Corp.")

    assert response.status_code == 201
    similar = response.json()["similar_vendors"]
    assert [s["name"] for s in similar] == ["Acme Corp"]
    assert similar[0]["score"] == pytest.approx(0.9)


@pytest.mark.asyncio
async def test_standard_user_vendor_waits_for_approval(client, admin_token, user_token):
    token, user_id = user_token

    response = await create_vendor(client, token, "Globex")
    assert response.status_code == 201
    vendor = response.json()["vendor"]
    assert vendor["status"] == "PENDING_APPROVAL"
    assert vendor["created_by_user_id"] == user_id
    assert vendor["approved_by_user_id"] is None

    approve = await client.post(f"/v1/master-data/vendors/{vendor['id']}/approve", headers=auth(admin_token))
    assert approve.status_code == 200
    assert approve.json()["status"] == "APPROVED"

    # Only pending vendors can be decided
    again = await client.post(f"/v1/master-data/vendors/{vendor['id']}/approve", headers=auth(admin_token))
    assert again.status_code == 400
    assert again.json()["error_code"] == "ERR_BUSINESS_RULE"


@pytest.mark.asyncio
async def test_reject_vendor_requires_reason(client, admin_token, user_token):
    token, _ = user_token
    vendor_id = (await create_vendor(client, token, "Initech")).json()["vendor"]["id"]

    missing_reason = await client.post(
        f"/v1/master-data/vendors/{vendor_id}/reject", json={}, headers=auth(admin_token)
    )
    assert missing_reason.status_code == 422

    response = await client.post(
        f"/v1/master-data/vendors/{vendor_id}/reject",
        json={"reason": "Duplicate of an existing supplier"},
        headers=auth(admin_token)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "REJECTED"
    assert response.json()["rejection_reason"] == "Duplicate of an existing supplier"
    assert response.json()["is_active"] is False


@pytest.mark.asyncio
async def test_rejected_vendor_not_offered_as_similar(client, admin_token, user_token):
    token, _ = user_token
    vendor_id = (await create_vendor(client, token, "Initech")).json()["vendor"]["id"]
    await client.post(
        f"/v1/master-data/vendors/{vendor_id}/reject",
        json={"reason": "Typo"},
        headers=auth(admin_token)
    )

    response = await client.get("/v1/master-data/vendors/similar?name=Initech", headers=auth(admin_token))

    assert response.status_code == 200
    assert response.json()["matches"] == []


@pytest.mark.asyncio
async def test_similar_vendor_lookup(client, admin_token):
    for name in ["ACME CORP", "Acme Corporation", "Widgets Inc"]:
        await create_vendor(client, admin_token, name)

    strict = await client.get("/v1/master-data/vendors/similar?name=Acme Corp", headers=auth(admin_token))
    assert strict.status_code == 200
    assert strict.json()["threshold"] == 0.8
    assert [m["name"] for m in strict.json()["matches"]] == ["ACME CORP"]
    assert strict.json()["matches"][0]["score"] == 1.0

    loose = await client.get(
        "/v1/master-data/vendors/similar?name=Acme Corp&threshold=0.5", headers=auth(admin_token)
    )
    assert [m["name"] for m in loose.json()["matches"]] == ["ACME CORP", "Acme Corporation"]


@pytest.mark.asyncio
async def test_similar_vendor_threshold_out_of_range(client, admin_token):
    response = await client.get(
        "/v1/master-data/vendors/similar?name=Acme&threshold=1.5", headers=auth(admin_token)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_and_get_vendors(client, admin_token, user_token):
    token, _ = user_token
    await create_vendor(client, admin_token, "Zeta Supplies")
    await create_vendor(client, token, "Alpha Traders")

    listing = await client.get("/v1/master-data/vendors", headers=auth(token))
    assert listing.status_code == 200
    assert [v["name"] for v in listing.json()["vendors"]] == ["Alpha Traders", "Zeta Supplies"]

    pending = await client.get("/v1/master-data/vendors?status=PENDING_APPROVAL", headers=auth(token))
    assert [v["name"] for v in pending.json()["vendors"]] == ["Alpha Traders"]
    assert pending.json()["total"] == 1

    missing = await client.get("/v1/master-data/vendors/9999", headers=auth(token))
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_entity_and_category_duplicates(client, admin_token):
    first = await client.post("/v1/master-data/entities", json={"name": "PayLog India"}, headers=auth(admin_token))
    assert first.status_code == 201
    dup = await client.post("/v1/master-data/entities", json={"name": "paylog india"}, headers=auth(admin_token))
    assert dup.status_code == 409

    category = await client.post("/v1/master-data/categories", json={"name": "Rent"}, headers=auth(admin_token))
    assert category.status_code == 201
    dup_category = await client.post("/v1/master-data/categories", json={"name": "RENT"}, headers=auth(admin_token))
    assert dup_category.status_code == 409

    entities = await client.get("/v1/master-data/entities", headers=auth(admin_token))
    assert [e["name"] for e in entities.json()] == ["PayLog India"]


@pytest.mark.asyncio
async def test_profile_requires_approved_vendor(client, admin_token, user_token):
    token, _ = user_token
    vendor_id = (await create_vendor(client, token, "Pending Vendor")).json()["vendor"]["id"]
    entity_id = (await client.post(
        "/v1/master-data/entities", json={"name": "PayLog India"}, headers=auth(admin_token)
    )).json()["id"]
    category_id = (await client.post(
        "/v1/master-data/categories", json={"name": "Rent"}, headers=auth(admin_token)
    )).json()["id"]

    response = await client.post("/v1/master-data/profiles", json={
        "name": "Pending Profile",
        "vendor_id": vendor_id,
        "entity_id": entity_id,
        "category_id": category_id,
        "tds_applicable": False
    }, headers=auth(admin_token))

    assert response.status_code == 400
    assert "not approved" in response.json()["message"]


@pytest.mark.asyncio
async def test_profile_with_tds_needs_percentage(client, admin_token, master_data):
    response = await client.post("/v1/master-data/profiles", json={
        "name": "Office Maintenance",
        "vendor_id": master_data["vendor_id"],
        "entity_id": master_data["entity_id"],
        "category_id": master_data["category_id"],
        "tds_applicable": True
    }, headers=auth(admin_token))

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_profiles_listed(client, admin_token, master_data):
    response = await client.get("/v1/master-data/profiles", headers=auth(admin_token))

    assert response.status_code == 200
    profiles = response.json()
    assert len(profiles) == 1
    assert profiles[0]["name"] == "Office Rent"
    assert profiles[0]["tds_applicable"] is True


@pytest.mark.asyncio
async def test_vendor_events_are_audited(client, admin_token):
    vendor_id = (await create_vendor(client, admin_token, "Acme Corp")).json()["vendor"]["id"]

    response = await client.get(
        f"/v1/admin/audit-logs?target_type=vendor&target_id={vendor_id}",
        headers=auth(admin_token)
    )

    logs = response.json()["logs"]
    assert [log["action"] for log in logs] == ["VENDOR_CREATED"]
    assert logs[0]["meta_data"]["status"] == "APPROVED"


@pytest.mark.asyncio
async def test_payment_type_lifecycle(client, admin_token, user_token):
    token, _ = user_token

    forbidden = await client.post("/v1/master-data/payment-types", json={"name": "UPI"}, headers=auth(token))
    assert forbidden.status_code == 403

    created = await client.post(
        "/v1/master-data/payment-types",
        json={"name": "UPI", "description": "UPI payment", "requires_reference": True},
        headers=auth(admin_token)
    )
    assert created.status_code == 201
    assert created.json()["requires_reference"] is True
    payment_type_id = created.json()["id"]

    dup = await client.post("/v1/master-data/payment-types", json={"name": "upi"}, headers=auth(admin_token))
    assert dup.status_code == 409

    archived = await client.post(
        f"/v1/master-data/payment-types/{payment_type_id}/archive", headers=auth(admin_token)
    )
    assert archived.status_code == 200

    active = await client.get("/v1/master-data/payment-types", headers=auth(token))
    assert active.json() == []
    everything = await client.get("/v1/master-data/payment-types?include_archived=true", headers=auth(token))
    assert [t["name"] for t in everything.json()] == ["UPI"]

    restored = await client.post(
        f"/v1/master-data/payment-types/{payment_type_id}/restore", headers=auth(admin_token)
    )
    assert restored.status_code == 200
    assert restored.json()["is_active"] is True

    again = await client.post(
        f"/v1/master-data/payment-types/{payment_type_id}/restore", headers=auth(admin_token)
    )
    assert again.status_code == 400

    missing = await client.post("/v1/master-data/payment-types/9999/archive", headers=auth(admin_token))
    assert missing.status_code == 404
