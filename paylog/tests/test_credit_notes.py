"""
Integration tests for credit notes.

An approved credit note takes its amount, net of reversed TDS, off the
invoice balance: a 200 note reversing 20 of TDS lowers 900 payable to 720.
"""

from decimal import Decimal

import pytest

FAR_DUE_DATE = "2099-12-31"


def auth(token):
    return {"Authorization": f"Bearer {token}"}


async def create_invoice(client, token, master_data, number="INV-001", amount="1000", **extra):
    payload = {
        "invoice_number": number,
        "invoice_profile_id": master_data["profile_id"],
        "invoice_amount": amount,
        "invoice_date": "2024-01-01",
        "due_date": FAR_DUE_DATE,
        **extra
    }
    return await client.post("/v1/invoices", json=payload, headers=auth(token))


async def add_credit_note(client, token, invoice_id, amount="200", on="2024-01-10", **extra):
    payload = {
        "credit_note_number": "CN-001",
        "credit_note_date": on,
        "amount": amount,
        "reason": "Rate revised",
        **extra
    }
    return await client.post(f"/v1/invoices/{invoice_id}/credit-notes", json=payload, headers=auth(token))


async def invoice_detail(client, token, invoice_id):
    return (await client.get(f"/v1/invoices/{invoice_id}", headers=auth(token))).json()


@pytest.mark.asyncio
async def test_admin_credit_note_reduces_remaining_balance(client, admin_token, master_data):
    invoice = (await create_invoice(client, admin_token, master_data)).json()

    response = await add_credit_note(client, admin_token, invoice["id"], tds_applicable=True, tds_amount="20")
    assert response.status_code == 201
    credit_note = response.json()
    assert credit_note["status"] == "approved"
    assert Decimal(credit_note["tds_amount"]) == Decimal("20")

    detail = await invoice_detail(client, admin_token, invoice["id"])
    assert Decimal(detail["credit_note_total"]) == Decimal("180")
    assert Decimal(detail["remaining_balance"]) == Decimal("720")
    assert detail["status"] == "unpaid"

    too_much = await client.post(
        f"/v1/invoices/{invoice['id']}/payments",
        json={"amount_paid": "720.01", "payment_date": "2024-01-15"},
        headers=auth(admin_token)
    )
    assert too_much.status_code == 400

    rest = await client.post(
        f"/v1/invoices/{invoice['id']}/payments",
        json={"amount_paid": "720", "payment_date": "2024-01-15"},
        headers=auth(admin_token)
    )
    assert rest.status_code == 201
    assert (await invoice_detail(client, admin_token, invoice["id"]))["status"] == "paid"


@pytest.mark.asyncio
async def test_credit_note_alone_can_settle_invoice(client, admin_token, master_data):
    invoice = (await create_invoice(client, admin_token, master_data, amount="100", tds_applicable=False)).json()

    await add_credit_note(client, admin_token, invoice["id"], amount="100")

    detail = await invoice_detail(client, admin_token, invoice["id"])
    assert detail["status"] == "paid"
    assert Decimal(detail["remaining_balance"]) == 0


@pytest.mark.asyncio
async def test_standard_user_credit_note_waits_for_approval(client, admin_token, user_token, master_data):
    token, user_id = user_token
    invoice = (await create_invoice(client, admin_token, master_data)).json()

    credit_note = (await add_credit_note(client, token, invoice["id"])).json()
    assert credit_note["status"] == "pending_approval"
    assert credit_note["created_by_user_id"] == user_id

    detail = await invoice_detail(client, token, invoice["id"])
    assert Decimal(detail["remaining_balance"]) == Decimal("900")

    approved = await client.post(f"/v1/credit-notes/{credit_note['id']}/approve", headers=auth(admin_token))
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"
    assert approved.json()["approved_by_user_id"] is not None

    detail = await invoice_detail(client, token, invoice["id"])
    assert Decimal(detail["remaining_balance"]) == Decimal("700")

    again = await client.post(f"/v1/credit-notes/{credit_note['id']}/approve", headers=auth(admin_token))
    assert again.status_code == 400
    assert "already approved" in again.json()["message"]

    reject_approved = await client.post(
        f"/v1/credit-notes/{credit_note['id']}/reject", json={"reason": "Late"}, headers=auth(admin_token)
    )
    assert reject_approved.status_code == 400


@pytest.mark.asyncio
async def test_rejected_credit_note(client, admin_token, user_token, master_data):
    token, _ = user_token
    invoice = (await create_invoice(client, admin_token, master_data)).json()
    credit_note = (await add_credit_note(client, token, invoice["id"])).json()

    no_reason = await client.post(
        f"/v1/credit-notes/{credit_note['id']}/reject", json={}, headers=auth(admin_token)
    )
    assert no_reason.status_code == 422

    rejected = await client.post(
        f"/v1/credit-notes/{credit_note['id']}/reject", json={"reason": "No vendor confirmation"},
        headers=auth(admin_token)
    )
    assert rejected.status_code == 200
    assert rejected.json()["status"] == "rejected"
    assert rejected.json()["rejection_reason"] == "No vendor confirmation"

    approve_rejected = await client.post(
        f"/v1/credit-notes/{credit_note['id']}/approve", headers=auth(admin_token)
    )
    assert approve_rejected.status_code == 400

    detail = await invoice_detail(client, token, invoice["id"])
    assert Decimal(detail["remaining_balance"]) == Decimal("900")


@pytest.mark.asyncio
async def test_standard_user_cannot_decide_credit_notes(client, admin_token, user_token, master_data):
    token, _ = user_token
    invoice = (await create_invoice(client, admin_token, master_data)).json()
    credit_note = (await add_credit_note(client, token, invoice["id"])).json()

    approve = await client.post(f"/v1/credit-notes/{credit_note['id']}/approve", headers=auth(token))
    assert approve.status_code == 403

    delete = await client.delete(f"/v1/credit-notes/{credit_note['id']}", headers=auth(token))
    assert delete.status_code == 403


@pytest.mark.asyncio
async def test_tds_reversal_validation(client, admin_token, master_data):
    no_tds_invoice = (await create_invoice(
        client, admin_token, master_data, number="INV-NT", tds_applicable=False
    )).json()
    reversal_without_tds = await add_credit_note(
        client, admin_token, no_tds_invoice["id"], tds_applicable=True, tds_amount="10"
    )
    assert reversal_without_tds.status_code == 400
    assert "does not have TDS" in reversal_without_tds.json()["message"]

    invoice = (await create_invoice(client, admin_token, master_data)).json()
    missing_amount = await add_credit_note(client, admin_token, invoice["id"], tds_applicable=True)
    assert missing_amount.status_code == 400
    assert missing_amount.json()["error_code"] == "ERR_INVALID_ARGUMENT"

    above_amount = await add_credit_note(
        client, admin_token, invoice["id"], amount="50", tds_applicable=True, tds_amount="60"
    )
    assert above_amount.status_code == 400

    # A stray TDS amount without tds_applicable is not stored
    plain = await add_credit_note(client, admin_token, invoice["id"], tds_amount="10")
    assert plain.status_code == 201
    assert plain.json()["tds_amount"] is None


@pytest.mark.asyncio
async def test_credit_note_needs_active_approved_invoice(client, admin_token, user_token, master_data):
    token, _ = user_token

    pending = (await create_invoice(client, token, master_data, number="INV-P")).json()
    on_pending = await add_credit_note(client, admin_token, pending["id"])
    assert on_pending.status_code == 400
    assert on_pending.json()["error_code"] == "ERR_BUSINESS_RULE"

    invoice = (await create_invoice(client, admin_token, master_data)).json()
    await client.post(
        f"/v1/invoices/{invoice['id']}/archive", json={"reason": "Duplicate"}, headers=auth(admin_token)
    )
    on_archived = await add_credit_note(client, admin_token, invoice["id"])
    assert on_archived.status_code == 400
    assert "archived" in on_archived.json()["message"]

    unknown = await add_credit_note(client, admin_token, 9999)
    assert unknown.status_code == 404

    bad_amount = await add_credit_note(client, admin_token, invoice["id"], amount="0")
    assert bad_amount.status_code == 422


@pytest.mark.asyncio
async def test_deleting_credit_note_restores_balance(client, admin_token, master_data):
    invoice = (await create_invoice(client, admin_token, master_data, amount="100", tds_applicable=False)).json()
    credit_note = (await add_credit_note(client, admin_token, invoice["id"], amount="100")).json()
    assert (await invoice_detail(client, admin_token, invoice["id"]))["status"] == "paid"

    deleted = await client.delete(
        f"/v1/credit-notes/{credit_note['id']}",
        params={"reason": "Raised in error"},
        headers=auth(admin_token)
    )
    assert deleted.status_code == 200
    assert deleted.json()["deleted_at"] is not None
    assert deleted.json()["deleted_reason"] == "Raised in error"

    detail = await invoice_detail(client, admin_token, invoice["id"])
    assert detail["status"] == "unpaid"
    assert Decimal(detail["remaining_balance"]) == Decimal("100")

    again = await client.delete(f"/v1/credit-notes/{credit_note['id']}", headers=auth(admin_token))
    assert again.status_code == 400

    approve_deleted = await client.post(
        f"/v1/credit-notes/{credit_note['id']}/approve", headers=auth(admin_token)
    )
    assert approve_deleted.status_code == 400


@pytest.mark.asyncio
async def test_list_credit_notes_with_totals(client, admin_token, master_data):
    invoice = (await create_invoice(client, admin_token, master_data)).json()
    await add_credit_note(client, admin_token, invoice["id"], amount="100", tds_applicable=True, tds_amount="10")
    second = (await add_credit_note(
        client, admin_token, invoice["id"], amount="50", on="2024-01-20", credit_note_number="CN-002"
    )).json()
    await client.delete(f"/v1/credit-notes/{second['id']}", headers=auth(admin_token))

    live = await client.get(f"/v1/invoices/{invoice['id']}/credit-notes", headers=auth(admin_token))
    assert live.status_code == 200
    assert live.json()["total"] == 1
    assert Decimal(live.json()["total_amount"]) == Decimal("100")
    assert Decimal(live.json()["total_tds_amount"]) == Decimal("10")

    everything = await client.get(
        f"/v1/invoices/{invoice['id']}/credit-notes?include_deleted=true", headers=auth(admin_token)
    )
    assert [cn["credit_note_number"] for cn in everything.json()["credit_notes"]] == ["CN-001", "CN-002"]
    assert Decimal(everything.json()["total_amount"]) == Decimal("100")

    missing = await client.get("/v1/invoices/9999/credit-notes", headers=auth(admin_token))
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_credit_note_appears_on_ledger(client, admin_token, master_data):
    invoice = (await create_invoice(client, admin_token, master_data)).json()
    credit_note = (await add_credit_note(
        client, admin_token, invoice["id"], tds_applicable=True, tds_amount="20"
    )).json()

    response = await client.get(f"/v1/ledger/profiles/{master_data['profile_id']}", headers=auth(admin_token))

    entries = response.json()["entries"]
    assert [e["id"] for e in entries] == [f"inv-{invoice['id']}", f"cn-{credit_note['id']}"]
    assert entries[1]["type"] == "credit_note"
    assert Decimal(entries[1]["credited_amount"]) == Decimal("180")
    assert Decimal(entries[1]["running_balance"]) == Decimal("720")

    summary = response.json()["summary"]
    assert Decimal(summary["total_credited"]) == Decimal("180")
    assert Decimal(summary["outstanding_balance"]) == Decimal("720")
    assert summary["credit_note_count"] == 1


@pytest.mark.asyncio
async def test_credit_note_events_are_audited(client, admin_token, master_data):
    invoice = (await create_invoice(client, admin_token, master_data)).json()
    credit_note = (await add_credit_note(client, admin_token, invoice["id"])).json()
    await client.delete(f"/v1/credit-notes/{credit_note['id']}", headers=auth(admin_token))

    response = await client.get(
        f"/v1/admin/audit-logs?target_type=credit_note&target_id={credit_note['id']}",
        headers=auth(admin_token)
    )

    logs = response.json()["logs"]
    assert sorted(log["action"] for log in logs) == ["CREDIT_NOTE_CREATED", "CREDIT_NOTE_DELETED"]
