"""
Integration tests for the ledger and TDS calculator endpoints.
"""

import csv
import io
from decimal import Decimal

import pytest


def auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def ledger_data(client, admin_token, master_data):
    """
    Office Rent profile (10% TDS) with:
        INV-001  1000 on 2024-01-01, paid 900 on 2024-01-15
        INV-002   500 on 2024-02-01, unpaid
    """
    headers = auth(admin_token)

    bank = await client.post("/v1/master-data/payment-types", json={
        "name": "Bank Transfer",
        "requires_reference": True
    }, headers=headers)
    assert bank.status_code == 201

    first = await client.post("/v1/invoices", json={
        "invoice_number": "INV-001",
        "invoice_profile_id": master_data["profile_id"],
        "invoice_amount": "1000",
        "invoice_date": "2024-01-01",
        "due_date": "2099-12-31"
    }, headers=headers)
    assert first.status_code == 201

    payment = await client.post(f"/v1/invoices/{first.json()['id']}/payments", json={
        "amount_paid": "900",
        "payment_date": "2024-01-15",
        "payment_type_id": bank.json()["id"],
        "payment_reference": "UTR123"
    }, headers=headers)
    assert payment.status_code == 201

    second = await client.post("/v1/invoices", json={
        "invoice_number": "INV-002",
        "invoice_profile_id": master_data["profile_id"],
        "invoice_amount": "500",
        "invoice_date": "2024-02-01",
        "due_date": "2099-12-31"
    }, headers=headers)
    assert second.status_code == 201

    return {
        **master_data,
        "first_invoice_id": first.json()["id"],
        "second_invoice_id": second.json()["id"],
        "payment_id": payment.json()["id"],
    }


@pytest.mark.asyncio
async def test_single_invoice_scenario(client, admin_token, master_data):
    """1000 at 10% TDS, paid 900: balance returns to zero."""
    headers = auth(admin_token)
    invoice = await client.post("/v1/invoices", json={
        "invoice_number": "INV-001",
        "invoice_profile_id": master_data["profile_id"],
        "invoice_amount": "1000",
        "invoice_date": "2024-01-01"
    }, headers=headers)
    await client.post(f"/v1/invoices/{invoice.json()['id']}/payments", json={
        "amount_paid": "900",
        "payment_date": "2024-01-15"
    }, headers=headers)

    response = await client.get(f"/v1/ledger/profiles/{master_data['profile_id']}", headers=headers)

    assert response.status_code == 200
    entries = response.json()["entries"]
    assert [e["type"] for e in entries] == ["invoice", "payment"]
    assert Decimal(entries[0]["tds_amount_applied"]) == Decimal("100")
    assert Decimal(entries[0]["payable_amount"]) == Decimal("900")
    assert Decimal(entries[0]["running_balance"]) == Decimal("900")
    assert Decimal(entries[1]["paid_amount"]) == Decimal("900")
    assert Decimal(entries[1]["running_balance"]) == 0

    summary = response.json()["summary"]
    assert Decimal(summary["total_invoiced"]) == Decimal("1000")
    assert Decimal(summary["total_tds_deducted"]) == Decimal("100")
    assert Decimal(summary["total_payable"]) == Decimal("900")
    assert Decimal(summary["total_paid"]) == Decimal("900")
    assert Decimal(summary["outstanding_balance"]) == 0
    assert summary["unpaid_invoice_count"] == 0
    assert summary["profile_name"] == "Office Rent"
    assert summary["vendor_name"] == "Acme Corp"
    assert summary["entity_name"] == "PayLog India Pvt Ltd"


@pytest.mark.asyncio
async def test_ledger_entries_and_running_balance(client, admin_token, ledger_data):
    response = await client.get(f"/v1/ledger/profiles/{ledger_data['profile_id']}", headers=auth(admin_token))

    assert response.status_code == 200
    entries = response.json()["entries"]
    assert [e["id"] for e in entries] == [
        f"inv-{ledger_data['first_invoice_id']}",
        f"pay-{ledger_data['payment_id']}",
        f"inv-{ledger_data['second_invoice_id']}",
    ]
    assert [Decimal(e["running_balance"]) for e in entries] == [Decimal("900"), Decimal("0"), Decimal("450")]
    assert entries[1]["description"] == "Payment (Bank Transfer)"
    assert entries[1]["transaction_ref"] == "UTR123"
    assert entries[0]["description"] == "Invoice #INV-001"

    summary = response.json()["summary"]
    assert Decimal(summary["outstanding_balance"]) == Decimal("450")
    assert summary["invoice_count"] == 2
    assert summary["payment_count"] == 1
    assert summary["unpaid_invoice_count"] == 1
    assert summary["overdue_invoice_count"] == 0


@pytest.mark.asyncio
async def test_entry_type_filter_keeps_running_balances(client, admin_token, ledger_data):
    url = f"/v1/ledger/profiles/{ledger_data['profile_id']}"

    payments = await client.get(f"{url}?entry_type=payment", headers=auth(admin_token))
    entries = payments.json()["entries"]
    assert [e["type"] for e in entries] == ["payment"]
    assert Decimal(entries[0]["running_balance"]) == 0
    assert payments.json()["filters"]["entry_type"] == "payment"

    invoices = await client.get(f"{url}?entry_type=invoice", headers=auth(admin_token))
    assert [Decimal(e["running_balance"]) for e in invoices.json()["entries"]] == [Decimal("900"), Decimal("450")]
    # Summary describes the whole ledger
    assert Decimal(invoices.json()["summary"]["outstanding_balance"]) == Decimal("450")


@pytest.mark.asyncio
async def test_search_and_date_range_narrow_invoices(client, admin_token, ledger_data):
    url = f"/v1/ledger/profiles/{ledger_data['profile_id']}"

    search = await client.get(f"{url}?search=002", headers=auth(admin_token))
    assert [e["invoice_number"] for e in search.json()["entries"]] == ["INV-002"]
    assert Decimal(search.json()["summary"]["outstanding_balance"]) == Decimal("450")

    case_insensitive = await client.get(f"{url}?search=inv-001", headers=auth(admin_token))
    assert [e["type"] for e in case_insensitive.json()["entries"]] == ["invoice", "payment"]

    february = await client.get(f"{url}?start_date=2024-02-01&end_date=2024-02-29", headers=auth(admin_token))
    assert [e["invoice_number"] for e in february.json()["entries"]] == ["INV-002"]

    nothing = await client.get(f"{url}?end_date=2023-12-31", headers=auth(admin_token))
    assert nothing.json()["entries"] == []
    assert Decimal(nothing.json()["summary"]["outstanding_balance"]) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("wildcard", ["%", "_", "INV_00"])
async def test_search_treats_wildcards_literally(client, admin_token, ledger_data, wildcard):
    response = await client.get(
        f"/v1/ledger/profiles/{ledger_data['profile_id']}",
        params={"search": wildcard},
        headers=auth(admin_token)
    )

    assert response.status_code == 200
    assert response.json()["entries"] == []


@pytest.mark.asyncio
async def test_inverted_date_range_rejected(client, admin_token, ledger_data):
    response = await client.get(
        f"/v1/ledger/profiles/{ledger_data['profile_id']}?start_date=2024-03-01&end_date=2024-01-01",
        headers=auth(admin_token)
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_INVALID_ARGUMENT"


@pytest.mark.asyncio
async def test_unknown_profile(client, admin_token):
    response = await client.get("/v1/ledger/profiles/9999", headers=auth(admin_token))
    assert response.status_code == 404

    summary = await client.get("/v1/ledger/profiles/9999/summary", headers=auth(admin_token))
    assert summary.status_code == 404


@pytest.mark.asyncio
async def test_pending_and_archived_invoices_excluded(client, admin_token, user_token, ledger_data):
    token, _ = user_token

    pending = await client.post("/v1/invoices", json={
        "invoice_number": "INV-003",
        "invoice_profile_id": ledger_data["profile_id"],
        "invoice_amount": "2000",
        "invoice_date": "2024-03-01"
    }, headers=auth(token))
    assert pending.json()["status"] == "pending_approval"

    await client.post(
        f"/v1/invoices/{ledger_data['second_invoice_id']}/archive",
        json={"reason": "Duplicate"},
        headers=auth(admin_token)
    )

    response = await client.get(f"/v1/ledger/profiles/{ledger_data['profile_id']}", headers=auth(admin_token))
    assert [e["invoice_number"] for e in response.json()["entries"]] == ["INV-001", "INV-001"]
    assert Decimal(response.json()["summary"]["outstanding_balance"]) == 0


@pytest.mark.asyncio
async def test_pending_payment_not_in_ledger(client, admin_token, user_token, ledger_data):
    token, _ = user_token

    response = await client.post(f"/v1/invoices/{ledger_data['second_invoice_id']}/payments", json={
        "amount_paid": "100",
        "payment_date": "2024-02-10"
    }, headers=auth(token))
    assert response.json()["status"] == "pending"

    ledger = await client.get(f"/v1/ledger/profiles/{ledger_data['profile_id']}", headers=auth(token))
    assert ledger.json()["summary"]["payment_count"] == 1


@pytest.mark.asyncio
async def test_ledger_profiles_list(client, admin_token, ledger_data):
    # Second profile with no invoices
    response = await client.post("/v1/master-data/profiles", json={
        "name": "Annual Maintenance",
        "vendor_id": ledger_data["vendor_id"],
        "entity_id": ledger_data["entity_id"],
        "category_id": ledger_data["category_id"],
        "tds_applicable": False
    }, headers=auth(admin_token))
    assert response.status_code == 201

    profiles = await client.get("/v1/ledger/profiles", headers=auth(admin_token))

    assert profiles.status_code == 200
    options = profiles.json()
    assert [o["name"] for o in options] == ["Annual Maintenance", "Office Rent"]

    maintenance, rent = options
    assert maintenance["has_unpaid_invoices"] is False
    assert maintenance["unpaid_count"] == 0
    assert Decimal(maintenance["total_outstanding"]) == 0

    assert rent["has_unpaid_invoices"] is True
    assert rent["unpaid_count"] == 1
    assert Decimal(rent["total_outstanding"]) == Decimal("450")
    assert rent["vendor_name"] == "Acme Corp"


@pytest.mark.asyncio
async def test_ledger_summary_endpoint(client, admin_token, ledger_data):
    response = await client.get(
        f"/v1/ledger/profiles/{ledger_data['profile_id']}/summary", headers=auth(admin_token)
    )

    assert response.status_code == 200
    summary = response.json()
    assert Decimal(summary["total_invoiced"]) == Decimal("1500")
    assert Decimal(summary["total_tds_deducted"]) == Decimal("150")
    assert Decimal(summary["total_payable"]) == Decimal("1350")
    assert Decimal(summary["total_paid"]) == Decimal("900")
    assert Decimal(summary["outstanding_balance"]) == Decimal("450")


@pytest.mark.asyncio
async def test_ledger_csv_export(client, admin_token, ledger_data):
    response = await client.get(
        f"/v1/ledger/profiles/{ledger_data['profile_id']}/export", headers=auth(admin_token)
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]

    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0][:3] == ["date", "type", "description"]
    assert rows[0][-1] == "running_balance"
    assert len(rows) == 4
    assert rows[1][0] == "2024-01-01"
    assert rows[2][1] == "payment"
    assert Decimal(rows[3][-1]) == Decimal("450")


@pytest.mark.asyncio
async def test_ledger_requires_authentication(client, ledger_data):
    response = await client.get(f"/v1/ledger/profiles/{ledger_data['profile_id']}")
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_tds_calculate(client, user_token):
    token, _ = user_token

    response = await client.post("/v1/tds/calculate", json={
        "gross_amount": "1234.56",
        "tds_percentage": "2",
        "round_to_whole": True
    }, headers=auth(token))

    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["tds_amount"]) == Decimal("25")
    assert Decimal(body["payable_amount"]) == Decimal("1209.56")
    assert Decimal(body["exact_tds"]) == Decimal("24.6912")
    assert Decimal(body["rounding_difference"]) == Decimal("0.3088")
    assert body["is_rounded"] is True


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"gross_amount": "1000", "tds_percentage": "150"},
    {"gross_amount": "1000", "tds_percentage": "-1"},
    {"gross_amount": "-1000", "tds_percentage": "10"},
])
async def test_tds_calculate_rejects_bad_input(client, user_token, payload):
    token, _ = user_token

    response = await client.post("/v1/tds/calculate", json=payload, headers=auth(token))

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_INVALID_ARGUMENT"
