import pytest

from kasir.core.errors import AppError, ErrorKind
from kasir.services import installments


@pytest.fixture
def open_installment(client, kasir_headers, make_customer):
    customer = make_customer(name="Siti")
    response = client.post(
        "/installments",
        json={"customer_id": customer["id"], "amount": 30000, "description": "Titipan barang"},
        headers=kasir_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def pay(client, headers, installment_id, amount):
    return client.post(f"/installments/{installment_id}/payments", json={"amount": amount}, headers=headers)


def test_manual_installment(open_installment):
    assert open_installment["display_id"].startswith("CCL-")
    assert open_installment["source"] == "manual"
    assert open_installment["customer_name"] == "Siti"
    assert open_installment["paid_amount"] == 0
    assert open_installment["remaining_amount"] == 30000
    assert open_installment["status"] == "unpaid"
    assert open_installment["payment_history"] == []


@pytest.mark.parametrize("amount", [0, -500, 30001])
def test_payment_outside_bounds_is_rejected(client, kasir_headers, open_installment, amount):
    response = pay(client, kasir_headers, open_installment["id"], amount)

    assert response.status_code == 422
    assert response.json()["error"]["kind"] == "validation"
    unchanged = client.get(f"/installments/{open_installment['id']}", headers=kasir_headers).json()
    assert unchanged["remaining_amount"] == 30000
    assert unchanged["payment_history"] == []


def test_payments_accumulate_until_paid(client, kasir_headers, open_installment):
    first = pay(client, kasir_headers, open_installment["id"], 20000).json()
    assert first["remaining_amount"] == 10000
    assert first["paid_amount"] == 20000
    assert first["status"] == "unpaid"

    second = pay(client, kasir_headers, open_installment["id"], 10000).json()
    assert second["remaining_amount"] == 0
    assert second["status"] == "paid"
    assert [entry["amount"] for entry in second["payment_history"]] == [20000, 10000]

    again = pay(client, kasir_headers, open_installment["id"], 1)
    assert again.status_code == 422


def test_list_by_status(client, kasir_headers, open_installment):
    assert len(client.get("/installments?status=unpaid", headers=kasir_headers).json()) == 1
    assert client.get("/installments?status=paid", headers=kasir_headers).json() == []


def test_manual_installment_unknown_customer(client, kasir_headers):
    response = client.post("/installments", json={"customer_id": "nope", "amount": 1000}, headers=kasir_headers)
    assert response.status_code == 404


def test_payment_on_missing_installment(client, kasir_headers):
    assert pay(client, kasir_headers, "missing", 1000).status_code == 404


def test_upsert_keeps_one_record_per_display_id(db, make_customer):
    customer = make_customer()
    common = dict(
        display_id="SRV-20260101-ABCDEF",
        source=installments.SOURCE_SERVICE,
        customer_id=customer["id"],
        customer_name=customer["name"],
        transaction_date=installments.utcnow(),
        details="Ganti LCD",
        user_id=None,
    )

    first = installments.upsert_installment(db, total_amount=100000, initial_payment=40000, **common)
    second = installments.upsert_installment(db, total_amount=120000, initial_payment=40000, **common)
    db.commit()

    assert second["id"] == first["id"]
    assert second["total_amount"] == 120000
    assert second["paid_amount"] == 40000
    assert second["remaining_amount"] == 80000
    assert len(installments.list_installments(db)) == 1


def test_upsert_rejects_total_below_paid(db, make_customer):
    customer = make_customer()
    common = dict(
        display_id="SRV-20260101-ABCDEF",
        source=installments.SOURCE_SERVICE,
        customer_id=customer["id"],
        customer_name=customer["name"],
        transaction_date=installments.utcnow(),
        details=None,
        user_id=None,
    )
    installments.upsert_installment(db, total_amount=100000, initial_payment=40000, **common)

    with pytest.raises(AppError) as excinfo:
        installments.upsert_installment(db, total_amount=30000, initial_payment=40000, **common)
    db.rollback()

    assert excinfo.value.kind == ErrorKind.CONFLICT
