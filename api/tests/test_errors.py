import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from kasir.core.errors import AppError, ErrorKind, from_database_error


@pytest.mark.parametrize(
    "kind, status_code",
    [
        (ErrorKind.VALIDATION, 422),
        (ErrorKind.NOT_FOUND, 404),
        (ErrorKind.CONFLICT, 409),
        (ErrorKind.UNAUTHORIZED, 401),
        (ErrorKind.FORBIDDEN, 403),
        (ErrorKind.NETWORK, 503),
        (ErrorKind.SERVER, 500),
    ],
)
def test_status_codes(kind, status_code):
    error = AppError(kind, "boom")
    assert error.status_code == status_code
    assert error.retryable is (kind == ErrorKind.NETWORK)


def test_database_errors_are_classified():
    outage = from_database_error(OperationalError("SELECT 1", {}, Exception("connection refused")))
    broken = from_database_error(IntegrityError("INSERT", {}, Exception("constraint")))

    assert outage.kind == ErrorKind.NETWORK
    assert outage.retryable
    assert broken.kind == ErrorKind.SERVER
    assert not broken.retryable


def test_request_validation_uses_envelope(client, kasir_headers):
    response = client.post("/sales/checkout", json={"items": "nope"}, headers=kasir_headers)

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["kind"] == "validation"
    assert error["retryable"] is False
    assert error["details"]["errors"]


def test_settings_defaults_are_public(client):
    response = client.get("/settings")

    assert response.status_code == 200
    assert response.json()["receipt_footer"] == "Terima kasih telah berbelanja!"


def test_admin_updates_settings(client, admin_headers, kasir_headers):
    forbidden = client.put("/settings", json={"shop_name": "Toko Sinar"}, headers=kasir_headers)
    assert forbidden.status_code == 403

    client.put("/settings", json={"shop_name": "Toko Sinar"}, headers=admin_headers)
    updated = client.put("/settings", json={"shop_phone": "0274123"}, headers=admin_headers).json()

    assert updated["shop_name"] == "Toko Sinar"
    assert updated["shop_phone"] == "0274123"
    assert client.get("/settings").json() == updated


def test_customer_with_debt_cannot_be_deleted(client, kasir_headers, admin_headers, make_customer):
    customer = make_customer()
    client.post("/installments", json={"customer_id": customer["id"], "amount": 5000}, headers=kasir_headers)

    response = client.delete(f"/customers/{customer['id']}", headers=admin_headers)

    assert response.status_code == 409
    [installment] = client.get(f"/customers/{customer['id']}/installments", headers=kasir_headers).json()
    assert installment["remaining_amount"] == 5000


def test_customer_search_and_delete(client, kasir_headers, admin_headers, make_customer):
    make_customer(name="Budi Santoso", phone="0811")
    other = make_customer(name="Ani", phone="0822")

    found = client.get("/customers?q=budi", headers=kasir_headers).json()
    assert [item["name"] for item in found] == ["Budi Santoso"]

    assert client.delete(f"/customers/{other['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/customers/{other['id']}", headers=kasir_headers).status_code == 404
