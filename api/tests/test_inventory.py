import pytest

from kasir.core.errors import AppError, ErrorKind
from kasir.db.queries import fetch_all
from kasir.services.inventory import MOVEMENT_SALE, decrement_stock, require_product


def test_decrement_never_goes_below_zero(db, make_product):
    product = make_product(stock=1)

    decrement_stock(db, product["id"], 1, MOVEMENT_SALE)
    with pytest.raises(AppError) as excinfo:
        decrement_stock(db, product["id"], 1, MOVEMENT_SALE)
    db.commit()

    assert excinfo.value.kind == ErrorKind.CONFLICT
    assert excinfo.value.details == {"product_id": product["id"], "available": 0, "requested": 1}
    assert require_product(db, product["id"])["stock"] == 0


def test_decrement_unknown_product(db):
    with pytest.raises(AppError) as excinfo:
        decrement_stock(db, "missing", 1, MOVEMENT_SALE)
    assert excinfo.value.kind == ErrorKind.NOT_FOUND


def test_add_stock_records_movement(client, kasir_headers, make_product, db):
    product = make_product(stock=2)

    response = client.post(f"/products/{product['id']}/stock", json={"qty": 5}, headers=kasir_headers)

    assert response.status_code == 200, response.text
    assert response.json()["stock"] == 7
    movements = fetch_all(
        db,
        "SELECT movement_type, qty_delta FROM stock_movements WHERE product_id = :id ORDER BY created_at",
        {"id": product["id"]},
    )
    assert [(m["movement_type"], m["qty_delta"]) for m in movements] == [("RESTOCK", 2), ("RESTOCK", 5)]


def test_add_stock_requires_positive_quantity(client, kasir_headers, make_product):
    product = make_product()
    response = client.post(f"/products/{product['id']}/stock", json={"qty": 0}, headers=kasir_headers)
    assert response.status_code == 422


def test_low_stock_alerts(client, kasir_headers, make_product):
    make_product(name="Casing", stock=0)
    make_product(name="Earphone", stock=1)
    make_product(name="Powerbank", stock=8)

    response = client.get("/inventory/alerts/low-stock", headers=kasir_headers)

    assert response.status_code == 200
    assert [item["name"] for item in response.json()] == ["Casing", "Earphone"]


def test_barcode_lookup_and_duplicates(client, kasir_headers, make_product):
    product = make_product(barcode="8991234567890")

    found = client.get("/products/by-barcode/8991234567890", headers=kasir_headers)
    assert found.status_code == 200
    assert found.json()["id"] == product["id"]

    duplicate = client.post(
        "/products",
        json={"name": "Copy", "barcode": "8991234567890"},
        headers=kasir_headers,
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["kind"] == "conflict"


def test_storefront_hides_cost(client, make_product):
    make_product(name="Tempered Glass", buy_price=5000, retail_price=25000, stock=0)

    response = client.get("/store/products")

    assert response.status_code == 200
    [item] = response.json()
    assert item["retail_price"] == 25000
    assert item["in_stock"] is False
    assert "buy_price" not in item


def test_supplier_crud(client, kasir_headers, admin_headers, make_product):
    created = client.post("/suppliers", json={"name": "PT Sumber"}, headers=kasir_headers)
    assert created.status_code == 201
    supplier = created.json()

    product = make_product(supplier_id=supplier["id"])
    assert product["supplier_id"] == supplier["id"]

    assert client.delete(f"/suppliers/{supplier['id']}", headers=kasir_headers).status_code == 403
    assert client.delete(f"/suppliers/{supplier['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/products/{product['id']}", headers=kasir_headers).json()["supplier_id"] is None


def test_product_with_stock_history_cannot_be_deleted(client, kasir_headers, admin_headers, make_product, db):
    stocked = make_product(name="Charger 20W", stock=3)
    unused = make_product(name="Holder Motor", stock=0)

    refused = client.delete(f"/products/{stocked['id']}", headers=admin_headers)

    assert refused.status_code == 409
    assert refused.json()["error"]["kind"] == "conflict"
    history = fetch_all(db, "SELECT qty_delta FROM stock_movements WHERE product_id = :id", {"id": stocked["id"]})
    assert [m["qty_delta"] for m in history] == [3]

    assert client.delete(f"/products/{unused['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/products/{unused['id']}", headers=kasir_headers).status_code == 404
