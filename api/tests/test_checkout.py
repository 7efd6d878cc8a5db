from kasir.db.queries import fetch_all, fetch_one


def checkout(client, headers, items, **payload):
    body = {"items": items, "amount_paid": 0, **payload}
    return client.post("/sales/checkout", json=body, headers=headers)


def stock_of(client, headers, product_id):
    return client.get(f"/products/{product_id}", headers=headers).json()["stock"]


def test_cash_sale_records_everything(client, kasir_headers, kasir_user, make_product):
    product = make_product(buy_price=10000, retail_price=15000, stock=5)

    response = checkout(
        client,
        kasir_headers,
        [{"product_id": product["id"], "quantity": 2}],
        amount_paid=50000,
    )

    assert response.status_code == 200, response.text
    sale = response.json()
    assert sale["display_id"].startswith("TRX-")
    assert sale["customer_name_cache"] == "Umum"
    assert sale["subtotal"] == 30000
    assert sale["total"] == 30000
    assert sale["cost"] == 20000
    assert sale["profit"] == 10000
    assert sale["change_amount"] == 20000
    assert sale["remaining_amount"] == 0
    assert sale["kasir_id"] == kasir_user["id"]
    assert sale["installment_id"] is None
    assert [item["quantity"] for item in sale["items"]] == [2]
    assert stock_of(client, kasir_headers, product["id"]) == 3


def test_duplicate_items_are_merged(client, kasir_headers, make_product, db):
    product = make_product(stock=5)

    response = checkout(
        client,
        kasir_headers,
        [{"product_id": product["id"], "quantity": 1}, {"product_id": product["id"], "quantity": 2}],
        amount_paid=45000,
    )

    assert response.status_code == 200, response.text
    assert len(response.json()["items"]) == 1
    assert response.json()["items"][0]["quantity"] == 3
    movements = fetch_all(db, "SELECT qty_delta FROM stock_movements WHERE movement_type = 'DECREASE_SALE'")
    assert [m["qty_delta"] for m in movements] == [-3]


def test_insufficient_stock_is_rejected_without_side_effects(client, kasir_headers, make_product, db):
    plenty = make_product(name="Kabel", stock=10)
    scarce = make_product(name="Baterai", stock=1)

    response = checkout(
        client,
        kasir_headers,
        [{"product_id": plenty["id"], "quantity": 1}, {"product_id": scarce["id"], "quantity": 2}],
        amount_paid=100000,
    )

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["kind"] == "validation"
    assert error["details"]["available"] == 1
    assert fetch_one(db, "SELECT COUNT(*) AS count FROM sales_transactions")["count"] == 0
    assert stock_of(client, kasir_headers, plenty["id"]) == 10


def test_installment_sale_opens_receivable(client, kasir_headers, make_product, make_customer):
    product = make_product(buy_price=10000, retail_price=15000, stock=5)
    customer = make_customer()

    response = checkout(
        client,
        kasir_headers,
        [{"product_id": product["id"], "quantity": 2}],
        customer_id=customer["id"],
        payment_method="installment",
        amount_paid=20000,
    )

    assert response.status_code == 200, response.text
    sale = response.json()
    assert sale["remaining_amount"] == 10000
    assert sale["change_amount"] == 0

    installment = client.get(f"/installments/{sale['installment_id']}", headers=kasir_headers).json()
    assert installment["display_id"] == sale["display_id"]
    assert installment["source"] == "sale"
    assert installment["total_amount"] == 30000
    assert installment["paid_amount"] == 20000
    assert installment["remaining_amount"] == 10000
    assert installment["status"] == "unpaid"
    assert [entry["amount"] for entry in installment["payment_history"]] == [20000]

    paid = client.post(
        f"/installments/{sale['installment_id']}/payments",
        json={"amount": 10000},
        headers=kasir_headers,
    ).json()
    assert paid["remaining_amount"] == 0
    assert paid["status"] == "paid"


def test_unpaid_balance_requires_customer(client, kasir_headers, make_product, db):
    product = make_product(stock=5)

    response = checkout(
        client,
        kasir_headers,
        [{"product_id": product["id"], "quantity": 1}],
        payment_method="installment",
        amount_paid=5000,
    )

    assert response.status_code == 422
    assert fetch_one(db, "SELECT COUNT(*) AS count FROM installments")["count"] == 0


def test_cash_below_total_is_rejected(client, kasir_headers, make_product):
    product = make_product(stock=5)

    response = checkout(client, kasir_headers, [{"product_id": product["id"], "quantity": 1}], amount_paid=1000)

    assert response.status_code == 422
    assert response.json()["error"]["kind"] == "validation"
    assert stock_of(client, kasir_headers, product["id"]) == 5


def test_discount_above_subtotal_is_rejected(client, kasir_headers, make_product):
    product = make_product(retail_price=15000, stock=5)

    response = checkout(
        client,
        kasir_headers,
        [{"product_id": product["id"], "quantity": 1}],
        discount=20000,
        amount_paid=0,
    )

    assert response.status_code == 422


def test_reseller_customer_pays_reseller_price(client, kasir_headers, make_product, make_customer):
    product = make_product(retail_price=15000, reseller_price=13000, stock=5)
    reseller = make_customer(name="Toko Maju", customer_type="reseller")

    response = checkout(
        client,
        kasir_headers,
        [{"product_id": product["id"], "quantity": 2}],
        customer_id=reseller["id"],
        amount_paid=26000,
    )

    assert response.status_code == 200, response.text
    sale = response.json()
    assert sale["customer_type"] == "reseller"
    assert sale["total"] == 26000
    assert sale["customer_name_cache"] == "Toko Maju"


def test_unknown_product(client, kasir_headers):
    response = checkout(client, kasir_headers, [{"product_id": "nope", "quantity": 1}], amount_paid=1)

    assert response.status_code == 404
    assert response.json()["error"]["kind"] == "not_found"


def test_empty_cart(client, kasir_headers):
    response = checkout(client, kasir_headers, [], amount_paid=0)
    assert response.status_code == 422


def test_checkout_requires_login(client, make_product):
    product = make_product()
    response = checkout(client, {}, [{"product_id": product["id"], "quantity": 1}], amount_paid=15000)

    assert response.status_code == 401
    assert response.json()["error"]["kind"] == "unauthorized"


def test_sale_receipt(client, kasir_headers, make_product):
    product = make_product(name="Charger 20W", retail_price=15000, stock=5)
    sale = checkout(
        client,
        kasir_headers,
        [{"product_id": product["id"], "quantity": 2}],
        amount_paid=50000,
    ).json()

    response = client.get(f"/sales/{sale['id']}/receipt", headers=kasir_headers)

    assert response.status_code == 200
    receipt = response.text
    assert sale["display_id"] in receipt
    assert "Charger 20W" in receipt
    assert "Rp 30.000" in receipt
    assert "Kembali" in receipt
    assert "Kasir: Kasir Satu" in receipt


def test_list_sales(client, kasir_headers, make_product):
    product = make_product(stock=5)
    checkout(client, kasir_headers, [{"product_id": product["id"], "quantity": 1}], amount_paid=15000)
    checkout(client, kasir_headers, [{"product_id": product["id"], "quantity": 1}], amount_paid=15000)

    response = client.get("/sales", headers=kasir_headers)

    assert response.status_code == 200
    assert len(response.json()) == 2
