from datetime import datetime, timezone

import pytest

from kasir.schemas.settings import ShopSettings
from kasir.services.receipts import ReceiptWriter, format_rupiah, render_sale_receipt


@pytest.mark.parametrize(
    "amount, expected",
    [(0, "Rp 0"), (500, "Rp 500"), (15000, "Rp 15.000"), (1250000, "Rp 1.250.000"), (-2000, "-Rp 2.000")],
)
def test_format_rupiah(amount, expected):
    assert format_rupiah(amount) == expected


def test_pair_fills_width():
    writer = ReceiptWriter(20)
    writer.pair("TOTAL", "Rp 30.000")

    assert writer.lines == ["TOTAL      Rp 30.000"]


def test_long_pair_wraps():
    writer = ReceiptWriter(10)
    writer.pair("Bayar", "Rp 1.250.000")

    assert writer.lines == ["Bayar", "Rp 1.250.000".rjust(10)]


def test_text_is_cut_to_width():
    writer = ReceiptWriter(8)
    writer.text("Tempered Glass Anti Spy")
    writer.rule()

    assert writer.render() == "Tempered\n--------\n"


def test_sale_receipt_layout():
    sale = {
        "display_id": "TRX-20261019-A1B2C3",
        "created_at": datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc),
        "customer_name_cache": "Budi",
        "discount": 5000,
        "total": 25000,
        "payment_method": "installment",
        "amount_paid": 10000,
        "change_amount": 0,
        "remaining_amount": 15000,
        "items": [
            {"product_name": "Charger 20W", "quantity": 2, "sale_price_at_sale": 15000},
        ],
    }
    shop = ShopSettings(shop_name="Toko Sinar", shop_address="Jl. Merdeka 1", shop_phone="0274123")

    receipt = render_sale_receipt(sale, shop, 32, operator="Kasir Satu").splitlines()

    assert receipt[0].strip() == "Toko Sinar"
    assert "Telp: 0274123" in receipt[2]
    assert receipt[4] == "No: TRX-20261019-A1B2C3"
    assert receipt[5] == "Tgl: 19/10/26 09:30"
    assert "  2 x Rp 15.000" in "\n".join(receipt)
    assert any(line.startswith("Diskon") and line.endswith("-Rp 5.000") for line in receipt)
    assert any(line.startswith("Bayar (Cicilan)") for line in receipt)
    assert any(line.startswith("Sisa") and line.endswith("Rp 15.000") for line in receipt)
    assert not any(line.startswith("Kembali") for line in receipt)
    assert all(len(line) <= 32 for line in receipt)
