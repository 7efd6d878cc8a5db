"""Plain-text receipts for a thermal printer."""

from typing import Any

from kasir.db.queries import as_datetime
from kasir.schemas.settings import ShopSettings

PAYMENT_LABELS = {"cash": "Tunai", "installment": "Cicilan"}


def format_rupiah(amount: int) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}Rp {abs(int(amount)):,}".replace(",", ".")


class ReceiptWriter:
    def __init__(self, width: int):
        self.width = width
        self.lines: list[str] = []

    def center(self, value: str) -> None:
        if value:
            self.lines.append(value[: self.width].center(self.width).rstrip())

    def pair(self, left: str, right: str) -> None:
        room = self.width - len(right) - 1
        if room < 1:
            self.lines.append(left[: self.width])
            self.lines.append(right.rjust(self.width))
            return
        self.lines.append(f"{left[:room]:<{room}} {right}")

    def text(self, value: str) -> None:
        self.lines.append(value[: self.width])

    def rule(self) -> None:
        self.lines.append("-" * self.width)

    def render(self) -> str:
        return "\n".join(self.lines) + "\n"


def _header(writer: ReceiptWriter, shop: ShopSettings, record: dict[str, Any], operator: str | None) -> None:
    writer.center(shop.shop_name)
    writer.center(shop.shop_address)
    if shop.shop_phone:
        writer.center(f"Telp: {shop.shop_phone}")
    writer.rule()
    created_at = as_datetime(record["created_at"])
    writer.text(f"No: {record['display_id']}")
    writer.text(f"Tgl: {created_at:%d/%m/%y %H:%M}")
    writer.text(f"Kasir: {operator or '-'}")
    writer.text(f"Pelanggan: {record['customer_name_cache']}")
    writer.rule()


def _item(writer: ReceiptWriter, name: str, quantity: int, price: int) -> None:
    writer.text(name)
    writer.pair(f"  {quantity} x {format_rupiah(price)}", format_rupiah(quantity * price))


def _payment(writer: ReceiptWriter, record: dict[str, Any], total: int) -> None:
    writer.rule()
    if int(record["discount"]) > 0:
        writer.pair("Diskon", f"-{format_rupiah(record['discount'])}")
    writer.pair("TOTAL", format_rupiah(total))
    label = PAYMENT_LABELS.get(record["payment_method"], record["payment_method"])
    writer.pair(f"Bayar ({label})", format_rupiah(record["amount_paid"]))
    if int(record["change_amount"]) > 0:
        writer.pair("Kembali", format_rupiah(record["change_amount"]))
    if int(record["remaining_amount"]) > 0:
        writer.pair("Sisa", format_rupiah(record["remaining_amount"]))
    writer.rule()


def render_sale_receipt(sale: dict[str, Any], shop: ShopSettings, width: int, operator: str | None = None) -> str:
    writer = ReceiptWriter(width)
    _header(writer, shop, sale, operator)
    for item in sale["items"]:
        _item(writer, item["product_name"], int(item["quantity"]), int(item["sale_price_at_sale"]))
    _payment(writer, sale, int(sale["total"]))
    writer.center(shop.receipt_footer)
    writer.center("Barang yang sudah dibeli tidak dapat dikembalikan.")
    return writer.render()


def render_service_receipt(
    transaction: dict[str, Any],
    entry: dict[str, Any],
    shop: ShopSettings,
    width: int,
    operator: str | None = None,
) -> str:
    writer = ReceiptWriter(width)
    _header(writer, shop, transaction, operator)
    device = " ".join(part for part in (entry.get("device_type"), entry.get("damage_type")) if part)
    if device:
        writer.text(f"Servis: {device}")
    if transaction.get("description"):
        writer.text(transaction["description"])
    if int(transaction["service_fee"]) > 0:
        writer.pair("Jasa servis", format_rupiah(transaction["service_fee"]))
    for part in transaction["parts"]:
        _item(writer, part["product_name"], int(part["quantity"]), int(part["sale_price"]))
    _payment(writer, transaction, int(transaction["total_amount"]))
    if int(transaction["revision"]) > 0:
        writer.center(f"Revisi ke-{transaction['revision']}")
    writer.center(shop.receipt_footer)
    return writer.render()
