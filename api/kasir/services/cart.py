from dataclasses import dataclass

from kasir.core.errors import not_found, validation_error
from kasir.services.pricing import LineItem, PriceTier, unit_price


@dataclass
class CartLine:
    product: dict
    quantity: int

    @property
    def product_id(self) -> str:
        return self.product["id"]


class Cart:
    """Products and quantities picked for one sale or one repair job.

    Quantities are checked against the stock known when the product row was
    read; the commit re-checks them with a conditional update.
    """

    def __init__(self) -> None:
        self._lines: dict[str, CartLine] = {}

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, product_id: str) -> bool:
        return product_id in self._lines

    @property
    def count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    def quantity_of(self, product_id: str) -> int:
        line = self._lines.get(product_id)
        return line.quantity if line else 0

    def add(self, product: dict, quantity: int = 1) -> CartLine:
        if quantity <= 0:
            raise validation_error("Quantity must be positive", product_id=product["id"])

        line = self._lines.get(product["id"])
        new_quantity = quantity + (line.quantity if line else 0)
        self._check_stock(product, new_quantity)

        if line:
            line.quantity = new_quantity
            line.product = product
        else:
            line = CartLine(product=product, quantity=new_quantity)
            self._lines[product["id"]] = line
        return line

    def update_quantity(self, product_id: str, quantity: int) -> CartLine | None:
        line = self._lines.get(product_id)
        if not line:
            raise not_found("Product is not in the cart", product_id=product_id)

        if quantity <= 0:
            del self._lines[product_id]
            return None

        self._check_stock(line.product, quantity)
        line.quantity = quantity
        return line

    def remove(self, product_id: str) -> None:
        self._lines.pop(product_id, None)

    def clear(self) -> None:
        self._lines.clear()

    def lines(self, tier: PriceTier = PriceTier.RETAIL) -> list[LineItem]:
        return [
            LineItem(
                product_id=line.product_id,
                name=line.product["name"],
                quantity=line.quantity,
                buy_price=int(line.product["buy_price"]),
                sale_price=unit_price(line.product, tier),
            )
            for line in self._lines.values()
        ]

    @staticmethod
    def _check_stock(product: dict, quantity: int) -> None:
        available = int(product["stock"])
        if quantity > available:
            raise validation_error(
                f"Insufficient stock for {product['name']}. Available: {available}",
                product_id=product["id"],
                available=available,
                requested=quantity,
            )
