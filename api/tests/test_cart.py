import pytest

from kasir.core.errors import AppError, ErrorKind
from kasir.services.cart import Cart
from kasir.services.pricing import PriceTier


def product(product_id="p1", stock=3, **overrides):
    row = {
        "id": product_id,
        "name": f"Product {product_id}",
        "stock": stock,
        "buy_price": 10000,
        "retail_price": 15000,
        "reseller_price": 12000,
    }
    row.update(overrides)
    return row


def test_adding_same_product_increments_quantity():
    cart = Cart()
    item = product()

    cart.add(item)
    cart.add(item)

    assert len(cart) == 1
    assert cart.quantity_of("p1") == 2
    assert cart.count == 2


def test_add_rejected_once_quantity_exceeds_stock():
    cart = Cart()
    item = product(stock=2)
    cart.add(item, 2)

    with pytest.raises(AppError) as excinfo:
        cart.add(item)

    assert excinfo.value.kind == ErrorKind.VALIDATION
    assert excinfo.value.details["available"] == 2
    assert cart.quantity_of("p1") == 2


def test_add_rejects_non_positive_quantity():
    with pytest.raises(AppError):
        Cart().add(product(), 0)


def test_update_quantity_to_zero_removes_line():
    cart = Cart()
    cart.add(product())

    assert cart.update_quantity("p1", 0) is None
    assert "p1" not in cart


def test_update_quantity_above_stock_is_rejected():
    cart = Cart()
    cart.add(product(stock=3))

    with pytest.raises(AppError):
        cart.update_quantity("p1", 4)
    assert cart.quantity_of("p1") == 1


def test_update_unknown_product():
    with pytest.raises(AppError) as excinfo:
        Cart().update_quantity("missing", 1)
    assert excinfo.value.kind == ErrorKind.NOT_FOUND


def test_lines_are_priced_for_tier():
    cart = Cart()
    cart.add(product("a"), 2)
    cart.add(product("b", stock=5, reseller_price=9000), 1)

    retail = {line.product_id: line.sale_price for line in cart.lines()}
    reseller = {line.product_id: line.sale_price for line in cart.lines(PriceTier.RESELLER)}

    assert retail == {"a": 15000, "b": 15000}
    assert reseller == {"a": 12000, "b": 9000}


def test_remove_and_clear():
    cart = Cart()
    cart.add(product("a"))
    cart.add(product("b"))

    cart.remove("a")
    assert len(cart) == 1

    cart.clear()
    assert cart.count == 0
