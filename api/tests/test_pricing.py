import pytest

from kasir.core.errors import AppError, ErrorKind
from kasir.services.pricing import (
    LineItem,
    PaymentMethod,
    PriceTier,
    compute_summary,
    evaluate_payment,
    unit_price,
)


def line(quantity, buy_price, sale_price, product_id="p1"):
    return LineItem(product_id=product_id, name=product_id, quantity=quantity, buy_price=buy_price, sale_price=sale_price)


def test_single_line_summary():
    summary = compute_summary([line(2, 10000, 15000)], discount=0)

    assert summary.subtotal == 30000
    assert summary.total == 30000
    assert summary.cost == 20000
    assert summary.profit == 10000


def test_summary_is_additive_over_lines():
    lines = [line(2, 10000, 15000, "a"), line(1, 50000, 65000, "b"), line(3, 1000, 2500, "c")]
    summary = compute_summary(lines, discount=5000)

    assert summary.subtotal == sum(item.sale_price * item.quantity for item in lines)
    assert summary.cost == sum(item.buy_price * item.quantity for item in lines)
    assert summary.total == summary.subtotal - 5000
    assert summary.profit == summary.total - summary.cost


def test_service_fee_counts_as_revenue_without_cost():
    summary = compute_summary([line(1, 40000, 60000)], discount=10000, service_fee=50000)

    assert summary.subtotal == 110000
    assert summary.total == 100000
    assert summary.cost == 40000
    assert summary.profit == 60000


def test_discount_larger_than_subtotal_gives_negative_total():
    summary = compute_summary([line(1, 1000, 2000)], discount=5000)
    assert summary.total == -3000


def test_empty_summary():
    summary = compute_summary([])
    assert (summary.subtotal, summary.total, summary.cost, summary.profit) == (0, 0, 0, 0)


def test_overpayment_gives_change():
    result = evaluate_payment(30000, 50000, PaymentMethod.CASH)
    assert result.change == 20000
    assert result.remaining == 0


def test_exact_payment():
    result = evaluate_payment(30000, 30000, PaymentMethod.CASH)
    assert result.change == 0
    assert result.remaining == 0


def test_partial_installment_payment_leaves_remaining():
    result = evaluate_payment(30000, 20000, PaymentMethod.INSTALLMENT)
    assert result.remaining == 10000
    assert result.change == 0


def test_cash_below_total_is_rejected():
    with pytest.raises(AppError) as excinfo:
        evaluate_payment(30000, 20000, PaymentMethod.CASH)
    assert excinfo.value.kind == ErrorKind.VALIDATION
    assert not excinfo.value.retryable


def test_negative_payment_is_rejected():
    with pytest.raises(AppError):
        evaluate_payment(30000, -1, PaymentMethod.INSTALLMENT)


@pytest.mark.parametrize(
    "tier, expected",
    [(PriceTier.RETAIL, 15000), (PriceTier.RESELLER, 13000), (PriceTier.MEMBER, 13000)],
)
def test_unit_price_follows_tier(tier, expected):
    product = {"retail_price": 15000, "reseller_price": 13000}
    assert unit_price(product, tier) == expected
