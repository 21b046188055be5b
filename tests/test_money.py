"""Tests for money helpers and cart presentation"""
from decimal import Decimal

import pytest

from snackshop.cart import LineItem, compute_totals
from snackshop.cart.presentation import (
    CartViewRenderer,
    NullRenderer,
    build_cart_view,
    checkout_label,
    parse_quantity_input,
)
from snackshop.services.money import format_money, percent, round_money, to_decimal, to_float


# ==================== money ====================

@pytest.mark.parametrize("value,expected", [
    (None, Decimal("0")),
    (0.1, Decimal("0.1")),
    ("2.50", Decimal("2.50")),
    (3, Decimal("3")),
    (True, Decimal("0")),
    ("abc", Decimal("0")),
])
def test_to_decimal(value, expected):
    assert to_decimal(value) == expected


def test_round_money_half_up():
    assert round_money(Decimal("1.005")) == Decimal("1.01")
    assert round_money("2.994") == Decimal("2.99")


def test_format_money():
    assert format_money(1234.5) == "$1,234.50"
    assert format_money(0) == "$0.00"
    assert format_money(Decimal("-2")) == "-$2.00"


def test_percent_and_float():
    assert percent(10, 25) == Decimal("2.5")
    assert to_float(Decimal("17.82")) == 17.82


# ==================== presentation ====================

@pytest.mark.parametrize("raw,expected", [
    (3, 3),
    ("4", 4),
    (" 2 ", 2),
    ("0", 1),
    (-5, 1),
    ("abc", 1),
    ("2.5", 1),
    (None, 1),
])
def test_parse_quantity_input(raw, expected):
    assert parse_quantity_input(raw) == expected


def test_checkout_label():
    assert checkout_label(0) == "Checkout (0 items)"
    assert checkout_label(1) == "Checkout (1 item)"
    assert checkout_label(3) == "Checkout (3 items)"


def test_empty_view():
    view = build_cart_view((), compute_totals(()))

    assert view["is_empty"] is True
    assert view["summary"] is None
    assert view["badge"] == {"count": 0, "visible": False}


def test_view_escapes_names():
    """Test product names are HTML-escaped for display"""
    items = (LineItem(id="x", name="<b>Chips & Dip</b>", unit_price=Decimal("4"), quantity=2),)

    view = build_cart_view(items, compute_totals(items))

    assert view["items"][0]["name"] == "&lt;b&gt;Chips &amp; Dip&lt;/b&gt;"
    assert view["items"][0]["line_total"] == "$8.00"
    assert view["checkout_label"] == "Checkout (2 items)"
    assert view["badge"] == {"count": 2, "visible": True}


def test_renderers():
    view = {"is_empty": True}

    assert NullRenderer().render(view) == view

    renderer = CartViewRenderer()
    renderer.render(view)
    renderer.update_badge(5)
    assert renderer.last_view == view
    assert renderer.badge_count == 5
