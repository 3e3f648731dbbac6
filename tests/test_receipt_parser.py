from __future__ import annotations

from decimal import Decimal

import pytest

from errors import ExtractionRejected
from receipt_parser import ReceiptParser

RESTAURANT_TEXT = """
THE CORNER BISTRO
Table 12   Server: Kim
Caesar Salad        12.50
2 x Iced Tea         7.00
Burger 2 x 9.00     18.00
Pasta               15.00
DISCOUNT            -3.00
SUBTOTAL            49.50
Sales Tax 8.875%     4.39
Tip                  9.00
TOTAL               62.89
VISA ****1234       62.89
Thank you!
"""


@pytest.fixture
def parser():
    return ReceiptParser()


def test_parses_items_and_summary(parser):
    data = parser.parse(RESTAURANT_TEXT)

    assert [(item.description, item.price) for item in data.items] == [
        ("Caesar Salad", Decimal("12.50")),
        ("Iced Tea x2", Decimal("7.00")),
        ("Burger x2", Decimal("18.00")),
        ("Pasta", Decimal("12.00")),
    ]
    assert data.subtotal == Decimal("49.50")
    assert data.tax == Decimal("4.39")
    assert data.tip == Decimal("9.00")
    assert data.total == Decimal("62.89")


def test_discount_merges_into_previous_item(parser):
    data = parser.parse(RESTAURANT_TEXT)
    pasta = data.items[-1]

    assert pasta.original_price == Decimal("15.00")
    assert pasta.discount == Decimal("3.00")
    assert pasta.price == pasta.original_price - pasta.discount


def test_overlapping_region_lines_are_deduplicated(parser):
    text = "Soup 6.00\nBread 3.00\nBread 3.00\nTOTAL 9.00"

    data = parser.parse(text)

    assert [item.description for item in data.items] == ["Soup", "Bread"]


def test_european_decimal_comma(parser):
    data = parser.parse("Espresso 2,50\nTOTAL 2,50")

    assert data.items[0].price == Decimal("2.50")
    assert data.total == Decimal("2.50")


def test_text_without_receipt_content_is_rejected(parser):
    with pytest.raises(ExtractionRejected):
        parser.parse("Happy birthday!\nSee you soon")
