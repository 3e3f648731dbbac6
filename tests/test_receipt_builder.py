from __future__ import annotations

from decimal import Decimal

import pytest

from data_models import ReceiptData, ExtractedItem, ReceiptItem
from errors import InvalidPrice
from receipt_builder import merge_receipts, create_manual_receipt, extracted_item_from


def _data(prices, tax, tip):
    return ReceiptData(
        items=[ExtractedItem(description=f"Thing {p}", price=Decimal(p)) for p in prices],
        subtotal=sum((Decimal(p) for p in prices), Decimal("0")),
        tax=Decimal(tax),
        tip=Decimal(tip),
    )


def test_merge_two_scans():
    first = _data(["5.00", "10.00"], "1.00", "2.00")
    second = _data(["20.00"], "1.50", "3.00")

    receipt = merge_receipts([first, second])

    assert receipt.subtotal == Decimal("35.00")
    assert receipt.tax == Decimal("2.50")
    assert receipt.tip == Decimal("5.00")
    assert receipt.total == Decimal("42.50")
    assert [item.description for item in receipt.items] == ["Thing 5.00", "Thing 10.00", "Thing 20.00"]
    assert all(item.assigned_to == [] for item in receipt.items)
    assert len({item.id for item in receipt.items}) == 3
    assert receipt.is_balanced()


def test_merge_uses_item_sum_over_printed_subtotal():
    data = _data(["4.00", "6.00"], "0.00", "0.00")
    data.subtotal = Decimal("99.00")

    receipt = merge_receipts([data])

    assert receipt.subtotal == Decimal("10.00")
    assert receipt.total == Decimal("10.00")


def test_discount_must_match_price():
    item = extracted_item_from({'description': 'Pizza', 'price': 10.00, 'original_price': 12.00, 'discount': 2.00})
    assert item.price == Decimal("10.00")

    with pytest.raises(InvalidPrice):
        extracted_item_from({'description': 'Pizza', 'price': 9.99, 'original_price': 12.00, 'discount': 2.00})

    with pytest.raises(InvalidPrice):
        ReceiptItem(id="x", description="Pizza", price=Decimal("9.99"),
                    original_price=Decimal("12.00"), discount=Decimal("2.00"))


@pytest.mark.parametrize("raw", [
    {'description': '', 'price': 1.0},
    {'description': 'Soda'},
    {'description': 'Soda', 'price': -1},
    {'description': 'Soda', 'price': 'abc'},
    {'description': 'Soda', 'price': True},
])
def test_invalid_items_are_rejected(raw):
    with pytest.raises(InvalidPrice):
        extracted_item_from(raw)


def test_manual_receipt_drops_bad_entries():
    receipt = create_manual_receipt(
        [("Burger", "12.50"), ("", "3.00"), {'description': 'Fries', 'price': 4}],
        tax="1.25", tip="2", title="Lunch",
    )

    assert [item.description for item in receipt.items] == ["Burger", "Fries"]
    assert receipt.subtotal == Decimal("16.50")
    assert receipt.total == Decimal("19.75")
    assert receipt.title == "Lunch"
