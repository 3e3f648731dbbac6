from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path

import pytest

# Add Source folder to sys.path so the flat modules import when running from the repo root
SOURCE_DIR = Path(__file__).resolve().parents[1] / "Source"
if str(SOURCE_DIR) not in sys.path:
    sys.path.insert(0, str(SOURCE_DIR))

from data_models import Receipt, ReceiptItem  # noqa: E402
from roster import Roster  # noqa: E402


def make_receipt(prices, tax="0.00", tip="0.00"):
    items = [
        ReceiptItem(id=f"item_{i}", description=f"Item {i}", price=Decimal(str(price)))
        for i, price in enumerate(prices, 1)
    ]
    subtotal = sum((item.price for item in items), Decimal("0"))
    tax, tip = Decimal(tax), Decimal(tip)
    return Receipt(items=items, subtotal=subtotal, tax=tax, tip=tip, total=subtotal + tax + tip)


@pytest.fixture
def receipt():
    return make_receipt(["10.00", "20.00"], tax="3.00", tip="6.00")


@pytest.fixture
def roster():
    roster = Roster()
    roster.add_person("Alice")
    roster.add_person("Bob")
    return roster
