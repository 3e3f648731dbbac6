"""
Receipt builder module for ReceiptSplit
Turns validated extraction results or manual entries into one canonical receipt
"""

import uuid
import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Union, Dict, Any, Tuple

from config import AMOUNT_TOLERANCE
from data_models import Receipt, ReceiptItem, ReceiptData, ExtractedItem, check_item_amounts
from errors import InvalidPrice
from utils import to_cents

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def new_item_id() -> str:
    """Generate unique item ID"""
    return f"item_{uuid.uuid4().hex}"


def _build_item(extracted: ExtractedItem) -> ReceiptItem:
    return ReceiptItem(
        id=new_item_id(),
        description=extracted.description,
        price=extracted.price,
        original_price=extracted.original_price,
        discount=extracted.discount,
    )


def merge_receipts(datas: Iterable[ReceiptData], title: Optional[str] = None) -> Receipt:
    """Merge one or more extracted receipts into a single unassigned receipt.

    Items keep their scan order. The subtotal is recomputed from the item
    prices, tax and tip are summed, and the total is derived from those three
    so the receipt invariants always hold.
    """
    items: List[ReceiptItem] = []
    tax = ZERO
    tip = ZERO

    for index, data in enumerate(datas, 1):
        scanned = [_build_item(extracted) for extracted in data.items]
        items_sum = sum((item.price for item in scanned), ZERO)
        if data.subtotal and abs(items_sum - data.subtotal) > AMOUNT_TOLERANCE:
            logger.warning(
                "Receipt %d: items sum to %s but printed subtotal is %s; using item sum",
                index, items_sum, data.subtotal,
            )
        items.extend(scanned)
        tax += data.tax
        tip += data.tip

    subtotal = to_cents(sum((item.price for item in items), ZERO))
    tax = to_cents(tax)
    tip = to_cents(tip)

    return Receipt(
        items=items,
        subtotal=subtotal,
        tax=tax,
        tip=tip,
        total=subtotal + tax + tip,
        title=title,
    )


def receipt_from_data(data: ReceiptData, title: Optional[str] = None) -> Receipt:
    return merge_receipts([data], title=title)


ManualEntry = Union[Tuple[str, Any], Dict[str, Any]]


def create_manual_receipt(entries: Iterable[ManualEntry], tax=ZERO, tip=ZERO,
                          title: Optional[str] = None) -> Receipt:
    """Create a receipt from hand-entered items.

    Entries are ``(description, price)`` pairs or dicts with ``description``,
    ``price`` and optionally ``original_price``/``discount``. Entries with an
    empty description or an invalid price are dropped.
    """
    items: List[ExtractedItem] = []
    for entry in entries:
        if isinstance(entry, dict):
            raw = dict(entry)
        else:
            description, price = entry
            raw = {'description': description, 'price': price}
        try:
            items.append(extracted_item_from(raw))
        except (InvalidPrice, TypeError, ValueError) as e:
            logger.info("Dropping manual item %r: %s", raw, e)

    data = ReceiptData(items=items, tax=to_cents(tax), tip=to_cents(tip))
    return receipt_from_data(data, title=title)


def extracted_item_from(raw: Dict[str, Any]) -> ExtractedItem:
    """Validate one loose item record.

    Raises ``InvalidPrice`` when the description is empty, the price is
    missing, negative or not a finite number, or the discount is inconsistent.
    """
    description = raw.get('description')
    if not isinstance(description, str) or not description.strip():
        raise InvalidPrice(f"Item without a description: {raw!r}")

    price = raw.get('price')
    if price is None or isinstance(price, bool):
        raise InvalidPrice(f"Item '{description}' has no price")
    try:
        price = to_cents(price)
        original_price = raw.get('original_price')
        original_price = to_cents(original_price) if original_price else None
        discount = raw.get('discount')
        discount = to_cents(discount) if discount else None
    except (TypeError, ValueError) as e:
        raise InvalidPrice(f"Item '{description}' has an unreadable amount: {e}")

    check_item_amounts(description, price, original_price, discount)

    return ExtractedItem(
        description=description.strip(),
        price=price,
        original_price=original_price,
        discount=discount,
    )
