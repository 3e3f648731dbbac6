"""
Data models for ReceiptSplit - Receipts, people and bill splitting
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from decimal import Decimal
from typing import List, Dict, Optional, Any

from config import AMOUNT_TOLERANCE
from errors import InvalidPrice
from utils import to_decimal


@dataclass
class Person:
    """A participant on the current bill"""
    id: str
    name: str
    color: str

    def copy(self) -> "Person":
        return Person(id=self.id, name=self.name, color=self.color)


@dataclass
class ReceiptItem:
    """Represents a single item on a receipt"""
    id: str
    description: str
    price: Decimal
    original_price: Optional[Decimal] = None
    discount: Optional[Decimal] = None
    assigned_to: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.price = to_decimal(self.price)
        if self.original_price is not None:
            self.original_price = to_decimal(self.original_price)
        if self.discount is not None:
            self.discount = to_decimal(self.discount)

        check_item_amounts(self.description, self.price, self.original_price, self.discount)


def check_item_amounts(description: str, price: Decimal,
                       original_price: Optional[Decimal] = None,
                       discount: Optional[Decimal] = None) -> None:
    """Raise InvalidPrice unless price >= 0 and price == original_price - discount to the cent"""
    if price < 0:
        raise InvalidPrice(f"Negative price for '{description}': {price}")
    if discount is not None and discount < 0:
        raise InvalidPrice(f"Negative discount for '{description}': {discount}")
    if original_price is not None and discount is not None:
        expected = original_price - discount
        if abs(price - expected) >= AMOUNT_TOLERANCE:
            raise InvalidPrice(
                f"Price {price} of '{description}' does not match {original_price} - {discount}"
            )


@dataclass
class Receipt:
    """The whole receipt"""
    items: List[ReceiptItem] = field(default_factory=list)
    subtotal: Decimal = Decimal("0.00")
    tax: Decimal = Decimal("0.00")
    tip: Decimal = Decimal("0.00")
    total: Decimal = Decimal("0.00")
    title: Optional[str] = None

    def __post_init__(self):
        self.subtotal = to_decimal(self.subtotal)
        self.tax = to_decimal(self.tax)
        self.tip = to_decimal(self.tip)
        self.total = to_decimal(self.total)

    def item_by_id(self, item_id: str) -> Optional[ReceiptItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def items_total(self) -> Decimal:
        return sum((item.price for item in self.items), Decimal("0"))

    def is_balanced(self) -> bool:
        """Check subtotal and total against the items within rounding tolerance"""
        if abs(self.subtotal - self.items_total()) > AMOUNT_TOLERANCE:
            return False
        return abs(self.total - (self.subtotal + self.tax + self.tip)) <= AMOUNT_TOLERANCE


@dataclass
class SavedGroup:
    """Named, reusable snapshot of a roster"""
    id: str
    name: str
    people: List[Person] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class UserPreferences:
    default_group_id: Optional[str] = None


@dataclass
class SavedReceipt:
    """A receipt stored in history together with the people who split it"""
    id: str
    receipt: Receipt
    people: List[Person] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class ExtractedItem:
    """A validated line item coming back from an extraction service"""
    description: str
    price: Decimal
    original_price: Optional[Decimal] = None
    discount: Optional[Decimal] = None


@dataclass
class ReceiptData:
    """Validated extraction result for one image"""
    items: List[ExtractedItem] = field(default_factory=list)
    subtotal: Decimal = Decimal("0.00")
    tax: Decimal = Decimal("0.00")
    tip: Decimal = Decimal("0.00")
    total: Decimal = Decimal("0.00")


@dataclass
class PersonShare:
    """What one person owes for the bill"""
    person: Person
    item_subtotal: Decimal
    tax_share: Decimal
    tip_share: Decimal
    total_owed: Decimal
    unrounded_total: Decimal


@dataclass
class ProcessingMetrics:
    """Metrics for parallel processing performance"""
    workers_used: int = 0
    processing_time: float = 0.0
    regions_processed: int = 0
    images_processed: int = 0
    items_detected: int = 0


# ==================== Serialization ====================

def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def to_dict(obj) -> Dict[str, Any]:
    """Convert a model to JSON-safe data (Decimals as strings, dates as ISO)"""
    return _plain(asdict(obj))


def _optional_decimal(value) -> Optional[Decimal]:
    return None if value is None else to_decimal(value)


def _parse_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if value:
        try:
            return datetime.fromisoformat(str(value))
        except ValueError:
            pass
    return datetime.now()


def person_from_dict(data: Dict[str, Any]) -> Person:
    return Person(id=str(data['id']), name=str(data['name']), color=str(data.get('color', '')))


def item_from_dict(data: Dict[str, Any]) -> ReceiptItem:
    return ReceiptItem(
        id=str(data['id']),
        description=str(data.get('description', '')),
        price=to_decimal(data.get('price', 0)),
        original_price=_optional_decimal(data.get('original_price')),
        discount=_optional_decimal(data.get('discount')),
        assigned_to=[str(p) for p in data.get('assigned_to', [])],
    )


def receipt_from_dict(data: Dict[str, Any]) -> Receipt:
    return Receipt(
        items=[item_from_dict(i) for i in data.get('items', [])],
        subtotal=to_decimal(data.get('subtotal', 0)),
        tax=to_decimal(data.get('tax', 0)),
        tip=to_decimal(data.get('tip', 0)),
        total=to_decimal(data.get('total', 0)),
        title=data.get('title'),
    )


def group_from_dict(data: Dict[str, Any]) -> SavedGroup:
    return SavedGroup(
        id=str(data['id']),
        name=str(data.get('name', '')),
        people=[person_from_dict(p) for p in data.get('people', [])],
        created_at=_parse_datetime(data.get('created_at')),
    )


def saved_receipt_from_dict(data: Dict[str, Any]) -> SavedReceipt:
    return SavedReceipt(
        id=str(data['id']),
        receipt=receipt_from_dict(data.get('receipt', {})),
        people=[person_from_dict(p) for p in data.get('people', [])],
        created_at=_parse_datetime(data.get('created_at')),
    )


def preferences_from_dict(data: Dict[str, Any]) -> UserPreferences:
    return UserPreferences(default_group_id=data.get('default_group_id'))
