"""
Assignment module for ReceiptSplit
Maps receipt items to the people who pay for them
"""

import logging
from typing import Iterable, List, Optional, Tuple

from data_models import Person, Receipt, ReceiptItem

logger = logging.getLogger(__name__)


def toggle_assignment(receipt: Optional[Receipt], item_id: str, person_id: str,
                      people: Iterable[Person]) -> bool:
    """Add person to the item's assignees, or remove them if already there.

    Unknown item or person ids are ignored. Returns True if the item changed.
    """
    if receipt is None:
        logger.debug("toggle_assignment called without an active receipt")
        return False
    item = receipt.item_by_id(item_id)
    if item is None:
        logger.debug("toggle_assignment: unknown item %s", item_id)
        return False
    if person_id not in {person.id for person in people}:
        logger.debug("toggle_assignment: unknown person %s", person_id)
        return False

    if person_id in item.assigned_to:
        item.assigned_to = [pid for pid in item.assigned_to if pid != person_id]
    else:
        item.assigned_to = item.assigned_to + [person_id]
    return True


def is_fully_assigned(receipt: Optional[Receipt]) -> bool:
    """True iff every item has at least one assignee"""
    if receipt is None:
        return False
    return all(item.assigned_to for item in receipt.items)


def clear_all_assignments(receipt: Optional[Receipt]) -> None:
    if receipt is None:
        return
    for item in receipt.items:
        item.assigned_to = []


def assign_all_to_all(receipt: Optional[Receipt], people: Iterable[Person]) -> None:
    """Equal split: every item is shared by the whole roster"""
    if receipt is None:
        return
    person_ids = [person.id for person in people]
    for item in receipt.items:
        item.assigned_to = list(person_ids)


def drop_person(receipt: Optional[Receipt], person_id: str) -> int:
    """Remove a person from every item, keeping the other assignees in order"""
    if receipt is None:
        return 0
    touched = 0
    for item in receipt.items:
        if person_id in item.assigned_to:
            item.assigned_to = [pid for pid in item.assigned_to if pid != person_id]
            touched += 1
    return touched


def first_unassigned_item(receipt: Optional[Receipt]) -> Optional[ReceiptItem]:
    if receipt is None:
        return None
    for item in receipt.items:
        if not item.assigned_to:
            return item
    return None


def assignment_progress(receipt: Optional[Receipt]) -> Tuple[int, int]:
    """Return (assigned items, total items)"""
    if receipt is None:
        return 0, 0
    assigned = sum(1 for item in receipt.items if item.assigned_to)
    return assigned, len(receipt.items)


def items_for_person(receipt: Optional[Receipt], person_id: str) -> List[ReceiptItem]:
    if receipt is None:
        return []
    return [item for item in receipt.items if person_id in item.assigned_to]
