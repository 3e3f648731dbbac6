from __future__ import annotations

from assignment import (
    toggle_assignment, is_fully_assigned, clear_all_assignments, assign_all_to_all,
    first_unassigned_item, assignment_progress, items_for_person,
)
from conftest import make_receipt


def test_toggle_twice_restores_assignees(receipt, roster):
    alice, bob = roster.people
    item = receipt.items[0]
    item.assigned_to = [bob.id]

    assert toggle_assignment(receipt, item.id, alice.id, roster.people)
    assert item.assigned_to == [bob.id, alice.id]
    assert toggle_assignment(receipt, item.id, alice.id, roster.people)
    assert item.assigned_to == [bob.id]


def test_toggle_unknown_ids_is_noop(receipt, roster):
    alice = roster.people[0]

    assert not toggle_assignment(receipt, "missing", alice.id, roster.people)
    assert not toggle_assignment(receipt, receipt.items[0].id, "ghost", roster.people)
    assert not toggle_assignment(None, receipt.items[0].id, alice.id, roster.people)
    assert all(item.assigned_to == [] for item in receipt.items)


def test_equal_split_is_fully_assigned(receipt, roster):
    assert not is_fully_assigned(receipt)

    assign_all_to_all(receipt, roster.people)

    assert is_fully_assigned(receipt)
    assert all(item.assigned_to == roster.ids for item in receipt.items)


def test_clear_all_assignments(receipt, roster):
    assign_all_to_all(receipt, roster.people)

    clear_all_assignments(receipt)

    assert all(item.assigned_to == [] for item in receipt.items)
    assert assignment_progress(receipt) == (0, 2)


def test_progress_and_first_unassigned(roster):
    receipt = make_receipt(["1.00", "2.00", "3.00"])
    alice = roster.people[0]
    toggle_assignment(receipt, "item_1", alice.id, roster.people)
    toggle_assignment(receipt, "item_3", alice.id, roster.people)

    assert assignment_progress(receipt) == (2, 3)
    assert first_unassigned_item(receipt).id == "item_2"
    assert [item.id for item in items_for_person(receipt, alice.id)] == ["item_1", "item_3"]


def test_no_receipt_is_not_fully_assigned():
    assert not is_fully_assigned(None)
    assert assignment_progress(None) == (0, 0)
