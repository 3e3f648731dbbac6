from __future__ import annotations

from decimal import Decimal

import pytest

from data_models import ReceiptData, ExtractedItem, UserPreferences
from errors import AssignmentNotReady, InvalidTransition, PersistenceFailure
from extraction import ImageInput, ReceiptExtractor
from phases import Phase
from session import AppSession, start_session
from storage import JsonDocumentStore
from conftest import make_receipt


class OneReceipt(ReceiptExtractor):
    def extract(self, image):
        return ReceiptData(
            items=[ExtractedItem(description="Nachos", price=Decimal("12.00")),
                   ExtractedItem(description="Wings", price=Decimal("18.00"))],
            tax=Decimal("3.00"), tip=Decimal("6.00"),
        )


@pytest.fixture
def session():
    session = AppSession("user-1")
    session.add_person("Alice")
    session.add_person("Bob")
    return session


def test_full_bill_flow(session):
    receipt = session.capture([ImageInput(b"", "image/jpeg")], OneReceipt())
    assert session.phase is Phase.ASSIGNMENT
    assert receipt.total == Decimal("39.00")

    with pytest.raises(AssignmentNotReady) as exc:
        session.proceed_to_settlement()
    assert exc.value.first_unassigned_id == receipt.items[0].id
    assert session.phase is Phase.ASSIGNMENT

    session.assign_all_to_all()
    session.proceed_to_settlement()
    shares = session.settle()

    assert [s.total_owed for s in shares] == [Decimal("19.50"), Decimal("19.50")]


def test_new_receipt_starts_unassigned(session):
    receipt = make_receipt(["5.00"])
    receipt.items[0].assigned_to = ["someone"]

    session.set_receipt(receipt)

    assert session.receipt.items[0].assigned_to == []


def test_switching_split_modes(session):
    session.set_receipt(make_receipt(["5.00", "7.00"]))

    session.assign_all_to_all()
    assert session.is_fully_assigned()

    session.clear_all_assignments()
    assert not session.is_fully_assigned()


def test_toggle_and_remove_person(session):
    session.set_receipt(make_receipt(["5.00"]))
    alice, bob = session.people

    session.toggle_assignment("item_1", alice.id)
    session.toggle_assignment("item_1", bob.id)
    session.remove_person(alice.id)

    assert session.receipt.items[0].assigned_to == [bob.id]


def test_back_to_assignment_keeps_assignments(session):
    session.set_receipt(make_receipt(["5.00"]))
    session.assign_all_to_all()
    session.proceed_to_settlement()

    session.back_to_assignment()

    assert session.phase is Phase.ASSIGNMENT
    assert session.receipt.items[0].assigned_to == [p.id for p in session.people]


def test_settle_outside_settlement_phase(session):
    with pytest.raises(InvalidTransition):
        session.settle()


def test_reset_keeps_roster_by_default(session):
    session.set_receipt(make_receipt(["5.00"]))

    session.reset()

    assert session.phase is Phase.CAPTURE
    assert session.receipt is None
    assert [p.name for p in session.people] == ["Alice", "Bob"]


def test_reset_can_clear_roster():
    session = AppSession("user-1", reset_clears_roster=True)
    session.add_person("Alice")
    session.set_receipt(make_receipt(["5.00"]))

    session.reset()

    assert session.people == []
    assert session.recent_names == ["Alice"]


def test_start_session_loads_default_group(tmp_path):
    store = JsonDocumentStore(tmp_path)
    first = AppSession("user-1", store=store)
    first.add_person("Alice")
    first.add_person("Bob")
    group = first.save_group("Roommates")
    first.set_default_group(group.id)

    session = start_session("user-1", store)

    assert [p.name for p in session.people] == ["Alice", "Bob"]
    assert [p.id for p in session.people] == [p.id for p in group.people]
    assert session.preferences == UserPreferences(default_group_id=group.id)


def test_start_session_ignores_missing_default_group(tmp_path):
    store = JsonDocumentStore(tmp_path)
    store.save_preferences("user-1", UserPreferences(default_group_id="gone"))

    session = start_session("user-1", store)

    assert session.people == []


def test_deleting_default_group_clears_preference(tmp_path):
    session = AppSession("user-1", store=JsonDocumentStore(tmp_path))
    session.add_person("Alice")
    group = session.save_group("Solo")
    session.set_default_group(group.id)

    session.delete_group(group.id)

    assert session.saved_groups == []
    assert session.preferences.default_group_id is None


def test_save_receipt_then_update(tmp_path):
    session = AppSession("user-1", store=JsonDocumentStore(tmp_path))
    session.add_person("Alice")
    session.set_receipt(make_receipt(["5.00"]))

    receipt_id = session.save_receipt("Lunch")
    session.assign_all_to_all()
    assert session.save_receipt() == receipt_id

    history = session.receipt_history()
    assert len(history) == 1
    assert history[0].receipt.title == "Lunch"
    assert history[0].receipt.items[0].assigned_to == [session.people[0].id]


def test_save_receipt_without_store(session):
    session.set_receipt(make_receipt(["5.00"]))

    with pytest.raises(PersistenceFailure):
        session.save_receipt()


def test_removing_a_payer_during_settlement_returns_to_assignment(session):
    session.set_receipt(make_receipt(["10.00", "20.00"]))
    alice, bob = session.people
    session.toggle_assignment("item_1", alice.id)
    session.toggle_assignment("item_2", bob.id)
    session.proceed_to_settlement()

    session.remove_person(bob.id)

    assert session.phase is Phase.ASSIGNMENT
    assert not session.is_fully_assigned()
    with pytest.raises(InvalidTransition):
        session.settle()


def test_settlement_survives_roster_change_that_keeps_bill_assigned(session):
    session.set_receipt(make_receipt(["10.00"]))
    alice, bob = session.people
    session.assign_all_to_all()
    session.proceed_to_settlement()

    session.remove_person(bob.id)

    assert session.phase is Phase.SETTLEMENT
    assert [s.total_owed for s in session.settle()] == [Decimal("10.00")]


def test_emptying_roster_during_settlement_returns_to_assignment(session):
    session.set_receipt(make_receipt(["10.00"]))
    session.assign_all_to_all()
    session.proceed_to_settlement()

    for person in list(session.people):
        session.remove_person(person.id)

    assert session.phase is Phase.ASSIGNMENT
