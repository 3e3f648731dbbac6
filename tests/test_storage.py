from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from data_models import Person, SavedGroup, UserPreferences
from errors import PersistenceFailure
from storage import JsonDocumentStore
from conftest import make_receipt

PEOPLE = [Person(id="p1", name="Alice", color="#3B82F6"), Person(id="p2", name="Bob", color="#EF4444")]


@pytest.fixture
def store(tmp_path):
    return JsonDocumentStore(tmp_path)


def test_receipt_round_trip(store):
    receipt = make_receipt(["12.50", "7.25"], tax="1.98", tip="4.00")
    receipt.items[0].assigned_to = ["p1", "p2"]

    receipt_id = store.save_receipt("u1", receipt, PEOPLE)
    [saved] = store.list_receipts("u1")

    assert saved.id == receipt_id
    assert saved.people == PEOPLE
    assert saved.receipt.items[0].price == Decimal("12.50")
    assert saved.receipt.items[0].assigned_to == ["p1", "p2"]
    assert saved.receipt.total == Decimal("25.73")
    assert saved.receipt.title.startswith("Receipt ")


def test_receipts_are_scoped_by_user(store):
    store.save_receipt("u1", make_receipt(["1.00"]), PEOPLE)

    assert store.list_receipts("u2") == []


def test_list_receipts_newest_first_and_limited(store, monkeypatch):
    import storage

    base = datetime(2024, 1, 1)
    times = iter(base + timedelta(days=i) for i in range(3))

    class FakeDatetime(datetime):
        @classmethod
        def now(cls, tz=None):
            return next(times)

    monkeypatch.setattr(storage, "datetime", FakeDatetime)
    ids = [store.save_receipt("u1", make_receipt(["1.00"]), PEOPLE) for _ in range(3)]

    listed = store.list_receipts("u1", limit=2)

    assert [r.id for r in listed] == [ids[2], ids[1]]


def test_delete_receipt(store):
    receipt_id = store.save_receipt("u1", make_receipt(["1.00"]), PEOPLE)

    store.delete_receipt("u1", receipt_id)
    store.delete_receipt("u1", receipt_id)

    assert store.list_receipts("u1") == []


def test_group_update_keeps_created_at(store):
    created = datetime(2024, 5, 1, 12, 0)
    store.save_group("u1", SavedGroup(id="g1", name="Trip", people=PEOPLE, created_at=created))

    store.update_group("u1", "g1", "Ski trip", PEOPLE[:1])
    [group] = store.list_groups("u1")

    assert group.name == "Ski trip"
    assert group.people == PEOPLE[:1]
    assert group.created_at == created


def test_preferences_round_trip(store):
    assert store.load_preferences("u1") is None

    store.save_preferences("u1", UserPreferences(default_group_id="g1"))

    assert store.load_preferences("u1") == UserPreferences(default_group_id="g1")


def test_corrupt_documents_are_skipped(store, tmp_path):
    store.save_group("u1", SavedGroup(id="g1", name="Trip", people=PEOPLE))
    (tmp_path / "users" / "u1" / "groups" / "broken.json").write_text("{not json", encoding="utf-8")
    (tmp_path / "users" / "u1" / "preferences").mkdir(parents=True)
    (tmp_path / "users" / "u1" / "preferences" / "settings.json").write_text("[", encoding="utf-8")

    assert [g.id for g in store.list_groups("u1")] == ["g1"]
    assert store.load_preferences("u1") is None


def test_write_failure_raises(tmp_path):
    blocker = tmp_path / "blocked"
    blocker.write_text("a file, not a folder", encoding="utf-8")
    store = JsonDocumentStore(blocker)

    with pytest.raises(PersistenceFailure):
        store.save_group("u1", SavedGroup(id="g1", name="Trip", people=PEOPLE))
