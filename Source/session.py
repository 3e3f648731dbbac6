"""
Session module for ReceiptSplit
One signed-in user's active bill: phase, receipt, roster and recent names
"""

import logging
from typing import List, Optional, Sequence

import assignment
from bill_splitter import BillSplitter
from config import RESET_CLEARS_ROSTER, DEFAULT_MAX_WORKERS, EXTRACTION_FAIL_FAST
from data_models import Person, Receipt, SavedGroup, SavedReceipt, UserPreferences, PersonShare
from errors import InvalidTransition, PersistenceFailure
from extraction import ImageInput, ReceiptExtractor, scan_receipts
from phases import Phase, PhaseMachine
from roster import Roster
from storage import JsonDocumentStore

logger = logging.getLogger(__name__)


class AppSession:
    """Owns the active bill for a single user.

    Operations are synchronous and meant to be driven by one caller at a
    time. ``reset_clears_roster`` decides whether starting over also empties
    the roster.
    """

    def __init__(self, user_id: str, store: Optional[JsonDocumentStore] = None,
                 reset_clears_roster: bool = RESET_CLEARS_ROSTER):
        self.user_id = user_id
        self.store = store
        self.reset_clears_roster = reset_clears_roster
        self.machine = PhaseMachine()
        self.receipt: Optional[Receipt] = None
        self.roster = Roster()
        self.saved_groups: List[SavedGroup] = []
        self.preferences = UserPreferences()
        self.saved_receipt_id: Optional[str] = None

    @property
    def phase(self) -> Phase:
        return self.machine.phase

    @property
    def people(self) -> List[Person]:
        return self.roster.people

    @property
    def recent_names(self) -> List[str]:
        return self.roster.recent_names

    # ==================== Capture ====================

    def set_receipt(self, receipt: Receipt) -> None:
        """Make a freshly produced receipt active and move to assignment"""
        if self.phase is not Phase.CAPTURE:
            raise InvalidTransition(f"Cannot load a receipt during {self.phase.value}")
        assignment.clear_all_assignments(receipt)
        self.machine.start_assignment()
        self.receipt = receipt
        self.saved_receipt_id = None

    def capture(self, images: Sequence[ImageInput], extractor: ReceiptExtractor,
                max_workers: int = DEFAULT_MAX_WORKERS, fail_fast: bool = EXTRACTION_FAIL_FAST,
                progress=None) -> Receipt:
        """Scan images into one receipt and start assignment. Extraction errors propagate."""
        receipt = scan_receipts(images, extractor, max_workers=max_workers,
                                fail_fast=fail_fast, progress=progress)
        self.set_receipt(receipt)
        return receipt

    # ==================== Roster ====================

    def add_person(self, name: str) -> Optional[Person]:
        return self.roster.add_person(name)

    def remove_person(self, person_id: str) -> bool:
        removed = self.roster.remove_person(person_id, self.receipt)
        self._leave_settlement_if_incomplete()
        return removed

    def load_group(self, group: SavedGroup, silent: bool = False) -> None:
        """Replace the roster with a saved group.

        Confirming the replacement when ``silent`` is False is up to the caller.
        """
        logger.debug("Loading group %s (silent=%s)", group.name, silent)
        self.roster.load_group(group, self.receipt)
        self._leave_settlement_if_incomplete()

    def suggest_names(self, query: str = "") -> List[str]:
        return self.roster.suggest_names(query)

    # ==================== Assignment ====================

    def toggle_assignment(self, item_id: str, person_id: str) -> bool:
        changed = assignment.toggle_assignment(self.receipt, item_id, person_id, self.people)
        self._leave_settlement_if_incomplete()
        return changed

    def clear_all_assignments(self) -> None:
        assignment.clear_all_assignments(self.receipt)
        self._leave_settlement_if_incomplete()

    def assign_all_to_all(self) -> None:
        assignment.assign_all_to_all(self.receipt, self.people)

    def is_fully_assigned(self) -> bool:
        return assignment.is_fully_assigned(self.receipt)

    # ==================== Settlement ====================

    def proceed_to_settlement(self) -> None:
        """Raises AssignmentNotReady (phase unchanged) while the bill is incomplete"""
        first = assignment.first_unassigned_item(self.receipt)
        self.machine.start_settlement(
            fully_assigned=self.is_fully_assigned(),
            has_people=bool(self.people),
            first_unassigned_id=first.id if first else None,
        )

    def back_to_assignment(self) -> None:
        self.machine.back_to_assignment()

    def _leave_settlement_if_incomplete(self) -> None:
        """Return to assignment once settlement's entry conditions stop holding"""
        if self.phase is Phase.SETTLEMENT and not (self.people and self.is_fully_assigned()):
            logger.info("Bill no longer fully assigned; back to assignment")
            self.machine.back_to_assignment()

    def splitter(self) -> BillSplitter:
        return BillSplitter(self.receipt, self.people)

    def settle(self) -> List[PersonShare]:
        if self.phase is not Phase.SETTLEMENT:
            raise InvalidTransition("Settle the bill from the settlement phase")
        return self.splitter().calculate_shares()

    def reset(self) -> None:
        """Start over: drop the receipt, optionally the roster too"""
        self.receipt = None
        self.saved_receipt_id = None
        if self.reset_clears_roster:
            self.roster.people = []
        self.machine.reset()

    # ==================== Persistence ====================

    def refresh_groups(self) -> List[SavedGroup]:
        if self.store is not None:
            self.saved_groups = self.store.list_groups(self.user_id)
        return self.saved_groups

    def save_group(self, name: str) -> SavedGroup:
        if not name.strip():
            raise ValueError("Group name must not be empty")
        group = self.roster.snapshot_group(name)
        if self.store is not None:
            self.store.save_group(self.user_id, group)
        self.saved_groups.insert(0, group)
        return group

    def delete_group(self, group_id: str) -> None:
        if self.store is not None:
            self.store.delete_group(self.user_id, group_id)
        self.saved_groups = [g for g in self.saved_groups if g.id != group_id]
        if self.preferences.default_group_id == group_id:
            self.set_default_group(None)

    def set_default_group(self, group_id: Optional[str]) -> None:
        preferences = UserPreferences(default_group_id=group_id)
        if self.store is not None:
            self.store.save_preferences(self.user_id, preferences)
        self.preferences = preferences

    def save_receipt(self, title: Optional[str] = None) -> str:
        """Store the current receipt and roster in history (update if already saved)"""
        if self.receipt is None:
            raise PersistenceFailure("There is no receipt to save")
        if self.store is None:
            raise PersistenceFailure("No storage configured")
        if title:
            self.receipt.title = title
        if self.saved_receipt_id:
            self.store.update_receipt(self.user_id, self.saved_receipt_id, self.receipt, self.people)
        else:
            self.saved_receipt_id = self.store.save_receipt(self.user_id, self.receipt, self.people)
        return self.saved_receipt_id

    def receipt_history(self) -> List[SavedReceipt]:
        if self.store is None:
            return []
        return self.store.list_receipts(self.user_id)


def start_session(user_id: str, store: Optional[JsonDocumentStore] = None,
                  reset_clears_roster: bool = RESET_CLEARS_ROSTER) -> AppSession:
    """Create the session for a signed-in user.

    Saved groups and preferences are loaded; when a default group is set it
    seeds the empty roster.
    """
    session = AppSession(user_id, store=store, reset_clears_roster=reset_clears_roster)
    if store is None:
        return session

    session.refresh_groups()
    session.preferences = store.load_preferences(user_id) or UserPreferences()

    default_id = session.preferences.default_group_id
    if default_id and not session.people:
        group = next((g for g in session.saved_groups if g.id == default_id), None)
        if group is not None:
            session.load_group(group, silent=True)
        else:
            logger.info("Default group %s no longer exists", default_id)
    return session
