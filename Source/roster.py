"""
Roster module for ReceiptSplit
Tracks the people on the current bill, their colors, recent names and saved groups
"""

import uuid
import logging
from datetime import datetime
from typing import List, Optional

from assignment import drop_person
from config import RECENT_NAMES_LIMIT, NAME_SUGGESTION_LIMIT
from constants import PERSON_COLORS
from data_models import Person, Receipt, SavedGroup

logger = logging.getLogger(__name__)


class Roster:
    """The ordered set of participants for the current bill"""

    def __init__(self, people: Optional[List[Person]] = None,
                 recent_names: Optional[List[str]] = None,
                 recent_limit: int = RECENT_NAMES_LIMIT):
        self.people: List[Person] = [p.copy() for p in people or []]
        self.recent_names: List[str] = list(recent_names or [])
        self.recent_limit = recent_limit

    def __len__(self) -> int:
        return len(self.people)

    @property
    def ids(self) -> List[str]:
        return [person.id for person in self.people]

    def get(self, person_id: str) -> Optional[Person]:
        for person in self.people:
            if person.id == person_id:
                return person
        return None

    def _next_color(self) -> str:
        used = {person.color for person in self.people}
        for color in PERSON_COLORS:
            if color not in used:
                return color
        return PERSON_COLORS[len(self.people) % len(PERSON_COLORS)]

    def remember_name(self, name: str) -> None:
        """Move name to the front of the recent list (case-insensitive dedupe)"""
        lowered = name.lower()
        self.recent_names = [name] + [n for n in self.recent_names if n.lower() != lowered]
        del self.recent_names[self.recent_limit:]

    def add_person(self, name: str) -> Optional[Person]:
        """Add a person by name. Blank names are ignored; duplicates are allowed."""
        name = (name or "").strip()
        if not name:
            logger.debug("add_person: ignoring blank name")
            return None

        person = Person(id=f"person_{uuid.uuid4().hex}", name=name, color=self._next_color())
        self.people.append(person)
        self.remember_name(name)
        return person

    def remove_person(self, person_id: str, receipt: Optional[Receipt] = None) -> bool:
        """Remove a person and every assignment that references them"""
        person = self.get(person_id)
        if person is None:
            logger.debug("remove_person: unknown person %s", person_id)
            return False

        self.people = [p for p in self.people if p.id != person_id]
        touched = drop_person(receipt, person_id)
        if touched:
            logger.debug("Removed %s from %d item(s)", person.name, touched)
        return True

    def load_group(self, group: SavedGroup, receipt: Optional[Receipt] = None) -> None:
        """Replace the roster with copies of the group's people.

        Person ids are kept from the group so they stay stable for the session.
        Assignments to people who are not in the group are dropped.
        """
        previous = set(self.ids)
        self.people = [person.copy() for person in group.people]
        for person_id in previous - set(self.ids):
            drop_person(receipt, person_id)

    def snapshot_group(self, name: str) -> SavedGroup:
        """Detached copy of the current roster as a named group"""
        return SavedGroup(
            id=f"group_{uuid.uuid4().hex}",
            name=name.strip(),
            people=[person.copy() for person in self.people],
            created_at=datetime.now(),
        )

    def suggest_names(self, query: str = "", limit: int = NAME_SUGGESTION_LIMIT) -> List[str]:
        """Recent names not already on the roster that contain the query"""
        present = {person.name.lower() for person in self.people}
        query = query.strip().lower()
        suggestions = [
            name for name in self.recent_names
            if name.lower() not in present and query in name.lower()
        ]
        return suggestions[:limit]
