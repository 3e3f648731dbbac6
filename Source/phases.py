"""
Workflow phases for ReceiptSplit: capture -> assignment -> settlement
"""

import logging
from enum import Enum

from errors import InvalidTransition, AssignmentNotReady

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    CAPTURE = "capture"
    ASSIGNMENT = "assignment"
    SETTLEMENT = "settlement"


class PhaseMachine:
    """Linear capture -> assignment -> settlement flow with reset to capture"""

    def __init__(self):
        self.phase = Phase.CAPTURE

    def _move(self, expected: Phase, target: Phase):
        if self.phase is not expected:
            raise InvalidTransition(f"Cannot go from {self.phase.value} to {target.value}")
        logger.debug("Phase %s -> %s", self.phase.value, target.value)
        self.phase = target

    def start_assignment(self):
        """A receipt was produced"""
        self._move(Phase.CAPTURE, Phase.ASSIGNMENT)

    def start_settlement(self, fully_assigned: bool, has_people: bool, first_unassigned_id=None):
        """Move to settlement; rejected while items are unassigned or nobody is on the bill"""
        if self.phase is not Phase.ASSIGNMENT:
            raise InvalidTransition(f"Cannot go from {self.phase.value} to settlement")
        if not has_people:
            raise AssignmentNotReady("Add people to start")
        if not fully_assigned:
            raise AssignmentNotReady("Some items are not assigned yet", first_unassigned_id=first_unassigned_id)
        self._move(Phase.ASSIGNMENT, Phase.SETTLEMENT)

    def back_to_assignment(self):
        self._move(Phase.SETTLEMENT, Phase.ASSIGNMENT)

    def reset(self):
        logger.debug("Phase %s -> %s (reset)", self.phase.value, Phase.CAPTURE.value)
        self.phase = Phase.CAPTURE
