"""
Bill Splitter module for ReceiptSplit
Works out what each person owes: their items plus a proportional cut of tax and tip
"""

import logging
from typing import List, Dict, Optional
from decimal import Decimal, ROUND_HALF_UP

import pandas as pd

from assignment import is_fully_assigned, first_unassigned_item, items_for_person
from config import AMOUNT_TOLERANCE
from constants import DECIMAL_QUANTIZE
from data_models import Receipt, Person, PersonShare
from errors import AssignmentNotReady

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class BillSplitter:
    """Handles bill splitting calculations.

    Item prices are divided evenly between their assignees and accumulated at
    full precision. Tax and tip are shared in proportion to each person's part
    of the subtotal. Only the final per-person total is rounded (half up, to
    cents); the few cents of drift that rounding can cause are reported by
    ``rounding_drift`` and never pushed onto one person.
    """

    def __init__(self, receipt: Receipt, people: List[Person]):
        self.receipt = receipt
        self.people = list(people)
        self.item_subtotals: Dict[str, Decimal] = {}
        self.shares: List[PersonShare] = []

    def _check_ready(self):
        if self.receipt is None:
            raise AssignmentNotReady("No receipt to settle")
        if not self.people:
            raise AssignmentNotReady("Add people before settling the bill")
        if not is_fully_assigned(self.receipt):
            item = first_unassigned_item(self.receipt)
            raise AssignmentNotReady(
                f"'{item.description}' is not assigned to anyone",
                first_unassigned_id=item.id,
            )

    def calculate_item_subtotals(self) -> Dict[str, Decimal]:
        """Sum each person's share of the items they are assigned to"""
        self.item_subtotals = {person.id: ZERO for person in self.people}

        for item in self.receipt.items:
            share_per_person = item.price / Decimal(len(item.assigned_to))
            for person_id in item.assigned_to:
                if person_id in self.item_subtotals:
                    self.item_subtotals[person_id] += share_per_person
                else:
                    logger.warning("Item '%s' is assigned to unknown person %s", item.description, person_id)

        return self.item_subtotals

    def calculate_shares(self) -> List[PersonShare]:
        """Calculate how much each person owes, in roster order"""
        self._check_ready()
        self.calculate_item_subtotals()

        subtotal = self.receipt.subtotal
        shares = []
        for person in self.people:
            item_subtotal = self.item_subtotals[person.id]
            if subtotal > 0:
                fraction = item_subtotal / subtotal
                tax_share = fraction * self.receipt.tax
                tip_share = fraction * self.receipt.tip
            else:
                tax_share = ZERO
                tip_share = ZERO

            unrounded = item_subtotal + tax_share + tip_share
            shares.append(PersonShare(
                person=person,
                item_subtotal=item_subtotal,
                tax_share=tax_share,
                tip_share=tip_share,
                total_owed=unrounded.quantize(DECIMAL_QUANTIZE, rounding=ROUND_HALF_UP),
                unrounded_total=unrounded,
            ))

        self.shares = shares
        self._reconcile()
        return shares

    def _reconcile(self):
        unrounded_sum = sum((share.unrounded_total for share in self.shares), ZERO)
        if abs(unrounded_sum - self.receipt.total) > AMOUNT_TOLERANCE:
            logger.warning(
                "Shares add up to %s but the receipt total is %s",
                unrounded_sum.quantize(DECIMAL_QUANTIZE), self.receipt.total,
            )
        drift = self.rounding_drift()
        if drift:
            logger.debug("Rounded shares drift from the total by %s", drift)

    def rounding_drift(self) -> Decimal:
        """Sum of rounded totals minus the receipt total"""
        if not self.shares:
            return ZERO
        return sum((share.total_owed for share in self.shares), ZERO) - self.receipt.total

    def breakdown(self, person_id: str) -> List[Dict]:
        """Per-item detail of what one person pays for"""
        return [
            {
                'item_name': item.description,
                'item_total_price': item.price,
                'shared_with': len(item.assigned_to),
                'person_share': item.price / Decimal(len(item.assigned_to)),
            }
            for item in items_for_person(self.receipt, person_id)
        ]

    def share_for(self, person_id: str) -> Optional[PersonShare]:
        for share in self.shares:
            if share.person.id == person_id:
                return share
        return None


def settlement_table(shares: List[PersonShare]) -> pd.DataFrame:
    """Tabulate shares for display or CSV export, amounts rounded to cents"""
    def cents(value: Decimal) -> float:
        return float(value.quantize(DECIMAL_QUANTIZE, rounding=ROUND_HALF_UP))

    rows = [
        {
            'name': share.person.name,
            'items': cents(share.item_subtotal),
            'tax': cents(share.tax_share),
            'tip': cents(share.tip_share),
            'total_owed': cents(share.total_owed),
        }
        for share in shares
    ]
    return pd.DataFrame(rows, columns=['name', 'items', 'tax', 'tip', 'total_owed'])
