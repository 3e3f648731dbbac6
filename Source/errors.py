"""
Error types for ReceiptSplit
"""

from typing import Optional


class ReceiptSplitError(Exception):
    """Base class for all ReceiptSplit errors"""


class ExtractionError(ReceiptSplitError):
    """A receipt image could not be turned into receipt data"""


class ExtractionRejected(ExtractionError):
    """The extraction service decided the image is not a receipt"""

    def __init__(self, message: str = "This doesn't appear to be a receipt or bill. Please scan a valid receipt."):
        super().__init__(message)


class ExtractionEmpty(ExtractionError):
    """A scan batch produced no usable line items"""

    def __init__(self, message: str = "No items found in any receipt. Please try again."):
        super().__init__(message)


class ExtractionFailed(ExtractionError):
    """The extraction service failed or returned something unreadable"""


class InvalidPrice(ReceiptSplitError, ValueError):
    """A line item with an unusable price or an inconsistent discount"""


class AssignmentNotReady(ReceiptSplitError):
    """Settlement was requested before every item has an owner"""

    def __init__(self, message: str, first_unassigned_id: Optional[str] = None):
        super().__init__(message)
        self.first_unassigned_id = first_unassigned_id


class InvalidTransition(ReceiptSplitError):
    """A phase change the workflow does not allow"""


class PersistenceFailure(ReceiptSplitError):
    """Reading or writing stored documents failed"""
