"""
Storage module for ReceiptSplit
Per-user JSON documents for receipt history, saved groups and preferences
"""

import json
import uuid
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from config import DATA_DIR, RECEIPT_HISTORY_LIMIT
from data_models import (
    Person, Receipt, SavedGroup, SavedReceipt, UserPreferences,
    to_dict, group_from_dict, saved_receipt_from_dict, preferences_from_dict,
)
from errors import PersistenceFailure
from utils import sanitize_filename

logger = logging.getLogger(__name__)


class JsonDocumentStore:
    """Document store laid out as <root>/users/<user>/<collection>/<id>.json.

    Writes raise PersistenceFailure so callers can retry. Reads never raise:
    a missing or corrupt document is logged and treated as absent.
    """

    def __init__(self, root: Path = DATA_DIR):
        self.root = Path(root)

    def _collection(self, user_id: str, name: str) -> Path:
        return self.root / "users" / sanitize_filename(user_id) / name

    def _document(self, user_id: str, collection: str, doc_id: str) -> Path:
        return self._collection(user_id, collection) / f"{sanitize_filename(doc_id)}.json"

    def _write(self, path: Path, data: dict) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix('.tmp')
            with open(tmp, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            tmp.replace(path)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Error writing %s: %s", path, e)
            raise PersistenceFailure(f"Could not save {path.name}: {e}") from e

    def _read(self, path: Path) -> Optional[dict]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.error("Error reading %s: %s", path, e)
            return None

    def _delete(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug("Nothing to delete at %s", path)
        except OSError as e:
            logger.error("Error deleting %s: %s", path, e)
            raise PersistenceFailure(f"Could not delete {path.name}: {e}") from e

    def _list(self, user_id: str, collection: str) -> List[dict]:
        folder = self._collection(user_id, collection)
        try:
            paths = sorted(folder.glob('*.json'))
        except OSError as e:
            logger.error("Error listing %s: %s", folder, e)
            return []
        documents = []
        for path in paths:
            data = self._read(path)
            if data is not None:
                documents.append(data)
        return documents

    # ==================== Receipts ====================

    def save_receipt(self, user_id: str, receipt: Receipt, people: List[Person]) -> str:
        record = SavedReceipt(
            id=f"receipt_{uuid.uuid4().hex}",
            receipt=receipt,
            people=people,
            created_at=datetime.now(),
        )
        data = to_dict(record)
        data['receipt']['title'] = receipt.title or f"Receipt {record.created_at:%Y-%m-%d}"
        self._write(self._document(user_id, 'receipts', record.id), data)
        return record.id

    def update_receipt(self, user_id: str, receipt_id: str, receipt: Receipt, people: List[Person]) -> None:
        path = self._document(user_id, 'receipts', receipt_id)
        existing = self._read(path) or {}
        data = to_dict(SavedReceipt(id=receipt_id, receipt=receipt, people=people))
        data['receipt']['title'] = receipt.title or f"Receipt {datetime.now():%Y-%m-%d}"
        # createdAt is kept from the original document
        data['created_at'] = existing.get('created_at', data['created_at'])
        self._write(path, data)

    def list_receipts(self, user_id: str, limit: int = RECEIPT_HISTORY_LIMIT) -> List[SavedReceipt]:
        records = []
        for data in self._list(user_id, 'receipts'):
            try:
                records.append(saved_receipt_from_dict(data))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping unreadable receipt document: %s", e)
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records[:limit]

    def delete_receipt(self, user_id: str, receipt_id: str) -> None:
        self._delete(self._document(user_id, 'receipts', receipt_id))

    # ==================== Groups ====================

    def save_group(self, user_id: str, group: SavedGroup) -> str:
        self._write(self._document(user_id, 'groups', group.id), to_dict(group))
        return group.id

    def update_group(self, user_id: str, group_id: str, name: str, people: List[Person]) -> None:
        path = self._document(user_id, 'groups', group_id)
        existing = self._read(path)
        created_at = group_from_dict(existing).created_at if existing else datetime.now()
        group = SavedGroup(id=group_id, name=name, people=people, created_at=created_at)
        self._write(path, to_dict(group))

    def list_groups(self, user_id: str) -> List[SavedGroup]:
        groups = []
        for data in self._list(user_id, 'groups'):
            try:
                groups.append(group_from_dict(data))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping unreadable group document: %s", e)
        groups.sort(key=lambda g: g.created_at, reverse=True)
        return groups

    def delete_group(self, user_id: str, group_id: str) -> None:
        self._delete(self._document(user_id, 'groups', group_id))

    # ==================== Preferences ====================

    def save_preferences(self, user_id: str, preferences: UserPreferences) -> None:
        self._write(self._document(user_id, 'preferences', 'settings'), to_dict(preferences))

    def load_preferences(self, user_id: str) -> Optional[UserPreferences]:
        data = self._read(self._document(user_id, 'preferences', 'settings'))
        if data is None:
            return None
        return preferences_from_dict(data)
