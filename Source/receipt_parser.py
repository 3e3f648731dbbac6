"""
Receipt Parser module for ReceiptSplit
Parses OCR text into receipt data: line items, discounts, subtotal, tax, tip and total
"""

import re
import os
import logging
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from difflib import SequenceMatcher
from typing import List, Optional, Tuple

from config import ITEM_PRICE_MAX
from constants import MONEY_PATTERN, SUMMARY_PATTERNS, DISCOUNT_PATTERN, SKIP_WORDS
from data_models import ReceiptData, ExtractedItem
from errors import ExtractionRejected, InvalidPrice
from receipt_builder import extracted_item_from
from utils import to_cents

logger = logging.getLogger(__name__)

DUPLICATE_SIMILARITY = 0.95

# (kind, description, amount) for one OCR line
ParsedLine = Tuple[str, Optional[str], Optional[Decimal]]


class ReceiptParser:
    """Parses OCR text to extract receipt items and totals"""

    def __init__(self, debug: bool = False):
        self.debug = debug

    def _clean_price(self, price_str: str) -> Optional[Decimal]:
        """Clean and convert price string to a two-decimal amount"""
        if not price_str:
            return None

        cleaned = re.sub(r'[^\d,\.]', '', str(price_str))

        # European format (comma as decimal separator)
        if ',' in cleaned and '.' in cleaned:
            cleaned = cleaned.replace('.', '').replace(',', '.') if cleaned.rfind(',') > cleaned.rfind('.') \
                else cleaned.replace(',', '')
        elif ',' in cleaned and cleaned.count(',') == 1:
            if len(cleaned.split(',')[1]) <= 2:
                cleaned = cleaned.replace(',', '.')

        try:
            price = to_cents(cleaned)
        except ValueError:
            return None
        if 0 <= price <= Decimal(str(ITEM_PRICE_MAX)):
            return price
        return None

    def _normalize_text(self, text: str) -> str:
        """Normalize text for better comparison"""
        normalized = ' '.join(text.lower().split())
        normalized = re.sub(r'[^\w\s]', ' ', normalized)
        return normalized.strip()

    def _is_valid_item_name(self, name: str) -> bool:
        """Check if the name is likely a purchased item"""
        if not name or len(name.strip()) < 2:
            return False

        words = set(self._normalize_text(name).split())
        if words & set(SKIP_WORDS):
            return False

        if not re.search(r'[a-zA-Z]', name):
            return False

        if len(re.sub(r'[\d\s\.\,\-\$]', '', name)) < 2:
            return False

        return True

    def _similarity_score(self, str1: str, str2: str) -> float:
        return SequenceMatcher(None, str1.lower(), str2.lower()).ratio()

    def _deduplicate_by_line_similarity(self, text: str) -> List[str]:
        """Remove duplicate lines that appear due to OCR overlapping regions"""
        unique_lines = []
        seen_exact = set()

        for line in text.split('\n'):
            line = line.strip()
            if not line:
                continue

            if line in seen_exact:
                logger.debug("Skipping exact duplicate: %r", line)
                continue

            if any(self._similarity_score(line, seen) > DUPLICATE_SIMILARITY for seen in unique_lines[-10:]):
                logger.debug("Skipping similar duplicate: %r", line)
                continue

            unique_lines.append(line)
            seen_exact.add(line)

        return unique_lines

    def _last_amount(self, line: str) -> Optional[Decimal]:
        amounts = re.findall(MONEY_PATTERN, line)
        return self._clean_price(amounts[-1]) if amounts else None

    def _parse_line(self, line: str) -> ParsedLine:
        """Classify a single line as summary, discount, item or noise"""
        upper = line.upper()

        for kind, pattern in SUMMARY_PATTERNS.items():
            if re.search(pattern, upper):
                return kind, None, self._last_amount(line)

        if re.search(DISCOUNT_PATTERN, upper):
            return 'discount', None, self._last_amount(line)

        # Qty x Name Price, e.g. "2 x Burger 18.00"
        qty_match = re.search(r'^(\d+)\s*[xX×@]\s*(.+?)\s+\$?' + MONEY_PATTERN + r'\s*$', line)
        if qty_match and self._is_valid_item_name(qty_match.group(2)):
            name = f"{qty_match.group(2).strip()} x{qty_match.group(1)}"
            return 'item', name, self._clean_price(qty_match.group(3))

        # Name Qty x Unit Total, e.g. "Burger 2 x 9.00 18.00"
        traditional = re.search(r'^(.+?)\s+(\d+)\s*[xX×@]\s*\$?' + MONEY_PATTERN + r'\s+\$?' + MONEY_PATTERN + r'\s*$', line)
        if traditional and self._is_valid_item_name(traditional.group(1)):
            name = f"{traditional.group(1).strip()} x{traditional.group(2)}"
            return 'item', name, self._clean_price(traditional.group(4))

        # Name Price, e.g. "Caesar Salad 12.50" or "Caesar Salad - $12.50"
        simple = re.search(r'^(.+?)\s*[-–]?\s*\$?' + MONEY_PATTERN + r'\s*[A-Z]?\s*$', line)
        if simple:
            name = re.sub(r'^[\d\s\-\*]+(?=[A-Za-z])', '', simple.group(1)).strip()
            if self._is_valid_item_name(name):
                return 'item', name, self._clean_price(simple.group(2))

        return 'noise', None, None

    def parse(self, ocr_text: str) -> ReceiptData:
        """Parse OCR text into receipt data.

        Raises ExtractionRejected when the text has neither line items nor
        any receipt totals.
        """
        lines = self._deduplicate_by_line_similarity(ocr_text or "")
        logger.debug("Parsing %d OCR lines", len(lines))

        max_workers = max(1, min(8, (os.cpu_count() or 4)))
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            parsed = list(executor.map(self._parse_line, lines))

        items: List[ExtractedItem] = []
        summary = {}
        for kind, name, amount in parsed:
            if amount is None:
                continue
            if kind == 'item':
                try:
                    items.append(extracted_item_from({'description': name, 'price': amount}))
                except InvalidPrice as e:
                    logger.info("Dropping item: %s", e)
            elif kind == 'discount':
                self._apply_discount(items, amount)
            elif kind in ('tax', 'tip'):
                summary[kind] = summary.get(kind, Decimal("0.00")) + amount
            else:
                summary.setdefault(kind, amount)

        if not items and not summary:
            raise ExtractionRejected()

        data = ReceiptData(
            items=items,
            subtotal=summary.get('subtotal', Decimal("0.00")),
            tax=summary.get('tax', Decimal("0.00")),
            tip=summary.get('tip', Decimal("0.00")),
            total=summary.get('total', Decimal("0.00")),
        )

        if data.total and items:
            calculated = sum((item.price for item in items), Decimal("0")) + data.tax + data.tip
            if abs(calculated - data.total) > Decimal("1.00"):
                logger.warning("Total mismatch: calculated %s vs found %s", calculated, data.total)

        if self.debug:
            for item in items:
                logger.debug("  %s: %s", item.description, item.price)
        logger.info("Parsed %d items, total %s", len(items), data.total)
        return data

    def _apply_discount(self, items: List[ExtractedItem], discount: Decimal):
        """Merge a discount line into the item above it"""
        if not items:
            logger.debug("Discount %s with no item before it", discount)
            return
        item = items[-1]
        if discount > item.price:
            logger.info("Discount %s larger than '%s' price %s; ignoring", discount, item.description, item.price)
            return
        base = item.original_price if item.original_price is not None else item.price
        already = item.discount or Decimal("0.00")
        item.original_price = base
        item.discount = already + discount
        item.price = base - item.discount
