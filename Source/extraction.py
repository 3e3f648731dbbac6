"""
Extraction boundary for ReceiptSplit

Receipt images are handed to an extraction service (local OCR or a cloud
vision model). Whatever comes back is validated here into ``ReceiptData``
before it reaches the rest of the app, and a batch of images is merged into
a single receipt.
"""

import re
import json
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from config import DEFAULT_MAX_WORKERS, EXTRACTION_FAIL_FAST, WORKERS_MIN, WORKERS_MAX
from constants import ALLOWED_IMAGE_TYPES
from data_models import Receipt, ReceiptData
from errors import ExtractionError, ExtractionRejected, ExtractionEmpty, ExtractionFailed, InvalidPrice
from receipt_builder import extracted_item_from, merge_receipts
from utils import to_cents

logger = logging.getLogger(__name__)


@dataclass
class ImageInput:
    """Raw image bytes plus mime type, as handed to an extraction service"""
    data: bytes
    mime_type: str
    name: str = "image"


def load_image(path: str) -> ImageInput:
    file_path = Path(path)
    mime_type = ALLOWED_IMAGE_TYPES.get(file_path.suffix.lower(), 'application/octet-stream')
    return ImageInput(data=file_path.read_bytes(), mime_type=mime_type, name=file_path.name)


class ReceiptExtractor:
    """Interface of an extraction service.

    ``extract`` returns validated ``ReceiptData`` or raises
    ``ExtractionRejected`` (not a receipt) / ``ExtractionFailed``.
    """

    name = "extractor"

    def extract(self, image: ImageInput) -> ReceiptData:
        raise NotImplementedError


def _amount(value: Any) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        return Decimal("0.00")
    try:
        amount = to_cents(value)
    except (TypeError, ValueError):
        return Decimal("0.00")
    return amount if amount >= 0 else Decimal("0.00")


def validate_payload(payload: Any) -> ReceiptData:
    """Validate loosely-typed extraction JSON into ReceiptData.

    Items without a non-empty description or a valid non-negative price are
    dropped. Missing summary amounts default to zero.
    """
    if not isinstance(payload, dict):
        raise ExtractionFailed("Could not read the receipt clearly. Please try again with better lighting.")
    if payload.get('isReceipt') is False:
        raise ExtractionRejected()

    raw_items = payload.get('items')
    if not isinstance(raw_items, list):
        logger.warning("No items array found in extraction result")
        raw_items = []

    items = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            logger.info("Dropping non-object item %r", raw)
            continue
        price = raw.get('price')
        if not isinstance(price, (int, float)) or isinstance(price, bool):
            logger.info("Dropping item with invalid price: %r", raw)
            continue
        record = {
            'description': raw.get('description'),
            'price': price,
            'original_price': raw.get('originalPrice', raw.get('original_price')),
            'discount': raw.get('discount'),
        }
        try:
            items.append(extracted_item_from(record))
        except InvalidPrice as e:
            logger.info("Dropping item: %s", e)

    return ReceiptData(
        items=items,
        subtotal=_amount(payload.get('subtotal')),
        tax=_amount(payload.get('tax')),
        tip=_amount(payload.get('tip')),
        total=_amount(payload.get('total')),
    )


def parse_model_response(text: str) -> ReceiptData:
    """Pull the JSON object out of a model reply and validate it"""
    json_string = (text or "").strip()
    json_string = re.sub(r'```json\s*', '', json_string, flags=re.IGNORECASE)
    json_string = re.sub(r'```\s*', '', json_string)

    match = re.search(r'\{[\s\S]*\}', json_string)
    if match:
        json_string = match.group(0)

    try:
        payload = json.loads(json_string.strip())
    except json.JSONDecodeError as e:
        logger.error("Failed to parse extraction JSON: %s", e)
        logger.debug("Raw extraction response: %s", text)
        raise ExtractionFailed("Could not read the receipt clearly. Please try again with better lighting.")

    return validate_payload(payload)


ProgressCallback = Callable[[int, str], None]


def _extract_one(extractor: ReceiptExtractor, image: ImageInput) -> ReceiptData:
    try:
        return extractor.extract(image)
    except ExtractionError:
        raise
    except Exception as e:
        logger.exception("Extraction of %s failed", image.name)
        raise ExtractionFailed("Something went wrong. Please try scanning again.") from e


def scan_receipts(images: Sequence[ImageInput], extractor: ReceiptExtractor,
                  max_workers: int = DEFAULT_MAX_WORKERS,
                  fail_fast: bool = EXTRACTION_FAIL_FAST,
                  progress: Optional[ProgressCallback] = None,
                  title: Optional[str] = None) -> Receipt:
    """Extract every image concurrently and merge the results into one receipt.

    With ``fail_fast`` (the default) the first failing image aborts the whole
    batch and its error is raised. Otherwise failed images are logged and
    skipped. Either way a batch with no valid items raises ``ExtractionEmpty``.
    """
    if not images:
        raise ExtractionEmpty("No images to scan.")

    workers = max(WORKERS_MIN, min(WORKERS_MAX, max_workers, len(images)))
    results: Dict[int, ReceiptData] = {}
    done = 0

    with ThreadPoolExecutor(max_workers=workers) as executor:
        future_to_index = {
            executor.submit(_extract_one, extractor, image): index
            for index, image in enumerate(images)
        }

        for future in as_completed(future_to_index):
            index = future_to_index[future]
            done += 1
            try:
                results[index] = future.result()
                if progress:
                    progress(done, f"image {index + 1} of {len(images)}")
            except ExtractionError as e:
                if fail_fast:
                    for pending in future_to_index:
                        pending.cancel()
                    logger.warning("Image %d failed, aborting batch: %s", index + 1, e)
                    raise
                logger.warning("Skipping image %d: %s", index + 1, e)
                if progress:
                    progress(done, f"image {index + 1} failed")

    ordered: List[ReceiptData] = [results[i] for i in sorted(results)]
    if not any(data.items for data in ordered):
        raise ExtractionEmpty()

    receipt = merge_receipts(ordered, title=title)
    logger.info("Scanned %d image(s): %d items, total %s", len(ordered), len(receipt.items), receipt.total)
    return receipt
