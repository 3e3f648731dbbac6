#!/usr/bin/env python3
"""
Utility functions for ReceiptSplit
"""

import re
import math
import logging
import mimetypes
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from pathlib import Path
from typing import List, Optional

from config import MAX_IMAGE_SIZE_BYTES
from constants import ALLOWED_IMAGE_TYPES, DECIMAL_QUANTIZE

logger = logging.getLogger(__name__)

PROGRESS_BAR_LENGTH = 30


def to_decimal(value) -> Decimal:
    """Convert a number or numeric string to Decimal without float noise"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Booleans are not amounts")
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Non-finite amount: {value}")
        return Decimal(repr(value))
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Not an amount: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Non-finite amount: {value!r}")
    return result


def to_cents(value) -> Decimal:
    """Round an amount to two decimals"""
    return to_decimal(value).quantize(DECIMAL_QUANTIZE, rounding=ROUND_HALF_UP)


def validate_image_path(image_path: str) -> bool:
    """Comprehensive image path validation with security checks"""
    if not isinstance(image_path, str):
        logger.warning("Image path must be a string")
        return False

    try:
        path = Path(image_path)

        if '..' in path.parts:
            logger.warning("Invalid path pattern: %s", image_path)
            return False

        if not path.exists():
            logger.warning("File not found: %s", image_path)
            return False

        if not path.is_file():
            logger.warning("Path is not a file: %s", image_path)
            return False

        if path.stat().st_size > MAX_IMAGE_SIZE_BYTES:
            logger.warning("File too large: %s bytes (max: %s)", path.stat().st_size, MAX_IMAGE_SIZE_BYTES)
            return False

        if path.suffix.lower() not in ALLOWED_IMAGE_TYPES:
            logger.warning("Unsupported file extension: %s", path.suffix)
            return False

        mime_type, _ = mimetypes.guess_type(str(path))
        if mime_type and not mime_type.startswith('image/'):
            logger.warning("Invalid MIME type: %s", mime_type)
            return False

        return True

    except OSError as e:
        logger.warning("Path validation error: %s", e)
        return False


def get_image_files(directory: str) -> List[str]:
    """Get all image files from a directory with validation"""
    directory_path = Path(directory)

    if not directory_path.exists() or not directory_path.is_dir():
        logger.warning("Invalid directory: %s", directory)
        return []

    image_files = [
        str(file_path)
        for file_path in directory_path.iterdir()
        if file_path.suffix.lower() in ALLOWED_IMAGE_TYPES and validate_image_path(str(file_path))
    ]
    image_files.sort()

    logger.info("Found %d valid image files in %s", len(image_files), directory)
    return image_files


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe file operations"""
    if not isinstance(filename, str):
        return "unnamed_file"

    filename = re.sub(r'[<>:"/\\|?*\x00-\x1f]', '', filename)
    filename = filename.replace(' ', '_')

    if len(filename) > 200:
        filename = filename[:200]

    if not filename.strip():
        filename = "unnamed_file"

    return filename


def format_currency(amount, symbol: str = '$') -> str:
    """Format an amount with two decimals and a currency symbol"""
    try:
        value = to_cents(amount)
    except (TypeError, ValueError):
        return f"{symbol}0.00"
    sign = '-' if value < 0 else ''
    return f"{sign}{symbol}{abs(value):.2f}"


def try_parse_amount(value: str) -> Optional[Decimal]:
    """Safely parse a non-negative amount from user input"""
    try:
        amount = to_decimal(value.strip().replace(',', '.').lstrip('$'))
    except (AttributeError, TypeError, ValueError):
        return None
    return amount if amount >= 0 else None


def try_parse_int(value: str) -> Optional[int]:
    """Safely parse integer from string"""
    try:
        return int(value.strip())
    except (AttributeError, ValueError):
        return None


def validate_menu_choice(choice: str, valid_choices: list[str]) -> Optional[str]:
    """Validate a menu choice against allowed options"""
    if not isinstance(choice, str):
        return None
    choice = choice.strip()
    return choice if choice in set(valid_choices) else None


def create_progress_callback(total_steps: int, description: str = "Processing"):
    """Create a progress callback function for long operations"""
    def progress_callback(step: int, status: str = ""):
        percentage = (step / total_steps) * 100 if total_steps else 100.0
        filled_length = int(PROGRESS_BAR_LENGTH * step // total_steps) if total_steps else PROGRESS_BAR_LENGTH
        bar = '█' * filled_length + '░' * (PROGRESS_BAR_LENGTH - filled_length)

        status_text = f" - {status}" if status else ""
        print(f"\r{description}: [{bar}] {percentage:.1f}%{status_text}", end='', flush=True)

        if step >= total_steps:
            print()

    return progress_callback


def clean_text_for_display(text: str, max_length: int = 100) -> str:
    """Clean text for safe display in UI"""
    if not isinstance(text, str):
        return ""

    text = re.sub(r'[\x00-\x1f\x7f-\x9f]', '', text)
    text = ' '.join(text.split())

    if len(text) > max_length:
        text = text[:max_length-3] + "..."

    return text
