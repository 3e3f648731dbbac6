from decimal import Decimal

DECIMAL_QUANTIZE = Decimal("0.01")

# Display palette for people, assigned in order
PERSON_COLORS = [
    "#3B82F6",  # blue
    "#EF4444",  # red
    "#10B981",  # green
    "#F59E0B",  # amber
    "#8B5CF6",  # violet
    "#EC4899",  # pink
    "#14B8A6",  # teal
    "#F97316",  # orange
    "#6366F1",  # indigo
    "#84CC16",  # lime
]

ALLOWED_IMAGE_TYPES = {
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.bmp': 'image/bmp',
    '.tiff': 'image/tiff',
    '.gif': 'image/gif',
    '.webp': 'image/webp',
}

# Money amount with exactly two decimals, e.g. 12.50 or 12,50
MONEY_PATTERN = r'(\d+[.,]\d{2})(?!\d)'

# Summary line keywords, checked in this order
SUMMARY_PATTERNS = {
    'subtotal': r'\bSUB\s*-?\s*TOTAL\b',
    'tax': r'\b(?:SALES\s+TAX|TAX|VAT|GST|HST)\b',
    'tip': r'\b(?:TIP|GRATUITY|SERVICE\s+CHARGE)\b',
    'total': r'\b(?:GRAND\s+TOTAL|TOTAL\s+DUE|AMOUNT\s+DUE|BALANCE\s+DUE|TOTAL)\b',
}

DISCOUNT_PATTERN = r'^\s*(?:DISCOUNT|COUPON|SAVINGS|YOU\s+SAVED|PROMO)\b'

# Lines that are never line items
SKIP_WORDS = [
    'cash', 'change', 'card', 'visa', 'mastercard', 'amex', 'debit',
    'credit', 'receipt', 'invoice', 'date', 'time', 'cashier', 'server',
    'table', 'thank', 'tender', 'auth', 'approval',
]
