from __future__ import annotations

import threading
from decimal import Decimal

import pytest

from data_models import ReceiptData, ExtractedItem
from errors import ExtractionRejected, ExtractionEmpty, ExtractionFailed
from extraction import (
    ImageInput, ReceiptExtractor, validate_payload, parse_model_response, scan_receipts, load_image,
)


class FakeExtractor(ReceiptExtractor):
    """Returns canned results keyed by image name"""

    name = "fake"

    def __init__(self, results):
        self.results = results
        self.calls = []
        self.lock = threading.Lock()

    def extract(self, image):
        with self.lock:
            self.calls.append(image.name)
        result = self.results[image.name]
        if isinstance(result, Exception):
            raise result
        return result


def _image(name):
    return ImageInput(data=b"", mime_type="image/jpeg", name=name)


def _data(*prices, tax="0.00", tip="0.00"):
    return ReceiptData(
        items=[ExtractedItem(description=f"Item {p}", price=Decimal(p)) for p in prices],
        tax=Decimal(tax),
        tip=Decimal(tip),
    )


def test_validate_payload_filters_items():
    payload = {
        "isReceipt": True,
        "items": [
            {"description": " Burger ", "price": 12.5},
            {"description": "", "price": 3},
            {"description": "Ghost"},
            {"description": "Refund", "price": -2},
            {"description": "Text price", "price": "4.00"},
            {"description": "Pasta", "price": 10.0, "originalPrice": 12.0, "discount": 2.0},
            {"description": "Bad discount", "price": 9.99, "originalPrice": 12.0, "discount": 2.0},
            "not an item",
        ],
        "subtotal": 22.5,
        "tax": 2.004,
        "tip": 3,
    }

    data = validate_payload(payload)

    assert [item.description for item in data.items] == ["Burger", "Pasta"]
    assert data.items[1].original_price == Decimal("12.00")
    assert data.items[1].discount == Decimal("2.00")
    assert data.tax == Decimal("2.00")
    assert data.tip == Decimal("3.00")
    assert data.total == Decimal("0.00")


def test_validate_payload_rejects_non_receipt():
    with pytest.raises(ExtractionRejected):
        validate_payload({"isReceipt": False})


def test_parse_model_response_strips_markdown():
    text = 'Here you go:\n```json\n{"items": [{"description": "Tea", "price": 3.5}], "total": 3.5}\n```'

    data = parse_model_response(text)

    assert data.items[0].description == "Tea"
    assert data.total == Decimal("3.50")


def test_parse_model_response_unreadable():
    with pytest.raises(ExtractionFailed):
        parse_model_response("I could not see a receipt here")


def test_scan_merges_in_input_order():
    extractor = FakeExtractor({
        "a.jpg": _data("5.00", "10.00", tax="1.00", tip="2.00"),
        "b.jpg": _data("20.00", tax="1.50", tip="3.00"),
    })

    receipt = scan_receipts([_image("a.jpg"), _image("b.jpg")], extractor, max_workers=2)

    assert [item.description for item in receipt.items] == ["Item 5.00", "Item 10.00", "Item 20.00"]
    assert receipt.total == Decimal("42.50")


def test_scan_fails_fast_on_any_error():
    extractor = FakeExtractor({
        "a.jpg": _data("5.00"),
        "b.jpg": ExtractionRejected(),
    })

    with pytest.raises(ExtractionRejected):
        scan_receipts([_image("a.jpg"), _image("b.jpg")], extractor, fail_fast=True)


def test_scan_best_effort_skips_failures():
    extractor = FakeExtractor({
        "a.jpg": _data("5.00"),
        "b.jpg": ExtractionRejected(),
    })

    receipt = scan_receipts([_image("a.jpg"), _image("b.jpg")], extractor, fail_fast=False)

    assert receipt.subtotal == Decimal("5.00")


def test_scan_wraps_unexpected_errors():
    extractor = FakeExtractor({"a.jpg": RuntimeError("network down")})

    with pytest.raises(ExtractionFailed):
        scan_receipts([_image("a.jpg")], extractor)


def test_scan_without_items_is_empty():
    extractor = FakeExtractor({"a.jpg": _data(), "b.jpg": _data()})

    with pytest.raises(ExtractionEmpty):
        scan_receipts([_image("a.jpg"), _image("b.jpg")], extractor)


def test_scan_reports_progress():
    extractor = FakeExtractor({"a.jpg": _data("1.00"), "b.jpg": _data("2.00")})
    steps = []

    scan_receipts([_image("a.jpg"), _image("b.jpg")], extractor,
                  progress=lambda step, status: steps.append(step))

    assert sorted(steps) == [1, 2]


def test_load_image_guesses_mime_type(tmp_path):
    path = tmp_path / "receipt.PNG"
    path.write_bytes(b"\x89PNG")

    image = load_image(str(path))

    assert image.mime_type == "image/png"
    assert image.data == b"\x89PNG"
    assert image.name == "receipt.PNG"
