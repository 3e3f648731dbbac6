"""
Cloud extraction service backed by a Gemini vision model
"""

import io
import logging

import google.generativeai as genai
from PIL import Image, UnidentifiedImageError

from config import GEMINI_API_KEY, GEMINI_MODEL
from data_models import ReceiptData
from errors import ExtractionFailed
from extraction import ImageInput, ReceiptExtractor, parse_model_response

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = """
IMPORTANT: First verify this image is a receipt or bill from a restaurant, store, or business.
If this is NOT a receipt/bill (e.g., random photo, document, meme, etc.), respond with:
{"isReceipt": false}

If it IS a valid receipt/bill, extract the following data in strict JSON format:
{
  "isReceipt": true,
  "items": [
    {"description": "Item Name", "price": 8.99, "originalPrice": 10.99, "discount": 2.00}
  ],
  "subtotal": 8.99,
  "tax": 1.00,
  "tip": 2.00,
  "total": 11.99
}

Rules:
1. Only process images that are clearly receipts or bills with itemized purchases.
2. Extract all line items.
3. If an item has a discount, coupon or savings listed with it:
   - "price" is the final price: original price minus discount.
   - "originalPrice" is the listed price.
   - "discount" is the discount amount as a positive number.
4. If there is no discount, set only "price".
5. Do not list discounts as separate items. Merge them into the parent item.
6. Ignore "Thank You" and other non-item text.
7. All amounts are numbers rounded to 2 decimals.
"""


class GeminiReceiptExtractor(ReceiptExtractor):
    """Extraction through the Gemini API (needs GEMINI_API_KEY)"""

    name = "gemini"

    def __init__(self, api_key: str = GEMINI_API_KEY, model_name: str = GEMINI_MODEL):
        if not api_key:
            raise ExtractionFailed("Missing Gemini API Key")
        genai.configure(api_key=api_key)
        self.model = genai.GenerativeModel(model_name)

    def _to_image(self, image: ImageInput) -> Image.Image:
        try:
            pil_image = Image.open(io.BytesIO(image.data))
        except (UnidentifiedImageError, OSError) as e:
            raise ExtractionFailed(f"Could not open {image.name}: {e}") from e
        if pil_image.mode != "RGB":
            pil_image = pil_image.convert("RGB")
        return pil_image

    def extract(self, image: ImageInput) -> ReceiptData:
        response = self.model.generate_content([EXTRACTION_PROMPT, self._to_image(image)])

        if not response.candidates:
            feedback = getattr(response, "prompt_feedback", None)
            logger.warning("Gemini returned no candidates for %s: %s", image.name, feedback)
            raise ExtractionFailed("Could not read the receipt clearly. Please try again with better lighting.")

        logger.debug("Gemini raw response: %s", response.text)
        return parse_model_response(response.text)
