"""
OCR Processing module for ReceiptSplit
Handles parallel OCR processing of receipt images
"""

import io
import time
import logging
import numpy as np
from typing import List, Tuple
from concurrent.futures import ThreadPoolExecutor, as_completed
from PIL import Image, ImageEnhance, ImageFilter, UnidentifiedImageError
import cv2
import pytesseract

from config import OCR_LANGUAGES, OCR_PSM, IMAGE_REGION_OVERLAP_PX, DEFAULT_MAX_WORKERS
from data_models import ProcessingMetrics, ReceiptData
from errors import ExtractionFailed
from extraction import ImageInput, ReceiptExtractor
from receipt_parser import ReceiptParser

logger = logging.getLogger(__name__)


class ParallelOCRProcessor:
    """Parallel OCR processing of receipt images"""

    def __init__(self, num_workers: int = DEFAULT_MAX_WORKERS):
        self.num_workers = num_workers
        self.metrics = ProcessingMetrics()
        self.available_languages = self._check_languages()

    def _check_languages(self) -> List[str]:
        """Available Tesseract languages"""
        try:
            languages = pytesseract.get_languages(config='')
            logger.info("Available OCR languages: %s", ', '.join(languages))
            return languages
        except (pytesseract.TesseractNotFoundError, OSError, RuntimeError) as e:
            logger.warning("Could not check languages: %s", e)
            return ['eng']

    def _get_ocr_language(self) -> str:
        """Use the configured languages that are actually installed"""
        wanted = [lang for lang in OCR_LANGUAGES.split('+') if lang in self.available_languages]
        return '+'.join(wanted) or 'eng'

    def preprocess_image(self, image: Image.Image) -> Image.Image:
        """Preprocess image to improve OCR accuracy"""
        # Grayscale
        if image.mode != 'L':
            image = image.convert('L')

        # Enhance contrast
        enhancer = ImageEnhance.Contrast(image)
        image = enhancer.enhance(2.0)

        # Apply sharpening
        image = image.filter(ImageFilter.SHARPEN)

        # Remove noise with bilateral filter (using OpenCV)
        img_array = np.array(image)
        img_array = cv2.bilateralFilter(img_array, 9, 75, 75)
        image = Image.fromarray(img_array)

        return image

    def split_image_into_regions(self, image: Image.Image) -> List[Tuple[int, Image.Image]]:
        """Split image into overlapping horizontal bands for parallel processing"""
        width, height = image.size
        region_height = max(1, height // self.num_workers)
        regions = []

        for i in range(self.num_workers):
            y_start = i * region_height
            if y_start >= height:
                break
            y_end = height if i == self.num_workers - 1 else (i + 1) * region_height + IMAGE_REGION_OVERLAP_PX

            region = image.crop((0, y_start, width, min(y_end, height)))
            regions.append((i, region))

        return regions

    def process_region(self, region_data: Tuple[int, Image.Image]) -> str:
        """Process a single region with OCR"""
        region_id, region_image = region_data
        logger.debug("Worker %d: processing region", region_id + 1)

        text = pytesseract.image_to_string(
            region_image,
            lang=self._get_ocr_language(),
            config=f'--psm {OCR_PSM}'
        )
        logger.debug("Worker %d: complete", region_id + 1)
        return text

    def process_image_parallel(self, image_bytes: bytes) -> str:
        """Process image with parallel OCR workers"""
        start_time = time.time()

        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ExtractionFailed(f"Could not open image: {e}") from e
        logger.info("Image loaded: %dx%d pixels", image.size[0], image.size[1])

        processed_image = self.preprocess_image(image)
        regions = self.split_image_into_regions(processed_image)
        self.metrics.regions_processed = len(regions)

        full_text = []
        with ThreadPoolExecutor(max_workers=self.num_workers) as executor:
            future_to_region = {
                executor.submit(self.process_region, region): region[0]
                for region in regions
            }

            for future in as_completed(future_to_region):
                region_id = future_to_region[future]
                try:
                    full_text.append((region_id, future.result()))
                except pytesseract.TesseractError as e:
                    logger.warning("Worker %d failed: %s", region_id + 1, e)

        if regions and not full_text:
            raise ExtractionFailed("OCR failed on every region of the image")

        full_text.sort(key=lambda x: x[0])
        combined_text = '\n'.join(text for _, text in full_text)

        self.metrics.workers_used = self.num_workers
        self.metrics.processing_time = time.time() - start_time
        self.metrics.images_processed += 1

        logger.info("OCR complete in %.2fs", self.metrics.processing_time)
        return combined_text


class OCRReceiptExtractor(ReceiptExtractor):
    """Local extraction service: tesseract OCR followed by text parsing"""

    name = "ocr"

    def __init__(self, num_workers: int = DEFAULT_MAX_WORKERS, processor: ParallelOCRProcessor = None,
                 parser: ReceiptParser = None):
        self.processor = processor or ParallelOCRProcessor(num_workers=num_workers)
        self.parser = parser or ReceiptParser()

    def extract(self, image: ImageInput) -> ReceiptData:
        try:
            ocr_text = self.processor.process_image_parallel(image.data)
        except pytesseract.TesseractNotFoundError as e:
            raise ExtractionFailed("Tesseract is not installed") from e
        data = self.parser.parse(ocr_text)
        self.processor.metrics.items_detected += len(data.items)
        return data
