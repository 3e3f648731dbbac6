"""
ReceiptSplit - Scan receipts and split the bill

python3 main.py                               # Interactive CLI mode
python3 main.py receipt.jpg                   # Scan image then start CLI
python3 main.py r1.jpg r2.jpg --quick         # Quick mode - just show the merged receipt
python3 main.py receipts/ --extractor gemini  # Scan every image in a folder with Gemini
python3 main.py --help                        # Show help
"""

import os
import sys
import logging
import argparse

from config import (
    DEFAULT_MAX_WORKERS, WORKERS_MIN, WORKERS_MAX, EXTRACTION_FAIL_FAST, LOG_LEVEL, DATA_DIR,
)
from errors import ExtractionError
from extraction import load_image, scan_receipts
from cli_interface import ReceiptSplitCLI
from session import start_session
from storage import JsonDocumentStore
from utils import get_image_files, format_currency

logger = logging.getLogger(__name__)


def build_extractor(name: str, workers: int):
    """Create the requested extraction service"""
    if name == 'gemini':
        from gemini_extractor import GeminiReceiptExtractor
        return GeminiReceiptExtractor()
    from ocr_processor import OCRReceiptExtractor
    return OCRReceiptExtractor(num_workers=workers)


def expand_image_args(paths):
    """Expand directories into the images they contain"""
    images = []
    for path in paths:
        if os.path.isdir(path):
            images.extend(get_image_files(path))
        else:
            images.append(path)
    return images


def quick_process(image_paths, extractor, workers: int, fail_fast: bool):
    """Quick processing mode - just show results"""
    print(f"🚀 Quick processing: {', '.join(image_paths)}")

    try:
        receipt = scan_receipts([load_image(p) for p in image_paths], extractor,
                                max_workers=workers, fail_fast=fail_fast)
    except ExtractionError as e:
        print(f"\n⚠ {e}")
        print("Try:")
        print("  • Better image quality/lighting")
        print("  • Manual item entry in interactive mode")
        return 1

    print(f"\n📋 Found {len(receipt.items)} items:")
    for i, item in enumerate(receipt.items, 1):
        print(f"  {i:2}. {item.description[:40]:40} {format_currency(item.price):>10}")
    print(f"\n   Subtotal: {format_currency(receipt.subtotal)}")
    print(f"   Tax:      {format_currency(receipt.tax)}")
    print(f"   Tip:      {format_currency(receipt.tip)}")
    print(f"💰 Total:    {format_currency(receipt.total)}")
    return 0


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description='ReceiptSplit - Scan receipts and split the bill',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                         # Interactive mode
  python main.py receipt.jpg             # Scan image then interactive
  python main.py a.jpg b.jpg --quick     # Merge two images, show results only
  python main.py --extractor gemini      # Use the Gemini vision model
        """
    )

    parser.add_argument('images', nargs='*', help='Receipt images or folders of images to scan')
    parser.add_argument('--workers', type=int, default=DEFAULT_MAX_WORKERS,
                        help=f'Number of parallel workers (default: {DEFAULT_MAX_WORKERS})')
    parser.add_argument('--quick', action='store_true', help='Quick mode - scan and show results only')
    parser.add_argument('--extractor', choices=['ocr', 'gemini'], default='ocr',
                        help='Extraction service (default: ocr)')
    parser.add_argument('--best-effort', action='store_true',
                        help='Skip images that fail instead of aborting the batch')
    parser.add_argument('--user', default=os.getenv('USER', 'local'), help='User whose groups and history to use')
    parser.add_argument('--data-dir', default=str(DATA_DIR), help='Where history and groups are stored')
    parser.add_argument('--version', action='version', version='ReceiptSplit 1.0')

    args = parser.parse_args()
    logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    if args.workers < WORKERS_MIN or args.workers > WORKERS_MAX:
        print(f"⚠ Workers must be between {WORKERS_MIN} and {WORKERS_MAX}")
        args.workers = max(WORKERS_MIN, min(WORKERS_MAX, args.workers))

    fail_fast = EXTRACTION_FAIL_FAST and not args.best_effort
    image_paths = expand_image_args(args.images)
    missing = [p for p in image_paths if not os.path.exists(p)]
    if missing:
        print(f"❌ File not found: {', '.join(missing)}")
        sys.exit(1)

    try:
        extractor = build_extractor(args.extractor, args.workers)
    except ExtractionError as e:
        print(f"⚠ {args.extractor} extraction unavailable: {e}")
        extractor = None

    if args.quick:
        if not image_paths or extractor is None:
            print("❌ Quick mode needs at least one image and a working extractor")
            sys.exit(1)
        sys.exit(quick_process(image_paths, extractor, args.workers, fail_fast))

    session = start_session(args.user, JsonDocumentStore(args.data_dir))
    cli = ReceiptSplitCLI(session, extractor=extractor, workers=args.workers, fail_fast=fail_fast)

    if image_paths:
        cli.process_receipts(image_paths)

    cli.run()


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n\n👋 Goodbye!")
        sys.exit(0)
    except Exception:
        logger.exception("Unexpected error")
        print("\n❌ An error occurred, see the log for details")
        sys.exit(1)
