"""
CLI Interface module for ReceiptSplit
Command-line interface for scanning receipts and splitting the bill
"""

import json
import logging
from datetime import datetime
from typing import List, Optional

from assignment import assignment_progress
from bill_splitter import settlement_table
from data_models import to_dict
from errors import AssignmentNotReady, ExtractionError, InvalidTransition, PersistenceFailure
from extraction import ReceiptExtractor, load_image
from phases import Phase
from receipt_builder import create_manual_receipt
from session import AppSession
from utils import (
    validate_image_path, try_parse_amount, try_parse_int, validate_menu_choice,
    format_currency, clean_text_for_display, create_progress_callback, sanitize_filename,
)

logger = logging.getLogger(__name__)


class ReceiptSplitCLI:
    """Command-line interface for ReceiptSplit"""

    def __init__(self, session: AppSession, extractor: Optional[ReceiptExtractor] = None,
                 workers: int = 4, fail_fast: bool = True):
        self.session = session
        self.extractor = extractor
        self.workers = workers
        self.fail_fast = fail_fast
        self.shares = []

    def display_banner(self):
        print("\n" + "="*60)
        print("🧾  RECEIPTSPLIT - Bill Splitter")
        print("Scan, assign, settle")
        print("="*60)

    # ==================== Capture ====================

    def process_receipts(self, image_paths: List[str]) -> bool:
        """Scan one or more receipt images into the active receipt"""
        if not self._in_capture():
            return False
        if self.extractor is None:
            print("\n⚠ No extraction service configured; enter the receipt manually")
            return False
        valid = [path for path in image_paths if validate_image_path(path)]
        if len(valid) != len(image_paths):
            print("\n⚠ Some images are missing or unsupported")
            return False

        print(f"\n📸 Scanning {len(valid)} image(s) with {self.extractor.name}...")
        progress = create_progress_callback(len(valid), "Scanning")
        try:
            images = [load_image(path) for path in valid]
            self.session.capture(images, self.extractor, max_workers=self.workers,
                                 fail_fast=self.fail_fast, progress=progress)
        except OSError as e:
            print(f"\n❌ Could not read image: {e}")
            return False
        except ExtractionError as e:
            print(f"\n❌ {e}")
            return False

        self.display_receipt()
        return True

    def _in_capture(self) -> bool:
        if self.session.phase is not Phase.CAPTURE:
            print("\n⚠ A receipt is already loaded; start over to scan a new one")
            return False
        return True

    def enter_manual_receipt(self) -> bool:
        if not self._in_capture():
            return False
        print("\nEnter items as 'description, price'. Empty line to finish.")
        entries = []
        while True:
            line = input("Item: ").strip()
            if not line:
                break
            description, _, price = line.rpartition(',')
            amount = try_parse_amount(price)
            if not description.strip() or amount is None:
                print("  Invalid item, use 'description, price'")
                continue
            entries.append((description.strip(), amount))

        tax = try_parse_amount(input("Tax (blank for 0): ") or "0")
        tip = try_parse_amount(input("Tip (blank for 0): ") or "0")
        if tax is None or tip is None:
            print("⚠ Invalid amount")
            return False

        receipt = create_manual_receipt(entries, tax=tax, tip=tip)
        if not receipt.items:
            print("\n⚠ No items entered")
            return False
        self.session.set_receipt(receipt)
        self.display_receipt()
        return True

    def display_receipt(self):
        """Display the active receipt"""
        receipt = self.session.receipt
        if not receipt or not receipt.items:
            print("\n⚠ No receipt loaded")
            return

        names = {person.id: person.name for person in self.session.people}
        print("\n" + "="*50)
        print("📋 RECEIPT ITEMS")
        print("="*50)

        for i, item in enumerate(receipt.items, 1):
            assigned = ', '.join(names.get(pid, '?') for pid in item.assigned_to) or 'Unassigned'
            discount = f" (was {item.original_price:.2f})" if item.discount else ""
            print(f"{i:2}. {clean_text_for_display(item.description, 30):30} {item.price:7.2f}{discount} [{assigned}]")

        print("-"*50)
        print(f"{'SUBTOTAL:':40} {receipt.subtotal:7.2f}")
        print(f"{'TAX:':40} {receipt.tax:7.2f}")
        print(f"{'TIP:':40} {receipt.tip:7.2f}")
        print(f"{'TOTAL:':40} {receipt.total:7.2f}")

    # ==================== People ====================

    def _pick_person(self, prompt: str):
        people = self.session.people
        for i, person in enumerate(people, 1):
            print(f"{i}. {person.name}")
        idx = try_parse_int(input(prompt))
        if idx is None or not 1 <= idx <= len(people):
            print("Invalid selection")
            return None
        return people[idx - 1]

    def _pick_group(self):
        groups = self.session.refresh_groups()
        if not groups:
            print("No saved groups")
            return None
        for i, group in enumerate(groups, 1):
            default = " (default)" if group.id == self.session.preferences.default_group_id else ""
            print(f"{i}. {group.name}: {', '.join(p.name for p in group.people)}{default}")
        idx = try_parse_int(input("Select group number: "))
        if idx is None or not 1 <= idx <= len(groups):
            print("Invalid selection")
            return None
        return groups[idx - 1]

    def manage_people(self):
        """Manage people for bill splitting"""
        print("\n" + "="*50)
        print("👥 PEOPLE MANAGEMENT")
        print("="*50)

        while True:
            names = ', '.join(p.name for p in self.session.people)
            print(f"\nCurrent people: {names or 'None'}")
            print("\n1. Add person")
            print("2. Remove person")
            print("3. Save as group")
            print("4. Load group")
            print("5. Set default group")
            print("6. Delete group")
            print("7. Done")

            choice = validate_menu_choice(input("\nChoice: "), [str(i) for i in range(1, 8)]) or ''
            print("-"*50)

            try:
                if choice == '1':
                    suggestions = self.session.suggest_names()
                    if suggestions:
                        print(f"Recent: {', '.join(suggestions)}")
                    person = self.session.add_person(input("Enter name: "))
                    if person:
                        print(f"✓ Added {person.name}")
                elif choice == '2':
                    person = self._pick_person("Select person number to remove: ")
                    if person and self.session.remove_person(person.id):
                        print(f"✓ Removed {person.name}")
                elif choice == '3':
                    group = self.session.save_group(input("Group name: "))
                    print(f"✓ Saved group {group.name}")
                elif choice == '4':
                    group = self._pick_group()
                    if group:
                        if self.session.people and input("Replace current people? (y/n): ").strip().lower() != 'y':
                            continue
                        self.session.load_group(group)
                        print(f"✓ Loaded {group.name}")
                elif choice == '5':
                    group = self._pick_group()
                    if group:
                        self.session.set_default_group(group.id)
                        print(f"✓ {group.name} is now the default group")
                elif choice == '6':
                    group = self._pick_group()
                    if group:
                        self.session.delete_group(group.id)
                        print(f"✓ Deleted {group.name}")
                elif choice == '7':
                    break
            except (ValueError, PersistenceFailure) as e:
                print(f"⚠ {e}")

    # ==================== Assignment ====================

    def assign_items(self):
        """Assign items to people"""
        receipt = self.session.receipt
        if not receipt or not receipt.items:
            print("\n⚠ No receipt items to assign")
            return

        if not self.session.people:
            print("\n⚠ No people added yet")
            return

        if self.session.phase is not Phase.ASSIGNMENT:
            print("\n⚠ Go back to assignment to change who pays for what")
            return

        print("\n" + "="*50)
        print("🔍 ITEM ASSIGNMENT")
        print("="*50)
        assigned, total = assignment_progress(receipt)
        print(f"Assigned: {assigned}/{total} items")
        print("1. Split equally")
        print("2. Assign manually (clears current assignments)")
        print("3. Review items one by one")
        mode = validate_menu_choice(input("Choice: "), ['1', '2', '3']) or ''

        if mode == '1':
            self.session.assign_all_to_all()
            print("✓ Every item is shared by everyone")
            return
        if mode == '2':
            self.session.clear_all_assignments()
        elif mode != '3':
            return

        people = self.session.people
        for item in receipt.items:
            while True:
                assigned = ', '.join(p.name for p in people if p.id in item.assigned_to) or 'None'
                print(f"\n{item.description} - {format_currency(item.price)}")
                print(f"Assigned to: {assigned}")
                for i, person in enumerate(people, 1):
                    print(f"  {i}. {person.name}")
                selection = input("Toggle person numbers (comma-separated, blank for next item): ").strip()
                if not selection:
                    break
                for part in selection.split(','):
                    idx = try_parse_int(part)
                    if idx is not None and 1 <= idx <= len(people):
                        self.session.toggle_assignment(item.id, people[idx - 1].id)

    # ==================== Settlement ====================

    def calculate_settlement(self):
        """Calculate and display what everyone owes"""
        if self.session.phase is Phase.CAPTURE:
            print("\n⚠ Scan or enter a receipt first")
            return

        if self.session.phase is Phase.ASSIGNMENT:
            try:
                self.session.proceed_to_settlement()
            except AssignmentNotReady as e:
                print(f"\n⚠ {e}")
                item = self.session.receipt.item_by_id(e.first_unassigned_id) if e.first_unassigned_id else None
                if item:
                    print(f"  First unassigned item: {item.description}")
                return

        splitter = self.session.splitter()
        self.shares = splitter.calculate_shares()

        print("\n" + "="*50)
        print("💸 WHO OWES WHAT")
        print("="*50)
        print(settlement_table(self.shares).to_string(index=False))

        for share in self.shares:
            print(f"\n{share.person.name}: {format_currency(share.total_owed)}")
            for line in splitter.breakdown(share.person.id):
                shared = f" (1/{line['shared_with']})" if line['shared_with'] > 1 else ""
                print(f"    {clean_text_for_display(line['item_name'], 30):30} {format_currency(line['person_share'])}{shared}")

        drift = splitter.rounding_drift()
        print("\n" + "-"*50)
        print(f"Receipt total:    {format_currency(self.session.receipt.total)}")
        if drift:
            print(f"Rounding drift:   {format_currency(drift)}")

    def export_results(self):
        """Export receipt and shares to JSON, and shares to CSV"""
        receipt = self.session.receipt
        if not receipt:
            print("\n⚠ No receipt to export")
            return
        if not self.shares:
            print("\n⚠ Settle the bill before exporting")
            return

        stamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        base = sanitize_filename(f"receiptsplit_{receipt.title or 'receipt'}_{stamp}")
        data = {
            'export_info': {
                'timestamp': datetime.now().isoformat(),
                'version': '1.0',
            },
            'receipt': to_dict(receipt),
            'people': [to_dict(person) for person in self.session.people],
            'shares': [to_dict(share) for share in self.shares],
        }

        try:
            with open(f"{base}.json", 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            settlement_table(self.shares).to_csv(f"{base}.csv", index=False)
            print(f"\n✅ Exported {base}.json and {base}.csv")
        except OSError as e:
            print(f"\nExport failed: {e}")

    def save_to_history(self):
        try:
            self.session.save_receipt(input("Title (blank for default): ").strip() or None)
            print("✓ Saved to history")
        except PersistenceFailure as e:
            print(f"⚠ Could not save: {e}")

    def show_history(self):
        history = self.session.receipt_history()
        if not history:
            print("\nNo saved receipts")
            return
        for record in history:
            names = ', '.join(p.name for p in record.people)
            print(f"{record.created_at:%Y-%m-%d %H:%M}  {record.receipt.title or 'Receipt':25} "
                  f"{format_currency(record.receipt.total):>10}  {names}")

    def start_over(self):
        self.session.reset()
        self.shares = []
        print("✓ Started over")

    def run(self):
        """Run the CLI application"""
        self.display_banner()

        while True:
            print("\n" + "="*50)
            print(f"MAIN MENU  [{self.session.phase.value}]")
            print("="*50)
            print("1. Scan receipt image(s)")
            print("2. Enter receipt manually")
            print("3. Manage people")
            print("4. Assign items to people")
            print("5. Settle the bill")
            print("6. Back to assignment")
            print("7. Export results")
            print("8. Save to history")
            print("9. Show history")
            print("10. Start over")
            print("11. Exit")

            choice = input("\nChoice: ").strip()

            try:
                if choice == '1':
                    paths = [p.strip() for p in input("Enter image path(s), comma-separated: ").split(',') if p.strip()]
                    self.process_receipts(paths)
                elif choice == '2':
                    self.enter_manual_receipt()
                elif choice == '3':
                    self.manage_people()
                    if self.session.phase is not Phase.SETTLEMENT:
                        self.shares = []
                elif choice == '4':
                    self.assign_items()
                elif choice == '5':
                    self.calculate_settlement()
                elif choice == '6':
                    self.session.back_to_assignment()
                    self.shares = []
                elif choice == '7':
                    self.export_results()
                elif choice == '8':
                    self.save_to_history()
                elif choice == '9':
                    self.show_history()
                elif choice == '10':
                    self.start_over()
                elif choice == '11':
                    print("\n👋 Thank you for using ReceiptSplit!")
                    break
            except (InvalidTransition, AssignmentNotReady) as e:
                print(f"\n⚠ {e}")
