#!/usr/bin/env python3
"""
Delete all orders, menu items and settings. User accounts are kept.

Usage: python scripts/flush_data.py --yes
"""

import argparse
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.database import SessionLocal
from core.database_utils import atomic
from modules.menu.models.menu_models import MenuItem
from modules.orders.models.order_models import InvoiceCounter, Order, OrderItem
from modules.settings.models.settings_models import Setting

# Children before parents
FLUSH_ORDER = [
    ("order items", OrderItem),
    ("orders", Order),
    ("invoice counters", InvoiceCounter),
    ("menu items", MenuItem),
    ("settings", Setting),
]


def flush(db):
    counts = {}
    with atomic(db, "flush canteen data"):
        for label, model in FLUSH_ORDER:
            counts[label] = db.query(model).delete(synchronize_session=False)
    return counts


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--yes", action="store_true", help="skip the confirmation prompt")
    args = parser.parse_args()

    if not args.yes:
        answer = input("This deletes every order, menu item and setting. Continue? [y/N] ")
        if answer.strip().lower() != "y":
            print("Aborted")
            return

    db = SessionLocal()
    try:
        for label, count in flush(db).items():
            print(f"Deleted {count} {label}")
    finally:
        db.close()
    print("Done. User accounts were kept.")


if __name__ == "__main__":
    main()
