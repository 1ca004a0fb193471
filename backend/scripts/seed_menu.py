#!/usr/bin/env python3
"""
Seed the menu from a JSON file (scripts/menu.json by default).

Entries follow the storefront's menu shape; ``price`` may be a number or a
display string such as "RM 7.90".

Usage:
    python scripts/seed_menu.py --file path/to/menu.json
"""
import argparse
import json
import logging
import os
import sys

from cornshop.db import SessionLocal, init_db
from cornshop.services.menu_service import import_catalog

log = logging.getLogger("seed_menu")

DEFAULT_SOURCE = os.path.join(os.path.dirname(__file__), "menu.json")


def load_entries(path: str):
    with open(path, "r", encoding="utf-8") as fh:
        data = json.load(fh)
    # accept a bare list or {"items": [...]}
    if isinstance(data, dict):
        data = data.get("items") or data.get("menu") or []
    return data


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--file", default=DEFAULT_SOURCE)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="[%(name)s] %(message)s")
    init_db()
    entries = load_entries(args.file)
    db = SessionLocal()
    try:
        n = import_catalog(db, entries)
    finally:
        db.close()
    log.info("Seeded %d menu item(s) from %s", n, args.file)
    return 0


if __name__ == "__main__":
    sys.exit(main())
