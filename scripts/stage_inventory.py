"""Stage inventory from the command line without running the API.

Uses the same storage as the server, so a session started here shows up
in the API and vice versa.

Usage:
    python scripts/stage_inventory.py --catalog products.csv
    python scripts/stage_inventory.py --lookup A1 --lookup B7
    python scripts/stage_inventory.py --merge new_inventory.csv --export out.csv
"""
import argparse
import os
import sys

# Allow imports from the project root when running as a script
_root_dir = os.path.join(os.path.dirname(__file__), "..")
sys.path.insert(0, _root_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(_root_dir, ".env"))

from exceptions import AppError
from models.staging import SearchStatus
from services.staging_service import get_staging_service


def read_bytes(path):
    with open(path, "rb") as fh:
        return fh.read()


def main():
    parser = argparse.ArgumentParser(
        description="Import a catalog, stage records and export the new inventory."
    )
    parser.add_argument("--catalog", help="Main inventory CSV to upload")
    parser.add_argument(
        "--preserve-settings",
        action="store_true",
        help="Keep the current key/save columns when uploading --catalog",
    )
    parser.add_argument("--merge", help="Previously exported new inventory CSV to merge")
    parser.add_argument(
        "--lookup",
        action="append",
        default=[],
        help="Key value to search and stage (repeatable)",
    )
    parser.add_argument("--export", help="Write the staged set to this CSV path")
    args = parser.parse_args()

    service = get_staging_service()

    try:
        if args.catalog:
            existing = service.staging_settings if args.preserve_settings else None
            result = service.import_catalog(read_bytes(args.catalog), existing_settings=existing)
            print(f"[OK] Catalog: {len(result.catalog)} records, key column {result.settings.sku_column!r}")
            if result.errors:
                print(f"[WARN] Skipped {len(result.errors)} malformed rows")

        if args.merge:
            merged = service.merge_import(read_bytes(args.merge))
            print(f"[OK] Merged: {merged.added} added, {merged.skipped} skipped")

        for query in args.lookup:
            result = service.lookup(query)
            if result.status == SearchStatus.FOUND and result.staged:
                print(f"[OK] {query}: staged")
            elif result.status == SearchStatus.NOT_FOUND:
                print(f"[MISS] {query}: not in catalog")
            else:
                print(f"[WARN] {query}: {result.message}")

        if args.export:
            with open(args.export, "w", encoding="utf-8", newline="") as fh:
                fh.write(service.export_csv())
            print(f"[OK] Exported {len(service.staged)} records to {args.export}")

    except AppError as e:
        print(f"[ERROR] {e.message}")
        sys.exit(1)
    finally:
        service.print_queue.close()


if __name__ == "__main__":
    main()
