"""
Run a fitment import from a local file.

Creates an import job for the store, then runs the same pipeline the
upload endpoint schedules, and prints the result.

Usage:
    python scripts/run_fitment_import.py \
        --file "data/fitments.xlsx" \
        --shop-domain my-store.myshopify.com \
        --plan "Growth - Monthly"

    # Validate only (no job, no writes)
    python scripts/run_fitment_import.py --file data/fitments.csv \
        --shop-domain my-store.myshopify.com --dry-run
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

# Allow imports from the project root when running as a script
_root_dir = os.path.join(os.path.dirname(__file__), "..")
sys.path.insert(0, _root_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(_root_dir, ".env"))

from models.import_job import FileImportRequest
from parsers.fitment_file_parser import ensure_valid_headers, parse_fitment_file
from services.fitment_import_service import get_fitment_import_service
from services.import_job_service import get_import_job_service
from services.store_service import get_store_service, plan_row_limit
from exceptions import AppError


async def main(args) -> int:
    path = Path(args.file)
    if not path.exists():
        print(f"File not found: {path}")
        return 1

    parsed = parse_fitment_file(path.read_bytes(), path.name)
    print(f"Parsed {parsed.row_count} rows, columns: {', '.join(parsed.headers)}")

    store_service = await get_store_service()
    store = await store_service.get_store_by_domain(args.shop_domain)
    fields = await store_service.get_fitment_fields(store["id"])
    ensure_valid_headers(parsed.headers, fields)

    limit = plan_row_limit(args.plan)
    if parsed.row_count > limit:
        print(f"Row limit exceeded ({parsed.row_count}/{limit}). Please upgrade your plan.")
        return 1

    if args.dry_run:
        print("Dry run: file is valid, nothing written.")
        return 0

    job_service = await get_import_job_service()
    job = await job_service.create_job(store["id"], parsed.row_count)
    print(f"Created job {job.id} for store {store['id']}")

    importer = await get_fitment_import_service()
    result = await importer.run(FileImportRequest(
        job_id=job.id,
        database_store_id=store["id"],
        headers=parsed.headers,
        rows=parsed.rows,
        file_name=path.name,
        shop_id=args.shop_domain,
    ))

    print(json.dumps(result.model_dump(by_alias=True), indent=2))
    return 0 if result.success else 2


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run a fitment import from a local file")
    parser.add_argument("--file", required=True, help="CSV or XLSX fitment sheet (SKU column last)")
    parser.add_argument("--shop-domain", required=True, help="Shop domain of the target store")
    parser.add_argument("--plan", default=None, help="Billing plan name, for the row limit")
    parser.add_argument("--dry-run", action="store_true", help="Validate only")
    args = parser.parse_args()

    try:
        sys.exit(asyncio.run(main(args)))
    except AppError as e:
        print(f"{e.code}: {e.message}")
        if e.details:
            print(json.dumps(e.details, indent=2, default=str))
        sys.exit(1)
