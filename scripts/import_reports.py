#!/usr/bin/env python3
"""
Bulk import of legacy waste reports from a CSV export.

Expected columns: area, details, imageUrl, status, wasteType, severity,
confidence, aiReason, error, userId, userName, latitude, longitude, createdAt.
Uses asyncpg executemany for fast inserts into PostgreSQL.
"""

import asyncio
import csv
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import asyncpg
from dotenv import load_dotenv

from ezhil.schemas.report import REPORT_STATUSES

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "").replace("+asyncpg", "")

BATCH_SIZE = 1000


def log(msg):
    """Print with flush for immediate output."""
    print(msg, flush=True)


def parse_datetime(value: str | None) -> datetime | None:
    """Parse datetime string from CSV (returns timezone-aware UTC)."""
    if not value:
        return None
    for fmt in [
        "%Y-%m-%dT%H:%M:%S.%fZ",
        "%Y-%m-%dT%H:%M:%SZ",
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%d %H:%M:%S",
    ]:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def parse_float(value: str | None) -> float | None:
    """Parse float from CSV."""
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def parse_int(value: str | None) -> int | None:
    """Parse integer from CSV, accepting values like '3.0'."""
    number = parse_float(value)
    return int(number) if number is not None else None


def transform_row(row: dict) -> tuple | None:
    """Transform a CSV row into an insert tuple, or None to skip it."""
    status = (row.get("status") or "pending_ai").strip()
    if status not in REPORT_STATUSES:
        return None

    created_at = parse_datetime(row.get("createdAt"))
    if created_at is None:
        return None

    return (
        row.get("area") or None,
        row.get("details") or None,
        row.get("imageUrl") or None,
        parse_float(row.get("latitude")),
        parse_float(row.get("longitude")),
        row.get("userId") or "anonymous",
        row.get("userName") or None,
        status,
        row.get("wasteType") or None,
        parse_int(row.get("severity")),
        parse_float(row.get("confidence")),
        row.get("aiReason") or None,
        row.get("error") or None,
        created_at,
    )


async def import_csv(csv_path: str):
    """Import CSV rows into the reports table using batch inserts."""
    log("Connecting to database...")
    conn = await asyncpg.connect(DATABASE_URL)

    initial_count = await conn.fetchval("SELECT COUNT(*) FROM reports")
    log(f"Current reports in DB: {initial_count:,}")

    insert_sql = """
        INSERT INTO reports (
            area, details, image_path, latitude, longitude, user_id, user_name,
            status, waste_type, severity, confidence, ai_reason, error, created_at
        ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14)
    """

    imported = 0
    skipped = 0
    batch = []

    log(f"Reading CSV: {csv_path}")
    with open(csv_path, "r", encoding="utf-8") as f:
        reader = csv.DictReader(f)

        for row in reader:
            transformed = transform_row(row)
            if not transformed:
                skipped += 1
                continue

            batch.append(transformed)

            if len(batch) >= BATCH_SIZE:
                await conn.executemany(insert_sql, batch)
                imported += len(batch)
                batch = []
                log(f"Progress: {imported:,} imported")

        # Final batch
        if batch:
            await conn.executemany(insert_sql, batch)
            imported += len(batch)

    log("\nImport complete!")
    log(f"  Imported: {imported:,}")
    log(f"  Skipped (bad status or timestamp): {skipped:,}")

    final_count = await conn.fetchval("SELECT COUNT(*) FROM reports")
    log(f"  Total in DB: {final_count:,}")

    await conn.close()


if __name__ == "__main__":
    csv_path = sys.argv[1] if len(sys.argv) > 1 else "reports.csv"

    if not Path(csv_path).exists():
        log(f"Error: CSV file not found: {csv_path}")
        sys.exit(1)

    asyncio.run(import_csv(csv_path))
