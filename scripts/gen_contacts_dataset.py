#!/usr/bin/env python3
"""Contact workbook generator for load and smoke testing.

Generates Excel files in the layout the importer expects:
- Row 1: Header row (name, phone, email, city, state, zip, ...)
- Row 2+: Contact rows

A fraction of rows can be made invalid (missing name / phone) or reuse an
earlier phone number so the failure paths of the importer get exercised too.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

FIRST_NAMES = ["Alice", "Bob", "Carol", "Dan", "Erin", "Frank", "Grace", "Heidi", "Ivan", "Judy"]
LAST_NAMES = ["Smith", "Jones", "Brown", "Taylor", "Wilson", "Davies", "Evans", "Thomas"]
CITIES = [("Austin", "TX"), ("Denver", "CO"), ("Portland", "OR"), ("Miami", "FL"), ("Boston", "MA")]
LEAD_SOURCES = ["Web", "Referral", "Trade Show", "Cold Call"]


def generate_contacts(
    rows: int,
    seed: int = 42,
    missing_ratio: float = 0.0,
    duplicate_ratio: float = 0.0,
    phone_offset: int = 0,
) -> pd.DataFrame:
    """Generate a contact DataFrame.

    Args:
        rows: Number of contact rows
        seed: Random seed for reproducible data
        missing_ratio: Share of rows with name or phone blanked out
        duplicate_ratio: Share of rows reusing an earlier row's phone
        phone_offset: First phone sequence number (keeps sheets disjoint)
    """
    rng = np.random.default_rng(seed)

    first = rng.choice(FIRST_NAMES, rows)
    last = rng.choice(LAST_NAMES, rows)
    city_idx = rng.integers(0, len(CITIES), rows)

    phones: list[Any] = [f"555{phone_offset + i:07d}" for i in range(rows)]
    names: list[Any] = [f"{f} {l}" for f, l in zip(first, last)]

    data: dict[str, list[Any]] = {
        "name": names,
        "phone": phones,
        "email": [f"{f.lower()}.{l.lower()}{i}@example.com" for i, (f, l) in enumerate(zip(first, last))],
        "city": [CITIES[i][0] for i in city_idx],
        "state": [CITIES[i][1] for i in city_idx],
        "zip": rng.integers(10000, 99999, rows).astype(str).tolist(),
        "Lead Source": rng.choice(LEAD_SOURCES, rows).tolist(),
        "Notes": [f"Imported contact {i + 1}" for i in range(rows)],
    }

    if rows > 1 and duplicate_ratio > 0:
        n_dup = int(rows * duplicate_ratio)
        # 先頭行は重複元として残す
        targets = rng.choice(np.arange(1, rows), size=min(n_dup, rows - 1), replace=False)
        for t in targets:
            phones[t] = phones[int(rng.integers(0, t))]

    if missing_ratio > 0:
        n_missing = int(rows * missing_ratio)
        targets = rng.choice(rows, size=min(n_missing, rows), replace=False)
        for j, t in enumerate(targets):
            if j % 2 == 0:
                names[t] = None
            else:
                phones[t] = None

    return pd.DataFrame(data)


def create_excel_file(
    output_path: Path,
    rows: int,
    sheets: list[str] | None = None,
    seed: int = 42,
    missing_ratio: float = 0.0,
    duplicate_ratio: float = 0.0,
) -> None:
    """Write one workbook; every sheet gets its own phone range."""
    if sheets is None:
        sheets = ["Contacts"]

    output_path.parent.mkdir(parents=True, exist_ok=True)

    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        for n, sheet_name in enumerate(sheets):
            df = generate_contacts(
                rows,
                seed=seed + n,
                missing_ratio=missing_ratio,
                duplicate_ratio=duplicate_ratio,
                phone_offset=n * rows,
            )
            df.to_excel(writer, sheet_name=sheet_name, header=True, index=False)

    print(f"Created Excel file: {output_path}")
    print(f"  Sheets: {len(sheets)} ({', '.join(sheets)})")
    print(f"  Rows per sheet: {rows} (+ 1 header row)")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate contact workbooks for the importer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s contacts.xlsx
  %(prog)s big.xlsx --rows 100000 --sheets North South
  %(prog)s dirty.xlsx --rows 500 --missing-ratio 0.05 --duplicate-ratio 0.02
        """,
    )
    parser.add_argument("output", type=Path, help="Output Excel file path")
    parser.add_argument("--rows", type=int, default=10_000, help="Rows per sheet (default: 10,000)")
    parser.add_argument("--sheets", nargs="+", default=["Contacts"], help="Sheet names (default: Contacts)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument("--missing-ratio", type=float, default=0.0, help="Share of rows missing name/phone")
    parser.add_argument("--duplicate-ratio", type=float, default=0.0, help="Share of rows with a repeated phone")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be generated without creating files")

    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1
    for name in ("missing_ratio", "duplicate_ratio"):
        value = getattr(args, name)
        if not 0.0 <= value <= 1.0:
            print(f"Error: --{name.replace('_', '-')} must be between 0 and 1", file=sys.stderr)
            return 1

    print("Dataset generation plan:")
    print(f"  Output file: {args.output}")
    print(f"  Sheets: {len(args.sheets)} ({', '.join(args.sheets)})")
    print(f"  Rows per sheet: {args.rows:,}")
    print(f"  Missing ratio: {args.missing_ratio}  Duplicate ratio: {args.duplicate_ratio}")
    print(f"  Random seed: {args.seed}")

    if args.dry_run:
        print("\n[DRY RUN] Would generate files but not creating them.")
        return 0

    try:
        create_excel_file(
            args.output,
            args.rows,
            args.sheets,
            args.seed,
            args.missing_ratio,
            args.duplicate_ratio,
        )
        return 0
    except Exception as e:
        print(f"\nError generating dataset: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
