import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import db
from services.errors import ValidationError
from services.load_store import SqliteLoadStore
from services.loads import LoadRepository

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = [
    "sender_company",
    "sender_address",
    "sender_contact",
    "receiver_company",
    "receiver_address",
    "receiver_contact",
    "item_description",
    "quantity",
]

OPTIONAL_COLUMNS = [
    "expected_delivery_date",
    "incoming_date",
    "planned_warehouse_arrival",
    "planned_warehouse_dispatch",
    "planned_client_delivery",
]


def _read_manifest(path):
    if path.suffix.lower() == ".csv":
        return pd.read_csv(path, dtype=str, keep_default_na=False)
    return pd.read_excel(path, dtype=str, keep_default_na=False)


def _normalize_columns(columns):
    return {column: str(column).strip().lower().replace(" ", "_") for column in columns}


def row_to_draft(row):
    return {
        "sender": {
            "company": row.get("sender_company", ""),
            "address": row.get("sender_address", ""),
            "contact": row.get("sender_contact", ""),
        },
        "receiver": {
            "company": row.get("receiver_company", ""),
            "address": row.get("receiver_address", ""),
            "contact": row.get("receiver_contact", ""),
        },
        "items": [
            {
                "description": row.get("item_description", ""),
                "quantity": (row.get("quantity") or "").strip(),
            }
        ],
        "expected_delivery_date": row.get("expected_delivery_date") or None,
        "incoming_date": row.get("incoming_date") or None,
        "planned_dates": {
            "warehouse_arrival": row.get("planned_warehouse_arrival") or None,
            "warehouse_dispatch": row.get("planned_warehouse_dispatch") or None,
            "client_delivery": row.get("planned_client_delivery") or None,
        },
    }


def import_loads(path, repository):
    df = _read_manifest(path)
    df = df.rename(columns=_normalize_columns(df.columns))
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")
    df = df[[col for col in df.columns if col in REQUIRED_COLUMNS + OPTIONAL_COLUMNS]]

    created = []
    rejected = []
    for idx, row in enumerate(df.to_dict(orient="records"), start=2):
        try:
            created.append(repository.create(row_to_draft(row)))
        except ValidationError as exc:
            logger.warning("Skipping manifest row %s: %s", idx, exc.errors)
            rejected.append({"row": idx, "errors": exc.errors})
    return {"created": created, "rejected": rejected, "total_rows": len(df)}


def main():
    parser = argparse.ArgumentParser(description="Create loads from a CSV/XLSX manifest.")
    parser.add_argument("file", help="Path to the manifest (.csv or .xlsx)")
    parser.add_argument(
        "--db",
        default=str(db.DB_PATH),
        help="Path to the SQLite file (default: APP_DB_PATH or data/db/loads.db)",
    )
    args = parser.parse_args()
    path = Path(args.file)
    if not path.exists():
        raise SystemExit(f"File not found: {path}")

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    repository = LoadRepository(SqliteLoadStore(Path(args.db)))
    summary = import_loads(path, repository)
    print(
        f"Imported {len(summary['created'])} of {summary['total_rows']} rows "
        f"({len(summary['rejected'])} rejected)."
    )


if __name__ == "__main__":
    main()
