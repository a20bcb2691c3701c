import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import db
from services import sample_data
from services.load_store import SqliteLoadStore


def seed(db_path, force=False):
    store = SqliteLoadStore(db_path)
    existing = store.count()
    if existing and not force:
        return 0, existing
    loads = sample_data.seed_sample_loads(store)
    return len(loads), existing


def main():
    parser = argparse.ArgumentParser(description="Seed the load store with demo loads.")
    parser.add_argument(
        "--db",
        default=str(db.DB_PATH),
        help="Path to the SQLite file (default: APP_DB_PATH or data/db/loads.db)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Add the demo loads even when the store already has loads.",
    )
    args = parser.parse_args()

    added, existing = seed(Path(args.db), force=args.force)
    if not added:
        print(f"Store already holds {existing} loads; nothing seeded (use --force).")
        return
    print(f"Seeded {added} sample loads into {args.db}.")


if __name__ == "__main__":
    main()
