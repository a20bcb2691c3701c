import json
import os
import sqlite3
from pathlib import Path

ROOT = Path(__file__).resolve().parent
DEFAULT_DB_PATH = str(ROOT / "data" / "db" / "loads.db")
DB_PATH = Path(os.environ.get("APP_DB_PATH", DEFAULT_DB_PATH))


def get_connection(db_path=None):
    timeout_sec_raw = os.environ.get("SQLITE_BUSY_TIMEOUT_SEC", "30")
    try:
        timeout_sec = max(float(timeout_sec_raw), 1.0)
    except (TypeError, ValueError):
        timeout_sec = 30.0
    timeout_ms = int(timeout_sec * 1000)

    path = Path(db_path or DB_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    connection = sqlite3.connect(path, timeout=timeout_sec)
    connection.row_factory = sqlite3.Row
    connection.execute("PRAGMA journal_mode=WAL")
    connection.execute("PRAGMA synchronous=NORMAL")
    connection.execute(f"PRAGMA busy_timeout={timeout_ms}")
    return connection


def _safe_json_loads(value, default):
    if value in {None, ""}:
        return default
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return default


def _decode_load_row(row):
    if not row:
        return None
    document = _safe_json_loads(row["document_json"], {})
    if not isinstance(document, dict):
        document = {}
    document["id"] = row["id"]
    document.setdefault("status", row["status"])
    document.setdefault("created_at", row["created_at"])
    return document


def init_db(db_path=None):
    with get_connection(db_path) as connection:
        connection.execute(
            """
            CREATE TABLE IF NOT EXISTS loads (
                id TEXT PRIMARY KEY,
                status TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT,
                document_json TEXT NOT NULL
            )
            """
        )
        connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_loads_status ON loads(status)"
        )
        connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_loads_created_at ON loads(created_at)"
        )
        connection.commit()


def insert_load(load, db_path=None):
    with get_connection(db_path) as connection:
        connection.execute(
            """
            INSERT INTO loads (id, status, created_at, updated_at, document_json)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                load["id"],
                load["status"],
                load["created_at"],
                load.get("updated_at"),
                json.dumps(load),
            ),
        )
        connection.commit()


def update_load(load, db_path=None):
    with get_connection(db_path) as connection:
        cursor = connection.execute(
            """
            UPDATE loads
            SET status = ?,
                updated_at = ?,
                document_json = ?
            WHERE id = ?
            """,
            (
                load["status"],
                load.get("updated_at"),
                json.dumps(load),
                load["id"],
            ),
        )
        connection.commit()
        return cursor.rowcount > 0


def get_load(load_id, db_path=None):
    with get_connection(db_path) as connection:
        row = connection.execute(
            "SELECT * FROM loads WHERE id = ?",
            (load_id,),
        ).fetchone()
        return _decode_load_row(row)


def list_loads(status=None, db_path=None):
    where_clause = "WHERE status = ?" if status else ""
    params = [status] if status else []
    with get_connection(db_path) as connection:
        rows = connection.execute(
            f"""
            SELECT * FROM loads
            {where_clause}
            ORDER BY created_at DESC, id ASC
            """,
            params,
        ).fetchall()
        return [_decode_load_row(row) for row in rows]


def count_loads(db_path=None):
    with get_connection(db_path) as connection:
        row = connection.execute("SELECT COUNT(*) AS total FROM loads").fetchone()
        return int(row["total"] or 0)
