import sqlite3
from datetime import datetime, timezone

import pytest

import db
from services import statuses
from services.errors import InternalError
from services.load_store import SqliteLoadStore
from services.loads import LoadRepository, build_load


def _draft(company):
    return {
        "sender": {"company": company, "address": "1 Dock Rd", "contact": "Sam"},
        "receiver": {"company": "Harbor Co", "address": "9 Pier St", "contact": "Lee"},
        "items": [{"description": "Crates", "quantity": 4}],
    }


def test_sqlite_store_round_trips_documents(tmp_path):
    store = SqliteLoadStore(tmp_path / "loads.db")
    load = build_load(_draft("Alpha"), "2024-03-01T08:00:00+00:00", load_id="alpha")

    store.add(load)

    assert store.get("alpha") == load
    assert store.get("missing") is None
    assert store.count() == 1


def test_sqlite_store_orders_and_filters(tmp_path):
    store = SqliteLoadStore(tmp_path / "loads.db")
    older = build_load(_draft("Old"), "2024-03-01T08:00:00+00:00", load_id="old")
    newer = build_load(_draft("New"), "2024-03-02T08:00:00+00:00", load_id="new")
    newer["status"] = statuses.IN_TRANSIT_TO_WAREHOUSE
    store.add(older)
    store.add(newer)

    assert [load["id"] for load in store.all()] == ["new", "old"]
    assert [load["id"] for load in store.all(status=statuses.ORDER_RECEIVED)] == ["old"]


def test_sqlite_store_save_updates_existing_rows_only(tmp_path):
    store = SqliteLoadStore(tmp_path / "loads.db")
    load = build_load(_draft("Alpha"), "2024-03-01T08:00:00+00:00", load_id="alpha")
    store.add(load)

    load["status"] = statuses.IN_TRANSIT_TO_WAREHOUSE
    assert store.save(load) is True
    assert store.get("alpha")["status"] == statuses.IN_TRANSIT_TO_WAREHOUSE
    assert [row["id"] for row in db.list_loads(statuses.IN_TRANSIT_TO_WAREHOUSE, db_path=tmp_path / "loads.db")] == ["alpha"]

    ghost = dict(load, id="ghost")
    assert store.save(ghost) is False


def test_sqlite_store_wraps_storage_errors(tmp_path):
    store = SqliteLoadStore(tmp_path / "loads.db")
    load = build_load(_draft("Alpha"), "2024-03-01T08:00:00+00:00", load_id="alpha")
    store.add(load)

    with pytest.raises(InternalError) as excinfo:
        store.add(load)

    assert isinstance(excinfo.value.__cause__, sqlite3.IntegrityError)


def test_repository_over_sqlite_keeps_timeline(tmp_path):
    clock = lambda: datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)  # noqa: E731
    repository = LoadRepository(SqliteLoadStore(tmp_path / "loads.db"), clock=clock)

    created = repository.create(_draft("Alpha"))
    repository.apply_transition(created["id"], statuses.IN_TRANSIT_TO_WAREHOUSE, effective_date="2024-03-02")

    fetched = repository.get_by_id(created["id"])
    assert fetched["status"] == statuses.IN_TRANSIT_TO_WAREHOUSE
    assert [entry["status"] for entry in fetched["timeline"]] == [
        statuses.ORDER_RECEIVED,
        statuses.IN_TRANSIT_TO_WAREHOUSE,
    ]
    assert fetched["status_dates"][statuses.IN_TRANSIT_TO_WAREHOUSE] == "2024-03-02"


def test_corrupt_document_decodes_to_row_columns(tmp_path):
    path = tmp_path / "loads.db"
    db.init_db(path)
    with db.get_connection(path) as connection:
        connection.execute(
            "INSERT INTO loads (id, status, created_at, updated_at, document_json) VALUES (?, ?, ?, ?, ?)",
            ("broken", statuses.LOADING, "2024-03-01T08:00:00+00:00", None, "{not json"),
        )
        connection.commit()

    assert db.get_load("broken", db_path=path) == {
        "id": "broken",
        "status": statuses.LOADING,
        "created_at": "2024-03-01T08:00:00+00:00",
    }
