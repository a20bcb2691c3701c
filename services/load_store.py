import copy
import logging
import sqlite3

import db
from services.errors import InternalError

logger = logging.getLogger(__name__)


def _sort_recent_first(loads):
    return sorted(loads, key=lambda load: str(load.get("created_at") or ""), reverse=True)


class InMemoryLoadStore:
    """Dict-backed store keyed by load id; hands out copies only."""

    def __init__(self, loads=None):
        self._loads = {}
        for load in loads or []:
            self.add(load)

    def add(self, load):
        if load["id"] in self._loads:
            raise InternalError(f"Load {load['id']} already exists.")
        self._loads[load["id"]] = copy.deepcopy(load)
        return copy.deepcopy(load)

    def get(self, load_id):
        load = self._loads.get(load_id)
        return copy.deepcopy(load) if load is not None else None

    def save(self, load):
        if load["id"] not in self._loads:
            return False
        self._loads[load["id"]] = copy.deepcopy(load)
        return True

    def all(self, status=None):
        loads = [
            copy.deepcopy(load)
            for load in self._loads.values()
            if status is None or load.get("status") == status
        ]
        return _sort_recent_first(loads)

    def count(self):
        return len(self._loads)


class SqliteLoadStore:
    def __init__(self, db_path=None, initialize=True):
        self.db_path = db_path
        if initialize:
            self._call(db.init_db, "initialize load storage")

    def _call(self, func, action, *args):
        try:
            return func(*args, db_path=self.db_path)
        except sqlite3.Error as exc:
            logger.exception("Load storage failed to %s", action)
            raise InternalError(f"Unable to {action}: {exc}") from exc

    def add(self, load):
        self._call(db.insert_load, "store load", load)
        return copy.deepcopy(load)

    def get(self, load_id):
        return self._call(db.get_load, "read load", load_id)

    def save(self, load):
        return self._call(db.update_load, "update load", load)

    def all(self, status=None):
        return self._call(db.list_loads, "list loads", status)

    def count(self):
        return self._call(db.count_loads, "count loads")
