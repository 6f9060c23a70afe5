"""
backend/tests/conftest.py

Purpose:
    Shared pytest bootstrap: import paths, required settings, and an
    in-memory stand-in for the Motor collections used by the services.
"""

from __future__ import annotations

import copy
import os
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

_THIS_FILE = Path(__file__).resolve()
_BACKEND_DIR = _THIS_FILE.parents[1]

if str(_BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(_BACKEND_DIR))

os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("JWT_SECRET", "test-secret-0123456789abcdef0123456789abcdef")
os.environ.setdefault("SCORE_POLL_ENABLED", "false")

_MISSING = object()

_UNIQUE_KEYS: dict[str, list[tuple[str, ...]]] = {
    "users": [("email",)],
    "pool_members": [("pool_id", "user_id")],
    "games": [("season", "week", "game_id")],
    "confidence_picks": [("pool_id", "season", "week", "user_id")],
    "confidence_scores": [("pool_id", "season", "week", "user_id")],
    "season_totals": [("pool_id", "season", "user_id")],
    "survivor_entries": [("pool_id", "season", "user_id")],
}


def _get(doc: dict, path: str) -> Any:
    node: Any = doc
    for part in path.split("."):
        if not isinstance(node, dict) or part not in node:
            return _MISSING
        node = node[part]
    return node


def _set(doc: dict, path: str, value: Any) -> None:
    parts = path.split(".")
    node = doc
    for part in parts[:-1]:
        node = node.setdefault(part, {})
    node[parts[-1]] = value


def _unset(doc: dict, path: str) -> None:
    parts = path.split(".")
    node = doc
    for part in parts[:-1]:
        node = node.get(part)
        if not isinstance(node, dict):
            return
    node.pop(parts[-1], None)


def _matches_condition(value: Any, cond: Any) -> bool:
    if isinstance(cond, dict) and cond and all(str(k).startswith("$") for k in cond):
        for op, arg in cond.items():
            present = value is not _MISSING
            current = value if present else None
            if op == "$in" and current not in arg:
                return False
            if op == "$nin" and current in arg:
                return False
            if op == "$ne" and current == arg:
                return False
            if op == "$exists" and present != bool(arg):
                return False
            if op == "$lte" and not (present and current is not None and current <= arg):
                return False
            if op == "$lt" and not (present and current is not None and current < arg):
                return False
            if op == "$gte" and not (present and current is not None and current >= arg):
                return False
            if op == "$gt" and not (present and current is not None and current > arg):
                return False
        return True
    return (None if value is _MISSING else value) == cond


def matches(doc: dict, query: dict | None) -> bool:
    return all(_matches_condition(_get(doc, key), cond) for key, cond in (query or {}).items())


class FakeCursor:
    def __init__(self, docs: list[dict]):
        self._docs = docs
        self._skip = 0
        self._limit: int | None = None

    def sort(self, key: str, direction: int = 1):
        def sort_key(doc):
            value = _get(doc, key)
            return (value is _MISSING or value is None, value if value not in (_MISSING, None) else 0)

        self._docs = sorted(self._docs, key=sort_key, reverse=direction < 0)
        return self

    def skip(self, value: int):
        self._skip = value
        return self

    def limit(self, value: int):
        self._limit = value
        return self

    async def to_list(self, length: int | None = None):
        docs = self._docs[self._skip:]
        if self._limit is not None:
            docs = docs[: self._limit]
        if length is not None:
            docs = docs[:length]
        return [copy.deepcopy(d) for d in docs]


class FakeCollection:
    """Small subset of the Motor collection API, enough for the services under test."""

    def __init__(self, name: str = "", unique: list[tuple[str, ...]] | None = None):
        self.name = name
        self.docs: list[dict] = []
        self.unique = unique or []

    # --- helpers ---

    def _check_unique(self, candidate: dict, ignore: dict | None = None) -> None:
        for existing in self.docs:
            if existing is ignore:
                continue
            if existing.get("_id") == candidate.get("_id"):
                raise DuplicateKeyError(f"{self.name}: duplicate _id")
            for fields in self.unique:
                if all(_get(existing, f) == _get(candidate, f) for f in fields):
                    raise DuplicateKeyError(f"{self.name}: duplicate {fields}")

    @staticmethod
    def _apply(doc: dict, update: dict, inserting: bool) -> None:
        for key, value in (update.get("$set") or {}).items():
            _set(doc, key, copy.deepcopy(value))
        if inserting:
            for key, value in (update.get("$setOnInsert") or {}).items():
                _set(doc, key, copy.deepcopy(value))
        for key, value in (update.get("$inc") or {}).items():
            current = _get(doc, key)
            _set(doc, key, (0 if current is _MISSING else current) + value)
        for key, value in (update.get("$push") or {}).items():
            current = _get(doc, key)
            _set(doc, key, ([] if current is _MISSING else list(current)) + [copy.deepcopy(value)])
        for key, value in (update.get("$addToSet") or {}).items():
            current = _get(doc, key)
            items = [] if current is _MISSING else list(current)
            if value not in items:
                items.append(value)
            _set(doc, key, items)
        for key in (update.get("$unset") or {}):
            _unset(doc, key)

    # --- Motor API ---

    def find(self, query: dict | None = None, projection: dict | None = None) -> FakeCursor:
        return FakeCursor([d for d in self.docs if matches(d, query)])

    async def find_one(self, query: dict | None = None, projection: dict | None = None):
        for doc in self.docs:
            if matches(doc, query):
                return copy.deepcopy(doc)
        return None

    async def count_documents(self, query: dict | None = None) -> int:
        return sum(1 for d in self.docs if matches(d, query))

    async def insert_one(self, doc: dict):
        stored = copy.deepcopy(doc)
        stored.setdefault("_id", ObjectId())
        self._check_unique(stored)
        self.docs.append(stored)
        doc.setdefault("_id", stored["_id"])
        return SimpleNamespace(inserted_id=stored["_id"])

    async def update_one(self, query: dict, update: dict, upsert: bool = False):
        for doc in self.docs:
            if matches(doc, query):
                self._apply(doc, update, inserting=False)
                return SimpleNamespace(matched_count=1, modified_count=1, upserted_id=None)
        if not upsert:
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

        new_doc: dict = {}
        for key, cond in query.items():
            if not (isinstance(cond, dict) and any(str(k).startswith("$") for k in cond)):
                _set(new_doc, key, copy.deepcopy(cond))
        self._apply(new_doc, update, inserting=True)
        new_doc.setdefault("_id", ObjectId())
        self._check_unique(new_doc)
        self.docs.append(new_doc)
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=new_doc["_id"])

    async def delete_one(self, query: dict):
        for idx, doc in enumerate(self.docs):
            if matches(doc, query):
                del self.docs[idx]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def create_index(self, *args, **kwargs):
        return "fake_index"


class FakeDB:
    def __init__(self):
        self._collections: dict[str, FakeCollection] = {}

    def __getattr__(self, name: str) -> FakeCollection:
        if name.startswith("_"):
            raise AttributeError(name)
        if name not in self._collections:
            self._collections[name] = FakeCollection(name, _UNIQUE_KEYS.get(name))
        return self._collections[name]

    async def command(self, name: str):
        return {"ok": 1.0}

    async def list_collection_names(self):
        return list(self._collections)


@pytest.fixture
def fake_db(monkeypatch):
    import nflpool.database as _db

    db = FakeDB()
    monkeypatch.setattr(_db, "db", db)
    return db
