from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import httpx
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo import ReturnDocument
from pymongo.errors import ServerSelectionTimeoutError

from app.core import rate_limit
from app.core.config import settings
from app.infrastructure.db import mongo_async
from app.main import app


def _match(doc: Dict[str, Any], flt: Dict[str, Any]) -> bool:
    for key, cond in flt.items():
        if key == "$or":
            if not any(_match(doc, sub) for sub in cond):
                return False
            continue
        value = doc.get(key)
        if isinstance(cond, dict) and cond and all(k.startswith("$") for k in cond):
            for op, arg in cond.items():
                if value is None:
                    return False
                if op == "$gt" and not value > arg:
                    return False
                if op == "$gte" and not value >= arg:
                    return False
                if op == "$lt" and not value < arg:
                    return False
                if op == "$lte" and not value <= arg:
                    return False
        elif value != cond:
            return False
    return True


class FakeCollection:
    """Colección en memoria con la semántica atómica de find_one_and_* de Mongo.

    Cada operación cede el loop antes de ejecutarse (como un round-trip real) y
    luego corre sin suspenderse, así que las corrutinas concurrentes compiten
    igual que contra el servidor.
    """

    def __init__(self) -> None:
        self.docs: List[Dict[str, Any]] = []

    def _find(self, flt: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return next((d for d in self.docs if _match(d, flt)), None)

    async def insert_one(self, doc: Dict[str, Any]):
        await asyncio.sleep(0)
        data = dict(doc)
        data.setdefault("_id", ObjectId())
        self.docs.append(data)
        return SimpleNamespace(inserted_id=data["_id"])

    async def find_one(self, flt: Dict[str, Any]):
        await asyncio.sleep(0)
        found = self._find(flt)
        return dict(found) if found else None

    async def find_one_and_delete(self, flt: Dict[str, Any]):
        await asyncio.sleep(0)
        found = self._find(flt)
        if found is None:
            return None
        self.docs.remove(found)
        return dict(found)

    async def find_one_and_update(self, flt, update, return_document=ReturnDocument.BEFORE):
        await asyncio.sleep(0)
        found = self._find(flt)
        if found is None:
            return None
        before = dict(found)
        found.update(update.get("$set", {}))
        return before if return_document == ReturnDocument.BEFORE else dict(found)

    async def delete_one(self, flt: Dict[str, Any]):
        await asyncio.sleep(0)
        found = self._find(flt)
        if found is not None:
            self.docs.remove(found)
        return SimpleNamespace(deleted_count=1 if found is not None else 0)

    async def delete_many(self, flt: Dict[str, Any]):
        await asyncio.sleep(0)
        gone = [d for d in self.docs if _match(d, flt)]
        self.docs[:] = [d for d in self.docs if d not in gone]
        return SimpleNamespace(deleted_count=len(gone))

    async def count_documents(self, flt: Dict[str, Any], limit: int = 0):
        await asyncio.sleep(0)
        n = sum(1 for d in self.docs if _match(d, flt))
        return min(n, limit) if limit else n


class FakeDatabase:
    def __init__(self) -> None:
        self.collections: Dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())

    async def command(self, cmd: Any):
        return {"ok": 1}


class BrokenCollection:
    """Todas las operaciones fallan como un Mongo inaccesible."""

    def __getattr__(self, name: str):
        async def _fail(*args, **kwargs):
            raise ServerSelectionTimeoutError("No servers available")

        return _fail


class BrokenDatabase:
    def __getitem__(self, name: str) -> BrokenCollection:
        return BrokenCollection()

    async def command(self, cmd: Any):
        raise ServerSelectionTimeoutError("No servers available")


@pytest.fixture(autouse=True)
def fake_db(monkeypatch: pytest.MonkeyPatch) -> FakeDatabase:
    db = FakeDatabase()
    monkeypatch.setattr(mongo_async, "_adb", db)
    monkeypatch.setattr(settings, "jwt_secret", "test-secret-key-with-enough-bytes-for-hs256")
    monkeypatch.setattr(settings, "cookie_secure", False)
    monkeypatch.setattr(settings, "access_token_expire_minutes", 60)
    monkeypatch.setattr(settings, "refresh_token_expire_days", 7)
    rate_limit.reset()
    return db


@pytest.fixture
def broken_db(monkeypatch: pytest.MonkeyPatch) -> BrokenDatabase:
    db = BrokenDatabase()
    monkeypatch.setattr(mongo_async, "_adb", db)
    return db


@pytest.fixture
def refresh_docs(fake_db: FakeDatabase) -> List[Dict[str, Any]]:
    return fake_db["refresh_token"].docs


@pytest.fixture
def client() -> TestClient:
    # Sin `with`: no corre el lifespan (no intenta conectarse a Mongo)
    return TestClient(app)


@pytest.fixture
async def aclient():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c

