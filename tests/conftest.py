"""
Shared fixtures.

FakeClient mimics the slice of pymongo's AsyncMongoClient API the gateway
uses, keeping documents in memory.
"""

from types import SimpleNamespace

import pytest
from bson import ObjectId
from pymongo.errors import CollectionInvalid

from mongo_bridge.config import BridgeConfig
from mongo_bridge.services.mongo import MongoGateway


def _matches(doc, query):
    return all(doc.get(k) == v for k, v in (query or {}).items())


class FakeCursor:
    def __init__(self, items):
        self._items = list(items)

    async def to_list(self, length=None):
        return list(self._items)


class FakeCollection:
    def __init__(self, name):
        self.name = name
        self.exists = False
        self.docs = []
        self.indexes = [{"v": 2, "key": {"_id": 1}, "name": "_id_"}]

    async def insert_one(self, doc):
        doc = dict(doc)
        doc.setdefault("_id", ObjectId())
        self.docs.append(doc)
        self.exists = True
        return SimpleNamespace(inserted_id=doc["_id"], acknowledged=True)

    def find(self, query=None):
        return FakeCursor(dict(d) for d in self.docs if _matches(d, query))

    async def update_one(self, flt, update):
        for doc in self.docs:
            if _matches(doc, flt):
                before = dict(doc)
                doc.update(update["$set"])
                return SimpleNamespace(matched_count=1, modified_count=int(doc != before), acknowledged=True)
        return SimpleNamespace(matched_count=0, modified_count=0, acknowledged=True)

    async def delete_one(self, flt):
        for i, doc in enumerate(self.docs):
            if _matches(doc, flt):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1, acknowledged=True)
        return SimpleNamespace(deleted_count=0, acknowledged=True)

    async def aggregate(self, pipeline):
        docs = [dict(d) for d in self.docs]
        for stage in pipeline:
            if "$match" in stage:
                docs = [d for d in docs if _matches(d, stage["$match"])]
            elif "$count" in stage:
                docs = [{stage["$count"]: len(docs)}]
        return FakeCursor(docs)

    async def create_index(self, keys, **options):
        name = options.pop("name", None) or "_".join(f"{k}_{v}" for k, v in keys)
        self.indexes.append({"v": 2, "key": dict(keys), "name": name, **options})
        self.exists = True
        return name

    async def list_indexes(self):
        return FakeCursor(self.indexes)


class FakeDatabase:
    def __init__(self, name):
        self.name = name
        self.collections = {}
        self.create_calls = []

    def __getitem__(self, name):
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]

    async def create_collection(self, name):
        self.create_calls.append(name)
        if self[name].exists:
            raise CollectionInvalid(f"collection {name} already exists")
        self[name].exists = True
        return self[name]

    async def drop_collection(self, name):
        col = self.collections.get(name)
        if col is not None:
            col.exists = False
            col.docs.clear()
        return {"ok": 1.0}

    async def list_collection_names(self, filter=None):
        names = [n for n, c in self.collections.items() if c.exists]
        if filter and "name" in filter:
            names = [n for n in names if n == filter["name"]]
        return names

    async def list_collections(self):
        names = await self.list_collection_names()
        return FakeCursor({"name": n, "type": "collection", "options": {}} for n in names)

    async def command(self, name, *args, **kwargs):
        return {"ok": 1.0}


class FakeClient:
    def __init__(self):
        self.databases = {}
        self.closed = False

    def __getitem__(self, name):
        if name not in self.databases:
            self.databases[name] = FakeDatabase(name)
        return self.databases[name]

    @property
    def admin(self):
        return self["admin"]

    async def list_databases(self):
        return FakeCursor(
            {"name": n, "sizeOnDisk": 8192, "empty": False}
            for n, db in self.databases.items()
            if any(c.exists for c in db.collections.values())
        )

    async def close(self):
        self.closed = True


@pytest.fixture
def config():
    return BridgeConfig()


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def gateway(fake_client, config):
    return MongoGateway(fake_client, config)
