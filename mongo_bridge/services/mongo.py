import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import AsyncMongoClient
from pymongo.errors import CollectionInvalid, OperationFailure

from ..config import BridgeConfig
from ..errors import CollectionNotFound, InvalidIdentifier
from ..utils import from_jsonable, redact_uri

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

# Creating then dropping this collection makes an empty database visible
SCRATCH_COLLECTION = "_init"

# Server error code for createCollection on an existing namespace
_NAMESPACE_EXISTS = 48


class MongoGateway:
    """
    One long-lived AsyncMongoClient behind one coroutine per command.

    Methods that take ``db`` assume the database already exists; the
    dispatcher calls ``ensure_database`` first.
    """

    def __init__(self, client: Any, config: BridgeConfig) -> None:
        self._client = client
        self._config = config

    @classmethod
    def from_config(cls, config: BridgeConfig) -> "MongoGateway":
        kwargs: Dict[str, Any] = {"serverSelectionTimeoutMS": config.server_selection_timeout_ms}
        if config.timeout_ms:
            kwargs["timeoutMS"] = config.timeout_ms
        client = AsyncMongoClient(config.uri, **kwargs)
        return cls(client, config)

    @property
    def client(self) -> Any:
        return self._client

    async def connect(self) -> None:
        # Trigger server selection to validate connection
        await self._client.admin.command("ping")
        logger.info("Connected to MongoDB at %s", redact_uri(self._config.uri))
        await self.ensure_database(self._config.default_db)
        logger.info("Ensured database '%s' exists", self._config.default_db)

    async def close(self) -> None:
        await self._client.close()
        logger.info("MongoDB connection closed")

    async def ensure_database(self, name: str) -> None:
        db = self._client[name]
        try:
            await db.create_collection(SCRATCH_COLLECTION)
        except CollectionInvalid:
            # Another request created it first
            pass
        except OperationFailure as e:
            if e.code != _NAMESPACE_EXISTS:
                raise
        # drop_collection treats "ns not found" as success
        await db.drop_collection(SCRATCH_COLLECTION)

    async def health(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "version": VERSION,
            "defaultDb": self._config.default_db,
            "uri": redact_uri(self._config.uri),
        }

    async def list_databases(self) -> List[Dict[str, Any]]:
        cursor = await self._client.list_databases()
        return await cursor.to_list()

    async def list_collections(self, db: str) -> List[Dict[str, Any]]:
        cursor = await self._client[db].list_collections()
        collections = await cursor.to_list()
        return [c for c in collections if c.get("name") != SCRATCH_COLLECTION]

    async def create_document(self, db: str, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        col = self._client[db][collection]
        res = await col.insert_one(from_jsonable(document))
        return {"id": res.inserted_id, "acknowledged": res.acknowledged}

    async def find_documents(
        self, db: str, collection: str, query: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        col = self._client[db][collection]
        return await col.find(from_jsonable(query)).to_list()

    async def update_document(
        self, db: str, collection: str, doc_id: str, update: Dict[str, Any]
    ) -> Dict[str, Any]:
        col = self._client[db][collection]
        res = await col.update_one({"_id": _object_id(doc_id)}, {"$set": update})
        return {
            "matchedCount": res.matched_count,
            "modifiedCount": res.modified_count,
            "acknowledged": res.acknowledged,
        }

    async def delete_document(self, db: str, collection: str, doc_id: str) -> Dict[str, Any]:
        col = self._client[db][collection]
        res = await col.delete_one({"_id": _object_id(doc_id)})
        return {"deletedCount": res.deleted_count, "acknowledged": res.acknowledged}

    async def aggregate(self, db: str, collection: str, pipeline: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        col = self._client[db][collection]
        cursor = await col.aggregate(pipeline)
        return await cursor.to_list()

    async def create_index(
        self,
        db: str,
        collection: str,
        keys: Dict[str, Any],
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        col = self._client[db][collection]
        name = await col.create_index(list(keys.items()), **(options or {}))
        return {"indexName": name}

    async def list_indexes(self, db: str, collection: str) -> List[Dict[str, Any]]:
        cursor = await self._client[db][collection].list_indexes()
        return [dict(it) for it in await cursor.to_list()]

    async def drop_collection(self, db: str, collection: str) -> Dict[str, Any]:
        database = self._client[db]
        # The driver ignores a missing namespace on drop; report it instead.
        # Check-then-drop is not atomic: two overlapping drops of the same
        # collection can both report success.
        existing = await database.list_collection_names(filter={"name": collection})
        if collection not in existing:
            raise CollectionNotFound(db, collection)
        await database.drop_collection(collection)
        return {"dropped": True}


def _object_id(value: str) -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError) as e:
        raise InvalidIdentifier(value, str(e)) from e
