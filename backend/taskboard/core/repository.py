# taskboard/core/repository.py

from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, Tuple, Type, TypeVar

from bson import ObjectId
from loguru import logger
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pydantic import BaseModel
from pymongo.errors import DuplicateKeyError
from pymongo.results import DeleteResult, InsertOneResult, UpdateResult

ModelType = TypeVar("ModelType", bound=BaseModel)  # document as stored (e.g. TaskInDB)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)

IMMUTABLE_FIELDS = ("_id", "id", "created_at")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BaseRepository(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """Base class for MongoDB repositories built on Motor and pydantic."""

    model: Type[ModelType]
    collection_name: str
    # Fields stripped from every $set on top of IMMUTABLE_FIELDS
    protected_fields: Tuple[str, ...] = ()

    def __init__(self, db: AsyncIOMotorDatabase):
        if not getattr(self, "collection_name", None):
            raise AttributeError("Repository subclass must define a 'collection_name'")
        if not getattr(self, "model", None) or not issubclass(self.model, BaseModel):
            raise AttributeError("Repository subclass must define a pydantic 'model'")

        self.db = db
        self.collection: AsyncIOMotorCollection = db[self.collection_name]
        logger.debug(f"Repository initialized for collection: '{self.collection_name}'")

    @staticmethod
    def _to_objectid(id_str: Any) -> Optional[ObjectId]:
        """Converts input to ObjectId, returning None when it is not a valid id."""
        if isinstance(id_str, ObjectId):
            return id_str
        if isinstance(id_str, str) and ObjectId.is_valid(id_str):
            return ObjectId(id_str)
        return None

    def _handle_db_exception(self, e: Exception, operation: str, doc_id: Any = None, query: Optional[Dict] = None):
        """Logs a database failure and re-raises it as a standard exception."""
        context = f"op='{operation}' coll='{self.collection_name}'"
        if doc_id:
            context += f" id='{doc_id}'"
        if query:
            context += f" query='{str(query)[:100]}...'"
        log_msg = f"DB Error during {context}: {e}"

        if isinstance(e, DuplicateKeyError):
            dup_key_info = e.details.get("keyValue", {}) if e.details else {}
            logger.error(f"{log_msg} - Duplicate Key: {dup_key_info}")
            raise ValueError(f"Duplicate key error: Field(s) {list(dup_key_info.keys())} must be unique.") from e
        logger.exception(log_msg)
        raise RuntimeError(f"Database error during operation: {operation}") from e

    def _prepare_data_for_db(self, data: Dict) -> Dict:
        """Normalizes values before writing. Datetimes are stored as naive UTC, as BSON does."""
        prepared_data = {}
        for key, value in data.items():
            if isinstance(value, datetime) and value.tzinfo is not None:
                prepared_data[key] = value.astimezone(timezone.utc).replace(tzinfo=None)
            else:
                prepared_data[key] = value
        return prepared_data

    async def get_by_id(self, id: str | ObjectId) -> Optional[ModelType]:
        """Fetches a document by its _id."""
        obj_id = self._to_objectid(id)
        if not obj_id:
            return None
        try:
            document = await self.collection.find_one({"_id": obj_id})
        except Exception as e:
            self._handle_db_exception(e, "get_by_id", obj_id)
        return self.model.model_validate(document) if document else None

    async def list_by(
        self,
        query: Optional[Dict[str, Any]] = None,
        skip: int = 0,
        limit: int = 100,
        sort: Optional[List[Tuple[str, int]]] = None,
    ) -> List[ModelType]:
        """Lists documents matching `query` with paging and ordering."""
        try:
            cursor = self.collection.find(query or {})
            if sort:
                cursor = cursor.sort(sort)
            cursor = cursor.skip(max(0, skip)).limit(max(0, limit))
            documents = await cursor.to_list(length=limit if limit > 0 else None)
        except Exception as e:
            self._handle_db_exception(e, "list_by", query=query)
        return [self.model.model_validate(doc) for doc in documents]

    async def create(self, data_in: CreateSchemaType | Dict) -> ModelType:
        """Inserts a new document and returns it as stored."""
        if isinstance(data_in, BaseModel):
            create_data = data_in.model_dump(exclude_unset=False, by_alias=False)
        else:
            create_data = data_in.copy()

        now = utc_now()
        create_data.setdefault("created_at", now)
        create_data.setdefault("updated_at", now)
        create_data.pop("_id", None)
        create_data.pop("id", None)
        create_data = self._prepare_data_for_db(create_data)

        try:
            result: InsertOneResult = await self.collection.insert_one(create_data)
        except Exception as e:
            self._handle_db_exception(e, "create")

        created_document = await self.get_by_id(result.inserted_id)
        if created_document is None:
            logger.critical(
                f"CRITICAL: Failed to retrieve document immediately after insertion! "
                f"ID: {result.inserted_id}, Collection: {self.collection_name}"
            )
            raise RuntimeError("Failed to retrieve document after creation.")
        return created_document

    async def update(self, id: str | ObjectId, data_in: UpdateSchemaType | Dict) -> Optional[ModelType]:
        """Applies a partial update with $set and returns the updated document."""
        obj_id = self._to_objectid(id)
        if not obj_id:
            return None

        if isinstance(data_in, BaseModel):
            update_data = data_in.model_dump(exclude_unset=True, by_alias=False)
        else:
            update_data = data_in.copy()

        for field in IMMUTABLE_FIELDS + self.protected_fields:
            update_data.pop(field, None)

        if not update_data:
            logger.debug(f"Update called for ID {id} with no updatable data.")
            return await self.get_by_id(obj_id)

        update_data["updated_at"] = utc_now()
        update_data = self._prepare_data_for_db(update_data)

        try:
            result: UpdateResult = await self.collection.update_one({"_id": obj_id}, {"$set": update_data})
        except Exception as e:
            self._handle_db_exception(e, "update", obj_id)

        if result.matched_count == 0:
            logger.warning(f"Document not found for update: ID {id}, Collection: {self.collection_name}")
            return None
        logger.debug(f"Document updated: ID {id}, Modified: {result.modified_count}")
        return await self.get_by_id(obj_id)

    async def delete(self, id: str | ObjectId) -> bool:
        """Deletes a document by id."""
        obj_id = self._to_objectid(id)
        if not obj_id:
            return False
        try:
            result: DeleteResult = await self.collection.delete_one({"_id": obj_id})
        except Exception as e:
            self._handle_db_exception(e, "delete", obj_id)

        deleted = result.deleted_count > 0
        if deleted:
            logger.info(f"Document deleted: ID {id}, Collection: {self.collection_name}")
        else:
            logger.warning(f"Document not found for deletion: ID {id}, Collection: {self.collection_name}")
        return deleted

    async def count(self, query: Optional[Dict[str, Any]] = None) -> int:
        """Counts documents matching `query`."""
        try:
            return await self.collection.count_documents(query or {})
        except Exception as e:
            self._handle_db_exception(e, "count", query=query)
