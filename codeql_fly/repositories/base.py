"""Base repository providing common MongoDB CRUD helpers."""

from abc import ABC
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Tuple, Type, TypeVar, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo.collection import Collection
from pymongo.database import Database


class CollectionName(str, Enum):
    INSTALLATIONS = "installations"
    REPOS = "repos"
    WORKFLOWS = "workflows"
    ALERTS = "alerts"
    REPORTS = "reports"


T = TypeVar("T", bound=BaseModel)

LIVE: Dict[str, Any] = {"deleted_at": None}


def clamp_page(page: int, limit: int, max_size: int) -> Tuple[int, int]:
    """Zero-based page, limit forced into [1, max_size]."""
    return max(0, page), min(max_size, max(1, limit))


class BaseRepository(ABC, Generic[T]):
    """Base repository providing common CRUD operations for MongoDB collections."""

    def __init__(
        self,
        db: Database,
        collection_name: Union[CollectionName, str],
        model_class: Type[T],
    ):
        self.db = db
        self.collection_name: str = (
            collection_name.value
            if isinstance(collection_name, CollectionName)
            else collection_name
        )
        self.collection: Collection = db[self.collection_name]
        self.model_class = model_class

    def find_by_id(self, entity_id: Union[str, ObjectId]) -> Optional[T]:
        identifier = self._to_object_id(entity_id)
        if identifier is None:
            return None
        doc = self.collection.find_one({"_id": identifier})
        return self._to_model(doc)

    def find_one(self, query: Dict[str, Any]) -> Optional[T]:
        doc = self.collection.find_one(query)
        return self._to_model(doc)

    def find_many(
        self,
        query: Dict[str, Any],
        sort: Optional[List[tuple]] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[T]:
        cursor = self.collection.find(query)
        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return [self._to_model(doc) for doc in cursor]

    def insert_one(self, entity: T) -> T:
        result = self.collection.insert_one(entity.to_mongo())
        return self.find_by_id(result.inserted_id)

    def update(
        self, entity_id: Union[str, ObjectId], update_data: Dict[str, Any]
    ) -> Optional[T]:
        identifier = self._to_object_id(entity_id)
        if identifier is None:
            return None
        self.collection.update_one({"_id": identifier}, {"$set": update_data})
        return self.find_by_id(identifier)

    def delete(self, entity_id: Union[str, ObjectId]) -> bool:
        identifier = self._to_object_id(entity_id)
        if identifier is None:
            return False
        result = self.collection.delete_one({"_id": identifier})
        return result.deleted_count > 0

    def _to_model(self, doc: Optional[Dict[str, Any]]) -> Optional[T]:
        if not doc:
            return None
        return self.model_class.model_validate(doc)

    def _to_object_id(
        self, entity_id: Union[str, ObjectId, None]
    ) -> Optional[ObjectId]:
        if entity_id is None:
            return None
        if isinstance(entity_id, ObjectId):
            return entity_id
        try:
            return ObjectId(entity_id)
        except (InvalidId, TypeError):
            return None


class SoftDeleteRepository(BaseRepository[T]):
    """Repository whose default reads only see rows with ``deleted_at`` unset."""

    def find_live_by_id(self, entity_id: Union[str, ObjectId]) -> Optional[T]:
        identifier = self._to_object_id(entity_id)
        if identifier is None:
            return None
        return self.find_one({"_id": identifier, **LIVE})

    def find_live(
        self, query: Optional[Dict[str, Any]] = None, sort: Optional[List[tuple]] = None
    ) -> List[T]:
        return self.find_many({**(query or {}), **LIVE}, sort=sort)

    def paginate_live(
        self,
        page: int,
        limit: int,
        query: Optional[Dict[str, Any]] = None,
        sort: Optional[List[tuple]] = None,
    ) -> List[T]:
        return self.find_many(
            {**(query or {}), **LIVE},
            sort=sort or [("created_at", -1)],
            skip=page * limit,
            limit=limit,
        )
