"""
MongoDB access helpers.

The client is created lazily by pymongo, so importing this module never opens
a connection. When DATABASE_URL is not set, ``db`` stays ``None`` and
``get_db`` raises a DatabaseException for every request that needs it.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import settings
from exceptions import DatabaseException, ValidationException

logger = logging.getLogger(__name__)

client: Optional[MongoClient] = MongoClient(settings.database_url) if settings.database_url else None
db: Optional[Database] = client[settings.database_name] if client is not None else None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_db() -> Database:
    """FastAPI dependency returning the configured database."""
    if db is None:
        raise DatabaseException("Database is not configured")
    return db


def parse_object_id(value: Any) -> Optional[ObjectId]:
    """Return an ObjectId for ``value`` or None when it is not a valid id."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def require_object_id(value: Any, field: str = "id") -> ObjectId:
    oid = parse_object_id(value)
    if oid is None:
        raise ValidationException(f"Invalid {field}")
    return oid


def create_document(collection_name: str, data: Union[BaseModel, dict], database: Optional[Database] = None) -> dict:
    """Insert a document stamped with created_at/updated_at and return it with its _id."""
    database = get_db() if database is None else database
    if isinstance(data, BaseModel):
        data = data.model_dump()
    doc = dict(data)
    now = utcnow()
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    database[collection_name].insert_one(doc)
    return doc


def get_documents(
    collection_name: str,
    filter_dict: Optional[dict] = None,
    limit: Optional[int] = None,
    sort: Optional[list] = None,
    database: Optional[Database] = None,
) -> List[dict]:
    database = get_db() if database is None else database
    cursor = database[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def serialize(value: Any) -> Any:
    """Make a document JSON friendly: ``_id`` becomes ``id`` and ObjectIds become strings."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, list):
        return [serialize(v) for v in value]
    if isinstance(value, dict):
        out: Dict[str, Any] = {}
        for key, item in value.items():
            if key == "_id":
                out["id"] = serialize(item)
            else:
                out[key] = serialize(item)
        return out
    return value


def ensure_indexes(database: Database) -> None:
    """Create the unique and TTL indexes the stores rely on."""
    database["users"].create_index("username", unique=True)
    database["sessions"].create_index("token", unique=True)
    database["sessions"].create_index("expires_at", expireAfterSeconds=0)
    database["categories"].create_index("slug", unique=True)
    database["products"].create_index("slug", unique=True)
    database["products"].create_index("category_id")
    database["cart"].create_index([("user_id", ASCENDING), ("product_id", ASCENDING)], unique=True)
    database["reviews"].create_index([("user_id", ASCENDING), ("product_id", ASCENDING)], unique=True)
    database["reviews"].create_index("product_id")
    logger.info("MongoDB indexes ensured on %s", database.name)
