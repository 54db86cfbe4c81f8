"""Custom order requests and their admin-driven status transitions."""
import logging
from enum import Enum
from typing import List, Mapping, Optional

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

from database import create_document, get_documents, parse_object_id, utcnow
from exceptions import ValidationException
from schemas import CustomOrders

logger = logging.getLogger(__name__)


class CustomOrderStatus(str, Enum):
    NEW = "new"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: str) -> "CustomOrderStatus":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationException(f"Unknown status '{value}'")


ALLOWED_TRANSITIONS: Mapping[CustomOrderStatus, frozenset] = {
    CustomOrderStatus.NEW: frozenset(
        {
            CustomOrderStatus.IN_PROGRESS,
            CustomOrderStatus.COMPLETED,
            CustomOrderStatus.CANCELLED,
        }
    ),
    CustomOrderStatus.IN_PROGRESS: frozenset(
        {
            CustomOrderStatus.COMPLETED,
            CustomOrderStatus.CANCELLED,
        }
    ),
    CustomOrderStatus.COMPLETED: frozenset(),
    CustomOrderStatus.CANCELLED: frozenset(),
}


def can_transition(current: CustomOrderStatus, target: CustomOrderStatus) -> bool:
    return current == target or target in ALLOWED_TRANSITIONS[current]


def _sources_for(target: CustomOrderStatus) -> List[str]:
    return [s.value for s in CustomOrderStatus if can_transition(s, target)]


class CustomOrderIntake:
    def __init__(self, db: Database):
        self.db = db
        self.requests = db["custom_orders"]

    def submit(self, user_id: Optional[ObjectId], payload: CustomOrders) -> dict:
        data = payload.model_dump()
        data["user_id"] = user_id
        data["status"] = CustomOrderStatus.NEW.value
        doc = create_document("custom_orders", data, database=self.db)
        logger.info("Custom order request %s from %s", doc["_id"], payload.email)
        return doc

    def list_requests(self) -> List[dict]:
        return get_documents("custom_orders", sort=[("created_at", DESCENDING), ("_id", DESCENDING)], database=self.db)

    def get(self, request_id: str) -> Optional[dict]:
        oid = parse_object_id(request_id)
        if oid is None:
            return None
        return self.requests.find_one({"_id": oid})

    def set_status(self, request_id: str, status: str) -> Optional[dict]:
        """Move a request to ``status``.

        Returns None for an unknown request and raises ValidationException for
        unknown statuses or transitions the table does not allow. The legal
        source statuses are part of the update filter.
        """
        target = CustomOrderStatus.parse(status)
        oid = parse_object_id(request_id)
        if oid is None:
            return None

        updated = self.requests.find_one_and_update(
            {"_id": oid, "status": {"$in": _sources_for(target)}},
            {"$set": {"status": target.value, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if updated is not None:
            logger.info("Custom order %s -> %s", oid, target.value)
            return updated

        current = self.requests.find_one({"_id": oid}, {"status": 1})
        if current is None:
            return None
        raise ValidationException(f"Cannot change status from '{current.get('status')}' to '{target.value}'")
