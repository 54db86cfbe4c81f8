"""Per-user cart rows, merged by (user_id, product_id) and joined with live products."""
import logging
from typing import Dict, List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import parse_object_id, utcnow
from exceptions import ValidationException

logger = logging.getLogger(__name__)


def _check_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationException("Quantity must be a positive integer")


class CartStore:
    def __init__(self, db: Database):
        self.db = db
        self.items = db["cart"]
        self.products = db["products"]

    def add_item(self, user_id: ObjectId, product_id: ObjectId, quantity: int = 1) -> dict:
        """Insert the row or add ``quantity`` to the existing one in a single upsert."""
        _check_quantity(quantity)
        now = utcnow()
        update = {
            "$inc": {"quantity": quantity},
            "$set": {"updated_at": now},
            "$setOnInsert": {"created_at": now},
        }
        key = {"user_id": user_id, "product_id": product_id}
        try:
            doc = self.items.find_one_and_update(key, update, upsert=True, return_document=ReturnDocument.AFTER)
        except DuplicateKeyError:
            # A concurrent upsert inserted the row first; the retry matches it.
            doc = self.items.find_one_and_update(key, update, upsert=True, return_document=ReturnDocument.AFTER)
        logger.info("Cart %s: product %s now x%s", user_id, product_id, doc["quantity"])
        return doc

    def get_item(self, item_id: str) -> Optional[dict]:
        oid = parse_object_id(item_id)
        if oid is None:
            return None
        return self.items.find_one({"_id": oid})

    def set_quantity(self, item_id: str, quantity: int) -> Optional[dict]:
        _check_quantity(quantity)
        oid = parse_object_id(item_id)
        if oid is None:
            return None
        return self.items.find_one_and_update(
            {"_id": oid},
            {"$set": {"quantity": quantity, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )

    def remove(self, item_id: str) -> bool:
        oid = parse_object_id(item_id)
        if oid is None:
            return False
        res = self.items.delete_one({"_id": oid})
        return res.deleted_count > 0

    def clear(self, user_id: ObjectId) -> int:
        res = self.items.delete_many({"user_id": user_id})
        logger.info("Cleared %s cart rows for %s", res.deleted_count, user_id)
        return res.deleted_count

    def list_items(self, user_id: ObjectId) -> List[dict]:
        """Cart rows with their current product; rows whose product is gone are skipped."""
        rows = list(self.items.find({"user_id": user_id}))
        if not rows:
            return []
        product_ids = list({row["product_id"] for row in rows})
        products: Dict[ObjectId, dict] = {
            p["_id"]: p for p in self.products.find({"_id": {"$in": product_ids}})
        }
        joined = []
        for row in rows:
            product = products.get(row["product_id"])
            if product is None:
                continue
            joined.append({**row, "product": product})
        return joined


def summarize(items: List[dict]) -> dict:
    """Totals over joined cart rows, priced at the products' current price."""
    total_items = sum(item["quantity"] for item in items)
    subtotal = sum(item["quantity"] * item["product"]["price"] for item in items)
    return {"total_items": total_items, "subtotal": subtotal}
