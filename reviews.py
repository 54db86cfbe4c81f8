"""Product reviews: one per (user, product), with an atomic helpful counter."""
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

from database import parse_object_id, utcnow
from exceptions import ValidationException

logger = logging.getLogger(__name__)

ANONYMOUS = "Anonymous"
MIN_COMMENT_LENGTH = 3


class ReviewLedger:
    def __init__(self, db: Database):
        self.db = db
        self.reviews = db["reviews"]
        self.users = db["users"]

    def submit(self, user_id: ObjectId, product_id: ObjectId, rating: int, comment: str) -> dict:
        """Create the user's review of a product, or overwrite rating/comment of the existing one."""
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationException("Rating must be an integer between 1 and 5")
        comment = (comment or "").strip()
        if len(comment) < MIN_COMMENT_LENGTH:
            raise ValidationException(f"Comment must be at least {MIN_COMMENT_LENGTH} characters")

        now = utcnow()
        doc = self.reviews.find_one_and_update(
            {"user_id": user_id, "product_id": product_id},
            {
                "$set": {"rating": rating, "comment": comment, "updated_at": now},
                "$setOnInsert": {"helpful_count": 0, "created_at": now},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        logger.info("Review %s by %s on product %s", doc["_id"], user_id, product_id)
        return doc

    def get(self, review_id: str) -> Optional[dict]:
        oid = parse_object_id(review_id)
        if oid is None:
            return None
        return self.reviews.find_one({"_id": oid})

    def mark_helpful(self, review_id: str) -> Optional[dict]:
        oid = parse_object_id(review_id)
        if oid is None:
            return None
        return self.reviews.find_one_and_update(
            {"_id": oid},
            {"$inc": {"helpful_count": 1}},
            return_document=ReturnDocument.AFTER,
        )

    def list_for_product(self, product_id: ObjectId) -> List[dict]:
        """Newest first, each annotated with the author's username."""
        reviews = list(
            self.reviews.find({"product_id": product_id}).sort([("created_at", DESCENDING), ("_id", DESCENDING)])
        )
        user_ids = list({r["user_id"] for r in reviews})
        names = {}
        if user_ids:
            names = {u["_id"]: u.get("username") for u in self.users.find({"_id": {"$in": user_ids}})}
        for review in reviews:
            review["username"] = names.get(review["user_id"]) or ANONYMOUS
        return reviews


def average_rating(ratings: Iterable[int]) -> str:
    """Mean rating to one decimal place, halves rounded up; "0.0" when there are no ratings."""
    ratings = list(ratings)
    if not ratings:
        return "0.0"
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return str(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
