"""Catalog store: categories, products and filtered product queries."""
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import create_document, get_documents, parse_object_id, require_object_id, utcnow
from exceptions import ValidationException
from schemas import Categories, CategoryUpdate, Products, ProductUpdate

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ("name", "description", "fabric", "work_details")

# An explicit null may clear these on update; other fields ignore null.
NULLABLE_FIELDS = {"description", "image_url", "category_id", "fabric", "work_details"}


def _changes(payload) -> dict:
    return {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None or k in NULLABLE_FIELDS}


@dataclass
class ProductFilter:
    """Independently optional product predicates, combined with AND.

    ``None`` means "no constraint". ``category_id`` wins over ``category_slug``.
    """

    category_id: Optional[str] = None
    category_slug: Optional[str] = None
    featured: Optional[bool] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    search: Optional[str] = None
    fabric: Optional[str] = None
    work_details: Optional[str] = None


class CatalogStore:
    def __init__(self, db: Database):
        self.db = db
        self.categories = db["categories"]
        self.products = db["products"]

    # -----------------------------
    # Categories
    # -----------------------------

    def list_categories(self) -> List[dict]:
        return get_documents("categories", database=self.db)

    def get_category(self, category_id: str) -> Optional[dict]:
        oid = parse_object_id(category_id)
        if oid is None:
            return None
        return self.categories.find_one({"_id": oid})

    def get_category_by_slug(self, slug: str) -> Optional[dict]:
        return self.categories.find_one({"slug": slug})

    def create_category(self, payload: Categories) -> dict:
        if self.get_category_by_slug(payload.slug):
            raise ValidationException(f"Category slug '{payload.slug}' already exists")
        try:
            doc = create_document("categories", payload, database=self.db)
        except DuplicateKeyError:
            raise ValidationException(f"Category slug '{payload.slug}' already exists")
        logger.info("Created category %s (%s)", doc["_id"], doc["slug"])
        return doc

    def update_category(self, category_id: str, payload: CategoryUpdate) -> Optional[dict]:
        category = self.get_category(category_id)
        if category is None:
            return None
        changes = _changes(payload)
        if not changes:
            return category

        if "slug" in changes and changes["slug"] != category["slug"]:
            if self.products.count_documents({"category_id": category["_id"]}, limit=1):
                raise ValidationException("Category slug cannot change while products reference it")
            if self.get_category_by_slug(changes["slug"]):
                raise ValidationException(f"Category slug '{changes['slug']}' already exists")

        changes["updated_at"] = utcnow()
        updated = self.categories.find_one_and_update(
            {"_id": category["_id"]},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        logger.info("Updated category %s", category["_id"])
        return updated

    def delete_category(self, category_id: str) -> bool:
        oid = parse_object_id(category_id)
        if oid is None:
            return False
        if self.products.count_documents({"category_id": oid}, limit=1):
            raise ValidationException("Category still has products")
        res = self.categories.delete_one({"_id": oid})
        if res.deleted_count:
            logger.info("Deleted category %s", oid)
        return res.deleted_count > 0

    # -----------------------------
    # Products
    # -----------------------------

    def build_query(self, filters: ProductFilter) -> Optional[dict]:
        """Translate a ProductFilter into a MongoDB query.

        Returns None when the filter can match nothing, e.g. an unknown
        category slug.
        """
        query: dict = {}

        if filters.category_id:
            oid = parse_object_id(filters.category_id)
            if oid is None:
                return None
            query["category_id"] = oid
        elif filters.category_slug:
            category = self.get_category_by_slug(filters.category_slug)
            if category is None:
                return None
            query["category_id"] = category["_id"]

        if filters.featured is not None:
            query["featured"] = filters.featured

        if filters.min_price is not None or filters.max_price is not None:
            price_query = {}
            if filters.min_price is not None:
                price_query["$gte"] = filters.min_price
            if filters.max_price is not None:
                price_query["$lte"] = filters.max_price
            query["price"] = price_query

        if filters.search:
            pattern = re.escape(filters.search)
            query["$or"] = [{field: {"$regex": pattern, "$options": "i"}} for field in SEARCH_FIELDS]

        if filters.fabric:
            query["fabric"] = filters.fabric
        if filters.work_details:
            query["work_details"] = filters.work_details

        return query

    def list_products(self, filters: Optional[ProductFilter] = None) -> List[dict]:
        query = self.build_query(filters or ProductFilter())
        if query is None:
            return []
        return get_documents("products", query, database=self.db)

    def get_product(self, product_id: str) -> Optional[dict]:
        oid = parse_object_id(product_id)
        if oid is None:
            return None
        return self.products.find_one({"_id": oid})

    def get_product_by_slug(self, slug: str) -> Optional[dict]:
        return self.products.find_one({"slug": slug})

    def _resolve_category(self, category_id: Optional[str]):
        if category_id is None:
            return None
        oid = require_object_id(category_id, "category_id")
        if self.categories.count_documents({"_id": oid}, limit=1) == 0:
            raise ValidationException("Category does not exist")
        return oid

    def create_product(self, payload: Products) -> dict:
        if self.get_product_by_slug(payload.slug):
            raise ValidationException(f"Product slug '{payload.slug}' already exists")
        data = payload.model_dump()
        data["category_id"] = self._resolve_category(payload.category_id)
        try:
            doc = create_document("products", data, database=self.db)
        except DuplicateKeyError:
            raise ValidationException(f"Product slug '{payload.slug}' already exists")
        logger.info("Created product %s (%s)", doc["_id"], doc["slug"])
        return doc

    def update_product(self, product_id: str, payload: ProductUpdate) -> Optional[dict]:
        product = self.get_product(product_id)
        if product is None:
            return None
        changes = _changes(payload)
        if "category_id" in changes:
            changes["category_id"] = self._resolve_category(changes["category_id"])
        if "slug" in changes and changes["slug"] != product["slug"]:
            if self.get_product_by_slug(changes["slug"]):
                raise ValidationException(f"Product slug '{changes['slug']}' already exists")
        if not changes:
            return product

        changes["updated_at"] = utcnow()
        updated = self.products.find_one_and_update(
            {"_id": product["_id"]},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        logger.info("Updated product %s", product["_id"])
        return updated

    def delete_product(self, product_id: str) -> bool:
        oid = parse_object_id(product_id)
        if oid is None:
            return False
        res = self.products.delete_one({"_id": oid})
        if res.deleted_count:
            logger.info("Deleted product %s", oid)
        return res.deleted_count > 0
