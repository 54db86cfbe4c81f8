"""Demo data for an empty database. Each collection is seeded only when empty."""
import logging
import os

from pymongo.database import Database

from auth import hash_password
from database import create_document, ensure_indexes, get_db
from logging_config import setup_logging

logger = logging.getLogger(__name__)

CATEGORIES = [
    {"name": "Sarees", "slug": "sarees", "description": "Elegant and traditional sarees for all occasions"},
    {"name": "Lehengas", "slug": "lehengas", "description": "Beautiful lehengas for weddings and special occasions"},
    {"name": "Bridal Wear", "slug": "bridal-wear", "description": "Special collections for the bride"},
    {"name": "Casual Wear", "slug": "casual-wear", "description": "Comfortable and stylish everyday wear"},
]

PRODUCTS = [
    {
        "name": "Royal Ghazi Silk Saree",
        "slug": "royal-ghazi-silk-saree",
        "price": 25000,
        "description": "A luxurious ghazi silk saree with intricate gotta patti work.",
        "category": "sarees",
        "fabric": "Ghazi Silk",
        "work_details": "Gotta Patti, Jardozi",
        "image_urls": ["https://i.imgur.com/1A6tNes.jpg", "https://i.imgur.com/2B7tNes.jpg"],
        "features": ["Handcrafted", "Premium Quality", "Includes Blouse Piece"],
        "in_stock": True,
        "featured": True,
    },
    {
        "name": "Pink Bandni Lehenga",
        "slug": "pink-bandni-lehenga",
        "price": 35000,
        "description": "Beautiful pink bandni lehenga with mirror work and golden embellishments.",
        "category": "lehengas",
        "fabric": "Bandni",
        "work_details": "Mirror Work, Golden Embroidery",
        "image_urls": ["https://i.imgur.com/3C6tNes.jpg", "https://i.imgur.com/4D7tNes.jpg"],
        "features": ["Designer Piece", "Full Flare", "Includes Dupatta"],
        "in_stock": True,
        "featured": True,
    },
    {
        "name": "Bridal Red Lehenga Set",
        "slug": "bridal-red-lehenga-set",
        "price": 50000,
        "description": "Traditional bridal red lehenga with heavy zari work and kundan embellishments.",
        "category": "bridal-wear",
        "fabric": "Raw Silk",
        "work_details": "Zari, Kundan, Sequins",
        "image_urls": ["https://i.imgur.com/5E6tNes.jpg", "https://i.imgur.com/6F7tNes.jpg"],
        "features": ["Bridal Set", "Includes Blouse and Dupatta", "Custom Sizing Available"],
        "in_stock": True,
        "featured": True,
    },
    {
        "name": "Casual Cotton Saree",
        "slug": "casual-cotton-saree",
        "price": 5000,
        "description": "Lightweight cotton saree with simple block prints, perfect for daily wear.",
        "category": "casual-wear",
        "fabric": "Cotton",
        "work_details": "Block Print",
        "image_urls": ["https://i.imgur.com/7G6tNes.jpg", "https://i.imgur.com/8H7tNes.jpg"],
        "features": ["Breathable Fabric", "Easy to Drape", "Includes Blouse Piece"],
        "in_stock": True,
        "featured": False,
    },
]


def seed_database(db: Database) -> dict:
    """Insert demo users, categories and products; returns how many of each were added."""
    seeded = {"users": 0, "categories": 0, "products": 0}

    if db["users"].count_documents({}) == 0:
        users = [
            ("admin", "admin@example.com", os.getenv("SEED_ADMIN_PASSWORD", "admin123"), True),
            ("user", "user@example.com", os.getenv("SEED_USER_PASSWORD", "user123"), False),
        ]
        for username, email, password, is_admin in users:
            create_document(
                "users",
                {"username": username, "email": email, "password": hash_password(password), "is_admin": is_admin},
                database=db,
            )
        seeded["users"] = len(users)
    else:
        logger.info("Users already exist, skipping user seed")

    if db["categories"].count_documents({}) == 0:
        for c in CATEGORIES:
            create_document("categories", c, database=db)
        seeded["categories"] = len(CATEGORIES)

    if db["products"].count_documents({}) == 0:
        slugs = {c["slug"]: c["_id"] for c in db["categories"].find({}, {"slug": 1})}
        for p in PRODUCTS:
            data = {k: v for k, v in p.items() if k != "category"}
            data["category_id"] = slugs.get(p["category"])
            create_document("products", data, database=db)
        seeded["products"] = len(PRODUCTS)
    else:
        logger.info("Products already exist, skipping product seed")

    logger.info("Database seeding completed: %s", seeded)
    return seeded


if __name__ == "__main__":
    setup_logging()
    database = get_db()
    ensure_indexes(database)
    seed_database(database)
