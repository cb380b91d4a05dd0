"""
Seed the database with demo accounts and a starter catalog.

    python seed.py

Wipes the user and product collections first. This is also the only way to
get an admin account: no endpoint changes a user's role.
"""
import logging
import sys
from typing import Any, Dict

from bson import ObjectId
from pymongo.database import Database

import database
from auth import hash_password
from schemas import Address, Product, ProductInput, Role, User

logger = logging.getLogger("switchstore.seed")

USERS = [
    {
        "name": "Admin User",
        "email": "admin@nintendo.com",
        "password": "admin123",
        "role": Role.ADMIN,
        "phone": "+1-555-0101",
        "address": {"street": "123 Nintendo Way", "city": "Redmond", "state": "WA", "zipCode": "98052", "country": "USA"},
    },
    {
        "name": "John Doe",
        "email": "user@nintendo.com",
        "password": "user123",
        "role": Role.USER,
        "phone": "+1-555-0102",
        "address": {"street": "456 Gamer Street", "city": "Seattle", "state": "WA", "zipCode": "98101", "country": "USA"},
    },
]

PRODUCTS = [
    {
        "name": "Nintendo Switch OLED Model",
        "description": "Meet the newest member of the Nintendo Switch family, with a vibrant 7-inch OLED screen, "
                       "a wide adjustable stand, a dock with a wired LAN port and 64 GB of internal storage.",
        "price": 349.99,
        "category": "Consoles",
        "images": ["https://images.unsplash.com/photo-1578662996442-48f60103fc96?w=600&h=600&fit=crop"],
        "stock": 25,
        "featured": True,
        "tags": ["console", "oled", "nintendo", "switch"],
        "specifications": {"Screen Size": "7-inch OLED", "Storage": "64 GB", "Battery Life": "Up to 9 hours"},
    },
    {
        "name": "The Legend of Zelda: Breath of the Wild",
        "description": "Step into a world of discovery, exploration, and adventure. Travel across vast fields, "
                       "through forests, and to mountain peaks as you discover what has become of Hyrule.",
        "price": 59.99,
        "originalPrice": 69.99,
        "category": "Games",
        "images": ["https://images.unsplash.com/photo-1606144042614-b2417e99c4e3?w=600&h=600&fit=crop"],
        "stock": 50,
        "featured": True,
        "onSale": True,
        "tags": ["zelda", "adventure", "open-world", "nintendo"],
        "specifications": {"Platform": "Nintendo Switch", "Genre": "Action-Adventure", "Players": "1"},
    },
    {
        "name": "Mario Kart 8 Deluxe",
        "description": "Hit the road with the definitive version of Mario Kart 8 and race your friends "
                       "or battle them on new and returning battle courses.",
        "price": 59.99,
        "category": "Games",
        "images": ["https://images.unsplash.com/photo-1606144042614-b2417e99c4e3?w=600&h=600&fit=crop"],
        "stock": 45,
        "featured": True,
        "tags": ["mario-kart", "racing", "multiplayer", "nintendo"],
        "specifications": {"Platform": "Nintendo Switch", "Genre": "Racing", "Players": "1-4 (local), 1-12 (online)"},
    },
    {
        "name": "Nintendo Switch Pro Controller",
        "description": "Take your game sessions up a notch with motion controls, HD rumble "
                       "and built-in amiibo functionality.",
        "price": 69.99,
        "category": "Controllers",
        "images": ["https://images.unsplash.com/photo-1592840062661-eb5ad9b3d1c6?w=600&h=600&fit=crop"],
        "stock": 40,
        "tags": ["controller", "pro", "wireless", "nintendo"],
        "specifications": {"Connectivity": "Wireless/USB-C", "Battery Life": "Approximately 40 hours"},
    },
    {
        "name": "Nintendo Switch Carrying Case",
        "description": "Protect your Nintendo Switch system with a hard shell exterior and soft interior lining "
                       "to keep your console safe during travel.",
        "price": 19.99,
        "category": "Cases & Protection",
        "images": ["https://images.unsplash.com/photo-1511512578047-dfb367046420?w=600&h=600&fit=crop"],
        "stock": 60,
        "tags": ["case", "protection", "travel", "nintendo"],
        "specifications": {"Material": "Hard shell exterior, soft interior", "Compatibility": "Nintendo Switch"},
    },
    {
        "name": "SanDisk 128GB microSDXC Card for Nintendo Switch",
        "description": "Officially licensed for the Nintendo Switch system. Add up to 128GB of storage "
                       "with transfer rates up to 100MB/s.",
        "price": 24.99,
        "originalPrice": 29.99,
        "category": "Memory & Storage",
        "brand": "SanDisk",
        "images": ["https://images.unsplash.com/photo-1511512578047-dfb367046420?w=600&h=600&fit=crop"],
        "stock": 0,
        "onSale": True,
        "tags": ["microsd", "storage", "memory", "sandisk"],
        "specifications": {"Capacity": "128GB", "Speed Class": "U3, V30"},
    },
]


def _user_doc(data: Dict[str, Any]) -> Dict[str, Any]:
    user = User(
        name=data["name"],
        email=data["email"],
        password_hash=hash_password(data["password"]),
        role=data["role"],
        phone=data.get("phone"),
        address=Address(**data["address"]) if data.get("address") else None,
    )
    return user.model_dump(by_alias=True, exclude_none=True)


def seed_database(db: Database) -> Dict[str, int]:
    db["user"].delete_many({})
    db["product"].delete_many({})
    database.ensure_indexes(db)

    user_ids = db["user"].insert_many([_user_doc(u) for u in USERS]).inserted_ids
    admin_id: ObjectId = user_ids[0]

    docs = []
    for data in PRODUCTS:
        payload = ProductInput(**data)
        product = Product(**payload.model_dump(), created_by=admin_id)
        docs.append(product.model_dump(by_alias=True, exclude_none=True))
    db["product"].insert_many(docs)

    logger.info("Seeded %d users and %d products", len(USERS), len(docs))
    return {"users": len(USERS), "products": len(docs)}


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if database.db is None:
        logger.error("DATABASE_URL and DATABASE_NAME must be set")
        sys.exit(1)
    seed_database(database.db)
