"""
Demo catalog used to seed an empty database.

Product ids are zero-padded numeric strings, the same form the product
detail endpoint pads incoming ids to.
"""

import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


def _review(product_id: str, review_id: str, name: str, email: str, rating: int, comment: str, date: datetime) -> dict:
    return {
        "id": review_id,
        "reviewer_name": name,
        "reviewer_email": email,
        "rating": rating,
        "comment": comment,
        "date": date,
        "user_id": None,
        "product_id": product_id,
    }


DEMO_CATEGORIES = ["beauty", "fragrances", "furniture", "groceries"]

DEMO_PRODUCTS = [
    {
        "_id": "001",
        "title": "Essence Mascara Lash Princess",
        "description": "Volumizing and lengthening mascara with a long-lasting, cruelty-free formula.",
        "price": 9.99,
        "discount_percentage": 7.17,
        "category": "beauty",
        "brand": "Essence",
        "stock": 5,
        "rating": 4.94,
        "images": ["https://cdn.dummyjson.com/products/images/beauty/Essence%20Mascara%20Lash%20Princess/1.png"],
        "thumbnail": "https://cdn.dummyjson.com/products/images/beauty/Essence%20Mascara%20Lash%20Princess/thumbnail.png",
        "reviews": [
            _review("001", "r-001-1", "John Doe", "john.doe@x.dummyjson.com", 2, "Very unhappy with my purchase!",
                    datetime(2024, 5, 23, 8, 56, 21, tzinfo=timezone.utc)),
            _review("001", "r-001-2", "Nolan Gonzalez", "nolan.gonzalez@x.dummyjson.com", 5, "Very satisfied!",
                    datetime(2024, 5, 24, 9, 12, 3, tzinfo=timezone.utc)),
        ],
    },
    {
        "_id": "002",
        "title": "Eyeshadow Palette with Mirror",
        "description": "Versatile range of eyeshadow shades with a built-in mirror.",
        "price": 19.99,
        "discount_percentage": 5.5,
        "category": "beauty",
        "brand": "Glamour Beauty",
        "stock": 44,
        "rating": 3.28,
        "images": ["https://cdn.dummyjson.com/products/images/beauty/Eyeshadow%20Palette%20with%20Mirror/1.png"],
        "thumbnail": "https://cdn.dummyjson.com/products/images/beauty/Eyeshadow%20Palette%20with%20Mirror/thumbnail.png",
        "reviews": [
            _review("002", "r-002-1", "Savannah Gomez", "savannah.gomez@x.dummyjson.com", 4, "Great value for money!",
                    datetime(2024, 5, 23, 8, 56, 21, tzinfo=timezone.utc)),
        ],
    },
    {
        "_id": "006",
        "title": "Calvin Klein CK One",
        "description": "A classic unisex fragrance with a fresh citrus scent.",
        "price": 49.99,
        "discount_percentage": 0.32,
        "category": "fragrances",
        "brand": "Calvin Klein",
        "stock": 17,
        "rating": 4.85,
        "images": ["https://cdn.dummyjson.com/products/images/fragrances/Calvin%20Klein%20CK%20One/1.png"],
        "thumbnail": "https://cdn.dummyjson.com/products/images/fragrances/Calvin%20Klein%20CK%20One/thumbnail.png",
        "reviews": [],
    },
    {
        "_id": "011",
        "title": "Annibale Colombo Bed",
        "description": "Luxurious bed crafted with high-quality materials.",
        "price": 1899.99,
        "discount_percentage": 0.29,
        "category": "furniture",
        "brand": "Annibale Colombo",
        "stock": 47,
        "rating": 4.14,
        "images": ["https://cdn.dummyjson.com/products/images/furniture/Annibale%20Colombo%20Bed/1.png"],
        "thumbnail": "https://cdn.dummyjson.com/products/images/furniture/Annibale%20Colombo%20Bed/thumbnail.png",
        "reviews": [],
    },
    {
        "_id": "016",
        "title": "Apple",
        "description": "Fresh and crisp apples, perfect for snacking or baking.",
        "price": 1.99,
        "discount_percentage": 1.97,
        "category": "groceries",
        "brand": None,
        "stock": 8,
        "rating": 4.19,
        "images": ["https://cdn.dummyjson.com/products/images/groceries/Apple/1.png"],
        "thumbnail": "https://cdn.dummyjson.com/products/images/groceries/Apple/thumbnail.png",
        "reviews": [],
    },
]


def seed_demo_data(db) -> bool:
    """Insert the demo catalog when the product collection is empty. Returns True if anything was seeded."""
    if db["product"].count_documents({}) > 0:
        return False
    db["product"].insert_many([dict(p) for p in DEMO_PRODUCTS])
    if db["category"].count_documents({}) == 0:
        db["category"].insert_many([{"name": name, "slug": name} for name in DEMO_CATEGORIES])
    logger.info("Seeded %d demo products", len(DEMO_PRODUCTS))
    return True
