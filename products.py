"""
Product aggregate

A product document together with its embedded reviews. `rating` and
`numReviews` are always recomputed from the reviews, never taken from a
client.
"""
import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database

from auth import Identity
from database import serialize_doc, to_object_id
from errors import NotFoundError, ServerError, ValidationError
from schemas import Product, ProductInput, ProductUpdate, Review, ReviewInput

logger = logging.getLogger("switchstore.products")

REVIEW_WRITE_ATTEMPTS = 5


def average_rating(ratings: Iterable[int]) -> float:
    """Mean of the ratings rounded half-up to one decimal; 0 with no ratings."""
    ratings = list(ratings)
    if not ratings:
        return 0.0
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _product_id(product_id: str) -> ObjectId:
    obj_id = to_object_id(product_id)
    if obj_id is None:
        raise NotFoundError("Product not found")
    return obj_id


def get_product(db: Database, product_id: str) -> Dict[str, Any]:
    product = db["product"].find_one({"_id": _product_id(product_id)})
    if not product:
        raise NotFoundError("Product not found")
    return serialize_doc(product)


def create_product(db: Database, identity: Identity, payload: ProductInput) -> Dict[str, Any]:
    product = Product(**payload.model_dump(), created_by=ObjectId(identity.id))
    res = db["product"].insert_one(product.model_dump(by_alias=True, exclude_none=True))
    logger.info("Product %s created by %s", res.inserted_id, identity.id)
    return serialize_doc(db["product"].find_one({"_id": res.inserted_id}))


def update_product(db: Database, identity: Identity, product_id: str, payload: ProductUpdate) -> Dict[str, Any]:
    obj_id = _product_id(product_id)
    fields = payload.model_dump(by_alias=True, exclude_unset=True)
    if not fields:
        raise ValidationError("No fields to update")
    update: Dict[str, Any] = {}
    # originalPrice is the only optional field; null clears it
    if "originalPrice" in fields and fields["originalPrice"] is None:
        del fields["originalPrice"]
        update["$unset"] = {"originalPrice": ""}
    fields["updatedAt"] = datetime.now(timezone.utc)
    update["$set"] = fields
    product = db["product"].find_one_and_update({"_id": obj_id}, update, return_document=ReturnDocument.AFTER)
    if not product:
        raise NotFoundError("Product not found")
    logger.info("Product %s updated by %s (%s)", product_id, identity.id, ", ".join(sorted(fields)))
    return serialize_doc(product)


def delete_product(db: Database, identity: Identity, product_id: str) -> None:
    res = db["product"].delete_one({"_id": _product_id(product_id)})
    if res.deleted_count == 0:
        raise NotFoundError("Product not found")
    logger.info("Product %s deleted by %s", product_id, identity.id)


def add_review(db: Database, identity: Identity, product_id: str, payload: ReviewInput) -> Dict[str, Any]:
    """
    Append a review and recompute rating/numReviews in one document write.

    The write only lands if the review list still has the length it had when
    it was read; otherwise another review got in first and we re-read.
    """
    obj_id = _product_id(product_id)
    collection = db["product"]
    for _ in range(REVIEW_WRITE_ATTEMPTS):
        product = collection.find_one({"_id": obj_id}, {"reviews": 1})
        if not product:
            raise NotFoundError("Product not found")
        existing = product.get("reviews", [])
        review = Review(
            user=ObjectId(identity.id),
            name=identity.name,
            rating=payload.rating,
            comment=payload.comment,
        )
        ratings = [r["rating"] for r in existing] + [review.rating]
        res = collection.update_one(
            {"_id": obj_id, "reviews": {"$size": len(existing)}},
            {
                "$push": {"reviews": review.model_dump(by_alias=True)},
                "$set": {
                    "rating": average_rating(ratings),
                    "numReviews": len(ratings),
                    "updatedAt": datetime.now(timezone.utc),
                },
            },
        )
        if res.modified_count:
            logger.info("Review %s added to product %s by %s", review.id, product_id, identity.id)
            return serialize_doc(collection.find_one({"_id": obj_id}))
    raise ServerError("Could not save review, please try again")
