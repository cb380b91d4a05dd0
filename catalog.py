"""
Catalog queries

Turns the storefront's optional filter/sort/page parameters into a MongoDB
filter, a stable sort and a skip/limit window over the product collection.
"""
import logging
import math
import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import Field, field_validator, model_validator
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database

from database import serialize_doc
from schemas import Category, StoreModel

logger = logging.getLogger("switchstore.catalog")

SORT_FIELDS = ("createdAt", "name", "price", "rating", "numReviews")
DEFAULT_SORT = "-createdAt"
STOREFRONT_LIMIT = 12
ADMIN_LIMIT = 10
MAX_LIMIT = 100

# Reviews are only sent with the single-product read
LIST_PROJECTION = {"reviews": 0}


class CatalogQuery(StoreModel):
    search: Optional[str] = None
    category: Optional[Category] = None
    min_price: Optional[float] = Field(None, allow_inf_nan=False)
    max_price: Optional[float] = Field(None, allow_inf_nan=False)
    min_rating: Optional[float] = Field(None, allow_inf_nan=False)
    in_stock: Optional[bool] = None
    featured: Optional[bool] = None
    on_sale: Optional[bool] = None
    sort: str = DEFAULT_SORT
    page: int = Field(1, ge=1)
    limit: int = Field(STOREFRONT_LIMIT, ge=1, le=MAX_LIMIT)

    @model_validator(mode="before")
    @classmethod
    def _drop_blank(cls, data: Any) -> Any:
        # Browser forms send every filter, empty ones as ""
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None and v != ""}
        return data

    @field_validator("sort")
    @classmethod
    def _known_sort(cls, v: str) -> str:
        if v.lstrip("-") not in SORT_FIELDS or v.startswith("--"):
            raise ValueError(f"sort must be one of {', '.join(SORT_FIELDS)}, optionally prefixed with '-'")
        return v


def build_filter(query: CatalogQuery) -> Dict[str, Any]:
    filt: Dict[str, Any] = {}
    if query.search:
        pattern = {"$regex": re.escape(query.search), "$options": "i"}
        filt["$or"] = [{"name": pattern}, {"description": pattern}]
    if query.category:
        filt["category"] = query.category
    price_filter: Dict[str, Any] = {}
    if query.min_price is not None:
        price_filter["$gte"] = float(query.min_price)
    if query.max_price is not None:
        price_filter["$lte"] = float(query.max_price)
    if price_filter:
        filt["price"] = price_filter
    if query.min_rating is not None:
        filt["rating"] = {"$gte": float(query.min_rating)}
    if query.in_stock:
        filt["stock"] = {"$gt": 0}
    if query.featured:
        filt["featured"] = True
    if query.on_sale:
        filt["onSale"] = True
    return filt


def build_sort(query: CatalogQuery) -> List[Tuple[str, int]]:
    """Requested field first, then insertion order (_id) to break ties."""
    if query.sort.startswith("-"):
        return [(query.sort[1:], DESCENDING), ("_id", ASCENDING)]
    return [(query.sort, ASCENDING), ("_id", ASCENDING)]


def paginate(page: int, limit: int, total: int) -> Dict[str, Dict[str, int]]:
    last_page = max(1, math.ceil(total / limit))
    pagination: Dict[str, Dict[str, int]] = {}
    if page < last_page:
        pagination["next"] = {"page": page + 1, "limit": limit}
    if page > 1:
        pagination["prev"] = {"page": min(page - 1, last_page), "limit": limit}
    return pagination


def query_products(db: Database, query: CatalogQuery) -> Dict[str, Any]:
    collection = db["product"]
    filt = build_filter(query)
    total = collection.count_documents(filt)
    skip = (query.page - 1) * query.limit
    items: List[Dict[str, Any]] = []
    # Past the last page there is nothing to fetch; skip may not even fit in a BSON int64
    if skip < total:
        cursor = collection.find(filt, LIST_PROJECTION).sort(build_sort(query)).skip(skip).limit(query.limit)
        items = [serialize_doc(d) for d in cursor]
    logger.debug("Catalog query %s matched %d, page %d has %d", filt, total, query.page, len(items))
    return {
        "data": items,
        "total": total,
        "count": len(items),
        "pagination": paginate(query.page, query.limit, total),
    }
