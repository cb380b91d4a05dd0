import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from pymongo.database import Database
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import auth
import catalog
import database
import products
from auth import Identity, get_current_user, require_role
from database import get_db
from schemas import LoginInput, ProductInput, ProductUpdate, RegisterInput, ReviewInput, Role, UpdateDetailsInput

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("switchstore")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is not None:
        database.ensure_indexes(database.db)
        logger.info("Connected to database %s", database.db.name)
    else:
        logger.warning("DATABASE_URL / DATABASE_NAME not set; database routes will fail")
    yield


app = FastAPI(title="Switch Store API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

admin_only = require_role(Role.ADMIN)


# -----------------------------
# Error envelope
# -----------------------------

def _validation_message(errors: List[Dict[str, Any]]) -> str:
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail
    if exc.status_code == 404 and message == "Not Found":
        message = "Route not found"
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"success": False, "message": _validation_message(exc.errors())})


@app.exception_handler(PydanticValidationError)
async def model_validation_handler(request: Request, exc: PydanticValidationError):
    return JSONResponse(status_code=400, content={"success": False, "message": _validation_message(exc.errors())})


@app.exception_handler(Exception)
async def server_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "message": "Server Error"})


# -----------------------------
# Health & Test
# -----------------------------

@app.get("/")
def read_root():
    return {"message": "Switch Store API running"}


@app.get("/test")
def test_database():
    # Connection state only; names and driver errors stay in the server log
    status = "not configured"
    if database.db is not None:
        try:
            database.db.list_collection_names()
            status = "connected"
        except PyMongoError as e:
            logger.warning("Database health check failed: %s", e)
            status = "unavailable"
    return {"backend": "running", "database": status}


# -----------------------------
# Auth
# -----------------------------

@app.post("/api/auth/register", status_code=201)
def register(payload: RegisterInput, db: Database = Depends(get_db)):
    token, user = auth.register(db, payload)
    return {"success": True, "token": token, "user": user}


@app.post("/api/auth/login")
def login(payload: LoginInput, db: Database = Depends(get_db)):
    token, user = auth.login(db, payload)
    return {"success": True, "token": token, "user": user}


@app.get("/api/auth/me")
def me(current_user: Identity = Depends(get_current_user), db: Database = Depends(get_db)):
    return {"success": True, "user": auth.get_user(db, current_user)}


@app.put("/api/auth/updatedetails")
def update_details(
    payload: UpdateDetailsInput,
    current_user: Identity = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    return {"success": True, "user": auth.update_profile(db, current_user, payload)}


# -----------------------------
# Products
# -----------------------------

def _catalog_query(
    search: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[str] = Query(default=None, alias="minPrice"),
    max_price: Optional[str] = Query(default=None, alias="maxPrice"),
    min_rating: Optional[str] = Query(default=None, alias="minRating"),
    in_stock: Optional[str] = Query(default=None, alias="inStock"),
    featured: Optional[str] = None,
    on_sale: Optional[str] = Query(default=None, alias="onSale"),
    sort: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
) -> Dict[str, Any]:
    # Raw strings; CatalogQuery does the parsing so every bad value is reported together
    return {
        "search": search,
        "category": category,
        "min_price": min_price,
        "max_price": max_price,
        "min_rating": min_rating,
        "in_stock": in_stock,
        "featured": featured,
        "on_sale": on_sale,
        "sort": sort,
        "page": page,
        "limit": limit,
    }


@app.get("/api/products")
def list_products(params: Dict[str, Any] = Depends(_catalog_query), db: Database = Depends(get_db)):
    result = catalog.query_products(db, catalog.CatalogQuery(**params))
    return {"success": True, **result}


@app.get("/api/products/{product_id}")
def get_product(product_id: str, db: Database = Depends(get_db)):
    return {"success": True, "data": products.get_product(db, product_id)}


@app.post("/api/products", status_code=201)
def create_product(payload: ProductInput, current_user: Identity = Depends(admin_only), db: Database = Depends(get_db)):
    return {"success": True, "data": products.create_product(db, current_user, payload)}


@app.put("/api/products/{product_id}")
def update_product(
    product_id: str,
    payload: ProductUpdate,
    current_user: Identity = Depends(admin_only),
    db: Database = Depends(get_db),
):
    return {"success": True, "data": products.update_product(db, current_user, product_id, payload)}


@app.delete("/api/products/{product_id}")
def delete_product(product_id: str, current_user: Identity = Depends(admin_only), db: Database = Depends(get_db)):
    products.delete_product(db, current_user, product_id)
    return {"success": True, "data": {}}


@app.post("/api/products/{product_id}/reviews", status_code=201)
def add_review(
    product_id: str,
    payload: ReviewInput,
    current_user: Identity = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    return {"success": True, "data": products.add_review(db, current_user, product_id, payload)}


# -----------------------------
# Admin
# -----------------------------

@app.get("/api/admin/products")
def admin_list_products(
    params: Dict[str, Any] = Depends(_catalog_query),
    current_user: Identity = Depends(admin_only),
    db: Database = Depends(get_db),
):
    query = catalog.CatalogQuery(**{**params, "limit": params["limit"] or catalog.ADMIN_LIMIT})
    return {"success": True, **catalog.query_products(db, query)}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
