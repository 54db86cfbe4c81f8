from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pymongo.database import Database
from pymongo.errors import PyMongoError

import database
from auth import SessionStore, UserStore, admin_user, current_user, optional_user, public_user
from cart import CartStore, summarize
from catalog import CatalogStore, ProductFilter
from config import settings
from custom_orders import CustomOrderIntake
from database import ensure_indexes, get_db, parse_object_id, require_object_id, serialize
from exceptions import AuthenticationException, AuthorizationException, NotFoundException, StoreException
from logging_config import logger, setup_logging
from reviews import ReviewLedger, average_rating
from schemas import (
    Cart,
    CartQuantity,
    Categories,
    CategoryUpdate,
    CustomOrders,
    CustomOrderStatusUpdate,
    Products,
    ProductUpdate,
    Reviews,
    Users,
)
from seed import seed_database


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    if database.db is None:
        logger.warning("DATABASE_URL is not set; database endpoints will fail")
    else:
        ensure_indexes(database.db)
        if settings.seed_on_startup:
            seed_database(database.db)
    logger.info("Storefront API starting (%s)", settings.environment)
    yield
    logger.info("Storefront API shutting down")


app = FastAPI(title="Storefront API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logger.info("%s %s -> %s", request.method, request.url.path, response.status_code)
    return response


# -----------------------------
# Error handling
# -----------------------------

def _server_error(exc: Exception) -> JSONResponse:
    content = {"message": "Internal server error"}
    if not settings.is_production:
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


@app.exception_handler(StoreException)
async def store_exception_handler(request: Request, exc: StoreException):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _server_error(exc)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request data", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return _server_error(exc)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _server_error(exc)


# -----------------------------
# Schemas (request bodies)
# -----------------------------

class LoginRequest(BaseModel):
    username: str
    password: str


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )


# -----------------------------
# Health & Test
# -----------------------------

@app.get("/")
def read_root():
    return {"message": "Storefront API running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if settings.database_url else "❌ Not Set",
        "database_name": settings.database_name,
        "collections": [],
    }
    try:
        if database.db is not None:
            response["collections"] = database.db.list_collection_names()
            response["database"] = "✅ Connected"
    except PyMongoError as e:
        response["database"] = f"❌ Error: {str(e)[:80]}"
    return response


# -----------------------------
# Auth
# -----------------------------

@app.post("/api/register", status_code=201)
def register(payload: Users, response: Response, db: Database = Depends(get_db)):
    user = UserStore(db).create(payload)
    _set_session_cookie(response, SessionStore(db).create(user["_id"]))
    return serialize(public_user(user))


@app.post("/api/login")
def login(payload: LoginRequest, response: Response, db: Database = Depends(get_db)):
    user = UserStore(db).authenticate(payload.username, payload.password)
    if user is None:
        raise AuthenticationException("Invalid username or password")
    _set_session_cookie(response, SessionStore(db).create(user["_id"]))
    return serialize(public_user(user))


@app.post("/api/logout", status_code=204)
def logout(request: Request, db: Database = Depends(get_db)):
    SessionStore(db).delete(request.cookies.get(settings.session_cookie_name))
    response = Response(status_code=204)
    response.delete_cookie(settings.session_cookie_name)
    return response


@app.get("/api/user")
def get_user(user: dict = Depends(current_user)):
    return serialize(public_user(user))


# -----------------------------
# Catalog
# -----------------------------

@app.get("/api/products")
def list_products(
    category: Optional[str] = Query(default=None),
    category_id: Optional[str] = Query(default=None, alias="categoryId"),
    featured: Optional[bool] = Query(default=None),
    min_price: Optional[float] = Query(default=None, alias="minPrice"),
    max_price: Optional[float] = Query(default=None, alias="maxPrice"),
    search: Optional[str] = Query(default=None),
    fabric: Optional[str] = Query(default=None),
    work_details: Optional[str] = Query(default=None, alias="workDetails"),
    db: Database = Depends(get_db),
):
    filters = ProductFilter(
        category_id=category_id,
        category_slug=category,
        featured=featured,
        min_price=min_price,
        max_price=max_price,
        search=search,
        fabric=fabric,
        work_details=work_details,
    )
    return [serialize(p) for p in CatalogStore(db).list_products(filters)]


@app.get("/api/products/{slug}")
def get_product(slug: str, db: Database = Depends(get_db)):
    product = CatalogStore(db).get_product_by_slug(slug)
    if product is None:
        raise NotFoundException("Product")
    return serialize(product)


@app.get("/api/categories")
def list_categories(db: Database = Depends(get_db)):
    return [serialize(c) for c in CatalogStore(db).list_categories()]


@app.get("/api/categories/{slug}")
def get_category(slug: str, db: Database = Depends(get_db)):
    category = CatalogStore(db).get_category_by_slug(slug)
    if category is None:
        raise NotFoundException("Category")
    return serialize(category)


# -----------------------------
# Cart
# -----------------------------

def _owned_cart_item(store: CartStore, item_id: str, user: dict) -> dict:
    item = store.get_item(item_id)
    if item is None:
        raise NotFoundException("Cart item")
    if item["user_id"] != user["_id"]:
        raise AuthorizationException("Access denied")
    return item


@app.get("/api/cart")
def get_cart(user: dict = Depends(current_user), db: Database = Depends(get_db)):
    return [serialize(item) for item in CartStore(db).list_items(user["_id"])]


@app.get("/api/cart/summary")
def get_cart_summary(user: dict = Depends(current_user), db: Database = Depends(get_db)):
    return summarize(CartStore(db).list_items(user["_id"]))


@app.post("/api/cart", status_code=201)
def add_to_cart(payload: Cart, user: dict = Depends(current_user), db: Database = Depends(get_db)):
    product_id = require_object_id(payload.product_id, "product_id")
    if CatalogStore(db).get_product(product_id) is None:
        raise NotFoundException("Product")
    item = CartStore(db).add_item(user["_id"], product_id, payload.quantity)
    return serialize(item)


@app.put("/api/cart/{item_id}")
def update_cart_item(
    item_id: str, payload: CartQuantity, user: dict = Depends(current_user), db: Database = Depends(get_db)
):
    store = CartStore(db)
    _owned_cart_item(store, item_id, user)
    updated = store.set_quantity(item_id, payload.quantity)
    if updated is None:
        raise NotFoundException("Cart item")
    return serialize(updated)


@app.delete("/api/cart/{item_id}", status_code=204)
def remove_cart_item(item_id: str, user: dict = Depends(current_user), db: Database = Depends(get_db)):
    store = CartStore(db)
    _owned_cart_item(store, item_id, user)
    store.remove(item_id)
    return Response(status_code=204)


@app.delete("/api/cart", status_code=204)
def clear_cart(user: dict = Depends(current_user), db: Database = Depends(get_db)):
    CartStore(db).clear(user["_id"])
    return Response(status_code=204)


# -----------------------------
# Reviews
# -----------------------------

def _existing_product_id(db: Database, product_id: str):
    oid = parse_object_id(product_id)
    if oid is None or CatalogStore(db).get_product(oid) is None:
        raise NotFoundException("Product")
    return oid


@app.get("/api/products/{product_id}/reviews")
def list_reviews(product_id: str, db: Database = Depends(get_db)):
    oid = _existing_product_id(db, product_id)
    return [serialize(r) for r in ReviewLedger(db).list_for_product(oid)]


@app.get("/api/products/{product_id}/reviews/summary")
def review_summary(product_id: str, db: Database = Depends(get_db)):
    oid = _existing_product_id(db, product_id)
    reviews = ReviewLedger(db).list_for_product(oid)
    return {"count": len(reviews), "average": average_rating(r["rating"] for r in reviews)}


@app.post("/api/products/{product_id}/reviews")
def submit_review(
    product_id: str, payload: Reviews, user: dict = Depends(current_user), db: Database = Depends(get_db)
):
    oid = _existing_product_id(db, product_id)
    review = ReviewLedger(db).submit(user["_id"], oid, payload.rating, payload.comment)
    return serialize(review)


@app.post("/api/reviews/{review_id}/helpful")
def mark_review_helpful(review_id: str, user: dict = Depends(current_user), db: Database = Depends(get_db)):
    review = ReviewLedger(db).mark_helpful(review_id)
    if review is None:
        raise NotFoundException("Review")
    return serialize(review)


# -----------------------------
# Custom orders
# -----------------------------

@app.post("/api/custom-order", status_code=201)
def create_custom_order(
    payload: CustomOrders, user: Optional[dict] = Depends(optional_user), db: Database = Depends(get_db)
):
    user_id = user["_id"] if user else None
    return serialize(CustomOrderIntake(db).submit(user_id, payload))


# -----------------------------
# Admin
# -----------------------------

@app.get("/api/admin/products", dependencies=[Depends(admin_user)])
def admin_list_products(db: Database = Depends(get_db)):
    return [serialize(p) for p in CatalogStore(db).list_products()]


@app.post("/api/admin/products", status_code=201, dependencies=[Depends(admin_user)])
def admin_create_product(payload: Products, db: Database = Depends(get_db)):
    return serialize(CatalogStore(db).create_product(payload))


@app.put("/api/admin/products/{product_id}", dependencies=[Depends(admin_user)])
def admin_update_product(product_id: str, payload: ProductUpdate, db: Database = Depends(get_db)):
    product = CatalogStore(db).update_product(product_id, payload)
    if product is None:
        raise NotFoundException("Product")
    return serialize(product)


@app.delete("/api/admin/products/{product_id}", status_code=204, dependencies=[Depends(admin_user)])
def admin_delete_product(product_id: str, db: Database = Depends(get_db)):
    if not CatalogStore(db).delete_product(product_id):
        raise NotFoundException("Product")
    return Response(status_code=204)


@app.post("/api/admin/categories", status_code=201, dependencies=[Depends(admin_user)])
def admin_create_category(payload: Categories, db: Database = Depends(get_db)):
    return serialize(CatalogStore(db).create_category(payload))


@app.put("/api/admin/categories/{category_id}", dependencies=[Depends(admin_user)])
def admin_update_category(category_id: str, payload: CategoryUpdate, db: Database = Depends(get_db)):
    category = CatalogStore(db).update_category(category_id, payload)
    if category is None:
        raise NotFoundException("Category")
    return serialize(category)


@app.delete("/api/admin/categories/{category_id}", status_code=204, dependencies=[Depends(admin_user)])
def admin_delete_category(category_id: str, db: Database = Depends(get_db)):
    if not CatalogStore(db).delete_category(category_id):
        raise NotFoundException("Category")
    return Response(status_code=204)


@app.get("/api/admin/custom-orders", dependencies=[Depends(admin_user)])
def admin_list_custom_orders(db: Database = Depends(get_db)):
    return [serialize(r) for r in CustomOrderIntake(db).list_requests()]


@app.get("/api/admin/custom-orders/{request_id}", dependencies=[Depends(admin_user)])
def admin_get_custom_order(request_id: str, db: Database = Depends(get_db)):
    order_request = CustomOrderIntake(db).get(request_id)
    if order_request is None:
        raise NotFoundException("Custom order request")
    return serialize(order_request)


@app.put("/api/admin/custom-orders/{request_id}/status", dependencies=[Depends(admin_user)])
def admin_update_custom_order_status(
    request_id: str, payload: CustomOrderStatusUpdate, db: Database = Depends(get_db)
):
    updated = CustomOrderIntake(db).set_status(request_id, payload.status)
    if updated is None:
        raise NotFoundException("Custom order request")
    return serialize(updated)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
