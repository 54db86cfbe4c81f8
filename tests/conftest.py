"""Shared pytest fixtures: an in-memory MongoDB and an API client bound to it."""
from __future__ import annotations

import os

os.environ.pop("DATABASE_URL", None)
os.environ.setdefault("ENVIRONMENT", "test")

import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import UserStore
from catalog import CatalogStore
from database import ensure_indexes, get_db
from schemas import Categories, Products, Users


@pytest.fixture()
def db():
    """Function-scoped database with the production indexes."""
    client = mongomock.MongoClient()
    database = client["storefront_test"]
    ensure_indexes(database)
    yield database
    client.close()


@pytest.fixture()
def app(db):
    from main import app as fastapi_app

    fastapi_app.dependency_overrides[get_db] = lambda: db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def catalog(db) -> CatalogStore:
    return CatalogStore(db)


@pytest.fixture()
def sarees(catalog) -> dict:
    return catalog.create_category(Categories(name="Sarees", slug="sarees"))


@pytest.fixture()
def make_product(catalog):
    def _make(slug: str, price: int = 10000, **fields) -> dict:
        return catalog.create_product(Products(name=fields.pop("name", slug.title()), slug=slug, price=price, **fields))

    return _make


@pytest.fixture()
def make_user(db):
    def _make(username: str, password: str = "secret123", is_admin: bool = False) -> dict:
        payload = Users(username=username, password=password, email=f"{username}@example.com")
        return UserStore(db).create(payload, is_admin=is_admin)

    return _make


@pytest.fixture()
def login(app, make_user):
    """Create a user and return a TestClient holding their session cookie."""

    def _login(username: str, is_admin: bool = False) -> TestClient:
        make_user(username, is_admin=is_admin)
        user_client = TestClient(app)
        resp = user_client.post("/api/login", json={"username": username, "password": "secret123"})
        assert resp.status_code == 200, resp.text
        return user_client

    return _login
