"""End-to-end tests of the HTTP surface against an in-memory MongoDB."""
from __future__ import annotations

from fastapi.testclient import TestClient


def _product(client: TestClient, slug: str, **fields) -> dict:
    body = {"name": slug.title(), "slug": slug, "price": 10000}
    body.update(fields)
    resp = client.post("/api/admin/products", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestHealth:
    def test_root(self, client):
        assert client.get("/").json() == {"message": "Storefront API running"}

    def test_unconfigured_database_is_a_generic_500(self):
        from main import app

        resp = TestClient(app).get("/api/products")

        assert resp.status_code == 500
        assert resp.json()["message"] == "Internal server error"


class TestAuthFlow:
    def test_register_logs_in(self, client):
        resp = client.post(
            "/api/register",
            json={"username": "meera", "password": "secret123", "email": "meera@example.com"},
        )
        assert resp.status_code == 201
        assert "password" not in resp.json()

        me = client.get("/api/user")
        assert me.status_code == 200
        assert me.json()["username"] == "meera"
        assert me.json()["is_admin"] is False

    def test_bad_login(self, client, make_user):
        make_user("meera")
        resp = client.post("/api/login", json={"username": "meera", "password": "nope-nope"})
        assert resp.status_code == 401

    def test_logout_ends_session(self, app, login):
        user_client = login("meera")
        token = user_client.cookies.get("session_id")
        assert user_client.post("/api/logout").status_code == 204

        replay = TestClient(app).get("/api/user", headers={"Cookie": f"session_id={token}"})
        assert replay.status_code == 401

    def test_malformed_registration_is_400(self, client):
        resp = client.post("/api/register", json={"username": "x", "password": "1", "email": "not-an-email"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid request data"
        assert resp.json()["errors"]


class TestCatalogRoutes:
    def test_filters_via_query_string(self, login):
        admin = login("admin", is_admin=True)
        category = admin.post("/api/admin/categories", json={"name": "Sarees", "slug": "sarees"}).json()
        _product(admin, "p1", price=25000, category_id=category["id"], featured=True, fabric="Pure Silk")
        _product(admin, "p2", price=15000, category_id=category["id"], work_details="Zari")
        _product(admin, "p3", price=5000)

        def slugs(**params):
            resp = admin.get("/api/products", params=params)
            assert resp.status_code == 200
            return [p["slug"] for p in resp.json()]

        assert slugs() == ["p1", "p2", "p3"]
        assert slugs(category="sarees", featured="true") == ["p1"]
        assert slugs(category="sarees", featured="false") == ["p2"]
        assert slugs(minPrice=10000, maxPrice=20000) == ["p2"]
        assert slugs(search="silk") == ["p1"]
        assert slugs(workDetails="Zari") == ["p2"]
        assert slugs(categoryId=category["id"], category="missing") == ["p1", "p2"]
        assert slugs(category="missing") == []

    def test_product_and_category_by_slug(self, login):
        admin = login("admin", is_admin=True)
        admin.post("/api/admin/categories", json={"name": "Sarees", "slug": "sarees"})
        product = _product(admin, "royal-saree")

        assert admin.get("/api/products/royal-saree").json()["id"] == product["id"]
        assert admin.get("/api/products/nope").status_code == 404
        assert admin.get("/api/categories/sarees").json()["name"] == "Sarees"
        assert admin.get("/api/categories/nope").status_code == 404
        assert [c["slug"] for c in admin.get("/api/categories").json()] == ["sarees"]

    def test_admin_routes_require_admin(self, client, login):
        assert client.post("/api/admin/products", json={}).status_code == 401
        assert login("shopper").post("/api/admin/products", json={}).status_code == 403

    def test_invalid_product_body_is_400(self, login):
        admin = login("admin", is_admin=True)
        resp = admin.post("/api/admin/products", json={"name": "X", "slug": "Bad Slug", "price": -5})
        assert resp.status_code == 400

    def test_update_and_delete_product(self, login):
        admin = login("admin", is_admin=True)
        product = _product(admin, "p1")

        resp = admin.put(f"/api/admin/products/{product['id']}", json={"in_stock": False})
        assert resp.status_code == 200
        assert resp.json()["in_stock"] is False

        assert admin.delete(f"/api/admin/products/{product['id']}").status_code == 204
        assert admin.delete(f"/api/admin/products/{product['id']}").status_code == 404
        assert admin.put("/api/admin/products/not-an-id", json={"price": 5}).status_code == 404


class TestCartRoutes:
    def test_cart_requires_session(self, client):
        assert client.get("/api/cart").status_code == 401
        assert client.post("/api/cart", json={"product_id": "x", "quantity": 1}).status_code == 401

    def test_add_merge_and_list(self, login, make_product):
        product = make_product("p1", price=2000)
        shopper = login("shopper")

        first = shopper.post("/api/cart", json={"product_id": str(product["_id"]), "quantity": 2})
        second = shopper.post("/api/cart", json={"product_id": str(product["_id"]), "quantity": 3})

        assert first.status_code == 201
        assert second.json()["id"] == first.json()["id"]
        assert second.json()["quantity"] == 5

        items = shopper.get("/api/cart").json()
        assert len(items) == 1
        assert items[0]["product"]["slug"] == "p1"
        assert shopper.get("/api/cart/summary").json() == {"total_items": 5, "subtotal": 10000}

    def test_add_unknown_or_malformed_product(self, login):
        shopper = login("shopper")
        assert shopper.post("/api/cart", json={"product_id": "65a000000000000000000000"}).status_code == 404
        assert shopper.post("/api/cart", json={"product_id": "nope"}).status_code == 400

    def test_zero_quantity_is_400(self, login, make_product):
        product = make_product("p1")
        shopper = login("shopper")
        resp = shopper.post("/api/cart", json={"product_id": str(product["_id"]), "quantity": 0})
        assert resp.status_code == 400

    def test_update_and_delete_check_ownership(self, login, make_product):
        product = make_product("p1")
        owner, intruder = login("owner"), login("intruder")
        item = owner.post("/api/cart", json={"product_id": str(product["_id"]), "quantity": 1}).json()

        assert intruder.put(f"/api/cart/{item['id']}", json={"quantity": 9}).status_code == 403
        assert intruder.delete(f"/api/cart/{item['id']}").status_code == 403

        resp = owner.put(f"/api/cart/{item['id']}", json={"quantity": 4})
        assert resp.status_code == 200
        assert resp.json()["quantity"] == 4
        assert owner.put(f"/api/cart/{item['id']}", json={"quantity": 0}).status_code == 400

        assert owner.delete(f"/api/cart/{item['id']}").status_code == 204
        assert owner.delete(f"/api/cart/{item['id']}").status_code == 404

    def test_clear(self, login, make_product):
        shopper = login("shopper")
        for slug in ("p1", "p2"):
            product = make_product(slug)
            shopper.post("/api/cart", json={"product_id": str(product["_id"])})

        assert shopper.delete("/api/cart").status_code == 204
        assert shopper.get("/api/cart").json() == []


class TestReviewRoutes:
    def test_submit_list_and_mark_helpful(self, login, make_product):
        product = make_product("p1")
        pid = str(product["_id"])
        shopper = login("shopper")

        resp = shopper.post(f"/api/products/{pid}/reviews", json={"rating": 4, "comment": "Lovely"})
        assert resp.status_code == 200
        review = resp.json()
        again = shopper.post(f"/api/products/{pid}/reviews", json={"rating": 5, "comment": "Even better"}).json()
        assert again["id"] == review["id"]

        listed = shopper.get(f"/api/products/{pid}/reviews").json()
        assert len(listed) == 1
        assert listed[0]["username"] == "shopper"
        assert listed[0]["rating"] == 5

        for expected in (1, 2):
            marked = shopper.post(f"/api/reviews/{review['id']}/helpful")
            assert marked.json()["helpful_count"] == expected

        assert shopper.get(f"/api/products/{pid}/reviews/summary").json() == {"count": 1, "average": "5.0"}

    def test_summary_without_reviews(self, client, make_product):
        product = make_product("p1")
        resp = client.get(f"/api/products/{product['_id']}/reviews/summary")
        assert resp.json() == {"count": 0, "average": "0.0"}

    def test_review_validation_and_auth(self, client, login, make_product):
        pid = str(make_product("p1")["_id"])
        assert client.post(f"/api/products/{pid}/reviews", json={"rating": 5, "comment": "Good"}).status_code == 401

        shopper = login("shopper")
        assert shopper.post(f"/api/products/{pid}/reviews", json={"rating": 6, "comment": "Good"}).status_code == 400
        assert shopper.post(f"/api/products/{pid}/reviews", json={"rating": 5, "comment": "ok"}).status_code == 400
        assert shopper.post(f"/api/products/{pid}/reviews", json={"rating": 5, "comment": "   ab "}).status_code == 400
        assert shopper.post("/api/products/bad/reviews", json={"rating": 5, "comment": "Good"}).status_code == 404
        assert shopper.post("/api/reviews/65a000000000000000000000/helpful").status_code == 404
        assert client.get("/api/products/bad/reviews").status_code == 404


class TestCustomOrderRoutes:
    def test_anonymous_submission_and_admin_workflow(self, client, login):
        resp = client.post(
            "/api/custom-order",
            json={"name": "Meera", "email": "meera@example.com", "requirements": "Blue silk saree", "budget": 20000},
        )
        assert resp.status_code == 201
        request = resp.json()
        assert request["status"] == "new"
        assert request["user_id"] is None

        admin = login("admin", is_admin=True)
        assert [r["id"] for r in admin.get("/api/admin/custom-orders").json()] == [request["id"]]
        assert admin.get(f"/api/admin/custom-orders/{request['id']}").json()["email"] == "meera@example.com"

        url = f"/api/admin/custom-orders/{request['id']}/status"
        assert admin.put(url, json={"status": "in-progress"}).json()["status"] == "in-progress"
        assert admin.put(url, json={"status": "new"}).status_code == 400
        assert admin.put(url, json={"status": "shipped"}).status_code == 400
        assert admin.put(url, json={"status": "completed"}).json()["status"] == "completed"

        missing = "/api/admin/custom-orders/65a000000000000000000000/status"
        assert admin.put(missing, json={"status": "completed"}).status_code == 404

    def test_logged_in_submission_records_user(self, login):
        shopper = login("shopper")
        me = shopper.get("/api/user").json()
        resp = shopper.post(
            "/api/custom-order",
            json={"name": "Meera", "email": "meera@example.com", "requirements": "Lehenga"},
        )
        assert resp.json()["user_id"] == me["id"]

    def test_invalid_submission(self, client):
        resp = client.post(
            "/api/custom-order",
            json={"name": "Meera", "email": "meera@example.com", "requirements": "X", "budget": -1, "phone": "123"},
        )
        assert resp.status_code == 400

    def test_status_update_requires_admin(self, login):
        shopper = login("shopper")
        resp = shopper.put("/api/admin/custom-orders/65a000000000000000000000/status", json={"status": "completed"})
        assert resp.status_code == 403
