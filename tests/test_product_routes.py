import pytest


@pytest.fixture
def catalog(db):
    db.add_product("Laptop", "999.99", "Electronics", "A fast laptop")
    db.add_product("Coffee Mug", "12.00", "Kitchen")
    db.add_product("Headphones", "199.99", "Electronics")
    return db


class TestListProducts:
    def test_empty_store(self, client):
        response = client.get("/api/products?pageNumber=1&pageSize=5&category=Electronics")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["products"] == []
        assert body["data"]["pagination"]["totalCount"] == 0
        assert body["data"]["pagination"]["totalPages"] == 0

    def test_defaults(self, client, catalog):
        response = client.get("/api/products")

        data = response.json()["data"]
        assert [p["name"] for p in data["products"]] == ["Headphones", "Coffee Mug", "Laptop"]
        assert data["pagination"]["currentPage"] == 1
        assert data["pagination"]["pageSize"] == 10
        assert catalog.calls[0] == ("get_products", {
            "p_page_number": 1,
            "p_page_size": 10,
            "p_category": None,
            "p_search_term": None,
        })

    def test_product_shape(self, client, catalog):
        product = client.get("/api/products?category=Kitchen").json()["data"]["products"][0]

        assert product == {
            "id": 2,
            "name": "Coffee Mug",
            "description": None,
            "price": 12.0,
            "category": "Kitchen",
            "createdAt": "2024-01-01T12:02:00.000Z",
            "updatedAt": "2024-01-01T12:02:00.000Z",
        }

    def test_invalid_query(self, client, db):
        response = client.get("/api/products?pageSize=500&sortOrder=sideways")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"] == [
            "Page size must not exceed 100",
            "Sort order must be either asc or desc",
        ]
        assert error["path"] == "/api/products?pageSize=500&sortOrder=sideways"
        assert db.calls == []

    def test_optional_auth_ignores_bad_token(self, client, catalog):
        response = client.get("/api/products", headers={"Authorization": "Bearer nonsense"})

        assert response.status_code == 200


class TestReadRoutes:
    def test_get_product(self, client, catalog):
        response = client.get("/api/products/1")

        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Laptop"
        assert response.json()["data"]["price"] == 999.99

    def test_get_missing_product(self, client):
        response = client.get("/api/products/999")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "PRODUCT_NOT_FOUND"

    def test_get_non_numeric_id(self, client):
        response = client.get("/api/products/abc")

        assert response.status_code == 400
        assert response.json()["error"]["details"] == ["Product ID must be a number"]

    def test_categories(self, client, catalog):
        response = client.get("/api/products/categories")

        assert response.json()["data"] == ["Electronics", "Kitchen"]

    def test_search(self, client, catalog):
        response = client.get("/api/products/search?q=laptop&limit=5")

        body = response.json()
        assert response.status_code == 200
        assert [p["name"] for p in body["data"]] == ["Laptop"]
        assert body["meta"] == {"searchTerm": "laptop", "resultsCount": 1, "limit": 5}

    @pytest.mark.parametrize("url", ["/api/products/search", "/api/products/search?q=%20%20"])
    def test_search_requires_term(self, client, url):
        response = client.get(url)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "SEARCH_TERM_REQUIRED"

    def test_statistics_requires_auth(self, client):
        response = client.get("/api/products/statistics")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_HEADER_MISSING"


class TestCreateProduct:
    def test_requires_auth(self, client, db):
        response = client.post("/api/products", json={"name": "Pen", "price": 1.5, "category": "Office"})

        assert response.status_code == 401
        error = response.json()["error"]
        assert error["code"] == "AUTH_HEADER_MISSING"
        assert error["message"] == "Authorization header missing"
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert db.procedure_calls() == []

    def test_auth_runs_before_validation(self, client):
        response = client.post("/api/products", json={"name": ""})

        assert response.status_code == 401

    def test_creates_product(self, client, db, auth_headers):
        response = client.post(
            "/api/products",
            json={"name": " Pen ", "price": "1.50", "category": "Office", "sku": "ignored"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Product created successfully"
        assert body["data"]["name"] == "Pen"
        assert body["data"]["price"] == 1.5
        assert len(db.products) == 1

    def test_rejects_invalid_body(self, client, db, auth_headers):
        response = client.post(
            "/api/products",
            json={"name": "", "price": -10, "category": "Electronics"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        details = response.json()["error"]["details"]
        assert "Name cannot be empty" in details
        assert "Price must be greater than 0" in details
        assert "create_product" not in db.procedure_calls()

    def test_rejects_non_object_body(self, client, auth_headers):
        response = client.post(
            "/api/products",
            content="not json",
            headers={**auth_headers, "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["details"] == ["Request body must be a JSON object"]


class TestUpdateAndDelete:
    def test_update_price(self, client, catalog, auth_headers):
        before = client.get("/api/products/1").json()["data"]

        response = client.put("/api/products/1", json={"price": 149.99}, headers=auth_headers)

        after = response.json()["data"]
        assert response.status_code == 200
        assert after["price"] == 149.99
        assert after["updatedAt"] != before["updatedAt"]
        assert {k: v for k, v in after.items() if k not in ("price", "updatedAt")} == \
            {k: v for k, v in before.items() if k not in ("price", "updatedAt")}

    def test_update_requires_a_field(self, client, catalog, auth_headers):
        response = client.put("/api/products/1", json={}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["details"] == ["At least one field must be provided for update"]

    def test_update_missing_product(self, client, db, auth_headers):
        response = client.put("/api/products/999", json={"price": 10}, headers=auth_headers)

        assert response.status_code == 404
        assert "update_product" not in db.procedure_calls()

    def test_delete(self, client, catalog, auth_headers):
        response = client.delete("/api/products/2", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["data"]["id"] == 2
        assert response.json()["data"]["deletedAt"].endswith("Z")
        assert 2 not in catalog.products

    def test_delete_missing_product(self, client, db, auth_headers):
        response = client.delete("/api/products/999", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "PRODUCT_NOT_FOUND"
        assert "delete_product" not in db.procedure_calls()

    def test_delete_requires_auth(self, client, catalog):
        response = client.delete("/api/products/1")

        assert response.status_code == 401
        assert 1 in catalog.products
