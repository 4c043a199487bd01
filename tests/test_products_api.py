"""Tests for the catalogue endpoints."""

from conftest import add_to_cart, auth_headers, stock_of
from storefront.models.product import Product


class TestCatalogue:
    def test_list_and_search(self, client, make_product):
        make_product(name="Signature Tee", variants=(("TEE-M", 5),))
        make_product(name="Denim Jacket", price=4500, variants=(("DJ-L", 2),))

        data = client.get("/api/products").json()
        assert data["count"] == 2
        found = client.get("/api/products?q=denim").json()
        assert [p["name"] for p in found["products"]] == ["Denim Jacket"]

    def test_get_product(self, client, tee):
        product = client.get(f"/api/products/{tee.id}").json()["product"]
        assert product["slug"] == "signature-tee"
        assert product["variants"][0]["sku"] == "TEE-M"

    def test_unknown_product(self, client, db):
        assert client.get("/api/products/404").status_code == 404


class TestAdminCatalogue:
    BODY = {
        "name": "Linen Shirt",
        "price": 2800,
        "variants": [
            {"sku": "LS-S", "size": "S", "stock": 4},
            {"sku": "LS-M", "size": "M", "stock": 6},
        ],
    }

    def test_create_product(self, client, admin):
        response = client.post("/api/products", json=self.BODY, headers=auth_headers(admin))
        assert response.status_code == 201
        product = response.json()["product"]
        assert product["slug"] == "linen-shirt"
        assert len(product["variants"]) == 2

    def test_duplicate_sku_rejected(self, client, admin, tee):
        body = {"name": "Other Tee", "price": 900, "variants": [{"sku": "TEE-M", "stock": 1}]}
        response = client.post("/api/products", json=body, headers=auth_headers(admin))
        assert response.status_code == 400

    def test_customer_cannot_create(self, client, customer):
        assert client.post("/api/products", json=self.BODY, headers=auth_headers(customer)).status_code == 403

    def test_set_stock(self, client, admin, tee, db):
        response = client.put(f"/api/products/{tee.id}/variants/TEE-M/stock", json={"stock": 12},
                              headers=auth_headers(admin))
        assert response.status_code == 200
        assert stock_of(db, "TEE-M") == 12

    def test_negative_stock_rejected(self, client, admin, tee):
        response = client.put(f"/api/products/{tee.id}/variants/TEE-M/stock", json={"stock": -1},
                              headers=auth_headers(admin))
        assert response.status_code == 422


class TestProductUpdateAndDelete:
    def test_update_fields_and_reslug(self, client, admin, tee):
        response = client.put(f"/api/products/{tee.id}", json={"name": "Signature Tee V2", "price": 1200},
                              headers=auth_headers(admin))
        assert response.status_code == 200
        product = response.json()["product"]
        assert product["slug"] == "signature-tee-v2"
        assert product["price"] == 1200
        assert product["brand"] == "Kibanda"

    def test_price_change_keeps_cart_snapshot(self, client, admin, customer, tee):
        add_to_cart(client, customer, tee, "TEE-M", 1)
        client.put(f"/api/products/{tee.id}", json={"price": 1500}, headers=auth_headers(admin))
        cart = client.get("/api/cart", headers=auth_headers(customer)).json()["cart"]
        assert cart["items"][0]["price"] == 1000

    def test_update_to_taken_name_rejected(self, client, admin, make_product):
        make_product(name="Denim Jacket", variants=(("DJ-L", 1),))
        tee = make_product(name="Signature Tee", variants=(("TEE-M", 1),))
        response = client.put(f"/api/products/{tee.id}", json={"name": "Denim Jacket"}, headers=auth_headers(admin))
        assert response.status_code == 400

    def test_update_with_unknown_category(self, client, admin, tee):
        response = client.put(f"/api/products/{tee.id}", json={"category_id": 999}, headers=auth_headers(admin))
        assert response.status_code == 400
        assert response.json()["error"] == "Category not found"

    def test_update_unknown_product(self, client, admin):
        assert client.put("/api/products/999", json={"price": 1}, headers=auth_headers(admin)).status_code == 404

    def test_customer_cannot_update_or_delete(self, client, customer, tee):
        assert client.put(f"/api/products/{tee.id}", json={"price": 1},
                          headers=auth_headers(customer)).status_code == 403
        assert client.delete(f"/api/products/{tee.id}", headers=auth_headers(customer)).status_code == 403

    def test_delete_hides_product(self, client, admin, customer, tee, db):
        response = client.delete(f"/api/products/{tee.id}", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["message"] == "Product deleted successfully"

        assert client.get(f"/api/products/{tee.id}").status_code == 404
        assert client.get("/api/products").json()["count"] == 0
        assert add_to_cart(client, customer, tee, "TEE-M", 1).status_code == 404
        # строка остаётся в базе для истории заказов
        db.expire_all()
        assert db.get(Product, tee.id).is_active is False


class TestCategories:
    def _create(self, client, admin, **body):
        return client.post("/api/categories", json=body, headers=auth_headers(admin))

    def test_create_and_list(self, client, admin):
        response = self._create(client, admin, name="Men's Wear", sort_order=2)
        assert response.status_code == 201
        assert response.json()["category"]["slug"] == "men-s-wear"
        self._create(client, admin, name="Accessories", sort_order=1)

        data = client.get("/api/categories").json()
        assert data["count"] == 2
        assert [c["name"] for c in data["categories"]] == ["Accessories", "Men's Wear"]

    def test_duplicate_name_rejected(self, client, admin):
        self._create(client, admin, name="Shoes")
        response = self._create(client, admin, name="Shoes")
        assert response.status_code == 400
        assert response.json()["error"] == "Category already exists"

    def test_unknown_parent_rejected(self, client, admin):
        response = self._create(client, admin, name="Sneakers", parent_id=42)
        assert response.status_code == 400
        assert response.json()["error"] == "Parent category not found"

    def test_subcategories(self, client, admin):
        parent = self._create(client, admin, name="Shoes").json()["category"]
        self._create(client, admin, name="Sneakers", parent_id=parent["id"])
        category = client.get(f"/api/categories/{parent['id']}").json()["category"]
        assert [c["name"] for c in category["subcategories"]] == ["Sneakers"]

    def test_get_by_id_or_slug_with_products(self, client, admin, make_product):
        category = self._create(client, admin, name="Tops").json()["category"]
        tee = make_product(variants=(("TEE-M", 5),))
        client.put(f"/api/products/{tee.id}", json={"category_id": category["id"]}, headers=auth_headers(admin))

        by_id = client.get(f"/api/categories/{category['id']}").json()
        by_slug = client.get("/api/categories/tops").json()
        assert by_id["category"]["name"] == "Tops"
        assert by_slug["category"]["id"] == category["id"]
        assert [p["id"] for p in by_id["products"]] == [tee.id]

        filtered = client.get("/api/products?category=tops").json()
        assert [p["id"] for p in filtered["products"]] == [tee.id]

    def test_unknown_category(self, client, db):
        response = client.get("/api/categories/999")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Category not found"}

    def test_customer_cannot_create(self, client, customer):
        assert self._create(client, customer, name="Hats").status_code == 403

    def test_create_product_in_category(self, client, admin):
        category = self._create(client, admin, name="Outerwear").json()["category"]
        body = {"name": "Rain Jacket", "price": 5200, "category_id": category["id"],
                "variants": [{"sku": "RJ-M", "stock": 3}]}
        product = client.post("/api/products", json=body, headers=auth_headers(admin)).json()["product"]
        assert product["category_id"] == category["id"]

        body = {"name": "Wind Jacket", "price": 5200, "category_id": 999, "variants": []}
        assert client.post("/api/products", json=body, headers=auth_headers(admin)).status_code == 400
