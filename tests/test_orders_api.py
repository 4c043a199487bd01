"""Tests for order placement, lifecycle and tracking."""

from datetime import datetime

import pytest

from conftest import add_to_cart, auth_headers, place_order, stock_of
from storefront.core.errors import InsufficientStock
from storefront.models.cart import Cart
from storefront.models.coupon import Coupon
from storefront.models.order import Order, OrderStatus
from storefront.services import inventory
from storefront.services import orders as order_service


class TestPlaceOrder:
    def test_worked_example(self, client, customer, tee, db):
        add_to_cart(client, customer, tee, "TEE-M", 2)
        client.post("/api/cart/coupon", json={"coupon_code": "WELCOME10"}, headers=auth_headers(customer))

        response = place_order(client, customer, shipping_method="standard", notes="Leave at the gate")
        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        order = data["order"]
        assert order["subtotal"] == 2000
        assert order["shipping_cost"] == 300
        assert order["tax"] == 320
        assert order["discount"] == 200
        assert order["total"] == 2420
        assert order["status"] == "pending"
        assert order["payment_status"] == "pending"
        assert order["currency"] == "KES"
        assert order["coupon_code"] == "WELCOME10"
        assert order["notes"] == "Leave at the gate"
        assert order["shipping_address"]["city"] == "Nairobi"
        assert order["items"][0] == {
            "id": order["items"][0]["id"],
            "product_id": tee.id,
            "product_name": "Signature Tee",
            "sku": "TEE-M",
            "size": "M",
            "color_name": "Black",
            "color_hex": "#000000",
            "quantity": 2,
            "price": 1000,
            "total": 2000,
        }

    def test_uses_cart_snapshot_price_not_live_price(self, client, customer, tee, db):
        add_to_cart(client, customer, tee, "TEE-M", 2)
        tee.price = 5000
        db.commit()
        order = place_order(client, customer, shipping_method="pickup").json()["order"]
        assert order["subtotal"] == 2000
        assert order["items"][0]["price"] == 1000

    def test_decrements_stock_and_clears_cart(self, client, customer, make_product, db):
        hoodie = make_product(name="Hoodie", price=2500, variants=(("HD-L", 3), ("HD-M", 4)))
        add_to_cart(client, customer, hoodie, "HD-L", 1)
        add_to_cart(client, customer, hoodie, "HD-M", 4)
        client.post("/api/cart/coupon", json={"coupon_code": "SAVE500"}, headers=auth_headers(customer))

        response = place_order(client, customer, shipping_method="express")
        assert response.status_code == 201
        assert stock_of(db, "HD-L") == 2
        # остаток ровно равный запросу уходит в ноль
        assert stock_of(db, "HD-M") == 0

        cart = client.get("/api/cart", headers=auth_headers(customer)).json()["cart"]
        assert cart["items"] == []
        assert cart["coupon"] is None

        db.expire_all()
        assert db.query(Coupon).filter(Coupon.code == "SAVE500").one().times_used == 1

    def test_empty_cart_rejected(self, client, customer):
        response = place_order(client, customer)
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Cart is empty"}

    def test_insufficient_stock_leaves_everything_unchanged(self, client, customer, make_product, db):
        tee = make_product(variants=(("TEE-M", 5),))
        jeans = make_product(name="Jeans", price=3200, variants=(("JN-32", 2),))
        add_to_cart(client, customer, tee, "TEE-M", 2)
        add_to_cart(client, customer, jeans, "JN-32", 2)
        jeans.variants[0].stock = 1
        db.commit()

        response = place_order(client, customer)
        assert response.status_code == 400
        assert response.json()["error"] == "Insufficient stock for Jeans"

        assert stock_of(db, "TEE-M") == 5
        assert stock_of(db, "JN-32") == 1
        assert db.query(Order).count() == 0
        cart = client.get("/api/cart", headers=auth_headers(customer)).json()["cart"]
        assert len(cart["items"]) == 2

    def test_missing_address_fields(self, client, customer, tee):
        add_to_cart(client, customer, tee, "TEE-M", 1)
        response = client.post(
            "/api/orders",
            json={"shipping_address": {"name": "Jane"}, "payment_method": "mpesa"},
            headers=auth_headers(customer),
        )
        assert response.status_code == 422
        assert response.json()["success"] is False

    def test_unsupported_payment_method(self, client, customer, tee):
        add_to_cart(client, customer, tee, "TEE-M", 1)
        response = place_order(client, customer, payment_method="bitcoin")
        assert response.status_code == 422

    def test_confirmation_email_failure_does_not_fail_placement(self, client, customer, tee, monkeypatch):
        from storefront.core.config import settings
        from storefront.services import notifications

        def broken_smtp(*args, **kwargs):
            raise OSError("smtp down")

        monkeypatch.setattr(settings, "EMAIL_HOST", "smtp.example.com")
        monkeypatch.setattr(notifications.smtplib, "SMTP", broken_smtp)
        add_to_cart(client, customer, tee, "TEE-M", 1)
        assert place_order(client, customer).status_code == 201


class TestLastUnitContention:
    def test_only_one_buyer_gets_the_last_unit(self, client, make_user, make_product, db, monkeypatch):
        product = make_product(variants=(("LAST-1", 1),))
        first, second = make_user(), make_user()
        add_to_cart(client, first, product, "LAST-1", 1)
        add_to_cart(client, second, product, "LAST-1", 1)

        # оба запроса прошли проверку остатков до списания
        monkeypatch.setattr(inventory, "check_available", lambda *args, **kwargs: None)

        assert place_order(client, first).status_code == 201
        response = place_order(client, second)
        assert response.status_code == 400
        assert "Insufficient stock" in response.json()["error"]

        assert stock_of(db, "LAST-1") == 0
        assert db.query(Order).count() == 1
        db.expire_all()
        second_cart = db.query(Cart).filter(Cart.user_id == second.id).one()
        assert len(second_cart.items) == 1

    def test_decrement_refuses_to_go_negative(self, db, make_product):
        product = make_product(variants=(("ONE", 1),))
        inventory.decrement(db, product.id, "ONE", 1)
        with pytest.raises(InsufficientStock):
            inventory.decrement(db, product.id, "ONE", 1)
        db.rollback()


class TestOrderNumbers:
    def test_format_and_daily_sequence(self, db):
        now = datetime(2026, 3, 7, 12, 0)
        assert order_service.next_order_number(db, now) == "KF2603070001"
        assert order_service.next_order_number(db, now) == "KF2603070002"
        # новый день: новая последовательность
        assert order_service.next_order_number(db, datetime(2026, 3, 8)) == "KF2603080001"
        db.rollback()

    def test_serial_placements_strictly_increase(self, client, customer, make_product):
        product = make_product(variants=(("SEQ", 10),))
        numbers = []
        for _ in range(3):
            add_to_cart(client, customer, product, "SEQ", 1)
            numbers.append(place_order(client, customer).json()["order"]["order_number"])
        sequences = [int(n[-4:]) for n in numbers]
        assert sequences == sorted(sequences)
        assert len(set(sequences)) == 3
        assert all(n.startswith("KF") and len(n) == 12 for n in numbers)


@pytest.fixture
def placed_order(client, customer, make_product):
    product = make_product(name="Hoodie", price=2500, variants=(("HD-L", 5),))
    add_to_cart(client, customer, product, "HD-L", 2)
    return place_order(client, customer).json()["order"]


class TestCancel:
    def test_cancel_pending_restores_stock(self, client, customer, placed_order, db):
        assert stock_of(db, "HD-L") == 3
        response = client.put(
            f"/api/orders/{placed_order['id']}/cancel",
            json={"reason": "Changed my mind"},
            headers=auth_headers(customer),
        )
        assert response.status_code == 200
        order = response.json()["order"]
        assert order["status"] == "cancelled"
        assert order["cancelled_at"] is not None
        assert order["cancellation_reason"] == "Changed my mind"
        assert stock_of(db, "HD-L") == 5

    def test_cancel_shipped_fails_and_keeps_stock(self, client, customer, admin, placed_order, db):
        for status in ("confirmed", "shipped"):
            client.put(f"/api/orders/{placed_order['id']}/status", json={"status": status},
                       headers=auth_headers(admin))
        response = client.put(f"/api/orders/{placed_order['id']}/cancel", headers=auth_headers(customer))
        assert response.status_code == 400
        assert response.json()["error"] == "Cannot cancel order in shipped status"
        assert stock_of(db, "HD-L") == 3

    def test_cancel_twice_fails(self, client, customer, placed_order, db):
        client.put(f"/api/orders/{placed_order['id']}/cancel", headers=auth_headers(customer))
        response = client.put(f"/api/orders/{placed_order['id']}/cancel", headers=auth_headers(customer))
        assert response.status_code == 400
        assert stock_of(db, "HD-L") == 5

    def test_cannot_cancel_someone_elses_order(self, client, make_user, placed_order):
        stranger = make_user()
        response = client.put(f"/api/orders/{placed_order['id']}/cancel", headers=auth_headers(stranger))
        assert response.status_code == 403

    def test_cancel_unknown_order(self, client, customer):
        assert client.put("/api/orders/999/cancel", headers=auth_headers(customer)).status_code == 404


class TestAdminStatus:
    def _set(self, client, admin, order_id, **body):
        return client.put(f"/api/orders/{order_id}/status", json=body, headers=auth_headers(admin))

    def test_follows_lifecycle(self, client, admin, placed_order):
        order_id = placed_order["id"]
        assert self._set(client, admin, order_id, status="confirmed").status_code == 200
        assert self._set(client, admin, order_id, status="processing").status_code == 200
        shipped = self._set(client, admin, order_id, status="shipped", tracking_number="TRK123",
                            tracking_url="https://track.example.com/TRK123").json()["order"]
        assert shipped["tracking_number"] == "TRK123"
        assert shipped["tracking_url"] == "https://track.example.com/TRK123"
        delivered = self._set(client, admin, order_id, status="delivered").json()["order"]
        assert delivered["status"] == "delivered"
        assert delivered["delivered_at"] is not None
        # доставка не подтверждает оплату автоматически
        assert delivered["payment_status"] == "pending"

    def test_illegal_jump_rejected(self, client, admin, placed_order):
        response = self._set(client, admin, placed_order["id"], status="delivered")
        assert response.status_code == 400
        assert response.json()["error"] == "Cannot change order status from pending to delivered"

    def test_admin_cancel_restores_stock(self, client, admin, placed_order, db):
        assert self._set(client, admin, placed_order["id"], status="cancelled").status_code == 200
        assert stock_of(db, "HD-L") == 5

    def test_refund_after_delivery(self, client, admin, placed_order):
        for status in ("confirmed", "shipped", "delivered", "refunded"):
            assert self._set(client, admin, placed_order["id"], status=status).status_code == 200

    def test_customer_cannot_update_status(self, client, customer, placed_order):
        response = self._set(client, customer, placed_order["id"], status="confirmed")
        assert response.status_code == 403

    def test_payment_status_is_a_separate_action(self, client, admin, placed_order):
        response = client.put(
            f"/api/orders/{placed_order['id']}/payment-status",
            json={"payment_status": "completed"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        order = response.json()["order"]
        assert order["payment_status"] == "completed"
        assert order["status"] == "pending"

    def test_transition_table(self):
        assert order_service.can_transition(OrderStatus.pending, OrderStatus.confirmed)
        assert not order_service.can_transition(OrderStatus.pending, OrderStatus.delivered)
        assert not order_service.can_transition(OrderStatus.cancelled, OrderStatus.pending)
        assert not order_service.can_transition(OrderStatus.refunded, OrderStatus.cancelled)


class TestReadOrders:
    def test_owner_and_admin_can_read(self, client, customer, admin, make_user, placed_order):
        url = f"/api/orders/{placed_order['id']}"
        assert client.get(url, headers=auth_headers(customer)).status_code == 200
        assert client.get(url, headers=auth_headers(admin)).status_code == 200
        response = client.get(url, headers=auth_headers(make_user()))
        assert response.status_code == 403
        assert response.json() == {"success": False, "error": "Not authorized"}

    def test_unknown_order(self, client, customer):
        assert client.get("/api/orders/12345", headers=auth_headers(customer)).status_code == 404

    def test_list_own_orders_paginated(self, client, customer, make_user, make_product):
        product = make_product(variants=(("PG", 10),))
        for _ in range(3):
            add_to_cart(client, customer, product, "PG", 1)
            place_order(client, customer)
        other = make_user()
        add_to_cart(client, other, product, "PG", 1)
        place_order(client, other)

        data = client.get("/api/orders?page=1&limit=2", headers=auth_headers(customer)).json()
        assert data["total"] == 3
        assert data["count"] == 2
        assert data["totalPages"] == 2
        assert data["currentPage"] == 1
        page2 = client.get("/api/orders?page=2&limit=2", headers=auth_headers(customer)).json()
        assert page2["count"] == 1
        numbers = [o["order_number"] for o in data["orders"] + page2["orders"]]
        assert numbers == sorted(numbers, reverse=True)

    def test_status_filter(self, client, customer, placed_order):
        client.put(f"/api/orders/{placed_order['id']}/cancel", headers=auth_headers(customer))
        assert client.get("/api/orders?status=cancelled", headers=auth_headers(customer)).json()["total"] == 1
        assert client.get("/api/orders?status=pending", headers=auth_headers(customer)).json()["total"] == 0

    def test_admin_lists_all(self, client, admin, customer, placed_order):
        data = client.get("/api/orders/admin/all", headers=auth_headers(admin)).json()
        assert data["total"] == 1
        assert client.get("/api/orders/admin/all", headers=auth_headers(customer)).status_code == 403


class TestTrack:
    def test_public_track_hides_payment_details(self, client, placed_order):
        response = client.get(f"/api/orders/track/{placed_order['order_number']}")
        assert response.status_code == 200
        order = response.json()["order"]
        assert order["order_number"] == placed_order["order_number"]
        assert order["status"] == "pending"
        for field in ("payment_method", "payment_status", "transaction_id", "payment_intent_id",
                      "mpesa_request_id", "mpesa_code", "receipt_url"):
            assert field not in order

    def test_public_track_hides_buyer_contact(self, client, customer, placed_order):
        order = client.get(f"/api/orders/track/{placed_order['order_number']}").json()["order"]
        assert order["shipping_address"] == {"city": "Nairobi", "country": "Kenya"}
        assert "user_id" not in order

        # владелец по-прежнему видит полный адрес
        own = client.get(f"/api/orders/{placed_order['id']}", headers=auth_headers(customer)).json()["order"]
        assert own["shipping_address"]["phone"] == "0712345678"
        assert own["shipping_address"]["street"] == "Moi Avenue 12"

    def test_unknown_order_number(self, client):
        assert client.get("/api/orders/track/KF0000000000").status_code == 404
