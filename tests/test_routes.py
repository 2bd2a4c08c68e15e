import json

from fastapi.testclient import TestClient

from app.core.config import settings
from app.core.security import create_access_token
from app.models.cart_item import CartItem
from app.models.order import Order
from app.routes import orders as orders_routes
from app.services import notification_service, payment_service
from app.services.payment_service import compute_signature
from conftest import add_to_cart, make_address, make_product, make_promo


def _cod_single(address, product, quantity=1, **extra):
    body = {
        "checkoutMode": "single",
        "addressId": address.id,
        "productId": product.id,
        "quantity": quantity,
        "payment": {"method": "cod", "status": "pending", "paymentId": None},
    }
    body.update(extra)
    return body


def _verify_body(address, product, payment_id="pay_R1", order_id="order_R1", signature=None):
    return {
        "razorpay_order_id": order_id,
        "razorpay_payment_id": payment_id,
        "razorpay_signature": signature
        or compute_signature(order_id, payment_id, settings.RAZORPAY_KEY_SECRET),
        "addressId": address.id,
        "checkoutMode": "single",
        "productId": product.id,
        "quantity": 1,
    }


# ---------- CORS / auth ----------

def test_preflight_returns_204_with_cors_headers(client):
    res = client.options("/place-order")
    assert res.status_code == 204
    assert res.headers["access-control-allow-origin"] == "*"
    assert "authorization" in res.headers["access-control-allow-headers"]


def test_missing_token_is_unauthorized(client, db, user):
    address = make_address(db, user)
    product = make_product(db)

    res = client.post("/place-order", json=_cod_single(address, product))

    assert res.status_code == 401
    assert res.json() == {"error": "Unauthorized"}
    assert res.headers["access-control-allow-origin"] == "*"
    assert db.query(Order).count() == 0


def test_garbage_token_is_unauthorized(client):
    res = client.post(
        "/verify-payment",
        json={"checkoutMode": "cart"},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert res.status_code == 401
    assert res.json() == {"error": "Unauthorized"}


def test_token_for_unknown_user_is_unauthorized(client):
    token = create_access_token({"sub": "no-such-user"})
    res = client.post("/place-order", json={}, headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


# ---------- /place-order ----------

def test_place_order_returns_order_id_and_number(client, db, user, auth_headers):
    address = make_address(db, user)
    product = make_product(db, stock=12)

    res = client.post("/place-order", json=_cod_single(address, product, quantity=3), headers=auth_headers)

    assert res.status_code == 200
    body = res.json()
    assert set(body) == {"orderId", "orderNumber"}
    assert body["orderNumber"].startswith("ORD-")
    assert res.headers["access-control-allow-origin"] == "*"

    order = db.query(Order).filter(Order.id == body["orderId"]).one()
    assert order.payment_id.startswith("COD")
    assert order.payment_status == "pending"


def test_other_methods_are_treated_as_post(client, db, user, auth_headers):
    address = make_address(db, user)
    product = make_product(db)

    res = client.put("/place-order", json=_cod_single(address, product), headers=auth_headers)

    assert res.status_code == 200
    assert "orderNumber" in res.json()


def test_cart_checkout_over_http_clears_cart(client, db, user, auth_headers):
    address = make_address(db, user)
    product = make_product(db, stock=5)
    add_to_cart(db, user, product, 2)

    res = client.post(
        "/place-order",
        json={"checkoutMode": "cart", "addressId": address.id},
        headers=auth_headers,
    )

    assert res.status_code == 200
    assert db.query(CartItem).filter(CartItem.user_id == user.id).count() == 0


def test_out_of_stock_is_a_400_with_message(client, db, user, auth_headers):
    address = make_address(db, user)
    product = make_product(db, name="Carbon Frame", stock=0)

    res = client.post("/place-order", json=_cod_single(address, product), headers=auth_headers)

    assert res.status_code == 400
    assert res.json() == {"error": "Carbon Frame is out of stock"}


def test_missing_address_is_a_400(client, db, user, auth_headers):
    product = make_product(db)
    body = {"checkoutMode": "single", "productId": product.id, "quantity": 1}

    res = client.post("/place-order", json=body, headers=auth_headers)

    assert res.status_code == 400
    assert res.json() == {"error": "Address ID is required"}


def test_zero_quantity_is_a_400(client, db, user, auth_headers):
    address = make_address(db, user)
    product = make_product(db)

    res = client.post("/place-order", json=_cod_single(address, product, quantity=0), headers=auth_headers)

    assert res.status_code == 400
    assert res.json() == {"error": "Quantity must be at least 1"}


def test_unknown_checkout_mode_is_a_400(client, db, user, auth_headers):
    address = make_address(db, user)

    res = client.post(
        "/place-order",
        json={"checkoutMode": "wishlist", "addressId": address.id},
        headers=auth_headers,
    )

    assert res.status_code == 400
    assert res.json() == {"error": "Invalid checkout mode"}


def test_malformed_json_is_a_400(client, auth_headers):
    res = client.post(
        "/place-order",
        content=b"{not json",
        headers={**auth_headers, "Content-Type": "application/json"},
    )
    assert res.status_code == 400
    assert res.json() == {"error": "Invalid request body"}


def test_malformed_json_without_token_is_unauthorized(client):
    res = client.post(
        "/place-order",
        content=b"{bad",
        headers={"Content-Type": "application/json"},
    )
    assert res.status_code == 401
    assert res.json() == {"error": "Unauthorized"}


def test_nan_discount_is_rejected_cleanly(client, db, user, auth_headers):
    address = make_address(db, user)
    product = make_product(db)
    promo = make_promo(db)
    body = _cod_single(address, product, promoCodeId=promo.id, discountAmount=float("nan"))

    res = client.post(
        "/place-order",
        content=json.dumps(body),  # serialises the float as a bare NaN token
        headers={**auth_headers, "Content-Type": "application/json"},
    )

    assert res.status_code == 400
    assert res.json() == {"error": "Invalid discount amount"}
    assert db.query(Order).count() == 0


def test_unexpected_error_is_rendered_as_error_json(client, db, user, auth_headers, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(orders_routes, "place_order", broken)
    address = make_address(db, user)
    product = make_product(db)
    lenient = TestClient(client.app, raise_server_exceptions=False)

    res = lenient.post("/place-order", json=_cod_single(address, product), headers=auth_headers)

    assert res.status_code == 400
    assert res.json() == {"error": "Something went wrong; please try again"}
    assert res.headers["access-control-allow-origin"] == "*"


def test_notification_failure_does_not_fail_checkout(client, db, user, auth_headers, monkeypatch):
    def boom(*args, **kwargs):
        raise notification_service.requests.ConnectionError("functions down")

    monkeypatch.setattr(settings, "FUNCTIONS_BASE_URL", "https://functions.internal")
    monkeypatch.setattr(notification_service.requests, "post", boom)
    address = make_address(db, user)
    product = make_product(db)

    res = client.post("/place-order", json=_cod_single(address, product), headers=auth_headers)

    assert res.status_code == 200
    assert db.query(Order).count() == 1


# ---------- /verify-payment ----------

def test_verify_payment_twice_returns_same_order(client, db, user, auth_headers):
    address = make_address(db, user)
    product = make_product(db, stock=10)
    body = _verify_body(address, product)

    first = client.post("/verify-payment", json=body, headers=auth_headers)
    second = client.post("/verify-payment", json=body, headers=auth_headers)

    assert first.status_code == 200
    assert "message" not in first.json()
    assert second.status_code == 200
    assert second.json()["message"] == "Order already processed"
    assert second.json()["orderNumber"] == first.json()["orderNumber"]
    assert db.query(Order).count() == 1


def test_verify_payment_rejects_tampered_signature(client, db, user, auth_headers):
    address = make_address(db, user)
    product = make_product(db, stock=10)
    good = compute_signature("order_R1", "pay_R1", settings.RAZORPAY_KEY_SECRET)
    tampered = good[:-1] + ("a" if good[-1] != "a" else "b")

    res = client.post(
        "/verify-payment",
        json=_verify_body(address, product, signature=tampered),
        headers=auth_headers,
    )

    assert res.status_code == 400
    assert res.json() == {"error": "Payment verification failed - invalid signature"}
    assert db.query(Order).count() == 0


def test_verify_payment_requires_the_triple(client, db, user, auth_headers):
    address = make_address(db, user)
    product = make_product(db)
    body = _verify_body(address, product)
    del body["razorpay_signature"]

    res = client.post("/verify-payment", json=body, headers=auth_headers)

    assert res.status_code == 400
    assert res.json() == {"error": "Missing payment verification details"}


# ---------- /create-razorpay-order ----------

def test_create_razorpay_order_route(client, auth_headers, monkeypatch):
    class Ok:
        ok = True
        status_code = 200
        text = ""

        def json(self):
            return {"id": "order_GW1", "amount": 50000, "currency": "INR"}

    monkeypatch.setattr(payment_service.requests, "post", lambda *a, **kw: Ok())

    res = client.post(
        "/create-razorpay-order",
        json={"amount": 50000, "currency": "INR", "productId": "p1", "quantity": 1},
        headers=auth_headers,
    )

    assert res.status_code == 200
    assert res.json() == {
        "orderId": "order_GW1",
        "amount": 50000,
        "currency": "INR",
        "keyId": settings.RAZORPAY_KEY_ID,
    }


def test_create_razorpay_order_requires_amount(client, auth_headers):
    res = client.post("/create-razorpay-order", json={"currency": "INR"}, headers=auth_headers)
    assert res.status_code == 400
    assert "error" in res.json()


# ---------- auth + system ----------

def test_register_login_and_use_token(client, db):
    res = client.post("/auth/register", json={"email": "newbuyer@gmail.com", "password": "correct-horse"})
    assert res.status_code == 200
    user_id = res.json()["id"]

    res = client.post("/auth/login", data={"username": "newbuyer@gmail.com", "password": "correct-horse"})
    assert res.status_code == 200
    token = res.json()["access_token"]

    res = client.post(
        "/place-order",
        json={"checkoutMode": "cart", "addressId": "missing"},
        headers={"Authorization": f"Bearer {token}"},
    )
    # authenticated, so the failure is about the address, not the token
    assert res.status_code == 400
    assert res.json() == {"error": "Address not found"}
    assert user_id


def test_login_with_wrong_password(client, user):
    res = client.post("/auth/login", data={"username": user.email, "password": "nope"})
    assert res.status_code == 401
    assert res.json() == {"error": "Invalid credentials"}


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["db_ok"] is True


def test_metrics_count_orders(client, db, user, auth_headers):
    address = make_address(db, user)
    product = make_product(db)
    client.post("/place-order", json=_cod_single(address, product), headers=auth_headers)

    res = client.get("/metrics", headers=auth_headers)

    assert res.status_code == 200
    assert res.json()["total_orders"] == 1
    assert res.json()["orders_placed"] >= 1
