def lines_of(cart):
    return {it["id"]: it["quantity"] for it in cart["items"]}


def fill_cart(client, headers=None):
    client.post("/api/cart/items", json={"item_id": "A", "qty": 2}, headers=headers)
    client.post("/api/cart/items", json={"item_id": "B", "qty": 1}, headers=headers)


def test_checkout_success_and_idempotency(client, checkout_payload):
    fill_cart(client)
    headers = {"Idempotency-Key": "api-idem-1"}
    r = client.post("/api/orders", json=checkout_payload, headers=headers)
    assert r.status_code == 200
    body = r.json()
    assert body["order_number"].startswith("ORD-")
    assert body["status"] == "pending"
    assert body["subtotal"] == 20.8
    assert body["delivery_fee"] == 5.0
    assert body["total"] == 27.05
    assert body["formatted_total"] == "RM 27.05"
    assert [e["status"] for e in body["events"]] == ["pending"]

    # the cart is emptied after a successful checkout
    assert client.get("/api/cart").json()["items"] == []

    # replay with the same key returns the same order
    again = client.post("/api/orders", json=checkout_payload, headers=headers)
    assert again.status_code == 200
    assert again.json()["order_number"] == body["order_number"]


def test_empty_cart_checkout_rejected(client, checkout_payload):
    r = client.post("/api/orders", json=checkout_payload)
    assert r.status_code == 400
    assert "empty" in r.json()["detail"]


def test_declined_payment_keeps_cart(client, checkout_payload):
    fill_cart(client)
    checkout_payload["payment_details"] = {"force_decline": True}
    r = client.post("/api/orders", json=checkout_payload)
    assert r.status_code == 400
    assert "declined" in r.json()["detail"]
    assert len(client.get("/api/cart").json()["items"]) == 2


def test_invalid_email_rejected(client, checkout_payload):
    fill_cart(client)
    checkout_payload["customer_info"]["email"] = "not-an-email"
    assert client.post("/api/orders", json=checkout_payload).status_code == 422


def test_status_updates_and_tracking(client, checkout_payload):
    fill_cart(client)
    number = client.post("/api/orders", json=checkout_payload).json()["order_number"]

    r = client.post(f"/api/orders/{number}/status", json={"status": "delivered"})
    assert r.status_code == 409

    r = client.post(
        f"/api/orders/{number}/status",
        json={"status": "confirmed", "location": "Outlet Bangsar"},
    )
    assert r.status_code == 200
    assert r.json()["status"] == "confirmed"

    tracking = client.get(f"/api/orders/{number}/tracking").json()
    assert [e["status"] for e in tracking["timeline"]] == ["pending", "confirmed"]
    assert tracking["timeline"][-1]["location"] == "Outlet Bangsar"
    assert 0 < tracking["progress"] < 1


def test_double_cancel(client, checkout_payload):
    fill_cart(client)
    number = client.post("/api/orders", json=checkout_payload).json()["order_number"]
    client.post(f"/api/orders/{number}/cancel", json={"reason": "too slow"})
    r = client.post(f"/api/orders/{number}/cancel")
    assert r.status_code == 200
    statuses = [e["status"] for e in r.json()["events"]]
    assert statuses.count("cancelled") == 1
    assert r.json()["status"] == "cancelled"


def test_unknown_order_is_404(client):
    assert client.get("/api/orders/ORD-MISSING").status_code == 404
    assert client.get("/api/orders/ORD-MISSING/tracking").status_code == 404
    assert client.post("/api/orders/ORD-MISSING/cancel").status_code == 404
    r = client.post("/api/orders/ORD-MISSING/status", json={"status": "confirmed"})
    assert r.status_code == 404


def test_history_and_loyalty(client, checkout_payload):
    headers = {"X-User-Id": "u-api"}
    fill_cart(client, headers)
    number = client.post("/api/orders", json=checkout_payload, headers=headers).json()[
        "order_number"
    ]
    for status in ("confirmed", "preparing", "ready", "out_for_delivery", "delivered"):
        r = client.post(f"/api/orders/{number}/status", json={"status": status})
        assert r.status_code == 200

    history = client.get("/api/orders", params={"user_id": "u-api"}).json()
    assert [o["order_number"] for o in history] == [number]

    account = client.get("/api/loyalty/u-api").json()
    assert account["points"] == 20
    assert account["tier"] == "Bronze"


def test_replayed_checkout_keeps_items_added_since(client, checkout_payload):
    fill_cart(client)
    headers = {"Idempotency-Key": "api-idem-replay"}
    first = client.post("/api/orders", json=checkout_payload, headers=headers).json()

    client.post("/api/cart/items", json={"item_id": "CAPPED", "qty": 1})
    again = client.post("/api/orders", json=checkout_payload, headers=headers)
    assert again.json()["order_number"] == first["order_number"]
    assert lines_of(client.get("/api/cart").json()) == {"CAPPED": 1}
