from decimal import Decimal

from fastapi.testclient import TestClient

from .fakes import admin_headers, user_headers

FOLLOWERS = {
    "service": 101, "name": "Instagram Followers", "type": "instagram",
    "rate": "10.00", "min": "100", "max": "5000", "category": "followers",
}


def _register(client: TestClient, email: str = "alice@example.com") -> str:
    response = client.post("/users", json={"email": email, "full_name": "Alice"})
    assert response.status_code == 201
    return response.json()["id"]


def _fund(client: TestClient, user_id: str, amount: str, payment_id: str = "PAY-1") -> None:
    response = client.post(
        "/wallet/deposits",
        json={"amount": amount, "payment_method": "paypal", "payment_id": payment_id},
        headers=user_headers(user_id),
    )
    assert response.status_code == 201


def _sync_catalog(client: TestClient, panels) -> str:
    panels[0].services = [FOLLOWERS]
    response = client.post("/admin/catalog/sync", headers=admin_headers())
    assert response.status_code == 200
    return client.get("/services").json()[0]["id"]


def _balance(client: TestClient, user_id: str) -> Decimal:
    return Decimal(client.get("/users/me", headers=user_headers(user_id)).json()["balance"])


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_register_and_read_current_user(client: TestClient) -> None:
    user_id = _register(client)

    me = client.get("/users/me", headers=user_headers(user_id))

    assert me.status_code == 200
    assert me.json()["email"] == "alice@example.com"
    assert Decimal(me.json()["balance"]) == Decimal("0")
    assert me.json()["is_email_verified"] is False


def test_duplicate_registration_conflicts(client: TestClient) -> None:
    _register(client)

    response = client.post("/users", json={"email": "Alice@Example.com"})

    assert response.status_code == 409


def test_requests_without_identity_are_rejected(client: TestClient) -> None:
    assert client.get("/users/me").status_code == 401
    assert client.get("/orders", headers={"X-User-Id": "6c1b1a8e-8d8c-4b5e-9a7a-3f0f5f0d9e11"}).status_code == 401


def test_order_happy_path(client: TestClient, panels) -> None:
    user_id = _register(client)
    _fund(client, user_id, "50.00")
    service_id = _sync_catalog(client, panels)

    response = client.post(
        "/orders",
        json={"service_id": service_id, "link": "https://instagram.com/alice", "quantity": 1000},
        headers=user_headers(user_id),
    )

    assert response.status_code == 201
    order = response.json()
    assert Decimal(order["charge"]) == Decimal("10.00")
    assert order["remains"] == 1000
    assert order["status"] == "pending"
    assert order["progress"] == 0.0
    assert _balance(client, user_id) == Decimal("40.00")

    listed = client.get("/orders", headers=user_headers(user_id)).json()
    assert [item["id"] for item in listed] == [order["id"]]


def test_order_above_max_quantity_is_rejected(client: TestClient, panels) -> None:
    user_id = _register(client)
    _fund(client, user_id, "50.00")
    service_id = _sync_catalog(client, panels)

    response = client.post(
        "/orders",
        json={"service_id": service_id, "link": "https://instagram.com/alice", "quantity": 6000},
        headers=user_headers(user_id),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Maximum quantity is 5000"
    assert _balance(client, user_id) == Decimal("50.00")
    assert client.get("/orders", headers=user_headers(user_id)).json() == []


def test_order_beyond_balance_never_reaches_provider(client: TestClient, panels) -> None:
    user_id = _register(client)
    _fund(client, user_id, "40.00")
    service_id = _sync_catalog(client, panels)

    response = client.post(
        "/orders",
        json={"service_id": service_id, "link": "https://instagram.com/alice", "quantity": 5000},
        headers=user_headers(user_id),
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "Insufficient balance"
    assert panels[0].calls_for("add") == []
    assert panels[1].calls_for("add") == []


def test_order_fails_over_to_second_provider(client: TestClient, panels) -> None:
    user_id = _register(client)
    _fund(client, user_id, "50.00")
    service_id = _sync_catalog(client, panels)
    panels[0].failure = "http"

    response = client.post(
        "/orders",
        json={"service_id": service_id, "link": "https://instagram.com/alice", "quantity": 1000},
        headers=user_headers(user_id),
    )

    assert response.status_code == 201
    assert response.json()["provider"] == "PanelB"


def test_order_with_every_provider_down_costs_nothing(client: TestClient, panels) -> None:
    user_id = _register(client)
    _fund(client, user_id, "50.00")
    service_id = _sync_catalog(client, panels)
    for panel in panels:
        panel.failure = "timeout"

    response = client.post(
        "/orders",
        json={"service_id": service_id, "link": "https://instagram.com/alice", "quantity": 1000},
        headers=user_headers(user_id),
    )

    assert response.status_code == 502
    assert _balance(client, user_id) == Decimal("50.00")
    assert client.get("/orders", headers=user_headers(user_id)).json() == []


def test_refresh_reconciles_progress(client: TestClient, panels) -> None:
    user_id = _register(client)
    _fund(client, user_id, "50.00")
    service_id = _sync_catalog(client, panels)
    order = client.post(
        "/orders",
        json={"service_id": service_id, "link": "https://instagram.com/alice", "quantity": 1000},
        headers=user_headers(user_id),
    ).json()
    panels[0].orders[order["external_order_id"]] = {"status": "In progress", "remains": "250"}

    refreshed = client.post(f"/orders/{order['id']}/refresh", headers=user_headers(user_id))

    assert refreshed.status_code == 200
    body = refreshed.json()
    assert body["updated"] is True
    assert body["order"]["status"] == "In progress"
    assert body["order"]["remains"] == 250
    assert body["order"]["progress"] == 75.0

    for panel in panels:
        panel.failure = "http"
    unchanged = client.post(f"/orders/{order['id']}/refresh", headers=user_headers(user_id))
    assert unchanged.status_code == 200
    assert unchanged.json()["updated"] is False
    assert unchanged.json()["order"]["remains"] == 250


def test_other_users_orders_are_not_visible(client: TestClient, panels) -> None:
    alice = _register(client)
    bob = _register(client, email="bob@example.com")
    _fund(client, alice, "50.00")
    service_id = _sync_catalog(client, panels)
    order = client.post(
        "/orders",
        json={"service_id": service_id, "link": "https://instagram.com/alice", "quantity": 1000},
        headers=user_headers(alice),
    ).json()

    assert client.get(f"/orders/{order['id']}", headers=user_headers(bob)).status_code == 404
    assert client.post(f"/orders/{order['id']}/refresh", headers=user_headers(bob)).status_code == 404


def test_quote(client: TestClient, panels) -> None:
    service_id = _sync_catalog(client, panels)

    quote = client.get(f"/services/{service_id}/quote", params={"quantity": 1500})

    assert quote.status_code == 200
    assert Decimal(quote.json()["charge"]) == Decimal("15.00")
    assert client.get(f"/services/{service_id}/quote", params={"quantity": 50}).status_code == 400


def test_manual_deposit_requires_admin_approval(client: TestClient) -> None:
    user_id = _register(client)
    pending = client.post(
        "/wallet/deposits",
        json={"amount": "30.00", "payment_method": "manual"},
        headers=user_headers(user_id),
    ).json()
    assert pending["status"] == "pending"
    assert _balance(client, user_id) == Decimal("0")

    approved = client.post(f"/admin/transactions/{pending['id']}/approve", headers=admin_headers())

    assert approved.status_code == 200
    assert approved.json()["status"] == "completed"
    assert _balance(client, user_id) == Decimal("30.00")
    again = client.post(f"/admin/transactions/{pending['id']}/approve", headers=admin_headers())
    assert again.status_code == 409


def test_statement_lists_deposits_and_order_charges(client: TestClient, panels) -> None:
    user_id = _register(client)
    _fund(client, user_id, "50.00")
    service_id = _sync_catalog(client, panels)
    client.post(
        "/orders",
        json={"service_id": service_id, "link": "https://instagram.com/alice", "quantity": 1000},
        headers=user_headers(user_id),
    )

    statement = client.get("/wallet/transactions", headers=user_headers(user_id))

    assert statement.status_code == 200
    items = statement.json()["items"]
    assert [(item["type"], Decimal(item["amount"])) for item in items] == [
        ("order", Decimal("-10.00")),
        ("deposit", Decimal("50.00")),
    ]


def test_admin_routes_require_token(client: TestClient) -> None:
    assert client.post("/admin/catalog/sync").status_code == 403
    assert client.get("/admin/providers", headers={"X-Admin-Token": "nope"}).status_code == 403


def test_admin_provider_views(client: TestClient, panels) -> None:
    panels[1].failure = "garbage"

    providers = client.get("/admin/providers", headers=admin_headers()).json()
    balances = client.get("/admin/providers/balances", headers=admin_headers()).json()

    assert [p["name"] for p in providers] == ["PanelA", "PanelB"]
    assert [(b["provider"], Decimal(b["balance"])) for b in balances] == [
        ("PanelA", Decimal("100.50"))
    ]


def test_admin_sweep_and_deactivate(client: TestClient, panels) -> None:
    user_id = _register(client)
    _fund(client, user_id, "50.00")
    service_id = _sync_catalog(client, panels)
    order = client.post(
        "/orders",
        json={"service_id": service_id, "link": "https://instagram.com/alice", "quantity": 1000},
        headers=user_headers(user_id),
    ).json()
    panels[0].orders[order["external_order_id"]] = {"status": "Completed", "remains": "0"}

    sweep = client.post("/admin/orders/refresh", headers=admin_headers())
    assert sweep.json() == {"checked": 1, "updated": 1}

    stored = client.get(f"/orders/{order['id']}", headers=user_headers(user_id)).json()
    assert stored["progress"] == 100.0

    deactivated = client.post(f"/admin/services/{service_id}/deactivate", headers=admin_headers())
    assert deactivated.json()["is_active"] is False
    assert client.get("/services").json() == []


def test_email_verification_flow(client: TestClient, notifier) -> None:
    user_id = _register(client)

    requested = client.post("/users/me/verification", headers=user_headers(user_id))

    assert requested.status_code == 202
    assert len(notifier.sent) == 1
    sent = notifier.sent[0]
    assert sent["email"] == "alice@example.com"
    assert sent["user_name"] == "Alice"

    confirmed = client.post("/verification/confirm", json={"token": sent["token"]})
    assert confirmed.status_code == 200
    assert confirmed.json()["is_email_verified"] is True

    reused = client.post("/verification/confirm", json={"token": sent["token"]})
    assert reused.status_code == 400
    assert reused.json()["detail"] == "Invalid or expired verification token"
