from __future__ import annotations

from typing import List

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_cars_context
from app.main import app
from app.services.admin_auth import AdminAuthService, SESSION_COOKIE_NAME, admin_menu


class StubContext:
    """Just enough of CarsContext for the admin routes exercised here."""

    def __init__(self) -> None:
        self.orders: List = []
        self.new_orders_count = 2
        self.titles: List[str] = []

    def notify(self, title: str, description: str = "", variant: str = "default") -> None:
        self.titles.append(title)


@pytest.fixture()
def client():
    context = StubContext()
    app.state.admin_auth = AdminAuthService(password="secret", ttl_hours=1)
    app.dependency_overrides[get_cars_context] = lambda: context
    # lifespan is not entered: no platform, no scheduler
    test_client = TestClient(app, follow_redirects=False)
    test_client.stub_context = context
    yield test_client
    app.dependency_overrides.clear()


def test_unauthenticated_admin_orders_redirects_to_login(client) -> None:
    response = client.get("/admin/orders")

    assert response.status_code == 303
    assert response.headers["location"] == "/admin/login"
    assert "customer" not in response.text


@pytest.mark.parametrize("path", ["/admin/", "/admin/navigation", "/admin/export", "/admin/settings"])
def test_every_admin_page_is_gated(client, path: str) -> None:
    response = client.get(path)

    assert response.status_code == 303
    assert response.headers["location"] == "/admin/login"


def test_login_page_is_reachable_without_session(client) -> None:
    response = client.get("/admin/login")

    assert response.status_code == 200


def test_wrong_password_is_rejected(client) -> None:
    response = client.post("/admin/login", json={"password": "guess"})

    assert response.status_code == 401
    assert SESSION_COOKIE_NAME not in response.cookies
    assert client.stub_context.titles == ["Ошибка входа"]


def test_login_grants_access_until_logout(client) -> None:
    login = client.post("/admin/login", json={"password": "secret"})
    assert login.status_code == 200
    assert SESSION_COOKIE_NAME in login.cookies

    orders = client.get("/admin/orders")
    assert orders.status_code == 200
    assert orders.json() == []

    navigation = client.get("/admin/navigation")
    badge = next(item for item in navigation.json()["items"] if item["path"] == "/admin/orders")
    assert badge["badge"] == 2

    client.post("/admin/logout")
    assert client.get("/admin/orders").status_code == 303


def test_expired_session_is_invalid() -> None:
    auth = AdminAuthService(password="secret", ttl_hours=1)
    token = auth.login("secret")
    auth._sessions[token] = auth._sessions[token] - auth.ttl * 2

    assert auth.is_valid(token) is False
    assert auth.is_valid(None) is False


def test_abandoned_sessions_are_dropped_on_next_login() -> None:
    auth = AdminAuthService(password="secret", ttl_hours=1)
    abandoned = auth.login("secret")
    auth._sessions[abandoned] = auth._sessions[abandoned] - auth.ttl * 2

    fresh = auth.login("secret")

    assert abandoned not in auth._sessions
    assert list(auth._sessions) == [fresh]
    assert auth._sessions[fresh].tzinfo is not None


def test_admin_menu_marks_orders_with_badge() -> None:
    items = admin_menu(5)

    assert [item.get("badge") for item in items if "badge" in item] == [5]
