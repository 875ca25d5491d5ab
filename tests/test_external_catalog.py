from __future__ import annotations

import asyncio
from types import SimpleNamespace

import httpx
from fastapi.testclient import TestClient

from app.api.deps import get_cars_context
from app.main import app
from app.services.admin_auth import AdminAuthService
from app.services.external_catalog_service import ExternalCatalogService

CARS = [
    {"id": "t-1", "brand": "Geely", "model": "Monjaro", "year": 2024, "price": 3890000,
     "country": "Китай", "imageUrl": "https://tmcavto.test/1.jpg", "detailUrl": "https://tmcavto.test/cars/1"},
    {"id": 2, "brand": "Toyota", "model": "Harrier", "year": 2023, "price": 4100000, "country": "Япония"},
]


def _service(platform, titles):
    return ExternalCatalogService(platform.client(), lambda title, description="", variant="default": titles.append(title))


def test_import_collects_cars_logs_and_blocked_sources(platform) -> None:
    platform.functions["tmcavto-catalog"] = lambda body: {
        "data": CARS + [{"brand": "без id"}],
        "total": 2,
        "logs": [
            "Импорт из Япония: 1 автомобиль",
            "Ошибка при импорте из Китай: timeout",
            "Сайт блокирует запросы, раздел Корея пропущен",
            "Ошибка при импорте из Китай: повтор",
        ],
    }
    titles = []
    catalog = _service(platform, titles)

    cars = asyncio.run(catalog.import_all())

    assert [car.id for car in cars] == ["t-1", "2"]
    assert cars[0].image_url == "https://tmcavto.test/1.jpg"
    assert catalog.state.blocked_sources == ["china", "korea"]
    assert len(catalog.state.logs) == 4
    assert catalog.state.loading is False
    assert titles == ["Импорт запущен", "Импорт завершен"]
    assert platform.invocations == [("tmcavto-catalog", {"action": "import"})]


def test_import_without_car_list_is_an_error(platform) -> None:
    platform.functions["tmcavto-catalog"] = lambda body: {"logs": ["nothing parsed"]}
    titles = []
    catalog = _service(platform, titles)

    assert asyncio.run(catalog.import_all()) is None
    assert catalog.state.error == "Данные не содержат список автомобилей"
    assert catalog.state.logs == ["nothing parsed"]
    assert titles[-1] == "Ошибка"


def test_blocked_section_is_marked_from_error_message(platform) -> None:
    platform.functions["tmcavto-catalog"] = lambda body: httpx.Response(
        500, json={"error": "Сайт блокирует парсинг (Access Denied)"})
    titles = []
    catalog = _service(platform, titles)

    result = asyncio.run(catalog.fetch_catalog("https://tmcavto.test/catalog/japan"))

    assert result is None
    assert catalog.state.blocked_sources == ["japan"]
    assert "блокирует" in catalog.state.error
    assert titles == ["Доступ заблокирован", "Ошибка"]


def test_fetch_section_replaces_cars(platform) -> None:
    platform.functions["tmcavto-catalog"] = lambda body: {"data": CARS[:1], "logs": []}
    catalog = _service(platform, [])

    cars = asyncio.run(catalog.fetch_catalog("https://tmcavto.test/catalog/china"))

    assert [car.brand for car in cars] == ["Geely"]
    assert catalog.state.blocked_sources == []
    assert platform.invocations == [("tmcavto-catalog", {"url": "https://tmcavto.test/catalog/china"})]


def test_admin_routes_expose_import_state(platform) -> None:
    platform.functions["tmcavto-catalog"] = lambda body: {"data": CARS, "total": 2, "logs": []}
    app.state.admin_auth = AdminAuthService(password="secret", ttl_hours=1)
    app.state.external_catalog = ExternalCatalogService(platform.client())
    app.dependency_overrides[get_cars_context] = lambda: SimpleNamespace(notify=lambda *args, **kwargs: None)
    client = TestClient(app, follow_redirects=False)
    try:
        assert client.post("/admin/external-catalog/import").status_code == 303
        client.post("/admin/login", json={"password": "secret"})

        imported = client.post("/admin/external-catalog/import")
        state = client.get("/admin/external-catalog")
    finally:
        app.dependency_overrides.clear()

    assert imported.status_code == 200
    assert [car["id"] for car in imported.json()] == ["t-1", "2"]
    assert state.json()["cars"][1]["model"] == "Harrier"
    assert state.json()["blockedSources"] == []
