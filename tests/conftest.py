from __future__ import annotations

import asyncio
import json
from pathlib import Path
import sys
from typing import Any, Callable, Dict, List

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.models.local_storage import Base
from app.services.remote_client import RemoteDataClient


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _matches(row: Dict[str, Any], filters: Dict[str, str]) -> bool:
    for column, condition in filters.items():
        op, _, expected = condition.partition(".")
        actual = _as_text(row.get(column))
        if op == "eq" and actual != expected:
            return False
        if op == "neq" and actual == expected:
            return False
    return True


class FakePlatform:
    """In-memory stand-in for the hosted platform: PostgREST tables, storage and functions."""

    RESERVED = {"select", "order", "limit"}

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            "vehicles": [],
            "orders": [],
            "favorites": [],
            "messages": [],
        }
        self.buckets: List[Dict[str, Any]] = []
        self.uploads: Dict[str, bytes] = {}
        self.functions: Dict[str, Callable[[Dict[str, Any]], Any]] = {}
        self.invocations: List[tuple] = []
        self.requests: List[tuple] = []
        self.failures: set = set()
        self.holds: Dict[str, List[asyncio.Event]] = {}
        self.offline = False

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def client(self) -> RemoteDataClient:
        return RemoteDataClient(base_url="http://platform.test", api_key="test-key", transport=self.transport())

    def fail(self, method: str, resource: str):
        self.failures.add((method, resource))

    def count(self, method: str, resource: str) -> int:
        return sum(1 for request in self.requests if request == (method, resource))

    async def handle(self, request: httpx.Request) -> httpx.Response:
        if self.offline:
            raise httpx.ConnectError("network down", request=request)

        path = request.url.path
        params = dict(request.url.params)
        body = json.loads(request.content) if request.content and path.startswith(("/rest", "/functions", "/storage/v1/bucket")) else None

        if path == "/rest/v1/":
            return httpx.Response(200, json={})

        if path.startswith("/rest/v1/"):
            resource = path[len("/rest/v1/"):]
        elif path.startswith("/functions/v1/"):
            resource = path[len("/functions/v1/"):]
        else:
            resource = "storage"
        self.requests.append((request.method, resource))

        if (request.method, resource) in self.failures:
            response = httpx.Response(500, json={"message": f"{resource} is broken"})
        elif path.startswith("/rest/v1/"):
            response = self._table(request.method, resource, params, body)
        elif path.startswith("/functions/v1/"):
            self.invocations.append((resource, body))
            handler = self.functions.get(resource)
            if handler is None:
                response = httpx.Response(404, json={"error": f"function {resource} not found"})
            else:
                result = handler(body)
                response = result if isinstance(result, httpx.Response) else httpx.Response(200, json=result)
        else:
            response = self._storage(request, path, body)

        # the response is computed before waiting, so a held request returns a snapshot
        gates = self.holds.get(resource)
        if gates:
            await gates.pop(0).wait()
        return response

    def _table(self, method: str, table: str, params: Dict[str, str], body: Any) -> httpx.Response:
        rows = self.tables.setdefault(table, [])
        filters = {k: v for k, v in params.items() if k not in self.RESERVED}

        if method == "GET":
            selected = [dict(row) for row in rows if _matches(row, filters)]
            order = params.get("order")
            if order:
                column, _, direction = order.partition(".")
                selected.sort(key=lambda row: str(row.get(column) or ""), reverse=direction == "desc")
            if "limit" in params:
                selected = selected[:int(params["limit"])]
            columns = params.get("select", "*")
            if "vehicles:car_id" in columns:
                for row in selected:
                    vehicle = next((v for v in self.tables["vehicles"] if v["id"] == row.get("car_id")), None)
                    row["vehicles"] = {
                        "id": vehicle["id"], "brand": vehicle.get("brand"),
                        "model": vehicle.get("model"), "image_url": vehicle.get("image_url"),
                    } if vehicle else None
            elif columns != "*":
                wanted = columns.split(",")
                selected = [{k: row.get(k) for k in wanted} for row in selected]
            return httpx.Response(200, json=selected)

        if method == "POST":
            new_rows = body if isinstance(body, list) else [body]
            for row in new_rows:
                if any(existing.get("id") == row.get("id") for existing in rows if row.get("id")):
                    return httpx.Response(409, json={"message": "duplicate key value"})
            for index, row in enumerate(new_rows):
                row = dict(row)
                row.setdefault("id", f"{table}-{len(rows) + index + 1}")
                rows.append(row)
            return httpx.Response(201, json=[dict(row) for row in rows[-len(new_rows):]] if new_rows else [])

        if method == "PATCH":
            updated = []
            for row in rows:
                if _matches(row, filters):
                    row.update(body)
                    updated.append(dict(row))
            return httpx.Response(200, json=updated)

        if method == "DELETE":
            removed = [row for row in rows if _matches(row, filters)]
            self.tables[table] = [row for row in rows if not _matches(row, filters)]
            return httpx.Response(200, json=removed)

        return httpx.Response(405, json={"message": "method not allowed"})

    def _storage(self, request: httpx.Request, path: str, body: Any) -> httpx.Response:
        if path == "/storage/v1/bucket" and request.method == "GET":
            return httpx.Response(200, json=self.buckets)
        if path == "/storage/v1/bucket" and request.method == "POST":
            self.buckets.append(body)
            return httpx.Response(200, json={"name": body["name"]})
        if path.startswith("/storage/v1/bucket/") and request.method == "PUT":
            name = path.rsplit("/", 1)[-1]
            for bucket in self.buckets:
                if bucket.get("name") == name:
                    bucket.update(body)
            return httpx.Response(200, json={"message": "Successfully updated"})
        if path.startswith("/storage/v1/object/") and request.method == "POST":
            key = path[len("/storage/v1/object/"):]
            self.uploads[key] = request.content
            return httpx.Response(200, json={"Key": key})
        return httpx.Response(404, json={"message": "not found"})


def vehicle_row(car_id: str, brand: str = "Toyota", model: str = "Camry", **extra) -> Dict[str, Any]:
    row = {
        "id": car_id,
        "brand": brand,
        "model": model,
        "year": 2023,
        "body_type": "sedan",
        "price": 3_000_000,
        "engine_type": "petrol",
        "engine_fuel_type": "petrol",
        "transmission_type": "automatic",
        "is_new": True,
        "view_count": 0,
    }
    row.update(extra)
    return row


@pytest.fixture()
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture()
def session_factory(tmp_path: Path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'local.sqlite3'}", poolclass=NullPool)

    async def create_tables():
        async with engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)

    asyncio.run(create_tables())
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())
