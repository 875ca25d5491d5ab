# app/services/remote_client.py - клиент хостинг-платформы (PostgREST таблицы, storage, функции)
import httpx
from typing import Any, Dict, List, Optional
from app.config import settings
import logging

logger = logging.getLogger(__name__)


class RemoteError(Exception):
    """Платформа ответила ошибкой (валидация, доступ, конфликт)"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RemoteUnavailableError(RemoteError):
    """Платформа недоступна: сеть, DNS, таймаут"""


def eq(value: Any) -> str:
    return f"eq.{value}"


def neq(value: Any) -> str:
    return f"neq.{value}"


class RemoteDataClient:
    def __init__(
            self,
            base_url: str = None,
            api_key: str = None,
            timeout: float = None,
            transport: httpx.AsyncBaseTransport = None
    ):
        self.base_url = (base_url or settings.remote_url).rstrip("/")
        api_key = settings.remote_api_key if api_key is None else api_key
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
            },
            timeout=timeout or settings.remote_timeout,
            transport=transport
        )

    async def close(self):
        await self.client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            logger.warning(f"📡 Remote unreachable: {method} {url}: {e}")
            raise RemoteUnavailableError(f"Платформа недоступна: {e}") from e

        if response.status_code >= 400:
            raise RemoteError(self._error_message(response), status_code=response.status_code)
        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return f"HTTP {response.status_code}: {response.text[:200]}"
        if isinstance(body, dict):
            return str(body.get("message") or body.get("error") or body)
        return str(body)

    # Таблицы

    async def select(
            self,
            table: str,
            columns: str = "*",
            filters: Dict[str, str] = None,
            order: str = None,
            limit: int = None
    ) -> List[Dict[str, Any]]:
        params = {"select": columns, **(filters or {})}
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)
        response = await self._request("GET", f"/rest/v1/{table}", params=params)
        return response.json() or []

    async def insert(self, table: str, rows) -> List[Dict[str, Any]]:
        response = await self._request(
            "POST", f"/rest/v1/{table}",
            json=rows,
            headers={"Prefer": "return=representation"}
        )
        return response.json() or []

    async def update(self, table: str, values: Dict[str, Any], filters: Dict[str, str]) -> List[Dict[str, Any]]:
        response = await self._request(
            "PATCH", f"/rest/v1/{table}",
            params=filters,
            json=values,
            headers={"Prefer": "return=representation"}
        )
        return response.json() or []

    async def delete(self, table: str, filters: Dict[str, str]) -> List[Dict[str, Any]]:
        """Возвращает удаленные строки: пустой список значит 'ничего не найдено'"""
        response = await self._request(
            "DELETE", f"/rest/v1/{table}",
            params=filters,
            headers={"Prefer": "return=representation"}
        )
        return response.json() or []

    # Storage

    async def list_buckets(self) -> List[Dict[str, Any]]:
        response = await self._request("GET", "/storage/v1/bucket")
        return response.json() or []

    async def create_bucket(self, name: str, public: bool, file_size_limit: int):
        await self._request("POST", "/storage/v1/bucket", json={
            "id": name,
            "name": name,
            "public": public,
            "file_size_limit": file_size_limit
        })

    async def update_bucket(self, name: str, public: bool, file_size_limit: int):
        await self._request("PUT", f"/storage/v1/bucket/{name}", json={
            "id": name,
            "public": public,
            "file_size_limit": file_size_limit
        })

    async def upload(self, bucket: str, path: str, content: bytes, content_type: str) -> str:
        await self._request(
            "POST", f"/storage/v1/object/{bucket}/{path}",
            content=content,
            headers={"Content-Type": content_type}
        )
        return self.public_url(bucket, path)

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{path}"

    # Функции

    async def invoke(self, function: str, body: Dict[str, Any]) -> Any:
        response = await self._request("POST", f"/functions/v1/{function}", json=body)
        return response.json()

    async def ping(self) -> bool:
        """Доступна ли платформа на уровне транспорта; 5xx тоже считается 'онлайн'"""
        try:
            await self.client.get("/rest/v1/")
            return True
        except httpx.TransportError:
            return False
