# app/repository/local_storage_repository.py - JSON-значения по ключам
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from app.models.local_storage import LocalStorageItem
from typing import Any, Optional
import json
import logging

logger = logging.getLogger(__name__)


class LocalStorageRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_item(self, key: str) -> Optional[str]:
        result = await self.session.execute(
            select(LocalStorageItem.value).where(LocalStorageItem.key == key)
        )
        return result.scalar_one_or_none()

    async def set_item(self, key: str, value: str):
        item = await self.session.get(LocalStorageItem, key)
        if item:
            item.value = value
        else:
            self.session.add(LocalStorageItem(key=key, value=value))
        await self.session.commit()

    async def remove_item(self, key: str):
        await self.session.execute(
            delete(LocalStorageItem).where(LocalStorageItem.key == key)
        )
        await self.session.commit()

    async def get_json(self, key: str, default: Any = None) -> Any:
        """Читает JSON-блоб; битое значение трактуется как отсутствующее"""
        raw = await self.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.error(f"❌ Corrupted local storage value for '{key}': {e}")
            return default

    async def set_json(self, key: str, value: Any):
        await self.set_item(key, json.dumps(value, ensure_ascii=False))
