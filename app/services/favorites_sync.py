# app/services/favorites_sync.py - избранное: платформа + локальное зеркало
from app.services.remote_client import RemoteDataClient, RemoteError, eq
from app.repository.local_storage_repository import LocalStorageRepository
from app.config import settings
from typing import Iterable, Set
import logging

logger = logging.getLogger(__name__)

FAVORITES_KEY = "favorites"


class FavoritesSync:
    def __init__(self, remote: RemoteDataClient, session_factory, user_id: str = None):
        self.remote = remote
        self.session_factory = session_factory
        self.user_id = user_id or settings.favorites_user_id

    async def load_favorites(self) -> Set[str]:
        """Полный набор избранного. Любая ошибка платформы -> пустой набор"""
        try:
            rows = await self.remote.select(
                "favorites",
                columns="car_id",
                filters={"user_id": eq(self.user_id)}
            )
        except RemoteError as e:
            logger.error(f"❌ Error loading favorites from remote: {e}")
            return set()

        favorites = {str(row["car_id"]) for row in rows}
        logger.info(f"⭐ Loaded {len(favorites)} favorites for '{self.user_id}'")
        await self.save_cached(favorites)
        return favorites

    async def save_favorites(self, ids: Iterable[str]) -> bool:
        """Полная замена набора. Зеркало пишется независимо от результата"""
        favorites = sorted(set(ids))
        await self.save_cached(favorites)

        try:
            await self.remote.delete("favorites", filters={"user_id": eq(self.user_id)})
            if favorites:
                await self.remote.insert("favorites", [
                    {"car_id": car_id, "user_id": self.user_id} for car_id in favorites
                ])
        except RemoteError as e:
            logger.error(f"❌ Error saving {len(favorites)} favorites: {e}")
            return False

        logger.info(f"⭐ Saved {len(favorites)} favorites for '{self.user_id}'")
        return True

    async def load_cached(self) -> Set[str]:
        async with self.session_factory() as session:
            repo = LocalStorageRepository(session)
            cached = await repo.get_json(FAVORITES_KEY, default=[])
        if not isinstance(cached, list):
            return set()
        return {str(car_id) for car_id in cached}

    async def save_cached(self, favorites: Iterable[str]):
        async with self.session_factory() as session:
            repo = LocalStorageRepository(session)
            await repo.set_json(FAVORITES_KEY, sorted(favorites))
