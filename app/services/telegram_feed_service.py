# app/services/telegram_feed_service.py - лента постов Telegram-канала
from app.services.remote_client import RemoteDataClient, RemoteError
from app.schemas.site import TelegramFeedPage, TelegramPost
from app.config import settings
from pydantic import ValidationError
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

FEED_ERROR = "Не удалось загрузить ленту Telegram. Пожалуйста, попробуйте позже."


class TelegramFeedService:
    """Постраничная загрузка: первая страница заменяет посты, следующие дописываются"""

    def __init__(self, remote: RemoteDataClient, channel_name: str = None, posts_per_page: int = None):
        self.remote = remote
        self.channel_name = channel_name or settings.telegram_channel_name
        self.posts_per_page = posts_per_page or settings.telegram_posts_per_page
        self.posts: List[TelegramPost] = []
        self.offset = 0
        self.total = 0
        self.has_more = True
        self.error: Optional[str] = None
        self._generation = 0

    async def fetch_page(self, offset: int = 0) -> TelegramFeedPage:
        """Одна страница без изменения состояния ленты"""
        data = await self.remote.invoke("telegram-feed", {
            "channelName": self.channel_name,
            "limit": self.posts_per_page,
            "offset": max(offset, 0)
        })
        return TelegramFeedPage.model_validate(data)

    async def fetch_posts(self, offset: int = 0) -> List[TelegramPost]:
        self._generation += 1
        generation = self._generation
        self.error = None

        try:
            page = await self.fetch_page(offset)
        except (RemoteError, ValidationError) as e:
            logger.error(f"❌ Error fetching Telegram posts: {e}")
            if generation == self._generation:
                self.error = FEED_ERROR
            return list(self.posts)

        if generation != self._generation:
            return list(self.posts)

        if offset == 0:
            self.posts = list(page.posts)
        else:
            self.posts = self.posts + list(page.posts)
        self.total = page.total
        self.has_more = page.has_more
        self.offset = offset
        logger.info(f"📰 Telegram feed: {len(page.posts)} posts at offset {offset}, has_more={page.has_more}")
        return list(self.posts)

    async def load_more(self) -> List[TelegramPost]:
        if not self.posts:
            return await self.refresh()
        if not self.has_more:
            return list(self.posts)
        return await self.fetch_posts(self.offset + self.posts_per_page)

    async def refresh(self) -> List[TelegramPost]:
        return await self.fetch_posts(0)
