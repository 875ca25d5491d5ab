# app/services/telegram_service.py - Telegram бот: уведомления о заказах, лента канала, чат
from aiogram import Bot
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramAPIError
from app.config import settings
from datetime import datetime
from html import escape
from typing import Any, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


class TelegramConfigError(Exception):
    pass


class TelegramService:
    def __init__(self, token: str = None, default_chat_id: str = None):
        self.token = settings.telegram_bot_token if token is None else token
        self.default_chat_id = settings.telegram_admin_chat_id if default_chat_id is None else default_chat_id
        self._bot: Optional[Bot] = None

    @property
    def bot(self) -> Bot:
        if not self.token:
            raise TelegramConfigError("TELEGRAM_BOT_TOKEN not found in environment variables")
        if self._bot is None:
            self._bot = Bot(token=self.token)
        return self._bot

    def resolve_chat_ids(self, admin_chat_ids: Optional[List[Any]]) -> List[str]:
        chat_ids = [str(chat_id) for chat_id in (admin_chat_ids or []) if str(chat_id).strip()]
        if not chat_ids and self.default_chat_id:
            chat_ids = [self.default_chat_id]
        if not chat_ids:
            raise TelegramConfigError("Admin chat IDs are required for notification")
        return chat_ids

    async def send_order_notification(self, order: Dict[str, Any],
                                      admin_chat_ids: Optional[List[Any]] = None) -> List[Dict[str, Any]]:
        """Рассылает сообщение о заказе каждому админу; ошибка одного чата не мешает остальным"""
        chat_ids = self.resolve_chat_ids(admin_chat_ids)
        message = self.format_order_message(order)
        bot = self.bot

        results = []
        for chat_id in chat_ids:
            try:
                await bot.send_message(
                    chat_id=chat_id,
                    text=message,
                    parse_mode=ParseMode.HTML,
                    disable_web_page_preview=True
                )
                results.append({"chatId": chat_id, "success": True})
                logger.info(f"✅ Order notification sent to chat {chat_id}")
            except TelegramAPIError as e:
                logger.error(f"❌ Telegram API error for chat {chat_id}: {e}")
                results.append({"chatId": chat_id, "success": False, "error": str(e)})
        return results

    async def fetch_channel_posts(self, channel_name: str, limit: int = 12, offset: int = 0) -> Dict[str, Any]:
        """Посты канала из getUpdates: новые апдейты бот видит, только если он админ канала"""
        bot = self.bot
        chat = await bot.get_chat(chat_id=f"@{channel_name}")
        updates = await bot.get_updates(limit=100)
        logger.info(f"📰 Channel {channel_name} ({chat.id}): {len(updates)} updates received")

        found = []
        for update in updates:
            post = update.channel_post
            if post is None and update.message is not None and update.message.chat.username == channel_name:
                post = update.message
            if post is not None:
                found.append(post)

        page = []
        for post in found[offset:offset + limit]:
            page.append({
                "id": post.message_id,
                "date": int(post.date.timestamp()),
                "text": post.text or post.caption or "",
                "photoUrl": await self._photo_url(bot, post.photo),
            })
        return {"posts": page, "total": len(found), "hasMore": offset + limit < len(found)}

    async def _photo_url(self, bot: Bot, photos) -> Optional[str]:
        if not photos:
            return None
        largest = max(photos, key=lambda photo: photo.file_size or photo.width * photo.height)
        file = await bot.get_file(largest.file_id)
        return bot.session.api.file_url(self.token, file.file_path)

    async def send_text(self, chat_id: str, text: str):
        message = await self.bot.send_message(chat_id=chat_id, text=text, parse_mode=ParseMode.HTML)
        logger.info(f"💬 Message {message.message_id} sent to chat {chat_id}")
        return message

    async def register_webhook(self, url: str) -> bool:
        result = await self.bot.set_webhook(url=url)
        logger.info(f"🔗 Telegram webhook set to {url}: {result}")
        return result

    def format_order_message(self, order: Dict[str, Any]) -> str:
        car = order.get("car") or {"brand": "Неизвестно", "model": "Неизвестно"}
        price = (car.get("price") or {}).get("base") or "Не указана"

        created_raw = order.get("createdAt")
        try:
            created = datetime.fromisoformat(str(created_raw).replace("Z", "+00:00")).strftime("%d.%m.%Y %H:%M")
        except ValueError:
            created = created_raw or "—"

        return f"""
🔔 <b>НОВЫЙ ЗАКАЗ #{escape(str(order.get('id', '')))}</b>

👤 <b>Клиент:</b> {escape(str(order.get('customerName', '')))}
📱 <b>Телефон:</b> {escape(str(order.get('customerPhone', '')))}
📧 <b>Email:</b> {escape(str(order.get('customerEmail') or 'Не указан'))}

🚗 <b>Автомобиль:</b> {escape(str(car.get('brand', '')))} {escape(str(car.get('model', '')))}
💰 <b>Стоимость:</b> {price} ₽

⏰ <b>Дата создания:</b> {created}
        """.strip()

    async def close(self):
        """Закрытие сессии Telegram бота"""
        try:
            if self._bot is not None and self._bot.session:
                await self._bot.session.close()
                logger.info("✅ Telegram bot session закрыта")
        except Exception as e:
            logger.error(f"❌ Ошибка закрытия Telegram session: {e}")
