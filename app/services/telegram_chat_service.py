# app/services/telegram_chat_service.py - мост между чатом сайта и Telegram
from app.services.remote_client import RemoteDataClient, eq
from app.services.telegram_service import TelegramConfigError, TelegramService
from datetime import datetime, timezone
from typing import Any, Dict
import logging
import uuid

logger = logging.getLogger(__name__)


class TelegramChatError(Exception):
    pass


class TelegramChatBridge:
    """Серверная часть функции telegram-chat: webhook, ответы в Telegram, регистрация webhook"""

    def __init__(self, remote: RemoteDataClient, telegram: TelegramService):
        self.remote = remote
        self.telegram = telegram

    async def handle(self, action: str, data: Dict[str, Any]) -> Any:
        if not self.telegram.token:
            raise TelegramConfigError("TELEGRAM_BOT_TOKEN not found in environment variables")
        if action == "webhook":
            return await self.process_update(data)
        if action == "sendToTelegram":
            return await self.send_to_telegram(data)
        if action == "registerWebhook":
            return await self.register_webhook(data.get("url"))
        raise TelegramChatError(f"Unknown action: {action}")

    async def process_update(self, update: Dict[str, Any]) -> Dict[str, Any]:
        message = update.get("message")
        if not message:
            return {"status": "no_message"}

        chat_id = str(message["chat"]["id"])
        user_name = (message.get("from") or {}).get("first_name") or "Telegram User"
        session_id = f"telegram-{chat_id}"
        now = datetime.now(timezone.utc).isoformat()

        existing = await self.remote.select("chat_sessions", filters={"id": eq(session_id)}, limit=1)
        if not existing:
            await self.remote.insert("chat_sessions", {
                "id": session_id,
                "user_name": user_name,
                "source": "telegram",
                "telegram_chat_id": chat_id,
                "status": "active",
                "last_activity": now,
                "unread_count": 0
            })
            logger.info(f"🆕 Chat session {session_id} created for {user_name}")

        await self.remote.insert("chat_messages", {
            "id": str(uuid.uuid4()),
            "session_id": session_id,
            "sender_id": chat_id,
            "sender_name": user_name,
            "sender_type": "telegram",
            "content": message.get("text") or "",
            "timestamp": now,
            "is_read": False
        })
        logger.info(f"📨 Telegram message stored in session {session_id}")
        return {"status": "processed", "sessionId": session_id}

    async def send_to_telegram(self, data: Dict[str, Any]) -> Dict[str, Any]:
        chat_id, text = data.get("chatId"), data.get("text")
        if not chat_id or not text:
            raise TelegramChatError("Missing chatId or text in sendToTelegram")
        message = await self.telegram.send_text(str(chat_id), text)
        return {"ok": True, "messageId": message.message_id}

    async def register_webhook(self, url: str) -> Dict[str, Any]:
        if not url:
            raise TelegramChatError("Missing webhookUrl in registerWebhook")
        return {"ok": await self.telegram.register_webhook(url), "url": url}
