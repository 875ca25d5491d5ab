# app/services/chat_service.py - сообщения чата с посетителями
from app.services.remote_client import RemoteDataClient, RemoteError, eq
from app.services.transformers import message_from_row
from app.schemas.site import ChatMessage
from datetime import datetime, timezone
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)


class ChatService:
    def __init__(self, remote: RemoteDataClient):
        self.remote = remote

    async def list_messages(self, user_id: str = None) -> List[ChatMessage]:
        filters = {"user_id": eq(user_id)} if user_id else None
        try:
            rows = await self.remote.select("messages", filters=filters, order="created_at.asc")
        except RemoteError as e:
            logger.error(f"❌ Error loading chat messages: {e}")
            return []
        return [message_from_row(row) for row in rows]

    async def send_message(self, user_id: str, content: str,
                           admin_id: Optional[str] = None) -> Optional[ChatMessage]:
        row = {
            "user_id": user_id,
            "content": content,
            "admin_id": admin_id,
            "is_admin": admin_id is not None,
            "is_read": admin_id is not None,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            saved = await self.remote.insert("messages", row)
        except RemoteError as e:
            logger.error(f"❌ Error sending chat message for {user_id}: {e}")
            return None
        if not saved:
            return None
        return message_from_row(saved[0])

    async def mark_read(self, user_id: str) -> bool:
        try:
            await self.remote.update("messages", {"is_read": True}, filters={
                "user_id": eq(user_id),
                "is_admin": eq("false"),
            })
            return True
        except RemoteError as e:
            logger.error(f"❌ Error marking messages read for {user_id}: {e}")
            return False
