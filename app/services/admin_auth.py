# app/services/admin_auth.py - сессии администратора
from app.config import settings
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
import hmac
import logging
import secrets

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "admin_session"
LOGIN_PATH = "/admin/login"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AdminLoginRequired(Exception):
    """Запрос к /admin/* без действующей сессии"""


class AdminAuthService:
    """Проверка только на стороне приложения: реальные права доступа
    должны обеспечиваться правилами платформы (RLS)."""

    def __init__(self, password: str = None, ttl_hours: int = None):
        self.password = password if password is not None else settings.admin_password
        self.ttl = timedelta(hours=ttl_hours or settings.admin_session_ttl_hours)
        self._sessions: Dict[str, datetime] = {}

    def login(self, password: str) -> Optional[str]:
        if not self.password or not hmac.compare_digest(password.encode(), self.password.encode()):
            logger.warning("🔒 Admin login rejected")
            return None
        self._sweep()
        token = secrets.token_urlsafe(32)
        self._sessions[token] = _now() + self.ttl
        logger.info("🔓 Admin logged in")
        return token

    def logout(self, token: Optional[str]):
        if token and self._sessions.pop(token, None):
            logger.info("👋 Admin logged out")

    def is_valid(self, token: Optional[str]) -> bool:
        if not token:
            return False
        expires_at = self._sessions.get(token)
        if expires_at is None:
            return False
        if expires_at <= _now():
            del self._sessions[token]
            return False
        return True

    def _sweep(self):
        now = _now()
        expired = [token for token, expires_at in self._sessions.items() if expires_at <= now]
        for token in expired:
            del self._sessions[token]
        if expired:
            logger.info(f"🧹 Dropped {len(expired)} expired admin sessions")


def admin_menu(new_orders_count: int) -> List[dict]:
    return [
        {"label": "Главная", "path": "/admin"},
        {"label": "Автомобили", "path": "/admin/cars"},
        {"label": "Заказы", "path": "/admin/orders", "badge": new_orders_count},
        {"label": "Импорт данных", "path": "/admin/import"},
        {"label": "Чат", "path": "/admin/chat"},
        {"label": "Настройки", "path": "/admin/settings"},
    ]
