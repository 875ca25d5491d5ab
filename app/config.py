from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # Хостинг-платформа (таблицы, storage, функции)
    remote_url: str = "http://localhost:54321"
    remote_api_key: str = ""
    remote_timeout: float = 15.0

    # Локальное зеркало "localStorage"
    database_url: str = "sqlite+aiosqlite:///./local_storage.db"

    # Идентичность посетителя для избранного
    favorites_user_id: str = "anonymous"

    # Админка
    admin_password: str = "admin123"
    admin_session_ttl_hours: int = 24

    # Telegram
    telegram_bot_token: str = ""
    telegram_admin_chat_id: str = ""
    telegram_channel_name: str = "VoeAVTO"
    telegram_posts_per_page: int = 12

    # AI помощник блога
    openai_api_key: str = ""
    openai_model: str = "o3-mini"

    # Хранилище изображений
    car_images_bucket: str = "car-images"
    car_images_max_bytes: int = 10 * 1024 * 1024

    # Проверка сети
    connectivity_check_seconds: int = 30

    compare_limit: int = 3
    cors_origins: List[str] = ["*"]

    class Config:
        env_file = ".env"


settings = Settings()
