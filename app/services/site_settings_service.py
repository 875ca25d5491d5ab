# app/services/site_settings_service.py - настройки сайта: явная загрузка/сохранение
from app.repository.local_storage_repository import LocalStorageRepository
from app.schemas.site import SiteSettings
from pydantic import ValidationError
from typing import Any, Dict
import logging

logger = logging.getLogger(__name__)

SITE_SETTINGS_KEY = "site-settings"


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class SiteSettingsStore:
    """Сохраненный JSON накладывается поверх значений по умолчанию.
    Последняя запись побеждает, версии схемы нет."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def load(self) -> SiteSettings:
        defaults = SiteSettings().model_dump(by_alias=True)
        async with self.session_factory() as session:
            stored = await LocalStorageRepository(session).get_json(SITE_SETTINGS_KEY, default={})

        if not isinstance(stored, dict):
            logger.warning("⚠️ Stored site settings are not an object, using defaults")
            return SiteSettings()

        try:
            return SiteSettings.model_validate(_deep_merge(defaults, stored))
        except ValidationError as e:
            logger.error(f"❌ Invalid stored site settings, using defaults: {e}")
            return SiteSettings()

    async def save(self, site_settings: SiteSettings) -> SiteSettings:
        async with self.session_factory() as session:
            await LocalStorageRepository(session).set_json(
                SITE_SETTINGS_KEY, site_settings.model_dump(by_alias=True)
            )
        logger.info(f"💾 Site settings saved: {site_settings.site_name}")
        return site_settings
