from __future__ import annotations

import asyncio

from app.repository.local_storage_repository import LocalStorageRepository
from app.schemas.site import SiteSettings
from app.services.site_settings_service import SITE_SETTINGS_KEY, SiteSettingsStore


def test_defaults_when_nothing_stored(session_factory) -> None:
    loaded = asyncio.run(SiteSettingsStore(session_factory).load())

    assert loaded == SiteSettings()


def test_stored_values_are_merged_over_defaults(session_factory) -> None:
    async def scenario():
        async with session_factory() as session:
            await LocalStorageRepository(session).set_json(SITE_SETTINGS_KEY, {
                "siteName": "VoeAVTO",
                "social": {"telegram": "https://t.me/other"},
            })
        return await SiteSettingsStore(session_factory).load()

    loaded = asyncio.run(scenario())

    assert loaded.site_name == "VoeAVTO"
    assert loaded.social.telegram == "https://t.me/other"
    assert loaded.social.vk == SiteSettings().social.vk
    assert loaded.company == SiteSettings().company


def test_save_then_load(session_factory) -> None:
    async def scenario():
        store = SiteSettingsStore(session_factory)
        updated = SiteSettings(site_name="Новый салон", phone_number="+7 (000) 000-00-00")
        await store.save(updated)
        return await store.load()

    loaded = asyncio.run(scenario())

    assert loaded.site_name == "Новый салон"
    assert loaded.phone_number == "+7 (000) 000-00-00"


def test_corrupted_value_falls_back_to_defaults(session_factory) -> None:
    async def scenario():
        async with session_factory() as session:
            await LocalStorageRepository(session).set_item(SITE_SETTINGS_KEY, "{not json")
        return await SiteSettingsStore(session_factory).load()

    assert asyncio.run(scenario()) == SiteSettings()


def test_repository_remove_item(session_factory) -> None:
    async def scenario():
        async with session_factory() as session:
            repo = LocalStorageRepository(session)
            await repo.set_json("compareCars", ["car-1"])
            await repo.set_json("compareCars", ["car-2"])
            replaced = await repo.get_json("compareCars")
            await repo.remove_item("compareCars")
            removed = await repo.get_json("compareCars", default=[])
        return replaced, removed

    replaced, removed = asyncio.run(scenario())

    assert replaced == ["car-2"]
    assert removed == []
