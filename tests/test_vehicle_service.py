from __future__ import annotations

import asyncio

import pytest

from app.services.vehicle_service import ImageTooLargeError, VehicleService


def test_ensure_bucket_creates_public_bucket(platform) -> None:
    async def scenario():
        remote = platform.client()
        created = await VehicleService(remote).ensure_bucket()
        again = await VehicleService(remote).ensure_bucket()
        await remote.close()
        return created, again

    created, again = asyncio.run(scenario())

    assert created is True and again is True
    assert len(platform.buckets) == 1
    assert platform.buckets[0]["public"] is True
    assert platform.buckets[0]["file_size_limit"] == 10 * 1024 * 1024


def test_upload_returns_public_url(platform) -> None:
    async def scenario():
        remote = platform.client()
        image = await VehicleService(remote).upload_image("car-1", "front.jpg", b"jpeg-bytes", "image/jpeg")
        await remote.close()
        return image

    image = asyncio.run(scenario())

    assert image.url.startswith("http://platform.test/storage/v1/object/public/car-images/")
    assert image.url.endswith(".jpg")
    assert list(platform.uploads.values()) == [b"jpeg-bytes"]


def test_upload_rejects_oversized_files(platform) -> None:
    async def scenario():
        remote = platform.client()
        service = VehicleService(remote)
        service.max_image_bytes = 10
        try:
            await service.upload_image("car-1", "huge.png", b"x" * 11, "image/png")
        finally:
            await remote.close()

    with pytest.raises(ImageTooLargeError):
        asyncio.run(scenario())
    assert platform.uploads == {}


def test_fetch_all_propagates_unavailable_platform(platform) -> None:
    from app.services.remote_client import RemoteUnavailableError

    platform.offline = True

    async def scenario():
        remote = platform.client()
        try:
            online = await remote.ping()
            await VehicleService(remote).fetch_all()
        finally:
            await remote.close()
        return online

    with pytest.raises(RemoteUnavailableError):
        asyncio.run(scenario())
