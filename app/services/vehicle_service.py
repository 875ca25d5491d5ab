# app/services/vehicle_service.py - CRUD автомобилей на платформе
from app.services.remote_client import RemoteDataClient, RemoteError, eq, neq
from app.services.transformers import vehicle_from_row, vehicle_to_row
from app.schemas.car import Car, CarImage, DeleteResult, DeleteSuccess, DeleteNotFound, DeleteFailure
from app.config import settings
from typing import List, Optional
from uuid import uuid4
import logging
import time

logger = logging.getLogger(__name__)


class ImageTooLargeError(ValueError):
    pass


class VehicleService:
    def __init__(self, remote: RemoteDataClient):
        self.remote = remote
        self.bucket = settings.car_images_bucket
        self.max_image_bytes = settings.car_images_max_bytes

    async def fetch_all(self) -> List[Car]:
        """Ошибки платформы пробрасываются: каталог сам решает, что показать"""
        rows = await self.remote.select("vehicles")

        cars = []
        for row in rows:
            try:
                cars.append(vehicle_from_row(row))
            except (KeyError, ValueError) as e:
                logger.warning(f"⚠️ Skipping malformed vehicle row {row.get('id')}: {e}")
        logger.info(f"🚗 Fetched {len(cars)} of {len(rows)} vehicles")
        return cars

    async def fetch_by_id(self, car_id: str) -> Optional[Car]:
        rows = await self.remote.select("vehicles", filters={"id": eq(car_id)}, limit=1)
        if not rows:
            logger.info(f"🔍 Vehicle {car_id} not found")
            return None
        return vehicle_from_row(rows[0])

    async def save(self, car: Car) -> Car:
        rows = await self.remote.insert("vehicles", vehicle_to_row(car))
        logger.info(f"✅ Vehicle saved: {car.brand} {car.model} ({car.id})")
        return vehicle_from_row(rows[0]) if rows else car

    async def update(self, car: Car) -> Car:
        row = vehicle_to_row(car)
        rows = await self.remote.update("vehicles", row, filters={"id": eq(car.id)})
        if not rows:
            raise RemoteError(f"Автомобиль {car.id} не найден", status_code=404)
        logger.info(f"✅ Vehicle updated: {car.id}")
        return vehicle_from_row(rows[0])

    async def delete(self, car_id: str) -> DeleteResult:
        try:
            rows = await self.remote.delete("vehicles", filters={"id": eq(car_id)})
        except RemoteError as e:
            logger.error(f"❌ Error deleting vehicle {car_id}: {e}")
            return DeleteFailure(car_id=car_id, reason=e.message)

        if not rows:
            logger.warning(f"⚠️ Vehicle {car_id} not present remotely")
            return DeleteNotFound(car_id=car_id)

        logger.info(f"🗑️ Vehicle deleted: {car_id}")
        return DeleteSuccess(car_id=car_id)

    async def delete_all(self):
        await self.remote.delete("vehicles", filters={"id": neq("placeholder")})

    async def increment_view_count(self, car_id: str) -> bool:
        try:
            rows = await self.remote.select("vehicles", columns="view_count", filters={"id": eq(car_id)}, limit=1)
            if not rows:
                return False
            current = rows[0].get("view_count") or 0
            await self.remote.update("vehicles", {"view_count": current + 1}, filters={"id": eq(car_id)})
            return True
        except RemoteError as e:
            logger.error(f"❌ Error updating view count for {car_id}: {e}")
            return False

    async def ensure_bucket(self) -> bool:
        """Публичный bucket для фото с лимитом размера файла"""
        try:
            buckets = await self.remote.list_buckets()
            if any(bucket.get("name") == self.bucket for bucket in buckets):
                await self.remote.update_bucket(self.bucket, public=True, file_size_limit=self.max_image_bytes)
                logger.info(f"🪣 Bucket '{self.bucket}' exists, ensured public")
                return True

            await self.remote.create_bucket(self.bucket, public=True, file_size_limit=self.max_image_bytes)
            logger.info(f"🪣 Bucket '{self.bucket}' created")
            return True
        except RemoteError as e:
            logger.error(f"❌ Error setting up bucket '{self.bucket}': {e}")
            return False

    async def upload_image(self, car_id: str, filename: str, content: bytes, content_type: str) -> CarImage:
        if not car_id:
            raise ValueError("Invalid car ID for image upload")
        if len(content) > self.max_image_bytes:
            raise ImageTooLargeError(
                f"Файл {filename} больше {self.max_image_bytes // (1024 * 1024)} МБ"
            )

        ext = filename.rsplit(".", 1)[-1] if "." in filename else "bin"
        path = f"{int(time.time() * 1000)}-{uuid4().hex[:13]}.{ext}"
        url = await self.remote.upload(self.bucket, path, content, content_type)
        logger.info(f"🖼️ Image uploaded for car {car_id}: {path}")
        return CarImage(url=url, alt="Uploaded image")
