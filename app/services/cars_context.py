# app/services/cars_context.py - единый источник состояния каталога
from app.services.remote_client import RemoteDataClient, RemoteError
from app.services.network_monitor import NetworkStatusMonitor
from app.services.favorites_sync import FavoritesSync
from app.services.orders_sync import OrdersSync
from app.services.vehicle_service import VehicleService
from app.services.catalog_filters import apply_filters
from app.repository.local_storage_repository import LocalStorageRepository
from app.schemas.car import (
    Car, CarFilter, CarImage, ImportResults,
    DeleteResult, DeleteSuccess, DeleteNotFound
)
from app.schemas.order import Order, OrderCreate, OrderStatus, SubmitResult
from app.schemas.site import Notification
from app.config import settings
from pydantic import ValidationError
from collections import deque
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Union
from uuid import uuid4
import asyncio
import json
import logging

logger = logging.getLogger(__name__)

COMPARE_KEY = "compareCars"
REQUIRED_IMPORT_FIELDS = ("brand", "model")


class LoadState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class CarOperationError(Exception):
    pass


class CarsContext:
    """Каталог, заказы, избранное и сравнение за одним фасадом.

    Общие списки меняются только методами этого класса; наружу отдаются копии.
    Каждая загрузка запоминает поколение своего ресурса и применяет результат,
    только если за время запроса не стартовала более новая загрузка и контекст
    не закрыт.
    """

    def __init__(
            self,
            remote: RemoteDataClient,
            session_factory,
            monitor: NetworkStatusMonitor,
            user_id: str = None,
            compare_limit: int = None
    ):
        self.remote = remote
        self.session_factory = session_factory
        self.monitor = monitor
        self.vehicles = VehicleService(remote)
        self.favorites_sync = FavoritesSync(remote, session_factory, user_id)
        self.orders_sync = OrdersSync(remote)
        self.compare_limit = compare_limit or settings.compare_limit

        self._cars: List[Car] = []
        self._orders: List[Order] = []
        self._favorites: Set[str] = set()
        self._compare: List[str] = []
        self.filter = CarFilter()
        self.state = LoadState.UNINITIALIZED
        self.error: Optional[str] = None
        self.notifications: deque = deque(maxlen=50)
        self.resync_count = 0

        self._generations: Dict[str, int] = {"cars": 0, "orders": 0, "favorites": 0}
        self._favorites_token = 0
        self._resync_tasks: Set[asyncio.Task] = set()
        self._closed = False
        self._unsubscribe = monitor.subscribe(self._on_network_change)

    # Чтение

    @property
    def cars(self) -> List[Car]:
        return list(self._cars)

    @property
    def orders(self) -> List[Order]:
        return list(self._orders)

    @property
    def favorites(self) -> Set[str]:
        return set(self._favorites)

    @property
    def compare_cars(self) -> List[str]:
        return list(self._compare)

    @property
    def is_online(self) -> bool:
        return self.monitor.is_online

    @property
    def loading(self) -> bool:
        return self.state == LoadState.LOADING

    @property
    def filtered_cars(self) -> List[Car]:
        return apply_filters(self._cars, self.filter)

    @property
    def new_orders_count(self) -> int:
        return sum(1 for order in self._orders if order.status == OrderStatus.NEW)

    def set_filter(self, car_filter: CarFilter):
        self.filter = car_filter

    def get_car_by_id(self, car_id: str) -> Optional[Car]:
        index = self._index_of(car_id)
        return self._cars[index] if index is not None else None

    # Жизненный цикл

    async def initialize(self):
        """uninitialized -> loading -> ready: машины, заказы и избранное параллельно"""
        logger.info("🚀 Initializing cars context...")
        self.state = LoadState.LOADING
        self._compare = await self._load_compare()
        await asyncio.gather(self.load_cars(), self.reload_orders(), self.refresh_favorites())
        logger.info(f"✅ Context ready: {len(self._cars)} cars, {len(self._orders)} orders, "
                    f"{len(self._favorites)} favorites")

    async def close(self):
        self._closed = True
        self._unsubscribe()
        for resource in self._generations:
            self._generations[resource] += 1

        tasks = list(self._resync_tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("🛑 Cars context closed")

    async def drain(self):
        """Дожидается фоновых ресинхронизаций"""
        while self._resync_tasks:
            await asyncio.gather(*list(self._resync_tasks), return_exceptions=True)

    def _begin(self, resource: str) -> int:
        self._generations[resource] += 1
        return self._generations[resource]

    def _is_current(self, resource: str, generation: int) -> bool:
        return not self._closed and self._generations[resource] == generation

    # Загрузка

    async def load_cars(self, manual: bool = False) -> List[Car]:
        generation = self._begin("cars")
        self.state = LoadState.LOADING

        try:
            cars = await self.vehicles.fetch_all()
        except (RemoteError, ValidationError) as e:
            logger.error(f"❌ Failed to load cars: {e}")
            message = e.message if isinstance(e, RemoteError) else "Некорректные данные каталога"
            if self._is_current("cars", generation):
                self.state = LoadState.ERROR
                self.error = message
                if manual:
                    self.notify("Ошибка обновления", message, "destructive")
            return self.cars

        if not self._is_current("cars", generation):
            logger.debug(f"🗑️ Dropping stale cars response (generation {generation})")
            return self.cars

        self._cars = cars
        self.state = LoadState.READY
        self.error = None
        if manual:
            self.notify("Данные обновлены", "Каталог автомобилей успешно обновлен")
        return self.cars

    async def reload_cars(self) -> List[Car]:
        """Ручное обновление каталога с уведомлением о результате"""
        return await self.load_cars(manual=True)

    async def reload_orders(self) -> List[Order]:
        generation = self._begin("orders")
        orders = await self.orders_sync.load_orders()
        if self._is_current("orders", generation):
            self._orders = orders
        return self.orders

    async def refresh_favorites(self) -> Set[str]:
        generation = self._begin("favorites")
        if self.monitor.is_online:
            favorites = await self.favorites_sync.load_favorites()
        else:
            favorites = await self.favorites_sync.load_cached()
        if self._is_current("favorites", generation):
            self._favorites = favorites
        return self.favorites

    async def resync(self):
        """Полная перезагрузка после восстановления сети, без дельт"""
        self.resync_count += 1
        logger.info("🔄 Back online - full resync of cars, orders and favorites")
        await asyncio.gather(
            self.load_cars(),
            self.reload_orders(),
            self.refresh_favorites()
        )

    async def _on_network_change(self, online: bool):
        if not online:
            logger.info("📴 Offline - keeping last loaded state")
            return
        if self._closed:
            return
        task = asyncio.create_task(self.resync())
        self._resync_tasks.add(task)
        task.add_done_callback(self._resync_tasks.discard)

    # Автомобили

    async def view_car(self, car_id: str) -> Optional[Car]:
        """None значит 'нет в локальном списке', а не 'нет на сервере'"""
        await self.vehicles.increment_view_count(car_id)
        index = self._index_of(car_id)
        if index is None:
            return None
        car = self._cars[index]
        updated = car.model_copy(update={"view_count": car.view_count + 1})
        self._cars[index] = updated
        return updated

    async def update_car(self, car: Car) -> Car:
        previous = self.get_car_by_id(car.id)
        self._replace(car)

        try:
            saved = await self.vehicles.update(car)
        except RemoteError as e:
            if previous is not None:
                self._replace(previous)
            self.notify("Ошибка", "Не удалось обновить автомобиль", "destructive")
            raise CarOperationError(f"Failed to update car {car.id}: {e.message}") from e

        self._replace(saved)
        self.notify("Автомобиль обновлен", "Информация об автомобиле была успешно обновлена")
        return car

    async def add_car(self, data: Union[Car, Dict[str, Any]]) -> Car:
        try:
            car = data if isinstance(data, Car) else Car.model_validate(data)
        except ValidationError as e:
            raise CarOperationError(f"Failed to add car: {e.error_count()} invalid fields") from e

        try:
            saved = await self.vehicles.save(car)
        except RemoteError as e:
            self.notify("Ошибка", "Не удалось сохранить автомобиль", "destructive")
            raise CarOperationError(f"Failed to add car: {e.message}") from e

        self._cars.append(saved)
        self.notify("Автомобиль добавлен", "Новый автомобиль был успешно добавлен в каталог")
        return saved

    async def delete_car(self, car_id: str) -> DeleteResult:
        index = self._index_of(car_id)
        previous = self._cars.pop(index) if index is not None else None

        result = await self.vehicles.delete(car_id)

        if isinstance(result, DeleteSuccess):
            self.notify("Автомобиль удален", "Автомобиль был успешно удален из каталога")
        elif isinstance(result, DeleteNotFound):
            # на сервере записи нет, локальная копия была устаревшей
            self.notify("Автомобиль не найден", f"Автомобиль {car_id} отсутствует на сервере", "destructive")
        else:
            if previous is not None and self._index_of(car_id) is None:
                self._cars.insert(min(index, len(self._cars)), previous)
            self.notify("Ошибка", f"Не удалось удалить автомобиль: {result.reason}", "destructive")
        return result

    async def upload_car_image(self, car_id: str, filename: str, content: bytes,
                               content_type: str = "application/octet-stream") -> CarImage:
        image = await self.vehicles.upload_image(car_id, filename, content, content_type)
        self.notify("Изображение загружено", "Изображение успешно загружено на сервер")
        return image

    # Импорт / экспорт

    def export_cars_data(self) -> str:
        data = [car.model_dump(mode="json", by_alias=True) for car in self._cars]
        self.notify("Экспорт выполнен", f"Экспортировано {len(data)} автомобилей")
        return json.dumps(data, ensure_ascii=False, indent=2)

    async def import_cars_data(self, data: str) -> ImportResults:
        """Полная замена каталога. Уже записанные записи не откатываются"""
        results = ImportResults()

        try:
            parsed = json.loads(data)
        except ValueError as e:
            results.errors.append(f"Ошибка разбора JSON: {e}")
            self.notify("Ошибка импорта", results.errors[0], "destructive")
            return results

        if not isinstance(parsed, list):
            results.errors.append("Данные должны быть массивом")
            self.notify("Ошибка импорта", results.errors[0], "destructive")
            return results

        results.total = len(parsed)
        valid: List[Car] = []
        seen_ids: Set[str] = set()

        for index, record in enumerate(parsed, start=1):
            reason = self._validate_record(record)
            if reason is None:
                try:
                    car = Car.model_validate(record)
                except ValidationError as e:
                    reason = f"неверный формат данных ({e.error_count()} ошибок)"
            if reason is not None:
                results.failed += 1
                results.errors.append(f"Запись {index}: {reason}")
                continue

            if not record.get("id") or car.id in seen_ids:
                logger.warning(f"⚠️ Import record {index}: duplicate or missing id, assigning a new one")
                car = car.model_copy(update={"id": str(uuid4())})
            seen_ids.add(car.id)
            valid.append(car)

        self._begin("cars")
        self._cars = valid
        self.state = LoadState.READY
        self.error = None
        results.successful = len(valid)

        await self._persist_import(valid, results)

        logger.info(f"📥 Import finished: {results.successful}/{results.total} ok, {results.failed} failed")
        self.notify("Импорт завершен", f"Импортировано {results.successful} из {results.total} автомобилей")
        return results

    @staticmethod
    def _validate_record(record: Any) -> Optional[str]:
        if not isinstance(record, dict):
            return "запись не является объектом"
        missing = [name for name in REQUIRED_IMPORT_FIELDS if not str(record.get(name) or "").strip()]
        if missing:
            return f"отсутствуют обязательные поля: {', '.join(missing)}"
        return None

    async def _persist_import(self, cars: List[Car], results: ImportResults):
        try:
            await self.vehicles.delete_all()
        except RemoteError as e:
            logger.error(f"❌ Failed to clear remote vehicles before import: {e}")
            results.errors.append(f"Не удалось очистить каталог на сервере: {e.message}")
            return

        for car in cars:
            try:
                await self.vehicles.save(car)
            except RemoteError as e:
                logger.error(f"❌ Error inserting imported vehicle {car.id}: {e}")
                results.successful -= 1
                results.failed += 1
                results.errors.append(f"{car.brand} {car.model}: не сохранен на сервере ({e.message})")
                index = self._index_of(car.id)
                if index is not None:
                    self._cars.pop(index)

    # Избранное

    async def add_to_favorites(self, car_id: str) -> bool:
        if car_id in self._favorites:
            return True
        return await self._write_favorites(
            self._favorites | {car_id},
            "Добавлено в избранное", "Автомобиль добавлен в список избранного"
        )

    async def remove_from_favorites(self, car_id: str) -> bool:
        if car_id not in self._favorites:
            return True
        return await self._write_favorites(
            self._favorites - {car_id},
            "Удалено из избранного", "Автомобиль удален из списка избранного"
        )

    async def _write_favorites(self, new_favorites: Set[str], title: str, description: str) -> bool:
        """Применяем локально сразу; откат только если этот запрос все еще последний"""
        previous = set(self._favorites)
        self._begin("favorites")
        self._favorites_token += 1
        token = self._favorites_token
        self._favorites = set(new_favorites)

        if await self.favorites_sync.save_favorites(new_favorites):
            self.notify(title, description)
            return True

        if token == self._favorites_token and not self._closed:
            logger.warning(f"↩️ Rolling back favorites write #{token}")
            self._favorites = previous
            await self.favorites_sync.save_cached(previous)
            self.notify("Ошибка", "Не удалось сохранить избранное", "destructive")
        return False

    # Сравнение

    async def add_to_compare(self, car_id: str) -> bool:
        if car_id in self._compare:
            return True
        if len(self._compare) >= self.compare_limit:
            self.notify(
                "Ограничение сравнения",
                f"Можно сравнивать не более {self.compare_limit} автомобилей одновременно",
                "destructive"
            )
            return False
        self._compare.append(car_id)
        await self._save_compare()
        self.notify("Добавлено к сравнению", "Автомобиль добавлен к сравнению")
        return True

    async def remove_from_compare(self, car_id: str):
        self._compare = [cid for cid in self._compare if cid != car_id]
        await self._save_compare()
        self.notify("Удалено из сравнения", "Автомобиль удален из списка сравнения")

    async def clear_compare(self):
        self._compare = []
        await self._save_compare()
        self.notify("Список сравнения очищен", "Все автомобили удалены из списка сравнения")

    async def _load_compare(self) -> List[str]:
        async with self.session_factory() as session:
            repo = LocalStorageRepository(session)
            stored = await repo.get_json(COMPARE_KEY, default=[])
        if not isinstance(stored, list):
            return []
        return [str(car_id) for car_id in stored][:self.compare_limit]

    async def _save_compare(self):
        async with self.session_factory() as session:
            repo = LocalStorageRepository(session)
            await repo.set_json(COMPARE_KEY, self._compare)

    # Заказы

    async def process_order(self, order_id: str, status: OrderStatus) -> bool:
        status = OrderStatus(status)
        index = next((i for i, order in enumerate(self._orders) if order.id == order_id), None)
        previous = self._orders[index] if index is not None else None
        if previous is not None:
            self._orders[index] = previous.model_copy(update={"status": status})

        if await self.orders_sync.update_order_status(order_id, status):
            self.notify("Заказ обновлен", f"Статус заказа изменен на: {status.value}")
            return True

        if previous is not None:
            current = next((i for i, order in enumerate(self._orders) if order.id == order_id), None)
            if current is not None:
                self._orders[current] = previous
        self.notify("Ошибка", "Не удалось обновить статус заказа", "destructive")
        return False

    async def submit_order(self, request: OrderCreate) -> SubmitResult:
        result = await self.orders_sync.submit_order(request, self.get_car_by_id(request.car_id))
        if result.success:
            await self.reload_orders()
        return result

    # Служебное

    def _index_of(self, car_id: str) -> Optional[int]:
        return next((i for i, car in enumerate(self._cars) if car.id == car_id), None)

    def _replace(self, car: Car):
        index = self._index_of(car.id)
        if index is not None:
            self._cars[index] = car

    def notify(self, title: str, description: str = "", variant: str = "default"):
        self.notifications.append(Notification(title=title, description=description, variant=variant))
        if variant == "destructive":
            logger.warning(f"🔔 {title}: {description}")
        else:
            logger.info(f"🔔 {title}: {description}")
