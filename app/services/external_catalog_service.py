# app/services/external_catalog_service.py - импорт автомобилей из внешнего каталога поставщика
from app.services.remote_client import RemoteDataClient, RemoteError
from app.schemas.car import ExternalCar, ExternalCatalogState
from pydantic import ValidationError
from typing import Callable, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

CATALOG_FUNCTION = "tmcavto-catalog"

# источник -> (название в логах импорта, фрагмент url раздела)
SOURCES: Dict[str, tuple] = {
    "china": ("Китай", "/china"),
    "japan": ("Япония", "/japan"),
    "korea": ("Корея", "/korea"),
}

BLOCKED_MARKERS = ("блокирует", "запрещен", "Access Denied")


class ExternalCatalogService:
    """Состояние админской страницы импорта: машины, логи парсера, заблокированные источники"""

    def __init__(self, remote: RemoteDataClient, notify: Callable[..., None] = None):
        self.remote = remote
        self.notify = notify or (lambda title, description="", variant="default": None)
        self.state = ExternalCatalogState()

    async def import_all(self) -> Optional[List[ExternalCar]]:
        """Полный импорт по всем источникам"""
        self._begin()
        self.notify("Импорт запущен", "Начинаем импорт автомобилей. Это может занять некоторое время.")
        try:
            data = await self.remote.invoke(CATALOG_FUNCTION, {"action": "import"})
        except RemoteError as e:
            return self._fail(e.message or "Ошибка при импорте данных")
        finally:
            self.state.loading = False

        if not data:
            return self._fail("Получен пустой ответ от сервера")

        logs = data.get("logs")
        if isinstance(logs, list):
            self.state.logs = [str(log) for log in logs]
            self._check_logs(self.state.logs)

        cars = self._parse_cars(data.get("data"))
        if cars is None:
            return self._fail("Данные не содержат список автомобилей")

        self.state.cars = cars
        if cars:
            self.notify("Импорт завершен", f"Импортировано {data.get('total') or len(cars)} автомобилей")
        else:
            self.notify("Импорт завершен",
                        "Не удалось импортировать автомобили. Проверьте логи для получения дополнительной информации.")
        logger.info(f"📥 External import: {len(cars)} cars, blocked={self.state.blocked_sources}")
        return cars

    async def fetch_catalog(self, url: str) -> Optional[List[ExternalCar]]:
        """Один раздел каталога по url"""
        self._begin()
        try:
            data = await self.remote.invoke(CATALOG_FUNCTION, {"url": url})
        except RemoteError as e:
            message = e.message or "Ошибка при получении данных"
            self._check_blocked_error(message, url)
            return self._fail(message)
        finally:
            self.state.loading = False

        if not data:
            return self._fail("Получен пустой ответ от сервера")

        logs = data.get("logs")
        if isinstance(logs, list):
            self.state.logs = [str(log) for log in logs]

        cars = self._parse_cars(data.get("data"))
        if cars is None:
            self.notify("Внимание", "Получены данные в неизвестном формате")
            return None

        self.state.cars = cars
        self.notify("Данные получены",
                    f"Получено {len(cars)} автомобилей" if cars else "Не найдено автомобилей в этом разделе")
        logger.info(f"📥 External catalog {url}: {len(cars)} cars")
        return cars

    def _begin(self):
        self.state.loading = True
        self.state.error = None
        self.state.logs = []

    def _fail(self, message: str) -> None:
        logger.error(f"❌ External catalog error: {message}")
        self.state.error = message
        self.notify("Ошибка", message, "destructive")
        return None

    def _parse_cars(self, rows) -> Optional[List[ExternalCar]]:
        if not isinstance(rows, list):
            return None
        cars = []
        for row in rows:
            try:
                cars.append(ExternalCar.model_validate(row))
            except ValidationError as e:
                logger.warning(f"⚠️ Skipping malformed external car: {e}")
        return cars

    def _check_logs(self, logs: List[str]):
        for log in logs:
            for source, (country, _) in SOURCES.items():
                if f"Ошибка при импорте из {country}" in log or ("блокирует" in log and country in log):
                    self._mark_blocked(source)

    def _check_blocked_error(self, message: str, url: str):
        if not any(marker in message for marker in BLOCKED_MARKERS):
            return
        for source, (_, fragment) in SOURCES.items():
            if fragment in url:
                self._mark_blocked(source)
                break
        self.notify("Доступ заблокирован",
                    "Сайт блокирует парсинг данных. Попробуйте позже или используйте другой источник.",
                    "destructive")

    def _mark_blocked(self, source: str):
        if source not in self.state.blocked_sources:
            self.state.blocked_sources.append(source)
            logger.warning(f"🚫 Source {source} blocks parsing")
