# app/services/network_monitor.py - состояние сети онлайн/оффлайн
from typing import Awaitable, Callable, List, Tuple
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

Listener = Callable[[bool], Awaitable[None]]


class NetworkStatusMonitor:
    """Единый флаг is_online. Подписчики получают только переходы,
    повторный сигнал с тем же значением игнорируется."""

    def __init__(self, initial_online: bool = True):
        self._online = initial_online
        self._listeners: List[Listener] = []
        self.transitions: List[Tuple[bool, datetime]] = []

    @property
    def is_online(self) -> bool:
        return self._online

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def update(self, online: bool):
        if online == self._online:
            return

        self._online = online
        self.transitions.append((online, datetime.now()))
        logger.info("🟢 Application is online" if online else "🔴 Application is offline")

        for listener in list(self._listeners):
            try:
                await listener(online)
            except Exception as e:
                logger.error(f"❌ Network listener {listener!r} failed: {e}")

    async def set_online(self):
        await self.update(True)

    async def set_offline(self):
        await self.update(False)


class ConnectivityProbe:
    """Периодическая проверка доступности платформы через scheduler"""

    def __init__(self, monitor: NetworkStatusMonitor, check: Callable[[], Awaitable[bool]]):
        self.monitor = monitor
        self.check = check

    async def run(self):
        await self.monitor.update(await self.check())

    def schedule(self, scheduler, seconds: int):
        scheduler.add_job(
            self.run,
            'interval',
            seconds=seconds,
            id='connectivity_probe',
            max_instances=1,
            coalesce=True
        )
