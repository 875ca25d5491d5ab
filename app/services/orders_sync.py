# app/services/orders_sync.py - заказы: загрузка, статусы, новые заявки
from app.services.remote_client import RemoteDataClient, RemoteError, eq
from app.services.transformers import order_from_row
from app.schemas.order import Order, OrderCreate, OrderStatus, SubmitResult
from app.schemas.car import Car
from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)

ORDER_COLUMNS = "*,vehicles:car_id(id,brand,model,image_url)"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class OrdersSync:
    def __init__(self, remote: RemoteDataClient):
        self.remote = remote

    async def load_orders(self) -> List[Order]:
        """Все заказы с краткой карточкой авто, новые сверху. Ошибка -> []"""
        try:
            rows = await self.remote.select("orders", columns=ORDER_COLUMNS, order="created_at.desc")
        except RemoteError as e:
            logger.error(f"❌ Error loading orders: {e}")
            return []

        orders = []
        for row in rows:
            try:
                orders.append(order_from_row(row))
            except (KeyError, ValueError) as e:
                logger.warning(f"⚠️ Skipping malformed order row {row.get('id')}: {e}")
        logger.info(f"📦 Loaded {len(orders)} orders")
        return orders

    async def update_order_status(self, order_id: str, status: OrderStatus) -> bool:
        try:
            rows = await self.remote.update(
                "orders",
                {"status": OrderStatus(status).value, "updated_at": _now()},
                filters={"id": eq(order_id)}
            )
        except RemoteError as e:
            logger.error(f"❌ Error updating order {order_id} status: {e}")
            return False

        if not rows:
            logger.warning(f"⚠️ Order {order_id} not found for status update")
            return False
        logger.info(f"✅ Order {order_id} status -> {OrderStatus(status).value}")
        return True

    async def submit_order(self, request: OrderCreate, car: Optional[Car] = None) -> SubmitResult:
        """Заявка клиента. Сбой уведомления не ломает отправку заявки"""
        logger.info(f"📝 Submitting purchase request for car: {request.car_id}")
        now = _now()
        row = {
            "id": str(uuid4()),
            "car_id": request.car_id,
            "customer_name": request.customer_name,
            "customer_phone": request.customer_phone,
            "customer_email": request.customer_email,
            "message": request.message or "",
            "status": OrderStatus.NEW.value,
            "created_at": now,
            "updated_at": now,
        }

        try:
            saved = await self.remote.insert("orders", row)
        except RemoteError as e:
            logger.error(f"❌ Error submitting order: {e}")
            return SubmitResult(success=False, message=f"Ошибка при отправке заявки: {e.message}")

        order_id = saved[0]["id"] if saved else row["id"]
        await self.notify_admins(row, car)

        return SubmitResult(success=True, message="Заявка успешно отправлена", order_id=str(order_id))

    async def notify_admins(self, row: dict, car: Optional[Car] = None):
        payload = {
            "id": row["id"][:8],
            "customerName": row["customer_name"],
            "customerPhone": row["customer_phone"],
            "customerEmail": row["customer_email"],
            "createdAt": row["created_at"],
            "car": {
                "brand": car.brand if car else "Определяется...",
                "model": car.model if car else "Определяется...",
                "price": {"base": car.price.base} if car else None,
            },
        }
        try:
            await self.remote.invoke("telegram-notify", {"order": payload})
            logger.info(f"📱 Telegram notification requested for order {row['id']}")
        except RemoteError as e:
            logger.error(f"❌ Failed to send Telegram notification: {e}")
