# app/schemas/order.py
from pydantic import Field, field_validator
from app.schemas.car import CamelModel
from datetime import datetime
from enum import Enum
from typing import Optional


class OrderStatus(str, Enum):
    NEW = "new"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderCar(CamelModel):
    """Минимальная проекция автомобиля в списке заказов"""
    id: str
    brand: str = ""
    model: str = ""
    thumbnail: Optional[str] = None


class Order(CamelModel):
    id: str
    car_id: str
    customer_name: str
    customer_phone: str
    customer_email: str = ""
    message: Optional[str] = None
    status: OrderStatus = OrderStatus.NEW
    created_at: datetime
    updated_at: Optional[datetime] = None
    car: Optional[OrderCar] = None

    @field_validator("status", mode="before")
    @classmethod
    def _legacy_status(cls, value):
        # старые записи хранят "canceled"
        if value == "canceled":
            return OrderStatus.CANCELLED
        return value or OrderStatus.NEW


class OrderCreate(CamelModel):
    car_id: str
    customer_name: str = Field(min_length=1)
    customer_phone: str = Field(min_length=1)
    customer_email: str = ""
    message: Optional[str] = None


class OrderStatusUpdate(CamelModel):
    status: OrderStatus


class SubmitResult(CamelModel):
    success: bool
    message: str
    order_id: Optional[str] = None
