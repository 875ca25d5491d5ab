# app/services/transformers.py - строки платформы <-> сущности
from app.schemas.car import Car, CarPrice, CarEngine, CarTransmission
from app.schemas.order import Order, OrderCar
from app.schemas.site import ChatMessage
from typing import Any, Dict


def vehicle_from_row(row: Dict[str, Any]) -> Car:
    return Car(
        id=str(row["id"]),
        brand=row.get("brand") or "",
        model=row.get("model") or "",
        year=row.get("year") or 0,
        body_type=row.get("body_type") or "",
        price=CarPrice(
            base=row.get("price") or 0,
            discount=row.get("price_discount"),
        ),
        engine=CarEngine(
            type=row.get("engine_type") or "",
            displacement=row.get("engine_capacity") or 0,
            power=row.get("engine_power") or 0,
            torque=row.get("engine_torque") or 0,
            fuel_type=row.get("engine_fuel_type") or "",
        ),
        transmission=CarTransmission(
            type=row.get("transmission_type") or "",
            gears=row.get("transmission_gears") or 0,
        ),
        drivetrain=row.get("drivetrain") or "",
        dimensions=row.get("dimensions") or {},
        performance=row.get("performance") or {},
        features=row.get("features") or [],
        colors=row.get("colors") or [],
        is_new=bool(row.get("is_new")),
        country=row.get("country"),
        image_url=row.get("image_url"),
        description=row.get("description") or "",
        view_count=row.get("view_count") or 0,
        images=row.get("images") or [],
    )


def vehicle_to_row(car: Car) -> Dict[str, Any]:
    # is_popular не хранится в таблице
    return {
        "id": car.id,
        "brand": car.brand,
        "model": car.model,
        "year": car.year,
        "body_type": car.body_type,
        "price": car.price.base,
        "price_discount": car.price.discount,
        "engine_type": car.engine.type,
        "engine_capacity": car.engine.displacement,
        "engine_power": car.engine.power,
        "engine_torque": car.engine.torque,
        "engine_fuel_type": car.engine.fuel_type,
        "transmission_type": car.transmission.type,
        "transmission_gears": car.transmission.gears,
        "drivetrain": car.drivetrain,
        "dimensions": car.dimensions.model_dump(by_alias=True),
        "performance": car.performance.model_dump(by_alias=True),
        "features": [f.model_dump(by_alias=True) for f in car.features],
        "colors": car.colors,
        "color": car.colors[0] if car.colors else None,
        "is_new": car.is_new,
        "country": car.country,
        "image_url": car.image_url,
        "description": car.description,
        "view_count": car.view_count,
        "images": [i.model_dump(by_alias=True) for i in car.images],
    }


def order_from_row(row: Dict[str, Any]) -> Order:
    vehicle = row.get("vehicles")
    car = None
    if vehicle:
        car = OrderCar(
            id=str(vehicle["id"]),
            brand=vehicle.get("brand") or "",
            model=vehicle.get("model") or "",
            thumbnail=vehicle.get("image_url"),
        )
    return Order(
        id=str(row["id"]),
        car_id=str(row["car_id"]),
        customer_name=row.get("customer_name") or "",
        customer_phone=row.get("customer_phone") or "",
        customer_email=row.get("customer_email") or "",
        message=row.get("message"),
        status=row.get("status"),
        created_at=row["created_at"],
        updated_at=row.get("updated_at"),
        car=car,
    )


def message_from_row(row: Dict[str, Any]) -> ChatMessage:
    return ChatMessage(
        id=str(row["id"]),
        user_id=row["user_id"],
        admin_id=row.get("admin_id"),
        content=row.get("content") or "",
        is_admin=bool(row.get("is_admin")),
        is_read=bool(row.get("is_read")),
        created_at=row["created_at"],
    )
