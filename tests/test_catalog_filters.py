from __future__ import annotations

from app.schemas.car import Car, CarFilter, Range
from app.services.catalog_filters import apply_filters, sort_cars


def _car(car_id: str, brand: str, model: str, year: int, price: float, **extra) -> Car:
    return Car.model_validate({
        "id": car_id, "brand": brand, "model": model, "year": year,
        "price": {"base": price, "discount": extra.pop("discount", None)},
        **extra,
    })


CARS = [
    _car("1", "Toyota", "Camry", 2022, 3_000_000, bodyType="sedan", viewCount=10),
    _car("2", "BMW", "X5", 2024, 9_000_000, bodyType="suv", viewCount=50, discount=500_000),
    _car("3", "Kia", "Rio", 2019, 1_500_000, bodyType="sedan", isNew=False, viewCount=3),
    _car("4", "Toyota", "RAV4", 2023, 4_000_000, bodyType="suv", isNew=True, viewCount=20),
]


def _ids(cars) -> list:
    return [car.id for car in cars]


def test_brand_and_body_type_filters() -> None:
    assert _ids(apply_filters(CARS, CarFilter(brands=["Toyota"]))) == ["1", "4"]
    assert _ids(apply_filters(CARS, CarFilter(brands=["Toyota"], body_types=["suv"]))) == ["4"]


def test_price_range_uses_discounted_price() -> None:
    result = apply_filters(CARS, CarFilter(price_range=Range(min=4_000_000, max=8_600_000)))

    assert _ids(result) == ["2", "4"]


def test_year_range_and_search() -> None:
    assert _ids(apply_filters(CARS, CarFilter(year_range=Range(min=2022)))) == ["1", "2", "4"]
    assert _ids(apply_filters(CARS, CarFilter(search="toyota rav"))) == ["4"]


def test_discount_and_limit() -> None:
    assert _ids(apply_filters(CARS, CarFilter(discount=True))) == ["2"]
    assert _ids(apply_filters(CARS, CarFilter(sort_by="popularity", limit=2))) == ["2", "4"]


def test_sort_options() -> None:
    assert _ids(sort_cars(CARS, "priceAsc")) == ["3", "1", "4", "2"]
    assert _ids(sort_cars(CARS, "yearDesc")) == ["2", "4", "1", "3"]
    assert _ids(sort_cars(CARS, "nameAsc")) == ["2", "3", "1", "4"]
    assert _ids(sort_cars(CARS, None)) == ["1", "2", "3", "4"]


def test_filter_accepts_camel_case_payload() -> None:
    car_filter = CarFilter.model_validate({"bodyTypes": ["sedan"], "sortBy": "priceDesc"})

    assert _ids(apply_filters(CARS, car_filter)) == ["1", "3"]
