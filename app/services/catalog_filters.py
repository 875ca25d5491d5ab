# app/services/catalog_filters.py - фильтрация и сортировка каталога
from app.schemas.car import Car, CarFilter
from typing import List


def apply_filters(cars: List[Car], car_filter: CarFilter) -> List[Car]:
    result = list(cars)
    f = car_filter

    if f.brands:
        result = [car for car in result if car.brand in f.brands]
    if f.models:
        result = [car for car in result if car.model in f.models]
    if f.body_types:
        result = [car for car in result if car.body_type in f.body_types]

    if f.price_range:
        low = f.price_range.min if f.price_range.min is not None else 0
        high = f.price_range.max if f.price_range.max is not None else float("inf")
        result = [car for car in result if low <= car.price.effective <= high]

    if f.year_range:
        low = f.year_range.min if f.year_range.min is not None else 0
        high = f.year_range.max if f.year_range.max is not None else float("inf")
        result = [car for car in result if low <= car.year <= high]

    if f.fuel_types:
        result = [car for car in result if car.engine.fuel_type in f.fuel_types]
    if f.transmission_types:
        result = [car for car in result if car.transmission.type in f.transmission_types]
    if f.is_new is not None:
        result = [car for car in result if car.is_new == f.is_new]
    if f.country:
        result = [car for car in result if car.country == f.country]

    if f.search:
        needle = f.search.lower()
        result = [car for car in result if needle in f"{car.brand} {car.model}".lower()]

    if f.discount:
        result = [car for car in result if car.price.discount and car.price.discount > 0]

    result = sort_cars(result, f.sort_by)

    if f.limit is not None:
        result = result[:f.limit]
    return result


def sort_cars(cars: List[Car], sort_by: str = None) -> List[Car]:
    if sort_by == "popularity":
        return sorted(cars, key=lambda car: car.view_count, reverse=True)
    if sort_by == "priceAsc":
        return sorted(cars, key=lambda car: car.price.effective)
    if sort_by == "priceDesc":
        return sorted(cars, key=lambda car: car.price.effective, reverse=True)
    if sort_by == "yearDesc":
        return sorted(cars, key=lambda car: car.year, reverse=True)
    if sort_by == "yearAsc":
        return sorted(cars, key=lambda car: car.year)
    if sort_by == "nameAsc":
        return sorted(cars, key=lambda car: f"{car.brand} {car.model}".lower())
    if sort_by == "nameDesc":
        return sorted(cars, key=lambda car: f"{car.brand} {car.model}".lower(), reverse=True)
    return cars
