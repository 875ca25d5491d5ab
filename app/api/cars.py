# app/api/cars.py - публичный каталог, избранное и сравнение
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from app.api.deps import get_cars_context
from app.schemas.car import Car, CarFilter, Range
from app.schemas.site import SiteSettings
from app.services.cars_context import CarsContext
from app.services.catalog_filters import apply_filters
from typing import List, Optional

router = APIRouter(prefix="/cars", tags=["cars"])


@router.get("/", response_model=List[Car])
async def get_cars(
        brand: Optional[List[str]] = Query(None),
        body_type: Optional[List[str]] = Query(None),
        fuel_type: Optional[List[str]] = Query(None),
        transmission: Optional[List[str]] = Query(None),
        price_min: Optional[float] = None,
        price_max: Optional[float] = None,
        year_min: Optional[int] = None,
        year_max: Optional[int] = None,
        is_new: Optional[bool] = None,
        country: Optional[str] = None,
        search: Optional[str] = None,
        discount: bool = False,
        sort_by: Optional[str] = None,
        limit: Optional[int] = None,
        context: CarsContext = Depends(get_cars_context)
):
    try:
        car_filter = CarFilter(
            brands=brand,
            body_types=body_type,
            fuel_types=fuel_type,
            transmission_types=transmission,
            price_range=Range(min=price_min, max=price_max) if price_min is not None or price_max is not None else None,
            year_range=Range(min=year_min, max=year_max) if year_min is not None or year_max is not None else None,
            is_new=is_new,
            country=country,
            search=search,
            discount=discount,
            sort_by=sort_by,
            limit=limit,
        )
    except ValueError as e:
        raise HTTPException(400, str(e))
    return apply_filters(context.cars, car_filter)


@router.get("/status")
async def get_catalog_status(context: CarsContext = Depends(get_cars_context)):
    return {
        "state": context.state.value,
        "loading": context.loading,
        "error": context.error,
        "is_online": context.is_online,
        "total": len(context.cars)
    }


@router.get("/favorites", response_model=List[Car])
async def get_favorite_cars(context: CarsContext = Depends(get_cars_context)):
    favorites = context.favorites
    return [car for car in context.cars if car.id in favorites]


@router.post("/favorites/{car_id}")
async def add_favorite(car_id: str, context: CarsContext = Depends(get_cars_context)):
    if not await context.add_to_favorites(car_id):
        raise HTTPException(502, "Не удалось сохранить избранное")
    return {"favorites": sorted(context.favorites)}


@router.delete("/favorites/{car_id}")
async def remove_favorite(car_id: str, context: CarsContext = Depends(get_cars_context)):
    if not await context.remove_from_favorites(car_id):
        raise HTTPException(502, "Не удалось сохранить избранное")
    return {"favorites": sorted(context.favorites)}


@router.get("/compare", response_model=List[Car])
async def get_compare_cars(context: CarsContext = Depends(get_cars_context)):
    cars = [context.get_car_by_id(car_id) for car_id in context.compare_cars]
    return [car for car in cars if car is not None]


@router.post("/compare/{car_id}")
async def add_compare(car_id: str, context: CarsContext = Depends(get_cars_context)):
    if not await context.add_to_compare(car_id):
        raise HTTPException(409, f"Можно сравнивать не более {context.compare_limit} автомобилей одновременно")
    return {"compare": context.compare_cars}


@router.delete("/compare/{car_id}")
async def remove_compare(car_id: str, context: CarsContext = Depends(get_cars_context)):
    await context.remove_from_compare(car_id)
    return {"compare": context.compare_cars}


@router.delete("/compare")
async def clear_compare(context: CarsContext = Depends(get_cars_context)):
    await context.clear_compare()
    return {"compare": []}


@router.get("/settings", response_model=SiteSettings)
async def get_site_settings(request: Request):
    """Публичные настройки сайта (название, контакты, соцсети)"""
    return request.app.state.site_settings


@router.get("/{car_id}", response_model=Car)
async def get_car(car_id: str, context: CarsContext = Depends(get_cars_context)):
    """Карточка автомобиля; каждый просмотр увеличивает счетчик"""
    car = await context.view_car(car_id)
    if car is None:
        raise HTTPException(404, "Car not found")
    return car
