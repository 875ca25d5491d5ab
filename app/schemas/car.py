# app/schemas/car.py
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Literal, Optional, Union
from uuid import uuid4


class CamelModel(BaseModel):
    """Базовая модель: snake_case в коде, camelCase в JSON экспорта"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CarImage(CamelModel):
    id: str = Field(default_factory=lambda: f"img-{uuid4().hex[:12]}")
    url: str
    alt: str = ""


class CarPrice(CamelModel):
    base: float = 0
    with_options: Optional[float] = None
    discount: Optional[float] = None
    special: Optional[float] = None

    @property
    def effective(self) -> float:
        if self.discount:
            return self.base - self.discount
        return self.base


class CarEngine(CamelModel):
    type: str = ""
    displacement: float = 0
    power: float = 0
    torque: float = 0
    fuel_type: str = ""


class CarTransmission(CamelModel):
    type: str = ""
    gears: int = 0


class CarDimensions(CamelModel):
    length: float = 0
    width: float = 0
    height: float = 0
    wheelbase: float = 0
    weight: float = 0
    trunk_volume: float = 0


class FuelConsumption(CamelModel):
    city: float = 0
    highway: float = 0
    combined: float = 0


class CarPerformance(CamelModel):
    acceleration: float = 0  # 0-100 км/ч, секунды
    top_speed: float = 0
    fuel_consumption: FuelConsumption = Field(default_factory=FuelConsumption)


class CarFeature(CamelModel):
    id: str = ""
    name: str
    category: str = ""
    is_standard: bool = True


class Car(CamelModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    brand: str = ""
    model: str = ""
    year: int = 0
    body_type: str = ""
    colors: List[str] = Field(default_factory=list)
    price: CarPrice = Field(default_factory=CarPrice)
    engine: CarEngine = Field(default_factory=CarEngine)
    transmission: CarTransmission = Field(default_factory=CarTransmission)
    drivetrain: str = ""
    dimensions: CarDimensions = Field(default_factory=CarDimensions)
    performance: CarPerformance = Field(default_factory=CarPerformance)
    features: List[CarFeature] = Field(default_factory=list)
    images: List[CarImage] = Field(default_factory=list)
    description: str = ""
    is_new: bool = False
    is_popular: Optional[bool] = None
    country: Optional[str] = None
    view_count: int = 0
    image_url: Optional[str] = None

    @property
    def thumbnail(self) -> Optional[str]:
        if self.image_url:
            return self.image_url
        return self.images[0].url if self.images else None


SortOption = Literal["popularity", "priceAsc", "priceDesc", "yearDesc", "yearAsc", "nameAsc", "nameDesc"]


class Range(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None


class CarFilter(CamelModel):
    brands: Optional[List[str]] = None
    models: Optional[List[str]] = None
    body_types: Optional[List[str]] = None
    price_range: Optional[Range] = None
    year_range: Optional[Range] = None
    fuel_types: Optional[List[str]] = None
    transmission_types: Optional[List[str]] = None
    is_new: Optional[bool] = None
    country: Optional[str] = None
    search: Optional[str] = None
    discount: bool = False
    sort_by: Optional[SortOption] = None
    limit: Optional[int] = None


class ImportResults(BaseModel):
    total: int = 0
    successful: int = 0
    failed: int = 0
    errors: List[str] = Field(default_factory=list)


# Результат удаления: Success | NotFound | Failure(reason)

class DeleteSuccess(BaseModel):
    kind: Literal["success"] = "success"
    car_id: str

    @property
    def ok(self) -> bool:
        return True


class DeleteNotFound(BaseModel):
    kind: Literal["not_found"] = "not_found"
    car_id: str

    @property
    def ok(self) -> bool:
        return False


class DeleteFailure(BaseModel):
    kind: Literal["failure"] = "failure"
    car_id: str
    reason: str

    @property
    def ok(self) -> bool:
        return False


DeleteResult = Union[DeleteSuccess, DeleteNotFound, DeleteFailure]


# Внешний каталог (импорт с сайта поставщика)

class ExternalCar(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)

    id: str
    brand: str = ""
    model: str = ""
    year: Optional[int] = None
    price: float = 0
    country: str = ""
    image_url: Optional[str] = None
    detail_url: Optional[str] = None


class ExternalCatalogState(CamelModel):
    loading: bool = False
    error: Optional[str] = None
    cars: List[ExternalCar] = Field(default_factory=list)
    logs: List[str] = Field(default_factory=list)
    blocked_sources: List[str] = Field(default_factory=list)
