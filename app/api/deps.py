# app/api/deps.py - общие зависимости роутеров
from fastapi import Request
from app.services.admin_auth import AdminAuthService, AdminLoginRequired, SESSION_COOKIE_NAME
from app.services.cars_context import CarsContext
from app.services.external_catalog_service import ExternalCatalogService


def get_cars_context(request: Request) -> CarsContext:
    return request.app.state.cars_context


def get_admin_auth(request: Request) -> AdminAuthService:
    return request.app.state.admin_auth


def require_admin(request: Request):
    """Гейт для /admin/*: без сессии - редирект на страницу входа"""
    auth = get_admin_auth(request)
    if not auth.is_valid(request.cookies.get(SESSION_COOKIE_NAME)):
        raise AdminLoginRequired()


def get_external_catalog(request: Request) -> ExternalCatalogService:
    return request.app.state.external_catalog
