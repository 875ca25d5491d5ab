# app/api/admin.py - админ-панель: вход, заказы, автомобили, импорт, чат
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from app.api.deps import get_admin_auth, get_cars_context, get_external_catalog, require_admin
from app.schemas.car import Car, DeleteResult, ExternalCar, ExternalCatalogState, ImportResults
from app.schemas.order import Order, OrderStatusUpdate
from app.schemas.site import ChatMessage, ChatMessageCreate, ExternalCatalogRequest, LoginRequest, SiteSettings
from app.services.admin_auth import AdminAuthService, SESSION_COOKIE_NAME, admin_menu
from app.services.cars_context import CarOperationError, CarsContext
from app.services.external_catalog_service import ExternalCatalogService
from app.services.chat_service import ChatService
from app.services.remote_client import RemoteError
from app.services.site_settings_service import SiteSettingsStore
from app.services.vehicle_service import ImageTooLargeError
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

# Вход доступен без сессии
auth_router = APIRouter(prefix="/admin", tags=["admin-auth"])

# Все остальное - только с действующей сессией
router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@auth_router.get("/login")
async def login_page():
    return {"message": "Вход в админ-панель", "fields": ["password"]}


@auth_router.post("/login")
async def login(payload: LoginRequest, response: Response,
                auth: AdminAuthService = Depends(get_admin_auth),
                context: CarsContext = Depends(get_cars_context)):
    token = auth.login(payload.password)
    if token is None:
        context.notify("Ошибка входа", "Неверный пароль", "destructive")
        raise HTTPException(401, "Неверный пароль")

    response.set_cookie(
        SESSION_COOKIE_NAME, token,
        httponly=True, samesite="lax",
        max_age=int(auth.ttl.total_seconds())
    )
    context.notify("Вход выполнен", "Добро пожаловать в админ-панель")
    return {"message": "Вход выполнен"}


@auth_router.post("/logout")
async def logout(request: Request, response: Response,
                 auth: AdminAuthService = Depends(get_admin_auth),
                 context: CarsContext = Depends(get_cars_context)):
    auth.logout(request.cookies.get(SESSION_COOKIE_NAME))
    response.delete_cookie(SESSION_COOKIE_NAME)
    context.notify("Выход выполнен", "Вы вышли из админ-панели")
    return {"message": "Выход выполнен"}


@router.get("/")
async def dashboard(context: CarsContext = Depends(get_cars_context)):
    """📊 Сводка для главной страницы админки"""
    return {
        "cars_total": len(context.cars),
        "orders_total": len(context.orders),
        "new_orders": context.new_orders_count,
        "is_online": context.is_online,
        "state": context.state.value
    }


@router.get("/navigation")
async def navigation(context: CarsContext = Depends(get_cars_context)):
    return {"items": admin_menu(context.new_orders_count)}


@router.get("/notifications")
async def notifications(context: CarsContext = Depends(get_cars_context)):
    return [n.model_dump(mode="json") for n in context.notifications]


@router.get("/network")
async def network_status(context: CarsContext = Depends(get_cars_context)):
    return {"is_online": context.is_online, "resync_count": context.resync_count}


@router.post("/refresh", response_model=List[Car])
async def refresh_cars(context: CarsContext = Depends(get_cars_context)):
    """🔄 Ручное обновление каталога (выводит из состояния ошибки)"""
    return await context.reload_cars()


# Заказы

@router.get("/orders", response_model=List[Order])
async def list_orders(status: Optional[str] = None, context: CarsContext = Depends(get_cars_context)):
    orders = context.orders
    if status:
        orders = [order for order in orders if order.status.value == status]
    return orders


@router.post("/orders/reload", response_model=List[Order])
async def reload_orders(context: CarsContext = Depends(get_cars_context)):
    return await context.reload_orders()


@router.put("/orders/{order_id}/status")
async def process_order(order_id: str, payload: OrderStatusUpdate,
                        context: CarsContext = Depends(get_cars_context)):
    if not await context.process_order(order_id, payload.status):
        raise HTTPException(502, "Не удалось обновить статус заказа")
    return {"id": order_id, "status": payload.status.value}


# Автомобили

@router.get("/cars", response_model=List[Car])
async def list_cars(context: CarsContext = Depends(get_cars_context)):
    return context.cars


@router.post("/cars", response_model=Car)
async def add_car(payload: dict, context: CarsContext = Depends(get_cars_context)):
    try:
        return await context.add_car(payload)
    except CarOperationError as e:
        logger.error(f"❌ Add car failed: {e}")
        raise HTTPException(400, str(e))


@router.put("/cars/{car_id}", response_model=Car)
async def update_car(car_id: str, car: Car, context: CarsContext = Depends(get_cars_context)):
    if car.id != car_id:
        car = car.model_copy(update={"id": car_id})
    try:
        return await context.update_car(car)
    except CarOperationError as e:
        logger.error(f"❌ Update car failed: {e}")
        raise HTTPException(502, str(e))


@router.delete("/cars/{car_id}", response_model=DeleteResult)
async def delete_car(car_id: str, context: CarsContext = Depends(get_cars_context)):
    result = await context.delete_car(car_id)
    status_code = 200 if result.ok else (404 if result.kind == "not_found" else 502)
    return JSONResponse(result.model_dump(), status_code=status_code)


@router.put("/cars/{car_id}/images")
async def upload_car_image(car_id: str, filename: str, request: Request,
                           context: CarsContext = Depends(get_cars_context)):
    """Тело запроса - сырые байты изображения"""
    content = await request.body()
    content_type = request.headers.get("content-type", "application/octet-stream")
    try:
        image = await context.upload_car_image(car_id, filename, content, content_type)
    except ImageTooLargeError as e:
        raise HTTPException(413, str(e))
    except RemoteError as e:
        logger.error(f"❌ Image upload failed for {car_id}: {e}")
        raise HTTPException(502, f"Ошибка загрузки изображения: {e.message}")
    return image.model_dump(by_alias=True)


# Импорт / экспорт

@router.get("/export")
async def export_cars(context: CarsContext = Depends(get_cars_context)):
    return Response(
        context.export_cars_data(),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="cars-export.json"'}
    )


@router.post("/import", response_model=ImportResults)
async def import_cars(request: Request, context: CarsContext = Depends(get_cars_context)):
    """Тело запроса - JSON-массив автомобилей; каталог заменяется целиком"""
    data = (await request.body()).decode("utf-8", errors="replace")
    return await context.import_cars_data(data)


@router.get("/external-catalog", response_model=ExternalCatalogState)
async def external_catalog_state(catalog: ExternalCatalogService = Depends(get_external_catalog)):
    return catalog.state


@router.post("/external-catalog/import", response_model=List[ExternalCar])
async def import_external_catalog(catalog: ExternalCatalogService = Depends(get_external_catalog)):
    """📥 Импорт всех разделов внешнего каталога"""
    cars = await catalog.import_all()
    if cars is None:
        raise HTTPException(502, catalog.state.error)
    return cars


@router.post("/external-catalog/fetch", response_model=List[ExternalCar])
async def fetch_external_catalog(payload: ExternalCatalogRequest,
                                 catalog: ExternalCatalogService = Depends(get_external_catalog)):
    cars = await catalog.fetch_catalog(payload.url)
    if cars is None:
        raise HTTPException(502, catalog.state.error or "Получены данные в неизвестном формате")
    return cars


# Настройки сайта

@router.get("/settings", response_model=SiteSettings)
async def get_settings(request: Request):
    return request.app.state.site_settings


@router.put("/settings", response_model=SiteSettings)
async def save_settings(payload: SiteSettings, request: Request,
                        context: CarsContext = Depends(get_cars_context)):
    try:
        saved = await SiteSettingsStore(request.app.state.session_factory).save(payload)
    except Exception as e:
        logger.error(f"❌ Error saving site settings: {e}")
        raise HTTPException(500, f"Ошибка сохранения настроек: {str(e)}")
    request.app.state.site_settings = saved
    context.notify("Настройки сохранены", "Настройки сайта успешно обновлены")
    return saved


# Чат

@router.get("/chat", response_model=List[ChatMessage])
async def list_chat_messages(user_id: Optional[str] = None,
                             context: CarsContext = Depends(get_cars_context)):
    return await ChatService(context.remote).list_messages(user_id)


@router.post("/chat", response_model=ChatMessage)
async def reply_to_chat(payload: ChatMessageCreate, context: CarsContext = Depends(get_cars_context)):
    message = await ChatService(context.remote).send_message(payload.user_id, payload.content, admin_id="admin")
    if message is None:
        raise HTTPException(502, "Не удалось отправить сообщение")
    return message


@router.post("/chat/{user_id}/read")
async def mark_chat_read(user_id: str, context: CarsContext = Depends(get_cars_context)):
    return {"success": await ChatService(context.remote).mark_read(user_id)}
