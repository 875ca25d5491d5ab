# app/main.py - сервис каталога автосалона
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from contextlib import asynccontextmanager
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from app.config import settings
from app.database import init_db, async_session
from app.api.admin import auth_router as admin_auth_router, router as admin_router
from app.api.blog import router as blog_router
from app.api.cars import router as cars_router
from app.api.functions import router as functions_router
from app.api.orders import router as orders_router
from app.services.admin_auth import AdminAuthService, AdminLoginRequired, LOGIN_PATH
from app.services.ai_assistant_service import AIAssistantService
from app.services.cars_context import CarsContext
from app.services.external_catalog_service import ExternalCatalogService
from app.services.network_monitor import ConnectivityProbe, NetworkStatusMonitor
from app.services.remote_client import RemoteDataClient
from app.services.site_settings_service import SiteSettingsStore
from app.services.telegram_chat_service import TelegramChatBridge
from app.services.telegram_feed_service import TelegramFeedService
from app.services.telegram_service import TelegramService
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await init_db()
    logger.info("🗄️ Локальное хранилище инициализировано")

    remote = RemoteDataClient()
    monitor = NetworkStatusMonitor(initial_online=await remote.ping())
    context = CarsContext(remote, async_session, monitor)

    app.state.session_factory = async_session
    app.state.site_settings = await SiteSettingsStore(async_session).load()
    app.state.admin_auth = AdminAuthService()
    app.state.telegram_service = TelegramService()
    app.state.telegram_chat = TelegramChatBridge(remote, app.state.telegram_service)
    app.state.ai_assistant = AIAssistantService()
    app.state.telegram_feed = TelegramFeedService(remote)
    app.state.cars_context = context
    app.state.external_catalog = ExternalCatalogService(remote, context.notify)

    if monitor.is_online:
        await context.vehicles.ensure_bucket()
    else:
        logger.warning("📴 Платформа недоступна при старте, работаем с локальными данными")
    await context.initialize()

    probe = ConnectivityProbe(monitor, remote.ping)
    probe.schedule(scheduler, settings.connectivity_check_seconds)
    scheduler.start()
    logger.info(f"⏰ Scheduler запущен: проверка сети каждые {settings.connectivity_check_seconds} секунд")

    yield

    # Shutdown
    scheduler.shutdown()
    await context.close()
    await remote.close()
    await app.state.telegram_service.close()


app = FastAPI(
    title="AutoDeal Catalog",
    description="Каталог автосалона: автомобили, избранное, заказы, блог и админ-панель",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AdminLoginRequired)
async def admin_login_required_handler(request: Request, exc: AdminLoginRequired):
    logger.info(f"🔒 Unauthenticated access to {request.url.path}, redirecting to login")
    return RedirectResponse(LOGIN_PATH, status_code=303)


# Подключаем роутеры
app.include_router(cars_router)
app.include_router(orders_router)
app.include_router(blog_router)
app.include_router(admin_auth_router)
app.include_router(admin_router)
app.include_router(functions_router)


@app.get("/")
async def root():
    return {
        "message": "AutoDeal Catalog работает",
        "version": "1.0.0",
        "features": [
            "catalog",
            "favorites",
            "compare",
            "orders",
            "blog_ai_assistant",
            "telegram_feed",
            "telegram_chat",
            "external_catalog_import",
            "admin_panel"
        ]
    }


@app.get("/health")
async def health(request: Request):
    context = getattr(request.app.state, "cars_context", None)
    return {
        "status": "OK",
        "is_online": context.is_online if context else None,
        "cars": len(context.cars) if context else 0,
        "endpoints": {
            "cars": "/cars",
            "orders": "/orders",
            "blog": "/blog",
            "admin": "/admin",
            "functions": "/functions/v1"
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000)
