# app/api/functions.py - серверные функции платформы (telegram-notify, telegram-feed, telegram-chat, blog-ai-assistant)
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from aiogram.exceptions import TelegramAPIError
from app.config import settings
from app.services.ai_assistant_service import AIAssistantService
from app.services.remote_client import RemoteError
from app.services.telegram_chat_service import TelegramChatBridge, TelegramChatError
from app.services.telegram_service import TelegramConfigError, TelegramService
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions/v1", tags=["functions"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code, headers=CORS_HEADERS)


async def _read_json(request: Request):
    try:
        return await request.json()
    except ValueError:
        return None


@router.options("/{function_name}")
async def preflight(function_name: str):
    return JSONResponse("ok", headers=CORS_HEADERS)


@router.post("/telegram-notify")
async def telegram_notify(request: Request):
    """📱 Рассылка уведомления о новом заказе администраторам"""
    body = await _read_json(request)
    if not isinstance(body, dict) or not isinstance(body.get("order"), dict):
        return _error("Order data is required", 400)

    telegram: TelegramService = request.app.state.telegram_service
    try:
        results = await telegram.send_order_notification(body["order"], body.get("adminChatIds"))
    except TelegramConfigError as e:
        logger.error(f"❌ Telegram notify configuration error: {e}")
        return _error(str(e), 500)

    sent = sum(1 for result in results if result["success"])
    logger.info(f"📱 Order notification delivered to {sent}/{len(results)} chats")
    return JSONResponse(
        {"message": "Notifications sent", "results": results},
        headers=CORS_HEADERS
    )


@router.post("/blog-ai-assistant")
async def blog_ai_assistant(request: Request):
    """🤖 Ответ на вопрос посетителя блога"""
    body = await _read_json(request)
    question = body.get("question") if isinstance(body, dict) else None
    if not isinstance(question, str) or not question.strip():
        return _error("Вопрос не указан", 400)

    assistant: AIAssistantService = request.app.state.ai_assistant
    answer = await assistant.answer(question.strip())
    return JSONResponse({"answer": answer, "question": question}, headers=CORS_HEADERS)


@router.post("/telegram-feed")
async def telegram_feed(request: Request):
    """📰 Посты Telegram-канала с пагинацией"""
    body = await _read_json(request)
    body = body if isinstance(body, dict) else {}
    channel_name = body.get("channelName") or settings.telegram_channel_name
    try:
        limit = int(body.get("limit", 12))
        offset = int(body.get("offset", 0))
    except (TypeError, ValueError):
        return _error("limit and offset must be numbers", 400)

    telegram: TelegramService = request.app.state.telegram_service
    try:
        page = await telegram.fetch_channel_posts(channel_name, limit=limit, offset=max(offset, 0))
    except (TelegramConfigError, TelegramAPIError) as e:
        logger.error(f"❌ Error in telegram-feed function: {e}")
        return _error(str(e), 500)
    return JSONResponse(page, headers=CORS_HEADERS)


@router.post("/telegram-chat")
async def telegram_chat(request: Request):
    """💬 Мост чата: webhook от Telegram, ответы из админки, регистрация webhook"""
    body = await _read_json(request)
    if not isinstance(body, dict):
        return JSONResponse({"success": False, "error": "Request body is required"}, status_code=400,
                            headers=CORS_HEADERS)

    bridge: TelegramChatBridge = request.app.state.telegram_chat
    try:
        result = await bridge.handle(body.get("action"), body.get("data") or {})
    except (TelegramConfigError, TelegramChatError, TelegramAPIError, RemoteError) as e:
        logger.error(f"❌ Error in telegram-chat function: {e}")
        return JSONResponse({"success": False, "error": str(e)}, status_code=500, headers=CORS_HEADERS)
    return JSONResponse({"success": True, "result": result}, headers=CORS_HEADERS)
