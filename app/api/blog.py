# app/api/blog.py - блог: вопрос AI-ассистенту и лента Telegram
from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import ValidationError
from app.schemas.site import AskRequest, AskResponse, TelegramFeedPage
from app.services.ai_assistant_service import BlogAskClient
from app.services.remote_client import RemoteError
from app.services.telegram_feed_service import FEED_ERROR, TelegramFeedService
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blog", tags=["blog"])


@router.post("/ask", response_model=AskResponse)
async def ask_assistant(payload: AskRequest, request: Request):
    if not payload.question or not payload.question.strip():
        raise HTTPException(400, "Вопрос не указан")

    client = BlogAskClient(request.app.state.cars_context.remote)
    try:
        answer = await client.ask(payload.question.strip())
    except RemoteError as e:
        raise HTTPException(502, f"Не удалось получить ответ: {e.message}")
    return AskResponse(answer=answer, question=payload.question)


@router.get("/telegram", response_model=TelegramFeedPage)
async def telegram_feed(request: Request, offset: int = Query(0, ge=0)):
    """Страница ленты по смещению; следующую страницу клиент запрашивает сам"""
    feed: TelegramFeedService = request.app.state.telegram_feed
    try:
        return await feed.fetch_page(offset)
    except (RemoteError, ValidationError) as e:
        logger.error(f"❌ Error serving Telegram feed at offset {offset}: {e}")
        raise HTTPException(502, FEED_ERROR)
