# app/services/ai_assistant_service.py - ответы на вопросы читателей блога
import httpx
from app.config import settings
from app.services.remote_client import RemoteDataClient, RemoteError
from typing import Dict
import logging

logger = logging.getLogger(__name__)

FALLBACK_ANSWER = (
    "Спасибо за ваш вопрос! Для получения более подробной информации по интересующей вас теме, "
    "рекомендуем связаться с нашими менеджерами по телефону или посетить наш автосалон. "
    "Мы будем рады помочь вам с выбором автомобиля и ответить на все ваши вопросы."
)


class AIAssistantService:
    """Серверная часть функции blog-ai-assistant"""

    def __init__(self, api_key: str = None, model: str = None, transport: httpx.AsyncBaseTransport = None):
        self.api_key = settings.openai_api_key if api_key is None else api_key
        self.model = model or settings.openai_model
        self.base_url = "https://api.openai.com/v1"
        self.transport = transport

    async def answer(self, question: str) -> str:
        if not self.api_key:
            logger.info("🤖 No OpenAI key configured, returning fallback answer")
            return FALLBACK_ANSWER

        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/responses",
                    headers={
                        "Content-Type": "application/json",
                        "Authorization": f"Bearer {self.api_key}"
                    },
                    json={
                        "model": self.model,
                        "input": self._build_input(question)
                    },
                    timeout=60.0
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ Blog assistant request failed: {e}")
            return FALLBACK_ANSWER

        if response.status_code != 200:
            logger.error(f"❌ Blog assistant API Error {response.status_code}: {response.text[:200]}")
            return FALLBACK_ANSWER

        return self._extract_response_text(response.json()) or FALLBACK_ANSWER

    @staticmethod
    def _build_input(question: str) -> str:
        return (
            "Ты консультант автосалона. Кратко и дружелюбно ответь на вопрос посетителя блога "
            "о покупке, кредите, страховке, гарантии, тест-драйве, трейд-ин или доставке автомобиля. "
            "Не придумывай конкретные цены и ставки.\n\n"
            f"Вопрос: {question}"
        )

    @staticmethod
    def _extract_response_text(api_response: Dict) -> str:
        if isinstance(api_response.get("output_text"), str):
            return api_response["output_text"]

        for output_item in api_response.get("output") or []:
            if isinstance(output_item, dict) and output_item.get("type") == "message":
                for content_item in output_item.get("content") or []:
                    if isinstance(content_item, dict) and "text" in content_item:
                        return str(content_item["text"])
        return ""


class BlogAskClient:
    """Клиентская сторона: виджет блога вызывает функцию на платформе"""

    def __init__(self, remote: RemoteDataClient):
        self.remote = remote

    async def ask(self, question: str) -> str:
        try:
            data = await self.remote.invoke("blog-ai-assistant", {"question": question})
        except RemoteError as e:
            logger.error(f"❌ Error invoking blog-ai-assistant: {e}")
            raise
        return (data or {}).get("answer") or FALLBACK_ANSWER
