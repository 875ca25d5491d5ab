from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services.ai_assistant_service import AIAssistantService, FALLBACK_ANSWER
from app.services.telegram_service import TelegramService


@pytest.fixture()
def client():
    app.state.telegram_service = TelegramService(token="", default_chat_id="")
    app.state.ai_assistant = AIAssistantService(api_key="")
    return TestClient(app)


def test_blog_assistant_requires_question(client) -> None:
    response = client.post("/functions/v1/blog-ai-assistant", json={})

    assert response.status_code == 400
    assert "error" in response.json()


def test_blog_assistant_answers_with_fallback_without_key(client) -> None:
    response = client.post("/functions/v1/blog-ai-assistant", json={"question": "Можно ли в кредит?"})

    assert response.status_code == 200
    assert response.json() == {"answer": FALLBACK_ANSWER, "question": "Можно ли в кредит?"}


def test_blog_assistant_uses_model_output(client) -> None:
    def openai(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer sk-test"
        return httpx.Response(200, json={
            "output": [
                {"type": "reasoning", "summary": []},
                {"type": "message", "content": [{"type": "output_text", "text": "Да, кредит доступен."}]},
            ]
        })

    app.state.ai_assistant = AIAssistantService(api_key="sk-test", transport=httpx.MockTransport(openai))

    response = client.post("/functions/v1/blog-ai-assistant", json={"question": "Кредит?"})

    assert response.json()["answer"] == "Да, кредит доступен."


def test_blog_assistant_falls_back_on_api_error(client) -> None:
    app.state.ai_assistant = AIAssistantService(
        api_key="sk-test",
        transport=httpx.MockTransport(lambda request: httpx.Response(429, json={"error": "rate limited"}))
    )

    response = client.post("/functions/v1/blog-ai-assistant", json={"question": "Кредит?"})

    assert response.status_code == 200
    assert response.json()["answer"] == FALLBACK_ANSWER


def test_telegram_notify_requires_order(client) -> None:
    response = client.post("/functions/v1/telegram-notify", json={"adminChatIds": ["1"]})

    assert response.status_code == 400


def test_telegram_notify_reports_missing_token(client) -> None:
    response = client.post("/functions/v1/telegram-notify", json={"order": {"id": "abc"}, "adminChatIds": ["1"]})

    assert response.status_code == 500
    assert "TELEGRAM_BOT_TOKEN" in response.json()["error"]


def test_telegram_notify_reports_missing_chat_ids() -> None:
    app.state.telegram_service = TelegramService(token="123:abc", default_chat_id="")
    client = TestClient(app)

    response = client.post("/functions/v1/telegram-notify", json={"order": {"id": "abc"}})

    assert response.status_code == 500
    assert response.json()["error"] == "Admin chat IDs are required for notification"


def test_telegram_feed_reports_missing_token(client) -> None:
    response = client.post("/functions/v1/telegram-feed", json={"channelName": "VoeAVTO"})

    assert response.status_code == 500
    assert "TELEGRAM_BOT_TOKEN" in response.json()["error"]


def test_telegram_feed_returns_requested_page(monkeypatch) -> None:
    service = TelegramService(token="123:abc", default_chat_id="")
    calls = []

    async def fake_fetch(channel_name, limit=12, offset=0):
        calls.append((channel_name, limit, offset))
        return {"posts": [{"id": 5, "date": 1700000000, "text": "post", "photoUrl": None}], "total": 6, "hasMore": False}

    monkeypatch.setattr(service, "fetch_channel_posts", fake_fetch)
    app.state.telegram_service = service
    client = TestClient(app)

    response = client.post("/functions/v1/telegram-feed", json={"limit": 5, "offset": 5})

    assert response.status_code == 200
    assert response.json()["total"] == 6
    assert response.headers["access-control-allow-origin"] == "*"
    assert calls == [("VoeAVTO", 5, 5)]
