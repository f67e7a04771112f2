"""Tests for the persona chat service."""
from __future__ import annotations

import json
from contextlib import asynccontextmanager
from types import SimpleNamespace

import pytest

pytestmark = pytest.mark.anyio("asyncio")

from concierge.core.config import Settings
from concierge.schemas.ask import AskRequest
from concierge.services import ask as ask_module
from concierge.services import prompts
from concierge.services.ask import AskService
from concierge.services.skin_report import ReportConfigurationError, SkinReportService


class _StubCompletions:
    def __init__(self, replies: list[str]) -> None:
        self._replies = list(replies)
        self.calls: list[dict] = []

    async def create(self, **kwargs: object):  # type: ignore[override]
        self.calls.append(kwargs)
        content = self._replies.pop(0)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class _StubOpenAI:
    def __init__(self, replies: list[str]) -> None:
        self.chat = SimpleNamespace(completions=_StubCompletions(replies))


def _install(monkeypatch: pytest.MonkeyPatch, client: _StubOpenAI) -> None:
    @asynccontextmanager
    async def fake_client(_: Settings):
        yield client

    monkeypatch.setattr(ask_module, "async_openai_client", fake_client)


def _service(settings: Settings) -> AskService:
    return AskService(settings, reports=SkinReportService(settings))


def _settings(**overrides: object) -> Settings:
    values = {"openai_api_key": "test", "openai_retry_backoff_seconds": 0}
    values.update(overrides)
    return Settings(_env_file=None, **values)


async def test_first_reply_carries_disclaimer(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _StubOpenAI(["Gentle cleansing helps."])
    _install(monkeypatch, client)

    request = AskRequest.model_validate(
        {"messages": [{"role": "user", "content": "How do I calm redness?"}], "isFirstReply": True}
    )
    result = await _service(_settings()).reply(request)

    assert result.reply.startswith(prompts.FIRST_REPLY_DISCLAIMER)
    assert result.reply.endswith("Gentle cleansing helps.")
    assert not result.vision_used
    call = client.chat.completions.calls[0]
    assert call["temperature"] == 0.7
    assert call["messages"][0]["role"] == "system"
    assert call["messages"][-1] == {"role": "user", "content": "How do I calm redness?"}


async def test_selfie_adds_vision_context(monkeypatch: pytest.MonkeyPatch) -> None:
    vision = {"fitzpatrickType": 2, "skinType": "dry", "raw": {"eyeColor": "green"}}
    client = _StubOpenAI([json.dumps(vision), "Hydration first."])
    _install(monkeypatch, client)

    request = AskRequest.model_validate(
        {
            "messages": [
                {"role": "user", "content": "Hi"},
                {"role": "assistant", "content": "Hello!"},
                {"role": "user", "content": "What about my dryness?"},
            ],
            "photoDataUrl": "https://cdn.fake/selfie.jpg",
        }
    )
    result = await _service(_settings()).reply(request)

    assert result.reply == "Hydration first."
    assert result.vision_used
    assert result.vision is not None and result.vision.skin_type == "dry"
    chat_messages = client.chat.completions.calls[1]["messages"]
    assert chat_messages[1]["role"] == "system"
    assert "green" in chat_messages[1]["content"]
    assert len(chat_messages) == 5


async def test_reply_requires_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, _StubOpenAI([]))
    request = AskRequest.model_validate({"messages": [{"role": "user", "content": "Hi"}]})

    with pytest.raises(ReportConfigurationError):
        await _service(_settings(openai_api_key=None)).reply(request)
