"""Helpers for creating OpenAI clients."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from openai import AsyncOpenAI

from concierge.core.config import Settings


@asynccontextmanager
async def async_openai_client(settings: Settings) -> AsyncIterator[AsyncOpenAI]:
    """Yield an `AsyncOpenAI` client configured from settings and ensure cleanup."""

    client = AsyncOpenAI(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout=settings.openai_request_timeout,
        max_retries=0,
    )
    try:
        yield client
    finally:
        await client.close()
