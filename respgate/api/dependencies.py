"""
respgate - API Dependencies

Shared FastAPI dependencies: the upstream client, the event dispatcher
and the usage estimator. Tests swap these through
``app.dependency_overrides``.
"""

from typing import Optional

from fastapi import HTTPException
from openai import AsyncOpenAI

from ..config import get_config
from ..streaming.dispatcher import EventDispatcher
from ..usage.extractor import UsageEstimator


_client: Optional[AsyncOpenAI] = None
_dispatcher: Optional[EventDispatcher] = None
_usage: Optional[UsageEstimator] = None


def get_openai_client() -> AsyncOpenAI:
    """
    Get the shared upstream client.

    Raises:
        HTTPException: 503 when no API key is configured
    """
    global _client
    if _client is None:
        config = get_config()
        if not config.openai_api_key:
            raise HTTPException(status_code=503, detail="OpenAI API key is not configured")
        _client = AsyncOpenAI(
            api_key=config.openai_api_key,
            base_url=config.openai_base_url,
            timeout=config.timeout_seconds,
            max_retries=config.max_retries,
        )
    return _client


def get_usage_estimator() -> UsageEstimator:
    global _usage
    if _usage is None:
        _usage = UsageEstimator()
    return _usage


def get_dispatcher() -> EventDispatcher:
    """Get the shared dispatcher. Handlers keep no per-request state."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = EventDispatcher(usage=get_usage_estimator())
    return _dispatcher


async def close_openai_client() -> None:
    global _client
    if _client is not None:
        await _client.close()
        _client = None


def reset_dependencies() -> None:
    """Drop cached singletons (for testing)."""
    global _client, _dispatcher, _usage
    _client = None
    _dispatcher = None
    _usage = None
