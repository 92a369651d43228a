"""Shared AsyncOpenAI client used by the AI title tier."""

from openai import AsyncOpenAI

from linkwise.core.config import settings

# One connection pool per process, reused across all title generations
_openai_client: AsyncOpenAI | None = None


def get_openai_client() -> AsyncOpenAI:
    """Return (or lazily create) the module-level AsyncOpenAI client.

    SDK retries are off; the AI tier is bounded by its own timeout and breaker.
    """
    global _openai_client
    if _openai_client is None:
        _openai_client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY, max_retries=0)
    return _openai_client
