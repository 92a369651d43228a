"""Generative title synthesis through OpenAI chat completions."""

import structlog

from linkwise.core.config import settings
from linkwise.core.constants import Enrichment
from linkwise.core.openai_client import get_openai_client
from linkwise.core.retry import RetryPolicies, with_retry

logger = structlog.get_logger(__name__)

_TITLE_PROMPT = """Given this URL from {domain}, generate a concise, accurate headline (5-12 words) that describes what the article is likely about.

URL: {url}

Rules:
- Be specific, avoid generic titles
- Use title case
- Do not include the publication name
- If you cannot determine a reasonable headline, respond with exactly "UNKNOWN"

Respond with only the headline, nothing else."""


async def chat_completion(
    messages: list[dict],
    model: str | None = None,
    temperature: float = 0.0,
    max_tokens: int | None = None,
) -> str:
    """Thin wrapper for OpenAI chat completions, returning the message content."""
    client = get_openai_client()
    try:
        response = await client.chat.completions.create(
            model=model or settings.TITLE_MODEL,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return (response.choices[0].message.content or "").strip()
    except Exception as exc:
        logger.error("llm.chat_completion_failed", error=str(exc))
        raise


def _clean_headline(raw: str) -> str:
    return raw.strip().strip("\"'“”‘’").strip()


async def generate_title(url: str, domain: str) -> str | None:
    """Headline guessed from the URL and domain alone, or None when the model declines."""
    if not settings.OPENAI_API_KEY:
        return None

    messages = [{"role": "user", "content": _TITLE_PROMPT.format(domain=domain, url=url)}]
    raw = await with_retry(
        lambda: chat_completion(messages, temperature=0.3, max_tokens=50),
        {"service": "llm", "operation": "generate_title", "url": url[:100]},
        RetryPolicies.LLM,
    )
    headline = _clean_headline(raw)
    if (
        not headline
        or headline.upper() == Enrichment.UNKNOWN_SENTINEL
        or len(headline) < Enrichment.MIN_TITLE_LENGTH
    ):
        logger.info("llm.title_unknown", url=url[:100])
        return None
    return headline
