import hmac

import structlog
from fastapi import Header, HTTPException

from linkwise.core.config import settings

logger = structlog.get_logger(__name__)


async def verify_internal_token(x_internal_token: str | None = Header(None)) -> bool:
    """
    Verify X-Internal-Token so only the gateway and sibling services can call in.

    In local dev, this is skipped if no token is configured.
    In production, this must match APIM_INTERNAL_TOKEN.
    """
    if not settings.APIM_INTERNAL_TOKEN:
        logger.debug("auth.internal_token_skipped", reason="not_configured")
        return True

    if not x_internal_token:
        logger.warning("auth.internal_token_missing")
        raise HTTPException(status_code=403, detail="Missing X-Internal-Token header")

    if not hmac.compare_digest(x_internal_token, settings.APIM_INTERNAL_TOKEN):
        logger.warning("auth.internal_token_invalid")
        raise HTTPException(status_code=403, detail="Invalid X-Internal-Token")

    return True
