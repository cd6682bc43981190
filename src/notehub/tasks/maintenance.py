"""Maintenance background tasks for cleanup operations."""

import logging
from datetime import UTC, datetime
from typing import Any

from notehub.database import get_session_context
from notehub.services.tokens import TokenStore

logger = logging.getLogger(__name__)

# Timeout for maintenance tasks (10 minutes)
MAINTENANCE_TIMEOUT_SECONDS = 10 * 60


async def purge_expired_tokens(ctx: dict[str, Any]) -> dict[str, Any]:
    """Delete verification, reset and magic link tokens past their expiry.

    Expired tokens are already rejected when presented; this only reclaims
    the rows.

    Args:
        ctx: SAQ context

    Returns:
        Dict with purge results
    """
    now = datetime.now(UTC)

    async with get_session_context() as session:
        try:
            deleted = await TokenStore(session).purge_expired(now)
            await session.commit()
        except Exception as e:
            error = f"Token purge failed: {e}"
            logger.exception(error)
            await session.rollback()
            return {"success": False, "error": error}

    logger.info(f"Purged {deleted} expired tokens")
    return {"success": True, "deleted": deleted, "cutoff": now.isoformat()}


# Set SAQ job timeouts
purge_expired_tokens.timeout = MAINTENANCE_TIMEOUT_SECONDS  # type: ignore[attr-defined]
