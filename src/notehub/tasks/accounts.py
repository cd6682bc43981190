"""Background account tasks."""

import logging
from typing import Any

from notehub.database import get_session_context
from notehub.services.accounts import RESET_JOB_TIMEOUT_SECONDS, AccountService
from notehub.services.notifications import get_notifier

logger = logging.getLogger(__name__)


async def send_password_reset(ctx: dict[str, Any], *, email: str) -> dict[str, Any]:
    """Look up the account for a reset request and send its link.

    Unknown emails are dropped here rather than in the request, so the
    request path never depends on whether the account exists. Store
    failures propagate so SAQ retries the job.

    Args:
        ctx: SAQ context
        email: Address from the reset request

    Returns:
        Dict with whether a link was sent
    """
    async with get_session_context() as session:
        accounts = AccountService(session, notifier=get_notifier(), defer_resets=False)
        sent = await accounts.send_password_reset(email)

    return {"success": True, "sent": sent}


# Set SAQ job timeout
send_password_reset.timeout = RESET_JOB_TIMEOUT_SECONDS  # type: ignore[attr-defined]
