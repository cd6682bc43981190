"""Background task processing."""

from notehub.tasks.email import deliver_email
from notehub.tasks.maintenance import purge_expired_tokens
from notehub.tasks.queue import get_queue_settings, queue

__all__ = ["deliver_email", "get_queue_settings", "purge_expired_tokens", "queue"]
