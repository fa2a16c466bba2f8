"""Deletion alerts: notify operators when a periodic deletion run fails outright.

Decoupled from any transport via `set_send_fn()`: the alert only formats the
message, delivery is delegated to whatever async send function is injected
(mail relay, chat webhook, ...). Without one the alert is only logged.

Never raises: failures are logged but never propagate to the trigger.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Coroutine
from typing import Any

logger = logging.getLogger(__name__)

SendFn = Callable[[str], Coroutine[Any, Any, None]]


class DeletionAlerts:
    """Pushes a message to operators on unexpected total failure."""

    def __init__(self) -> None:
        self._send_fn: SendFn | None = None

    def set_send_fn(self, fn: SendFn | None) -> None:
        """Inject the delivery function."""
        self._send_fn = fn

    async def total_failure(self, trigger: str, error: str) -> None:
        message = f"Scheduled user deletion failed ({trigger}): {error}"
        if self._send_fn is None:
            logger.warning("No alert channel configured: %s", message)
            return
        try:
            await self._send_fn(message)
        except Exception:
            logger.exception("Failed to deliver deletion alert")


# Module-level singleton
deletion_alerts = DeletionAlerts()
