"""
Best-effort notifications about event changes.

``NotificationDispatcher.dispatch`` schedules the send as a detached
``asyncio`` task and returns immediately.  A failed, slow or crashing
notifier is logged and never affects the operation that triggered it.

Two notifiers are provided: ``LoggingNotifier`` writes the message to
the log (the default), ``WebhookNotifier`` POSTs it as JSON to
``NOTIFICATION_WEBHOOK_URL``, where a mail relay or chat bot can pick
it up.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from functools import lru_cache
from typing import Optional, Set

import httpx

from ..core.config import settings
from ..core.i18n import Translator
from ..schemas.event import EventRead

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Delivers a message to a recipient."""

    @abstractmethod
    async def notify(self, recipient: str, subject: str, body: str) -> bool:
        """Send the message.  Returns ``True`` when it was accepted."""
        ...


class LoggingNotifier(Notifier):
    async def notify(self, recipient: str, subject: str, body: str) -> bool:
        logger.info("Notification to %s: %s - %s", recipient, subject, body)
        return True


class WebhookNotifier(Notifier):
    """POST notifications to an HTTP endpoint."""

    def __init__(self, url: str, timeout: float = 5.0, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def notify(self, recipient: str, subject: str, body: str) -> bool:
        payload = {"to": recipient, "subject": subject, "body": body}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=payload)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Webhook notification to %s failed: %s", recipient, exc)
            return False
        return True


class NotificationDispatcher:
    """Translate and send event notifications without blocking callers.

    Parameters
    ----------
    notifier : Notifier
        Delivery backend.
    translator : Translator
        Produces subject and body text; unknown keys degrade to the key.
    timeout : float
        Upper bound in seconds for a single send.
    """

    def __init__(self, notifier: Notifier, translator: Optional[Translator] = None, timeout: float = 5.0) -> None:
        self.notifier = notifier
        self.translator = translator or Translator()
        self.timeout = timeout
        self._pending: Set[asyncio.Task] = set()

    def build_message(self, action: str, event: EventRead, locale: Optional[str] = None) -> tuple[str, str]:
        date = event.date.isoformat() if isinstance(event.date, datetime) else str(event.date)
        subject = self.translator.translate(f"event.{action}.subject", locale)
        body = self.translator.translate(f"event.{action}.body", locale, title=event.title, date=date)
        return subject, body

    def dispatch(self, action: str, recipient: str, event: EventRead, locale: Optional[str] = None) -> Optional[asyncio.Task]:
        """Schedule a notification for ``action`` (created/updated/deleted)."""
        try:
            subject, body = self.build_message(action, event, locale)
            task = asyncio.get_running_loop().create_task(self._send(recipient, subject, body))
        except Exception:
            logger.exception("Could not schedule %s notification for event %s", action, event.id)
            return None
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _send(self, recipient: str, subject: str, body: str) -> None:
        try:
            delivered = await asyncio.wait_for(
                self.notifier.notify(recipient, subject, body), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning("Notification to %s timed out after %ss", recipient, self.timeout)
        except Exception:
            logger.exception("Notification to %s failed", recipient)
        else:
            if not delivered:
                logger.warning("Notification to %s was not delivered", recipient)

    async def drain(self) -> None:
        """Wait for notifications still in flight (used on shutdown)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


@lru_cache(maxsize=1)
def get_dispatcher() -> NotificationDispatcher:
    """Process-wide dispatcher built from settings."""
    if settings.notification_webhook_url:
        notifier: Notifier = WebhookNotifier(
            settings.notification_webhook_url, timeout=settings.notification_timeout_seconds
        )
    else:
        notifier = LoggingNotifier()
    return NotificationDispatcher(
        notifier,
        Translator(settings.default_locale),
        timeout=settings.notification_timeout_seconds,
    )
