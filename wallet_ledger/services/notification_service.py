"""
Notification service — post-commit wallet events for store staff.

Routers call dispatcher.emit() AFTER the wallet transaction has committed.
emit() only enqueues; a background worker (started by the app lifespan)
hands each event to every configured sink. Nothing here can change or
fail a ledger result:

  - a full queue drops the event with a warning
  - a sink that raises is logged and the next sink still runs

Sinks:
  - LogSink: writes every event to the application log (always on)
  - TelegramSink: posts to a chat through the Bot API when
    TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID are configured

Telegram messages use the legacy "Markdown" parse mode. Templates contain
{{placeholders}}; only the substituted values are escaped, so the template
itself may use *bold* and the like.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

import httpx

from wallet_ledger.config import settings


logger = logging.getLogger(__name__)

NEW_DEPOSIT_REQUEST = "new_deposit_request"
DEPOSIT_APPROVED = "deposit_approved"

TELEGRAM_API_URL = "https://api.telegram.org"

DEFAULT_TEMPLATES = {
    NEW_DEPOSIT_REQUEST: (
        "💰 *New deposit request* ({{site_name}})\n\n"
        "User: {{user_name}} ({{user_email}})\n"
        "Amount: {{amount}}\n"
        "Method: {{payment_method}}\n"
        "Time: {{occurred_at}}"
    ),
    DEPOSIT_APPROVED: (
        "✅ *Deposit approved* ({{site_name}})\n\n"
        "User: {{user_name}} ({{user_email}})\n"
        "Amount: {{amount}}\n"
        "New balance: {{balance}}\n"
        "Time: {{occurred_at}}"
    ),
}

_MARKDOWN_SPECIALS = re.compile(r"([\\_*`\[\]])")
_PLACEHOLDER = re.compile(r"\{\{\s*([a-zA-Z0-9_]+)\s*\}\}")


@dataclass
class WalletEvent:
    name: str
    data: dict
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def new_deposit_request_event(request) -> WalletEvent:
    """Build the event for a freshly filed deposit request."""
    return WalletEvent(
        name=NEW_DEPOSIT_REQUEST,
        data={
            "request_id": str(request.id),
            "user_id": str(request.user_id),
            "user_email": request.user_email,
            "user_name": request.user_full_name,
            "amount": request.amount,
            "payment_method": request.payment_method,
        },
    )


def deposit_approved_event(request, balance: float | None) -> WalletEvent:
    """Build the event for a deposit request this call approved."""
    return WalletEvent(
        name=DEPOSIT_APPROVED,
        data={
            "request_id": str(request.id),
            "user_id": str(request.user_id),
            "user_email": request.user_email,
            "user_name": request.user_full_name,
            "amount": request.amount,
            "balance": balance,
            "payment_method": request.payment_method,
        },
    )


def escape_markdown(text: str) -> str:
    return _MARKDOWN_SPECIALS.sub(r"\\\1", text)


def render_template(template: str, values: dict) -> str:
    """
    Replace {{key}} with the escaped value. Missing or None values become "".
    """
    def substitute(match: re.Match) -> str:
        value = values.get(match.group(1))
        if value is None:
            return ""
        if isinstance(value, datetime):
            value = value.isoformat()
        return escape_markdown(str(value))

    return _PLACEHOLDER.sub(substitute, template)


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------

class NotificationSink(Protocol):
    async def send(self, event: WalletEvent) -> None: ...


class LogSink:
    async def send(self, event: WalletEvent) -> None:
        logger.info("wallet event %s: %s", event.name, event.data)


class TelegramSink:
    """Deliver events to a Telegram chat."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        templates: dict[str, str] | None = None,
        site_name: str = "",
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.templates = templates or DEFAULT_TEMPLATES
        self.site_name = site_name
        self.timeout = timeout
        self.transport = transport

    def render(self, event: WalletEvent) -> str | None:
        template = self.templates.get(event.name)
        if not template:
            return None
        values = {"site_name": self.site_name, "occurred_at": event.occurred_at}
        values.update(event.data)
        return render_template(template, values)

    async def send(self, event: WalletEvent) -> None:
        text = self.render(event)
        if text is None:
            return

        url = f"{TELEGRAM_API_URL}/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "Markdown",
            "disable_web_page_preview": True,
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(url, json=payload)
            response.raise_for_status()


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------

class NotificationDispatcher:
    """Queue of wallet events plus the sinks they are delivered to."""

    def __init__(self, sinks: list[NotificationSink] | None = None, maxsize: int = 1000):
        self.sinks = list(sinks) if sinks is not None else [LogSink()]
        self.maxsize = maxsize
        self._queue: asyncio.Queue[WalletEvent] | None = None
        self._worker: asyncio.Task | None = None

    @property
    def queue(self) -> asyncio.Queue:
        # Created lazily so it binds to the running event loop
        if self._queue is None:
            self._queue = asyncio.Queue(maxsize=self.maxsize)
        return self._queue

    def emit(self, event: WalletEvent) -> None:
        """Enqueue an event. Never raises."""
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("notification queue full, dropping %s event", event.name)

    async def deliver(self, event: WalletEvent) -> None:
        for sink in self.sinks:
            try:
                await sink.send(event)
            except Exception:
                logger.exception(
                    "notification sink %s failed for %s event",
                    type(sink).__name__, event.name,
                )

    async def drain(self) -> None:
        """Deliver everything currently queued, inline."""
        while not self.queue.empty():
            event = self.queue.get_nowait()
            try:
                await self.deliver(event)
            finally:
                self.queue.task_done()

    async def _run(self) -> None:
        while True:
            event = await self.queue.get()
            try:
                await self.deliver(event)
            finally:
                self.queue.task_done()

    def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="wallet-notifications")

    async def stop(self) -> None:
        """Flush pending events, then cancel the worker."""
        await self.drain()
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        self._queue = None


def build_sinks() -> list[NotificationSink]:
    sinks: list[NotificationSink] = [LogSink()]
    if settings.TELEGRAM_BOT_TOKEN and settings.TELEGRAM_CHAT_ID:
        sinks.append(
            TelegramSink(
                bot_token=settings.TELEGRAM_BOT_TOKEN,
                chat_id=settings.TELEGRAM_CHAT_ID,
                site_name=settings.SITE_NAME,
                timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
            )
        )
    return sinks


dispatcher = NotificationDispatcher(
    sinks=[LogSink()],
    maxsize=settings.NOTIFICATION_QUEUE_MAXSIZE,
)
