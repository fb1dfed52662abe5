"""
Tests for the post-commit notification pipeline.

These tests verify:
  - Placeholder rendering escapes Markdown in values, not in templates
  - TelegramSink posts the rendered message to the Bot API
  - A failing sink never raises out of the dispatcher
  - A full queue drops events instead of blocking or raising
  - A notifier failure cannot affect a deposit approval
"""

import asyncio
import json

import httpx

from wallet_ledger.services.notification_service import (
    DEPOSIT_APPROVED,
    NEW_DEPOSIT_REQUEST,
    NotificationDispatcher,
    TelegramSink,
    WalletEvent,
    dispatcher,
    escape_markdown,
    render_template,
)


class Recorder:
    def __init__(self):
        self.events = []

    async def send(self, event):
        self.events.append(event)


class Exploding:
    async def send(self, event):
        raise RuntimeError("chat service down")


class TestRendering:

    def test_escape_markdown(self):
        assert escape_markdown("snake_case *bold* [link] `code` back\\slash") == (
            "snake\\_case \\*bold\\* \\[link\\] \\`code\\` back\\\\slash"
        )

    def test_template_markup_is_kept(self):
        text = render_template("*{{user_name}}* paid {{ amount }}", {"user_name": "a_b", "amount": 10.5})
        assert text == "*a\\_b* paid 10.5"

    def test_missing_values_render_empty(self):
        assert render_template("[{{nothing}}]", {}) == "[]"


class TestTelegramSink:

    async def test_posts_rendered_message(self):
        captured = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"ok": True})

        sink = TelegramSink(
            bot_token="123:abc",
            chat_id="-1001",
            site_name="Dijital Market",
            transport=httpx.MockTransport(handler),
        )
        await sink.send(
            WalletEvent(
                name=DEPOSIT_APPROVED,
                data={"user_name": "jane_doe", "user_email": "jane@example.com", "amount": 100.0, "balance": 150.0},
            )
        )

        assert len(captured) == 1
        assert captured[0].url == "https://api.telegram.org/bot123:abc/sendMessage"
        payload = json.loads(captured[0].content)
        assert payload["chat_id"] == "-1001"
        assert payload["parse_mode"] == "Markdown"
        assert "jane\\_doe" in payload["text"]
        assert "150.0" in payload["text"]

    async def test_unknown_event_sends_nothing(self):
        calls = []
        sink = TelegramSink(
            bot_token="t",
            chat_id="c",
            transport=httpx.MockTransport(lambda request: calls.append(request) or httpx.Response(200)),
        )
        await sink.send(WalletEvent(name="something_else", data={}))
        assert calls == []

    async def test_http_error_raises_to_dispatcher(self):
        sink = TelegramSink(
            bot_token="t",
            chat_id="c",
            transport=httpx.MockTransport(lambda request: httpx.Response(502)),
        )
        local = NotificationDispatcher(sinks=[sink])
        local.emit(WalletEvent(name=NEW_DEPOSIT_REQUEST, data={"amount": 1.0}))
        # Logged and swallowed
        await local.drain()


class TestDispatcher:

    async def test_failing_sink_does_not_stop_others(self):
        recorder = Recorder()
        local = NotificationDispatcher(sinks=[Exploding(), recorder])
        local.emit(WalletEvent(name=NEW_DEPOSIT_REQUEST, data={}))
        await local.drain()
        assert [event.name for event in recorder.events] == [NEW_DEPOSIT_REQUEST]

    async def test_full_queue_drops_event(self):
        recorder = Recorder()
        local = NotificationDispatcher(sinks=[recorder], maxsize=1)
        local.emit(WalletEvent(name="first", data={}))
        local.emit(WalletEvent(name="second", data={}))
        await local.drain()
        assert [event.name for event in recorder.events] == ["first"]

    async def test_background_worker_delivers(self):
        recorder = Recorder()
        local = NotificationDispatcher(sinks=[recorder])
        local.start()
        local.emit(WalletEvent(name=DEPOSIT_APPROVED, data={}))
        await asyncio.wait_for(local.queue.join(), timeout=5)
        await local.stop()
        assert len(recorder.events) == 1


class TestNotifierCannotBreakDeposits:

    async def test_approval_succeeds_with_broken_notifier(self, admin_client, authenticated_client):
        dispatcher.sinks = [Exploding()]

        created = await authenticated_client.post("/wallet_deposit_requests", json={"amount": 20})
        assert created.status_code == 201

        approved = await admin_client.patch(
            f"/wallet_deposit_requests/{created.json()['id']}",
            json={"status": "approved"},
        )
        assert approved.status_code == 200
        await dispatcher.drain()

        balance = await authenticated_client.get("/wallet/me/balance")
        assert balance.json()["balance"] == 20.0
