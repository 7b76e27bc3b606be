"""Tests for signalrelay.telegram: Bot API client and webhook update parsing."""

import httpx
import pytest

from signalrelay.telegram.client import TelegramClient, TelegramError
from signalrelay.telegram.models import Update


def _client() -> TelegramClient:
    return TelegramClient(bot_token="123:abc", chat_id="-1001")


def _capture_post(monkeypatch, status=200, body=None):
    """Patch ``httpx.AsyncClient.post`` and record each call."""
    calls = []

    async def _mock_post(self, url, *, json=None, timeout=None):
        calls.append({"url": url, "json": json})
        return httpx.Response(
            status, json=body if body is not None else {"ok": status == 200},
            request=httpx.Request("POST", url),
        )

    monkeypatch.setattr(httpx.AsyncClient, "post", _mock_post)
    return calls


# ── Client ───────────────────────────────────────────────────────────────


class TestTelegramClient:
    @pytest.mark.asyncio
    async def test_send_message_with_markup(self, monkeypatch):
        calls = _capture_post(monkeypatch)
        markup = {"inline_keyboard": [[{"text": "x", "callback_data": "status"}]]}

        await _client().send_message("hello", markup)

        assert calls[0]["url"] == "https://api.telegram.org/bot123:abc/sendMessage"
        assert calls[0]["json"] == {"chat_id": "-1001", "text": "hello", "reply_markup": markup}

    @pytest.mark.asyncio
    async def test_send_message_without_markup(self, monkeypatch):
        calls = _capture_post(monkeypatch)
        await _client().send_message("plain")
        assert "reply_markup" not in calls[0]["json"]

    @pytest.mark.asyncio
    async def test_non_2xx_raises(self, monkeypatch):
        _capture_post(monkeypatch, status=400, body={"ok": False, "description": "Bad Request"})
        with pytest.raises(TelegramError, match="sendMessage failed: 400"):
            await _client().send_message("x")

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, monkeypatch):
        async def _mock_post(self, url, *, json=None, timeout=None):
            raise httpx.ConnectError("connection refused")

        monkeypatch.setattr(httpx.AsyncClient, "post", _mock_post)
        with pytest.raises(TelegramError, match="transport error"):
            await _client().answer_callback_query("cb-1", "ok")

    @pytest.mark.asyncio
    async def test_remove_inline_keyboard_payload(self, monkeypatch):
        calls = _capture_post(monkeypatch)
        await _client().remove_inline_keyboard(42, 7)
        assert calls[0]["url"].endswith("/editMessageReplyMarkup")
        assert calls[0]["json"] == {
            "chat_id": 42,
            "message_id": 7,
            "reply_markup": {"inline_keyboard": []},
        }

    @pytest.mark.asyncio
    async def test_get_me_rejects_bad_token(self, monkeypatch):
        async def _mock_get(self, url, *, timeout=None):
            return httpx.Response(401, json={"ok": False}, request=httpx.Request("GET", url))

        monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)
        with pytest.raises(TelegramError, match="invalid Telegram bot token"):
            await _client().get_me()


# ── Update parsing ───────────────────────────────────────────────────────


class TestUpdate:
    def test_callback_query(self):
        update = Update.from_payload({
            "update_id": 10,
            "callback_query": {
                "id": "cb-9",
                "from": {"id": 555},
                "data": "status",
                "message": {"message_id": 7, "chat": {"id": 42}},
            },
        })
        cq = update.callback_query
        assert (cq.id, cq.data, cq.chat_id, cq.message_id, cq.from_id) == ("cb-9", "status", 42, 7, 555)
        assert update.message_text is None

    def test_text_message(self):
        update = Update.from_payload({"update_id": 11, "message": {"text": "/orders"}})
        assert update.callback_query is None
        assert update.message_text == "/orders"

    def test_empty_update(self):
        update = Update.from_payload({"update_id": 12})
        assert update.callback_query is None
        assert update.message_text is None

    def test_non_object_rejected(self):
        with pytest.raises(ValueError):
            Update.from_payload([1, 2, 3])

    @pytest.mark.parametrize("cq", [
        {"id": "cb-1", "data": 5, "message": {"message_id": 7, "chat": {"id": 42}}},
        {"id": "cb-1", "data": ["status"], "message": "hi"},
        {"id": "cb-1", "data": None, "message": {"message_id": "7", "chat": "x"}, "from": 3},
    ])
    def test_mistyped_callback_fields_read_as_empty(self, cq):
        callback = Update.from_payload({"update_id": 13, "callback_query": cq}).callback_query
        assert callback.id == "cb-1"
        assert callback.data == ""
        assert (callback.chat_id, callback.message_id, callback.from_id) in {(42, 7, 0), (0, 0, 0)}

    def test_non_object_message_keeps_callback_data(self):
        update = Update.from_payload({
            "update_id": 14,
            "callback_query": {"id": "cb-2", "data": "status", "message": "hi"},
        })
        assert update.callback_query.data == "status"
        assert (update.callback_query.chat_id, update.callback_query.message_id) == (0, 0)

    @pytest.mark.parametrize("text", [123, None, ["/orders"]])
    def test_non_string_text_reads_as_empty(self, text):
        update = Update.from_payload({"update_id": 15, "message": {"text": text}})
        assert update.message_text == ""
