"""Tests for the HTTP surface: /signal, /webhook, /commands, /health."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from signalrelay.api.routers import VERSION
from signalrelay.config import Config
from signalrelay.main import app, build_relay
from signalrelay.telegram.client import TelegramError

client = TestClient(app)

TOKEN = "secret-token"


# ── Helpers ──────────────────────────────────────────────────────────────


def _make_config(tmp_path, **overrides) -> Config:
    defaults = dict(
        telegram_bot_token="123:abc",
        telegram_chat_id="-1001",
        api_auth_token=TOKEN,
        port=8080,
        mt4_data_path=str(tmp_path),
        sl_multiplier=1.5,
        tp_multiplier=2.0,
        gold_digits=2,
        forex_digits=5,
        display_timezone="Asia/Jakarta",
        log_level="WARNING",
    )
    defaults.update(overrides)
    return Config(**defaults)


@pytest.fixture
def telegram(tmp_path):
    """Wire the routers to a mocked Telegram client and return it."""
    mock = AsyncMock()
    build_relay(_make_config(tmp_path), telegram=mock)
    return mock


def _signal_body(**overrides) -> dict:
    body = {
        "token": TOKEN,
        "symbol": "EURUSD",
        "timeframe": 60,
        "side": "BUY",
        "strategy": "MACD",
        "price": 1.1,
        "ref1": 0,
        "ref2": 0,
        "reason": "",
        "timestamp": 1_700_000_000,
    }
    body.update(overrides)
    return body


def _callback(data: str) -> dict:
    return {
        "update_id": 1,
        "callback_query": {
            "id": "cb-1",
            "from": {"id": 555},
            "data": data,
            "message": {"message_id": 7, "chat": {"id": 42}},
        },
    }


def _drain(**kwargs):
    return client.get("/commands", params={"token": TOKEN}, **kwargs).json()


# ── /signal ──────────────────────────────────────────────────────────────


class TestSignalEndpoint:
    def test_open_signal_sent_with_buttons(self, telegram):
        resp = client.post("/signal", json=_signal_body())
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}
        text, markup = telegram.send_message.await_args.args
        assert "EURUSD" in text and "MACD" in text
        assert len(markup["inline_keyboard"]) == 4

    def test_bad_json(self, telegram):
        resp = client.post(
            "/signal", content=b"{not json", headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        telegram.send_message.assert_not_awaited()

    def test_wrong_field_type(self, telegram):
        resp = client.post("/signal", json=_signal_body(price="high"))
        assert resp.status_code == 400

    @pytest.mark.parametrize("ts", [1_700_000_000_000_000, 10**20, -1])
    def test_out_of_range_timestamp(self, telegram, ts):
        resp = client.post("/signal", json=_signal_body(timestamp=ts))
        assert resp.status_code == 400
        assert "timestamp" in resp.text
        telegram.send_message.assert_not_awaited()

    def test_bad_token(self, telegram):
        resp = client.post("/signal", json=_signal_body(token="nope"))
        assert resp.status_code == 401
        telegram.send_message.assert_not_awaited()

    def test_telegram_failure_is_bad_gateway(self, telegram):
        telegram.send_message.side_effect = TelegramError("down")
        resp = client.post("/signal", json=_signal_body())
        assert resp.status_code == 502

    def test_malformed_close_confirmation_not_sent(self, telegram):
        resp = client.post("/signal", json=_signal_body(
            strategy="ORDER_CLOSED_CONFIRMATION", reason="0.5",
        ))
        assert resp.status_code == 200
        telegram.send_message.assert_not_awaited()

    def test_wrong_method(self, telegram):
        assert client.get("/signal").status_code == 405


# ── /webhook + /commands ─────────────────────────────────────────────────


class TestWebhookAndBridge:
    def test_lot_press_reaches_bridge_once(self, telegram, tmp_path):
        resp = client.post("/webhook", json=_callback("lot|0.5|EURUSD|BUY|1.1|MACD"))
        assert resp.status_code == 200
        assert (tmp_path / "trade_command.json").exists()

        data = _drain()
        assert data["ok"] is True
        assert data["count"] == 1
        cmd = data["commands"][0]
        assert cmd["action"] == "open"
        assert cmd["lots"] == 0.5
        assert cmd["sl"] == pytest.approx(1.095)
        assert cmd["tp"] == pytest.approx(1.11)
        assert isinstance(data["ts"], int)

        assert _drain()["count"] == 0

    def test_header_token(self, telegram):
        client.post("/webhook", json=_callback("close|EURUSD|77|MACD"))
        resp = client.get("/commands", headers={"X-API-Token": TOKEN})
        assert resp.status_code == 200
        assert resp.json()["commands"][0]["ticket"] == 77

    def test_commands_unauthorized(self, telegram):
        client.post("/webhook", json=_callback("status"))
        assert client.get("/commands", params={"token": "nope"}).status_code == 401
        assert client.get("/commands").status_code == 401
        # Nothing was drained by the rejected calls.
        assert _drain()["count"] == 1

    @pytest.mark.parametrize("text", ["/orders", "/status@relay_bot"])
    def test_text_commands_queue_status(self, telegram, text):
        resp = client.post("/webhook", json={"update_id": 2, "message": {"text": text}})
        assert resp.status_code == 200
        assert [c["action"] for c in _drain()["commands"]] == ["status"]

    def test_other_text_ignored(self, telegram):
        client.post("/webhook", json={"update_id": 3, "message": {"text": "hello"}})
        assert _drain()["count"] == 0

    def test_undersized_token_is_soft_failure(self, telegram):
        resp = client.post("/webhook", json=_callback("lot|0.5|EURUSD"))
        assert resp.status_code == 200
        assert _drain()["count"] == 0
        telegram.answer_callback_query.assert_not_awaited()

    @pytest.mark.parametrize("body", [
        {"update_id": 4, "callback_query": {"id": "cb-1", "data": 5,
                                            "message": {"message_id": 7, "chat": {"id": 42}}}},
        {"update_id": 5, "callback_query": {"id": "cb-1", "data": "lot|0.5|EURUSD",
                                            "message": "hi"}},
        {"update_id": 6, "message": {"text": 123}},
        {"update_id": 7, "message": "hello", "callback_query": ["x"]},
    ])
    def test_mistyped_envelope_is_ok(self, telegram, body):
        resp = client.post("/webhook", json=body)
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}
        assert _drain()["count"] == 0

    def test_status_press_without_message_object(self, telegram):
        resp = client.post("/webhook", json={
            "update_id": 8, "callback_query": {"id": "cb-1", "data": "status", "message": 1},
        })
        assert resp.status_code == 200
        assert [c["action"] for c in _drain()["commands"]] == ["status"]

    def test_webhook_bad_json(self, telegram):
        resp = client.post(
            "/webhook", content=b"oops", headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400

    def test_commands_wrong_method(self, telegram):
        assert client.post("/commands").status_code == 405


# ── /health ──────────────────────────────────────────────────────────────


class TestHealth:
    def test_health(self, telegram, tmp_path):
        data = client.get("/health").json()
        assert data["status"] == "OK"
        assert data["mt4_path"] == str(tmp_path)
        assert data["telegram"] is True
        assert data["version"] == VERSION
        assert isinstance(data["timestamp"], int)
