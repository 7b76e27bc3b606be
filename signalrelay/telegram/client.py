"""Telegram Bot API async client.

Handles outbound calls only: messages, callback answers and keyboard edits.
Each call is a single attempt; a transport error or non-2xx response raises
``TelegramError`` and the caller decides whether it matters.
"""

import logging
from typing import Optional

import httpx

logger = logging.getLogger("signalrelay.telegram")

BASE_URL = "https://api.telegram.org"

_TIMEOUT = 10.0


class TelegramError(Exception):
    """A Telegram API call failed (transport error or non-2xx status)."""


class TelegramClient:
    """Async client wrapping the Telegram Bot API for one chat."""

    def __init__(self, bot_token: str, chat_id: str, base_url: str = BASE_URL) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._base_url = base_url

    @property
    def chat_id(self) -> str:
        return self._chat_id

    def _url(self, method: str) -> str:
        return f"{self._base_url}/bot{self._bot_token}/{method}"

    async def _post(self, method: str, payload: dict) -> dict:
        """POST *payload* to a Bot API method and return the decoded body."""
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(self._url(method), json=payload, timeout=_TIMEOUT)
        except httpx.TransportError as exc:
            raise TelegramError(f"{method} transport error: {exc}") from exc

        if not resp.is_success:
            raise TelegramError(f"{method} failed: {resp.status_code} {resp.text[:200]}")
        try:
            return resp.json()
        except ValueError:
            return {}

    # ── Messages ─────────────────────────────────────────────────────────

    async def send_message(self, text: str, reply_markup: Optional[dict] = None) -> dict:
        """Send *text* to the configured chat, with optional inline keyboard."""
        payload: dict = {"chat_id": self._chat_id, "text": text}
        if reply_markup:
            payload["reply_markup"] = reply_markup
        return await self._post("sendMessage", payload)

    async def answer_callback_query(self, callback_query_id: str, text: str = "") -> dict:
        """Acknowledge a button press (the toast shown to the operator)."""
        payload = {"callback_query_id": callback_query_id}
        if text:
            payload["text"] = text
        return await self._post("answerCallbackQuery", payload)

    async def remove_inline_keyboard(self, chat_id: int, message_id: int) -> dict:
        """Strip the buttons from an earlier message."""
        return await self._post("editMessageReplyMarkup", {
            "chat_id": chat_id,
            "message_id": message_id,
            "reply_markup": {"inline_keyboard": []},
        })

    # ── Startup ──────────────────────────────────────────────────────────

    async def get_me(self) -> dict:
        """Validate the bot token.

        Raises:
            TelegramError: If Telegram is unreachable or rejects the token.
        """
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.get(self._url("getMe"), timeout=_TIMEOUT)
        except httpx.TransportError as exc:
            raise TelegramError(f"failed to connect to Telegram: {exc}") from exc
        if resp.status_code != 200:
            raise TelegramError("invalid Telegram bot token")
        return resp.json()
