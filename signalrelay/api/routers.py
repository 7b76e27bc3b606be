"""HTTP routers: /signal, /webhook, /commands, /health.

No business logic.  Parses requests, checks the shared token and delegates
to the renderer, the dispatcher and the command queue.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from signalrelay.bridge.dispatcher import CommandDispatcher
from signalrelay.bridge.queue import CommandQueue
from signalrelay.config import Config
from signalrelay.signals.actions import decode_action
from signalrelay.signals.models import Signal
from signalrelay.signals.renderer import classify, render
from signalrelay.telegram.client import TelegramError
from signalrelay.telegram.models import Update

logger = logging.getLogger("signalrelay")
router = APIRouter()

VERSION = "2.0.0"

STATUS_COMMANDS = ("/orders", "/status")


@dataclass(frozen=True)
class RelayContext:
    """Collaborators shared by every request handler."""

    config: Config
    telegram: object  # TelegramClient or duck-type for tests
    queue: CommandQueue
    dispatcher: CommandDispatcher


_context: Optional[RelayContext] = None  # Set via configure_routers()


def configure_routers(
    config: Config,
    telegram,
    queue: CommandQueue,
    dispatcher: CommandDispatcher,
) -> None:
    """Inject dependencies from the application startup.

    Args:
        config: Loaded ``Config``.
        telegram: A ``TelegramClient`` instance (or duck-type for tests).
        queue: The ``CommandQueue`` shared with the dispatcher.
        dispatcher: A ``CommandDispatcher`` bound to the same queue.
    """
    global _context  # noqa: PLW0603
    _context = RelayContext(config=config, telegram=telegram, queue=queue, dispatcher=dispatcher)


def get_context() -> RelayContext:
    if _context is None:
        raise HTTPException(status_code=503, detail="relay not configured")
    return _context


def _unauthorized() -> PlainTextResponse:
    return PlainTextResponse("unauthorized", status_code=401)


# ── Endpoints ────────────────────────────────────────────────────────────


@router.post("/signal")
async def post_signal(request: Request, ctx: RelayContext = Depends(get_context)):
    """Receive a signal from the EA and forward it to Telegram."""
    try:
        signal = Signal.from_payload(await request.json())
    except ValueError as exc:
        return PlainTextResponse(f"invalid json: {exc}", status_code=400)

    if signal.token != ctx.config.api_auth_token:
        return _unauthorized()

    prompt = render(signal, ctx.config.display_timezone)
    if prompt is None:
        logger.info("Signal %s/%s produced no message", signal.side, signal.strategy)
        return {"ok": True}

    try:
        await ctx.telegram.send_message(prompt.text, prompt.reply_markup())
    except TelegramError as exc:
        logger.error("Telegram error: %s", exc)
        return JSONResponse({"ok": False, "error": "telegram send failed"}, status_code=502)

    logger.info("Signal sent (%s): %s %s", classify(signal), signal.side, signal.strategy)
    return {"ok": True}


@router.post("/webhook")
async def post_webhook(request: Request, ctx: RelayContext = Depends(get_context)):
    """Telegram webhook: button presses and text commands."""
    try:
        update = Update.from_payload(await request.json())
    except ValueError as exc:
        logger.error("Webhook decode error: %s", exc)
        return PlainTextResponse("bad request", status_code=400)

    callback = update.callback_query
    if callback is not None:
        logger.info(
            "CallbackQuery: id=%s chat=%s msgId=%s data=%r",
            callback.id, callback.chat_id, callback.message_id, callback.data,
        )
        intent = decode_action(callback.data)
        if intent is not None:
            await ctx.dispatcher.dispatch(intent, callback)
    elif update.message_text is not None:
        text = update.message_text.strip()
        if text.startswith(STATUS_COMMANDS):
            await ctx.dispatcher.request_status()
        else:
            logger.info("Non-callback message received: %r", text)

    return {"ok": True}


@router.get("/commands")
async def get_commands(
    token: Optional[str] = Query(default=None),
    x_api_token: Optional[str] = Header(default=None),
    ctx: RelayContext = Depends(get_context),
):
    """HTTP bridge: return and clear every pending command."""
    if (token or x_api_token) != ctx.config.api_auth_token:
        return _unauthorized()

    commands = ctx.queue.drain()
    if commands:
        logger.info("Bridge drained %d command(s)", len(commands))
    return {
        "ok": True,
        "count": len(commands),
        "commands": [c.to_dict() for c in commands],
        "ts": int(time.time()),
    }


@router.get("/health")
async def health(ctx: RelayContext = Depends(get_context)):
    return {
        "status": "OK",
        "timestamp": int(time.time()),
        "mt4_path": ctx.config.mt4_data_path,
        "telegram": ctx.config.telegram_configured,
        "version": VERSION,
    }
