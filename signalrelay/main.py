"""SignalRelay application entry point.

Builds the FastAPI app and provides the CLI that validates configuration,
checks the MT4 bridge and Telegram, then serves the HTTP API.
"""

import logging
from datetime import datetime

from fastapi import FastAPI

from signalrelay.api.routers import VERSION, configure_routers, router
from signalrelay.bridge.dispatcher import CommandDispatcher
from signalrelay.bridge.file_channel import FileChannel
from signalrelay.bridge.queue import CommandQueue
from signalrelay.config import Config
from signalrelay.risk.sl_tp import RiskSettings
from signalrelay.telegram.client import TelegramClient, TelegramError

app = FastAPI(title="SignalRelay", version=VERSION)
app.include_router(router)

logger = logging.getLogger("signalrelay")


def build_relay(config: Config, telegram=None) -> CommandDispatcher:
    """Wire the queue, file channel and dispatcher into the routers."""
    telegram = telegram or TelegramClient(config.telegram_bot_token, config.telegram_chat_id)
    queue = CommandQueue()
    dispatcher = CommandDispatcher(
        queue=queue,
        channel=FileChannel(config.mt4_data_path),
        notifier=telegram,
        risk_settings=RiskSettings.from_config(config),
    )
    configure_routers(config=config, telegram=telegram, queue=queue, dispatcher=dispatcher)
    return dispatcher


async def check_startup(config: Config, telegram: TelegramClient) -> None:
    """Fatal checks before accepting connections.

    Raises:
        TelegramError: If the bot token is rejected or Telegram is unreachable.
        OSError: If the MT4 data directory cannot be created.
    """
    await telegram.get_me()
    logger.info("Telegram bot connected")

    channel = FileChannel(config.mt4_data_path)
    channel.data_path.mkdir(parents=True, exist_ok=True)
    try:
        channel.check_connection()
        logger.info("MT4 connection OK")
    except OSError as exc:
        logger.warning("MT4 connection warning: %s", exc)
        logger.warning("Using fallback path: %s", config.mt4_data_path)


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments, validate configuration and serve."""
    import argparse
    import asyncio
    import sys

    from signalrelay.config import load_config

    parser = argparse.ArgumentParser(description="SignalRelay MT4/Telegram bridge")
    parser.add_argument("--env-file", help="Path to a .env file (default: ./.env)")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Listen port (default: PORT or 8080)")
    args = parser.parse_args()

    try:
        config = load_config(args.env_file)
    except ValueError as exc:
        logging.basicConfig(level=logging.INFO)
        logger.error("Configuration error: %s", exc)
        sys.exit(1)

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        asyncio.run(_serve(config, args.host, args.port or config.port))
    except (TelegramError, OSError) as exc:
        logger.error("Startup failed: %s", exc)
        sys.exit(1)


async def _serve(config: Config, host: str, port: int) -> None:
    """Run startup checks, announce, then serve until stopped."""
    import uvicorn

    logger.info("Telegram trading relay starting...")
    telegram = TelegramClient(config.telegram_bot_token, config.telegram_chat_id)
    await check_startup(config, telegram)
    build_relay(config, telegram)

    logger.info("MT4 data path: %s", config.mt4_data_path)
    logger.info("Auth token: %s", config.masked_auth_token)

    startup_msg = (
        "🚀 Trading System Online\n"
        f"🕐 {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n"
        "💻 Ready for signals!"
    )
    try:
        await telegram.send_message(startup_msg)
    except TelegramError as exc:
        logger.warning("Startup notification failed: %s", exc)

    uvi_config = uvicorn.Config(app, host=host, port=port, log_level="info")
    server = uvicorn.Server(uvi_config)
    logger.info("Server starting on %s:%d, waiting for MT4 signals", host, port)
    await server.serve()


if __name__ == "__main__":
    _run_cli()
