"""CommandDispatcher: turns decoded operator intents into EA commands.

Trade and close commands have two delivery paths that fail independently:
the single-slot command file for a locally attached EA and the in-memory
queue polled by a remote EA.  A failed file write is reported to the
operator but the queued copy stays; nothing is rolled back.

Operator feedback (callback answer, chat line, keyboard removal) is best
effort.  Telegram failures there are logged and never change the outcome.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from signalrelay.bridge.file_channel import FileChannel
from signalrelay.bridge.queue import CommandQueue
from signalrelay.risk.sl_tp import RiskSettings, resolve_risk
from signalrelay.signals.actions import (
    CloseTrade,
    Ignore,
    Intent,
    KeepOpen,
    OpenTrade,
    OpenTradeWithLot,
    StatusRequest,
)
from signalrelay.signals.models import TradeCommand
from signalrelay.telegram.client import TelegramError
from signalrelay.telegram.models import CallbackQuery

logger = logging.getLogger("signalrelay.dispatcher")

STATUS_ACK = "📋 Fetching active orders..."


@dataclass(frozen=True)
class DispatchOutcome:
    """Result of one dispatch, one field per delivery path."""

    command: Optional[TradeCommand] = None
    file_written: bool = False
    file_error: Optional[str] = None
    queued: bool = False


class CommandDispatcher:
    """Executes intents against the file channel and the command queue.

    Args:
        queue: Shared ``CommandQueue`` for the HTTP bridge.
        channel: ``FileChannel`` for the locally attached EA.
        notifier: ``TelegramClient`` (or duck-type for tests).
        risk_settings: Dynamic SL/TP tunables.
    """

    def __init__(
        self,
        queue: CommandQueue,
        channel: FileChannel,
        notifier,
        risk_settings: RiskSettings = RiskSettings(),
    ) -> None:
        self._queue = queue
        self._channel = channel
        self._notifier = notifier
        self._risk_settings = risk_settings

    # ── Public API ───────────────────────────────────────────────────────

    async def dispatch(self, intent: Intent, callback: CallbackQuery) -> DispatchOutcome:
        """Execute *intent* for the button press described by *callback*."""
        if isinstance(intent, (OpenTrade, OpenTradeWithLot)):
            return await self._open(intent, callback)
        if isinstance(intent, CloseTrade):
            return await self._close(intent, callback)
        if isinstance(intent, StatusRequest):
            command = self._enqueue_status()
            await self._answer(callback, STATUS_ACK)
            await self._clear_buttons(callback)
            return DispatchOutcome(command=command, queued=True)
        if isinstance(intent, Ignore):
            logger.info("Signal ignored by operator")
            await self._answer(callback, "Signal ignored")
            return DispatchOutcome()
        if isinstance(intent, KeepOpen):
            logger.info("Operator chose to keep the order open")
            await self._answer(callback, "Order will remain open")
            return DispatchOutcome()
        raise TypeError(f"unhandled intent: {intent!r}")

    async def request_status(self) -> TradeCommand:
        """Queue a status push for the ``/orders`` and ``/status`` chat commands."""
        command = self._enqueue_status()
        await self._notify(STATUS_ACK)
        return command

    # ── Intents ──────────────────────────────────────────────────────────

    async def _open(self, intent, callback: CallbackQuery) -> DispatchOutcome:
        levels = resolve_risk(
            intent.symbol, intent.side, intent.price, intent.atr, self._risk_settings,
        )
        command = TradeCommand.open(
            symbol=intent.symbol,
            side=intent.side,
            lots=intent.lots,
            price=intent.price,
            sl=levels.sl,
            tp=levels.tp,
            strategy=intent.strategy,
        )
        logger.info(
            "Trade request: %s %s price=%s lots=%.2f sl=%s tp=%s (%s) strat=%s",
            command.symbol, command.side, command.price, command.lots,
            command.sl, command.tp, levels.source, command.strategy,
        )

        outcome = await self._deliver(command, self._channel.write_trade)

        if outcome.file_written:
            await self._answer(callback, f"✅ {command.lots:.1f} lot sent!")
            await self._notify(
                f"✅ Trade: {command.symbol} {command.side} "
                f"{command.lots:.1f} lots @ {command.price}"
            )
            await self._clear_buttons(callback)
        else:
            await self._answer(callback, "❌ Trade failed")
            await self._notify(f"❌ Trade failed: {outcome.file_error}")
        return outcome

    async def _close(self, intent: CloseTrade, callback: CallbackQuery) -> DispatchOutcome:
        command = TradeCommand.close(
            ticket=intent.ticket, symbol=intent.symbol, strategy=intent.strategy,
        )
        logger.info(
            "Close request: ticket=%d symbol=%s strategy=%s",
            command.ticket, command.symbol, command.strategy or "-",
        )

        outcome = await self._deliver(command, self._channel.write_close)

        if outcome.file_written:
            await self._answer(callback, "✅ Close sent!")
            await self._notify(f"🔴 Close order #{command.ticket}")
            await self._clear_buttons(callback)
        else:
            await self._answer(callback, "❌ Close failed")
        return outcome

    # ── Delivery ─────────────────────────────────────────────────────────

    async def _deliver(
        self,
        command: TradeCommand,
        write: Callable[[TradeCommand], object],
    ) -> DispatchOutcome:
        """Attempt the file write off the event loop, then queue the command regardless."""
        file_error = None
        try:
            await asyncio.to_thread(write, command)
        except OSError as exc:
            file_error = str(exc)
            logger.error("Command file write failed: %s", exc)

        self._queue.append(command)
        return DispatchOutcome(
            command=command,
            file_written=file_error is None,
            file_error=file_error,
            queued=True,
        )

    def _enqueue_status(self) -> TradeCommand:
        command = TradeCommand.status()
        self._queue.append(command)
        return command

    # ── Operator feedback (best effort) ──────────────────────────────────

    async def _answer(self, callback: CallbackQuery, text: str) -> None:
        try:
            await self._notifier.answer_callback_query(callback.id, text)
        except TelegramError as exc:
            logger.warning("answerCallbackQuery failed: %s", exc)

    async def _notify(self, text: str) -> None:
        try:
            await self._notifier.send_message(text)
        except TelegramError as exc:
            logger.warning("Telegram notification failed: %s", exc)

    async def _clear_buttons(self, callback: CallbackQuery) -> None:
        try:
            await self._notifier.remove_inline_keyboard(callback.chat_id, callback.message_id)
        except TelegramError as exc:
            logger.warning(
                "Could not remove buttons from message %s: %s", callback.message_id, exc,
            )
