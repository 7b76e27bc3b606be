"""Signal classification and rendering: pure formatting, no I/O.

Classification is an ordered rule table; the first matching rule renders
the signal.  Order matters: confirmations are checked before the
``CLOSE_`` side prefix, and the open-signal rule matches everything left.

    1. open_confirmation   strategy == ORDER_OPENED_CONFIRMATION
    2. close_confirmation  strategy == ORDER_CLOSED_CONFIRMATION
    3. close_signal        side starts with CLOSE_
    4. orders_status       strategy == ORDERS_STATUS
    5. open_signal         anything else
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from signalrelay.risk.sl_tp import is_metal
from signalrelay.signals.actions import (
    LOT_CHOICES,
    STATUS_TOKEN,
    close_token,
    ignore_token,
    keep_token,
    lot_token,
)
from signalrelay.signals.clock import DEFAULT_TIMEZONE, format_signal_time
from signalrelay.signals.models import Button, RenderedPrompt, Signal

logger = logging.getLogger("signalrelay.renderer")

OPEN_CONFIRMATION = "ORDER_OPENED_CONFIRMATION"
CLOSE_CONFIRMATION = "ORDER_CLOSED_CONFIRMATION"
ORDERS_STATUS = "ORDERS_STATUS"
CLOSE_PREFIX = "CLOSE_"

REASON_SEPARATOR = ";"


@dataclass(frozen=True)
class SignalRule:
    """One classification rule: a name, a predicate and a renderer."""

    name: str
    matches: Callable[[Signal], bool]
    render: Callable[[Signal, str], Optional[RenderedPrompt]]


# ── Formatting helpers ───────────────────────────────────────────────────


def _price(symbol: str, value: float) -> str:
    return f"{value:.2f}" if is_metal(symbol) else f"{value:.5f}"


def _signed(value: float) -> str:
    return f"+{value:.2f}" if value > 0 else f"{value:.2f}"


def _ticket(value: float) -> int:
    return int(round(value))


def _parse_amount(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        return 0.0


def _lot_rows(symbol: str, side: str, price: float, strategy: str, atr: float) -> list[list[Button]]:
    buttons = [
        Button(f"📊 {lots:.1f} LOT", lot_token(lots, symbol, side, price, strategy, atr))
        for lots in LOT_CHOICES
    ]
    return [buttons[:3], buttons[3:]]


# ── Renderers ────────────────────────────────────────────────────────────


def _render_open_confirmation(s: Signal, ts: str) -> RenderedPrompt:
    # ref1 = lots, ref2 = ticket, reason = original strategy
    text = (
        "✅ [ORDER OPENED]\n"
        f"🎫 Ticket: #{_ticket(s.ref2)}\n"
        f"📊 {s.symbol} {s.side} {s.ref1:.2f} lots\n"
        f"💰 Entry: {_price(s.symbol, s.price)}\n"
        f"🎯 Strategy: {s.reason}\n"
        f"🕐 {ts}"
    )
    buttons = [
        [Button("❌ DONE", ignore_token(s.symbol, s.side, s.price, s.reason, s.atr))],
        *_lot_rows(s.symbol, s.side, s.price, s.reason, s.atr),
    ]
    return RenderedPrompt(text=text, buttons=buttons)


def _render_close_confirmation(s: Signal, ts: str) -> Optional[RenderedPrompt]:
    # reason = "lots;profit;currency"; ref1 = open price, ref2 = ticket
    parts = s.reason.split(REASON_SEPARATOR)
    if len(parts) < 3:
        logger.info("Dropping close confirmation with reason %r", s.reason)
        return None

    lots = _parse_amount(parts[0])
    profit = _parse_amount(parts[1])
    currency = parts[2]
    emoji = "❌" if profit < 0 else "✅"

    text = (
        f"{emoji} [ORDER CLOSED]\n"
        f"🎫 Ticket: #{_ticket(s.ref2)}\n"
        f"📊 {s.symbol} {s.side} {lots:.2f} lots\n"
        f"💰 Open: {_price(s.symbol, s.ref1)}\n"
        f"💰 Close: {_price(s.symbol, s.price)}\n"
        f"💵 P&L: {_signed(profit)} {currency}\n"
        f"🕐 {ts}"
    )
    return RenderedPrompt(text=text)


def _render_close_signal(s: Signal, ts: str) -> RenderedPrompt:
    actual_side = s.side[len(CLOSE_PREFIX):]
    actual_strategy = s.strategy[len(CLOSE_PREFIX):] if s.strategy.startswith(CLOSE_PREFIX) else s.strategy

    # reason is either plain text or "text;floatingPL;currency"
    parts = s.reason.split(REASON_SEPARATOR)
    lines = [
        "🔴 [CLOSE SIGNAL]",
        f"📊 {s.symbol} {actual_side}",
        f"🎯 {s.strategy}",
        f"💰 Price: {_price(s.symbol, s.price)}",
        f"📍 Entry: {_price(s.symbol, s.ref1)}",
    ]
    if len(parts) >= 3:
        lines.append(f"📝 {parts[0]}")
        lines.append(f"💵 Floating P&L: {_signed(_parse_amount(parts[1]))} {parts[2]}")
    else:
        lines.append(f"📝 {s.reason}")
    lines.append(f"🕐 {ts}")

    ticket = _ticket(s.ref2)
    buttons = [[
        Button("🔴 CLOSE ORDER", close_token(s.symbol, ticket, actual_strategy)),
        Button("⏳ KEEP OPEN", keep_token(s.symbol, ticket, actual_strategy)),
    ]]
    return RenderedPrompt(text="\n".join(lines), buttons=buttons)


def _render_orders_status(s: Signal, ts: str) -> RenderedPrompt:
    return RenderedPrompt(text=f"📋 Active Orders\n{s.reason}\n🕐 {ts}")


def _render_open_signal(s: Signal, ts: str) -> RenderedPrompt:
    text = (
        "🚨 [OPEN SIGNAL]\n"
        f"📊 {s.symbol}\n"
        f"📈 {s.side}\n"
        f"🎯 {s.strategy}\n"
        f"💰 Price: {_price(s.symbol, s.price)}\n"
        "📝 Choose a lot size below to execute.\n"
        f"🕐 {ts}"
    )
    buttons = [
        [Button("❌ IGNORE", ignore_token(s.symbol, s.side, s.price, s.strategy, s.atr))],
        *_lot_rows(s.symbol, s.side, s.price, s.strategy, s.atr),
        [Button("📋 ACTIVE ORDERS", STATUS_TOKEN)],
    ]
    return RenderedPrompt(text=text, buttons=buttons)


SIGNAL_RULES: list[SignalRule] = [
    SignalRule("open_confirmation", lambda s: s.strategy == OPEN_CONFIRMATION, _render_open_confirmation),
    SignalRule("close_confirmation", lambda s: s.strategy == CLOSE_CONFIRMATION, _render_close_confirmation),
    SignalRule("close_signal", lambda s: s.side.startswith(CLOSE_PREFIX), _render_close_signal),
    SignalRule("orders_status", lambda s: s.strategy == ORDERS_STATUS, _render_orders_status),
    SignalRule("open_signal", lambda s: True, _render_open_signal),
]


def match_rule(signal: Signal) -> SignalRule:
    """Return the first rule whose predicate accepts *signal*."""
    for rule in SIGNAL_RULES:
        if rule.matches(signal):
            return rule
    raise LookupError("no signal rule matched")  # unreachable: open_signal matches all


def classify(signal: Signal) -> str:
    """Name of the rule that handles *signal*."""
    return match_rule(signal).name


def render(signal: Signal, tz_name: str = DEFAULT_TIMEZONE) -> Optional[RenderedPrompt]:
    """Render *signal* into a prompt.

    Returns ``None`` when the matched rule drops the signal (a close
    confirmation whose reason has fewer than three parts).
    """
    rule = match_rule(signal)
    ts = format_signal_time(signal.timestamp, tz_name)
    return rule.render(signal, ts)
