"""Signal data models: typed representations of EA signals and commands."""

from dataclasses import dataclass
from typing import Optional

# Last second of year 9999, the latest instant datetime can display.
MAX_TIMESTAMP = 253_402_300_799


def _number(payload: dict, key: str, cast=float):
    """Read a numeric field; missing/null is zero, a non-number is an error."""
    value = payload.get(key)
    if value is None:
        return cast(0)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"field '{key}' must be a number, got {value!r}")
    try:
        return cast(value)
    except (OverflowError, ValueError):
        raise ValueError(f"field '{key}' is not a finite number: {value!r}") from None


def _timestamp(payload: dict) -> int:
    value = _number(payload, "timestamp", int)
    if not 0 <= value <= MAX_TIMESTAMP:
        raise ValueError(f"field 'timestamp' must be unix seconds, got {value}")
    return value


def _text(payload: dict, key: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field '{key}' must be a string, got {value!r}")
    return value


@dataclass(frozen=True)
class Signal:
    """One inbound trading event posted by the EA.

    ``ref1`` / ``ref2`` depend on the category: lots + ticket for an open
    confirmation, open price + ticket for close signals and confirmations.
    """

    token: str
    symbol: str
    timeframe: int
    side: str  # "BUY", "SELL", "CLOSE_BUY" or "CLOSE_SELL"
    strategy: str
    price: float
    ref1: float = 0.0
    ref2: float = 0.0
    atr: float = 0.0
    reason: str = ""
    timestamp: int = 0

    @classmethod
    def from_payload(cls, payload) -> "Signal":
        """Build a ``Signal`` from a decoded JSON body.

        Raises:
            ValueError: If *payload* is not an object or a field has the
                wrong type.
        """
        if not isinstance(payload, dict):
            raise ValueError("signal body must be a JSON object")
        return cls(
            token=_text(payload, "token"),
            symbol=_text(payload, "symbol"),
            timeframe=_number(payload, "timeframe", int),
            side=_text(payload, "side"),
            strategy=_text(payload, "strategy"),
            price=_number(payload, "price"),
            ref1=_number(payload, "ref1"),
            ref2=_number(payload, "ref2"),
            atr=_number(payload, "atr"),
            reason=_text(payload, "reason"),
            timestamp=_timestamp(payload),
        )


@dataclass(frozen=True)
class Button:
    """One inline keyboard button."""

    text: str
    callback_data: str


@dataclass(frozen=True)
class RenderedPrompt:
    """Message text plus an optional grid of action buttons."""

    text: str
    buttons: Optional[list[list[Button]]] = None

    def reply_markup(self) -> Optional[dict]:
        """Return the Telegram ``inline_keyboard`` markup, or ``None``."""
        if not self.buttons:
            return None
        return {
            "inline_keyboard": [
                [{"text": b.text, "callback_data": b.callback_data} for b in row]
                for row in self.buttons
            ]
        }

    def tokens(self) -> list[str]:
        """All callback tokens in grid order."""
        return [b.callback_data for row in self.buttons or [] for b in row]


@dataclass(frozen=True)
class TradeCommand:
    """A unit of work for the EA, written to file and/or queued."""

    action: str  # "open", "close" or "status"
    symbol: str = ""
    side: str = ""
    lots: float = 0.0
    price: float = 0.0
    sl: float = 0.0
    tp: float = 0.0
    strategy: str = ""
    ticket: int = 0

    @classmethod
    def open(
        cls,
        symbol: str,
        side: str,
        lots: float,
        price: float,
        sl: float,
        tp: float,
        strategy: str,
    ) -> "TradeCommand":
        return cls(
            action="open", symbol=symbol, side=side, lots=lots,
            price=price, sl=sl, tp=tp, strategy=strategy,
        )

    @classmethod
    def close(cls, ticket: int, symbol: str = "", strategy: str = "") -> "TradeCommand":
        return cls(action="close", ticket=ticket, symbol=symbol, strategy=strategy)

    @classmethod
    def status(cls) -> "TradeCommand":
        return cls(action="status")

    def to_dict(self) -> dict:
        """Wire JSON for the EA; ``ticket`` is omitted when zero."""
        data = {
            "action": self.action,
            "symbol": self.symbol,
            "side": self.side,
            "lots": self.lots,
            "price": self.price,
            "sl": self.sl,
            "tp": self.tp,
            "strategy": self.strategy,
        }
        if self.ticket:
            data["ticket"] = self.ticket
        return data
