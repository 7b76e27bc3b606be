"""Action tokens: encoding for inline buttons, decoding into intents.

Wire format is ``kind|field1|field2|...`` so it survives Telegram's
``callback_data`` untouched.  Decoding turns it into one of a closed set of
intent types; everything downstream matches on the type, never the string.

| kind     | fields                                   |
|----------|------------------------------------------|
| trade    | symbol, side, price, strategy[, atr]     |
| lot      | lots, symbol, side, price, strategy[, atr] |
| close    | symbol, ticket[, strategy]               |
| status   | (none)                                   |
| ignore   | (none)                                   |
| keep     | (none)                                   |
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

logger = logging.getLogger("signalrelay.actions")

DELIMITER = "|"
_DELIMITER_SUBSTITUTE = "/"

DEFAULT_LOTS = 0.1
LOT_CHOICES = (0.1, 0.2, 0.5, 0.7, 1.0)

# Telegram rejects callback_data longer than this many bytes.
CALLBACK_DATA_LIMIT = 64

STATUS_TOKEN = "status"


# ── Intents ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class OpenTrade:
    """Open at the default lot size."""

    symbol: str
    side: str
    price: float
    strategy: str
    atr: float = 0.0
    lots: float = DEFAULT_LOTS


@dataclass(frozen=True)
class OpenTradeWithLot:
    """Open at an operator-chosen lot size."""

    lots: float
    symbol: str
    side: str
    price: float
    strategy: str
    atr: float = 0.0


@dataclass(frozen=True)
class CloseTrade:
    symbol: str
    ticket: int
    strategy: str = ""


@dataclass(frozen=True)
class StatusRequest:
    pass


@dataclass(frozen=True)
class Ignore:
    pass


@dataclass(frozen=True)
class KeepOpen:
    pass


Intent = Union[OpenTrade, OpenTradeWithLot, CloseTrade, StatusRequest, Ignore, KeepOpen]


# ── Encoding ─────────────────────────────────────────────────────────────


def _field(value: str) -> str:
    return value.replace(DELIMITER, _DELIMITER_SUBSTITUTE)


def format_number(value: float) -> str:
    """Shortest text that parses back to the same float (``1.1``, ``1955``)."""
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


def _join(kind: str, *fields: str) -> str:
    token = DELIMITER.join((kind,) + fields)
    if len(token.encode("utf-8")) > CALLBACK_DATA_LIMIT:
        logger.warning(
            "Action token is %d bytes (limit %d): %s",
            len(token.encode("utf-8")), CALLBACK_DATA_LIMIT, token,
        )
    return token


def _signal_fields(symbol: str, side: str, price: float, strategy: str, atr: float) -> tuple:
    fields = (_field(symbol), _field(side), format_number(price), _field(strategy))
    if atr > 0:
        fields += (format_number(atr),)
    return fields


def trade_token(symbol: str, side: str, price: float, strategy: str, atr: float = 0.0) -> str:
    return _join("trade", *_signal_fields(symbol, side, price, strategy, atr))


def lot_token(
    lots: float, symbol: str, side: str, price: float, strategy: str, atr: float = 0.0,
) -> str:
    return _join("lot", format_number(lots), *_signal_fields(symbol, side, price, strategy, atr))


def ignore_token(symbol: str, side: str, price: float, strategy: str, atr: float = 0.0) -> str:
    """Ignore carries the signal context too; the decoder discards it."""
    return _join("ignore", *_signal_fields(symbol, side, price, strategy, atr))


def close_token(symbol: str, ticket: int, strategy: str = "") -> str:
    return _join("close", _field(symbol), str(int(ticket)), _field(strategy))


def keep_token(symbol: str, ticket: int, strategy: str = "") -> str:
    return _join("keep", _field(symbol), str(int(ticket)), _field(strategy))


# ── Decoding ─────────────────────────────────────────────────────────────


def _parse_float(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        return 0.0


def _parse_ticket(text: str) -> int:
    # EA tickets may arrive as "77" or "77.0".
    try:
        return int(float(text))
    except (ValueError, OverflowError):
        return 0


def _optional_float(parts: list[str], index: int) -> float:
    return _parse_float(parts[index]) if len(parts) > index else 0.0


def _decode_trade(parts: list[str]) -> OpenTrade:
    return OpenTrade(
        symbol=parts[1],
        side=parts[2],
        price=_parse_float(parts[3]),
        strategy=parts[4],
        atr=_optional_float(parts, 5),
    )


def _decode_lot(parts: list[str]) -> OpenTradeWithLot:
    return OpenTradeWithLot(
        lots=_parse_float(parts[1]),
        symbol=parts[2],
        side=parts[3],
        price=_parse_float(parts[4]),
        strategy=parts[5],
        atr=_optional_float(parts, 6),
    )


def _decode_close(parts: list[str]) -> CloseTrade:
    return CloseTrade(
        symbol=parts[1],
        ticket=_parse_ticket(parts[2]),
        strategy=parts[3] if len(parts) > 3 else "",
    )


# kind → (minimum number of fields after the kind, decoder)
_DECODERS = {
    "trade": (4, _decode_trade),
    "lot": (5, _decode_lot),
    "close": (2, _decode_close),
    "status": (0, lambda parts: StatusRequest()),
    "ignore": (0, lambda parts: Ignore()),
    "keep": (0, lambda parts: KeepOpen()),
}


def decode_action(data: str) -> Optional[Intent]:
    """Decode a callback token into an intent.

    Returns ``None`` for unknown kinds and for tokens with fewer fields than
    their kind requires.  Unparsable numbers decode as zero.  Pure: the same
    token always yields an equal intent.
    """
    parts = (data or "").split(DELIMITER)
    kind = parts[0]

    entry = _DECODERS.get(kind)
    if entry is None:
        logger.info("Ignoring unknown action kind %r (raw=%r)", kind, data)
        return None

    min_fields, decoder = entry
    if len(parts) - 1 < min_fields:
        logger.warning(
            "Action %r needs %d field(s), got %d (raw=%r)",
            kind, min_fields, len(parts) - 1, data,
        )
        return None

    return decoder(parts)
