"""Stop-loss and take-profit calculation: pure math, no I/O.

Fixed policy (default):
    Metals use an absolute $5 stop / $10 target.  Forex uses 0.0050 / 0.0100
    (50 / 100 pips on a 5-digit quote).

Dynamic policy (when the signal carries a positive ATR reading):
    SL distance = ATR × sl_multiplier, clamped into a per-class pip range.
    TP distance = SL distance × tp_multiplier.

Broker digits:
    ``gold_digits`` (2|3) and ``forex_digits`` (4|5) choose how many quote
    points make one pip (metals 100 or 1000, forex 1 or 10).  The pip's price
    value stays the same under every supported setting ($1 for metals,
    0.0001 for forex), so the digit switch never moves the clamp range.  It
    only rejects unsupported broker settings.
"""

from dataclasses import dataclass

_METAL_MARKERS = ("XAU", "GOLD")

_FIXED_DISTANCES = {
    "metal": (5.0, 10.0),
    "forex": (0.0050, 0.0100),
}

# Dynamic SL bounds in pips.
_SL_PIP_BOUNDS = {
    "metal": (3.0, 20.0),
    "forex": (30.0, 200.0),
}

# Quote points per pip, keyed by (symbol class, broker digits).
_POINTS_PER_PIP = {
    ("metal", 2): 100,
    ("metal", 3): 1000,
    ("forex", 4): 1,
    ("forex", 5): 10,
}


@dataclass(frozen=True)
class RiskLevels:
    """Computed stop-loss and take-profit for a trade."""
    sl: float
    tp: float
    source: str  # "fixed" or "atr"


@dataclass(frozen=True)
class RiskSettings:
    """Tunables for the dynamic policy."""

    sl_multiplier: float = 1.5
    tp_multiplier: float = 2.0
    gold_digits: int = 2
    forex_digits: int = 5

    @classmethod
    def from_config(cls, config) -> "RiskSettings":
        return cls(
            sl_multiplier=config.sl_multiplier,
            tp_multiplier=config.tp_multiplier,
            gold_digits=config.gold_digits,
            forex_digits=config.forex_digits,
        )


def is_metal(symbol: str) -> bool:
    """Case-sensitive substring test: ``XAU`` or ``GOLD`` means metals."""
    return any(marker in symbol for marker in _METAL_MARKERS)


def _symbol_class(symbol: str) -> str:
    return "metal" if is_metal(symbol) else "forex"


def pip_size(symbol: str, settings: RiskSettings) -> float:
    """Price value of one pip for *symbol* under the broker digit setting.

    Raises:
        ValueError: If the digit setting is not supported for the class.
    """
    cls = _symbol_class(symbol)
    digits = settings.gold_digits if cls == "metal" else settings.forex_digits
    key = (cls, digits)
    if key not in _POINTS_PER_PIP:
        raise ValueError(f"unsupported {cls} digits: {digits}")
    return _POINTS_PER_PIP[key] * 10 ** -digits


def sl_bounds(symbol: str, settings: RiskSettings) -> tuple[float, float]:
    """Return the ``(min_sl, max_sl)`` price distances for *symbol*."""
    pip = pip_size(symbol, settings)
    min_pips, max_pips = _SL_PIP_BOUNDS[_symbol_class(symbol)]
    return min_pips * pip, max_pips * pip


def _apply_direction(
    side: str, price: float, sl_dist: float, tp_dist: float, source: str,
) -> RiskLevels:
    if side == "BUY":
        sl = price - sl_dist
        tp = price + tp_dist
    else:
        sl = price + sl_dist
        tp = price - tp_dist
    return RiskLevels(sl=round(sl, 5), tp=round(tp, 5), source=source)


def fixed_risk(symbol: str, side: str, price: float) -> RiskLevels:
    """Calculate SL/TP from the fixed per-class distances.

    - **BUY**:  SL = price − stop,  TP = price + target
    - anything else: signs invert
    """
    sl_dist, tp_dist = _FIXED_DISTANCES[_symbol_class(symbol)]
    return _apply_direction(side, price, sl_dist, tp_dist, "fixed")


def dynamic_risk(
    symbol: str,
    side: str,
    price: float,
    atr: float,
    settings: RiskSettings = RiskSettings(),
) -> RiskLevels:
    """Calculate SL/TP scaled by the ATR reading.

    The stop distance is ``atr × sl_multiplier`` clamped into
    :func:`sl_bounds`; the target is the stop distance times
    ``tp_multiplier``.  A non-positive *atr* returns exactly
    :func:`fixed_risk`.
    """
    if atr <= 0:
        return fixed_risk(symbol, side, price)

    min_sl, max_sl = sl_bounds(symbol, settings)
    sl_dist = min(max(atr * settings.sl_multiplier, min_sl), max_sl)
    tp_dist = sl_dist * settings.tp_multiplier
    return _apply_direction(side, price, sl_dist, tp_dist, "atr")


def resolve_risk(
    symbol: str,
    side: str,
    price: float,
    atr: float | None,
    settings: RiskSettings = RiskSettings(),
) -> RiskLevels:
    """Pick the dynamic policy when *atr* is present and positive."""
    if atr is not None and atr > 0:
        return dynamic_risk(symbol, side, price, atr, settings)
    return fixed_risk(symbol, side, price)
