"""SignalRelay application configuration.

Loads .env variables into a typed config object.
Validates required variables on startup.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger("signalrelay")

_REQUIRED_VARS = [
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_CHAT_ID",
]

DEFAULT_AUTH_TOKEN = "changeme"

_SUPPORTED_GOLD_DIGITS = (2, 3)
_SUPPORTED_FOREX_DIGITS = (4, 5)

_LOCAL_FALLBACK_PATH = "./mt4-files"


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    telegram_bot_token: str
    telegram_chat_id: str
    api_auth_token: str
    port: int
    mt4_data_path: str
    sl_multiplier: float
    tp_multiplier: float
    gold_digits: int  # broker quote digits for metals: 2 or 3
    forex_digits: int  # broker quote digits for forex: 4 or 5
    display_timezone: str
    log_level: str

    @property
    def telegram_configured(self) -> bool:
        return bool(self.telegram_chat_id)

    @property
    def masked_auth_token(self) -> str:
        """Auth token safe for logs: first five characters only."""
        return self.api_auth_token[:5] + "..."


def default_mt4_path(home: str | None = None) -> str:
    """Return the first existing MT4 ``Files`` directory.

    Checks a Wine install and the Windows common-files folder, then falls
    back to ``./mt4-files`` (created if missing).
    """
    home = home if home is not None else os.environ.get("HOME", "")
    candidates = [
        Path(home) / ".wine/drive_c/Program Files/MetaTrader 4/MQL4/Files",
        Path(home) / "AppData/Roaming/MetaQuotes/Terminal/Common/Files",
    ]
    for path in candidates:
        if path.is_dir():
            return str(path)

    Path(_LOCAL_FALLBACK_PATH).mkdir(parents=True, exist_ok=True)
    return _LOCAL_FALLBACK_PATH


def _parse_port(raw: str) -> int:
    # Accept Go-style listen addresses such as ":8080".
    return int(raw.rsplit(":", 1)[-1])


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the missing variable when a
    required variable is absent, or when a digit setting is unsupported.
    """
    load_dotenv(dotenv_path=env_path)

    missing = [v for v in _REQUIRED_VARS if not os.environ.get(v)]
    if missing:
        raise ValueError(
            f"Missing required environment variable(s): {', '.join(missing)}"
        )

    gold_digits = int(os.environ.get("GOLD_DIGITS", "2"))
    if gold_digits not in _SUPPORTED_GOLD_DIGITS:
        raise ValueError(f"GOLD_DIGITS must be 2 or 3, got {gold_digits}")
    forex_digits = int(os.environ.get("FOREX_DIGITS", "5"))
    if forex_digits not in _SUPPORTED_FOREX_DIGITS:
        raise ValueError(f"FOREX_DIGITS must be 4 or 5, got {forex_digits}")

    api_auth_token = os.environ.get("API_AUTH_TOKEN") or DEFAULT_AUTH_TOKEN
    if api_auth_token == DEFAULT_AUTH_TOKEN:
        logger.warning("API_AUTH_TOKEN not set, using the default token")

    return Config(
        telegram_bot_token=os.environ["TELEGRAM_BOT_TOKEN"],
        telegram_chat_id=os.environ["TELEGRAM_CHAT_ID"],
        api_auth_token=api_auth_token,
        port=_parse_port(os.environ.get("PORT") or "8080"),
        mt4_data_path=os.environ.get("MT4_DATA_PATH") or default_mt4_path(),
        sl_multiplier=float(os.environ.get("SL_MULTIPLIER", "1.5")),
        tp_multiplier=float(os.environ.get("TP_MULTIPLIER", "2.0")),
        gold_digits=gold_digits,
        forex_digits=forex_digits,
        display_timezone=os.environ.get("DISPLAY_TIMEZONE", "Asia/Jakarta"),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )
