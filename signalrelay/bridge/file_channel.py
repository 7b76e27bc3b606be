"""File channel to a locally attached EA.

The EA polls its ``MQL4/Files`` directory, consumes the command file and
deletes it.  Only one command per file is outstanding: a new write replaces
whatever the EA has not picked up yet.
"""

import json
import logging
from pathlib import Path

from signalrelay.signals.models import TradeCommand

logger = logging.getLogger("signalrelay.file_channel")

TRADE_COMMAND_FILE = "trade_command.json"
CLOSE_COMMAND_FILE = "close_command.json"

_PROBE_FILE = "connection_test.txt"


class FileChannel:
    """Writes ``TradeCommand`` JSON into the MT4 data directory."""

    def __init__(self, data_path: str) -> None:
        self._data_path = Path(data_path)

    @property
    def data_path(self) -> Path:
        return self._data_path

    def _write(self, filename: str, command: TradeCommand) -> Path:
        path = self._data_path / filename
        path.write_text(json.dumps(command.to_dict()), encoding="utf-8")
        return path

    def write_trade(self, command: TradeCommand) -> Path:
        """Write an open command to ``trade_command.json``.

        Raises:
            OSError: If the file cannot be written.
        """
        path = self._write(TRADE_COMMAND_FILE, command)
        logger.info(
            "Trade command written: %s %s %.2f lots -> %s",
            command.symbol, command.side, command.lots, path,
        )
        return path

    def write_close(self, command: TradeCommand) -> Path:
        """Write a close command to ``close_command.json``.

        Only action, ticket and symbol matter to the EA; the strategy tag
        travels on the queue only.

        Raises:
            OSError: If the file cannot be written.
        """
        file_command = TradeCommand.close(ticket=command.ticket, symbol=command.symbol)
        path = self._write(CLOSE_COMMAND_FILE, file_command)
        logger.info("Close command written: ticket #%d -> %s", command.ticket, path)
        return path

    def check_connection(self) -> None:
        """Verify the data directory exists and is writable.

        Raises:
            OSError: If the directory is missing or not writable.
        """
        if not self._data_path.is_dir():
            raise FileNotFoundError(f"MT4 data path not found: {self._data_path}")
        probe = self._data_path / _PROBE_FILE
        probe.write_text("test", encoding="utf-8")
        probe.unlink()
