"""CommandQueue: pending commands for the polling EA bridge.

Shared by every request handler.  One lock guards all access and is held
only for the in-memory list operation, never across file or network I/O.
"""

import logging
import threading

from signalrelay.signals.models import TradeCommand

logger = logging.getLogger("signalrelay.queue")


class CommandQueue:
    """FIFO of ``TradeCommand`` with atomic drain-and-clear."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._commands: list[TradeCommand] = []

    def append(self, command: TradeCommand) -> None:
        with self._lock:
            self._commands.append(command)
            depth = len(self._commands)
        logger.info(
            "Enqueued %s for HTTP bridge: symbol=%s ticket=%s (depth %d)",
            command.action, command.symbol or "-", command.ticket or "-", depth,
        )

    def drain(self) -> list[TradeCommand]:
        """Return every pending command and clear the queue.

        Snapshot and clear happen under one lock acquisition, so an append
        racing with the drain lands either in this result or in the next.
        """
        with self._lock:
            commands = self._commands
            self._commands = []
        return commands

    def __len__(self) -> int:
        with self._lock:
            return len(self._commands)
