from __future__ import annotations

import logging
from typing import Optional, Protocol


class Notifier(Protocol):
    """Leveled progress sink. Delivery is up to the implementation."""

    def info(self, message: str) -> None: ...

    def fatal(self, message: str) -> None: ...


class LoggingNotifier:
    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger("stack_scaler.notifier")

    def info(self, message: str) -> None:
        self._logger.info("%s", message)

    def fatal(self, message: str) -> None:
        self._logger.critical("%s", message)


class RecordingNotifier:
    """Keeps every message; used for command output and in tests."""

    def __init__(self, forward: Optional[Notifier] = None) -> None:
        self._forward = forward
        self.messages: list[tuple[str, str]] = []

    def info(self, message: str) -> None:
        self.messages.append(("INFO", message))
        if self._forward is not None:
            self._forward.info(message)

    def fatal(self, message: str) -> None:
        self.messages.append(("FATAL", message))
        if self._forward is not None:
            self._forward.fatal(message)

    @property
    def lines(self) -> list[str]:
        return [message for _, message in self.messages]
