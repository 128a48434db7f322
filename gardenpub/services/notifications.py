"""User-facing notices raised by the publisher (configuration problems, snapshots)."""

from __future__ import annotations

import logging
from typing import Protocol


logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Anything able to show a short message to the person running the publish."""

    def notify(self, message: str) -> None:
        """Surface ``message`` to the user."""


class LoggingNotifier:
    """Default notifier that writes notices to the log at warning level."""

    def __init__(self, name: str = "gardenpub.notice") -> None:
        self._logger = logging.getLogger(name)

    def notify(self, message: str) -> None:
        self._logger.warning(message, extra={"event": "notice"})
