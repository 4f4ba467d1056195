"""
Status sinks.

Passive observers that receive human-readable progress messages from the
publisher. They never influence the publish outcome.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod


class StatusSink(ABC):
    """Abstract base class for status sinks."""

    @abstractmethod
    def say(self, message: str) -> None:
        """Headline message for a publish step."""
        ...

    @abstractmethod
    def message(self, message: str) -> None:
        """Detail message within a step."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class NullStatusSink(StatusSink):
    """Discards every message."""

    def say(self, message: str) -> None:
        pass

    def message(self, message: str) -> None:
        pass


class LoggingStatusSink(StatusSink):
    """Forwards messages to a logger at INFO level."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("boxpublisher.status")

    def say(self, message: str) -> None:
        self._logger.info("==> %s", message)

    def message(self, message: str) -> None:
        self._logger.info("    %s", message)
