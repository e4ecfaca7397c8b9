"""Ephemeral operator messages.

At most one message is visible at a time; posting a new one replaces the
current one, and a message expires ``ttl`` seconds after it was posted.
Messages are never persisted.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

SUCCESS = "success"
ERROR = "error"
INFO = "info"
SEVERITIES = frozenset({SUCCESS, ERROR, INFO})

DEFAULT_TTL_SECONDS = 5.0


@dataclass(frozen=True)
class Message:
    text: str
    severity: str
    posted_at: float

    def as_dict(self) -> dict:
        return {"text": self.text, "severity": self.severity}


class MessageBoard:
    def __init__(self, ttl: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self.clock = clock
        self._current: Optional[Message] = None
        self._lock = threading.Lock()

    def show(self, text: str, severity: str) -> Message:
        if severity not in SEVERITIES:
            raise ValueError(f"unknown message severity: {severity}")
        message = Message(text=str(text), severity=severity, posted_at=self.clock())
        with self._lock:
            self._current = message
        log = logger.error if severity == ERROR else logger.info
        log("message.%s text=%s", severity, message.text)
        return message

    def success(self, text: str) -> Message:
        return self.show(text, SUCCESS)

    def error(self, text: str) -> Message:
        return self.show(text, ERROR)

    def info(self, text: str) -> Message:
        return self.show(text, INFO)

    def current(self) -> Optional[Message]:
        """Return the visible message, clearing it once expired."""
        with self._lock:
            message = self._current
            if message is None:
                return None
            if self.clock() - message.posted_at >= self.ttl:
                self._current = None
                return None
            return message

    def clear(self) -> None:
        with self._lock:
            self._current = None


__all__ = ["Message", "MessageBoard", "SUCCESS", "ERROR", "INFO", "SEVERITIES"]
