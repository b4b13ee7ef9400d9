from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from ..core.config import Settings, settings as default_settings
from ..core.timeutil import now_utc
from ..domain.errors import StoreError, StoreUnavailable
from ..domain.interfaces import ReadingStore

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    RECONNECTING = "reconnecting"


@dataclass
class ReconnectPolicy:
    initial_backoff_s: float = 1.0
    max_backoff_s: float = 30.0
    multiplier: float = 2.0
    max_attempts: Optional[int] = None  # None = keep trying

    @classmethod
    def from_settings(cls, s: Settings = default_settings) -> "ReconnectPolicy":
        return cls(
            initial_backoff_s=s.reconnect_initial_backoff_seconds,
            max_backoff_s=s.reconnect_max_backoff_seconds,
            max_attempts=s.reconnect_max_attempts or None,
        )

    def next_backoff(self, current: float) -> float:
        return min(current * self.multiplier, self.max_backoff_s)


class StoreSupervisor:
    """
    Tracks reachability of the reading store.
    Responsible for: connect with capped backoff, state transitions, health report.
    """

    def __init__(self, store: ReadingStore, policy: ReconnectPolicy = ReconnectPolicy()) -> None:
        self._store = store
        self.policy = policy
        self.state = ConnectionState.DISCONNECTED
        self.attempts = 0
        self.last_error: Optional[str] = None
        self.last_change_utc: Optional[datetime] = None
        self._backoff = policy.initial_backoff_s

    def _transition(self, state: ConnectionState) -> None:
        if state is self.state:
            return
        logger.info("Store connection %s -> %s", self.state.value, state.value)
        self.state = state
        self.last_change_utc = now_utc()

    async def connect(self, stop: Optional[asyncio.Event] = None) -> bool:
        """Ping the store until it answers, the attempt cap is hit or ``stop`` is set."""
        while True:
            self.attempts += 1
            try:
                await self._store.ping()
            except StoreError as e:
                self.last_error = str(e)
                if self.policy.max_attempts is not None and self.attempts >= self.policy.max_attempts:
                    logger.error("Store connection failed after %d attempts: %s", self.attempts, e)
                    self._transition(ConnectionState.DISCONNECTED)
                    return False

                self._transition(ConnectionState.RECONNECTING)
                logger.warning("Store connection error. Retrying in %.1f seconds... (%s)", self._backoff, e)
                delay = self._backoff
                self._backoff = self.policy.next_backoff(self._backoff)
                if stop is None:
                    await asyncio.sleep(delay)
                else:
                    try:
                        await asyncio.wait_for(stop.wait(), timeout=delay)
                        return False
                    except asyncio.TimeoutError:
                        pass
                continue

            self.mark_ok()
            return True

    def mark_ok(self) -> None:
        self.attempts = 0
        self.last_error = None
        self._backoff = self.policy.initial_backoff_s
        self._transition(ConnectionState.CONNECTED)

    def mark_failed(self, exc: BaseException) -> None:
        self.last_error = str(exc)
        if isinstance(exc, StoreUnavailable):
            self._transition(ConnectionState.DISCONNECTED)

    async def check(self) -> ConnectionState:
        try:
            await self._store.ping()
        except StoreError as e:
            self.mark_failed(e)
        else:
            self.mark_ok()
        return self.state

    def health(self) -> dict:
        return {
            "state": self.state.value,
            "attempts": self.attempts,
            "last_error": self.last_error,
            "last_change_utc": self.last_change_utc.isoformat() if self.last_change_utc else None,
        }
