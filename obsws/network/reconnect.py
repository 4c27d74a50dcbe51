"""Exponential-backoff reconnect signalling after abnormal socket closure."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from obsws.protocol.constants import NORMAL_CLOSURE

LOGGER = logging.getLogger(__name__)


@dataclass
class ReconnectionSupervisor:
    """Schedules one-shot reconnect signals; never redials by itself.

    Each abnormal close schedules ``on_reconnect`` after ``current_delay``
    seconds and doubles the delay up to ``max_delay``.
    """

    on_reconnect: Callable[[], None]
    base_delay: float = 1.0
    max_delay: float = 30.0
    logger: Union[logging.Logger, logging.LoggerAdapter] = LOGGER

    enabled: bool = field(default=False, init=False)
    current_delay: float = field(default=0.0, init=False)
    _timer: Optional[asyncio.TimerHandle] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.current_delay = self.base_delay

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def enable(self) -> None:
        self.enabled = True

    def disable(self) -> None:
        self.enabled = False
        self.cancel()

    def reset(self) -> None:
        self.current_delay = self.base_delay

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def handle_close(self, code: int) -> Optional[float]:
        """Schedule a reconnect signal for an abnormal close.

        Returns the delay that was scheduled, or ``None`` when nothing was.
        """

        if code == NORMAL_CLOSURE or not self.enabled:
            return None
        self.cancel()
        delay = self.current_delay
        self.logger.info("Reconnecting in %.2fs...", delay)
        self._timer = asyncio.get_running_loop().call_later(delay, self._fire)
        self.current_delay = min(self.current_delay * 2, self.max_delay)
        return delay

    def _fire(self) -> None:
        self._timer = None
        if not self.enabled:
            return
        try:
            self.on_reconnect()
        except Exception:  # noqa: BLE001
            self.logger.exception("Reconnect callback failed")
