# vaultnote/services/janitor.py

import logging
import random
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from vaultnote.core.errors import StoreUnavailable
from vaultnote.core.message_logic import utcnow
from vaultnote.services.message_store import MessageStore, SweepResult

logger = logging.getLogger(__name__)


class Janitor:
    """
    Reclaims storage held by expired and already consumed messages.

    Reads never depend on it: the store refuses expired or consumed records
    on its own. A failed sweep is logged and the next one tries again.
    """

    def __init__(
        self,
        store: MessageStore,
        consumed_grace_seconds: int = 3600,
        cleanup_chance: int = 10,
        clock: Callable[[], datetime] = utcnow,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.consumed_grace = timedelta(seconds=consumed_grace_seconds)
        self.cleanup_chance = cleanup_chance
        self._clock = clock
        self._rng = rng or random.Random()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run(self, now: Optional[datetime] = None) -> Optional[SweepResult]:
        now = now or self._clock()
        try:
            result = self.store.delete_expired_and_consumed(
                now, consumed_older_than=now - self.consumed_grace
            )
        except StoreUnavailable as e:
            logger.warning("Janitor sweep failed: %s", e)
            return None

        if result.total:
            logger.info(
                "Janitor removed %d expired and %d consumed messages",
                result.expired, result.consumed,
            )
        return result

    def maybe_run(self, now: Optional[datetime] = None) -> Optional[SweepResult]:
        """Sweep with probability cleanup_chance percent."""
        if self._rng.randint(1, 100) > self.cleanup_chance:
            return None
        return self.run(now)

    # ---------- PERIODIC TICK ----------

    def start(self, interval_seconds: float) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop, args=(interval_seconds,), name="vaultnote-janitor", daemon=True
        )
        self._thread.start()
        logger.info("Janitor started, sweeping every %ss", interval_seconds)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _loop(self, interval_seconds: float) -> None:
        while not self._stop.wait(interval_seconds):
            try:
                self.run()
            except Exception:
                logger.exception("Janitor sweep crashed")
