from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from app.store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class EvictionRunStats:
    sweeps: int = 0
    evicted: int = 0

    def as_dict(self) -> dict[str, int]:
        return {"sweeps": self.sweeps, "evicted": self.evicted}


class EvictionWorker:
    """Background sweep that drops entries idle for at least the store TTL."""

    def __init__(self, *, store: DocumentStore, interval_seconds: float) -> None:
        self.store = store
        self.interval_seconds = max(0.001, float(interval_seconds))
        self.stats = EvictionRunStats()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> int:
        logger.info("eviction_sweep_started")
        evicted = self.store.evict_expired()
        self.stats.sweeps += 1
        self.stats.evicted += len(evicted)
        logger.info("eviction_sweep_completed evicted=%d", len(evicted))
        return len(evicted)

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception:
                logger.exception("eviction_sweep_failed")

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="document-store-eviction", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        self._thread = None
