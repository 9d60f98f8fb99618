import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, List

from backend import build_backend
from constants import FLUSH_INTERVAL_SECONDS, HEARTBEAT_INTERVAL_SECONDS, RETENTION_SWEEP_INTERVAL_SECONDS, ROOM_TTL_SECONDS
from monitor import ConnectionMonitor
from reconciler import SessionReconciler
from registry import LiveRegistry
from store import DurableStore
from sweeper import RetentionSweeper
from tasks import run_periodic
from logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class SessionContext:
    """Everything that lives from process start to process stop."""
    store: DurableStore
    registry: LiveRegistry
    reconciler: SessionReconciler
    monitor: ConnectionMonitor
    sweeper: RetentionSweeper
    flush_interval: float = FLUSH_INTERVAL_SECONDS
    heartbeat_interval: float = HEARTBEAT_INTERVAL_SECONDS
    retention_interval: float = RETENTION_SWEEP_INTERVAL_SECONDS
    background_tasks: List[asyncio.Task] = field(default_factory=list)

    def start(self):
        """Load durable state and start the flush, heartbeat and retention timers."""
        self.store.load()
        self.background_tasks = [
            asyncio.create_task(run_periodic("flush", self.flush_interval, self.store.flush)),
            asyncio.create_task(run_periodic("heartbeat", self.heartbeat_interval, self.monitor.sweep)),
            asyncio.create_task(run_periodic("retention", self.retention_interval, self.sweeper.sweep)),
        ]

    async def stop(self):
        for task in self.background_tasks:
            task.cancel()
        for task in self.background_tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.background_tasks = []
        self.store.flush()
        logger.info("Session context stopped, durable state flushed")


def build_context(backend=None, clock: Callable[[], float] = time.time,
                  ttl_seconds: int = ROOM_TTL_SECONDS) -> SessionContext:
    store = DurableStore(backend if backend is not None else build_backend())
    registry = LiveRegistry()
    reconciler = SessionReconciler(store, registry, clock=clock)
    return SessionContext(
        store=store,
        registry=registry,
        reconciler=reconciler,
        monitor=ConnectionMonitor(reconciler),
        sweeper=RetentionSweeper(store, registry, ttl_seconds=ttl_seconds, clock=clock),
    )
