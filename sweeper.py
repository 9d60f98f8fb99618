import time
from typing import Callable, List

from constants import ROOM_TTL_SECONDS
from registry import LiveRegistry
from store import DurableStore
from logging_config import get_logger

logger = get_logger(__name__)


class RetentionSweeper:
    """Deletes rooms older than the TTL from both stores.

    Live connections in a purged room are not notified.
    """

    def __init__(self, store: DurableStore, registry: LiveRegistry,
                 ttl_seconds: int = ROOM_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self.store = store
        self.registry = registry
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def sweep(self) -> List[str]:
        cutoff = int((self.clock() - self.ttl_seconds) * 1000)
        purged = []
        for code, room in self.store.all_rooms():
            if room.created_at < cutoff:
                self.store.delete_room(code)
                self.registry.remove_room(code)
                purged.append(code)
        if purged:
            self.store.flush()
            logger.info(f"Purged {len(purged)} expired rooms: {', '.join(purged)}")
        else:
            logger.debug("Retention sweep found no expired rooms")
        return purged
