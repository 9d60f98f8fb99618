from typing import Set

from connection import Connection
from reconciler import SessionReconciler
from schemas.rooms import Ping
from logging_config import get_logger

logger = get_logger(__name__)

STALE_CLOSE_CODE = 1001


class ConnectionMonitor:
    """Heartbeat sweep over every open connection.

    Each sweep closes connections that have not acknowledged the previous
    probe, then clears the flag on the rest and probes them again. A
    half-open socket is therefore evicted after at most two intervals.
    """

    def __init__(self, reconciler: SessionReconciler):
        self.reconciler = reconciler
        self.connections: Set[Connection] = set()

    def track(self, conn: Connection):
        self.connections.add(conn)
        logger.debug(f"Tracking connection {conn.id} ({len(self.connections)} open)")

    def untrack(self, conn: Connection):
        self.connections.discard(conn)

    async def sweep(self) -> int:
        """Run one heartbeat round. Returns the number of evicted connections."""
        evicted = 0
        for conn in list(self.connections):
            if conn.closed:
                self.untrack(conn)
                continue
            if not conn.alive:
                logger.info(f"Evicting stale connection {conn.id} in room {conn.room_code}")
                self.untrack(conn)
                await conn.close(code=STALE_CLOSE_CODE, reason="Heartbeat timeout")
                await self.reconciler.disconnect(conn)
                evicted += 1
                continue
            conn.alive = False
            await conn.send(Ping())
        if evicted:
            logger.info(f"Heartbeat sweep evicted {evicted} connections, {len(self.connections)} remain")
        return evicted
