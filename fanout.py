import asyncio
from typing import Optional, Union

from pydantic import BaseModel

from connection import Connection
from registry import LiveRegistry
from logging_config import get_logger

logger = get_logger(__name__)


async def broadcast(registry: LiveRegistry, code: str, message: Union[BaseModel, dict],
                    exclude: Optional[Connection] = None) -> int:
    """Send message to every live connection in the room except exclude.

    Best effort: a recipient that is gone or fails to receive simply misses
    the message. Returns how many sends succeeded.
    """
    recipients = [conn for conn in registry.connections(code) if conn is not exclude]
    if not recipients:
        logger.debug(f"No live recipients in room {code}")
        return 0
    if isinstance(message, BaseModel):
        message = message.model_dump(by_alias=True)

    results = await asyncio.gather(*(conn.send(message) for conn in recipients), return_exceptions=True)
    delivered = sum(1 for r in results if r is True)
    logger.debug(f"Broadcast {message.get('type', 'unknown')} to {delivered}/{len(recipients)} connections in room {code}")
    return delivered
