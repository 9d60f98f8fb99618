import asyncio
import inspect
from typing import Any, Callable

from logging_config import get_logger

logger = get_logger(__name__)


async def run_periodic(name: str, interval: float, tick: Callable[[], Any]):
    """Call tick every interval seconds until cancelled.

    A tick runs to completion before the next sleep starts, so ticks of the
    same timer never overlap. A failing tick is logged and the timer keeps going.
    """
    logger.info(f"Starting periodic task {name} every {interval}s")
    try:
        while True:
            await asyncio.sleep(interval)
            try:
                result = tick()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Error in periodic task {name}: {e}", exc_info=True)
    except asyncio.CancelledError:
        logger.info(f"Periodic task {name} cancelled")
        raise
