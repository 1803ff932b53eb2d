"""Realtime change feed of pending_sales.

The schema installs a trigger that publishes every insert, update and delete
of pending_sales on the ``pending_sales_changes`` channel. The listener holds
one pool connection with LISTEN on that channel and hands every change to an
async handler.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Set

from database import get_pool

logger = logging.getLogger(__name__)

CHANNEL = "pending_sales_changes"

ChangeHandler = Callable[[Dict[str, Any]], Awaitable[None]]

def affected_users(change: Dict[str, Any]) -> Set[str]:
    """Buyer and seller of a changed sale."""
    return {
        str(change[key])
        for key in ('buyer_id', 'seller_id')
        if change.get(key)
    }

class RealtimeListener:
    """Listens for pending sale changes on a dedicated connection."""

    def __init__(self, handler: ChangeHandler, pool=None):
        self.handler = handler
        self.pool = pool
        self.conn = None
        self.tasks: Set[asyncio.Task] = set()

    async def start(self) -> None:
        if self.conn:
            return
        if not self.pool:
            self.pool = await get_pool()
        self.conn = await self.pool.acquire()
        await self.conn.add_listener(CHANNEL, self._on_notify)
        logger.info(f"Listening for changes on {CHANNEL}")

    async def stop(self) -> None:
        if not self.conn:
            return
        try:
            await self.conn.remove_listener(CHANNEL, self._on_notify)
        finally:
            await self.pool.release(self.conn)
            self.conn = None
        for task in list(self.tasks):
            task.cancel()
        logger.info(f"Stopped listening on {CHANNEL}")

    def _on_notify(self, connection, pid: int, channel: str, payload: str) -> None:
        try:
            change = json.loads(payload)
        except ValueError:
            logger.warning(f"Ignoring malformed payload on {channel}: {payload!r}")
            return
        task = asyncio.ensure_future(self._dispatch(change))
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)

    async def _dispatch(self, change: Dict[str, Any]) -> None:
        try:
            await self.handler(change)
        except Exception as e:
            logger.error(f"Error handling {change.get('event')} of sale {change.get('id')}: {e}")

__all__ = ['RealtimeListener', 'CHANNEL', 'affected_users']
