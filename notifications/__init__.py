"""Notifications module for sale events shown to buyers and sellers.

Notifications are not stored; they are assembled from pending_sales:
- a seller sees one notification per sale still waiting for approval
- a buyer sees one notification per sale approved in the last hours
"""

import logging
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from config import settings_conf
from database import get_pool

logger = logging.getLogger(__name__)

class NotificationManager:
    """Builds the notification list of a user."""

    def __init__(self, pool=None, approved_hours: Optional[int] = None):
        """Initialize the notification manager.

        Args:
            pool: Optional database pool. If not provided, will get from database module.
            approved_hours: How long approved sales are shown to the buyer.
        """
        self.pool = pool
        self.approved_hours = approved_hours or settings_conf['approved_notification_hours']

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def get_notifications(self, user_id: Union[str, UUID]) -> List[Dict[str, Any]]:
        """Get pending purchases to approve and recently approved purchases.

        Returns:
            List of notifications, pending ones first, each newest first
        """
        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            pending = await conn.fetch(
                '''
                SELECT ps.id, ps.quantity, ps.created_at, b.username AS buyer_username
                FROM pending_sales ps
                JOIN profiles b ON b.id = ps.buyer_id
                WHERE ps.seller_id = $1
                AND ps.status = 'pending'
                ORDER BY ps.created_at DESC
                ''',
                user_id
            )
            approved = await conn.fetch(
                '''
                SELECT ps.id, ps.quantity, ps.updated_at, s.username AS seller_username
                FROM pending_sales ps
                JOIN profiles s ON s.id = ps.seller_id
                WHERE ps.buyer_id = $1
                AND ps.status = 'approved'
                AND ps.updated_at >= now() - make_interval(hours => $2)
                ORDER BY ps.updated_at DESC
                ''',
                user_id,
                self.approved_hours
            )

        notifications = [
            {
                'id': f"pending-{row['id']}",
                'type': 'pending',
                'sale_id': row['id'],
                'quantity': row['quantity'],
                'message': f"New pending purchase from {row['buyer_username']}",
                'created_at': row['created_at']
            }
            for row in pending
        ]
        notifications.extend(
            {
                'id': f"approved-{row['id']}",
                'type': 'approved',
                'sale_id': row['id'],
                'quantity': row['quantity'],
                'message': f"Sale approved by {row['seller_username']}",
                'created_at': row['updated_at']
            }
            for row in approved
        )
        return notifications

__all__ = ['NotificationManager']
