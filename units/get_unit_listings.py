"""Get the listings of a unit that still have stock."""

import logging
from typing import Any, Dict, List
from uuid import UUID

logger = logging.getLogger(__name__)

async def get_unit_listings(pool, unit_id: UUID) -> List[Dict[str, Any]]:
    """Get listings with stock for a unit, cheapest first.

    Args:
        pool: Database connection pool
        unit_id: UUID of the unit

    Returns:
        List of listing dicts, each with a nested seller (id, username, whatsapp)
    """
    async with pool.acquire() as conn:
        rows = await conn.fetch(
            '''
            SELECT
                l.id,
                l.price,
                l.available_quantity,
                p.id AS seller_id,
                p.username AS seller_username,
                p.whatsapp AS seller_whatsapp
            FROM listings l
            JOIN profiles p ON p.id = l.seller_id
            WHERE l.unit_id = $1
            AND l.available_quantity > 0
            ORDER BY l.price ASC, l.created_at ASC
            ''',
            unit_id
        )

    return [
        {
            'id': row['id'],
            'price': row['price'],
            'available_quantity': row['available_quantity'],
            'seller': {
                'id': row['seller_id'],
                'username': row['seller_username'],
                'whatsapp': row['seller_whatsapp']
            }
        }
        for row in rows
    ]
