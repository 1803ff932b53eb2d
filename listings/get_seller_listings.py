from typing import Dict, Any, List, Union
from database import get_pool
import uuid

from .get_listing import LISTING_QUERY, listing_from_row

async def get_seller_listings(seller_id: Union[str, uuid.UUID], pool=None) -> List[Dict[str, Any]]:
    """Get all listings of a seller, newest first.

    Args:
        seller_id: The seller's user id

    Returns:
        List of listing dicts with their nested unit
    """
    if pool is None:
        pool = await get_pool()

    async with pool.acquire() as conn:
        rows = await conn.fetch(
            LISTING_QUERY + ' WHERE l.seller_id = $1 ORDER BY l.created_at DESC',
            seller_id
        )

    return [listing_from_row(row) for row in rows]
