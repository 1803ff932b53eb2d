from typing import Dict, Any, Union
from database import get_pool
import uuid

LISTING_QUERY = '''
    SELECT
        l.id,
        l.unit_id,
        l.seller_id,
        l.price,
        l.quantity,
        l.available_quantity,
        l.created_at,
        l.updated_at,
        u.name AS unit_name,
        u.collection AS unit_collection,
        u.unit_number AS unit_number,
        u.image_url AS unit_image_url
    FROM listings l
    JOIN units u ON u.id = l.unit_id
'''

def listing_from_row(row) -> Dict[str, Any]:
    """Build a listing dict with its nested unit from a joined row."""
    return {
        'id': row['id'],
        'unit_id': row['unit_id'],
        'seller_id': row['seller_id'],
        'price': row['price'],
        'quantity': row['quantity'],
        'available_quantity': row['available_quantity'],
        'created_at': row['created_at'],
        'updated_at': row['updated_at'],
        'unit': {
            'name': row['unit_name'],
            'collection': row['unit_collection'],
            'unit_number': row['unit_number'],
            'image_url': row['unit_image_url']
        }
    }

async def get_listing(listing_id: Union[str, uuid.UUID], pool=None) -> Dict[str, Any]:
    """Get a listing by ID with its unit.

    Args:
        listing_id: The listing UUID

    Returns:
        Dict containing listing details and the nested unit

    Raises:
        LookupError: If listing doesn't exist
    """
    if pool is None:
        pool = await get_pool()

    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            LISTING_QUERY + ' WHERE l.id = $1',
            listing_id
        )

    if not row:
        raise LookupError(f"Listing {listing_id} not found")

    return listing_from_row(row)
