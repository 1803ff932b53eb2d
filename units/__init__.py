"""Units module for the catalog items traded on the marketplace.

This module provides functionality for:
- Browsing and searching units with their availability
- Unit details with the listings that still have stock
- Creating units on the first listing of an unseen collection/number pair
- Maintaining the cached min/avg/max market prices of a unit
"""

import logging
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from database import get_pool
from catalog import (
    get_collection_label,
    get_collection_icon_url,
    get_unit_details_url,
    get_unit_image_url
)
from .get_unit_listings import get_unit_listings

logger = logging.getLogger(__name__)

class UnitError(Exception):
    """Base exception for unit operations."""
    pass

class UnitNotFoundError(UnitError):
    """Raised when a unit is not found."""
    pass

def filter_units(
    units: Iterable[Dict[str, Any]],
    search: Optional[str] = None,
    collection: Optional[str] = None
) -> List[Dict[str, Any]]:
    """Filter units by a search term and a collection code.

    The search term matches case-insensitively against the unit name or its
    collection code. An empty collection matches every collection.
    """
    term = (search or '').strip().lower()
    result = []
    for unit in units:
        matches_search = (
            term in (unit.get('name') or '').lower()
            or term in (unit.get('collection') or '').lower()
        )
        matches_collection = not collection or unit.get('collection') == collection
        if matches_search and matches_collection:
            result.append(unit)
    return result

async def find_or_create_unit(
    conn,
    collection: str,
    unit_number: str,
    name: str,
    image_url: Optional[str] = None
) -> UUID:
    """Get the id of a unit, creating the unit if it is new.

    Args:
        conn: Database connection
        collection: Collection code
        unit_number: Unit number inside the collection
        name: Unit name used when the unit is created
        image_url: Image URL used when the unit is created

    Returns:
        UUID of the existing or new unit
    """
    unit_id = await conn.fetchval(
        '''
        SELECT id FROM units
        WHERE collection = $1 AND unit_number = $2
        ''',
        collection,
        unit_number
    )
    if unit_id:
        return unit_id

    unit_id = await conn.fetchval(
        '''
        INSERT INTO units (name, collection, unit_number, image_url)
        VALUES ($1, $2, $3, $4)
        RETURNING id
        ''',
        name,
        collection,
        unit_number,
        image_url or get_unit_image_url(collection, unit_number)
    )
    logger.info(f"Created unit {collection}{unit_number} ({name})")
    return unit_id

async def refresh_price_stats(conn, unit_id: UUID) -> None:
    """Recompute the cached market prices of a unit.

    Prices are taken over the unit's listings that still have stock; all three
    are NULL when there are none.
    """
    await conn.execute(
        '''
        UPDATE units u
        SET
            min_price = s.min_price,
            avg_price = s.avg_price,
            max_price = s.max_price
        FROM (
            SELECT
                MIN(price) AS min_price,
                ROUND(AVG(price), 2) AS avg_price,
                MAX(price) AS max_price
            FROM listings
            WHERE unit_id = $1
            AND available_quantity > 0
        ) s
        WHERE u.id = $1
        ''',
        unit_id
    )

class UnitManager:
    """Manager class for unit browsing and details."""

    def __init__(self, pool=None):
        """Initialize the unit manager.

        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def list_units(
        self,
        search: Optional[str] = None,
        collection: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """List units, newest first, with availability and cached prices.

        Args:
            search: Optional term matched against name or collection
            collection: Optional exact collection code

        Returns:
            List of unit dicts with has_available_listings
        """
        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                '''
                SELECT
                    u.id,
                    u.name,
                    u.collection,
                    u.unit_number,
                    u.image_url,
                    u.min_price,
                    u.avg_price,
                    u.max_price,
                    u.created_at,
                    EXISTS (
                        SELECT 1 FROM listings l
                        WHERE l.unit_id = u.id
                        AND l.available_quantity > 0
                    ) AS has_available_listings
                FROM units u
                ORDER BY u.created_at DESC
                '''
            )

        units = [dict(row) for row in rows]
        return filter_units(units, search, collection)

    async def get_unit(self, unit_id: UUID) -> Dict[str, Any]:
        """Get a unit by ID.

        Raises:
            UnitNotFoundError: If the unit does not exist
        """
        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow('SELECT * FROM units WHERE id = $1', unit_id)

        if not row:
            raise UnitNotFoundError(f"Unit {unit_id} not found")
        return dict(row)

    async def get_unit_details(self, unit_id: UUID) -> Dict[str, Any]:
        """Get a unit with its available listings and catalog links.

        Returns:
            Dict containing the unit fields plus:
                - listings: listings with stock, cheapest first
                - cheapest_listing: first of listings or None
                - collection_label, collection_icon_url, details_url

        Raises:
            UnitNotFoundError: If the unit does not exist
        """
        unit = await self.get_unit(unit_id)
        listings = await get_unit_listings(self.pool, unit_id)

        return {
            **unit,
            'listings': listings,
            'cheapest_listing': listings[0] if listings else None,
            'collection_label': get_collection_label(unit['collection']),
            'collection_icon_url': get_collection_icon_url(unit['collection']),
            'details_url': get_unit_details_url(unit['collection'], unit['unit_number'])
        }

__all__ = [
    'UnitManager',
    'UnitError',
    'UnitNotFoundError',
    'filter_units',
    'find_or_create_unit',
    'refresh_price_stats',
    'get_unit_listings'
]
