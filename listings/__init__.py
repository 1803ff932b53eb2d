"""Listings module for managing marketplace listings.

This module provides functionality for:
- Creating listings after validating the form and the unit against the catalog
- Editing price and remaining stock of a listing
- Removing listings
- Reading a seller's listings
"""

import logging
from typing import Dict, List, Optional, Any, Union
from uuid import UUID

from database import get_pool
from catalog import CatalogClient, CatalogError
from forms import ListingForm, ListingUpdateForm, validate_form
from units import find_or_create_unit, refresh_price_stats
from .get_listing import get_listing
from .get_seller_listings import get_seller_listings

logger = logging.getLogger(__name__)

# User-mutable fields for listings
MUTABLE_FIELDS = {
    'price',
    'available_quantity'
}

class ListingError(Exception):
    """Base exception for listing operations."""
    pass

class ListingNotFoundError(ListingError):
    """Raised when a listing is not found."""
    pass

class ListingPermissionError(ListingError):
    """Raised when a user acts on a listing they do not own."""
    pass

class ListingManager:
    """Manager class for handling listing operations."""

    def __init__(self, pool=None, catalog: Optional[CatalogClient] = None):
        """Initialize the listing manager.

        Args:
            pool: Optional database pool. If not provided, will get from database module.
            catalog: Optional catalog client used to validate units.
        """
        self.pool = pool
        self.catalog = catalog or CatalogClient()

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def lookup_unit(self, collection: str, unit_number: str) -> Dict[str, Any]:
        """Look up a unit in the catalog to prefill the listing form.

        Raises:
            CatalogError: If the catalog lookup fails
        """
        return await self.catalog.lookup_unit(collection, unit_number)

    async def create_listing(self, seller_id: Union[str, UUID], data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a new listing.

        Args:
            seller_id: The seller's user id
            data: Submitted form values:
                  - name: Optional unit name, prefilled from the catalog when empty
                  - collection: Collection code
                  - unit_number: Unit number within the collection
                  - price: Unit price
                  - quantity: Number of pieces offered

        Returns:
            Dict containing the created listing details

        Raises:
            FormValidationError: If a form rule is violated
            CatalogError: If the catalog cannot confirm the unit
        """
        form = validate_form(ListingForm, data)

        try:
            catalog_unit = await self.catalog.lookup_unit(form.collection, form.unit_number)
        except CatalogError as e:
            logger.warning(
                f"Rejected listing for {form.collection}{form.unit_number}: {e}"
            )
            raise

        name = form.name or catalog_unit['name']

        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                unit_id = await find_or_create_unit(
                    conn,
                    form.collection,
                    form.unit_number,
                    name,
                    catalog_unit['image_url']
                )

                listing = await conn.fetchrow(
                    '''
                    INSERT INTO listings (
                        unit_id, seller_id, price, quantity, available_quantity
                    ) VALUES ($1, $2, $3, $4, $4)
                    RETURNING id, created_at
                    ''',
                    unit_id,
                    seller_id,
                    form.price,
                    form.quantity
                )

                await refresh_price_stats(conn, unit_id)

        logger.info(
            f"Created listing {listing['id']} for {form.collection}{form.unit_number} "
            f"by {seller_id}: {form.quantity} x {form.price}"
        )

        return {
            'id': listing['id'],
            'unit_id': unit_id,
            'seller_id': seller_id,
            'price': form.price,
            'quantity': form.quantity,
            'available_quantity': form.quantity,
            'created_at': listing['created_at'],
            'unit': {
                'name': name,
                'collection': form.collection,
                'unit_number': form.unit_number,
                'image_url': catalog_unit['image_url']
            }
        }

    async def get_listing(self, listing_id: UUID) -> Dict[str, Any]:
        """Get a listing by ID.

        Raises:
            ListingNotFoundError: If the listing does not exist
        """
        await self.ensure_pool()
        try:
            return await get_listing(listing_id, self.pool)
        except LookupError as e:
            raise ListingNotFoundError(str(e))

    async def get_seller_listings(self, seller_id: Union[str, UUID]) -> List[Dict[str, Any]]:
        """Get all listings of a seller, newest first."""
        await self.ensure_pool()
        return await get_seller_listings(seller_id, self.pool)

    async def _get_owned(self, conn, listing_id: UUID, seller_id: Union[str, UUID]):
        row = await conn.fetchrow(
            'SELECT id, seller_id, unit_id FROM listings WHERE id = $1',
            listing_id
        )
        if not row:
            raise ListingNotFoundError(f"Listing {listing_id} not found")
        if str(row['seller_id']) != str(seller_id):
            raise ListingPermissionError("Not authorized to modify this listing")
        return row

    async def update_listing(
        self,
        listing_id: UUID,
        seller_id: Union[str, UUID],
        updates: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Update price and available quantity of a listing.

        Args:
            listing_id: UUID of listing to update
            seller_id: The user requesting the change
            updates: Dict with price and available_quantity

        Returns:
            Updated listing details

        Raises:
            ListingError: If a field outside MUTABLE_FIELDS is given
            FormValidationError: If price or quantity is invalid
            ListingNotFoundError: If the listing does not exist
            ListingPermissionError: If the user does not own the listing
        """
        invalid_fields = set(updates.keys()) - MUTABLE_FIELDS
        if invalid_fields:
            raise ListingError(f"Cannot update fields: {', '.join(sorted(invalid_fields))}")

        form = validate_form(ListingUpdateForm, updates)

        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            row = await self._get_owned(conn, listing_id, seller_id)
            await conn.execute(
                '''
                UPDATE listings
                SET price = $2, available_quantity = $3
                WHERE id = $1
                ''',
                listing_id,
                form.price,
                form.available_quantity
            )
            await refresh_price_stats(conn, row['unit_id'])

        logger.info(
            f"Updated listing {listing_id}: price={form.price}, "
            f"available_quantity={form.available_quantity}"
        )
        return await self.get_listing(listing_id)

    async def delete_listing(self, listing_id: UUID, seller_id: Union[str, UUID]) -> None:
        """Delete a listing.

        Raises:
            ListingNotFoundError: If the listing does not exist
            ListingPermissionError: If the user does not own the listing
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            row = await self._get_owned(conn, listing_id, seller_id)
            await conn.execute('DELETE FROM listings WHERE id = $1', listing_id)
            await refresh_price_stats(conn, row['unit_id'])

        logger.info(f"Deleted listing {listing_id}")

__all__ = [
    'ListingManager',
    'ListingError',
    'ListingNotFoundError',
    'ListingPermissionError',
    'MUTABLE_FIELDS',
    'get_listing',
    'get_seller_listings'
]
