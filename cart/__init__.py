"""Cart module for buyers collecting pieces before contacting sellers.

This module provides functionality for:
- Adding listings to the cart, incrementing the line when it already exists
- Adding the cheapest available listing of a unit
- Grouping cart lines by seller with per-seller totals
- Checking out one seller: pending sales plus a WhatsApp deep link
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Union
from uuid import UUID

from database import get_pool
from forms import CartItemForm, validate_form
from sales import create_pending_sale
from .whatsapp import build_order_message, build_whatsapp_url, format_brl

logger = logging.getLogger(__name__)

class CartError(Exception):
    """Base exception for cart operations."""
    pass

class CartItemNotFoundError(CartError):
    """Raised when a cart line or its listing is not found."""
    pass

class ListingUnavailableError(CartError):
    """Raised when a listing has no stock left."""
    pass

class OwnListingError(CartError):
    """Raised when a buyer tries to add their own listing."""
    pass

class CheckoutError(CartError):
    """Raised when a seller's cart lines cannot be checked out."""
    pass

CART_QUERY = '''
    SELECT
        ci.id,
        ci.listing_id,
        ci.quantity,
        ci.created_at,
        l.price,
        l.available_quantity,
        l.seller_id,
        p.username AS seller_username,
        p.whatsapp AS seller_whatsapp,
        u.name AS unit_name,
        u.collection AS unit_collection,
        u.image_url AS unit_image_url
    FROM cart_items ci
    JOIN listings l ON l.id = ci.listing_id
    JOIN profiles p ON p.id = l.seller_id
    JOIN units u ON u.id = l.unit_id
    WHERE ci.user_id = $1
'''

def cart_item_from_row(row) -> Dict[str, Any]:
    return {
        'id': row['id'],
        'listing_id': row['listing_id'],
        'quantity': row['quantity'],
        'created_at': row['created_at'],
        'listing': {
            'id': row['listing_id'],
            'price': row['price'],
            'available_quantity': row['available_quantity'],
            'seller': {
                'id': row['seller_id'],
                'username': row['seller_username'],
                'whatsapp': row['seller_whatsapp']
            },
            'unit': {
                'name': row['unit_name'],
                'collection': row['unit_collection'],
                'image_url': row['unit_image_url']
            }
        }
    }

def line_total(item: Dict[str, Any]) -> Decimal:
    """Quantity times the listing's current price."""
    return item['quantity'] * Decimal(item['listing']['price'])

def group_by_seller(items: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Group cart lines by seller, keeping the order sellers first appear in.

    Returns:
        List of dicts with seller, items and total
    """
    groups: Dict[str, Dict[str, Any]] = {}
    for item in items:
        seller = item['listing']['seller']
        key = str(seller['id'])
        if key not in groups:
            groups[key] = {'seller': seller, 'items': [], 'total': Decimal('0')}
        groups[key]['items'].append(item)
        groups[key]['total'] += line_total(item)
    return list(groups.values())

def clamp_quantity(requested: int, available: int) -> int:
    """Keep a requested quantity within [1, available]."""
    return max(1, min(requested, available))

class CartManager:
    """Manager class for cart operations."""

    def __init__(self, pool=None):
        """Initialize the cart manager.

        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def add_item(
        self,
        user_id: Union[str, UUID],
        listing_id: UUID,
        quantity: Any = 1
    ) -> Dict[str, Any]:
        """Add a listing to the cart.

        The quantity is clamped to the listing's stock. When the buyer already
        has the listing in the cart, the line quantity is incremented up to the
        stock.

        Returns:
            Dict with the cart line id, listing_id and resulting quantity

        Raises:
            FormValidationError: If quantity is not a positive whole number
            CartItemNotFoundError: If the listing does not exist
            OwnListingError: If the buyer is the listing's seller
            ListingUnavailableError: If the listing has no stock
        """
        form = validate_form(CartItemForm, {'quantity': quantity})

        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            listing = await conn.fetchrow(
                'SELECT id, seller_id, available_quantity FROM listings WHERE id = $1',
                listing_id
            )
            if not listing:
                raise CartItemNotFoundError(f"Listing {listing_id} not found")
            if str(listing['seller_id']) == str(user_id):
                raise OwnListingError("You cannot add your own listing to the cart")
            if listing['available_quantity'] <= 0:
                raise ListingUnavailableError("Listing is out of stock")

            added = clamp_quantity(form.quantity, listing['available_quantity'])
            row = await conn.fetchrow(
                '''
                INSERT INTO cart_items (user_id, listing_id, quantity)
                VALUES ($1, $2, $3)
                ON CONFLICT (user_id, listing_id)
                DO UPDATE SET quantity = LEAST(cart_items.quantity + EXCLUDED.quantity, $4)
                RETURNING id, quantity
                ''',
                user_id,
                listing_id,
                added,
                listing['available_quantity']
            )

        logger.info(f"Added {added} of listing {listing_id} to cart of {user_id}")
        return {
            'id': row['id'],
            'listing_id': listing_id,
            'quantity': row['quantity']
        }

    async def add_cheapest(self, user_id: Union[str, UUID], unit_id: UUID) -> Dict[str, Any]:
        """Add one piece of the cheapest listing of a unit that has stock.

        Raises:
            ListingUnavailableError: If no listing of the unit has stock
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            listing_id = await conn.fetchval(
                '''
                SELECT id FROM listings
                WHERE unit_id = $1
                AND available_quantity > 0
                ORDER BY price ASC
                LIMIT 1
                ''',
                unit_id
            )

        if not listing_id:
            raise ListingUnavailableError("No listings with stock for this unit")
        return await self.add_item(user_id, listing_id, 1)

    async def get_cart(self, user_id: Union[str, UUID]) -> List[Dict[str, Any]]:
        """Get the cart lines of a user, oldest first."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(CART_QUERY + ' ORDER BY ci.created_at ASC', user_id)
        return [cart_item_from_row(row) for row in rows]

    async def get_grouped_cart(self, user_id: Union[str, UUID]) -> Dict[str, Any]:
        """Get the cart grouped by seller along with the overall total."""
        items = await self.get_cart(user_id)
        groups = group_by_seller(items)
        return {
            'groups': groups,
            'total': sum((group['total'] for group in groups), Decimal('0'))
        }

    async def count_items(self, user_id: Union[str, UUID]) -> int:
        """Sum of the quantities in a user's cart."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            count = await conn.fetchval(
                'SELECT COALESCE(SUM(quantity), 0) FROM cart_items WHERE user_id = $1',
                user_id
            )
        return int(count or 0)

    async def remove_item(self, user_id: Union[str, UUID], item_id: UUID) -> None:
        """Remove a cart line owned by the user.

        Raises:
            CartItemNotFoundError: If the user has no such line
        """
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            removed = await conn.fetchval(
                'DELETE FROM cart_items WHERE id = $1 AND user_id = $2 RETURNING id',
                item_id,
                user_id
            )
        if not removed:
            raise CartItemNotFoundError(f"Cart item {item_id} not found")
        logger.info(f"Removed cart item {item_id} of {user_id}")

    async def checkout(
        self,
        user_id: Union[str, UUID],
        seller_id: Union[str, UUID],
        country_code: Optional[str] = None
    ) -> Dict[str, Any]:
        """Check out the cart lines of one seller.

        A pending sale is created for every line with the listing's current
        price. The cart itself is left as is.

        Returns:
            Dict with seller, message, whatsapp_url, total and pending_sale_ids

        Raises:
            CheckoutError: If there are no lines for the seller or the seller has no WhatsApp
        """
        items = await self.get_cart(user_id)
        group = next(
            (g for g in group_by_seller(items) if str(g['seller']['id']) == str(seller_id)),
            None
        )
        if not group:
            raise CheckoutError("No cart items for this seller")

        seller = group['seller']
        if not seller.get('whatsapp'):
            raise CheckoutError(f"Seller {seller['username']} has no WhatsApp number")

        sale_ids = []
        async with self.pool.acquire() as conn:
            for item in group['items']:
                sale_id = await create_pending_sale(
                    conn,
                    item['listing_id'],
                    user_id,
                    seller['id'],
                    item['quantity'],
                    item['listing']['price']
                )
                sale_ids.append(sale_id)

        message = build_order_message(group['items'])
        logger.info(
            f"Checkout of {user_id} with seller {seller['id']}: "
            f"{len(sale_ids)} pending sales, total {format_brl(group['total'])}"
        )
        return {
            'seller': seller,
            'message': message,
            'whatsapp_url': build_whatsapp_url(seller['whatsapp'], message, country_code),
            'total': group['total'],
            'pending_sale_ids': sale_ids
        }

__all__ = [
    'CartManager',
    'CartError',
    'CartItemNotFoundError',
    'ListingUnavailableError',
    'OwnListingError',
    'CheckoutError',
    'clamp_quantity',
    'group_by_seller',
    'line_total',
    'build_order_message',
    'build_whatsapp_url'
]
