"""Sales module for the approval side of checkout.

A checkout creates one pending sale per cart line. The seller then approves
or rejects each one by hand; stock is only taken on approval. The two writes
of an approval (stock, then status) are independent statements, so two
concurrent approvals on the same listing can both read the same stock. Set
``guarded_approval`` to take the stock with a single conditional update instead.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional, Any, Union
from uuid import UUID

from config import settings_conf
from database import get_pool
from units import refresh_price_stats
from .history import group_sales

logger = logging.getLogger(__name__)

SALE_STATUSES = ('pending', 'approved', 'rejected')

class SaleError(Exception):
    """Base class for sale-related errors."""
    pass

class SaleNotFoundError(SaleError):
    """Raised when a sale is not found."""
    pass

class SalePermissionError(SaleError):
    """Raised when a user acts on a sale they are not the seller of."""
    pass

class SaleStateError(SaleError):
    """Raised when a sale was already approved or rejected."""
    pass

class InsufficientStockError(SaleError):
    """Raised when a listing has less stock than the sale quantity."""
    def __init__(self, available: int, requested: int):
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock: available {available}, requested {requested}"
        )

SALE_QUERY = '''
    SELECT
        ps.id,
        ps.listing_id,
        ps.buyer_id,
        ps.seller_id,
        ps.quantity,
        ps.price,
        ps.status,
        ps.created_at,
        ps.updated_at,
        b.username AS buyer_username,
        s.username AS seller_username,
        l.available_quantity AS listing_available_quantity,
        u.name AS unit_name,
        u.collection AS unit_collection,
        u.image_url AS unit_image_url
    FROM pending_sales ps
    JOIN profiles b ON b.id = ps.buyer_id
    JOIN profiles s ON s.id = ps.seller_id
    JOIN listings l ON l.id = ps.listing_id
    JOIN units u ON u.id = l.unit_id
'''

def sale_from_row(row) -> Dict[str, Any]:
    """Build a sale dict with nested buyer, seller and listing from a joined row."""
    return {
        'id': row['id'],
        'listing_id': row['listing_id'],
        'buyer_id': row['buyer_id'],
        'seller_id': row['seller_id'],
        'quantity': row['quantity'],
        'price': row['price'],
        'total': row['quantity'] * Decimal(row['price']),
        'status': row['status'],
        'created_at': row['created_at'],
        'updated_at': row['updated_at'],
        'buyer': {'username': row['buyer_username']},
        'seller': {'username': row['seller_username']},
        'listing': {
            'id': row['listing_id'],
            'available_quantity': row['listing_available_quantity'],
            'unit': {
                'name': row['unit_name'],
                'collection': row['unit_collection'],
                'image_url': row['unit_image_url']
            }
        }
    }

async def create_pending_sale(
    conn,
    listing_id: UUID,
    buyer_id: Union[str, UUID],
    seller_id: Union[str, UUID],
    quantity: int,
    price: Decimal
) -> UUID:
    """Insert a pending sale with a snapshot of the listing price.

    Returns:
        UUID of the new sale
    """
    return await conn.fetchval(
        '''
        INSERT INTO pending_sales (
            listing_id, buyer_id, seller_id, quantity, price
        ) VALUES ($1, $2, $3, $4, $5)
        RETURNING id
        ''',
        listing_id,
        buyer_id,
        seller_id,
        quantity,
        price
    )

class SaleManager:
    """Manages pending sales and their approval."""

    def __init__(self, pool=None, guarded_approval: Optional[bool] = None) -> None:
        """Initialize sale manager.

        Args:
            pool: Optional database connection pool. If not provided, will get from database module.
            guarded_approval: Take stock with a conditional update. Defaults to the setting.
        """
        self.pool = pool
        if guarded_approval is None:
            guarded_approval = settings_conf['guarded_approval']
        self.guarded_approval = guarded_approval

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def get_seller_sales(self, seller_id: Union[str, UUID]) -> List[Dict[str, Any]]:
        """Get every sale of a seller, newest first, whatever its status."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                SALE_QUERY + ' WHERE ps.seller_id = $1 ORDER BY ps.created_at DESC',
                seller_id
            )
        return [sale_from_row(row) for row in rows]

    async def get_history(self, user_id: Union[str, UUID]) -> List[Dict[str, Any]]:
        """Get approved and rejected sales of a user grouped by trading partner."""
        await self.ensure_pool()
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                SALE_QUERY + '''
                WHERE (ps.buyer_id = $1 OR ps.seller_id = $1)
                AND ps.status != 'pending'
                ORDER BY ps.created_at DESC
                ''',
                user_id
            )
        return group_sales([sale_from_row(row) for row in rows], user_id)

    async def _get_pending(self, conn, sale_id: UUID, seller_id: Union[str, UUID]):
        sale = await conn.fetchrow(
            '''
            SELECT
                ps.id,
                ps.listing_id,
                ps.seller_id,
                ps.quantity,
                ps.status,
                l.available_quantity,
                l.unit_id
            FROM pending_sales ps
            JOIN listings l ON l.id = ps.listing_id
            WHERE ps.id = $1
            ''',
            sale_id
        )
        if not sale:
            raise SaleNotFoundError(f"Sale {sale_id} not found")
        if str(sale['seller_id']) != str(seller_id):
            raise SalePermissionError("Only the seller can settle this sale")
        if sale['status'] != 'pending':
            raise SaleStateError(f"Sale is already {sale['status']}")
        return sale

    async def _claim_and_decrement(self, conn, sale) -> int:
        """Mark the sale approved only while still pending, then take its stock.

        Must run inside a transaction so a failed decrement releases the claim.
        """
        claimed = await conn.fetchval(
            '''
            UPDATE pending_sales
            SET status = 'approved'
            WHERE id = $1
            AND status = 'pending'
            RETURNING id
            ''',
            sale['id']
        )
        if claimed is None:
            raise SaleStateError(f"Sale {sale['id']} is no longer pending")

        new_quantity = await conn.fetchval(
            '''
            UPDATE listings
            SET available_quantity = available_quantity - $2
            WHERE id = $1
            AND available_quantity >= $2
            RETURNING available_quantity
            ''',
            sale['listing_id'],
            sale['quantity']
        )
        if new_quantity is None:
            raise InsufficientStockError(sale['available_quantity'], sale['quantity'])
        return new_quantity

    async def approve_sale(self, sale_id: UUID, seller_id: Union[str, UUID]) -> Dict[str, Any]:
        """Approve a pending sale, taking its quantity from the listing stock.

        Args:
            sale_id: UUID of the sale
            seller_id: The user approving; must be the sale's seller

        Returns:
            Dict with id, status, listing_id and the listing's new available_quantity

        Raises:
            SaleNotFoundError: If the sale does not exist
            SalePermissionError: If the user is not the seller
            SaleStateError: If the sale is not pending
            InsufficientStockError: If the stock would go below zero
        """
        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            sale = await self._get_pending(conn, sale_id, seller_id)

            if self.guarded_approval:
                async with conn.transaction():
                    new_quantity = await self._claim_and_decrement(conn, sale)
                    await refresh_price_stats(conn, sale['unit_id'])
            else:
                new_quantity = sale['available_quantity'] - sale['quantity']
                if new_quantity < 0:
                    raise InsufficientStockError(sale['available_quantity'], sale['quantity'])
                await conn.execute(
                    'UPDATE listings SET available_quantity = $2 WHERE id = $1',
                    sale['listing_id'],
                    new_quantity
                )
                await conn.execute(
                    "UPDATE pending_sales SET status = 'approved' WHERE id = $1",
                    sale_id
                )
                await refresh_price_stats(conn, sale['unit_id'])

        logger.info(
            f"Approved sale {sale_id}: listing {sale['listing_id']} "
            f"stock {sale['available_quantity']} -> {new_quantity}"
        )
        return {
            'id': sale_id,
            'status': 'approved',
            'listing_id': sale['listing_id'],
            'available_quantity': new_quantity
        }

    async def reject_sale(self, sale_id: UUID, seller_id: Union[str, UUID]) -> Dict[str, Any]:
        """Reject a pending sale. Stock is untouched.

        Raises:
            SaleNotFoundError: If the sale does not exist
            SalePermissionError: If the user is not the seller
            SaleStateError: If the sale is not pending
        """
        await self.ensure_pool()

        async with self.pool.acquire() as conn:
            await self._get_pending(conn, sale_id, seller_id)
            await conn.execute(
                "UPDATE pending_sales SET status = 'rejected' WHERE id = $1",
                sale_id
            )

        logger.info(f"Rejected sale {sale_id}")
        return {'id': sale_id, 'status': 'rejected'}

__all__ = [
    'SaleManager',
    'SaleError',
    'SaleNotFoundError',
    'SalePermissionError',
    'SaleStateError',
    'InsufficientStockError',
    'SALE_STATUSES',
    'create_pending_sale',
    'group_sales'
]
