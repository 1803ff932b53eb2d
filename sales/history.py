"""Grouping of settled sales by trading partner."""

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Union
from uuid import UUID

def group_sales(sales: Iterable[Dict[str, Any]], user_id: Union[str, UUID]) -> List[Dict[str, Any]]:
    """Group settled sales by (buyer, seller) pair.

    Sales are expected newest first; groups keep the order in which their
    first sale appears and take that sale's status.

    Args:
        sales: Sales with buyer_id, seller_id, buyer, seller, quantity, price and status
        user_id: The user viewing the history

    Returns:
        List of groups, each with key, is_buyer, other_party, status, items and total
    """
    groups: Dict[str, Dict[str, Any]] = {}
    user_id = str(user_id)

    for sale in sales:
        key = f"{sale['buyer_id']}-{sale['seller_id']}"
        group = groups.get(key)
        if group is None:
            is_buyer = str(sale['buyer_id']) == user_id
            group = groups[key] = {
                'key': key,
                'is_buyer': is_buyer,
                'other_party': sale['seller']['username'] if is_buyer else sale['buyer']['username'],
                'status': sale['status'],
                'items': [],
                'total': Decimal('0')
            }
        group['items'].append(sale)
        group['total'] += sale['quantity'] * Decimal(sale['price'])

    return list(groups.values())
