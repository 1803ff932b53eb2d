"""Sales API endpoints for sellers settling purchases."""

from fastapi import APIRouter, HTTPException, status, Depends, Security
from uuid import UUID

from auth import get_current_user, AuthUser
from sales import (
    SaleManager, SaleNotFoundError, SalePermissionError,
    SaleStateError, InsufficientStockError
)

router = APIRouter(
    prefix="/sales",
    tags=["Sales"]
)

def get_sale_manager() -> SaleManager:
    return SaleManager()

@router.get("/")
async def get_my_sales(
    user: AuthUser = Security(get_current_user),
    manager: SaleManager = Depends(get_sale_manager)
):
    """Get the sales of the authenticated seller, newest first."""
    try:
        return await manager.get_seller_sales(user.id)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.get("/history")
async def get_history(
    user: AuthUser = Security(get_current_user),
    manager: SaleManager = Depends(get_sale_manager)
):
    """Get settled purchases and sales grouped by trading partner."""
    try:
        return await manager.get_history(user.id)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

async def _settle(manager: SaleManager, action: str, sale_id: UUID, seller_id: str):
    try:
        if action == 'approve':
            return await manager.approve_sale(sale_id, seller_id)
        return await manager.reject_sale(sale_id, seller_id)
    except SaleNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except SalePermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    except (SaleStateError, InsufficientStockError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.post("/{sale_id}/approve")
async def approve_sale(
    sale_id: UUID,
    user: AuthUser = Security(get_current_user),
    manager: SaleManager = Depends(get_sale_manager)
):
    """Approve a pending sale and take the stock from the listing."""
    return await _settle(manager, 'approve', sale_id, user.id)

@router.post("/{sale_id}/reject")
async def reject_sale(
    sale_id: UUID,
    user: AuthUser = Security(get_current_user),
    manager: SaleManager = Depends(get_sale_manager)
):
    """Reject a pending sale."""
    return await _settle(manager, 'reject', sale_id, user.id)

# Export the router
__all__ = ['router', 'get_sale_manager']
