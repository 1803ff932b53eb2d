"""Cart API endpoints."""

from fastapi import APIRouter, HTTPException, status, Depends, Security
from typing import Any
from uuid import UUID
from pydantic import BaseModel

from auth import get_current_user, AuthUser
from cart import (
    CartManager, CartItemNotFoundError, CheckoutError,
    ListingUnavailableError, OwnListingError
)
from forms import FormValidationError

# All cart endpoints belong to the authenticated buyer
router = APIRouter(
    prefix="/cart",
    tags=["Cart"]
)

def get_cart_manager() -> CartManager:
    return CartManager()

class AddItemRequest(BaseModel):
    """Request model for adding a listing to the cart."""
    listing_id: UUID
    quantity: Any = 1

class AddCheapestRequest(BaseModel):
    """Request model for adding the cheapest listing of a unit."""
    unit_id: UUID

def _add_exception(e: Exception) -> HTTPException:
    if isinstance(e, CartItemNotFoundError):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    if isinstance(e, OwnListingError):
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    if isinstance(e, (ListingUnavailableError, FormValidationError)):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(e)
    )

@router.get("/")
async def get_cart(
    user: AuthUser = Security(get_current_user),
    manager: CartManager = Depends(get_cart_manager)
):
    """Get the cart grouped by seller."""
    try:
        return await manager.get_grouped_cart(user.id)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.get("/count")
async def get_cart_count(
    user: AuthUser = Security(get_current_user),
    manager: CartManager = Depends(get_cart_manager)
):
    """Get the number of pieces in the cart."""
    try:
        return {"count": await manager.count_items(user.id)}
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.post("/items", status_code=status.HTTP_201_CREATED)
async def add_item(
    request: AddItemRequest,
    user: AuthUser = Security(get_current_user),
    manager: CartManager = Depends(get_cart_manager)
):
    """Add a listing to the cart."""
    try:
        return await manager.add_item(user.id, request.listing_id, request.quantity)
    except Exception as e:
        raise _add_exception(e)

@router.post("/cheapest", status_code=status.HTTP_201_CREATED)
async def add_cheapest(
    request: AddCheapestRequest,
    user: AuthUser = Security(get_current_user),
    manager: CartManager = Depends(get_cart_manager)
):
    """Add one piece of the cheapest listing of a unit."""
    try:
        return await manager.add_cheapest(user.id, request.unit_id)
    except Exception as e:
        raise _add_exception(e)

@router.delete("/items/{item_id}")
async def remove_item(
    item_id: UUID,
    user: AuthUser = Security(get_current_user),
    manager: CartManager = Depends(get_cart_manager)
):
    """Remove a line from the cart."""
    try:
        await manager.remove_item(user.id, item_id)
        return {"success": True}
    except CartItemNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.post("/checkout/{seller_id}")
async def checkout(
    seller_id: UUID,
    user: AuthUser = Security(get_current_user),
    manager: CartManager = Depends(get_cart_manager)
):
    """Create pending sales for one seller and return the WhatsApp link."""
    try:
        return await manager.checkout(user.id, seller_id)
    except CheckoutError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

# Export the router
__all__ = ['router', 'get_cart_manager']
