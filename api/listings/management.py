"""Seller management endpoints for creating and maintaining listings."""

from fastapi import APIRouter, HTTPException, Query, status, Depends, Security
from typing import Any
from uuid import UUID
from pydantic import BaseModel, Field

from auth import get_current_user, AuthUser
from catalog import CatalogError, CatalogUnitNotFoundError
from forms import FormValidationError
from listings import (
    ListingManager, ListingError, ListingNotFoundError, ListingPermissionError
)
from . import get_listing_manager

# Create router without prefix since it will be included in the main listings router
router = APIRouter()

class CreateListingRequest(BaseModel):
    """Model for creating a new listing."""
    name: Any = Field(default='', description="Unit name, filled from the catalog when empty")
    collection: Any = Field(default=None, description="Collection code (e.g. xm97)")
    unit_number: Any = Field(default=None, description="Unit number inside the collection")
    price: Any = Field(default=None, description="Price per piece")
    quantity: Any = Field(default=None, description="Number of pieces offered")

class UpdateListingRequest(BaseModel):
    """Model for editing a listing."""
    price: Any = None
    available_quantity: Any = None

def _catalog_exception(e: CatalogError) -> HTTPException:
    if isinstance(e, CatalogUnitNotFoundError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=str(e)
    )

@router.get("/lookup")
async def lookup_unit(
    collection: str = Query(...),
    unit_number: str = Query(...),
    user: AuthUser = Security(get_current_user),
    manager: ListingManager = Depends(get_listing_manager)
):
    """Look up a unit in the catalog to prefill the listing form."""
    try:
        return await manager.lookup_unit(collection, unit_number.strip().lower())
    except CatalogError as e:
        raise _catalog_exception(e)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.get("/mine")
async def get_my_listings(
    user: AuthUser = Security(get_current_user),
    manager: ListingManager = Depends(get_listing_manager)
):
    """Get the listings of the authenticated seller, newest first."""
    try:
        return await manager.get_seller_listings(user.id)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_listing(
    listing: CreateListingRequest,
    user: AuthUser = Security(get_current_user),
    manager: ListingManager = Depends(get_listing_manager)
):
    """Create a new listing.

    Args:
        listing: The submitted form values
        user: The authenticated seller

    Returns:
        Dict containing the created listing details

    Raises:
        HTTPException: 400 on an invalid form or unknown unit, 502 if the catalog is down
    """
    try:
        return await manager.create_listing(user.id, listing.model_dump())
    except FormValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except CatalogError as e:
        raise _catalog_exception(e)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.patch("/{listing_id}")
async def update_listing(
    listing_id: UUID,
    updates: UpdateListingRequest,
    user: AuthUser = Security(get_current_user),
    manager: ListingManager = Depends(get_listing_manager)
):
    """Edit price and available quantity of an owned listing."""
    try:
        return await manager.update_listing(listing_id, user.id, updates.model_dump())
    except FormValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except ListingNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except ListingPermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    except ListingError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.delete("/{listing_id}")
async def delete_listing(
    listing_id: UUID,
    user: AuthUser = Security(get_current_user),
    manager: ListingManager = Depends(get_listing_manager)
):
    """Delete an owned listing."""
    try:
        await manager.delete_listing(listing_id, user.id)
        return {"success": True}
    except ListingNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except ListingPermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

# Export the router
__all__ = ['router']
