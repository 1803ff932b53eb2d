"""Listings API endpoints."""

from fastapi import APIRouter, HTTPException, status, Depends
from uuid import UUID

from listings import ListingManager, ListingNotFoundError

# Create router without global security
router = APIRouter(
    prefix="/listings",
    tags=["Listings"]
)

def get_listing_manager() -> ListingManager:
    return ListingManager()

# Import management endpoints
from .management import router as management_router

# Include management router (protected endpoints)
router.include_router(management_router)

""" Public Endpoints - No Authentication Required """
@router.get("/{listing_id}")
async def get_listing(
    listing_id: UUID,
    manager: ListingManager = Depends(get_listing_manager)
):
    """Get a listing with its unit."""
    try:
        return await manager.get_listing(listing_id)
    except ListingNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

# Export the router
__all__ = ['router', 'get_listing_manager']
