"""Unit browsing API endpoints."""

from fastapi import APIRouter, HTTPException, Query, status, Depends
from typing import Optional
from uuid import UUID

from catalog import HC_UNIT_EDITIONS, get_collection_icon_url
from units import UnitManager, UnitNotFoundError

router = APIRouter(
    prefix="/units",
    tags=["Units"]
)

def get_unit_manager() -> UnitManager:
    return UnitManager()

""" Public Endpoints - No Authentication Required """
@router.get("/")
async def list_units(
    search: Optional[str] = Query(None),
    collection: Optional[str] = Query(None),
    manager: UnitManager = Depends(get_unit_manager)
):
    """List units, optionally filtered by a search term and a collection."""
    try:
        units = await manager.list_units(search=search, collection=collection)
        return {
            "units": units,
            "total_count": len(units)
        }
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.get("/editions")
async def list_editions():
    """Get the collections accepted by the marketplace."""
    return [
        {**edition, "icon_url": get_collection_icon_url(edition["value"])}
        for edition in HC_UNIT_EDITIONS
    ]

@router.get("/{unit_id}")
async def get_unit(
    unit_id: UUID,
    manager: UnitManager = Depends(get_unit_manager)
):
    """Get a unit with its available listings."""
    try:
        return await manager.get_unit_details(unit_id)
    except UnitNotFoundError as e:
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
__all__ = ['router', 'get_unit_manager']
