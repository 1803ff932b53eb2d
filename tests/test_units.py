"""Tests for the units module."""

import uuid
from decimal import Decimal

import pytest
import pytest_asyncio

from units import (
    UnitManager,
    UnitNotFoundError,
    filter_units,
    find_or_create_unit,
    refresh_price_stats
)

UNITS = [
    {"name": "Wolverine", "collection": "xm97"},
    {"name": "Green Lantern", "collection": "ll"},
    {"name": "Storm", "collection": "xm97"},
]

@pytest_asyncio.fixture
async def unit_manager(pool):
    """Create and return a UnitManager on the fake pool."""
    return UnitManager(pool)

def test_filter_by_search_term():
    """Test that the search term matches name or collection, ignoring case."""
    assert [u["name"] for u in filter_units(UNITS, search="WOLV")] == ["Wolverine"]
    assert [u["name"] for u in filter_units(UNITS, search="ll")] == ["Green Lantern"]

def test_filter_by_collection():
    assert [u["name"] for u in filter_units(UNITS, collection="xm97")] == ["Wolverine", "Storm"]

def test_filter_combined():
    assert filter_units(UNITS, search="storm", collection="ll") == []

def test_filter_without_criteria_keeps_everything():
    assert filter_units(UNITS) == UNITS

@pytest.mark.asyncio
async def test_find_existing_unit(conn):
    """Test that an existing unit is reused."""
    unit_id = uuid.uuid4()
    conn.queue('fetchval', unit_id)

    assert await find_or_create_unit(conn, "xm97", "001", "Wolverine") == unit_id
    assert len(conn.queries('fetchval')) == 1

@pytest.mark.asyncio
async def test_create_missing_unit(conn):
    """Test that a unit is inserted with the catalog image when missing."""
    unit_id = uuid.uuid4()
    conn.queue('fetchval', None, unit_id)

    assert await find_or_create_unit(conn, "xm97", "001", "Wolverine") == unit_id

    insert_args = conn.args('fetchval')[1]
    assert insert_args[:3] == ("Wolverine", "xm97", "001")
    assert insert_args[3].endswith("/xm97/001.png")

@pytest.mark.asyncio
async def test_refresh_price_stats_uses_listings_with_stock(conn):
    unit_id = uuid.uuid4()
    await refresh_price_stats(conn, unit_id)

    query = conn.queries('execute')[0]
    assert "available_quantity > 0" in query
    assert "MIN(price)" in query and "MAX(price)" in query
    assert conn.args('execute')[0] == (unit_id,)

@pytest.mark.asyncio
async def test_list_units_applies_filters(unit_manager, conn):
    conn.queue('fetch', [
        {**UNITS[0], "has_available_listings": True},
        {**UNITS[1], "has_available_listings": False},
    ])

    units = await unit_manager.list_units(search="green")

    assert len(units) == 1
    assert units[0]["has_available_listings"] is False

@pytest.mark.asyncio
async def test_unit_not_found(unit_manager):
    with pytest.raises(UnitNotFoundError):
        await unit_manager.get_unit(uuid.uuid4())

@pytest.mark.asyncio
async def test_unit_details(unit_manager, conn):
    """Test that details carry listings cheapest first and catalog links."""
    unit_id = uuid.uuid4()
    seller_id = uuid.uuid4()
    conn.queue('fetchrow', {
        "id": unit_id,
        "name": "Wolverine",
        "collection": "xm97",
        "unit_number": "001",
        "image_url": "img",
        "min_price": Decimal("10.00"),
        "avg_price": Decimal("15.00"),
        "max_price": Decimal("20.00"),
    })
    conn.queue('fetch', [
        {"id": uuid.uuid4(), "price": Decimal("10.00"), "available_quantity": 2,
         "seller_id": seller_id, "seller_username": "ana", "seller_whatsapp": "11987654321"},
        {"id": uuid.uuid4(), "price": Decimal("20.00"), "available_quantity": 1,
         "seller_id": seller_id, "seller_username": "ana", "seller_whatsapp": "11987654321"},
    ])

    details = await unit_manager.get_unit_details(unit_id)

    assert details["name"] == "Wolverine"
    assert len(details["listings"]) == 2
    assert details["cheapest_listing"]["price"] == Decimal("10.00")
    assert details["cheapest_listing"]["seller"]["username"] == "ana"
    assert details["collection_label"] == "X-men 97"
    assert details["details_url"].endswith("/units/xm97001/")
    assert details["collection_icon_url"].endswith("/xm97/icon.png")

@pytest.mark.asyncio
async def test_unit_details_without_listings(unit_manager, conn):
    conn.queue('fetchrow', {"id": uuid.uuid4(), "name": "Storm", "collection": "xm97", "unit_number": "002"})

    details = await unit_manager.get_unit_details(uuid.uuid4())

    assert details["listings"] == []
    assert details["cheapest_listing"] is None
