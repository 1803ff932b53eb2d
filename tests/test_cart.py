"""Tests for the cart module."""

import uuid
from decimal import Decimal
from urllib.parse import unquote

import pytest
import pytest_asyncio

from cart import (
    CartManager,
    CartItemNotFoundError,
    CheckoutError,
    ListingUnavailableError,
    OwnListingError,
    clamp_quantity,
    group_by_seller
)
from cart.whatsapp import build_order_message, build_whatsapp_url, format_brl

ANA = uuid.uuid4()
BRUNO = uuid.uuid4()

def cart_item(seller_id, username, price, quantity, name="Wolverine", whatsapp="11987654321"):
    listing_id = uuid.uuid4()
    return {
        "id": uuid.uuid4(),
        "listing_id": listing_id,
        "quantity": quantity,
        "listing": {
            "id": listing_id,
            "price": Decimal(price),
            "available_quantity": 5,
            "seller": {"id": seller_id, "username": username, "whatsapp": whatsapp},
            "unit": {"name": name, "collection": "xm97", "image_url": "img"}
        }
    }

def cart_row(item):
    """Flatten a cart item into the joined row the cart query returns."""
    listing = item["listing"]
    return {
        "id": item["id"],
        "listing_id": item["listing_id"],
        "quantity": item["quantity"],
        "created_at": None,
        "price": listing["price"],
        "available_quantity": listing["available_quantity"],
        "seller_id": listing["seller"]["id"],
        "seller_username": listing["seller"]["username"],
        "seller_whatsapp": listing["seller"]["whatsapp"],
        "unit_name": listing["unit"]["name"],
        "unit_collection": listing["unit"]["collection"],
        "unit_image_url": listing["unit"]["image_url"]
    }

@pytest_asyncio.fixture
async def cart_manager(pool):
    """Create and return a CartManager on the fake pool."""
    return CartManager(pool)

def test_group_by_seller():
    """Test one group per seller in first-seen order with line totals summed."""
    items = [
        cart_item(ANA, "ana", "10.00", 2),
        cart_item(BRUNO, "bruno", "5.50", 1),
        cart_item(ANA, "ana", "3.25", 4),
    ]

    groups = group_by_seller(items)

    assert [g["seller"]["username"] for g in groups] == ["ana", "bruno"]
    assert groups[0]["total"] == Decimal("33.00")
    assert len(groups[0]["items"]) == 2
    assert groups[1]["total"] == Decimal("5.50")

def test_clamp_quantity():
    assert clamp_quantity(10, 3) == 3
    assert clamp_quantity(0, 3) == 1
    assert clamp_quantity(2, 3) == 2

def test_order_message():
    """Test the order summary sent to the seller."""
    message = build_order_message([
        cart_item(ANA, "ana", "10.00", 2, name="Wolverine"),
        cart_item(ANA, "ana", "3.50", 1, name="Storm"),
    ])

    assert message.startswith("Olá, gostaria de comprar as seguintes peças:\n\n")
    assert "• Wolverine (xm97)\n  Quantidade: 2 x R$ 10.00 = R$ 20.00\n\n" in message
    assert "• Storm (xm97)\n  Quantidade: 1 x R$ 3.50 = R$ 3.50\n\n" in message
    assert message.endswith("Total: R$ 23.50")

def test_whatsapp_url():
    """Test the deep link adds the country code and encodes the text."""
    url = build_whatsapp_url("(11) 98765-4321", "Olá & bem?", country_code="55")

    assert url.startswith("https://wa.me/5511987654321?text=")
    text = url.split("?text=", 1)[1]
    assert " " not in text and "&" not in text
    assert unquote(text) == "Olá & bem?"

def test_format_brl():
    assert format_brl(Decimal("7")) == "R$ 7.00"

@pytest.mark.asyncio
async def test_add_item_inserts_or_increments(cart_manager, conn, buyer_id, seller_id):
    """Test that adding is an upsert that increments the existing line."""
    listing_id = uuid.uuid4()
    item_id = uuid.uuid4()
    conn.queue('fetchrow',
               {"id": listing_id, "seller_id": seller_id, "available_quantity": 5},
               {"id": item_id, "quantity": 3})

    result = await cart_manager.add_item(buyer_id, listing_id, 2)

    upsert = conn.queries('fetchrow')[1]
    assert "ON CONFLICT (user_id, listing_id)" in upsert
    assert "quantity = LEAST(cart_items.quantity + EXCLUDED.quantity, $4)" in upsert
    assert conn.args('fetchrow')[1] == (buyer_id, listing_id, 2, 5)
    assert result == {"id": item_id, "listing_id": listing_id, "quantity": 3}

@pytest.mark.asyncio
async def test_add_item_clamps_to_stock(cart_manager, conn, buyer_id, seller_id):
    listing_id = uuid.uuid4()
    conn.queue('fetchrow',
               {"id": listing_id, "seller_id": seller_id, "available_quantity": 2},
               {"id": uuid.uuid4(), "quantity": 2})

    await cart_manager.add_item(buyer_id, listing_id, 9)

    assert conn.args('fetchrow')[1][2] == 2

@pytest.mark.asyncio
async def test_repeated_adds_never_exceed_stock(cart_manager, conn, buyer_id, seller_id):
    """Test that the merged cart line is capped at the listing stock."""
    listing_id = uuid.uuid4()
    listing = {"id": listing_id, "seller_id": seller_id, "available_quantity": 3}
    conn.queue('fetchrow', listing, {"id": uuid.uuid4(), "quantity": 3})

    result = await cart_manager.add_item(buyer_id, listing_id, 3)

    upsert = conn.queries('fetchrow')[1]
    assert "LEAST(cart_items.quantity + EXCLUDED.quantity, $4)" in upsert
    assert conn.args('fetchrow')[1][3] == 3
    assert result["quantity"] == 3

@pytest.mark.asyncio
async def test_cannot_add_own_listing(cart_manager, conn, seller_id):
    conn.queue('fetchrow', {"id": uuid.uuid4(), "seller_id": uuid.UUID(seller_id), "available_quantity": 5})

    with pytest.raises(OwnListingError):
        await cart_manager.add_item(seller_id, uuid.uuid4())

@pytest.mark.asyncio
async def test_cannot_add_without_stock(cart_manager, conn, buyer_id, seller_id):
    conn.queue('fetchrow', {"id": uuid.uuid4(), "seller_id": seller_id, "available_quantity": 0})

    with pytest.raises(ListingUnavailableError):
        await cart_manager.add_item(buyer_id, uuid.uuid4())

@pytest.mark.asyncio
async def test_add_missing_listing(cart_manager, buyer_id):
    with pytest.raises(CartItemNotFoundError):
        await cart_manager.add_item(buyer_id, uuid.uuid4())

@pytest.mark.asyncio
async def test_add_cheapest(cart_manager, conn, buyer_id, seller_id):
    """Test that the cheapest listing with stock is added once."""
    listing_id = uuid.uuid4()
    conn.queue('fetchval', listing_id)
    conn.queue('fetchrow',
               {"id": listing_id, "seller_id": seller_id, "available_quantity": 4},
               {"id": uuid.uuid4(), "quantity": 1})

    result = await cart_manager.add_cheapest(buyer_id, uuid.uuid4())

    cheapest_query = conn.queries('fetchval')[0]
    assert "available_quantity > 0" in cheapest_query
    assert "ORDER BY price ASC LIMIT 1" in cheapest_query
    assert result["listing_id"] == listing_id
    assert conn.args('fetchrow')[1][2] == 1

@pytest.mark.asyncio
async def test_add_cheapest_without_stock(cart_manager, buyer_id):
    with pytest.raises(ListingUnavailableError):
        await cart_manager.add_cheapest(buyer_id, uuid.uuid4())

@pytest.mark.asyncio
async def test_grouped_cart(cart_manager, conn, buyer_id):
    items = [cart_item(ANA, "ana", "10.00", 1), cart_item(BRUNO, "bruno", "2.00", 3)]
    conn.queue('fetch', [cart_row(item) for item in items])

    cart = await cart_manager.get_grouped_cart(buyer_id)

    assert len(cart["groups"]) == 2
    assert cart["total"] == Decimal("16.00")

@pytest.mark.asyncio
async def test_count_items(cart_manager, conn, buyer_id):
    conn.queue('fetchval', 7)
    assert await cart_manager.count_items(buyer_id) == 7
    assert await cart_manager.count_items(buyer_id) == 0

@pytest.mark.asyncio
async def test_remove_item(cart_manager, conn, buyer_id):
    item_id = uuid.uuid4()
    conn.queue('fetchval', item_id)

    await cart_manager.remove_item(buyer_id, item_id)

    assert conn.args('fetchval')[0] == (item_id, buyer_id)

@pytest.mark.asyncio
async def test_remove_item_of_other_user(cart_manager, buyer_id):
    with pytest.raises(CartItemNotFoundError):
        await cart_manager.remove_item(buyer_id, uuid.uuid4())

@pytest.mark.asyncio
async def test_checkout_creates_pending_sales(cart_manager, conn, buyer_id):
    """Test checkout of one seller: price snapshot per line, cart untouched."""
    ana_items = [cart_item(ANA, "ana", "10.00", 2), cart_item(ANA, "ana", "4.00", 1)]
    other = cart_item(BRUNO, "bruno", "1.00", 1)
    conn.queue('fetch', [cart_row(ana_items[0]), cart_row(other), cart_row(ana_items[1])])
    sale_ids = [uuid.uuid4(), uuid.uuid4()]
    conn.queue('fetchval', *sale_ids)

    result = await cart_manager.checkout(buyer_id, ANA, country_code="55")

    assert result["pending_sale_ids"] == sale_ids
    assert result["total"] == Decimal("24.00")
    assert result["seller"]["username"] == "ana"
    assert result["whatsapp_url"].startswith("https://wa.me/5511987654321?text=")
    assert result["message"].endswith("Total: R$ 24.00")

    inserts = conn.args('fetchval')
    assert inserts[0] == (ana_items[0]["listing_id"], buyer_id, ANA, 2, Decimal("10.00"))
    assert inserts[1] == (ana_items[1]["listing_id"], buyer_id, ANA, 1, Decimal("4.00"))
    assert not any("DELETE" in q for q in conn.queries())

@pytest.mark.asyncio
async def test_checkout_unknown_seller(cart_manager, conn, buyer_id):
    conn.queue('fetch', [cart_row(cart_item(ANA, "ana", "10.00", 1))])
    with pytest.raises(CheckoutError):
        await cart_manager.checkout(buyer_id, BRUNO)

@pytest.mark.asyncio
async def test_checkout_requires_seller_whatsapp(cart_manager, conn, buyer_id):
    conn.queue('fetch', [cart_row(cart_item(ANA, "ana", "10.00", 1, whatsapp=None))])
    with pytest.raises(CheckoutError):
        await cart_manager.checkout(buyer_id, ANA)
    assert conn.queries('fetchval') == []
