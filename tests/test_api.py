"""Tests for the REST API routers."""

import uuid
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from api import app
from api.cart import get_cart_manager
from api.listings import get_listing_manager
from api.notifications import get_notification_manager
from api.profile import get_profile_manager
from api.sales import get_sale_manager
from api.units import get_unit_manager
from auth import AuthUser, get_current_user
from cart import OwnListingError
from catalog import CatalogUnavailableError, CatalogUnitNotFoundError
from forms import FormValidationError
from listings import ListingNotFoundError, ListingPermissionError
from sales import InsufficientStockError, SaleStateError
from units import UnitNotFoundError

USER = AuthUser(id=str(uuid.uuid4()), email="ana@example.com", role="authenticated")

class StubManager:
    """Returns or raises a preset outcome for every awaited method."""

    def __init__(self, result=None, error: Exception = None):
        self.result = result
        self.error = error
        self.calls = []

    def __getattr__(self, name):
        async def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            if self.error:
                raise self.error
            return self.result
        return method

@pytest.fixture
def client():
    app.dependency_overrides[get_current_user] = lambda: USER
    yield TestClient(app)
    app.dependency_overrides.clear()

def override(provider, manager):
    app.dependency_overrides[provider] = lambda: manager
    return manager

def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "running"

def test_protected_route_requires_token():
    """Test that routes without the user override demand a bearer token."""
    response = TestClient(app).get("/cart/count")
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"

def test_signout_without_token_is_unauthorized():
    assert TestClient(app).post("/auth/signout").status_code == 401

def test_invalid_token_is_unauthorized(jwt_settings):
    response = TestClient(app).get("/cart/count", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401

def test_list_units(client):
    manager = override(get_unit_manager, StubManager([{"name": "Wolverine"}]))

    response = client.get("/units/", params={"search": "wol", "collection": "xm97"})

    assert response.status_code == 200
    assert response.json() == {"units": [{"name": "Wolverine"}], "total_count": 1}
    assert manager.calls[0] == ("list_units", (), {"search": "wol", "collection": "xm97"})

def test_editions(client):
    editions = client.get("/units/editions").json()
    assert editions[0]["value"] == "xm97"
    assert editions[0]["icon_url"].endswith("/xm97/icon.png")

def test_unit_not_found(client):
    override(get_unit_manager, StubManager(error=UnitNotFoundError("Unit not found")))
    response = client.get(f"/units/{uuid.uuid4()}")
    assert response.status_code == 404

def test_create_listing(client):
    """Test that the seller id comes from the session."""
    manager = override(get_listing_manager, StubManager({"id": "1"}))

    response = client.post("/listings/", json={
        "collection": "xm97", "unit_number": "001", "price": "10", "quantity": 1
    })

    assert response.status_code == 201
    name, args, _ = manager.calls[0]
    assert name == "create_listing"
    assert args[0] == USER.id
    assert args[1]["collection"] == "xm97"

@pytest.mark.parametrize("error, status_code", [
    (FormValidationError("Price must be positive", "price"), 400),
    (CatalogUnitNotFoundError("Unit xm97999 not found in catalog"), 400),
    (CatalogUnavailableError("Catalog lookup failed"), 502),
])
def test_create_listing_errors(client, error, status_code):
    override(get_listing_manager, StubManager(error=error))

    response = client.post("/listings/", json={})

    assert response.status_code == status_code
    assert response.json()["detail"] == str(error)

@pytest.mark.parametrize("error, status_code", [
    (ListingNotFoundError("Listing not found"), 404),
    (ListingPermissionError("Not authorized to modify this listing"), 403),
])
def test_update_listing_errors(client, error, status_code):
    override(get_listing_manager, StubManager(error=error))
    response = client.patch(f"/listings/{uuid.uuid4()}", json={"price": "5", "available_quantity": 1})
    assert response.status_code == status_code

def test_my_listings_route_is_not_a_listing_id(client):
    manager = override(get_listing_manager, StubManager([]))
    assert client.get("/listings/mine").status_code == 200
    assert manager.calls[0][0] == "get_seller_listings"

def test_add_own_listing_is_forbidden(client):
    override(get_cart_manager, StubManager(error=OwnListingError("own listing")))
    response = client.post("/cart/items", json={"listing_id": str(uuid.uuid4()), "quantity": 1})
    assert response.status_code == 403

def test_cart_count(client):
    override(get_cart_manager, StubManager(3))
    assert client.get("/cart/count").json() == {"count": 3}

def test_checkout(client):
    manager = override(get_cart_manager, StubManager({
        "whatsapp_url": "https://wa.me/5511987654321?text=x",
        "total": Decimal("10.00")
    }))
    seller_id = uuid.uuid4()

    response = client.post(f"/cart/checkout/{seller_id}")

    assert response.status_code == 200
    assert response.json()["whatsapp_url"].startswith("https://wa.me/")
    assert manager.calls[0][1] == (USER.id, seller_id)

@pytest.mark.parametrize("error, status_code", [
    (InsufficientStockError(1, 2), 400),
    (SaleStateError("Sale is already approved"), 400),
])
def test_approve_errors(client, error, status_code):
    override(get_sale_manager, StubManager(error=error))
    response = client.post(f"/sales/{uuid.uuid4()}/approve")
    assert response.status_code == status_code

def test_reject_sale(client):
    manager = override(get_sale_manager, StubManager({"status": "rejected"}))
    response = client.post(f"/sales/{uuid.uuid4()}/reject")
    assert response.json() == {"status": "rejected"}
    assert manager.calls[0][0] == "reject_sale"

def test_notifications(client):
    override(get_notification_manager, StubManager([{"type": "pending"}]))
    assert client.get("/notifications/").json()["total_count"] == 1

def test_update_profile_validation(client):
    override(get_profile_manager, StubManager(error=FormValidationError("Username must be at least 3 characters")))
    response = client.patch("/profile/", json={"username": "ab"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Username must be at least 3 characters"
