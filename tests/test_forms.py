"""Tests for the form models."""

from decimal import Decimal

import pytest

from forms import (
    FormValidationError,
    ListingForm,
    ListingUpdateForm,
    CartItemForm,
    SignInForm,
    SignUpForm,
    ProfileForm,
    validate_form,
    digits_only
)

VALID_LISTING = {
    "name": "Wolverine",
    "collection": "xm97",
    "unit_number": "001",
    "price": "12.5",
    "quantity": "2"
}

def test_valid_listing_form():
    """Test that a valid listing converts its values."""
    form = validate_form(ListingForm, VALID_LISTING)
    assert form.name == "Wolverine"
    assert form.collection == "xm97"
    assert form.unit_number == "001"
    assert form.price == Decimal("12.50")
    assert form.quantity == 2

def test_listing_name_is_optional():
    """Test that an empty name is accepted so the catalog can fill it."""
    form = validate_form(ListingForm, {**VALID_LISTING, "name": ""})
    assert form.name == ""

@pytest.mark.parametrize("price, message", [
    ("0", "Price must be positive"),
    ("-3", "Price must be positive"),
    ("abc", "Price must be a number"),
])
def test_listing_rejects_bad_price(price, message):
    """Test that non-positive and non-numeric prices are rejected."""
    with pytest.raises(FormValidationError) as exc:
        validate_form(ListingForm, {**VALID_LISTING, "price": price})
    assert str(exc.value) == message
    assert exc.value.field == "price"

@pytest.mark.parametrize("quantity, message", [
    ("0", "Quantity must be positive"),
    ("-1", "Quantity must be positive"),
    ("1.5", "Quantity must be a whole number"),
])
def test_listing_rejects_bad_quantity(quantity, message):
    """Test that quantity must be a positive whole number."""
    with pytest.raises(FormValidationError) as exc:
        validate_form(ListingForm, {**VALID_LISTING, "quantity": quantity})
    assert str(exc.value) == message

def test_listing_reports_first_violation_only():
    """Test that only the first broken rule is reported."""
    with pytest.raises(FormValidationError) as exc:
        validate_form(ListingForm, {
            "name": "",
            "collection": "",
            "unit_number": "",
            "price": "0",
            "quantity": "0"
        })
    assert str(exc.value) == "Collection is required"

def test_listing_rejects_unknown_collection():
    with pytest.raises(FormValidationError) as exc:
        validate_form(ListingForm, {**VALID_LISTING, "collection": "nope"})
    assert str(exc.value) == "Unknown collection: nope"

def test_listing_requires_unit_number():
    with pytest.raises(FormValidationError) as exc:
        validate_form(ListingForm, {**VALID_LISTING, "unit_number": "  "})
    assert str(exc.value) == "Unit number is required"

def test_listing_update_allows_zero_stock():
    """Test that a listing can be edited down to zero pieces."""
    form = validate_form(ListingUpdateForm, {"price": "10", "available_quantity": 0})
    assert form.available_quantity == 0

def test_listing_update_rejects_negative_stock():
    with pytest.raises(FormValidationError) as exc:
        validate_form(ListingUpdateForm, {"price": "10", "available_quantity": -1})
    assert str(exc.value) == "Available quantity cannot be negative"

def test_cart_item_defaults_to_one():
    assert validate_form(CartItemForm, {}).quantity == 1

def test_sign_in_normalizes_email():
    form = validate_form(SignInForm, {"email": " Buyer@Example.COM ", "password": "secret1"})
    assert form.email == "buyer@example.com"

def test_sign_in_rejects_short_password():
    with pytest.raises(FormValidationError) as exc:
        validate_form(SignInForm, {"email": "a@b.co", "password": "12345"})
    assert str(exc.value) == "Password must be at least 6 characters"

def test_sign_up_strips_whatsapp_formatting():
    """Test that WhatsApp numbers keep digits only."""
    form = validate_form(SignUpForm, {
        "email": "seller@example.com",
        "password": "secret1",
        "username": "seller",
        "whatsapp": "(11) 98765-4321"
    })
    assert form.whatsapp == "11987654321"

@pytest.mark.parametrize("data, message", [
    ({"username": "ab", "whatsapp": "11987654321"}, "Username must be at least 3 characters"),
    ({"username": "seller", "whatsapp": "12345"}, "Invalid WhatsApp (digits only, 10 or 11 digits)"),
])
def test_sign_up_rules(data, message):
    with pytest.raises(FormValidationError) as exc:
        validate_form(SignUpForm, {"email": "s@example.com", "password": "secret1", **data})
    assert str(exc.value) == message

def test_profile_form_fields_are_optional():
    form = validate_form(ProfileForm, {"whatsapp": "11 3333-4444"})
    assert form.username is None
    assert form.whatsapp == "1133334444"

def test_profile_form_rejects_short_non_text_username():
    with pytest.raises(FormValidationError) as exc:
        validate_form(ProfileForm, {"username": 12})
    assert str(exc.value) == "Username must be at least 3 characters"
    assert exc.value.field == "username"

def test_profile_form_accepts_numeric_username():
    form = validate_form(ProfileForm, {"username": 1234})
    assert form.username == "1234"

def test_digits_only():
    assert digits_only("+55 (11) 9 8765-4321") == "5511987654321"
    assert digits_only(None) == ""
