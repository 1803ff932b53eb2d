"""Form models for user submitted data.

Every form reports only the first violated rule, in field order, through
``FormValidationError`` so handlers can surface a single message.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from catalog import is_known_collection

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
WHATSAPP_RE = re.compile(r'^\d{10,11}$')
CENTS = Decimal('0.01')

FormT = TypeVar('FormT', bound=BaseModel)

class FormValidationError(Exception):
    """Raised when submitted data violates a form rule."""
    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)

def digits_only(value: Any) -> str:
    """Strip everything but digits, as phone inputs do."""
    return re.sub(r'\D', '', str(value or ''))

def _strip(value: Any) -> str:
    if value is None:
        return ''
    return str(value).strip()

def _parse_price(value: Any) -> Decimal:
    try:
        price = Decimal(str(value).strip().replace(',', '.'))
    except (InvalidOperation, ValueError):
        raise ValueError("Price must be a number")
    if not price.is_finite():
        raise ValueError("Price must be a number")
    if price <= 0:
        raise ValueError("Price must be positive")
    return price.quantize(CENTS, rounding=ROUND_HALF_UP)

def _parse_whole(value: Any, label: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{label} must be a whole number")
    if isinstance(value, int):
        return value
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"{label} must be a whole number")
    if not number.is_finite() or number != number.to_integral_value():
        raise ValueError(f"{label} must be a whole number")
    return int(number)

class _Form(BaseModel):
    model_config = ConfigDict(validate_default=True)

class ListingForm(_Form):
    """New listing submitted by a seller. An empty name is prefilled from the catalog."""
    name: str = ''
    collection: str = ''
    unit_number: str = ''
    price: Decimal = Decimal('0')
    quantity: int = 0

    @field_validator('name', 'collection', 'unit_number', mode='before')
    @classmethod
    def _strip_text(cls, v):
        return _strip(v)

    @field_validator('collection')
    @classmethod
    def _check_collection(cls, v):
        if not v:
            raise ValueError("Collection is required")
        if not is_known_collection(v):
            raise ValueError(f"Unknown collection: {v}")
        return v

    @field_validator('unit_number')
    @classmethod
    def _check_unit_number(cls, v):
        if not v:
            raise ValueError("Unit number is required")
        return v.lower()

    @field_validator('price', mode='before')
    @classmethod
    def _check_price(cls, v):
        return _parse_price(v)

    @field_validator('quantity', mode='before')
    @classmethod
    def _check_quantity(cls, v):
        quantity = _parse_whole(v, "Quantity")
        if quantity <= 0:
            raise ValueError("Quantity must be positive")
        return quantity

class ListingUpdateForm(_Form):
    """Seller edit of price and remaining stock."""
    price: Decimal = Decimal('0')
    available_quantity: int = -1

    @field_validator('price', mode='before')
    @classmethod
    def _check_price(cls, v):
        return _parse_price(v)

    @field_validator('available_quantity', mode='before')
    @classmethod
    def _check_available(cls, v):
        quantity = _parse_whole(v, "Available quantity")
        if quantity < 0:
            raise ValueError("Available quantity cannot be negative")
        return quantity

class CartItemForm(_Form):
    quantity: int = 1

    @field_validator('quantity', mode='before')
    @classmethod
    def _check_quantity(cls, v):
        quantity = _parse_whole(v, "Quantity")
        if quantity <= 0:
            raise ValueError("Quantity must be positive")
        return quantity

class SignInForm(_Form):
    email: str = ''
    password: str = ''

    @field_validator('email', mode='before')
    @classmethod
    def _check_email(cls, v):
        v = _strip(v)
        if not EMAIL_RE.match(v):
            raise ValueError("Invalid email")
        return v.lower()

    @field_validator('password')
    @classmethod
    def _check_password(cls, v):
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v

class SignUpForm(SignInForm):
    username: str = ''
    whatsapp: str = ''

    @field_validator('username', mode='before')
    @classmethod
    def _check_username(cls, v):
        v = _strip(v)
        if len(v) < 3:
            raise ValueError("Username must be at least 3 characters")
        return v

    @field_validator('whatsapp', mode='before')
    @classmethod
    def _check_whatsapp(cls, v):
        number = digits_only(v)
        if not WHATSAPP_RE.match(number):
            raise ValueError("Invalid WhatsApp (digits only, 10 or 11 digits)")
        return number

class ProfileForm(_Form):
    """Profile edit; omitted fields are left unchanged."""
    username: Optional[str] = None
    whatsapp: Optional[str] = None

    @field_validator('username', mode='before')
    @classmethod
    def _check_username(cls, v):
        if v is None:
            return v
        v = _strip(v)
        if len(v) < 3:
            raise ValueError("Username must be at least 3 characters")
        return v

    @field_validator('whatsapp', mode='before')
    @classmethod
    def _check_whatsapp(cls, v):
        if v is None:
            return v
        number = digits_only(v)
        if not WHATSAPP_RE.match(number):
            raise ValueError("Invalid WhatsApp (digits only, 10 or 11 digits)")
        return number

def _first_error(error: ValidationError) -> FormValidationError:
    first = error.errors()[0]
    field = '.'.join(str(part) for part in first.get('loc', ())) or None
    ctx_error = (first.get('ctx') or {}).get('error')
    message = str(ctx_error) if ctx_error else first.get('msg', 'Invalid value')
    return FormValidationError(message, field)

def validate_form(form: Type[FormT], data: Dict[str, Any]) -> FormT:
    """Validate data against a form, raising the first violated rule.

    Args:
        form: Form model class
        data: Submitted values

    Returns:
        The validated form

    Raises:
        FormValidationError: With the message of the first violated rule
    """
    try:
        return form(**data)
    except ValidationError as e:
        raise _first_error(e) from None

__all__ = [
    'FormValidationError',
    'ListingForm',
    'ListingUpdateForm',
    'CartItemForm',
    'SignInForm',
    'SignUpForm',
    'ProfileForm',
    'validate_form',
    'digits_only'
]
