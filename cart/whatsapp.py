"""Order summary messages sent to sellers over WhatsApp."""

from decimal import Decimal
from typing import Any, Dict, Iterable, Optional
from urllib.parse import quote

from config import settings_conf
from forms import digits_only

WHATSAPP_URL = "https://wa.me"

# Characters left as-is by browsers' encodeURIComponent
URI_COMPONENT_SAFE = "-_.!~*'()"

def format_brl(amount: Decimal) -> str:
    return f"R$ {Decimal(amount):.2f}"

def build_order_message(items: Iterable[Dict[str, Any]]) -> str:
    """Build the order summary for a seller.

    Args:
        items: Cart lines, each with quantity and a listing carrying price and unit

    Returns:
        The message text with one entry per line and the order total
    """
    message = "Olá, gostaria de comprar as seguintes peças:\n\n"
    total = Decimal('0')

    for item in items:
        price = Decimal(item['listing']['price'])
        item_total = item['quantity'] * price
        total += item_total
        unit = item['listing']['unit']
        message += f"• {unit['name']} ({unit['collection']})\n"
        message += (
            f"  Quantidade: {item['quantity']} x {format_brl(price)} "
            f"= {format_brl(item_total)}\n\n"
        )

    message += f"Total: {format_brl(total)}"
    return message

def build_whatsapp_url(whatsapp: str, message: str, country_code: Optional[str] = None) -> str:
    """Deep link opening a WhatsApp chat with the message pre-filled."""
    country_code = country_code or str(settings_conf['whatsapp_country_code'])
    number = f"{country_code}{digits_only(whatsapp)}"
    return f"{WHATSAPP_URL}/{number}?text={quote(message, safe=URI_COMPONENT_SAFE)}"
