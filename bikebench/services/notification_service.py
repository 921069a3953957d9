from __future__ import annotations

from urllib.parse import quote

from ..config import DEFAULT_COUNTRY_CODE
from ..models.ticket_models import OutboundMessage, ShopSettings, Ticket
from .billing_service import breakdown_lines, format_amount
from .phone_normalizer import international_phone

_GREETING = "¡Hola! Tu bici ya está lista para recoger en {shop} 🚴‍♂️"
_CLOSING = "Por favor, no respondas a este mensaje. Para cualquier duda, llámanos al {phone}."

_DIRECT_LINK = "https://wa.me/{phone}?text={text}"
_WEB_LINK = "https://web.whatsapp.com/send?phone={phone}&text={text}"


def compose_message(ticket: Ticket, settings: ShopSettings) -> OutboundMessage:
    if ticket.billing is None:
        raise ValueError("Ticket has no billing to announce")

    greeting = _GREETING.format(shop=settings.shop_name)
    closing = _CLOSING.format(phone=settings.callback_phone)
    total = format_amount(ticket.billing.total)

    if ticket.billing.is_itemized:
        bullets = "\n".join(f"• {line}" for line in breakdown_lines(ticket.billing))
        text = f"{greeting}\n\n{bullets}\n\n*Total: {total}€*\n\n{closing}"
    else:
        text = f"{greeting}\n\nTotal: {total}€\n\n{closing}"

    link = build_deep_link(
        ticket.customer_phone,
        text,
        country_code=settings.country_code,
        scheme=settings.deep_link_scheme,
    )
    return OutboundMessage(text=text, deep_link=link)


def build_deep_link(
    phone: str,
    text: str,
    *,
    country_code: str = DEFAULT_COUNTRY_CODE,
    scheme: str = "direct",
) -> str:
    template = _WEB_LINK if scheme == "web" else _DIRECT_LINK
    return template.format(phone=international_phone(phone, country_code), text=quote(text, safe=""))
