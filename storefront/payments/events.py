"""
Normalisation des événements Stripe en PaymentEvent et table de routage explicite.

Un seul type d'événement déclenche une commande: payment_intent.succeeded.
checkout.session.completed porte le même paiement; le traiter aussi ferait
deux déclenchements pour une seule capture. Tout le reste est acquitté sans effet.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from storefront.errors import MissingMetadataError


class EventState(str, Enum):
    SUCCEEDED = "succeeded"
    IGNORED = "ignored"


EVENT_ROUTES: Dict[str, EventState] = {
    "payment_intent.succeeded": EventState.SUCCEEDED,
}


def route_event(event_type: str) -> EventState:
    return EVENT_ROUTES.get(event_type or "", EventState.IGNORED)


@dataclass(frozen=True)
class PaymentEvent:
    event_id: str
    event_type: str
    payment_reference: str
    amount_captured: int
    currency: str
    cart_id: str
    shipping_method_id: str = ""
    carrier: str = ""
    customer_email: Optional[str] = None

    @property
    def idempotency_key(self) -> str:
        """Id de l'événement Stripe, à défaut la référence de paiement."""
        return self.event_id or self.payment_reference


# module storefront.payments.events
def from_stripe_event(event: Dict[str, Any]) -> PaymentEvent:
    """
    Extrait un PaymentEvent d'un événement payment_intent.* déjà vérifié.
    - medusa_cart_id absent: MissingMetadataError (session créée hors du builder).
    - amount_received prioritaire sur amount (montant réellement capturé).
    """
    obj = ((event or {}).get("data") or {}).get("object") or {}
    meta = obj.get("metadata") or {}
    cart_id = str(meta.get("medusa_cart_id") or "").strip()
    if not cart_id:
        raise MissingMetadataError(
            f"medusa_cart_id absent des metadata (event={event.get('id')}, pi={obj.get('id')})"
        )
    amount = obj.get("amount_received")
    if amount is None:
        amount = obj.get("amount")
    return PaymentEvent(
        event_id=str(event.get("id") or ""),
        event_type=str(event.get("type") or ""),
        payment_reference=str(obj.get("id") or ""),
        amount_captured=int(amount or 0),
        currency=str(obj.get("currency") or "").lower(),
        cart_id=cart_id,
        shipping_method_id=str(meta.get("medusa_shipping_method_id") or ""),
        carrier=str(meta.get("carrier") or "").lower(),
        customer_email=meta.get("customer_email") or obj.get("receipt_email") or None,
    )
