"""
Une commande, deux représentations:
- la commande autoritative Medusa (écrite uniquement par complete_cart)
- le miroir Supabase (order_mirrors), toujours authoritative=False, pour les tableaux de bord
Le miroir n'est jamais relu par la tarification ni par le fulfillment.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from storefront.payments.events import PaymentEvent
from storefront.pricing.models import PricedCart

MIRROR_SOURCE = "medusa"


class ClaimStatus(str, Enum):
    PROCESSING = "processing"
    ORDER_CREATED = "order_created"
    COMPLETED = "completed"
    MIRROR_FAILED = "mirror_failed"
    REJECTED = "rejected"


# statuts terminaux: une redélivrance n'a plus rien à faire
FINAL_CLAIM_STATUSES = {ClaimStatus.COMPLETED, ClaimStatus.MIRROR_FAILED, ClaimStatus.REJECTED}


class ReconcileOutcome(str, Enum):
    COMPLETED = "completed"
    DUPLICATE = "duplicate"
    IN_PROGRESS = "in_progress"
    MIRROR_FAILED = "mirror_failed"
    REJECTED = "rejected"


@dataclass(frozen=True)
class ReconcileResult:
    outcome: ReconcileOutcome
    idempotency_key: str
    order_id: Optional[str] = None
    mirror_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"outcome": self.outcome.value, "order_id": self.order_id}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Lit un timestamptz PostgREST ('2026-01-01T10:00:00+00:00' ou suffixe Z)."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def build_mirror(event: PaymentEvent, order: Dict[str, Any], priced: PricedCart) -> Dict[str, Any]:
    """Ligne order_mirrors: résumé de la commande Medusa, marqué non autoritatif."""
    return {
        "payment_event_id": event.idempotency_key,
        "payment_reference": event.payment_reference,
        "medusa_order_id": str(order.get("id") or ""),
        "medusa_display_id": order.get("display_id"),
        "cart_id": event.cart_id,
        "customer_email": order.get("email") or event.customer_email or priced.email,
        "amount_total": event.amount_captured,
        "currency": event.currency,
        "carrier": priced.fulfillment.carrier if priced.fulfillment else event.carrier,
        "shipping_method_id": priced.fulfillment.method_id if priced.fulfillment else event.shipping_method_id,
        "item_count": sum(i.quantity for i in priced.items),
        "authoritative": False,
        "source": MIRROR_SOURCE,
    }
