"""
Vue tarifée d'un panier, telle que calculée par Medusa au moment de la lecture.
Tous les montants sont des entiers en unités mineures (cents).
"""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class PricedLineItem:
    line_id: str
    variant_id: str
    title: str
    quantity: int
    unit_price_minor: int

    @property
    def total_minor(self) -> int:
        return self.unit_price_minor * self.quantity


@dataclass(frozen=True)
class FulfillmentMethod:
    method_id: str
    option_id: str
    name: str
    carrier: str
    amount_minor: int
    provider_id: str = ""
    service: str = ""


@dataclass(frozen=True)
class PricedCart:
    cart_id: str
    currency: str
    items: List[PricedLineItem]
    total_minor_units: int
    subtotal_minor: int = 0
    shipping_total_minor: int = 0
    tax_total_minor: int = 0
    fulfillment: Optional[FulfillmentMethod] = None
    email: Optional[str] = None
    completed: bool = False
    fulfillment_methods: List[FulfillmentMethod] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Sérialisation pour l'UI (affichage seulement)."""
        return {
            "id": self.cart_id,
            "currency": self.currency,
            "items": [
                {
                    "id": i.line_id,
                    "variant_id": i.variant_id,
                    "title": i.title,
                    "quantity": i.quantity,
                    "unit_price": i.unit_price_minor,
                    "total": i.total_minor,
                }
                for i in self.items
            ],
            "subtotal": self.subtotal_minor,
            "shipping_total": self.shipping_total_minor,
            "tax_total": self.tax_total_minor,
            "total": self.total_minor_units,
            "fulfillment": (
                {
                    "id": self.fulfillment.method_id,
                    "option_id": self.fulfillment.option_id,
                    "name": self.fulfillment.name,
                    "carrier": self.fulfillment.carrier,
                    "amount": self.fulfillment.amount_minor,
                }
                if self.fulfillment
                else None
            ),
        }
