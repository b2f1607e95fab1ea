"""
Module 'payments' (feature-first): point d'entrée public.
Réunit la construction des line_items Stripe, le client Stripe, la normalisation
des événements webhook et les cas d'usage checkout.
"""

from .cart import ensure_checkout_ready, to_line_items, make_metadata
from .events import EventState, EVENT_ROUTES, PaymentEvent, from_stripe_event, route_event
from .stripe_client import require_stripe, create_session, parse_event
from .service import build_checkout_session, create_payment_intent

__all__ = [
    # cart
    "ensure_checkout_ready",
    "to_line_items",
    "make_metadata",
    # events
    "EventState",
    "EVENT_ROUTES",
    "PaymentEvent",
    "from_stripe_event",
    "route_event",
    # stripe
    "require_stripe",
    "create_session",
    "parse_event",
    # service
    "build_checkout_session",
    "create_payment_intent",
]
