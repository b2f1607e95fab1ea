"""
Cas d'usage 'payments': orchestre commerce, pricing, cart et stripe_client.
"""
import logging
from typing import Any, Dict, Optional

from storefront import config
from storefront.cart import cart as cart_sync
from storefront.pricing import service as pricing
from . import cart as cart_logic
from . import stripe_client

logger = logging.getLogger(__name__)

def checkout_urls(base_url: str, cart_id: str) -> Dict[str, str]:
    base = (config.BASE_URL or base_url or "").rstrip("/")
    return {
        "success_url": f"{base}{config.CHECKOUT_SUCCESS_PATH}?session_id={{CHECKOUT_SESSION_ID}}",
        "cancel_url": f"{base}{config.CHECKOUT_CANCEL_PATH}?cart_id={cart_id}",
    }

def build_checkout_session(cart_id: str, *, base_url: str, shipping_option_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Crée la session Stripe Checkout d'un panier Medusa.
    1) contrôle le transporteur de shipping_option_id puis l'attache (Medusa recalcule)
    2) relit le panier tarifé: les prix envoyés par le client sont ignorés
    3) gardes (panier vide, livraison, transporteur autorisé) avant tout appel Stripe
    4) line_items dont la somme égale le total Medusa, metadata sur session + PaymentIntent
    Retour: {"id", "url"}
    """
    if shipping_option_id:
        priced = cart_sync.select_shipping_method(cart_id, shipping_option_id)
    else:
        priced = pricing.get_cart_total(cart_id)
    cart_logic.ensure_checkout_ready(priced)
    line_items = cart_logic.to_line_items(priced)
    metadata = cart_logic.make_metadata(priced)
    urls = checkout_urls(base_url, priced.cart_id)
    session = stripe_client.create_session(
        line_items=line_items,
        success_url=urls["success_url"],
        cancel_url=urls["cancel_url"],
        metadata=metadata,
        client_reference_id=priced.cart_id,
        customer_email=priced.email,
    )
    logger.info(
        "payments.checkout session=%s cart=%s total=%s %s carrier=%s",
        session.get("id"), priced.cart_id, priced.total_minor_units, priced.currency, metadata["carrier"],
    )
    return session

def create_payment_intent(cart_id: str) -> Dict[str, Any]:
    """
    Variante Payment Element: PaymentIntent au montant du total Medusa, mêmes gardes.
    Retour: {"client_secret", "payment_intent_id", "amount", "currency"}
    """
    priced = pricing.get_cart_total(cart_id)
    cart_logic.ensure_checkout_ready(priced)
    intent = stripe_client.create_payment_intent(
        amount=priced.total_minor_units,
        currency=priced.currency,
        metadata=cart_logic.make_metadata(priced),
        receipt_email=priced.email,
    )
    logger.info("payments.intent pi=%s cart=%s total=%s %s", intent["id"], priced.cart_id, intent["amount"], intent["currency"])
    return {
        "client_secret": intent["client_secret"],
        "payment_intent_id": intent["id"],
        "amount": intent["amount"],
        "currency": intent["currency"],
    }
