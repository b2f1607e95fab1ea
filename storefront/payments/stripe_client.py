"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
"""
import json
import logging
from typing import Any, Dict, List, Optional

import stripe

from storefront import config
from storefront.errors import ConfigurationError, PaymentProcessorError, SignatureError

logger = logging.getLogger(__name__)

# module storefront.payments.stripe_client
def require_stripe() -> stripe:
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Lève ConfigurationError si STRIPE_SECRET_KEY est absent (aucun appel n'est tenté).
    """
    if not config.STRIPE_SECRET_KEY:
        raise ConfigurationError("STRIPE_SECRET_KEY manquant")
    stripe.api_key = config.STRIPE_SECRET_KEY
    return stripe

def create_session(
    *,
    line_items: List[Dict[str, Any]],
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, str],
    client_reference_id: str,
    customer_email: Optional[str] = None,
    mode: str = "payment",
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout.
    - metadata est copiée sur la session ET sur le PaymentIntent (payment_intent_data.metadata),
      c'est elle que le webhook payment_intent.succeeded relit.
    Retour: {"id": "cs_...", "url": "https://checkout.stripe.com/..."}
    """
    require_stripe()
    params: Dict[str, Any] = {
        "mode": mode,
        "line_items": line_items,
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": metadata,
        "payment_intent_data": {"metadata": metadata},
        "client_reference_id": client_reference_id,
        "payment_method_types": ["card"],
    }
    if customer_email:
        params["customer_email"] = customer_email
    try:
        session = stripe.checkout.Session.create(**params)
    except stripe.StripeError as e:
        logger.exception("stripe_client.create_session échec cart=%s", client_reference_id)
        raise PaymentProcessorError(f"Stripe Checkout Session: {e}") from e
    return {"id": session.id, "url": session.url}

def create_payment_intent(
    *,
    amount: int,
    currency: str,
    metadata: Dict[str, str],
    receipt_email: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée un PaymentIntent pour le total autoritatif (Payment Element côté front).
    Retour: {"id", "client_secret", "amount", "currency"}
    """
    require_stripe()
    params: Dict[str, Any] = {
        "amount": int(amount),
        "currency": currency,
        "metadata": metadata,
        "automatic_payment_methods": {"enabled": True},
    }
    if receipt_email:
        params["receipt_email"] = receipt_email
    try:
        intent = stripe.PaymentIntent.create(**params)
    except stripe.StripeError as e:
        logger.exception("stripe_client.create_payment_intent échec cart=%s", metadata.get("medusa_cart_id"))
        raise PaymentProcessorError(f"Stripe PaymentIntent: {e}") from e
    return {
        "id": intent.id,
        "client_secret": intent.client_secret,
        "amount": intent.amount,
        "currency": intent.currency,
    }

def parse_event(payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
    """
    Valide la signature d'un webhook Stripe puis retourne l'événement en dict.
    - STRIPE_WEBHOOK_SECRET absent: ConfigurationError (rien n'est traité).
    - Signature absente/invalide ou payload illisible: SignatureError.
    """
    if not config.STRIPE_WEBHOOK_SECRET:
        raise ConfigurationError("STRIPE_WEBHOOK_SECRET manquant")
    if not sig_header:
        raise SignatureError("En-tête Stripe-Signature absent")
    try:
        stripe.Webhook.construct_event(payload, sig_header, config.STRIPE_WEBHOOK_SECRET)
    except stripe.SignatureVerificationError as e:
        raise SignatureError(f"Signature Stripe invalide: {e}") from e
    except ValueError as e:
        raise SignatureError(f"Payload webhook illisible: {e}") from e
    # construct_event a validé le corps brut; on travaille sur des dicts simples
    return json.loads(payload)
