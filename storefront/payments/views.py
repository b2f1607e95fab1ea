import logging
from typing import Optional

from fastapi import APIRouter, Request, Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from storefront.errors import ConsistencyError, MissingMetadataError, SignatureError
from storefront.utils.rate_limit import optional_rate_limit
from storefront.orders import reconciler
from storefront.orders.models import ReconcileOutcome
from storefront.payments import events
from storefront.payments import stripe_client
from storefront.payments import service as payments_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])


class CheckoutRequest(BaseModel):
    # les prix éventuellement envoyés par l'UI sont ignorés (extra="ignore")
    model_config = ConfigDict(populate_by_name=True, extra="ignore")
    cart_id: str = Field(alias="cartId", min_length=1)
    shipping_option_id: Optional[str] = Field(default=None, alias="shippingOptionId")


class IntentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")
    cart_id: str = Field(alias="cartId", min_length=1)


# module storefront.payments.views
@router.post("/checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def create_checkout_session(req: CheckoutRequest, request: Request):
    """
    Crée une session Checkout Stripe pour un panier Medusa.
    - Entrée JSON: {"cartId": "...", "shippingOptionId": "..."?}
    - Le montant est toujours celui recalculé par Medusa.
    - Erreurs: 400 panier invalide / transporteur refusé, 404 panier inconnu, 503 Medusa indisponible.
    """
    session = await run_in_threadpool(
        payments_service.build_checkout_session,
        req.cart_id.strip(),
        base_url=str(request.base_url),
        shipping_option_id=req.shipping_option_id,
    )
    return JSONResponse({"id": session.get("id"), "url": session.get("url")})


@router.post("/intent", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def create_payment_intent(req: IntentRequest):
    """PaymentIntent au total Medusa pour le Payment Element (mêmes gardes que /checkout)."""
    intent = await run_in_threadpool(payments_service.create_payment_intent, req.cart_id.strip())
    return JSONResponse(intent)


@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request):
    """
    Webhook Stripe: seul payment_intent.succeeded déclenche la réconciliation.
    - Signature invalide: 400, aucun traitement (incident d'intégrité journalisé).
    - Autre type: 200 immédiat, aucun effet.
    - Montant incohérent: 200 générique (alerte opérateur déjà émise, Stripe ne doit pas rejouer).
    - Traitement concurrent en cours: 409 (Stripe redélivrera).
    - Medusa indisponible: 503 (Stripe redélivrera).
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    try:
        event = stripe_client.parse_event(payload, sig_header)
    except SignatureError as e:
        client_host = request.client.host if request.client else "inconnu"
        logger.warning("payments.webhook signature refusée from=%s: %s", client_host, e.message)
        raise

    event_type = event.get("type") or ""
    if events.route_event(event_type) is events.EventState.IGNORED:
        logger.debug("payments.webhook ignoré type=%s id=%s", event_type, event.get("id"))
        return JSONResponse({"received": True})

    try:
        payment_event = events.from_stripe_event(event)
    except MissingMetadataError as e:
        logger.error("payments.webhook %s", e.message)
        raise

    try:
        result = await run_in_threadpool(reconciler.reconcile_payment, payment_event)
    except ConsistencyError:
        return JSONResponse({"received": True})

    if result.outcome is ReconcileOutcome.IN_PROGRESS:
        return JSONResponse(status_code=409, content={"received": False, "detail": "Event is being processed"})
    logger.info("payments.webhook key=%s outcome=%s order=%s", result.idempotency_key, result.outcome.value, result.order_id)
    return JSONResponse({"received": True})
