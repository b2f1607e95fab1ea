"""
Réconciliation paiement -> commande.

Chaque étape est une garde:
  0) miroir déjà présent -> DUPLICATE, aucun effet de bord
  1) claim de la clé d'idempotence (INSERT unique en base) -> une seule livraison gagne
  2) relecture du total live Medusa et comparaison au montant capturé
  3) complete_cart chez Medusa (rejouable: "déjà complété" = succès)
  4) miroir Supabase authoritative=False
Un échec entre 3 et 4 n'est jamais rejoué: il est journalisé pour réconciliation manuelle.
"""
import logging
import time
from datetime import timedelta
from typing import Callable, Optional, Tuple

from storefront import config
from storefront.commerce import repository as commerce
from storefront.errors import CartValidationError, CommerceRequestError, CommerceUnavailableError, ConsistencyError
from storefront.notifications.email import send_operator_alert
from storefront.orders import repository
from storefront.orders.models import (
    ClaimStatus,
    FINAL_CLAIM_STATUSES,
    ReconcileOutcome,
    ReconcileResult,
    build_mirror,
    parse_timestamp,
    utcnow,
)
from storefront.payments.events import PaymentEvent
from storefront.pricing import service as pricing
from storefront.pricing.models import PricedCart
from storefront.utils.retry import retry_transient

logger = logging.getLogger(__name__)


def _resolve_existing_claim(event: PaymentEvent) -> Tuple[Optional[ReconcileResult], Optional[str]]:
    """
    La clé est déjà réservée. Retour: (résultat final, None) ou (None, token) si ce
    processus reprend un claim expiré.
    """
    key = event.idempotency_key
    claim = repository.get_claim(key)
    if claim is None:
        # libéré entre notre INSERT et cette lecture: nouvelle tentative unique
        token = repository.claim_event(key, event.payment_reference, event.cart_id)
        if token:
            return None, token
        return ReconcileResult(ReconcileOutcome.IN_PROGRESS, key), None

    status = ClaimStatus(claim.get("status") or ClaimStatus.PROCESSING.value)
    order_id = claim.get("medusa_order_id")
    if status in FINAL_CLAIM_STATUSES:
        outcome = ReconcileOutcome.REJECTED if status is ClaimStatus.REJECTED else ReconcileOutcome.DUPLICATE
        return ReconcileResult(outcome, key, order_id=order_id), None

    claimed_at = parse_timestamp(claim.get("claimed_at"))
    lease = timedelta(seconds=config.CLAIM_LEASE_SECONDS)
    if claimed_at is not None and utcnow() - claimed_at < lease:
        logger.info("orders.reconcile key=%s en cours de traitement ailleurs (status=%s)", key, status.value)
        return ReconcileResult(ReconcileOutcome.IN_PROGRESS, key, order_id=order_id), None

    token = repository.take_over_claim(key, claim.get("claim_token") or "")
    if not token:
        return ReconcileResult(ReconcileOutcome.IN_PROGRESS, key, order_id=order_id), None
    logger.warning("orders.reconcile reprise du claim expiré key=%s status=%s claimed_at=%s", key, status.value, claimed_at)
    return None, token


def verify_amount(event: PaymentEvent, priced: PricedCart) -> None:
    """Le montant capturé doit égaler le total live, à l'unité mineure près, dans la même devise."""
    if priced.total_minor_units == event.amount_captured and priced.currency == event.currency:
        return
    raise ConsistencyError(
        f"Montant capturé {event.amount_captured} {event.currency} != total panier "
        f"{priced.total_minor_units} {priced.currency} (cart={event.cart_id}, pi={event.payment_reference})",
        cart_id=event.cart_id,
        expected=priced.total_minor_units,
        captured=event.amount_captured,
    )


# module storefront.orders.reconciler
def reconcile_payment(event: PaymentEvent, *, sleep: Callable[[float], None] = time.sleep) -> ReconcileResult:
    """
    Transforme un paiement réussi en exactement une commande Medusa et un miroir.
    - ConsistencyError: montant différent, claim 'rejected', alerte opérateur, aucune commande.
    - CommerceUnavailableError: Medusa indisponible après retries, claim libéré (Stripe redélivrera).
    - Toute autre erreur avant la commande libère aussi le claim avant de remonter.
    """
    key = event.idempotency_key

    existing = repository.find_mirror(key, event.payment_reference)
    if existing:
        logger.info("orders.reconcile doublon key=%s order=%s", key, existing.get("medusa_order_id"))
        return ReconcileResult(
            ReconcileOutcome.DUPLICATE, key,
            order_id=existing.get("medusa_order_id"), mirror_id=existing.get("id"),
        )

    token = repository.claim_event(key, event.payment_reference, event.cart_id)
    if token is None:
        result, token = _resolve_existing_claim(event)
        if result is not None:
            return result

    try:
        priced = retry_transient(pricing.get_cart_total, event.cart_id, sleep=sleep)
        verify_amount(event, priced)
        order = retry_transient(commerce.complete_cart, event.cart_id, event.payment_reference, sleep=sleep)
    except ConsistencyError as e:
        repository.update_claim(key, token, ClaimStatus.REJECTED, error=e.code)
        send_operator_alert(
            "Montant capturé différent du total panier",
            [
                f"cart={e.cart_id}",
                f"payment={event.payment_reference}",
                f"event={event.event_id}",
                f"attendu={e.expected} {event.currency}",
                f"capturé={e.captured} {event.currency}",
                "Aucune commande créée: remboursement ou traitement manuel requis.",
            ],
        )
        raise
    except (CommerceRequestError, CartValidationError) as e:
        repository.release_claim(key, token)
        send_operator_alert(
            "Panier refusé par Medusa après paiement",
            [f"cart={event.cart_id}", f"payment={event.payment_reference}", f"status={getattr(e, 'upstream_status', e.status_code)}", e.message],
        )
        raise
    except CommerceUnavailableError:
        repository.release_claim(key, token)
        logger.warning("orders.reconcile Medusa indisponible key=%s, claim libéré", key)
        raise
    except Exception:
        # configuration, persistance ou imprévu: aucune commande, la redélivrance repart de zéro
        repository.release_claim(key, token)
        logger.exception("orders.reconcile échec avant commande key=%s, claim libéré", key)
        raise

    order_id = str(order.get("id"))
    repository.update_claim(key, token, ClaimStatus.ORDER_CREATED, medusa_order_id=order_id)
    logger.info("orders.reconcile commande créée key=%s cart=%s order=%s", key, event.cart_id, order_id)

    try:
        mirror = repository.insert_mirror(build_mirror(event, order, priced))
    except Exception as e:
        logger.critical(
            "orders.reconcile miroir non écrit, réconciliation manuelle requise key=%s order=%s pi=%s: %s",
            key, order_id, event.payment_reference, e, exc_info=True,
        )
        repository.update_claim(key, token, ClaimStatus.MIRROR_FAILED, error=type(e).__name__)
        return ReconcileResult(ReconcileOutcome.MIRROR_FAILED, key, order_id=order_id)

    repository.update_claim(key, token, ClaimStatus.COMPLETED, mirror_id=mirror.get("id"))
    return ReconcileResult(ReconcileOutcome.COMPLETED, key, order_id=order_id, mirror_id=mirror.get("id"))


def get_order_status(payment_reference: str) -> dict:
    """
    Statut affiché sur la page de confirmation: lecture du miroir uniquement
    (« paiement reçu, commande confirmée » ou « en cours »).
    """
    mirror = repository.find_mirror_by_reference(payment_reference)
    if not mirror:
        return {"status": "pending", "order_id": None}
    return {
        "status": "confirmed",
        "order_id": mirror.get("medusa_order_id"),
        "display_id": mirror.get("medusa_display_id"),
        "amount": mirror.get("amount_total"),
        "currency": mirror.get("currency"),
    }
