# module storefront.orders.repository
"""
Accès Supabase pour la réconciliation: claims d'événements et miroirs de commandes.

Les contraintes d'unicité (payment_event_claims.idempotency_key,
order_mirrors.payment_event_id, order_mirrors.payment_reference) sont portées
par Postgres: c'est elles, et non une lecture préalable, qui garantissent
qu'une seule livraison concurrente gagne.
"""
from typing import Any, Dict, Optional
from uuid import uuid4
import logging

from postgrest.exceptions import APIError

from storefront.errors import PersistenceError
from storefront.infra.supabase_client import get_service_supabase, is_unique_violation
from storefront.orders.models import ClaimStatus, utcnow

logger = logging.getLogger(__name__)

CLAIMS_TABLE = "payment_event_claims"
MIRRORS_TABLE = "order_mirrors"


def _first(res) -> Optional[Dict[str, Any]]:
    data = getattr(res, "data", None) or []
    if isinstance(data, dict):
        return data
    return data[0] if data else None


def find_mirror(idempotency_key: str, payment_reference: str = "") -> Optional[Dict[str, Any]]:
    """Miroir existant pour l'événement, à défaut pour la référence de paiement."""
    sb = get_service_supabase()
    try:
        row = _first(
            sb.table(MIRRORS_TABLE).select("*").eq("payment_event_id", idempotency_key).limit(1).execute()
        )
        if row is None and payment_reference:
            row = _first(
                sb.table(MIRRORS_TABLE).select("*").eq("payment_reference", payment_reference).limit(1).execute()
            )
    except APIError as e:
        raise PersistenceError(f"Lecture order_mirrors impossible: {e}") from e
    return row


def find_mirror_by_reference(payment_reference: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            get_service_supabase()
            .table(MIRRORS_TABLE)
            .select("medusa_order_id, medusa_display_id, payment_reference, amount_total, currency, created_at, authoritative")
            .eq("payment_reference", payment_reference)
            .limit(1)
            .execute()
        )
    except APIError as e:
        raise PersistenceError(f"Lecture order_mirrors impossible: {e}") from e
    return _first(res)


def claim_event(idempotency_key: str, payment_reference: str, cart_id: str) -> Optional[str]:
    """
    Réserve la clé d'idempotence (INSERT).
    Retour: le claim_token si ce processus a gagné, None si la clé est déjà réservée (23505).
    """
    token = str(uuid4())
    row = {
        "idempotency_key": idempotency_key,
        "payment_reference": payment_reference,
        "cart_id": cart_id,
        "status": ClaimStatus.PROCESSING.value,
        "claim_token": token,
        "claimed_at": utcnow().isoformat(),
    }
    try:
        get_service_supabase().table(CLAIMS_TABLE).insert(row).execute()
    except APIError as e:
        if is_unique_violation(e):
            logger.info("orders.claim_event clé déjà réservée key=%s", idempotency_key)
            return None
        raise PersistenceError(f"Insertion payment_event_claims impossible: {e}") from e
    return token


def get_claim(idempotency_key: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            get_service_supabase()
            .table(CLAIMS_TABLE)
            .select("*")
            .eq("idempotency_key", idempotency_key)
            .limit(1)
            .execute()
        )
    except APIError as e:
        raise PersistenceError(f"Lecture payment_event_claims impossible: {e}") from e
    return _first(res)


def take_over_claim(idempotency_key: str, previous_token: str) -> Optional[str]:
    """
    Reprise d'un claim non terminal expiré (compare-and-set sur claim_token).
    Retour: le nouveau token, ou None si un autre processus l'a repris entre-temps.
    """
    token = str(uuid4())
    try:
        res = (
            get_service_supabase()
            .table(CLAIMS_TABLE)
            .update({"claim_token": token, "claimed_at": utcnow().isoformat()})
            .eq("idempotency_key", idempotency_key)
            .in_("status", [ClaimStatus.PROCESSING.value, ClaimStatus.ORDER_CREATED.value])
            .eq("claim_token", previous_token)
            .execute()
        )
    except APIError as e:
        raise PersistenceError(f"Reprise du claim impossible: {e}") from e
    return token if _first(res) else None


def update_claim(idempotency_key: str, claim_token: str, status: ClaimStatus, **fields: Any) -> bool:
    """Met à jour le statut du claim détenu (filtré par claim_token)."""
    values = {"status": status.value, "updated_at": utcnow().isoformat()}
    values.update(fields)
    try:
        res = (
            get_service_supabase()
            .table(CLAIMS_TABLE)
            .update(values)
            .eq("idempotency_key", idempotency_key)
            .eq("claim_token", claim_token)
            .execute()
        )
    except APIError as e:
        logger.error("orders.update_claim échec key=%s status=%s: %s", idempotency_key, status.value, e)
        return False
    return _first(res) is not None


def release_claim(idempotency_key: str, claim_token: str) -> None:
    """
    Libère un claim 'processing' (échec transitoire avant toute commande),
    pour que la redélivrance Stripe reparte de zéro.
    """
    try:
        (
            get_service_supabase()
            .table(CLAIMS_TABLE)
            .delete()
            .eq("idempotency_key", idempotency_key)
            .eq("claim_token", claim_token)
            .eq("status", ClaimStatus.PROCESSING.value)
            .execute()
        )
    except APIError as e:
        # le claim expirera après CLAIM_LEASE_SECONDS
        logger.error("orders.release_claim échec key=%s: %s", idempotency_key, e)


def insert_mirror(mirror: Dict[str, Any]) -> Dict[str, Any]:
    """
    Insère le miroir (append-only). Une violation d'unicité signifie qu'il existe déjà:
    on retourne la ligne existante.
    """
    sb = get_service_supabase()
    try:
        res = sb.table(MIRRORS_TABLE).insert(mirror).execute()
    except APIError as e:
        if is_unique_violation(e):
            existing = find_mirror(mirror["payment_event_id"], mirror.get("payment_reference") or "")
            if existing:
                return existing
        raise PersistenceError(f"Insertion order_mirrors impossible: {e}") from e
    return _first(res) or mirror
