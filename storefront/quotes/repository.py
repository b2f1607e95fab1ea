# module storefront.quotes.repository
from typing import Any, Dict, Optional
import logging

from postgrest.exceptions import APIError

from storefront.errors import PersistenceError
from storefront.infra.supabase_client import get_service_supabase

logger = logging.getLogger(__name__)

QUOTES_TABLE = "quote_requests"
VENDORS_TABLE = "vendor_applications"


def _insert(table: str, row: Dict[str, Any]) -> Dict[str, Any]:
    try:
        res = get_service_supabase().table(table).insert(row).execute()
    except APIError as e:
        logger.exception("quotes.repository insertion %s échouée", table)
        raise PersistenceError(f"Insertion {table} impossible: {e}") from e
    data = res.data or []
    if not data:
        raise PersistenceError(f"Insertion {table} sans ligne retournée")
    return data[0]


def insert_quote_request(kind: str, contact_name: str, email: str, payload: Dict[str, Any], status: str = "new") -> Dict[str, Any]:
    """Enregistre une demande (pas d'idempotence: les doublons sont acceptés)."""
    return _insert(QUOTES_TABLE, {
        "kind": kind,
        "contact_name": contact_name,
        "email": email,
        "payload": payload,
        "status": status,
    })


def insert_vendor_application(business_name: str, email: str, payload: Dict[str, Any], status: str = "new") -> Dict[str, Any]:
    return _insert(VENDORS_TABLE, {
        "business_name": business_name,
        "email": email,
        "payload": payload,
        "status": status,
    })


def update_status(table: str, record_id: str, status: str) -> Optional[Dict[str, Any]]:
    """Met à jour le statut; retourne la ligne modifiée ou None si l'id est inconnu."""
    try:
        res = get_service_supabase().table(table).update({"status": status}).eq("id", record_id).execute()
    except APIError as e:
        raise PersistenceError(f"Mise à jour du statut {table} impossible: {e}") from e
    data = res.data or []
    return data[0] if data else None
