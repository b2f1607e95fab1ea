"""
Accès aux ressources du backend commerce (Medusa store API).
Les fonctions retournent des dicts bruts Medusa; l'interprétation des prix
est faite par storefront.pricing.
"""
from typing import Any, Dict, List, Optional
import logging

from storefront import config
from storefront.commerce.client import medusa_request
from storefront.errors import CommerceRequestError, CommerceUnavailableError

logger = logging.getLogger(__name__)

CART_FIELDS = "+shipping_methods.data,+items.variant_id,+metadata"
# le paiement est capturé par Stripe: Medusa enregistre une session système
SYSTEM_PAYMENT_PROVIDER = "pp_system_default"

# module storefront.commerce.repository
def get_cart(cart_id: str) -> Dict[str, Any]:
    """Relit le panier (items, méthodes de livraison, totaux) depuis Medusa."""
    data = medusa_request("GET", f"/store/carts/{cart_id}", params={"fields": CART_FIELDS})
    return data.get("cart") or {}

def create_cart(email: Optional[str] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    if config.MEDUSA_REGION_ID:
        payload["region_id"] = config.MEDUSA_REGION_ID
    if email:
        payload["email"] = email
    data = medusa_request("POST", "/store/carts", json=payload)
    return data.get("cart") or {}

def add_line_item(cart_id: str, variant_id: str, quantity: int, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Ajoute une ligne (identité + quantité seulement: le prix est calculé par Medusa)."""
    payload: Dict[str, Any] = {"variant_id": variant_id, "quantity": int(quantity)}
    if metadata:
        payload["metadata"] = metadata
    data = medusa_request("POST", f"/store/carts/{cart_id}/line-items", json=payload)
    return data.get("cart") or {}

def update_line_item(cart_id: str, line_id: str, quantity: int) -> Dict[str, Any]:
    """Fixe la quantité d'une ligne existante (POST /line-items ajouterait à la quantité)."""
    data = medusa_request("POST", f"/store/carts/{cart_id}/line-items/{line_id}", json={"quantity": int(quantity)})
    return data.get("cart") or {}

def delete_line_item(cart_id: str, line_id: str) -> None:
    medusa_request("DELETE", f"/store/carts/{cart_id}/line-items/{line_id}")

def update_cart(cart_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Adresse de livraison/facturation et email (Medusa recalcule taxes et livraison)."""
    data = medusa_request("POST", f"/store/carts/{cart_id}", json=payload)
    return data.get("cart") or {}

def list_shipping_options(cart_id: str) -> List[Dict[str, Any]]:
    data = medusa_request("GET", "/store/shipping-options", params={"cart_id": cart_id})
    return data.get("shipping_options") or []

def add_shipping_method(cart_id: str, option_id: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Attache une méthode de livraison au panier (Medusa calcule le montant)."""
    payload: Dict[str, Any] = {"option_id": option_id}
    if data:
        payload["data"] = data
    res = medusa_request("POST", f"/store/carts/{cart_id}/shipping-methods", json=payload)
    return res.get("cart") or {}

def find_order_for_cart(cart_id: str) -> Optional[Dict[str, Any]]:
    """Retrouve la commande issue d'un panier déjà complété."""
    data = medusa_request("GET", "/store/orders", params={"cart_id": cart_id, "limit": 1})
    orders = data.get("orders") or []
    return orders[0] if orders else None

def _is_already_completed(err: CommerceRequestError) -> bool:
    msg = (err.message or "").lower()
    return err.upstream_status == 409 or ("already" in msg and "complete" in msg)

def _existing_order(cart_id: str) -> Dict[str, Any]:
    logger.info("commerce.complete_cart cart=%s déjà complété, recherche de la commande", cart_id)
    order = find_order_for_cart(cart_id)
    if not order or not order.get("id"):
        raise CommerceUnavailableError(f"Panier {cart_id} complété mais commande introuvable")
    return order

def create_payment_collection(cart_id: str) -> str:
    data = medusa_request("POST", "/store/payment-collections", json={"cart_id": cart_id})
    collection_id = (data.get("payment_collection") or {}).get("id")
    if not collection_id:
        raise CommerceRequestError(f"Payment collection absente pour le panier {cart_id}", upstream_status=200)
    return collection_id

def init_payment_session(collection_id: str, provider_id: str = SYSTEM_PAYMENT_PROVIDER) -> Dict[str, Any]:
    data = medusa_request(
        "POST",
        f"/store/payment-collections/{collection_id}/payment-sessions",
        json={"provider_id": provider_id},
    )
    return data.get("payment_collection") or {}

def complete_cart(cart_id: str, payment_reference: str) -> Dict[str, Any]:
    """
    Convertit le panier en commande une fois la capture Stripe vérifiée.
    1) relit le panier: déjà complété -> commande existante
    2) metadata stripe_payment_intent_id sur le panier (reportée sur la commande)
    3) payment collection + session pp_system_default (le paiement est déjà capturé chez Stripe)
    4) POST /complete
    - Sûr à rappeler: "cart already completed" est résolu vers la commande existante.
    - Medusa peut répondre {type: "cart", error} si le paiement n'est pas autorisé.
    Retour: la commande autoritative (dict avec "id").
    """
    cart = get_cart(cart_id)
    if cart.get("completed_at"):
        return _existing_order(cart_id)

    metadata = dict(cart.get("metadata") or {})
    metadata["stripe_payment_intent_id"] = payment_reference
    try:
        update_cart(cart_id, {"metadata": metadata})
        collection_id = create_payment_collection(cart_id)
        init_payment_session(collection_id)
        data = medusa_request("POST", f"/store/carts/{cart_id}/complete", json={})
    except CommerceRequestError as e:
        if not _is_already_completed(e):
            raise
        return _existing_order(cart_id)

    order = data.get("order") or {}
    if data.get("type") == "cart" or not order.get("id"):
        error = data.get("error") or {}
        message = error.get("message") if isinstance(error, dict) else str(error)
        raise CommerceRequestError(message or "Completion Medusa sans commande", upstream_status=200)
    return order
