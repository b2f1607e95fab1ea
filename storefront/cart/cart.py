"""
Cache panier côté client et synchronisation vers Medusa.

Le panier du navigateur n'est qu'un cache d'affichage (authoritative=False):
seuls l'identité des variantes et les quantités sont transmises à Medusa.
Les prix qu'il contient ne participent jamais à une transaction.
"""
from typing import Any, Dict, List, Literal, Optional
import logging

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from storefront import config
from storefront.commerce import repository as commerce
from storefront.errors import CartValidationError, CarrierNotAllowedError
from storefront.pricing import service as pricing
from storefront.pricing.models import PricedCart

logger = logging.getLogger(__name__)


class ClientCartItem(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str = Field(min_length=1, description="Identifiant de variante Medusa")
    quantity: int = Field(ge=1, le=99)
    name: Optional[str] = None
    # affichage uniquement
    price: Optional[float] = None
    options: Dict[str, str] = Field(default_factory=dict)


class ClientCart(BaseModel):
    model_config = ConfigDict(extra="ignore")
    authoritative: Literal[False] = False
    items: List[ClientCartItem] = Field(default_factory=list)
    email: Optional[EmailStr] = None


class ShippingAddress(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    address_1: str = Field(alias="address1", min_length=1)
    address_2: str = Field(default="", alias="address2")
    city: str = Field(min_length=1)
    province: str = ""
    postal_code: str = Field(alias="postalCode", min_length=1)
    country_code: str = Field(alias="countryCode", min_length=2, max_length=2)
    phone: str = ""


# module storefront.cart.cart
def aggregate_quantities(items: List[Dict[str, Any]]) -> Dict[str, int]:
    """
    Agrège un panier brut [{id, quantity, ...}, ...] en {variant_id: total_quantity}.
    - Ignore les lignes invalides (id vide, quantity <= 0); le champ price n'est pas lu.
    - Lève CartValidationError si aucune ligne valide n'est présente.
    """
    quantities: Dict[str, int] = {}
    for it in items or []:
        variant_id = str(it.get("id") or "").strip()
        try:
            qty = int(it.get("quantity") or 0)
        except (TypeError, ValueError):
            qty = 0
        if not variant_id or qty <= 0:
            continue
        quantities[variant_id] = quantities.get(variant_id, 0) + qty
    if not quantities:
        raise CartValidationError("Panier invalide")
    return quantities


def ensure_carrier_allowed(carrier: str) -> None:
    if carrier not in config.ALLOWED_CARRIERS:
        raise CarrierNotAllowedError(
            f"Transporteur non autorisé: {carrier or 'inconnu'} (autorisés: {', '.join(config.ALLOWED_CARRIERS)})"
        )


def _options_by_variant(items: List[ClientCartItem]) -> Dict[str, Dict[str, str]]:
    options: Dict[str, Dict[str, str]] = {}
    for it in items:
        if it.options and it.id not in options:
            options[it.id] = dict(it.options)
    return options


def _lines_by_variant(cart: Dict[str, Any]) -> Dict[str, List[str]]:
    lines: Dict[str, List[str]] = {}
    for item in cart.get("items") or []:
        variant_id, line_id = item.get("variant_id"), item.get("id")
        if variant_id and line_id:
            lines.setdefault(variant_id, []).append(line_id)
    return lines


def sync_cart(client_cart: ClientCart, cart_id: Optional[str] = None) -> PricedCart:
    """
    Pousse le cache client vers Medusa et retourne la vue tarifée autoritative.
    - Sans cart_id: crée un panier Medusa (région configurée, email éventuel).
    - Avec cart_id: le panier Medusa est aligné sur le cache, pas additionné:
      quantité fixée pour les variantes présentes, ajout des nouvelles,
      suppression des lignes retirées côté client.
    """
    quantities = aggregate_quantities([it.model_dump() for it in client_cart.items])
    options = _options_by_variant(client_cart.items)

    existing: Dict[str, Any] = {}
    if cart_id:
        existing = commerce.get_cart(cart_id)
    else:
        created = commerce.create_cart(email=client_cart.email)
        cart_id = created.get("id")
        if not cart_id:
            raise CartValidationError("Création du panier Medusa impossible")
        logger.info("cart.sync_cart nouveau panier %s", cart_id)

    lines = _lines_by_variant(existing)
    stale: List[str] = []
    for variant_id, qty in quantities.items():
        line_ids = lines.get(variant_id) or []
        if line_ids:
            commerce.update_line_item(cart_id, line_ids[0], qty)
            # une seule ligne par variante
            stale.extend(line_ids[1:])
            continue
        metadata = {"options": options[variant_id]} if variant_id in options else None
        commerce.add_line_item(cart_id, variant_id, qty, metadata)

    for variant_id, line_ids in lines.items():
        if variant_id not in quantities:
            stale.extend(line_ids)
    for line_id in stale:
        commerce.delete_line_item(cart_id, line_id)
    if stale:
        logger.info("cart.sync_cart %s: %d ligne(s) retirée(s)", cart_id, len(stale))
    return pricing.get_cart_total(cart_id)


def update_address(cart_id: str, shipping: ShippingAddress, billing: Optional[ShippingAddress] = None,
                   email: Optional[str] = None) -> PricedCart:
    payload: Dict[str, Any] = {"shipping_address": shipping.model_dump()}
    if billing:
        payload["billing_address"] = billing.model_dump()
    if email:
        payload["email"] = email
    commerce.update_cart(cart_id, payload)
    return pricing.get_cart_total(cart_id)


def shipping_options(cart_id: str) -> List[Dict[str, Any]]:
    """Options de livraison proposées par Medusa, marquées selon ALLOWED_CARRIERS."""
    result = []
    for opt in commerce.list_shipping_options(cart_id):
        data = opt.get("data") or {}
        carrier = str(data.get("carrier") or "").strip().lower()
        result.append({
            "id": opt.get("id"),
            "name": opt.get("name"),
            "amount": pricing.to_minor_units(opt.get("amount"), opt.get("raw_amount")),
            "carrier": carrier,
            "allowed": carrier in config.ALLOWED_CARRIERS,
        })
    return result


def select_shipping_method(cart_id: str, option_id: str) -> PricedCart:
    """
    Attache une option de livraison après contrôle du transporteur.
    Un transporteur hors ALLOWED_CARRIERS est refusé sans modifier le panier Medusa.
    """
    option = next((o for o in commerce.list_shipping_options(cart_id) if o.get("id") == option_id), None)
    if option is None:
        raise CartValidationError("Option de livraison inconnue pour ce panier")
    carrier = str((option.get("data") or {}).get("carrier") or "").strip().lower()
    ensure_carrier_allowed(carrier)
    commerce.add_shipping_method(cart_id, option_id)
    return pricing.get_cart_total(cart_id)
