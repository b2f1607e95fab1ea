"""
Pricing Authority Client: le total d'un panier n'est défini que par le calcul
live de Medusa. Aucun prix en cache (client ou serveur) n'alimente une transaction.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Optional
import logging

from storefront import config
from storefront.commerce import repository as commerce
from storefront.errors import CartValidationError
from storefront.pricing.models import PricedCart, PricedLineItem, FulfillmentMethod

logger = logging.getLogger(__name__)

# module storefront.pricing.service
def to_minor_units(value: Any, raw: Any = None) -> Optional[int]:
    """
    Convertit un montant Medusa en unités mineures.
    - Accepte int/float/str, ou un objet raw {"value": "..."} en secours.
    - Applique COMMERCE_AMOUNT_SCALE (1 si Medusa parle déjà en cents).
    - Retourne None si le montant est absent ou illisible.
    """
    candidate = value
    if candidate is None and isinstance(raw, dict):
        candidate = raw.get("value")
    if candidate is None or isinstance(candidate, bool):
        return None
    try:
        amount = Decimal(str(candidate).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    scaled = amount * config.COMMERCE_AMOUNT_SCALE
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def _clean(value: Any) -> str:
    return str(value).strip() if value is not None else ""

def _service_name(value: Any) -> str:
    if isinstance(value, dict):
        return _clean(value.get("name") or value.get("token"))
    return _clean(value)

def parse_fulfillment(method: Dict[str, Any]) -> FulfillmentMethod:
    data = method.get("data") or {}
    amount = to_minor_units(method.get("amount"), method.get("raw_amount"))
    if amount is None:
        raise CartValidationError("Montant de livraison manquant dans la sélection Medusa")
    return FulfillmentMethod(
        method_id=_clean(method.get("id")),
        option_id=_clean(method.get("shipping_option_id")),
        name=_clean(method.get("name")),
        carrier=_clean(data.get("carrier")).lower(),
        amount_minor=amount,
        provider_id=_clean(method.get("provider_id")),
        service=_service_name(data.get("shippo_servicelevel") or data.get("service")),
    )

def parse_cart(cart: Dict[str, Any], cart_id: str = "") -> PricedCart:
    """
    Construit un PricedCart à partir du dict Medusa.
    - Une ligne sans prix lisible rend le panier invalide (pas de prix par défaut).
    - Le total doit être présent: c'est la seule valeur comparée au paiement.
    """
    items = []
    for raw in cart.get("items") or []:
        unit = to_minor_units(raw.get("unit_price"), raw.get("raw_unit_price"))
        if unit is None:
            raise CartValidationError("Prix d'un article du panier manquant")
        items.append(PricedLineItem(
            line_id=_clean(raw.get("id")),
            variant_id=_clean(raw.get("variant_id")),
            title=_clean(raw.get("title")) or "Article",
            quantity=max(1, int(raw.get("quantity") or 1)),
            unit_price_minor=unit,
        ))

    total = to_minor_units(cart.get("total"), cart.get("raw_total"))
    if total is None:
        raise CartValidationError("Total du panier non calculé par le backend")

    methods = [parse_fulfillment(m) for m in cart.get("shipping_methods") or []]
    return PricedCart(
        cart_id=_clean(cart.get("id")) or cart_id,
        currency=(_clean(cart.get("currency_code")) or config.DEFAULT_CURRENCY).lower(),
        items=items,
        total_minor_units=total,
        subtotal_minor=to_minor_units(cart.get("subtotal"), cart.get("raw_subtotal")) or 0,
        shipping_total_minor=to_minor_units(cart.get("shipping_total"), cart.get("raw_shipping_total")) or 0,
        tax_total_minor=to_minor_units(cart.get("tax_total"), cart.get("raw_tax_total")) or 0,
        fulfillment=methods[0] if methods else None,
        email=cart.get("email") or None,
        completed=bool(cart.get("completed_at")),
        fulfillment_methods=methods,
    )

def get_cart_total(cart_id: str) -> PricedCart:
    """
    Relit systématiquement le panier chez Medusa et retourne sa vue tarifée.
    - Fail closed: CommerceUnavailableError si Medusa est injoignable.
    - Lecture seule.
    """
    cart_id = (cart_id or "").strip()
    if not cart_id:
        raise CartValidationError("cartId manquant")
    priced = parse_cart(commerce.get_cart(cart_id), cart_id)
    logger.debug("pricing.get_cart_total cart=%s total=%s %s", cart_id, priced.total_minor_units, priced.currency)
    return priced
