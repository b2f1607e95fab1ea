"""
Logique panier -> Stripe pure (pas d'appel Stripe, pas d'appel Medusa).
Tous les montants viennent du PricedCart relu chez Medusa.
"""
from typing import Any, Dict, List

from storefront.cart.cart import ensure_carrier_allowed
from storefront.errors import CartValidationError
from storefront.pricing.models import PricedCart

# module storefront.payments.cart
def ensure_checkout_ready(priced: PricedCart) -> None:
    """
    Gardes avant toute création côté Stripe:
    - panier non vide, non déjà complété
    - méthode de livraison présente, transporteur dans ALLOWED_CARRIERS
    - total strictement positif
    """
    if priced.completed:
        raise CartValidationError("Ce panier a déjà été commandé")
    if not priced.items:
        raise CartValidationError("Panier vide")
    if not priced.fulfillment:
        raise CartValidationError("Aucune méthode de livraison sélectionnée")
    ensure_carrier_allowed(priced.fulfillment.carrier)
    if priced.total_minor_units <= 0:
        raise CartValidationError("Total du panier invalide")

def _price_data(currency: str, unit_amount: int, name: str, **product: Any) -> Dict[str, Any]:
    product_data: Dict[str, Any] = {"name": name}
    if product.get("metadata"):
        product_data["metadata"] = product["metadata"]
    return {"currency": currency, "unit_amount": int(unit_amount), "product_data": product_data}

def to_line_items(priced: PricedCart) -> List[Dict[str, Any]]:
    """
    Construit les line_items Stripe depuis le panier tarifé.
    - Une ligne par article (prix unitaire Medusa), une ligne livraison, une ligne taxes si > 0.
    - La somme doit égaler le total Medusa: sinon CartValidationError (remise ou
      ajustement non représentable, on refuse plutôt que de facturer un autre montant).
    """
    currency = priced.currency
    line_items: List[Dict[str, Any]] = []
    for item in priced.items:
        line_items.append({
            "quantity": item.quantity,
            "price_data": _price_data(
                currency, item.unit_price_minor, item.title,
                metadata={"medusa_line_id": item.line_id, "medusa_variant_id": item.variant_id},
            ),
        })

    shipping = priced.fulfillment
    if shipping and shipping.amount_minor > 0:
        label = f"Shipping: {shipping.name}" if shipping.name else "Shipping"
        line_items.append({"quantity": 1, "price_data": _price_data(currency, shipping.amount_minor, label)})

    if priced.tax_total_minor > 0:
        line_items.append({"quantity": 1, "price_data": _price_data(currency, priced.tax_total_minor, "Tax")})

    charged = sum(li["quantity"] * li["price_data"]["unit_amount"] for li in line_items)
    if charged != priced.total_minor_units:
        raise CartValidationError(
            f"Lignes Stripe ({charged}) différentes du total Medusa ({priced.total_minor_units})",
            code="total_mismatch",
        )
    return line_items

def make_metadata(priced: PricedCart) -> Dict[str, str]:
    """
    Métadonnées Stripe (valeurs str uniquement) reliant le paiement au panier Medusa.
    medusa_cart_id est la seule clé indispensable au réconciliateur.
    """
    fulfillment = priced.fulfillment
    meta = {
        "medusa_cart_id": priced.cart_id,
        "medusa_shipping_method_id": fulfillment.method_id if fulfillment else "",
        "medusa_shipping_option_id": fulfillment.option_id if fulfillment else "",
        "carrier": fulfillment.carrier if fulfillment else "",
        "shipping_provider": fulfillment.provider_id if fulfillment else "",
        "customer_email": priced.email or "",
        "expected_total_minor_units": str(priced.total_minor_units),
    }
    # Stripe refuse les valeurs > 500 caractères
    return {k: str(v)[:500] for k, v in meta.items()}
