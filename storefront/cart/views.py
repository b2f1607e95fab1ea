from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from storefront.cart import cart as cart_logic
from storefront.pricing import service as pricing
from storefront.utils.rate_limit import optional_rate_limit

router = APIRouter(prefix="/api/v1/cart", tags=["Cart API"])


class SyncCartRequest(cart_logic.ClientCart):
    cart_id: Optional[str] = Field(default=None, alias="cartId")
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ShippingMethodRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    option_id: str = Field(alias="optionId", min_length=1)


class AddressRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    shipping_address: cart_logic.ShippingAddress = Field(alias="shippingAddress")
    billing_address: Optional[cart_logic.ShippingAddress] = Field(default=None, alias="billingAddress")
    email: Optional[EmailStr] = None


# module storefront.cart.views
@router.post("", dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
async def sync_cart(req: SyncCartRequest):
    """
    Synchronise le cache client vers Medusa.
    - Entrée JSON: {"cartId"?: "...", "items": [{"id": "<variant_id>", "quantity": 2, "price"?: ...}]}
    - Les prix envoyés sont ignorés; la réponse contient les prix Medusa.
    """
    priced = await run_in_threadpool(cart_logic.sync_cart, req, req.cart_id)
    return {"cart": priced.to_dict(), "authoritative": True}


@router.get("/{cart_id}")
async def get_cart(cart_id: str):
    """Vue tarifée autoritative (relue à chaque appel)."""
    priced = await run_in_threadpool(pricing.get_cart_total, cart_id)
    return {"cart": priced.to_dict(), "authoritative": True}


@router.get("/{cart_id}/shipping-options")
async def list_shipping_options(cart_id: str):
    options = await run_in_threadpool(cart_logic.shipping_options, cart_id)
    return {"shipping_options": options}


@router.post("/{cart_id}/shipping-method")
async def add_shipping_method(cart_id: str, req: ShippingMethodRequest):
    """Attache une option de livraison (transporteur autorisé); le montant est calculé par Medusa."""
    priced = await run_in_threadpool(cart_logic.select_shipping_method, cart_id, req.option_id)
    return {"cart": priced.to_dict(), "authoritative": True}


@router.post("/{cart_id}/address")
async def update_address(cart_id: str, req: AddressRequest):
    priced = await run_in_threadpool(
        cart_logic.update_address, cart_id, req.shipping_address, req.billing_address, req.email
    )
    return {"cart": priced.to_dict(), "authoritative": True}
