from fastapi import APIRouter
from fastapi.concurrency import run_in_threadpool

from storefront.orders import reconciler

router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])

@router.get("/by-payment/{payment_reference}")
async def order_by_payment(payment_reference: str):
    """
    Page de confirmation: la commande issue d'un PaymentIntent est-elle enregistrée ?
    Retour: {"status": "confirmed"|"pending", "order_id": ...}
    """
    return await run_in_threadpool(reconciler.get_order_status, payment_reference.strip())
