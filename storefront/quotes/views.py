import secrets

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from storefront import config
from storefront.quotes import service
from storefront.quotes.models import (
    BelakWheelQuoteRequest,
    BuildQuoteRequest,
    JtxWheelQuoteRequest,
    QuoteKind,
    QuoteStatusUpdate,
    SalesLead,
    VendorApplication,
)
from storefront.utils.rate_limit import optional_rate_limit

router = APIRouter(prefix="/api/v1/quotes", tags=["Quotes API"])
vendors_router = APIRouter(prefix="/api/v1/vendors", tags=["Vendors API"])

_intake_limit = [Depends(optional_rate_limit(times=5, seconds=60))]


def require_quotes_admin(request: Request) -> None:
    """Bearer QUOTES_ADMIN_API_KEY; sans clé configurée, l'endpoint est fermé."""
    if not config.QUOTES_ADMIN_API_KEY:
        raise HTTPException(status_code=403, detail="Quote administration disabled")
    auth = request.headers.get("authorization") or ""
    token = auth[7:] if auth.startswith("Bearer ") else ""
    if not token or not secrets.compare_digest(token, config.QUOTES_ADMIN_API_KEY):
        raise HTTPException(status_code=401, detail="Unauthorized")


# module storefront.quotes.views
@router.post("/build", dependencies=_intake_limit)
async def build_quote(req: BuildQuoteRequest):
    """Devis de build (liste de pièces + véhicule). 200 même si l'e-mail échoue, 503 si non enregistré."""
    return await run_in_threadpool(service.submit, QuoteKind.BUILD, req)


@router.post("/wheels/belak", dependencies=_intake_limit)
async def belak_wheel_quote(req: BelakWheelQuoteRequest):
    return await run_in_threadpool(service.submit, QuoteKind.WHEEL_BELAK, req)


@router.post("/wheels/jtx", dependencies=_intake_limit)
async def jtx_wheel_quote(req: JtxWheelQuoteRequest):
    return await run_in_threadpool(service.submit, QuoteKind.WHEEL_JTX, req)


@router.post("/sales-lead", dependencies=_intake_limit)
async def sales_lead(req: SalesLead):
    return await run_in_threadpool(service.submit_sales_lead, req)


@router.patch("/{quote_id}/status", dependencies=[Depends(require_quotes_admin)])
async def update_quote_status(quote_id: str, req: QuoteStatusUpdate):
    """Suivi commercial: new -> sent -> contacted -> quoted -> won/lost."""
    row = await run_in_threadpool(service.set_status, quote_id, req.status)
    if not row:
        raise HTTPException(status_code=404, detail="Quote not found")
    return {"ok": True, "id": row.get("id"), "status": row.get("status")}


@vendors_router.post("/apply", dependencies=_intake_limit)
async def vendor_apply(req: VendorApplication):
    """Candidature grossiste (wholesale): enregistrée en statut 'new' puis notifiée."""
    return await run_in_threadpool(service.submit, QuoteKind.VENDOR_APPLICATION, req)
