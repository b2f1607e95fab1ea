from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from storefront.health import service as health_service
from storefront.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root():
    return {"ok": True}

@router.get("/dependencies")
async def health_dependencies(request: Request):
    supabase = await run_in_threadpool(health_service.health_supabase_info)
    medusa = await run_in_threadpool(health_service.health_medusa_info)
    ok = bool(supabase.get("connect_ok") and medusa.get("connect_ok"))
    return JSONResponse(
        status_code=200 if ok else 503,
        content={
            "ok": ok,
            "supabase": supabase,
            "medusa": medusa,
            "config": health_service.health_config_info(),
            "rate_limit": rate_limit_health_info(request),
        },
    )
