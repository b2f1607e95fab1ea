from urllib.parse import urlparse
from typing import Any, Dict

import httpx

from storefront import config
from storefront.infra.supabase_client import get_service_supabase

CONTENT_TABLES = ("order_mirrors", "payment_event_claims", "quote_requests", "vendor_applications")

def _check_table(client, name: str):
    try:
        res = client.table(name).select("id").limit(1).execute()
        return {"ok": True, "rows": len(res.data or [])}
    except Exception as e:
        return {"ok": False, "error": str(e)}

def health_supabase_info() -> Dict[str, Any]:
    parsed = urlparse(config.SUPABASE_URL) if config.SUPABASE_URL else None
    info: Dict[str, Any] = {
        "hostname": parsed.hostname if parsed else None,
        "configured": bool(config.SUPABASE_URL and config.SUPABASE_SERVICE_KEY),
        "connect_ok": False,
        "error": None,
        "tables": {},
    }
    try:
        client = get_service_supabase()
        for t in CONTENT_TABLES:
            info["tables"][t] = _check_table(client, t)
        info["connect_ok"] = all(t["ok"] for t in info["tables"].values())
    except Exception as e:
        info["error"] = str(e)
    return info

def health_medusa_info() -> Dict[str, Any]:
    """Joignabilité du backend commerce (GET /health Medusa), sans exposer de secret."""
    info: Dict[str, Any] = {
        "configured": bool(config.MEDUSA_BACKEND_URL),
        "publishable_key": bool(config.MEDUSA_PUBLISHABLE_KEY),
        "connect_ok": False,
        "status": None,
        "error": None,
    }
    if not config.MEDUSA_BACKEND_URL:
        return info
    try:
        resp = httpx.get(f"{config.MEDUSA_BACKEND_URL}/health", timeout=config.HTTP_TIMEOUT_SECONDS)
        info["status"] = resp.status_code
        info["connect_ok"] = resp.status_code < 500
    except httpx.HTTPError as e:
        info["error"] = str(e)
    return info

def health_config_info() -> Dict[str, bool]:
    return {
        "stripe_secret_key": bool(config.STRIPE_SECRET_KEY),
        "stripe_webhook_secret": bool(config.STRIPE_WEBHOOK_SECRET),
        "resend_api_key": bool(config.RESEND_API_KEY),
        "alert_email_to": bool(config.ALERT_EMAIL_TO),
    }
