"""
Adaptateur HTTP Medusa: centralise la configuration et les appels au backend commerce.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from storefront import config
from storefront.errors import ConfigurationError, CommerceUnavailableError, CommerceRequestError, CartNotFoundError

logger = logging.getLogger(__name__)

# module storefront.commerce.client
def require_medusa() -> str:
    """
    Retourne l'URL de base Medusa ou lève ConfigurationError.
    """
    if not config.MEDUSA_BACKEND_URL:
        raise ConfigurationError("MEDUSA_BACKEND_URL manquant")
    return config.MEDUSA_BACKEND_URL

def build_headers() -> Dict[str, str]:
    headers = {"accept": "application/json"}
    if config.MEDUSA_PUBLISHABLE_KEY:
        headers["x-publishable-api-key"] = config.MEDUSA_PUBLISHABLE_KEY
    return headers

def read_json_safe(response: httpx.Response) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}

def medusa_request(
    method: str,
    path: str,
    *,
    json: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Appel unique vers l'API store Medusa.
    - Timeout borné (HTTP_TIMEOUT_SECONDS): un backend lent ne bloque pas le handler.
    - Transport/timeout/5xx -> CommerceUnavailableError (transitoire, fail closed).
    - 404 -> CartNotFoundError; autre 4xx -> CommerceRequestError.
    Retour: le corps JSON (dict) de la réponse.
    """
    base_url = require_medusa()
    try:
        with httpx.Client(base_url=base_url, headers=build_headers(), timeout=config.HTTP_TIMEOUT_SECONDS) as client:
            response = client.request(method, path, json=json, params=params)
    except httpx.HTTPError as e:
        logger.warning("commerce.medusa_request transport error %s %s: %s", method, path, e)
        raise CommerceUnavailableError(f"Medusa injoignable ({method} {path}): {e}") from e

    data = read_json_safe(response)
    if response.status_code >= 500:
        logger.warning("commerce.medusa_request %s %s -> %s", method, path, response.status_code)
        raise CommerceUnavailableError(f"Medusa {response.status_code} sur {method} {path}")
    if response.status_code == 404:
        raise CartNotFoundError(data.get("message") or "Panier introuvable")
    if response.status_code >= 400:
        message = data.get("message") or f"Medusa {response.status_code} sur {method} {path}"
        raise CommerceRequestError(message, upstream_status=response.status_code)
    return data
