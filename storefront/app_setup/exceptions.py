"""
Gestionnaires d'exceptions.
- CheckoutError -> JSON {"detail", "code"} avec le statut porté par l'erreur.
  Le détail public reste générique sauf pour les erreurs de panier corrigeables
  par le client; le message complet va dans les logs.
- HTTPException -> JSON FastAPI standard.
"""
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from storefront.errors import CheckoutError

logger = logging.getLogger(__name__)

def error_body(exc: CheckoutError) -> dict:
    detail = exc.message if exc.expose_message else exc.public_message
    return {"detail": detail, "code": exc.code}

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CheckoutError)
    async def checkout_error_handler(request: Request, exc: CheckoutError):
        if exc.status_code >= 500:
            logger.error("%s %s -> %s %s: %s", request.method, request.url.path, exc.status_code, exc.code, exc.message)
        else:
            logger.info("%s %s -> %s %s: %s", request.method, request.url.path, exc.status_code, exc.code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=error_body(exc))

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))
