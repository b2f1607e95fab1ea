"""
ASGI entrypoint pour le déploiement (ex: gunicorn -k uvicorn.workers.UvicornWorker storefront.asgi:app).
Routes, middlewares et handlers sont assemblés par storefront.app_setup.factory.
"""
from storefront.app import app

__all__ = ["app"]
