# storefront.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

"""
Configuration centrale du backend boutique.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Stripe, Medusa, Supabase, Resend)
- Expose la politique checkout (transporteurs autorisés, timeouts, retries)
- Les credentials manquants ne font pas échouer l'import: chaque handler
  vérifie ce dont il a besoin (require_stripe, require_medusa, ...)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _int_env(name: str, default: int) -> int:
    try:
        return int(_clean_env(os.getenv(name) or "") or default)
    except ValueError:
        return default

def _float_env(name: str, default: float) -> float:
    try:
        return float(_clean_env(os.getenv(name) or "") or default)
    except ValueError:
        return default

def _list_env(name: str, default: str) -> list:
    return [v.strip().lower() for v in (os.getenv(name) or default).split(",") if v.strip()]

# Stripe: clé secrète et secret de signature des webhooks
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")

# Medusa (backend commerce, source de vérité des prix)
MEDUSA_BACKEND_URL = _clean_env(os.getenv("MEDUSA_BACKEND_URL") or "").rstrip("/")
MEDUSA_PUBLISHABLE_KEY = _clean_env(os.getenv("MEDUSA_PUBLISHABLE_KEY") or "")
MEDUSA_REGION_ID = _clean_env(os.getenv("MEDUSA_REGION_ID") or "")
# 1 si Medusa renvoie déjà des unités mineures (cents), 100 s'il renvoie des unités majeures
COMMERCE_AMOUNT_SCALE = _int_env("COMMERCE_AMOUNT_SCALE", 1)

# Supabase: store de contenu (miroir des commandes, demandes de devis)
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Politique checkout
ALLOWED_CARRIERS = _list_env("ALLOWED_CARRIERS", "ups,usps")
DEFAULT_CURRENCY = _clean_env(os.getenv("DEFAULT_CURRENCY") or "usd").lower()

# Appels sortants: timeout borné + retry exponentiel plafonné
HTTP_TIMEOUT_SECONDS = _float_env("HTTP_TIMEOUT_SECONDS", 10.0)
RETRY_ATTEMPTS = _int_env("RETRY_ATTEMPTS", 3)
RETRY_BASE_DELAY = _float_env("RETRY_BASE_DELAY", 0.2)
RETRY_MAX_DELAY = _float_env("RETRY_MAX_DELAY", 2.0)

# Durée après laquelle un claim 'processing' est considéré abandonné
CLAIM_LEASE_SECONDS = _int_env("CLAIM_LEASE_SECONDS", 600)

# Notifications (Resend)
RESEND_API_KEY = _clean_env(os.getenv("RESEND_API_KEY") or "")
RESEND_FROM = _clean_env(os.getenv("RESEND_FROM") or "FAS Motorsports <no-reply@fasmotorsports.com>")
QUOTE_EMAIL_TO = _clean_env(os.getenv("QUOTE_EMAIL_TO") or "sales@fasmotorsports.com")
ALERT_EMAIL_TO = _clean_env(os.getenv("ALERT_EMAIL_TO") or "")

# CORS / hôtes
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]
# En-tête HSTS (déploiement derrière HTTPS uniquement)
FORCE_HTTPS = (os.getenv("FORCE_HTTPS", "false").lower() == "true")

# Pages de succès/annulation du checkout
BASE_URL = _clean_env(os.getenv("BASE_URL") or "")
CHECKOUT_SUCCESS_PATH = os.getenv("CHECKOUT_SUCCESS_PATH", "/checkout/success")
CHECKOUT_CANCEL_PATH = os.getenv("CHECKOUT_CANCEL_PATH", "/checkout/cancel")

# Tableau de bord devis: clé Bearer requise pour changer un statut (désactivé si vide)
QUOTES_ADMIN_API_KEY = _clean_env(os.getenv("QUOTES_ADMIN_API_KEY") or "")
