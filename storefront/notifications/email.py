"""
Notifications e-mail via l'API HTTP Resend.
Best-effort: un échec d'envoi est journalisé et ne fait jamais échouer l'appelant.
"""
import html
import logging
from typing import Iterable, List, Optional, Union

import httpx

from storefront import config

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"

# module storefront.notifications.email
def send_email(to: Union[str, List[str]], subject: str, html_body: str, reply_to: Optional[str] = None) -> bool:
    """
    Envoie un e-mail transactionnel.
    - Retourne True si Resend a accepté le message, False sinon (clé absente, erreur réseau, 4xx/5xx).
    """
    recipients = [to] if isinstance(to, str) else list(to or [])
    recipients = [r for r in recipients if r]
    if not config.RESEND_API_KEY or not recipients:
        logger.warning("notifications.send_email non envoyé (RESEND_API_KEY ou destinataire manquant): %s", subject)
        return False

    payload = {"from": config.RESEND_FROM, "to": recipients, "subject": subject, "html": html_body}
    if reply_to:
        payload["reply_to"] = reply_to
    headers = {"Authorization": f"Bearer {config.RESEND_API_KEY}"}
    try:
        resp = httpx.post(RESEND_API_URL, json=payload, headers=headers, timeout=config.HTTP_TIMEOUT_SECONDS)
    except httpx.HTTPError as e:
        logger.warning("notifications.send_email erreur réseau: %s", e)
        return False
    if resp.status_code >= 400:
        logger.warning("notifications.send_email refusé status=%s body=%s", resp.status_code, resp.text[:300])
        return False
    return True

def render_rows(rows: Iterable[tuple]) -> str:
    """Table HTML simple (label, valeur) pour les récapitulatifs de formulaires."""
    cells = "".join(
        f"<tr><td><strong>{html.escape(str(label))}</strong></td><td>{html.escape(str(value))}</td></tr>"
        for label, value in rows
        if value not in (None, "", [])
    )
    return f"<table>{cells}</table>"

def send_operator_alert(subject: str, lines: Iterable[str]) -> bool:
    """
    Alerte opérateur (incohérence de montant, commande à réconcilier manuellement).
    Toujours journalisée en CRITICAL, puis envoyée à ALERT_EMAIL_TO si configuré.
    """
    lines = [str(line) for line in lines]
    logger.critical("ALERTE %s | %s", subject, " | ".join(lines))
    if not config.ALERT_EMAIL_TO:
        return False
    body = "<br>".join(html.escape(line) for line in lines)
    return send_email(config.ALERT_EMAIL_TO, f"[ALERTE] {subject}", f"<p>{body}</p>")
