"""
Pipeline commun des demandes de devis / leads:
validation (schéma) -> enregistrement -> notification best-effort -> statut 'sent'.
L'enregistrement est la frontière de durabilité: s'il échoue la requête échoue,
un échec d'envoi d'e-mail ne fait jamais échouer la requête.
"""
from typing import Any, Dict, List, Optional, Tuple
import logging

from pydantic import BaseModel

from storefront import config
from storefront.errors import PersistenceError
from storefront.notifications.email import render_rows, send_email
from storefront.quotes import repository
from storefront.quotes.models import (
    BelakWheelQuoteRequest,
    BuildQuoteRequest,
    JtxWheelQuoteRequest,
    QuoteKind,
    QuoteStatus,
    SalesLead,
    VendorApplication,
)

logger = logging.getLogger(__name__)


def format_usd(value: Optional[float]) -> str:
    try:
        amount = float(value or 0)
    except (TypeError, ValueError):
        amount = 0.0
    return f"${amount:,.2f}" if amount > 0 else "$0.00"


def _vehicle(form: Any) -> str:
    parts = [getattr(form, "vehicle_year", None), getattr(form, "vehicle_make", None), getattr(form, "vehicle_model", None)]
    return " ".join(p for p in parts if p)


def _render_build(form: BuildQuoteRequest) -> Tuple[str, str]:
    rows = [("Name", form.name), ("Email", form.email), ("Phone", form.phone), ("Vehicle", form.vehicle), ("Notes", form.notes)]
    items = [
        (f"{it.name or 'Item'} x{it.qty}", format_usd((it.price or 0) * it.qty))
        for it in form.items
    ]
    items.append(("Subtotal (estimate)", format_usd(form.subtotal)))
    html = f"<h2>New Build Quote Request</h2>{render_rows(rows)}<h3>Items</h3>{render_rows(items)}"
    return f"Build Quote Request - {form.vehicle}", html


def _render_belak(form: BelakWheelQuoteRequest) -> Tuple[str, str]:
    rows = [
        ("Name", form.fullname), ("Email", form.email), ("Phone", form.phone), ("Vehicle", _vehicle(form)),
        ("Series", form.series), ("Style", form.style), ("Size", f"{form.diameter}x{form.width:g}"),
        ("Bolt pattern", form.bolt_pattern), ("Backspacing", form.backspacing), ("Finish", form.finish),
        ("Beadlock", form.beadlock), ("Center cap", form.center_cap), ("Hardware", form.hardware),
        ("Qty front / rear", f"{form.qty_front} / {form.qty_rear}"),
        ("Tires front", form.tire_size_front), ("Tires rear", form.tire_size_rear),
        ("Brake clearance", form.brake_clearance_notes), ("Notes", form.notes),
    ]
    return f"Belak Wheel Quote - {form.series} {form.diameter}x{form.width:g}", f"<h2>Belak Wheel Quote</h2>{render_rows(rows)}"


def _render_jtx(form: JtxWheelQuoteRequest) -> Tuple[str, str]:
    rows = [
        ("Name", form.fullname), ("Email", form.email), ("Phone", form.phone), ("Vehicle", _vehicle(form)),
        ("Series", form.series), ("Style", form.style), ("Size", f"{form.diameter}x{form.width:g}"),
        ("Bolt pattern", form.bolt_pattern), ("Offset", form.offset), ("Finish", form.finish),
        ("Color", form.color), ("Qty", form.qty), ("Notes", form.notes),
    ]
    return f"JTX Wheel Quote - {form.series} {form.style}", f"<h2>JTX Wheel Quote</h2>{render_rows(rows)}"


def _render_lead(form: SalesLead) -> Tuple[str, str]:
    rows = [("Name", form.name), ("Email", form.email), ("Phone", form.phone), ("Message", form.message)]
    return f"New Sales Lead from {form.name}", f"<h2>New Sales Lead</h2>{render_rows(rows)}"


def _render_vendor(form: VendorApplication) -> Tuple[str, str]:
    address = form.business_address or {}
    rows = [
        ("Business", form.business_name), ("Contact", form.contact_person), ("Email", form.email),
        ("Phone", form.phone), ("Type", form.business_type), ("Website", form.website),
        ("Address", ", ".join(str(v) for v in address.values() if v)),
        ("Tax ID", form.tax_id), ("Resale certificate", form.resale_certificate_id), ("Message", form.message),
    ]
    return f"Wholesale Application - {form.business_name}", f"<h2>Wholesale Application</h2>{render_rows(rows)}"


_RENDERERS = {
    QuoteKind.BUILD: _render_build,
    QuoteKind.WHEEL_BELAK: _render_belak,
    QuoteKind.WHEEL_JTX: _render_jtx,
    QuoteKind.SALES_LEAD: _render_lead,
    QuoteKind.VENDOR_APPLICATION: _render_vendor,
}


def _recipients(kind: QuoteKind, email: str) -> List[str]:
    recipients = [config.QUOTE_EMAIL_TO]
    # copie client pour les devis de build
    if kind is QuoteKind.BUILD:
        recipients.append(email)
    return [r for r in recipients if r]


def _persist(kind: QuoteKind, form: BaseModel) -> Tuple[str, Dict[str, Any]]:
    payload = form.model_dump(mode="json", exclude_none=True)
    if kind is QuoteKind.VENDOR_APPLICATION:
        return repository.VENDORS_TABLE, repository.insert_vendor_application(form.business_name, form.email, payload)
    contact = getattr(form, "fullname", None) or getattr(form, "name", "")
    return repository.QUOTES_TABLE, repository.insert_quote_request(kind.value, contact, form.email, payload)


# module storefront.quotes.service
def submit(kind: QuoteKind, form: BaseModel) -> Dict[str, Any]:
    """
    Enregistre puis notifie.
    - PersistenceError si l'enregistrement échoue (rien n'est envoyé).
    - Retour: {"ok": True, "id", "status", "notified"}
    """
    table, record = _persist(kind, form)
    record_id = record.get("id")
    logger.info("quotes.submit kind=%s id=%s", kind.value, record_id)

    notified = False
    try:
        subject, html_body = _RENDERERS[kind](form)
        notified = send_email(_recipients(kind, form.email), subject, html_body, reply_to=form.email)
    except Exception:
        logger.exception("quotes.submit notification échouée kind=%s id=%s", kind.value, record_id)

    status = QuoteStatus.NEW
    if notified and record_id:
        try:
            repository.update_status(table, record_id, QuoteStatus.SENT.value)
            status = QuoteStatus.SENT
        except PersistenceError as e:
            logger.warning("quotes.submit statut 'sent' non enregistré id=%s: %s", record_id, e.message)
    return {"ok": True, "id": record_id, "status": status.value, "notified": notified}


def submit_sales_lead(form: SalesLead) -> Dict[str, Any]:
    """Lead commercial; le piège anti-spam (website rempli) est acquitté sans rien enregistrer."""
    if form.website:
        logger.info("quotes.sales_lead piège anti-spam déclenché, ignoré")
        return {"ok": True, "id": None, "status": QuoteStatus.NEW.value, "notified": False}
    return submit(QuoteKind.SALES_LEAD, form)


def set_status(record_id: str, status: QuoteStatus, table: str = repository.QUOTES_TABLE) -> Optional[Dict[str, Any]]:
    """Changement de statut depuis le tableau de bord (contacted, quoted, won, lost...)."""
    return repository.update_status(table, record_id, status.value)
