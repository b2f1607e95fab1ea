"""
Taxonomie des erreurs du pipeline checkout.

Chaque erreur porte un code stable et un statut HTTP. Le message public
reste générique: le détail (montants, ids, réponses des backends) va dans
les logs opérateur, jamais dans la réponse envoyée à Stripe ou au client.
"""
from typing import Optional


class CheckoutError(Exception):
    """Base de toutes les erreurs métier du checkout."""

    status_code = 500
    code = "checkout_error"
    public_message = "Erreur interne"
    expose_message = False

    def __init__(self, message: str = "", code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code


class ConfigurationError(CheckoutError):
    """Credential ou URL manquant: fatal pour le handler concerné."""
    status_code = 503
    code = "configuration_error"
    public_message = "Service non configuré"


class CartValidationError(CheckoutError):
    """Panier invalide: rejeté avant toute mutation externe."""
    status_code = 400
    code = "invalid_cart"
    public_message = "Panier invalide"
    # le message est destiné à l'UI (correction possible par le client)
    expose_message = True


class CartNotFoundError(CartValidationError):
    status_code = 404
    code = "cart_not_found"
    public_message = "Panier introuvable"


class CarrierNotAllowedError(CartValidationError):
    code = "carrier_not_allowed"
    public_message = "Transporteur non autorisé"


class SignatureError(CheckoutError):
    """Webhook non vérifiable: aucun traitement."""
    status_code = 400
    code = "invalid_signature"
    public_message = "Invalid webhook signature"


class MissingMetadataError(CheckoutError):
    """Événement de paiement sans medusa_cart_id: session créée hors builder."""
    status_code = 400
    code = "missing_metadata"
    public_message = "Invalid event payload"


class ConsistencyError(CheckoutError):
    """Montant capturé différent du total live du panier: jamais complété."""
    status_code = 409
    code = "amount_mismatch"
    public_message = "Order could not be finalized"

    def __init__(self, message: str, cart_id: str = "", expected: int = 0, captured: int = 0):
        super().__init__(message)
        self.cart_id = cart_id
        self.expected = expected
        self.captured = captured


class CommerceUnavailableError(CheckoutError):
    """Medusa injoignable, timeout ou 5xx: transitoire, rejouable depuis l'étape 1."""
    status_code = 503
    code = "commerce_unavailable"
    public_message = "Service temporairement indisponible"


class CommerceRequestError(CheckoutError):
    """Medusa a refusé la requête (4xx non transitoire)."""
    status_code = 502
    code = "commerce_rejected"
    public_message = "Requête refusée par le backend commerce"

    def __init__(self, message: str, upstream_status: int = 0):
        super().__init__(message)
        self.upstream_status = upstream_status


class PaymentProcessorError(CheckoutError):
    status_code = 502
    code = "payment_processor_error"
    public_message = "Erreur du prestataire de paiement"


class PersistenceError(CheckoutError):
    """Écriture impossible dans le store de contenu."""
    status_code = 503
    code = "persistence_error"
    public_message = "Enregistrement impossible, réessayez plus tard"
