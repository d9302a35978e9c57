"""
Order Engine Exceptions

Every failure the order pipeline can surface to a caller. All of them
are local and synchronous; none is retried internally. The HTTP layer
maps them to JSON error bodies using ``code`` and ``http_status``.

Author: Khalil Bannouri
Version: 1.0.0
"""

from decimal import Decimal
from typing import Optional


class OrderEngineError(Exception):
    """Base class for order pipeline failures."""

    code: str = "order_error"
    http_status: int = 400
    default_message: str = "Erreur lors du traitement de la commande"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert to the API error body."""
        return {
            "success": False,
            "error": self.code,
            "detail": self.message,
        }


class EmptyCartError(OrderEngineError):
    code = "empty_cart"
    default_message = "Le panier est vide"


class MissingAddressError(OrderEngineError):
    code = "missing_address"
    default_message = "L'adresse de livraison est requise"


class InvalidAddressError(OrderEngineError):
    """Address outside the serviceable area (or not found)."""

    code = "invalid_address"
    default_message = "Livraison non disponible pour cette adresse"

    def __init__(self, message: Optional[str] = None, distance: Optional[float] = None):
        super().__init__(message)
        self.distance = distance

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["distance"] = self.distance
        return body


class InvalidPhoneError(OrderEngineError):
    code = "invalid_phone"
    default_message = (
        "Numéro de téléphone invalide "
        "(formats acceptés : 06 12 34 56 78 ou +33 6 12 34 56 78)"
    )


class CouponInvalidError(OrderEngineError):
    code = "coupon_invalid"
    default_message = "Code promo invalide"


class OrderNotFoundError(OrderEngineError):
    code = "order_not_found"
    http_status = 404
    default_message = "Commande introuvable"

    def __init__(self, order_id: Optional[int] = None, message: Optional[str] = None):
        if message is None and order_id is not None:
            message = f"Commande introuvable: {order_id}"
        super().__init__(message)
        self.order_id = order_id


class InvalidStatusTransitionError(OrderEngineError):
    code = "invalid_status_transition"
    http_status = 409
    default_message = "Changement de statut non autorisé"


class PersistenceError(OrderEngineError):
    """The atomic write failed and was rolled back."""

    code = "persistence_failure"
    http_status = 500
    default_message = "Erreur lors de l'enregistrement de la commande"


def format_euros(amount: Decimal) -> str:
    """Format an amount the way customer-facing messages show it."""
    return f"{amount:.2f}€"
