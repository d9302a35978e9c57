"""
Notification Service Abstract Base Class

Defines interface for sending the e-mails and SMS that follow a new
order: an alert to the restaurant and a confirmation to the customer.
Supports both Mock (development) and Real (production) implementations.

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from order_engine.core.config import get_settings


@dataclass
class NotificationResult:
    """Result from sending a notification."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


def order_summary(order_data: dict[str, Any]) -> str:
    """Plain-text recap of a serialized order (see OrderResponse)."""
    lines = [
        f"{item['quantity']} x {item['product_name']} ({item['total']}€)"
        for item in order_data.get("items", [])
    ]
    if order_data.get("delivery_mode") == "delivery":
        where = f"Livraison : {order_data.get('delivery_address')} {order_data.get('delivery_zip') or ''}".strip()
    else:
        where = "Retrait au restaurant"
    lines.append(where)
    if order_data.get("discount_amount") not in (None, "0.00"):
        lines.append(f"Remise : -{order_data['discount_amount']}€")
    lines.append(f"Total : {order_data.get('total')}€")
    return "\n".join(lines)


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_sms(
        self,
        to_phone: str,
        message: str,
    ) -> NotificationResult:
        """Send an SMS message."""
        pass

    @abstractmethod
    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        """Send an email."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass

    async def send_order_notification_to_admin(self, order_data: dict[str, Any]) -> NotificationResult:
        """Tell the restaurant a new order arrived."""
        settings = get_settings()
        summary = order_summary(order_data)
        body = (
            f"Nouvelle commande {order_data['no']}\n"
            f"Client : {order_data['client_first_name']} {order_data['client_last_name']} "
            f"({order_data['client_phone']})\n"
            f"Paiement : {order_data['payment_mode']}\n\n{summary}"
        )
        return await self.send_email(
            to_email=settings.admin_email,
            subject=f"Nouvelle commande {order_data['no']}",
            body_html=f"<pre>{body}</pre>",
            body_text=body,
        )

    async def send_order_confirmation(self, order_data: dict[str, Any]) -> NotificationResult:
        """Confirm the order to the customer by SMS, and by e-mail when known."""
        settings = get_settings()
        message = (
            f"Bonjour {order_data['client_first_name']}, votre commande "
            f"{order_data['no']} est enregistrée.\n"
            f"{order_summary(order_data)}\n"
            f"Merci d'avoir commandé chez {settings.restaurant_name} !"
        )

        sms_result = await self.send_sms(order_data["client_phone"], message)

        email_result = None
        if order_data.get("client_email"):
            email_result = await self.send_email(
                to_email=order_data["client_email"],
                subject=f"Confirmation de commande {order_data['no']} - {settings.restaurant_name}",
                body_html=f"<h1>Commande confirmée</h1><pre>{message}</pre>",
                body_text=message,
            )

        return NotificationResult(
            success=sms_result.success or bool(email_result and email_result.success),
            message_id=sms_result.message_id,
            provider=self.provider_name,
        )
