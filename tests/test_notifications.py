from order_engine.services.notifications import (
    MockNotificationService,
    get_notification_service,
    order_summary,
    reset_notification_service,
)
from order_engine.tasks import notify_new_order

ORDER = {
    "id": 1,
    "no": "ORD-20251021-0427",
    "delivery_mode": "delivery",
    "delivery_address": "12 Quai du Port",
    "delivery_zip": "13002",
    "payment_mode": "card",
    "client_first_name": "Jean",
    "client_last_name": "Dupont",
    "client_phone": "0612345678",
    "client_email": "jean.dupont@email.com",
    "discount_amount": "3.50",
    "total": "31.50",
    "items": [{"product_name": "Bouillabaisse", "quantity": 1, "total": "30.00"}],
}


def test_order_summary():
    summary = order_summary(ORDER)

    assert "1 x Bouillabaisse (30.00€)" in summary
    assert "Livraison : 12 Quai du Port 13002" in summary
    assert "Remise : -3.50€" in summary
    assert summary.endswith("Total : 31.50€")


def test_pickup_summary_has_no_discount_line():
    summary = order_summary({**ORDER, "delivery_mode": "pickup", "discount_amount": "0.00"})

    assert "Retrait au restaurant" in summary
    assert "Remise" not in summary


async def test_confirmation_goes_by_sms_and_email():
    service = MockNotificationService()

    result = await service.send_order_confirmation(ORDER)

    assert result.success
    assert [m["channel"] for m in service.sent] == ["sms", "email"]
    assert service.sent[0]["to"] == "0612345678"


def test_notify_task_runs_eagerly():
    reset_notification_service()
    service = get_notification_service()
    assert isinstance(service, MockNotificationService)

    result = notify_new_order.apply(args=(ORDER,)).get()

    assert result["success"] is True
    assert result["provider"] == "mock"
    # admin e-mail, customer SMS, customer e-mail
    assert len(service.sent) == 3
