"""
Celery Tasks
Background work that follows a committed order.
"""

import asyncio
import logging
import time
from datetime import datetime

from order_engine.celery_worker import celery_app
from order_engine.services.notifications import get_notification_service

logger = logging.getLogger(__name__)


async def _send_notifications(order_data: dict) -> dict:
    service = get_notification_service()
    admin = await service.send_order_notification_to_admin(order_data)
    customer = await service.send_order_confirmation(order_data)
    return {
        'success': admin.success and customer.success,
        'provider': service.provider_name,
        'admin': admin.success,
        'customer': customer.success,
    }


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def notify_new_order(self, order_data: dict) -> dict:
    """
    Alert the restaurant and confirm to the customer.

    Runs in the worker after the order is committed, so a failure here
    never affects the order itself.

    Args:
        order_data: Order serialized like OrderResponse (JSON mode)

    Returns:
        dict: Per-recipient delivery result
    """
    task_id = self.request.id
    number = order_data.get('no', 'unknown')

    logger.info(f"Task {task_id}: notifying order {number}")
    start_time = time.time()

    try:
        result = asyncio.run(_send_notifications(order_data))
    except Exception as e:
        elapsed = round(time.time() - start_time, 3)
        logger.error(f"Task {task_id}: order {number} error after {elapsed}s - {e}")
        # Celery will auto-retry based on configuration
        raise

    elapsed = round(time.time() - start_time, 3)
    result['task_id'] = task_id
    result['processing_time_seconds'] = elapsed

    if result['success']:
        logger.info(f"Task {task_id}: order {number} notified in {elapsed}s")
    else:
        logger.warning(f"Task {task_id}: order {number} partially notified {result}")

    return result


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }
