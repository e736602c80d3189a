import logging

import requests
from django.conf import settings
from django.dispatch import receiver

from users.models import Notification

from .events import profile_changed, transaction_changed

logger = logging.getLogger(__name__)


def forward_event(event, payload):
    """POST a change event to the realtime webhook, if one is configured.

    Delivery is best effort: failures are logged and dropped.
    """
    url = getattr(settings, 'REALTIME_WEBHOOK_URL', '')
    if not url:
        return False

    try:
        response = requests.post(
            url,
            json={'event': event, 'payload': payload},
            timeout=getattr(settings, 'REALTIME_WEBHOOK_TIMEOUT', 3),
        )
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning("Could not deliver %s event: %s", event, e)
        return False
    return True


@receiver(profile_changed)
def forward_profile_change(sender, user_id, fields, **kwargs):
    forward_event('profile_changed', {'user_id': user_id, 'fields': fields})


@receiver(transaction_changed)
def forward_transaction_change(sender, transaction, created, **kwargs):
    forward_event('transaction_changed', {
        'id': transaction.pk,
        'user_id': transaction.user_id,
        'transaction_type': transaction.transaction_type,
        'amount': str(transaction.amount),
        'status': transaction.status,
        'created': created,
    })


@receiver(transaction_changed)
def notify_request_outcome(sender, transaction, created, **kwargs):
    """Tell the user when an admin approves or rejects their request"""
    if created or transaction.transaction_type not in ('deposit', 'withdrawal'):
        return

    kind = transaction.get_transaction_type_display().lower()
    if transaction.status == 'completed':
        Notification.objects.create(
            user_id=transaction.user_id,
            title=f'{kind.capitalize()} approved',
            message=f"Your {kind} of {transaction.amount} has been approved.",
            notification_type='success',
        )
    elif transaction.status == 'failed':
        Notification.objects.create(
            user_id=transaction.user_id,
            title=f'{kind.capitalize()} rejected',
            message=f"Your {kind} of {transaction.amount} was rejected.",
            notification_type='error',
        )
