import logging

from django.db.models import F, Sum
from django.utils import timezone

from investments.events import emit_profile_changed, emit_transaction_changed
from investments.exceptions import ValidationError
from investments.models import Transaction
from investments.utils.money import ZERO, percentage_of
from users.models import Notification, Profile

from .models import Referral, ReferralCode, ReferralEarning

logger = logging.getLogger(__name__)


def apply_referral_code(user, code):
    """Link ``user`` to the owner of ``code``. A user can be referred only once."""
    code = (code or '').strip().upper()
    if not code:
        raise ValidationError('Referral code is required')

    try:
        referral_code = ReferralCode.objects.select_related('user').get(code=code, is_active=True)
    except ReferralCode.DoesNotExist:
        raise ValidationError('Invalid referral code')

    if referral_code.user_id == user.pk:
        raise ValidationError('You cannot use your own referral code')
    if Referral.objects.filter(referred_user=user).exists():
        raise ValidationError('You have already used a referral code')

    referral = Referral.objects.create(
        referrer=referral_code.user,
        referred_user=user,
        referral_code=referral_code,
    )
    logger.info("User %s referred by %s", user.pk, referral_code.user_id)
    return referral


def credit_referral_commission(investment):
    """Pay the referrer's commission on ``investment``.

    Must run inside the caller's atomic block. Returns the earning, or None
    when the investor was not referred.
    """
    try:
        referral = (
            Referral.objects
            .select_for_update()
            .get(referred_user_id=investment.user_id, status__in=['pending', 'active'])
        )
    except Referral.DoesNotExist:
        return None

    amount = percentage_of(investment.amount, referral.commission_rate)
    if amount <= 0:
        return None

    entry = Transaction.objects.create(
        user_id=referral.referrer_id,
        investment=investment,
        transaction_type='referral',
        amount=amount,
        status='completed',
        processed_at=timezone.now(),
        description=f'{referral.commission_rate}% referral commission',
    )
    earning = ReferralEarning.objects.create(
        referral=referral,
        investment=investment,
        transaction=entry,
        amount=amount,
        commission_rate=referral.commission_rate,
    )

    Profile.objects.get_or_create(user_id=referral.referrer_id)
    Profile.objects.filter(pk=referral.referrer_id).update(
        ref_bonus=F('ref_bonus') + amount,
        updated_at=timezone.now(),
    )

    referral.activate()
    Notification.objects.create(
        user_id=referral.referrer_id,
        title='Referral commission',
        notification_type='success',
        message=f"You earned {amount} from your referral's investment.",
    )

    emit_profile_changed(referral.referrer_id, ['ref_bonus'])
    emit_transaction_changed(entry, created=True)
    logger.info(
        "Credited %s referral commission to user %s for investment %s",
        amount, referral.referrer_id, investment.pk,
    )
    return earning


def referral_stats(user):
    referrals = Referral.objects.filter(referrer=user)
    earnings = ReferralEarning.objects.filter(referral__referrer=user)
    this_month = timezone.now().replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    return {
        'total_referrals': referrals.count(),
        'active_referrals': referrals.filter(status='active').count(),
        'pending_referrals': referrals.filter(status='pending').count(),
        'total_earnings': earnings.aggregate(total=Sum('amount'))['total'] or ZERO,
        'this_month_earnings': (
            earnings.filter(created_at__gte=this_month).aggregate(total=Sum('amount'))['total'] or ZERO
        ),
    }
