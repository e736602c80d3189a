"""
Financial operations on the ledger and the cached profile.

Every operation that moves money runs inside ``transaction.atomic()`` and
locks the user's profile row first, so mutations of one user's balance are
serialized while different users never wait on each other. None of these
functions retry: a failed call either changed nothing or raised.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from referrals.services import credit_referral_commission
from users.models import Profile

from .events import emit_profile_changed, emit_transaction_changed
from .exceptions import InsufficientFundsError, InvalidStateError, ValidationError
from .models import AdminLog, Investment, Transaction
from .utils.db import storage_errors
from .utils.money import ZERO, percentage_of, round_money, to_decimal

logger = logging.getLogger(__name__)

REQUEST_TYPES = ('deposit', 'withdrawal')
FINANCIAL_FIELDS = ('balance', 'profit', 'bonus', 'ref_bonus')


def log_admin_action(admin, action, **details):
    return AdminLog.objects.create(
        admin=admin if admin is not None and admin.pk else None,
        action=action,
        details=details,
    )


def clean_amount(amount, field='amount'):
    try:
        amount = to_decimal(amount)
    except ValueError:
        raise ValidationError(f"{field.capitalize()} must be a number")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"{field.capitalize()} must be greater than zero")
    return round_money(amount)


def _lock_profile(user_id):
    profile, _ = Profile.objects.select_for_update().get_or_create(user_id=user_id)
    return profile


def _transaction_id(transaction_or_id):
    return getattr(transaction_or_id, 'pk', transaction_or_id)


def _sync_instance(original, entry):
    if isinstance(original, Transaction):
        original.status = entry.status
        original.processed_at = entry.processed_at


def subscribe(user, plan, amount, as_of=None):
    """Commit part of the user's balance into an investment plan"""
    if plan is None:
        raise ValidationError('Plan is required')
    if not plan.is_active:
        raise ValidationError(f"Plan '{plan.name}' is not open for investment")

    amount = clean_amount(amount)
    if amount < plan.min_deposit:
        raise ValidationError(f"Minimum deposit for {plan.name} is {plan.min_deposit}")
    if amount > plan.max_deposit:
        raise ValidationError(f"Maximum deposit for {plan.name} is {plan.max_deposit}")

    start = as_of or timezone.now()

    with storage_errors('investment subscription'):
        with transaction.atomic():
            profile = _lock_profile(user.pk)
            if profile.balance < amount:
                raise InsufficientFundsError(
                    f"You need {amount} but only have {profile.balance} in your account"
                )

            investment = Investment.objects.create(
                user=user,
                plan=plan,
                amount=amount,
                status='active',
                start_date=start,
                end_date=start + timedelta(days=plan.duration_days),
            )
            entries = [
                Transaction.objects.create(
                    user=user,
                    investment=investment,
                    transaction_type='investment',
                    amount=amount,
                    status='completed',
                    processed_at=start,
                    description=f'Investment in {plan.name}',
                )
            ]

            changed = ['balance']
            bonus = percentage_of(amount, plan.bonus_pct)
            if bonus > 0:
                profile.bonus += bonus
                changed.append('bonus')
                entries.append(
                    Transaction.objects.create(
                        user=user,
                        investment=investment,
                        transaction_type='bonus',
                        amount=bonus,
                        status='completed',
                        processed_at=start,
                        description=f'{plan.bonus_pct}% bonus on {plan.name} investment',
                    )
                )

            # Debit last so a failure above never leaves the balance short.
            profile.balance -= amount
            profile.save(update_fields=changed + ['updated_at'])

            credit_referral_commission(investment)

            emit_profile_changed(user.pk, changed)
            for entry in entries:
                emit_transaction_changed(entry, created=True)

    logger.info("User %s invested %s in plan %s", user.pk, amount, plan.pk)
    return investment


def purchase_subscription(user, strategy):
    """Pay for a trading-strategy subscription out of the balance"""
    strategies = getattr(settings, 'SUBSCRIPTION_STRATEGIES', {})
    if strategy not in strategies:
        raise ValidationError(f"Unknown subscription strategy '{strategy}'")
    price = clean_amount(strategies[strategy], 'price')

    with storage_errors('subscription purchase'):
        with transaction.atomic():
            profile = _lock_profile(user.pk)
            if profile.balance < price:
                raise InsufficientFundsError(
                    f"You need {price} but only have {profile.balance} in your account"
                )
            entry = Transaction.objects.create(
                user=user,
                transaction_type='subscription',
                amount=price,
                status='completed',
                processed_at=timezone.now(),
                description=f'Subscription to {strategy}',
            )
            profile.balance -= price
            profile.save(update_fields=['balance', 'updated_at'])

            emit_profile_changed(user.pk, ['balance'])
            emit_transaction_changed(entry, created=True)

    logger.info("User %s subscribed to %s for %s", user.pk, strategy, price)
    return entry


def submit_request(user, transaction_type, amount, description=''):
    """Record a pending deposit or withdrawal; the balance moves on approval"""
    if transaction_type not in REQUEST_TYPES:
        raise ValidationError(f"Unsupported request type '{transaction_type}'")
    amount = clean_amount(amount)

    if transaction_type == 'withdrawal':
        profile, _ = Profile.objects.get_or_create(user=user)
        if amount > profile.balance:
            raise InsufficientFundsError(
                f"Cannot withdraw {amount}; available balance is {profile.balance}"
            )

    with storage_errors(f'{transaction_type} request'):
        with transaction.atomic():
            entry = Transaction.objects.create(
                user=user,
                transaction_type=transaction_type,
                amount=amount,
                status='pending',
                description=description or f'{transaction_type.capitalize()} request',
            )
            emit_transaction_changed(entry, created=True)

    logger.info("User %s requested %s of %s (transaction %s)", user.pk, transaction_type, amount, entry.pk)
    return entry


def approve_transaction(transaction_or_id, admin):
    """Complete a pending request and apply it to the balance.

    A second call on the same transaction raises InvalidStateError and
    changes nothing.
    """
    tx_id = _transaction_id(transaction_or_id)
    user_id = Transaction.objects.values_list('user_id', flat=True).get(pk=tx_id)

    with storage_errors('transaction approval'):
        with transaction.atomic():
            profile = _lock_profile(user_id)
            entry = Transaction.objects.select_for_update().get(pk=tx_id)
            if not entry.is_pending:
                logger.info("Refused to approve transaction %s: already %s", tx_id, entry.status)
                raise InvalidStateError(f"Transaction {tx_id} is already {entry.status}")

            balance_changed = False
            if entry.transaction_type == 'deposit':
                profile.balance += entry.amount
                balance_changed = True
            elif entry.transaction_type == 'withdrawal':
                if profile.balance < entry.amount:
                    raise InsufficientFundsError(
                        f"Cannot approve withdrawal of {entry.amount}; balance is {profile.balance}"
                    )
                profile.balance -= entry.amount
                balance_changed = True

            entry.transition_to('completed')
            if balance_changed:
                profile.save(update_fields=['balance', 'updated_at'])

            log_admin_action(
                admin,
                'approve_transaction',
                transaction_id=entry.pk,
                type=entry.transaction_type,
                amount=str(entry.amount),
                user_id=user_id,
            )

            if balance_changed:
                emit_profile_changed(user_id, ['balance'])
            emit_transaction_changed(entry, created=False)

    _sync_instance(transaction_or_id, entry)
    logger.info("Transaction %s approved by %s", entry.pk, getattr(admin, 'pk', None))
    return entry


def reject_transaction(transaction_or_id, admin, reason=''):
    """Fail a pending request without touching the balance"""
    tx_id = _transaction_id(transaction_or_id)

    with storage_errors('transaction rejection'):
        with transaction.atomic():
            entry = Transaction.objects.select_for_update().get(pk=tx_id)
            if not entry.is_pending:
                logger.info("Refused to reject transaction %s: already %s", tx_id, entry.status)
                raise InvalidStateError(f"Transaction {tx_id} is already {entry.status}")

            entry.transition_to('failed')
            details = {
                'transaction_id': entry.pk,
                'type': entry.transaction_type,
                'amount': str(entry.amount),
                'user_id': entry.user_id,
            }
            if reason:
                details['reason'] = reason
            log_admin_action(admin, 'reject_transaction', **details)

            emit_transaction_changed(entry, created=False)

    _sync_instance(transaction_or_id, entry)
    logger.info("Transaction %s rejected by %s", entry.pk, getattr(admin, 'pk', None))
    return entry


def ledger_totals(user):
    """Profile fields as implied by the completed ledger entries"""
    sums = dict(
        Transaction.objects
        .filter(user=user, status='completed')
        .values_list('transaction_type')
        .annotate(total=Sum('amount'))
    )

    def total(kind):
        return sums.get(kind) or ZERO

    return {
        'balance': (
            total('deposit') + total('payout')
            - total('withdrawal') - total('investment') - total('subscription')
        ),
        'bonus': total('bonus'),
        'ref_bonus': total('referral'),
    }


def rebuild_profile(user, apply=False, admin=None):
    """Compare the cached profile with the ledger and optionally repair it.

    Returns ``{field: {'cached', 'ledger', 'drift'}}``.
    """
    with storage_errors('profile rebuild'):
        with transaction.atomic():
            profile = _lock_profile(user.pk)
            ledger = ledger_totals(user)

            report = {}
            drifted = []
            for field, expected in ledger.items():
                cached = getattr(profile, field)
                report[field] = {'cached': cached, 'ledger': expected, 'drift': cached - expected}
                if cached != expected:
                    drifted.append(field)

            if apply and drifted:
                for field in drifted:
                    setattr(profile, field, ledger[field])
                profile.save(update_fields=drifted + ['updated_at'])
                log_admin_action(
                    admin,
                    'rebuild_profile',
                    user_id=user.pk,
                    updates={field: str(ledger[field]) for field in drifted},
                )
                emit_profile_changed(user.pk, drifted)

    if drifted:
        logger.warning(
            "Profile %s drifted from the ledger on %s%s",
            user.pk, ', '.join(drifted), ' (repaired)' if apply else '',
        )
    return report


def adjust_financials(user, admin, **updates):
    """Admin override of cached profile figures, recorded in the audit log"""
    unknown = set(updates) - set(FINANCIAL_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
    if not updates:
        raise ValidationError('No financial fields to update')

    cleaned = {}
    for field, value in updates.items():
        try:
            value = round_money(value)
        except ValueError:
            raise ValidationError(f"{field} must be a number")
        if value < 0:
            raise ValidationError(f"{field} cannot be negative")
        cleaned[field] = value

    with storage_errors('financial adjustment'):
        with transaction.atomic():
            profile = _lock_profile(user.pk)
            for field, value in cleaned.items():
                setattr(profile, field, value)
            profile.save(update_fields=list(cleaned) + ['updated_at'])

            log_admin_action(
                admin,
                'update_user_financials',
                user_id=user.pk,
                updates={field: str(value) for field, value in cleaned.items()},
            )
            emit_profile_changed(user.pk, cleaned)

    return profile
