"""
Profit accrual engine.

Simulated returns are a pure function of an investment and a point in time:

    profit = amount * daily_return_pct / 100 * days_elapsed

``days_elapsed`` counts whole days since ``start_date`` and never goes below
zero. With ``ACCRUAL_CLAMP_TO_DURATION`` on (the default) it also stops at the
plan duration; turning it off reproduces the legacy behaviour where an active
investment keeps accruing past its end date.

The aggregate over a user's active investments is cached in
``Profile.profit`` by :func:`refresh_profile_profit`, which the periodic
worker calls for every user with open positions.
"""
import logging
import threading
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import DatabaseError, transaction
from django.utils import timezone

from users.models import Profile

from .events import emit_profile_changed, emit_transaction_changed
from .exceptions import DataIntegrityError, InvestmentError
from .models import Investment, Transaction
from .utils.db import retry_on_transient, storage_errors
from .utils.money import ZERO, round_money, to_decimal

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def clamp_enabled():
    return getattr(settings, 'ACCRUAL_CLAMP_TO_DURATION', True)


def days_elapsed(start, as_of):
    """Whole days between ``start`` and ``as_of``, floored and never negative"""
    seconds = (as_of - start).total_seconds()
    if seconds <= 0:
        return 0
    return int(seconds // SECONDS_PER_DAY)


def compute_profit(investment, as_of=None, clamp=None):
    """Simulated profit of one investment at ``as_of``.

    Raises DataIntegrityError when the investment's plan no longer exists.
    """
    plan = investment.plan
    if plan is None:
        raise DataIntegrityError(f"Investment {investment.pk} has no plan")

    as_of = as_of or timezone.now()
    if clamp is None:
        clamp = clamp_enabled()

    days = days_elapsed(investment.start_date, as_of)
    if clamp:
        days = min(days, plan.duration_days)

    profit = to_decimal(investment.amount) * to_decimal(plan.daily_return_pct) / Decimal('100') * days
    return round_money(profit)


def _report_dangling(investment, error):
    logger.warning(
        "Skipping investment %s of user %s during accrual: %s",
        investment.pk, investment.user_id, error,
    )


def aggregate_profit(investments, as_of=None, user=None):
    """Sum of compute_profit over the active investments.

    When ``user`` is given, investments of other users are ignored as well.
    Dangling investments are skipped and logged, never fatal.
    """
    as_of = as_of or timezone.now()
    total = ZERO
    for investment in investments:
        if investment.status != 'active':
            continue
        if user is not None and investment.user_id != user.pk:
            continue
        try:
            total += compute_profit(investment, as_of)
        except DataIntegrityError as e:
            _report_dangling(investment, e)
    return total


def daily_series(investments, window_days=None, as_of=None):
    """Daily profit points for the last ``window_days`` days, oldest first.

    Each point sums the profit every investment had accrued on that day; an
    investment that starts after the day contributes nothing. The window ends
    on ``as_of``'s own day, so today is the last point.
    """
    if window_days is None:
        window_days = getattr(settings, 'ACCRUAL_SERIES_WINDOW_DAYS', 30)
    as_of = as_of or timezone.now()
    investments = list(investments)

    series = []
    for offset in range(window_days - 1, -1, -1):
        day = as_of - timedelta(days=offset)
        day_total = ZERO
        for investment in investments:
            if investment.start_date > day:
                continue
            try:
                day_total += compute_profit(investment, day)
            except DataIntegrityError as e:
                _report_dangling(investment, e)
        series.append({'date': day.date(), 'profit': day_total})
    return series


@retry_on_transient()
def active_investments_for(user):
    return list(
        Investment.objects.filter(user=user, status='active').select_related('plan')
    )


def investment_stats(user, as_of=None, window_days=None):
    """Dashboard figures for the user's active investments"""
    as_of = as_of or timezone.now()
    investments = active_investments_for(user)

    total_invested = sum((inv.amount for inv in investments), ZERO)
    current_profit = aggregate_profit(investments, as_of, user=user)
    if total_invested > 0:
        total_roi = round_money(current_profit / total_invested * 100)
    else:
        total_roi = ZERO

    return {
        'active_investments': len(investments),
        'total_invested': total_invested,
        'current_profit': current_profit,
        'total_roi': total_roi,
        'daily_profit_data': daily_series(investments, window_days, as_of),
    }


def refresh_profile_profit(user, as_of=None):
    """Recompute the user's profit and cache it in ``Profile.profit``.

    The aggregate is computed completely before a single one-column update,
    so a concurrent balance change is never overwritten. Writing the value
    again when nothing moved is a no-op and sends no event.
    """
    as_of = as_of or timezone.now()
    profit = aggregate_profit(active_investments_for(user), as_of, user=user)

    with storage_errors('profit refresh'):
        with transaction.atomic():
            updated = (
                Profile.objects
                .filter(pk=user.pk)
                .exclude(profit=profit)
                .update(profit=profit, updated_at=timezone.now())
            )
            if updated:
                emit_profile_changed(user.pk, ['profit'])

    if updated:
        logger.debug("Profit for user %s refreshed to %s", user.pk, profit)
    return profit


def complete_investment(investment, as_of=None):
    """Close a matured investment and pay principal plus return into the balance"""
    as_of = as_of or timezone.now()

    with storage_errors('investment completion'):
        with transaction.atomic():
            profile = Profile.objects.select_for_update().get(pk=investment.user_id)
            investment = Investment.objects.select_for_update().get(pk=investment.pk)
            if investment.status != 'active':
                return None

            total_return = compute_profit(investment, investment.end_date, clamp=True)
            payout = investment.amount + total_return

            investment.status = 'completed'
            investment.total_return = total_return
            investment.completed_at = as_of
            investment.save(update_fields=['status', 'total_return', 'completed_at'])

            profile.balance += payout
            profile.save(update_fields=['balance', 'updated_at'])

            entry = Transaction.objects.create(
                user_id=investment.user_id,
                investment=investment,
                transaction_type='payout',
                amount=payout,
                status='completed',
                processed_at=as_of,
                description=f'Payout for matured investment in {investment.plan.name}',
            )
            emit_profile_changed(profile.pk, ['balance'])
            emit_transaction_changed(entry, created=True)

    logger.info(
        "Investment %s completed for user %s, paid out %s",
        investment.pk, investment.user_id, payout,
    )
    return investment


def complete_matured_investments(as_of=None, users=None):
    """Complete every active investment whose end date has passed"""
    as_of = as_of or timezone.now()
    matured = Investment.objects.filter(status='active', end_date__lte=as_of, plan__isnull=False)
    if users is not None:
        matured = matured.filter(user__in=users)

    with storage_errors('loading matured investments'):
        matured = list(matured.select_related('plan'))

    completed = 0
    for investment in matured:
        try:
            if complete_investment(investment, as_of) is not None:
                completed += 1
        except DataIntegrityError as e:
            _report_dangling(investment, e)
    return completed


def run_accrual_pass(user_ids=None, as_of=None, stop_event=None):
    """One recompute over every user with active investments.

    Returns the number of profiles processed. ``stop_event`` is checked
    between users so a cancelled pass never leaves a partial write behind.
    """
    as_of = as_of or timezone.now()
    User = get_user_model()

    if getattr(settings, 'ACCRUAL_AUTO_COMPLETE', True):
        completed = complete_matured_investments(as_of, users=user_ids)
        if completed:
            logger.info("Completed %s matured investments", completed)

    users = User.objects.filter(investments__status='active').distinct()
    if user_ids is not None:
        users = users.filter(pk__in=user_ids)

    with storage_errors('loading accrual users'):
        users = list(users)

    processed = 0
    for user in users:
        if stop_event is not None and stop_event.is_set():
            logger.info("Accrual pass cancelled after %s profiles", processed)
            break
        try:
            refresh_profile_profit(user, as_of)
        except InvestmentError as e:
            logger.error("Profit refresh failed for user %s: %s", user.pk, e)
            continue
        processed += 1

    # Profiles whose last investment just closed still hold stale profit.
    stale = Profile.objects.exclude(profit=ZERO).exclude(user__investments__status='active')
    if user_ids is not None:
        stale = stale.filter(pk__in=user_ids)
    with storage_errors('loading stale profiles'):
        stale = list(stale.select_related('user'))
    for profile in stale:
        if stop_event is not None and stop_event.is_set():
            break
        try:
            refresh_profile_profit(profile.user, as_of)
        except InvestmentError as e:
            logger.error("Profit reset failed for user %s: %s", profile.pk, e)

    return processed


class ProfitAccrualWorker:
    """Background thread that recomputes cached profit on an interval.

    ``user_ids`` scopes the worker to one session's user; leave it empty to
    cover everyone. ``stop()`` cancels the loop and waits for the current pass
    to reach a safe point.
    """

    def __init__(self, interval=None, user_ids=None):
        self.interval = interval or getattr(settings, 'ACCRUAL_INTERVAL_SECONDS', 60)
        self.user_ids = user_ids
        self._stop_event = threading.Event()
        self._thread = None

    @property
    def is_running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name='profit-accrual', daemon=True)
        self._thread.start()
        logger.info("Profit accrual worker started (every %ss)", self.interval)

    def stop(self, timeout=None):
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
        logger.info("Profit accrual worker stopped")

    def run_once(self):
        return run_accrual_pass(self.user_ids, stop_event=self._stop_event)

    def _run(self):
        from django.db import connection

        try:
            while not self._stop_event.is_set():
                try:
                    self.run_once()
                except (InvestmentError, DatabaseError) as e:
                    logger.error("Accrual pass failed: %s", e)
                self._stop_event.wait(self.interval)
        finally:
            connection.close()
