from datetime import timedelta
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.contrib.auth import get_user_model
from django.utils import timezone

from .exceptions import InvalidStateError

User = get_user_model()


class InvestmentPlan(models.Model):
    """Model for investment plans offered to users"""

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)

    # Financial details
    min_deposit = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(0)])
    max_deposit = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(0)])
    daily_return_pct = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        validators=[MinValueValidator(0)]
    )
    duration_days = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    bonus_pct = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(0)]
    )

    is_active = models.BooleanField(default=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['min_deposit']

    def __str__(self):
        return self.name

    def clean(self):
        if self.min_deposit is not None and self.max_deposit is not None:
            if self.min_deposit > self.max_deposit:
                raise ValidationError({'max_deposit': 'Maximum deposit must not be below the minimum deposit'})

    @property
    def total_return_pct(self):
        """Return over the whole plan duration, in percent"""
        return self.daily_return_pct * self.duration_days


class Investment(models.Model):
    """Model for user investments"""

    STATUS_CHOICES = [
        ('active', 'Active'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='investments')
    # A deleted plan leaves the investment dangling; accrual skips those.
    plan = models.ForeignKey(
        InvestmentPlan,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='investments'
    )

    amount = models.DecimalField(max_digits=14, decimal_places=2)
    status = models.CharField(max_length=15, choices=STATUS_CHOICES, default='active')
    total_return = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)

    # Dates
    start_date = models.DateTimeField(default=timezone.now)
    end_date = models.DateTimeField()
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-start_date']

    def __str__(self):
        plan_name = self.plan.name if self.plan else 'deleted plan'
        return f"{self.user.email} - {plan_name} - {self.amount} - {self.status}"

    def save(self, *args, **kwargs):
        if not self.end_date and self.plan:
            self.end_date = self.start_date + timedelta(days=self.plan.duration_days)
        super().save(*args, **kwargs)

    @property
    def is_active(self):
        return self.status == 'active'

    @property
    def is_completed(self):
        return self.status == 'completed'

    def is_matured(self, as_of=None):
        as_of = as_of or timezone.now()
        return as_of >= self.end_date


class Transaction(models.Model):
    """Ledger entry for money movement.

    Append-only: after creation only ``status`` moves, once, from pending to
    completed or failed.
    """

    TYPE_CHOICES = [
        ('deposit', 'Deposit'),
        ('withdrawal', 'Withdrawal'),
        ('investment', 'Investment'),
        ('subscription', 'Subscription'),
        ('bonus', 'Bonus'),
        ('referral', 'Referral Bonus'),
        ('payout', 'Investment Payout'),
    ]

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('completed', 'Completed'),
        ('failed', 'Failed'),
    ]

    TERMINAL_STATUSES = ('completed', 'failed')

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='transactions')
    investment = models.ForeignKey(
        Investment,
        on_delete=models.SET_NULL,
        related_name='transactions',
        null=True,
        blank=True
    )

    transaction_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    amount = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    status = models.CharField(max_length=15, choices=STATUS_CHOICES, default='pending')
    description = models.TextField(blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    processed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'status'], name='investments_user_status_idx'),
        ]

    def __str__(self):
        return f"{self.user.email} - {self.transaction_type} - {self.amount} - {self.status}"

    @property
    def is_pending(self):
        return self.status == 'pending'

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def transition_to(self, new_status):
        """Move a pending transaction to a terminal status and save it"""
        if new_status not in self.TERMINAL_STATUSES:
            raise InvalidStateError(f"Unknown terminal status '{new_status}'")
        if not self.is_pending:
            raise InvalidStateError(
                f"Transaction {self.pk} is already {self.status}"
            )
        self.status = new_status
        self.processed_at = timezone.now()
        self.save(update_fields=['status', 'processed_at'])


class AdminLog(models.Model):
    """Immutable audit record of an admin action"""

    admin = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='admin_logs'
    )
    action = models.CharField(max_length=100)
    details = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        admin_email = self.admin.email if self.admin else 'system'
        return f"{admin_email} - {self.action} - {self.created_at:%Y-%m-%d %H:%M}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise InvalidStateError('Admin log entries cannot be modified')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise InvalidStateError('Admin log entries cannot be deleted')
