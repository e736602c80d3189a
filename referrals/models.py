import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.contrib.auth import get_user_model
from django.core.validators import MinValueValidator, MaxValueValidator
from django.utils import timezone

from users.models import Notification

User = get_user_model()


def default_commission_rate():
    return getattr(settings, 'REFERRAL_COMMISSION_RATE', Decimal('5.00'))


class ReferralCode(models.Model):
    """Model for user referral codes"""

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='referral_code')
    code = models.CharField(max_length=20, unique=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user.email} - {self.code}"

    def save(self, *args, **kwargs):
        if not self.code:
            self.code = self.generate_unique_code()
        super().save(*args, **kwargs)

    def generate_unique_code(self):
        """Generate a unique referral code"""
        while True:
            base = self.user.first_name[:3].upper() if self.user.first_name else 'USR'
            code = f"{base}{uuid.uuid4().hex[:6].upper()}"
            if not ReferralCode.objects.filter(code=code).exists():
                return code


class Referral(models.Model):
    """Referrer / referred-user relationship"""

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('active', 'Active'),
        ('cancelled', 'Cancelled'),
    ]

    referrer = models.ForeignKey(User, on_delete=models.CASCADE, related_name='referrals_made')
    referred_user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='referred_by')
    referral_code = models.ForeignKey(ReferralCode, on_delete=models.CASCADE, related_name='referrals')

    status = models.CharField(max_length=15, choices=STATUS_CHOICES, default='pending')
    commission_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=default_commission_rate,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    activated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.referrer.email} → {self.referred_user.email}"

    def activate(self):
        """Activate the referral when the referred user makes their first investment"""
        if self.status == 'pending':
            self.status = 'active'
            self.activated_at = timezone.now()
            self.save(update_fields=['status', 'activated_at'])
            Notification.objects.create(
                user=self.referrer,
                title='Referral activated',
                notification_type='success',
                message=f"Your referral {self.referred_user.email} has made their first investment!"
            )


class ReferralEarning(models.Model):
    """Commission paid to a referrer for one investment"""

    referral = models.ForeignKey(Referral, on_delete=models.CASCADE, related_name='earnings')
    investment = models.OneToOneField(
        'investments.Investment',
        on_delete=models.CASCADE,
        related_name='referral_earning'
    )
    transaction = models.OneToOneField(
        'investments.Transaction',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='referral_earning'
    )

    amount = models.DecimalField(max_digits=14, decimal_places=2)
    commission_rate = models.DecimalField(max_digits=5, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.referral.referrer.email} - {self.amount}"
