from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from investments.models import Investment, InvestmentPlan
from referrals.models import ReferralCode
from users.models import Profile

User = get_user_model()


class CommandTest(TestCase):

    def call(self, *args, **kwargs):
        out = StringIO()
        call_command(*args, stdout=out, **kwargs)
        return out.getvalue()

    def test_create_sample_plans_is_idempotent(self):
        output = self.call('create_sample_plans')
        self.assertIn('Successfully created 3 new investment plans', output)

        output = self.call('create_sample_plans')
        self.assertIn('Successfully created 0 new investment plans', output)
        self.assertEqual(InvestmentPlan.objects.count(), 3)
        self.assertEqual(InvestmentPlan.objects.get(name='VIP').daily_return_pct, Decimal('0.83'))

    def test_run_accrual(self):
        user = User.objects.create_user(email='user@test.com', password='testpass123')
        plan = InvestmentPlan.objects.create(
            name='Growth',
            min_deposit=Decimal('500.00'),
            max_deposit=Decimal('5000.00'),
            daily_return_pct=Decimal('2.00'),
            duration_days=30,
        )
        Investment.objects.create(
            user=user,
            plan=plan,
            amount=Decimal('1000.00'),
            start_date=timezone.now() - timedelta(days=5, minutes=1),
        )

        output = self.call('run_accrual')

        self.assertIn('Refreshed profit for 1 profiles.', output)
        self.assertEqual(Profile.objects.get(pk=user.pk).profit, Decimal('100.00'))

    def test_reconcile_balances(self):
        user = User.objects.create_user(email='drift@test.com', password='testpass123')
        Profile.objects.filter(pk=user.pk).update(balance=Decimal('75.00'))

        output = self.call('reconcile_balances')
        self.assertIn('drift@test.com', output)
        self.assertIn('Found 1 drifted profiles.', output)
        self.assertEqual(Profile.objects.get(pk=user.pk).balance, Decimal('75.00'))

        output = self.call('reconcile_balances', '--apply')
        self.assertIn('Repaired 1 drifted profiles.', output)
        self.assertEqual(Profile.objects.get(pk=user.pk).balance, Decimal('0.00'))

    def test_generate_referral_codes(self):
        with_code = User.objects.create_user(email='a@test.com', password='testpass123')
        ReferralCode.objects.create(user=with_code)
        User.objects.create_user(email='b@test.com', password='testpass123')

        output = self.call('generate_referral_codes')

        self.assertIn('Created 1 referral codes.', output)
        self.assertEqual(ReferralCode.objects.count(), 2)
