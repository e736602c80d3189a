from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from investments.exceptions import ValidationError
from investments.models import InvestmentPlan, Transaction
from investments.services import subscribe
from referrals.models import Referral, ReferralCode, ReferralEarning
from referrals.services import apply_referral_code, referral_stats
from users.models import Notification, Profile

User = get_user_model()


class ReferralServiceTest(TestCase):

    def setUp(self):
        self.referrer = User.objects.create_user(email='referrer@test.com', password='testpass123', first_name='Ada')
        self.friend = User.objects.create_user(email='friend@test.com', password='testpass123')
        self.code = ReferralCode.objects.create(user=self.referrer)
        self.plan = InvestmentPlan.objects.create(
            name='Growth',
            min_deposit=Decimal('500.00'),
            max_deposit=Decimal('5000.00'),
            daily_return_pct=Decimal('2.00'),
            duration_days=30,
        )
        Profile.objects.filter(pk=self.friend.pk).update(balance=Decimal('2000.00'))

    def test_code_is_generated(self):
        self.assertTrue(self.code.code.startswith('ADA'))
        self.assertEqual(len(self.code.code), 9)

    def test_apply_code(self):
        referral = apply_referral_code(self.friend, self.code.code.lower())

        self.assertEqual(referral.referrer, self.referrer)
        self.assertEqual(referral.status, 'pending')
        self.assertEqual(referral.commission_rate, Decimal('5.00'))

    def test_cannot_use_own_code_or_refer_twice(self):
        with self.assertRaises(ValidationError):
            apply_referral_code(self.referrer, self.code.code)

        apply_referral_code(self.friend, self.code.code)
        with self.assertRaises(ValidationError):
            apply_referral_code(self.friend, self.code.code)

    def test_unknown_code(self):
        with self.assertRaises(ValidationError):
            apply_referral_code(self.friend, 'NOPE123')

    def test_investment_pays_commission(self):
        apply_referral_code(self.friend, self.code.code)

        investment = subscribe(self.friend, self.plan, Decimal('600.00'))

        self.assertEqual(Profile.objects.get(pk=self.referrer.pk).ref_bonus, Decimal('30.00'))
        entry = Transaction.objects.get(user=self.referrer, transaction_type='referral')
        self.assertEqual(entry.amount, Decimal('30.00'))
        self.assertEqual(entry.status, 'completed')

        earning = ReferralEarning.objects.get()
        self.assertEqual(earning.investment, investment)
        self.assertEqual(earning.transaction, entry)

        referral = Referral.objects.get()
        self.assertEqual(referral.status, 'active')
        self.assertIsNotNone(referral.activated_at)
        self.assertTrue(Notification.objects.filter(user=self.referrer).exists())

        # the investor's own ledger is unaffected by the commission
        self.assertEqual(Profile.objects.get(pk=self.friend.pk).balance, Decimal('1400.00'))

    @override_settings(REFERRAL_COMMISSION_RATE=Decimal('10.00'))
    def test_commission_rate_from_settings(self):
        apply_referral_code(self.friend, self.code.code)
        subscribe(self.friend, self.plan, Decimal('500.00'))
        self.assertEqual(Profile.objects.get(pk=self.referrer.pk).ref_bonus, Decimal('50.00'))

    def test_no_commission_without_referral(self):
        subscribe(self.friend, self.plan, Decimal('600.00'))
        self.assertFalse(ReferralEarning.objects.exists())
        self.assertEqual(Profile.objects.get(pk=self.referrer.pk).ref_bonus, Decimal('0.00'))

    def test_stats(self):
        apply_referral_code(self.friend, self.code.code)
        subscribe(self.friend, self.plan, Decimal('600.00'))

        stats = referral_stats(self.referrer)

        self.assertEqual(stats['total_referrals'], 1)
        self.assertEqual(stats['active_referrals'], 1)
        self.assertEqual(stats['total_earnings'], Decimal('30.00'))


class ReferralAPITest(APITestCase):

    def setUp(self):
        self.referrer = User.objects.create_user(email='referrer@test.com', password='testpass123')
        self.code = ReferralCode.objects.create(user=self.referrer)

    def test_register_with_referral_code(self):
        response = self.client.post(reverse('user-list'), {
            'email': 'newbie@test.com',
            'password': 'Str0ng-Passw0rd!',
            'referral_code': self.code.code,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        newbie = User.objects.get(email='newbie@test.com')
        self.assertEqual(newbie.referred_by.referrer, self.referrer)
        self.assertTrue(Profile.objects.filter(pk=newbie.pk).exists())

    def test_register_with_invalid_code(self):
        response = self.client.post(reverse('user-list'), {
            'email': 'newbie@test.com',
            'password': 'Str0ng-Passw0rd!',
            'referral_code': 'BOGUS1',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(User.objects.filter(email='newbie@test.com').exists())

    def test_submit_referral_code(self):
        friend = User.objects.create_user(email='friend@test.com', password='testpass123')
        client = APIClient()
        client.force_authenticate(user=friend)

        response = client.post(reverse('submit_referral_code'), {'referral_code': self.code.code}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = client.post(reverse('submit_referral_code'), {'referral_code': self.code.code}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid')

    def test_my_code_is_created_on_demand(self):
        friend = User.objects.create_user(email='friend@test.com', password='testpass123')
        client = APIClient()
        client.force_authenticate(user=friend)

        response = client.get(reverse('referral-code-my-code'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['code'], ReferralCode.objects.get(user=friend).code)

    def test_validate_code(self):
        response = self.client.post(reverse('validate-referral-code'), {'code': self.code.code}, format='json')
        self.assertTrue(response.data['valid'])
