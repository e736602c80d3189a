from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from investments.models import Investment, InvestmentPlan
from users.models import Notification, Profile

User = get_user_model()


class ProfileTest(APITestCase):

    def setUp(self):
        self.user = User.objects.create_user(
            email='jane@test.com',
            password='testpass123',
            first_name='Jane',
            last_name='Doe',
        )
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)

    def test_profile_created_with_user(self):
        profile = Profile.objects.get(pk=self.user.pk)
        self.assertEqual(profile.full_name, 'Jane Doe')
        self.assertEqual(profile.balance, Decimal('0.00'))

    def test_total_assets(self):
        profile = Profile(
            balance=Decimal('100.00'),
            profit=Decimal('20.00'),
            bonus=Decimal('5.00'),
            ref_bonus=Decimal('1.50'),
        )
        self.assertEqual(profile.total_assets, Decimal('126.50'))

    def test_profile_endpoint_refreshes_profit(self):
        plan = InvestmentPlan.objects.create(
            name='Growth',
            min_deposit=Decimal('500.00'),
            max_deposit=Decimal('5000.00'),
            daily_return_pct=Decimal('2.00'),
            duration_days=30,
        )
        Investment.objects.create(
            user=self.user,
            plan=plan,
            amount=Decimal('1000.00'),
            start_date=timezone.now() - timedelta(days=3, minutes=1),
        )

        response = self.client.get(reverse('get_user_profile'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['email'], 'jane@test.com')
        self.assertEqual(response.data['profile']['profit'], Decimal('60.00'))

    def test_profile_figures_are_read_only(self):
        response = self.client.patch(reverse('get_user_profile'), {'balance': '1000000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)


class NotificationTest(APITestCase):

    def setUp(self):
        self.user = User.objects.create_user(email='user@test.com', password='testpass123')
        self.other = User.objects.create_user(email='other@test.com', password='testpass123')
        self.first = Notification.objects.create(user=self.user, title='Welcome', message='Hello')
        Notification.objects.create(user=self.user, title='Deposit approved', message='Done', notification_type='success')
        Notification.objects.create(user=self.other, title='Not yours', message='Hidden')
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)

    def test_list_is_scoped_to_user(self):
        response = self.client.get(reverse('notification-list'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

    def test_mark_read(self):
        response = self.client.post(reverse('notification-mark-read', args=[self.first.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.first.refresh_from_db()
        self.assertTrue(self.first.is_read)
        self.assertIsNotNone(self.first.read_at)

    def test_mark_all_read(self):
        response = self.client.post(reverse('notification-mark-all-read'))

        self.assertEqual(response.data['updated'], 2)
        self.assertEqual(self.client.get(reverse('notification-unread-count')).data['unread'], 0)
        self.assertFalse(Notification.objects.get(user=self.other).is_read)
