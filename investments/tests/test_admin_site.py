from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from investments.models import AdminLog, Transaction
from users.models import Profile

User = get_user_model()


class AdminSiteTest(TestCase):

    def setUp(self):
        self.superuser = User.objects.create_superuser(email='root@test.com', password='testpass123')
        self.user = User.objects.create_user(email='user@test.com', password='testpass123')
        Profile.objects.filter(pk=self.user.pk).update(balance=Decimal('100.00'))
        self.entry = Transaction.objects.create(
            user=self.user,
            transaction_type='deposit',
            amount=Decimal('50.00'),
            status='completed',
        )
        self.log = AdminLog.objects.create(admin=self.superuser, action='approve_transaction')
        self.client.force_login(self.superuser)

    def test_transactions_can_be_viewed(self):
        response = self.client.get(reverse('admin:investments_transaction_change', args=[self.entry.pk]))
        self.assertEqual(response.status_code, 200)

        response = self.client.get(reverse('admin:investments_transaction_changelist'))
        self.assertEqual(response.status_code, 200)

    def test_transactions_cannot_be_edited_or_deleted(self):
        response = self.client.post(
            reverse('admin:investments_transaction_change', args=[self.entry.pk]),
            {'amount': '5000.00', 'status': 'pending'},
        )
        self.assertEqual(response.status_code, 403)

        response = self.client.post(
            reverse('admin:investments_transaction_delete', args=[self.entry.pk]),
            {'post': 'yes'},
        )
        self.assertEqual(response.status_code, 403)

        self.entry.refresh_from_db()
        self.assertEqual(self.entry.amount, Decimal('50.00'))
        self.assertEqual(self.entry.status, 'completed')

    def test_transactions_cannot_be_added(self):
        response = self.client.get(reverse('admin:investments_transaction_add'))
        self.assertEqual(response.status_code, 403)

    def test_admin_log_is_view_only(self):
        url = reverse('admin:investments_adminlog_change', args=[self.log.pk])

        self.assertEqual(self.client.get(url).status_code, 200)
        self.assertEqual(self.client.post(url, {'action': 'tampered'}).status_code, 403)
        self.assertEqual(
            self.client.post(reverse('admin:investments_adminlog_delete', args=[self.log.pk]), {'post': 'yes'}).status_code,
            403,
        )

        self.log.refresh_from_db()
        self.assertEqual(self.log.action, 'approve_transaction')

    def test_profile_balances_are_read_only(self):
        response = self.client.post(
            reverse('admin:users_profile_change', args=[self.user.pk]),
            {'full_name': 'Renamed User', 'balance': '99999.00', 'profit': '1.00'},
        )

        self.assertEqual(response.status_code, 302)
        profile = Profile.objects.get(pk=self.user.pk)
        self.assertEqual(profile.full_name, 'Renamed User')
        self.assertEqual(profile.balance, Decimal('100.00'))
        self.assertEqual(profile.profit, Decimal('0.00'))
