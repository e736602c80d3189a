from decimal import Decimal
from unittest.mock import patch

import requests
from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings

from investments.events import profile_changed, transaction_changed
from investments.exceptions import InsufficientFundsError
from investments.models import InvestmentPlan
from investments.services import approve_transaction, reject_transaction, submit_request, subscribe
from investments.signals import forward_event
from users.models import Notification, Profile

User = get_user_model()


class ChangeEventTest(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(email='admin@test.com', password='testpass123', is_staff=True)
        self.user = User.objects.create_user(email='user@test.com', password='testpass123')
        self.plan = InvestmentPlan.objects.create(
            name='Growth',
            min_deposit=Decimal('500.00'),
            max_deposit=Decimal('5000.00'),
            daily_return_pct=Decimal('2.00'),
            duration_days=30,
        )
        Profile.objects.filter(pk=self.user.pk).update(balance=Decimal('1000.00'))

        self.profile_events = []
        self.transaction_events = []

        def on_profile(sender, user_id, fields, **kwargs):
            self.profile_events.append((user_id, fields))

        def on_transaction(sender, transaction, created, **kwargs):
            self.transaction_events.append((transaction.transaction_type, transaction.status, created))

        profile_changed.connect(on_profile, weak=False, dispatch_uid='test-profile-events')
        transaction_changed.connect(on_transaction, weak=False, dispatch_uid='test-transaction-events')
        self.addCleanup(profile_changed.disconnect, dispatch_uid='test-profile-events')
        self.addCleanup(transaction_changed.disconnect, dispatch_uid='test-transaction-events')

    def test_one_event_per_committed_mutation(self):
        with self.captureOnCommitCallbacks(execute=True):
            subscribe(self.user, self.plan, Decimal('600.00'))

        self.assertEqual(self.profile_events, [(self.user.pk, ['balance'])])
        self.assertEqual(self.transaction_events, [('investment', 'completed', True)])

    def test_rolled_back_work_sends_nothing(self):
        with self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(InsufficientFundsError):
                subscribe(self.user, self.plan, Decimal('5000.00'))

        self.assertEqual(self.profile_events, [])
        self.assertEqual(self.transaction_events, [])

    def test_request_lifecycle_events(self):
        with self.captureOnCommitCallbacks(execute=True):
            entry = submit_request(self.user, 'deposit', Decimal('250.00'))
        with self.captureOnCommitCallbacks(execute=True):
            approve_transaction(entry, self.admin)

        self.assertEqual(self.transaction_events, [
            ('deposit', 'pending', True),
            ('deposit', 'completed', False),
        ])
        self.assertEqual(self.profile_events, [(self.user.pk, ['balance'])])

    def test_user_is_notified_of_the_outcome(self):
        deposit = submit_request(self.user, 'deposit', Decimal('250.00'))
        withdrawal = submit_request(self.user, 'withdrawal', Decimal('100.00'))

        with self.captureOnCommitCallbacks(execute=True):
            approve_transaction(deposit, self.admin)
        with self.captureOnCommitCallbacks(execute=True):
            reject_transaction(withdrawal, self.admin)

        titles = set(Notification.objects.filter(user=self.user).values_list('title', flat=True))
        self.assertEqual(titles, {'Deposit approved', 'Withdrawal rejected'})


class WebhookForwardingTest(TestCase):

    def test_disabled_without_url(self):
        with patch('investments.signals.requests.post') as post:
            self.assertFalse(forward_event('profile_changed', {'user_id': 1}))
        post.assert_not_called()

    @override_settings(REALTIME_WEBHOOK_URL='http://realtime.test/events', REALTIME_WEBHOOK_TIMEOUT=2)
    def test_posts_payload(self):
        with patch('investments.signals.requests.post') as post:
            self.assertTrue(forward_event('profile_changed', {'user_id': 1, 'fields': ['profit']}))

        post.assert_called_once_with(
            'http://realtime.test/events',
            json={'event': 'profile_changed', 'payload': {'user_id': 1, 'fields': ['profit']}},
            timeout=2,
        )

    @override_settings(REALTIME_WEBHOOK_URL='http://realtime.test/events')
    def test_delivery_failure_is_logged_not_raised(self):
        with patch('investments.signals.requests.post', side_effect=requests.ConnectionError('refused')):
            with self.assertLogs('investments.signals', level='WARNING'):
                self.assertFalse(forward_event('profile_changed', {'user_id': 1}))

    @override_settings(REALTIME_WEBHOOK_URL='http://realtime.test/events')
    def test_signal_receivers_forward_changes(self):
        with patch('investments.signals.requests.post') as post:
            profile_changed.send(sender='profiles', user_id=7, fields=['balance'])

        self.assertEqual(post.call_args.kwargs['json']['event'], 'profile_changed')
        self.assertEqual(post.call_args.kwargs['json']['payload'], {'user_id': 7, 'fields': ['balance']})
