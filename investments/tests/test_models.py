from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.test import TestCase

from investments.exceptions import InvalidStateError
from investments.models import AdminLog, Investment, InvestmentPlan, Transaction

User = get_user_model()


class InvestmentPlanModelTest(TestCase):

    def test_min_deposit_must_not_exceed_max(self):
        plan = InvestmentPlan(
            name='Broken',
            min_deposit=Decimal('1000.00'),
            max_deposit=Decimal('500.00'),
            daily_return_pct=Decimal('1.00'),
            duration_days=10,
        )
        with self.assertRaises(DjangoValidationError):
            plan.full_clean()

    def test_total_return_pct(self):
        plan = InvestmentPlan(daily_return_pct=Decimal('1.50'), duration_days=20)
        self.assertEqual(plan.total_return_pct, Decimal('30.00'))


class InvestmentModelTest(TestCase):

    def test_end_date_follows_plan_duration(self):
        user = User.objects.create_user(email='user@test.com', password='testpass123')
        plan = InvestmentPlan.objects.create(
            name='Short',
            min_deposit=Decimal('10.00'),
            max_deposit=Decimal('100.00'),
            daily_return_pct=Decimal('1.00'),
            duration_days=7,
        )
        investment = Investment.objects.create(user=user, plan=plan, amount=Decimal('50.00'))

        self.assertEqual((investment.end_date - investment.start_date).days, 7)
        self.assertTrue(investment.is_active)
        self.assertFalse(investment.is_matured(investment.start_date))
        self.assertTrue(investment.is_matured(investment.end_date))


class TransactionModelTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(email='user@test.com', password='testpass123')
        self.entry = Transaction.objects.create(
            user=self.user,
            transaction_type='deposit',
            amount=Decimal('25.00'),
        )

    def test_pending_by_default(self):
        self.assertTrue(self.entry.is_pending)
        self.assertFalse(self.entry.is_terminal)

    def test_transition_happens_once(self):
        self.entry.transition_to('completed')

        self.entry.refresh_from_db()
        self.assertEqual(self.entry.status, 'completed')
        self.assertIsNotNone(self.entry.processed_at)
        with self.assertRaises(InvalidStateError):
            self.entry.transition_to('failed')

    def test_transition_to_pending_is_refused(self):
        with self.assertRaises(InvalidStateError):
            self.entry.transition_to('pending')


class AdminLogModelTest(TestCase):

    def test_entries_are_append_only(self):
        log = AdminLog.objects.create(action='approve_transaction', details={'transaction_id': 1})

        log.action = 'something_else'
        with self.assertRaises(InvalidStateError):
            log.save()
        with self.assertRaises(InvalidStateError):
            log.delete()
        self.assertEqual(AdminLog.objects.get().action, 'approve_transaction')
