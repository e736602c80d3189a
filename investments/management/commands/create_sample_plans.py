from decimal import Decimal

from django.core.management.base import BaseCommand

from investments.models import InvestmentPlan


class Command(BaseCommand):
    help = 'Create sample investment plans'

    def handle(self, *args, **options):
        plans_data = [
            {
                'name': 'Starter',
                'description': 'Entry plan with basic trading tools and market analysis.',
                'min_deposit': Decimal('500.00'),
                'max_deposit': Decimal('4999.00'),
                'daily_return_pct': Decimal('0.40'),
                'duration_days': 30,
                'bonus_pct': Decimal('2.00'),
            },
            {
                'name': 'Professional',
                'description': 'Advanced tools, priority support and copy trading access.',
                'min_deposit': Decimal('5000.00'),
                'max_deposit': Decimal('19999.00'),
                'daily_return_pct': Decimal('0.60'),
                'duration_days': 30,
                'bonus_pct': Decimal('3.00'),
            },
            {
                'name': 'VIP',
                'description': 'Premium trading suite with a dedicated account manager.',
                'min_deposit': Decimal('20000.00'),
                'max_deposit': Decimal('1000000.00'),
                'daily_return_pct': Decimal('0.83'),
                'duration_days': 30,
                'bonus_pct': Decimal('5.00'),
            },
        ]

        created_count = 0
        for plan_data in plans_data:
            plan, created = InvestmentPlan.objects.get_or_create(
                name=plan_data['name'],
                defaults=plan_data,
            )

            if created:
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f'Created plan: {plan.name}'))
            else:
                self.stdout.write(self.style.WARNING(f'Plan already exists: {plan.name}'))

        self.stdout.write(
            self.style.SUCCESS(f'Successfully created {created_count} new investment plans')
        )
