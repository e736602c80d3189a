from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from investments.services import rebuild_profile

User = get_user_model()


class Command(BaseCommand):
    help = 'Compare cached profile balances with the transaction ledger.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--apply',
            action='store_true',
            help='Overwrite drifted profile fields with the ledger values'
        )

    def handle(self, *args, **options):
        drifted_count = 0
        for user in User.objects.order_by('pk').iterator():
            report = rebuild_profile(user, apply=options['apply'])
            drift = {field: row['drift'] for field, row in report.items() if row['drift']}
            if not drift:
                continue

            drifted_count += 1
            details = ', '.join(f'{field} {value:+}' for field, value in drift.items())
            self.stdout.write(self.style.WARNING(f'{user.email}: {details}'))

        verb = 'Repaired' if options['apply'] else 'Found'
        self.stdout.write(self.style.SUCCESS(f'{verb} {drifted_count} drifted profiles.'))
