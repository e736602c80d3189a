import time

from django.core.management.base import BaseCommand

from investments.accrual import ProfitAccrualWorker, run_accrual_pass


class Command(BaseCommand):
    help = 'Recompute cached profit for every user with active investments.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--loop',
            action='store_true',
            help='Keep running and recompute on an interval until interrupted'
        )
        parser.add_argument(
            '--interval',
            type=int,
            default=None,
            help='Seconds between passes when looping (defaults to ACCRUAL_INTERVAL_SECONDS)'
        )
        parser.add_argument(
            '--user',
            type=int,
            action='append',
            dest='user_ids',
            help='Only recompute this user id (repeatable)'
        )

    def handle(self, *args, **options):
        user_ids = options['user_ids']

        if not options['loop']:
            processed = run_accrual_pass(user_ids)
            self.stdout.write(self.style.SUCCESS(f'Refreshed profit for {processed} profiles.'))
            return

        worker = ProfitAccrualWorker(interval=options['interval'], user_ids=user_ids)
        self.stdout.write(f'Running accrual every {worker.interval}s, press Ctrl+C to stop.')
        worker.start()
        try:
            while worker.is_running:
                time.sleep(1)
        except KeyboardInterrupt:
            pass
        finally:
            worker.stop()
        self.stdout.write(self.style.SUCCESS('Accrual worker stopped.'))
