from django.core.management.base import BaseCommand

from referrals.models import ReferralCode
from users.models import User


class Command(BaseCommand):
    help = 'Generate referral codes for all users who do not have one.'

    def handle(self, *args, **options):
        created_count = 0
        for user in User.objects.filter(referral_code__isnull=True):
            code = ReferralCode.objects.create(user=user)
            self.stdout.write(self.style.SUCCESS(f"Created referral code {code.code} for {user.email}"))
            created_count += 1
        self.stdout.write(self.style.SUCCESS(f"Done. Created {created_count} referral codes."))
