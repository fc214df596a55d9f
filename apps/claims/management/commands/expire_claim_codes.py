"""
Management command to expire claim codes past their lifetime.

Open claims (claimed or verified) whose code is older than
CLAIM_CODE_TTL are moved to the expired state. Safe to run repeatedly,
e.g. from cron.

Usage:
    python manage.py expire_claim_codes
    python manage.py expire_claim_codes --dry-run
"""

from django.core.management.base import BaseCommand
from django.utils import timezone

from apps.claims.models import DealClaim
from apps.claims.services import ClaimCodeService


class Command(BaseCommand):
    help = 'Expire claim codes that are past their lifetime'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show how many claims would expire without making changes',
        )

    def handle(self, *args, **options):
        now = timezone.now()

        if options['dry_run']:
            count = DealClaim.objects.stale(now).count()
            self.stdout.write(
                self.style.WARNING(f'--dry-run mode: {count} claim(s) would expire.')
            )
            return

        count = ClaimCodeService.expire_stale_claims(now)
        self.stdout.write(
            self.style.SUCCESS(f'Expired {count} claim(s).')
        )
