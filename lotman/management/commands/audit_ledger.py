"""
Management command to check ledger consistency (read-only).

Usage:
    python manage.py audit_ledger
    python manage.py audit_ledger --variant SKU-001

Exits with an error when any issue is found.
"""

from django.core.management.base import BaseCommand, CommandError

from lotman import stock
from lotman.models import Variant


class Command(BaseCommand):
    """Ledger audit command."""

    help = 'Check movement chains and batch balances; never rewrites history'

    def add_arguments(self, parser):
        parser.add_argument(
            '--variant',
            dest='sku',
            default=None,
            help='Audit a single variant by SKU'
        )

    def handle(self, *args, **options):
        variants = None
        if options['sku']:
            variants = Variant.objects.filter(sku=options['sku'])
            if not variants.exists():
                raise CommandError(f"Variant {options['sku']!r} not found")

        report = stock.audit_all(variants)

        for sku, issues in report.items():
            for issue in issues:
                self.stdout.write(self.style.ERROR(str(issue)))

        if report:
            raise CommandError(f'{len(report)} variant(s) with ledger issues')

        self.stdout.write(self.style.SUCCESS('Ledger consistent'))
