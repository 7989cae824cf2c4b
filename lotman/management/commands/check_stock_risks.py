"""
Management command to sweep products for stock risks.

Usage:
    python manage.py check_stock_risks
    python manage.py check_stock_risks --dry-run
    python manage.py check_stock_risks --window 30
"""

from django.core.management.base import BaseCommand, CommandError

from lotman import stock


class Command(BaseCommand):
    """Stock risk sweep command."""

    help = 'Classify variants at risk of running out and notify'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List alerts without notifying'
        )
        parser.add_argument(
            '--window',
            type=int,
            default=None,
            help='Demand window in days (default: lead time + buffer)'
        )

    def handle(self, *args, **options):
        window = options['window']
        if window is not None and window <= 0:
            raise CommandError('--window must be positive')

        alerts = stock.risk_alerts(window_days=window, notify=not options['dry_run'])

        for alert in alerts:
            self.stdout.write(
                f'{alert.severity:<13} {alert.sku:<20} stock={alert.current_stock} '
                f'days={alert.days_of_stock} order={alert.suggested_order}'
            )

        if options['dry_run']:
            self.stdout.write(f'{len(alerts)} alert(s) found, none sent')
        else:
            self.stdout.write(self.style.SUCCESS(f'{len(alerts)} alert(s) sent'))
