"""
Management command to link legacy packaging runs to their lots.

Runs recorded before packaging runs referenced lots directly only carry
the lot code. Reconciliation already matches them by code; this command
sets the foreign key so they show up under the lot everywhere else too.

Usage:
    python manage.py backfill_packaging_lots [--dry-run]
"""

from django.core.management.base import BaseCommand
from django.db import transaction
from apps.lots.models import Lot, PackagingRun


class Command(BaseCommand):
    help = 'Link packaging runs without a lot to the lot with the same lot code'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be linked without making changes',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']

        legacy_runs = PackagingRun.objects.filter(lot__isnull=True).order_by('performed_at')
        count = legacy_runs.count()

        if count == 0:
            self.stdout.write(
                self.style.SUCCESS('No unlinked packaging runs. All good!')
            )
            return

        self.stdout.write(f'\nFound {count} unlinked packaging run(s):\n')

        lots_by_code = {
            lot.lot_code: lot
            for lot in Lot.objects.filter(lot_code__in=legacy_runs.values('lot_code'))
        }

        linkable = []
        for run in legacy_runs:
            lot = lots_by_code.get(run.lot_code)
            target = lot.lot_code if lot else 'NO MATCHING LOT'
            self.stdout.write(
                f'  - {run.lot_code} | {run.quantity} x {run.package_type} | '
                f'{run.volume_total} L | {run.performed_at:%Y-%m-%d} -> {target}'
            )
            if lot:
                linkable.append((run, lot))

        if dry_run:
            self.stdout.write(
                self.style.WARNING('\n--dry-run mode: No changes made.')
            )
            return

        with transaction.atomic():
            for run, lot in linkable:
                PackagingRun.objects.filter(id=run.id, lot__isnull=True).update(lot=lot)

        self.stdout.write(
            self.style.SUCCESS(f'\n✓ Linked {len(linkable)} packaging run(s)')
        )
        skipped = count - len(linkable)
        if skipped:
            self.stdout.write(
                self.style.WARNING(f'{skipped} run(s) have no matching lot and were left as is.')
            )
