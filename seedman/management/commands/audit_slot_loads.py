"""
Management command to audit slot loads against the lots stored in them.

Usage:
    python manage.py audit_slot_loads
    python manage.py audit_slot_loads --fix
    python manage.py audit_slot_loads --chamber "Câmara 1"
"""

from decimal import Decimal

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.db.models import Sum
from django.db.models.functions import Coalesce

from seedman.models import ACTIVE_LOT_STATUSES, Chamber, Slot


class Command(BaseCommand):
    """Audit (and optionally repair) Slot.current_load."""

    help = 'Confere a carga das localizações com os lotes armazenados'

    def add_arguments(self, parser):
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Corrige as divergências encontradas'
        )
        parser.add_argument(
            '--chamber',
            help='Restringe a auditoria a uma câmara (nome)'
        )

    def handle(self, *args, **options):
        slots = Slot.objects.order_by('pk')
        if options['chamber']:
            try:
                chamber = Chamber.objects.get(name=options['chamber'])
            except Chamber.DoesNotExist:
                raise CommandError(f"Câmara não encontrada: {options['chamber']}") from None
            slots = slots.filter(chamber=chamber)

        drifted = 0
        for slot in slots:
            expected = slot.lots.filter(status__in=ACTIVE_LOT_STATUSES).aggregate(
                t=Coalesce(Sum('total_mass'), Decimal('0'))
            )['t']
            if expected == slot.current_load:
                continue

            drifted += 1
            self.stdout.write(
                f'{slot.code}: registrado {slot.current_load} kg, esperado {expected} kg'
            )
            if options['fix']:
                with transaction.atomic():
                    Slot.objects.select_for_update().get(pk=slot.pk).recalculate()

        if options['fix']:
            self.stdout.write(
                self.style.SUCCESS(f'{drifted} localização(ões) corrigida(s)')
            )
        else:
            self.stdout.write(f'{drifted} localização(ões) com divergência')
