"""
Management command to verify recent movements.

Usage:
    python manage.py verify_movements
    python manage.py verify_movements --user supervisor --max-age-hours 48
    python manage.py verify_movements --dry-run
"""

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from seedman import LotError, lots


class Command(BaseCommand):
    """Verification pass over unverified movements."""

    help = 'Verifica movimentações recentes ainda não verificadas'

    def add_arguments(self, parser):
        parser.add_argument(
            '--user',
            help='Usuário responsável pela verificação (padrão: sistema)'
        )
        parser.add_argument(
            '--max-age-hours',
            type=int,
            default=24,
            help='Considera movimentações das últimas N horas'
        )
        parser.add_argument(
            '--threshold',
            type=float,
            default=0.95,
            help='Confiança mínima para verificação automática'
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Mostra o que seria verificado sem executar'
        )

    def handle(self, *args, **options):
        verifier = None
        if options['user']:
            User = get_user_model()
            try:
                verifier = User.objects.get(**{User.USERNAME_FIELD: options['user']})
            except User.DoesNotExist:
                raise CommandError(f"Usuário não encontrado: {options['user']}") from None

        try:
            summary = lots.verify_movements(
                verifier=verifier,
                max_age_hours=options['max_age_hours'],
                threshold=options['threshold'],
                dry_run=options['dry_run'],
            )
        except LotError as e:
            raise CommandError(str(e)) from e

        if options['dry_run']:
            self.stdout.write(
                f"{summary['verified']} de {summary['pending']} movimentação(ões) "
                f"seria(m) verificada(s)"
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(
                    f"{summary['verified']} movimentação(ões) verificada(s), "
                    f"{summary['needs_review']} para revisão manual"
                )
            )
