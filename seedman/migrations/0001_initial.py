"""
Initial migration for Seedman models.
"""

from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

ACTIVE = ('LOCADO', 'AGUARDANDO_RETIRADA')

SIDES = [(c, c) for c in 'ABCDEFGHIJKLMNOPQRST']

LOT_STATUS_CHOICES = [
    ('CADASTRADO', 'Cadastrado'),
    ('AGUARDANDO_LOCACAO', 'Aguardando locação'),
    ('LOCADO', 'Locado'),
    ('AGUARDANDO_RETIRADA', 'Aguardando retirada'),
    ('RETIRADO', 'Retirado'),
    ('REMOVIDO', 'Removido'),
]


class Migration(migrations.Migration):
    """Create Seedman models: Chamber, SeedType, Slot, Lot, Movement, WithdrawalRequest."""

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Chamber',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True, verbose_name='Nome')),
                ('description', models.TextField(blank=True, default='', verbose_name='Descrição')),
                ('status', models.CharField(choices=[('active', 'Ativa'), ('maintenance', 'Em manutenção'), ('inactive', 'Inativa')], db_index=True, default='active', max_length=20, verbose_name='Status')),
                ('target_temperature', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, verbose_name='Temperatura alvo (°C)')),
                ('target_humidity', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, verbose_name='Umidade alvo (%)')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadados')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Câmara',
                'verbose_name_plural': 'Câmaras',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='SeedType',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True, verbose_name='Nome')),
                ('description', models.TextField(blank=True, default='', verbose_name='Descrição')),
                ('optimal_temperature', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, verbose_name='Temperatura ideal (°C)')),
                ('optimal_humidity', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, verbose_name='Umidade ideal (%)')),
                ('max_storage_days', models.PositiveIntegerField(blank=True, help_text='Usado para calcular a validade quando não informada.', null=True, verbose_name='Armazenamento máximo (dias)')),
                ('is_active', models.BooleanField(default=True, verbose_name='Ativo')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadados')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Tipo de Semente',
                'verbose_name_plural': 'Tipos de Semente',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Slot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('block', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)], verbose_name='Quadra')),
                ('side', models.CharField(choices=SIDES, max_length=1, verbose_name='Lado')),
                ('row', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)], verbose_name='Fila')),
                ('level', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)], verbose_name='Andar')),
                ('code', models.CharField(blank=True, db_index=True, help_text='Gerado a partir das coordenadas (ex: Q1-LA-F1-A1)', max_length=40, verbose_name='Código')),
                ('max_capacity', models.DecimalField(decimal_places=3, default=Decimal('1000'), max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('1'))], verbose_name='Capacidade máxima (kg)')),
                ('current_load', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12, verbose_name='Carga atual (kg)')),
                ('is_active', models.BooleanField(default=True, help_text='Localizações inativas não recebem lotes.', verbose_name='Ativa')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadados')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('chamber', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='slots', to='seedman.chamber', verbose_name='Câmara')),
            ],
            options={
                'verbose_name': 'Localização',
                'verbose_name_plural': 'Localizações',
                'ordering': ['chamber', 'block', 'side', 'row', 'level'],
                'constraints': [
                    models.UniqueConstraint(fields=('chamber', 'block', 'side', 'row', 'level'), name='unique_slot_coordinate'),
                    models.UniqueConstraint(fields=('chamber', 'code'), name='unique_slot_code_per_chamber'),
                    models.CheckConstraint(condition=models.Q(('current_load__gte', 0), ('current_load__lte', models.F('max_capacity'))), name='slot_load_within_capacity'),
                    models.CheckConstraint(condition=models.Q(('max_capacity__gt', 0)), name='slot_capacity_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Lot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(db_index=True, max_length=50, verbose_name='Código do Lote')),
                ('quantity', models.PositiveIntegerField(help_text='Número de unidades (sacos, caixas...)', verbose_name='Quantidade')),
                ('unit_mass', models.DecimalField(decimal_places=3, max_digits=10, verbose_name='Massa unitária (kg)')),
                ('total_mass', models.DecimalField(decimal_places=3, default=Decimal('0'), editable=False, max_digits=12, verbose_name='Massa total (kg)')),
                ('status', models.CharField(choices=LOT_STATUS_CHOICES, db_index=True, default='CADASTRADO', max_length=20, verbose_name='Status')),
                ('entry_date', models.DateField(default=django.utils.timezone.localdate, verbose_name='Data de entrada')),
                ('expiration_date', models.DateField(blank=True, db_index=True, null=True, verbose_name='Data de validade')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('version', models.PositiveIntegerField(default=1, verbose_name='Versão')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadados')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Criado por')),
                ('origin', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='fragments', to='seedman.lot', verbose_name='Lote de origem')),
                ('seed_type', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='lots', to='seedman.seedtype', verbose_name='Tipo de Semente')),
                ('slot', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='lots', to='seedman.slot', verbose_name='Localização')),
                ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Atualizado por')),
            ],
            options={
                'verbose_name': 'Lote',
                'verbose_name_plural': 'Lotes',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['seed_type', 'status'], name='seedman_lot_type_status_idx')],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status__in', ACTIVE)), fields=('slot',), name='one_active_lot_per_slot'),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(('slot__isnull', True), models.Q(('status__in', ACTIVE), _negated=True)),
                            models.Q(('slot__isnull', False), ('status__in', ACTIVE)),
                            _connector='OR',
                        ),
                        name='lot_slot_matches_status',
                    ),
                    models.CheckConstraint(condition=models.Q(('unit_mass__gt', 0)), name='lot_unit_mass_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Movement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('entry', 'Entrada'), ('exit', 'Saída'), ('transfer', 'Transferência'), ('adjustment', 'Ajuste')], db_index=True, max_length=20, verbose_name='Tipo')),
                ('quantity', models.PositiveIntegerField(verbose_name='Quantidade')),
                ('mass', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Massa (kg)')),
                ('reason', models.CharField(help_text='Obrigatório. Ex: "Entrada de lote", "Transferência"', max_length=200, verbose_name='Motivo')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Data/Hora')),
                ('is_automatic', models.BooleanField(default=False, help_text='Gerado pelo sistema (não passa pela detecção de duplicidade).', verbose_name='Automático')),
                ('batch_id', models.CharField(blank=True, db_index=True, default='', max_length=64, verbose_name='Identificador de lote de operações')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadados')),
                ('is_verified', models.BooleanField(default=False, verbose_name='Verificado')),
                ('verified_at', models.DateTimeField(blank=True, null=True, verbose_name='Verificado em')),
                ('verification_notes', models.TextField(blank=True, default='', verbose_name='Notas da verificação')),
                ('destination_slot', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='incoming_movements', to='seedman.slot', verbose_name='Destino')),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='seedman.lot', verbose_name='Lote')),
                ('source_slot', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='outgoing_movements', to='seedman.slot', verbose_name='Origem')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Usuário')),
                ('verified_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Verificado por')),
            ],
            options={
                'verbose_name': 'Movimentação',
                'verbose_name_plural': 'Movimentações',
                'ordering': ['timestamp'],
                'indexes': [
                    models.Index(fields=['lot', 'kind', 'timestamp'], name='seedman_mov_lot_kind_ts_idx'),
                    models.Index(fields=['user', 'timestamp'], name='seedman_mov_user_ts_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='WithdrawalRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('TOTAL', 'Total'), ('PARCIAL', 'Parcial')], default='TOTAL', max_length=10, verbose_name='Tipo')),
                ('quantity', models.PositiveIntegerField(blank=True, help_text='Obrigatória para retirada parcial.', null=True, verbose_name='Quantidade')),
                ('status', models.CharField(choices=[('PENDENTE', 'Pendente'), ('CONFIRMADO', 'Confirmado'), ('CANCELADO', 'Cancelado')], db_index=True, default='PENDENTE', max_length=20, verbose_name='Status')),
                ('reason', models.CharField(blank=True, default='', max_length=200, verbose_name='Motivo')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('requested_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Solicitado em')),
                ('confirmed_at', models.DateTimeField(blank=True, null=True, verbose_name='Confirmado em')),
                ('canceled_at', models.DateTimeField(blank=True, null=True, verbose_name='Cancelado em')),
                ('cancel_reason', models.CharField(blank=True, default='', max_length=200, verbose_name='Motivo do cancelamento')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadados')),
                ('canceled_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Cancelado por')),
                ('confirmed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Confirmado por')),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='withdrawal_requests', to='seedman.lot', verbose_name='Lote')),
                ('movement', models.ForeignKey(blank=True, help_text='Saída registrada na confirmação.', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to='seedman.movement', verbose_name='Movimentação')),
                ('requested_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Solicitado por')),
            ],
            options={
                'verbose_name': 'Solicitação de Retirada',
                'verbose_name_plural': 'Solicitações de Retirada',
                'ordering': ['-requested_at'],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status', 'PENDENTE')), fields=('lot',), name='one_pending_withdrawal_per_lot'),
                    models.CheckConstraint(
                        condition=models.Q(models.Q(('kind', 'PARCIAL'), _negated=True), ('quantity__gt', 0), _connector='OR'),
                        name='partial_withdrawal_requires_quantity',
                    ),
                ],
            },
        ),
    ]
