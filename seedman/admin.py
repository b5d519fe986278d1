"""
Seedman Admin.

- Chamber / SeedType: list + edit (provisioning)
- Slot: edit coordinates and capacity; load is read-only; deactivate action
- Lot: read-only (changes only via the lots service)
- Movement: read-only audit trail with "verify" action
- WithdrawalRequest: read-only with "cancel" action
"""

import logging

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from seedman.exceptions import LotError
from seedman.models import Chamber, Lot, Movement, SeedType, Slot, WithdrawalRequest, WithdrawalStatus

logger = logging.getLogger(__name__)


class ReadOnlyAdminMixin:
    """Rows only change through the lots service."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# CHAMBER / SEED TYPE ADMIN
# =========================================================================

@admin.register(Chamber)
class ChamberAdmin(admin.ModelAdmin):
    """Chamber admin, editable."""

    list_display = ['name', 'status', 'target_temperature', 'target_humidity']
    list_filter = ['status']
    search_fields = ['name']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(SeedType)
class SeedTypeAdmin(admin.ModelAdmin):
    list_display = ['name', 'optimal_temperature', 'optimal_humidity', 'max_storage_days', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name']
    readonly_fields = ['created_at', 'updated_at']


# =========================================================================
# SLOT ADMIN
# =========================================================================

@admin.register(Slot)
class SlotAdmin(admin.ModelAdmin):
    """Slot admin. Load is maintained by the lots service."""

    list_display = ['code', 'chamber', 'max_capacity', 'current_load',
                    'occupancy_display', 'is_active']
    list_filter = ['chamber', 'is_active']
    search_fields = ['code']
    readonly_fields = ['code', 'current_load', 'created_at', 'updated_at']
    actions = ['deactivate_slots']

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description=_('Ocupação (%)'))
    def occupancy_display(self, obj):
        return obj.occupancy_percentage

    @admin.action(description=_('Desativar localizações selecionadas'))
    def deactivate_slots(self, request, queryset):
        from seedman import lots

        count = 0
        for slot in queryset.filter(is_active=True):
            try:
                lots.deactivate_slot(slot)
                count += 1
            except LotError as exc:
                logger.warning("deactivate_slots: failed to deactivate %s: %s", slot.code, exc)

        self.message_user(request, _('{count} localização(ões) desativada(s).').format(count=count))


# =========================================================================
# LOT ADMIN (read-only)
# =========================================================================

@admin.register(Lot)
class LotAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Lot admin (read-only)."""

    list_display = ['code', 'seed_type', 'quantity', 'unit_mass', 'total_mass',
                    'slot', 'status', 'expiration_date', 'version']
    list_filter = ['status', 'seed_type']
    search_fields = ['code']
    readonly_fields = ['seed_type', 'code', 'quantity', 'unit_mass', 'total_mass', 'slot',
                       'status', 'entry_date', 'expiration_date', 'notes', 'origin',
                       'version', 'created_by', 'updated_by', 'metadata',
                       'created_at', 'updated_at']
    date_hierarchy = 'entry_date'


# =========================================================================
# MOVEMENT ADMIN (read-only audit trail)
# =========================================================================

@admin.register(Movement)
class MovementAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Movement admin: immutable audit trail."""

    list_display = ['timestamp', 'lot', 'kind', 'quantity', 'mass',
                    'source_slot', 'destination_slot', 'user', 'is_verified']
    list_filter = ['kind', 'is_verified', 'is_automatic', 'timestamp']
    search_fields = ['reason', 'lot__code', 'batch_id']
    readonly_fields = ['lot', 'kind', 'source_slot', 'destination_slot', 'quantity',
                       'mass', 'user', 'reason', 'notes', 'timestamp', 'is_automatic',
                       'batch_id', 'metadata', 'is_verified', 'verified_by',
                       'verified_at', 'verification_notes']
    date_hierarchy = 'timestamp'
    actions = ['verify_movements']

    @admin.action(description=_('Verificar movimentações selecionadas'))
    def verify_movements(self, request, queryset):
        from seedman import lots

        count = 0
        for movement in queryset.filter(is_verified=False):
            try:
                lots.verify_movement(movement, request.user, notes='Verificado via admin')
                count += 1
            except LotError as exc:
                logger.warning("verify_movements: failed to verify %s: %s", movement.pk, exc)

        self.message_user(request, _('{count} movimentação(ões) verificada(s).').format(count=count))


# =========================================================================
# WITHDRAWAL REQUEST ADMIN (read-only with cancel action)
# =========================================================================

@admin.register(WithdrawalRequest)
class WithdrawalRequestAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """WithdrawalRequest admin, read-only with a cancel action."""

    list_display = ['id', 'lot', 'kind', 'quantity', 'status', 'requested_by',
                    'requested_at', 'urgency_display']
    list_filter = ['status', 'kind']
    search_fields = ['lot__code', 'reason']
    readonly_fields = ['lot', 'kind', 'quantity', 'status', 'reason', 'notes',
                       'requested_by', 'requested_at', 'confirmed_by', 'confirmed_at',
                       'canceled_by', 'canceled_at', 'cancel_reason', 'movement', 'metadata']
    actions = ['cancel_requests']

    @admin.display(description=_('Urgência'))
    def urgency_display(self, obj):
        return obj.urgency_status

    @admin.action(description=_('Cancelar solicitações selecionadas'))
    def cancel_requests(self, request, queryset):
        from seedman import lots

        count = 0
        for req in queryset.filter(status=WithdrawalStatus.PENDENTE):
            try:
                lots.cancel_withdrawal(req, request.user, reason='Cancelado via admin')
                count += 1
            except LotError as exc:
                logger.warning("cancel_requests: failed to cancel %s: %s", req.pk, exc)

        self.message_user(request, _('{count} solicitação(ões) cancelada(s).').format(count=count))
