"""
Tests for management commands and admin actions.
"""

from decimal import Decimal
from io import StringIO

import pytest
from django.contrib import admin
from django.contrib.admin.sites import AdminSite
from django.contrib.messages.storage.fallback import FallbackStorage
from django.core.management import CommandError, call_command
from django.test import RequestFactory

from seedman import lots
from seedman.admin import MovementAdmin, SlotAdmin, WithdrawalRequestAdmin
from seedman.models import (
    Chamber,
    Lot,
    LotStatus,
    Movement,
    MovementKind,
    SeedType,
    Slot,
    WithdrawalRequest,
    WithdrawalStatus,
)


pytestmark = pytest.mark.django_db


def _admin_request(user):
    request = RequestFactory().post('/admin/')
    request.user = user
    request.session = {}
    request._messages = FallbackStorage(request)
    return request


class TestAuditSlotLoads:

    def test_no_drift(self, stored_lot):
        out = StringIO()
        call_command('audit_slot_loads', stdout=out)

        assert '0 localização(ões) com divergência' in out.getvalue()

    def test_reports_drift(self, stored_lot, s1):
        Slot.objects.filter(pk=s1.pk).update(current_load=Decimal('100'))
        out = StringIO()

        call_command('audit_slot_loads', stdout=out)

        s1.refresh_from_db()
        assert s1.code in out.getvalue()
        assert '1 localização(ões) com divergência' in out.getvalue()
        assert s1.current_load == Decimal('100.000')

    def test_fix(self, stored_lot, s1):
        Slot.objects.filter(pk=s1.pk).update(current_load=Decimal('100'))
        out = StringIO()

        call_command('audit_slot_loads', '--fix', stdout=out)

        s1.refresh_from_db()
        assert '1 localização(ões) corrigida(s)' in out.getvalue()
        assert s1.current_load == Decimal('500.000')

    def test_unknown_chamber(self):
        with pytest.raises(CommandError):
            call_command('audit_slot_loads', '--chamber', 'Inexistente', stdout=StringIO())

    def test_chamber_filter(self, stored_lot, s1, chamber):
        Slot.objects.filter(pk=s1.pk).update(current_load=Decimal('100'))
        Chamber.objects.create(name='Câmara 2')
        out = StringIO()

        call_command('audit_slot_loads', '--chamber', 'Câmara 2', stdout=out)

        assert '0 localização(ões) com divergência' in out.getvalue()


class TestVerifyMovementsCommand:

    def test_verifies_recent(self, stored_lot):
        out = StringIO()
        call_command('verify_movements', stdout=out)

        assert '1 movimentação(ões) verificada(s)' in out.getvalue()
        assert Movement.objects.get().is_verified

    def test_with_user(self, stored_lot, operator):
        call_command('verify_movements', '--user', operator.username, stdout=StringIO())

        assert Movement.objects.get().verified_by == operator

    def test_dry_run(self, stored_lot):
        out = StringIO()
        call_command('verify_movements', '--dry-run', stdout=out)

        assert 'seria(m) verificada(s)' in out.getvalue()
        assert not Movement.objects.get().is_verified

    def test_unknown_user(self):
        with pytest.raises(CommandError):
            call_command('verify_movements', '--user', 'ninguem', stdout=StringIO())

    def test_user_without_role(self, stored_lot, viewer):
        with pytest.raises(CommandError):
            call_command('verify_movements', '--user', viewer.username, stdout=StringIO())


class TestAdmin:

    def test_models_registered(self):
        for model in (Chamber, SeedType, Slot, Lot, Movement, WithdrawalRequest):
            assert admin.site.is_registered(model)

    def test_lot_admin_is_read_only(self, manager):
        model_admin = admin.site._registry[Lot]
        request = _admin_request(manager)

        assert not model_admin.has_add_permission(request)
        assert not model_admin.has_change_permission(request)
        assert not model_admin.has_delete_permission(request)

    def test_deactivate_action_skips_occupied(self, stored_lot, s1, s2, manager):
        model_admin = SlotAdmin(Slot, AdminSite())

        model_admin.deactivate_slots(_admin_request(manager), Slot.objects.filter(pk__in=[s1.pk, s2.pk]))

        s1.refresh_from_db()
        s2.refresh_from_db()
        assert s1.is_active
        assert not s2.is_active

    def test_verify_action(self, stored_lot, operator):
        model_admin = MovementAdmin(Movement, AdminSite())

        model_admin.verify_movements(_admin_request(operator), Movement.objects.all())

        movement = Movement.objects.get()
        assert movement.is_verified
        assert movement.verified_by == operator

    def test_cancel_action(self, stored_lot, manager):
        req = lots.request_withdrawal(stored_lot, user=manager).request
        model_admin = WithdrawalRequestAdmin(WithdrawalRequest, AdminSite())

        model_admin.cancel_requests(_admin_request(manager), WithdrawalRequest.objects.all())

        req.refresh_from_db()
        stored_lot.refresh_from_db()
        assert req.status == WithdrawalStatus.CANCELADO
        assert stored_lot.status == LotStatus.LOCADO
        assert stored_lot.movements.filter(kind=MovementKind.EXIT).count() == 0
