"""
Tests for role resolution and the operation/role matrix.
"""

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser, Group
from django.core.exceptions import ImproperlyConfigured

from seedman import LotError, lots
from seedman.adapters import get_role_resolver
from seedman.adapters.groups import GroupRoleResolver
from seedman.permissions import require_role, roles_of
from seedman.protocols import RoleResolver


User = get_user_model()

pytestmark = pytest.mark.django_db


class EveryoneIsOperator:
    """Resolver used to check that ROLE_RESOLVER is honored."""

    def roles_for(self, user):
        return frozenset({'operator'})


class TestGroupRoleResolver:

    def test_roles_from_groups(self, manager, operator, viewer):
        resolver = GroupRoleResolver()

        assert resolver.roles_for(manager) == frozenset({'admin'})
        assert resolver.roles_for(operator) == frozenset({'operator'})
        assert resolver.roles_for(viewer) == frozenset({'viewer'})

    def test_unknown_groups_ignored(self, groups):
        user = User.objects.create_user(username='padeiro', password='testpass123')
        user.groups.add(Group.objects.create(name='padaria'))

        assert GroupRoleResolver().roles_for(user) == frozenset()

    def test_superuser_has_every_role(self):
        root = User.objects.create_superuser(username='root', password='testpass123')

        assert GroupRoleResolver().roles_for(root) == frozenset({'admin', 'operator', 'viewer'})

    def test_anonymous_has_no_role(self):
        assert GroupRoleResolver().roles_for(AnonymousUser()) == frozenset()
        assert GroupRoleResolver().roles_for(None) == frozenset()

    def test_implements_protocol(self):
        assert isinstance(GroupRoleResolver(), RoleResolver)


class TestRoleMatrix:

    @pytest.mark.parametrize('operation', [
        'intake', 'add_stock', 'partial_exit', 'remove',
        'request_withdrawal', 'cancel_withdrawal',
        'register_movement', 'verify_movement',
    ])
    def test_admin_operations(self, manager, operation):
        require_role(manager, operation)

    @pytest.mark.parametrize('operation', [
        'assign_slot', 'move', 'partial_move', 'confirm_withdrawal',
        'register_movement', 'verify_movement',
    ])
    def test_operator_operations(self, operator, operation):
        require_role(operator, operation)

    @pytest.mark.parametrize('operation', ['move', 'confirm_withdrawal', 'assign_slot'])
    def test_admin_cannot_handle_stock(self, manager, operation):
        with pytest.raises(LotError) as exc:
            require_role(manager, operation)

        assert exc.value.code == 'PERMISSION_DENIED'
        assert exc.value.data['operation'] == operation
        assert exc.value.data['roles'] == ['admin']

    def test_viewer_cannot_intake(self, seed_type, viewer):
        with pytest.raises(LotError) as exc:
            lots.intake(seed_type, 'L-200', 1, Decimal('10'), user=viewer)

        assert exc.value.code == 'PERMISSION_DENIED'
        assert exc.value.status == 403

    def test_operator_cannot_intake(self, seed_type, operator):
        with pytest.raises(LotError) as exc:
            lots.intake(seed_type, 'L-201', 1, Decimal('10'), user=operator)

        assert exc.value.code == 'PERMISSION_DENIED'

    def test_operation_needs_a_user(self, seed_type):
        with pytest.raises(LotError) as exc:
            lots.intake(seed_type, 'L-202', 1, Decimal('10'), user=None)

        assert exc.value.code == 'VALIDATION_ERROR'

    def test_unlisted_operation_is_open(self, viewer):
        require_role(viewer, 'audit')

    def test_enforcement_disabled(self, settings, seed_type, viewer):
        settings.SEEDMAN = {'ENFORCE_ROLES': False}

        result = lots.intake(seed_type, 'L-203', 1, Decimal('10'), user=viewer)

        assert result.lot.pk is not None

    def test_custom_permissions(self, settings, stored_lot, s2, manager):
        settings.SEEDMAN = {'ROLE_PERMISSIONS': {'move': ('admin',)}}

        result = lots.move(stored_lot, s2, user=manager)

        assert result.lot.slot == s2


class TestResolverLoading:

    def test_default_resolver(self):
        assert isinstance(get_role_resolver(), GroupRoleResolver)
        assert get_role_resolver() is get_role_resolver()

    def test_configured_resolver(self, settings, viewer):
        settings.SEEDMAN = {'ROLE_RESOLVER': 'seedman.tests.test_permissions.EveryoneIsOperator'}

        assert roles_of(viewer) == frozenset({'operator'})

    def test_bad_resolver_path(self, settings):
        settings.SEEDMAN = {'ROLE_RESOLVER': 'seedman.tests.nowhere.Resolver'}

        with pytest.raises(ImproperlyConfigured):
            get_role_resolver()

    def test_empty_resolver_path(self, settings):
        settings.SEEDMAN = {'ROLE_RESOLVER': ''}

        with pytest.raises(ImproperlyConfigured):
            get_role_resolver()
