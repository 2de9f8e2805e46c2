"""
Tests for role-based access: access levels, accessible actors for each
role, record filtering, and the role descriptions on the account page.
"""

import pytest

from utils.target_performance.access_control import (
    AccessControl,
    access_level_for_role,
    describe_access,
)


@pytest.fixture
def make_access(actors, teams):
    def _make(role, actor_id):
        return AccessControl(user_role=role, actor_id=actor_id, actors=actors, teams=teams)
    return _make


class TestAccessLevel:

    @pytest.mark.parametrize("role,level", [
        ('admin', 'full'),
        ('Admin', 'full'),
        ('team_manager', 'team'),
        ('employee', 'self'),
        (None, 'self'),
        ('intern', 'self'),
    ])
    def test_levels(self, make_access, role, level):
        assert make_access(role, 'X').get_access_level() == level

    def test_assigners(self, make_access):
        assert make_access('admin', 'X').can_assign_targets()
        assert make_access('team_manager', 'W').can_assign_targets()
        assert not make_access('employee', 'X').can_assign_targets()

    @pytest.mark.parametrize("role,level", [
        ('ADMIN', 'full'),
        ('team_manager', 'team'),
        ('', 'self'),
        (None, 'self'),
    ])
    def test_level_without_directory(self, role, level):
        assert access_level_for_role(role) == level

    def test_descriptions_follow_level(self):
        assert "Everyone" in describe_access('admin')
        assert "teams you manage" in describe_access('team_manager')
        assert describe_access('intern') == describe_access('employee')
        assert "assign" not in describe_access('employee')


class TestAccessibleActors:

    def test_admin_sees_all(self, make_access):
        assert make_access('admin', 'X').get_accessible_actor_ids() == ['X', 'Y', 'Z', 'W']

    def test_team_manager_sees_self_and_managed_members(self, make_access):
        access = make_access('team_manager', 'W')
        assert access.get_accessible_actor_ids() == ['W', 'X', 'Y', 'Z']
        assert [t.team_id for t in access.managed_teams()] == ['A']

    def test_manager_of_nothing_sees_self(self, make_access):
        access = make_access('team_manager', 'Y')
        assert access.get_accessible_actor_ids() == ['Y']
        assert access.managed_teams() == []

    def test_employee_sees_self(self, make_access):
        access = make_access('employee', 'Z')
        assert access.get_accessible_actor_ids() == ['Z']
        assert access.managed_teams() == []

    def test_validate_selected_actors(self, make_access):
        access = make_access('employee', 'Z')
        assert access.validate_selected_actors(['X', 'Z']) == ['Z']


class TestFilterRecords:

    def test_employee_filter(self, make_access, make_transaction):
        records = [make_transaction('X', 10, 2025, 3), make_transaction('Y', 20, 2025, 3)]
        filtered = make_access('employee', 'Y').filter_records(records)
        assert [r.actor_id for r in filtered] == ['Y']

    def test_admin_keeps_everything(self, make_access, make_target):
        records = [make_target('X', 10, 2025, 3), make_target('nobody', 20, 2025, 3)]
        assert make_access('admin', 'X').filter_records(records) == records

    def test_repr(self, make_access):
        assert "level='team'" in repr(make_access('team_manager', 'W'))
