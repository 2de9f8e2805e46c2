"""
Tests for recipient resolution: team expansion, capability filtering,
deduplication in first-seen order, and blocking errors.
"""

import pytest

from utils.target_performance.constants import Category
from utils.target_performance.exceptions import NoEligibleRecipients, ValidationError
from utils.target_performance.models import ActorRef, TeamRef
from utils.target_performance.recipient_resolver import duplicate_selections, resolve_recipients


class TestResolution:

    def test_team_plus_direct_member_is_deduplicated(self, actors, teams):
        """TeamA (X Sales, Y Orders, Z Sales&Orders) plus X for Sales -> {X, Z}."""
        result = resolve_recipients(
            Category.SALES, [TeamRef('A'), ActorRef('X')], actors, teams
        )
        assert result.recipient_ids == ['X', 'Z']
        assert len(result) == 2

    def test_first_seen_order_over_selection(self, actors, teams):
        result = resolve_recipients(
            Category.SALES, [ActorRef('W'), TeamRef('A')], actors, teams
        )
        assert result.recipient_ids == ['W', 'X', 'Z']

    def test_actor_in_two_teams_appears_once(self, actors, teams):
        result = resolve_recipients(
            Category.ORDERS, [TeamRef('A'), TeamRef('C')], actors, teams
        )
        assert result.recipient_ids == ['Y', 'Z', 'W']

    def test_orders_category_filters_team_members(self, actors, teams):
        result = resolve_recipients(Category.ORDERS, [TeamRef('A')], actors, teams)
        assert result.recipient_ids == ['Y', 'Z']


class TestIneligibility:

    def test_team_without_compatible_members_is_reported(self, actors, teams):
        result = resolve_recipients(
            Category.SALES, [TeamRef('B'), ActorRef('X')], actors, teams
        )
        assert result.recipient_ids == ['X']
        assert result.ineligible_teams == ['B']

    def test_incompatible_direct_actor_is_excluded(self, actors, teams):
        result = resolve_recipients(
            Category.SALES, [ActorRef('Y'), ActorRef('Z')], actors, teams
        )
        assert result.recipient_ids == ['Z']
        assert result.excluded_actors == ['Y']

    def test_nobody_eligible_blocks(self, actors, teams):
        with pytest.raises(NoEligibleRecipients) as exc_info:
            resolve_recipients(Category.SALES, [TeamRef('B'), ActorRef('Y')], actors, teams)
        assert exc_info.value.ineligible_teams == ['B']
        assert exc_info.value.excluded_actors == ['Y']


class TestReferenceChecks:

    def test_empty_selection(self, actors, teams):
        with pytest.raises(ValidationError) as exc_info:
            resolve_recipients(Category.SALES, [], actors, teams)
        assert exc_info.value.field == 'recipients'

    def test_unknown_actor(self, actors, teams):
        with pytest.raises(ValidationError, match="employee ghost"):
            resolve_recipients(Category.SALES, [ActorRef('ghost')], actors, teams)

    def test_unknown_team(self, actors, teams):
        with pytest.raises(ValidationError, match="team Q"):
            resolve_recipients(Category.SALES, [TeamRef('Q')], actors, teams)


class TestDuplicateSelections:

    def test_reports_direct_actor_already_in_selected_team(self, teams):
        duplicates = duplicate_selections([TeamRef('A'), ActorRef('X'), ActorRef('W')], teams)
        assert duplicates == {'X': 'A'}

    def test_first_selected_team_wins(self, teams):
        duplicates = duplicate_selections([TeamRef('C'), TeamRef('A'), ActorRef('Z')], teams)
        assert duplicates == {'Z': 'C'}
