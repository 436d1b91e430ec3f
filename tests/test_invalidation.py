"""Tests for mutation → cache partition invalidation rules."""

import pytest

from cache.invalidation import INVALIDATION_RULES, MutationType, get_invalidation_keys


class TestGetInvalidationKeys:
    def test_goal_contribution_invalidates_goal_and_dashboard_partitions(self):
        keys = get_invalidation_keys("goal:contribute")

        assert keys == [
            "goals",
            "goal_contributions",
            "transactions",
            "achievements",
            "user_streak",
            "dashboard_summary",
            "net_worth",
        ]

    def test_accepts_enum_members(self):
        assert get_invalidation_keys(MutationType.ACCOUNT_SYNC) == get_invalidation_keys("account:sync")

    @pytest.mark.parametrize("tag", ["goal:explode", "", "GOAL:CREATE", None, 42, ["goal:create"]])
    def test_unknown_or_malformed_tags_return_empty_list(self, tag):
        assert get_invalidation_keys(tag) == []

    def test_returns_a_fresh_list(self):
        first = get_invalidation_keys("budget:update")
        first.append("mutated")

        assert "mutated" not in get_invalidation_keys("budget:update")

    def test_is_deterministic(self):
        assert get_invalidation_keys("transaction:create") == get_invalidation_keys("transaction:create")


class TestInvalidationRules:
    def test_every_mutation_type_has_a_rule(self):
        assert {member.value for member in MutationType} == set(INVALIDATION_RULES)

    def test_rules_have_no_duplicate_partitions(self):
        for tag, keys in INVALIDATION_RULES.items():
            assert len(keys) == len(set(keys)), tag

    def test_partitions_never_contain_the_key_separator(self):
        for keys in INVALIDATION_RULES.values():
            assert all(":" not in key for key in keys)
