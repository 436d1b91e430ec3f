"""Tests for the savings goal handlers."""

import pytest

import handlers.goals as goal_handlers
from conftest import USER_ID, make_table, response_body

GOAL = {
    "id": "goal-1",
    "user_id": USER_ID,
    "name": "Emergency fund",
    "target_amount": 1000,
    "current_amount": 950,
    "deadline": "2024-12-31",
}


@pytest.fixture
def goals(monkeypatch, fake_supabase):
    table = make_table("goals", [GOAL, {**GOAL, "id": "goal-2", "name": "Trip", "current_amount": None}])
    monkeypatch.setattr(goal_handlers, "supabase", fake_supabase)
    monkeypatch.setattr(goal_handlers, "goals_table", table)
    return table


class TestListGoals:
    def test_lists_goals_with_totals(self, goals, make_event, lambda_context):
        response = goal_handlers.list_goals(make_event(), lambda_context)

        payload = response_body(response)
        assert payload["count"] == 2
        assert payload["total_target"] == 2000
        assert payload["total_saved"] == 950
        assert payload["goals"][0]["progress"] == 0.95
        assert payload["goals"][1]["current_amount"] == 0

    def test_changes_between_invocations_are_picked_up(self, goals, make_event, lambda_context):
        goal_handlers.list_goals(make_event(), lambda_context)
        goals.select.return_value = [{**GOAL, "current_amount": 600}]

        response = goal_handlers.list_goals(make_event(), lambda_context)

        assert response_body(response)["total_saved"] == 600
        assert goals.select.call_count == 2

    def test_rows_without_usable_target_are_skipped(self, goals, make_event, lambda_context):
        goals.select.return_value = [
            GOAL,
            {**GOAL, "id": "goal-zero", "target_amount": 0},
            {**GOAL, "id": "goal-null", "target_amount": None},
        ]

        response = goal_handlers.list_goals(make_event(), lambda_context)

        payload = response_body(response)
        assert response["statusCode"] == 200
        assert [goal["id"] for goal in payload["goals"]] == ["goal-1"]
        assert payload["total_target"] == 1000


class TestContributeToGoal:
    def event(self, make_event, body, goal_id="goal-1"):
        return make_event("POST", body=body, path_params={"goal_id": goal_id})

    def test_missing_goal(self, goals, make_event, lambda_context):
        response = goal_handlers.contribute_to_goal(
            self.event(make_event, {"amount": 10}, "nope"), lambda_context
        )

        assert response["statusCode"] == 404

    def test_contribution_completes_goal(self, goals, fake_supabase, make_event, lambda_context):
        goals.select_one.return_value = GOAL
        fake_supabase.rpc.return_value = [{"new_amount": 1000}]

        response = goal_handlers.contribute_to_goal(
            self.event(make_event, {"amount": 50, "note": "bonus"}), lambda_context
        )

        payload = response_body(response)
        assert response["statusCode"] == 201
        assert payload["message"] == "Goal completed!"
        assert payload["goal"]["is_completed"] is True
        assert payload["contribution"]["amount"] == "50"
        assert "goals" in payload["invalidate"]

        fake_supabase.rpc.assert_called_once_with(
            "contribute_to_goal",
            {"p_goal_id": "goal-1", "p_user_id": USER_ID, "p_amount": 50.0, "p_note": "bonus"},
        )

    def test_falls_back_to_local_sum(self, goals, fake_supabase, make_event, lambda_context):
        goals.select_one.return_value = {**GOAL, "current_amount": 100}

        response = goal_handlers.contribute_to_goal(
            self.event(make_event, {"amount": 25}), lambda_context
        )

        payload = response_body(response)
        assert payload["message"] == "Contribution added"
        assert payload["goal"]["current_amount"] == 125
        assert fake_supabase.rpc.call_args.args[1]["p_note"] == "manual contribution"

    def test_rejects_non_positive_amount(self, goals, make_event, lambda_context):
        goals.select_one.return_value = GOAL

        response = goal_handlers.contribute_to_goal(
            self.event(make_event, {"amount": 0}), lambda_context
        )

        assert response["statusCode"] == 400
