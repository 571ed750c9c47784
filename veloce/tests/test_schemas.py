"""
Tests for request validation and stored-value decoding in the schemas.
"""
import pytest
from pydantic import ValidationError

from veloce.schemas import (
    TaskCreate, TaskResponse, GoalProgressUpdate, PactResponse, SettingsUpdate,
    PowerUpGrant, StrategyPayload
)
from veloce.tests.conftest import create_task
from veloce.models import Pact


class TestTaskSchemas:
    """Tests for task shapes"""

    def test_enum_fields_store_raw_values(self):
        task = TaskCreate(title="Plan", task_type="create", recurring_type="weekdays")
        assert task.model_dump()["task_type"] == "create"
        assert task.model_dump()["recurring_type"] == "weekdays"

    @pytest.mark.parametrize("days", [[7], [-1], [0, 8]])
    def test_recurring_days_range(self, days):
        with pytest.raises(ValidationError):
            TaskCreate(title="Gym", recurring_days=days)

    def test_star_rating_bounds(self):
        with pytest.raises(ValidationError):
            TaskCreate(title="x", star_rating=4)

    def test_unknown_recurrence(self):
        with pytest.raises(ValidationError):
            TaskCreate(title="x", recurring_type="yearly")

    def test_response_decodes_stored_days(self, db_session):
        task = create_task(db_session, recurring_days="[0,6]")
        assert TaskResponse.model_validate(task).recurring_days == [0, 6]

    def test_response_tolerates_bad_stored_days(self, db_session):
        task = create_task(db_session, recurring_days="garbage")
        assert TaskResponse.model_validate(task).recurring_days is None


class TestOtherSchemas:
    """Tests for goal, pact, settings, power-up and strategy shapes"""

    def test_goal_progress_bounds(self):
        assert GoalProgressUpdate(progress=0.0).progress == 0.0
        with pytest.raises(ValidationError):
            GoalProgressUpdate(progress=-0.1)

    def test_pact_milestones_decoded(self, db_session):
        pact = Pact(initiator_id=1, partner_id=2, status="active", milestones_reached="[7,30]")
        db_session.add(pact)
        db_session.commit()
        assert PactResponse.model_validate(pact).milestones_reached == [7, 30]

    @pytest.mark.parametrize("value", ["24:00", "7:30", "0730", "12:60"])
    def test_roll_time_pattern(self, value):
        with pytest.raises(ValidationError):
            SettingsUpdate(nightly_roll_time=value)

    def test_settings_update_is_partial(self):
        update = SettingsUpdate(boss_difficulty="nightmare")
        assert update.model_dump(exclude_unset=True) == {"boss_difficulty": "nightmare"}

    def test_power_up_grant_cap(self):
        with pytest.raises(ValidationError):
            PowerUpGrant(power_up_type="xp_boost", amount=4)

    def test_strategy_payload_optional_fields(self):
        payload = StrategyPayload(overview="o", key_points=[], actionable_steps=[])
        assert payload.potential_obstacles is None
        assert payload.estimated_minutes is None
