"""
Tests for StrategyService.

Tests cover:
1. Remote payload parsing
2. Offline fallback per task type
3. Formatting helpers
4. Writing a usable strategy back to the task
"""
import json
import pytest
from datetime import timedelta

from veloce.services.strategy_service import StrategyService
from veloce.enums import TaskType
from veloce.exceptions import TaskNotFoundException
from veloce.tests.conftest import create_task

REMOTE_PAYLOAD = json.dumps({
    "overview": "Break the report into sections. Draft the summary last.",
    "key_points": ["Outline before writing", "Keep sections short"],
    "actionable_steps": ["Open the template", "Write the methods section"],
    "potential_obstacles": ["Scope creep"],
    "estimated_minutes": 75,
    "thought_process": "Report writing is a create task with a fixed structure",
})


class TestParseRemote:
    """Tests for parse_remote"""

    def test_valid_payload(self, now):
        strategy = StrategyService.parse_remote(7, REMOTE_PAYLOAD, now)
        assert strategy.task_id == 7
        assert strategy.is_fallback is False
        assert strategy.key_points == ["Outline before writing", "Keep sections short"]
        assert strategy.generated_at == now
        assert strategy.expires_at == now + timedelta(hours=4)

    @pytest.mark.parametrize("raw", [
        None,
        "",
        "Sure! Here is a plan for your task",
        json.dumps({"overview": "Missing the lists"}),
        json.dumps({"overview": "x", "key_points": "not a list", "actionable_steps": []}),
    ])
    def test_unusable_payload(self, raw, now):
        assert StrategyService.parse_remote(7, raw, now) is None


class TestFallback:
    """Tests for the offline fallback"""

    def test_create_task_fallback(self, now):
        strategy = StrategyService.fallback(3, "Write blog post", TaskType.CREATE, now)
        assert strategy.is_fallback is True
        assert strategy.overview.startswith("Creative work like 'Write blog post' requires")
        assert strategy.estimated_minutes == 90
        assert strategy.thought_process == "Pattern-based strategy for Create tasks (offline fallback)"
        assert strategy.expires_at == now + timedelta(hours=1)

    @pytest.mark.parametrize("task_type,minutes", [
        (TaskType.COMMUNICATE, 30),
        (TaskType.CONSUME, 45),
        (TaskType.COORDINATE, 15),
    ])
    def test_every_type_has_content(self, task_type, minutes, now):
        strategy = StrategyService.fallback(1, "Anything", task_type, now)
        assert strategy.estimated_minutes == minutes
        assert len(strategy.key_points) == 4
        assert len(strategy.actionable_steps) == 4
        assert len(strategy.potential_obstacles) == 2

    def test_expiry(self, now):
        strategy = StrategyService.fallback(1, "Anything", TaskType.CONSUME, now)
        assert StrategyService.is_expired(strategy, now + timedelta(minutes=59)) is False
        assert StrategyService.is_expired(strategy, now + timedelta(minutes=61)) is True


class TestFormatting:
    """Tests for the text renderings"""

    def test_formatted_strategy(self, now):
        text = StrategyService.formatted_strategy(StrategyService.parse_remote(1, REMOTE_PAYLOAD, now))
        assert text == (
            "Break the report into sections. Draft the summary last.\n\n"
            "Key Strategy Points:\n"
            "• Outline before writing\n"
            "• Keep sections short\n\n"
            "Actionable Steps:\n"
            "1. Open the template\n"
            "2. Write the methods section\n\n"
            "Watch Out For:\n"
            "⚠️ Scope creep"
        )

    def test_no_obstacles_section_when_empty(self, now):
        payload = json.dumps({"overview": "Do it", "key_points": ["a"], "actionable_steps": ["b"]})
        text = StrategyService.formatted_strategy(StrategyService.parse_remote(1, payload, now))
        assert "Watch Out For" not in text

    def test_brief_summary(self, now):
        strategy = StrategyService.parse_remote(1, REMOTE_PAYLOAD, now)
        assert StrategyService.brief_summary(strategy) == "Break the report into sections."

    def test_brief_summary_adds_period(self, now):
        payload = json.dumps({"overview": "Just start", "key_points": [], "actionable_steps": []})
        strategy = StrategyService.parse_remote(1, payload, now)
        assert StrategyService.brief_summary(strategy) == "Just start."

    def test_formatted_duration(self, now):
        strategy = StrategyService.parse_remote(1, REMOTE_PAYLOAD, now)
        assert StrategyService.formatted_duration(strategy) == "1h 15m"


class TestStrategyForTask:
    """Tests for strategy_for_task"""

    def test_remote_strategy_is_saved_on_task(self, db_session, now):
        task = create_task(db_session, title="Quarterly report")
        strategy = StrategyService(db_session).strategy_for_task(task.id, REMOTE_PAYLOAD, now)

        assert strategy.is_fallback is False
        assert task.ai_advice == "Break the report into sections. Draft the summary last."
        assert task.ai_thought_process.startswith("Report writing")
        assert task.ai_processed_at == now
        assert task.estimated_minutes == 75

    def test_existing_estimate_is_kept(self, db_session, now):
        task = create_task(db_session, estimated_minutes=20)
        StrategyService(db_session).strategy_for_task(task.id, REMOTE_PAYLOAD, now)
        assert task.estimated_minutes == 20

    def test_fallback_uses_task_type(self, db_session, now):
        task = create_task(db_session, title="Reply to Sam", task_type="communicate")
        strategy = StrategyService(db_session).strategy_for_task(task.id, "oops", now)

        assert strategy.is_fallback is True
        assert strategy.estimated_minutes == 30
        assert task.ai_advice is None

    def test_untyped_task_falls_back_to_coordinate(self, db_session, now):
        task = create_task(db_session, title="Renew passport")
        strategy = StrategyService(db_session).strategy_for_task(task.id, None, now)
        assert "'Renew passport'" in strategy.overview
        assert strategy.estimated_minutes == 15

    def test_unknown_task(self, db_session, now):
        with pytest.raises(TaskNotFoundException):
            StrategyService(db_session).strategy_for_task(99, REMOTE_PAYLOAD, now)
