"""
Tests for ChallengeService.

Tests cover:
1. Daily challenge selection
2. Progress clamping and single completion
3. Generation and progress from task completions
"""
import pytest
from datetime import datetime, timedelta

from veloce.services.challenge_service import ChallengeService
from veloce.services.points_service import PointsService
from veloce.enums import DailyChallengeType
from veloce.exceptions import ChallengeNotFoundException
from veloce.models import UserStats
from veloce.tests.conftest import create_goal


def types_of(challenges):
    return [DailyChallengeType.parse(c.challenge_type) for c in challenges]


def make_challenge(now, target=5):
    return ChallengeService.new_challenge(
        DailyChallengeType.TASK_MASTER, "Complete 5 Tasks", "", target, now
    )


class TestBuildDailyChallenges:
    """Tests for build_daily_challenges"""

    def test_no_goals_morning_no_streak(self, now):
        """Task master, early bird, momentum"""
        challenges = ChallengeService.build_daily_challenges([], 0, now)
        assert types_of(challenges) == [
            DailyChallengeType.TASK_MASTER,
            DailyChallengeType.EARLY_BIRD,
            DailyChallengeType.MOMENTUM_BUILDER,
        ]

    def test_active_goal_afternoon_with_streak(self, db_session, now):
        """Sprint on the goal, focus session, streak extension scaled by streak"""
        goal = create_goal(db_session, title="Ship the portfolio website redesign")
        afternoon = now.replace(hour=15)
        challenges = ChallengeService.build_daily_challenges([goal], 4, afternoon)

        assert types_of(challenges) == [
            DailyChallengeType.GOAL_SPRINT,
            DailyChallengeType.FOCUS_POWER,
            DailyChallengeType.STREAK_EXTENDER,
        ]
        sprint, focus, streak = challenges
        assert sprint.linked_goal_id == goal.id
        assert sprint.target_value == 2
        assert sprint.title == "Sprint: Ship the portfolio w"
        assert focus.target_value == 30
        assert streak.xp_reward == 30 + 4 * 2

    def test_completed_goals_are_skipped(self, db_session, now):
        done = create_goal(db_session, is_completed=True)
        challenges = ChallengeService.build_daily_challenges([done], 0, now)
        assert types_of(challenges)[0] == DailyChallengeType.TASK_MASTER

    def test_noon_switches_to_focus(self, now):
        challenges = ChallengeService.build_daily_challenges([], 0, now.replace(hour=12, minute=0))
        assert types_of(challenges)[1] == DailyChallengeType.FOCUS_POWER

    def test_expires_at_end_of_day(self, now):
        challenge = ChallengeService.build_daily_challenges([], 0, now)[0]
        assert challenge.expires_at == datetime(2025, 1, 15, 23, 59, 59)
        assert challenge.challenge_date == now.date()


class TestUpdateProgress:
    """Tests for update_progress"""

    def test_clamps_to_target(self, now):
        challenge = make_challenge(now)
        ChallengeService.update_progress(challenge, 12, now)
        assert challenge.current_value == 5

    def test_clamps_to_zero(self, now):
        challenge = make_challenge(now)
        ChallengeService.update_progress(challenge, -3, now)
        assert challenge.current_value == 0
        assert challenge.is_completed is False

    def test_completes_exactly_once(self, now):
        """Completion is reported once and survives lower values"""
        challenge = make_challenge(now)
        assert ChallengeService.update_progress(challenge, 5, now) is True
        assert ChallengeService.update_progress(challenge, 5, now + timedelta(minutes=1)) is False
        assert challenge.completed_at == now

        ChallengeService.update_progress(challenge, 1, now)
        assert challenge.is_completed is True

    def test_progress_fraction(self, now):
        challenge = make_challenge(now, target=4)
        ChallengeService.update_progress(challenge, 1, now)
        assert ChallengeService.progress(challenge) == 0.25


class TestChallengePersistence:
    """Tests for stored challenges"""

    def test_generation_is_idempotent(self, db_session, now):
        service = ChallengeService(db_session)
        first = service.generate_daily_challenges(now)
        second = service.generate_daily_challenges(now + timedelta(hours=3))
        assert len(first) == 3
        assert [c.id for c in first] == [c.id for c in second]

    def test_generation_uses_stored_streak(self, db_session, now):
        db_session.add(UserStats(total_points=0, current_streak=6, longest_streak=6))
        db_session.commit()
        challenges = ChallengeService(db_session).generate_daily_challenges(now)
        assert DailyChallengeType.STREAK_EXTENDER in types_of(challenges)

    def test_record_progress_awards_xp_on_completion(self, db_session, now):
        service = ChallengeService(db_session)
        challenges = service.generate_daily_challenges(now)
        early_bird = challenges[1]

        service.record_progress(early_bird.id, 1, now)

        assert early_bird.is_completed
        assert PointsService(db_session).get_level_summary()["total_points"] == 25

    def test_record_progress_unknown_challenge(self, db_session, now):
        with pytest.raises(ChallengeNotFoundException):
            ChallengeService(db_session).record_progress(999, 1, now)

    def test_task_completion_advances_matching_challenges(self, db_session, now):
        """Morning completion counts for task master, early bird and momentum"""
        service = ChallengeService(db_session)
        service.generate_daily_challenges(now)

        advanced = service.on_task_completed([], now)

        assert sorted(types_of(advanced), key=lambda t: t.value) == sorted([
            DailyChallengeType.TASK_MASTER,
            DailyChallengeType.EARLY_BIRD,
            DailyChallengeType.MOMENTUM_BUILDER,
        ], key=lambda t: t.value)

    def test_goal_sprint_needs_linked_goal(self, db_session, now):
        goal = create_goal(db_session)
        service = ChallengeService(db_session)
        sprint = service.generate_daily_challenges(now)[0]

        service.on_task_completed([], now)
        assert sprint.current_value == 0

        service.on_task_completed([goal.id], now)
        assert sprint.current_value == 1

    def test_daily_goal_completes_streak_challenge(self, db_session, now):
        db_session.add(UserStats(total_points=0, current_streak=2, longest_streak=2))
        db_session.commit()
        service = ChallengeService(db_session)
        streak = service.generate_daily_challenges(now)[2]

        service.on_daily_goal_met(now)

        assert streak.is_completed
        assert PointsService(db_session).get_level_summary()["total_points"] == 34
