"""
Tests for PactService.

Tests cover:
1. Per-user status of a pact
2. Nightly evaluation: extend, shield, break, once per day
3. Lifecycle: propose, accept, progress, end
"""
import json
import pytest
from datetime import timedelta

from veloce.services.pact_service import PactService
from veloce.enums import PactStatus, PactCommitmentType, PactUserStatus
from veloce.exceptions import (
    NotPactMemberException, PactNotFoundException, ValidationException
)
from veloce.models import Pact

ALICE = 1
BOB = 2
CAROL = 3


def make_pact(**kwargs):
    values = {
        "id": 1,
        "initiator_id": ALICE,
        "partner_id": BOB,
        "commitment_type": PactCommitmentType.DAILY_TASKS.value,
        "target_value": 3,
        "status": PactStatus.ACTIVE.value,
        "current_streak": 0,
        "longest_streak": 0,
        "xp_earned": 0,
        "milestones_reached": "[]",
        "initiator_completed_today": False,
        "partner_completed_today": False,
        "shield_active": False,
    }
    values.update(kwargs)
    return Pact(**values)


@pytest.fixture
def active_pact(db_session, now):
    service = PactService(db_session)
    pact = service.create_pact(ALICE, BOB, PactCommitmentType.DAILY_TASKS)
    return service.accept_pact(pact.id, BOB, now)


class TestStatusForUser:
    """Tests for status_for_user"""

    def test_waiting_views(self):
        """Only the initiator is done: they wait, the partner is waited on"""
        pact = make_pact(initiator_completed_today=True)
        assert PactService.status_for_user(pact, ALICE) == PactUserStatus.WAITING_ON_PARTNER
        assert PactService.status_for_user(pact, BOB) == PactUserStatus.WAITING_ON_YOU

    def test_both_and_neither(self):
        assert PactService.status_for_user(make_pact(), ALICE) == PactUserStatus.NEITHER_DONE
        both = make_pact(initiator_completed_today=True, partner_completed_today=True)
        assert PactService.status_for_user(both, BOB) == PactUserStatus.BOTH_DONE

    def test_inactive_pact(self):
        pact = make_pact(status=PactStatus.PENDING.value, initiator_completed_today=True)
        assert PactService.status_for_user(pact, ALICE) == PactUserStatus.INACTIVE

    def test_outsider_is_rejected(self):
        with pytest.raises(NotPactMemberException):
            PactService.status_for_user(make_pact(), CAROL)

    def test_next_milestone(self):
        assert PactService.next_milestone(0) == 7
        assert PactService.next_milestone(7) == 30
        assert PactService.days_until_next_milestone(25) == 5
        assert PactService.next_milestone(100) is None

    @pytest.mark.parametrize("commitment,target,expected", [
        (PactCommitmentType.DAILY_TASKS, 1, "Complete 1 task per day"),
        (PactCommitmentType.DAILY_TASKS, 3, "Complete 3 tasks per day"),
        (PactCommitmentType.FOCUS_TIME, 45, "Focus for 45 minutes per day"),
        (PactCommitmentType.GOAL_PROGRESS, 10, "Make 10% progress on goal"),
    ])
    def test_commitment_description(self, commitment, target, expected):
        pact = make_pact(commitment_type=commitment.value, target_value=target)
        assert PactService.commitment_description(pact) == expected


class TestEvaluateDay:
    """Tests for the nightly evaluation of a single pact"""

    def test_both_done_extends_streak(self, now, today):
        pact = make_pact(current_streak=2, longest_streak=2,
                         initiator_completed_today=True, partner_completed_today=True)
        assert PactService.evaluate_day(pact, today, now) == "extended"
        assert pact.current_streak == 3
        assert pact.longest_streak == 3
        assert pact.xp_earned == 150
        assert pact.initiator_completed_today is False
        assert pact.partner_completed_today is False
        assert pact.last_checked_date == today

    def test_milestone_recorded_once(self, now, today):
        pact = make_pact(current_streak=6, initiator_completed_today=True, partner_completed_today=True)
        PactService.evaluate_day(pact, today, now)
        assert json.loads(pact.milestones_reached) == [7]

    def test_shield_absorbs_miss(self, now, today):
        """Partner missed but a shield is up: streak kept, shield spent"""
        pact = make_pact(current_streak=4, initiator_completed_today=True, shield_active=True)
        assert PactService.evaluate_day(pact, today, now) == "shielded"
        assert pact.current_streak == 4
        assert pact.shield_active is False
        assert pact.shield_used_at == now
        assert pact.status == PactStatus.ACTIVE.value

    def test_miss_without_shield_breaks(self, now, today):
        pact = make_pact(current_streak=4, initiator_completed_today=True)
        assert PactService.evaluate_day(pact, today, now) == "broken"
        assert pact.status == PactStatus.BROKEN.value
        assert pact.broken_by_user_id == BOB
        assert pact.broken_at == now
        assert pact.current_streak == 0

    def test_runs_once_per_day(self, now, today):
        pact = make_pact(initiator_completed_today=True, partner_completed_today=True)
        PactService.evaluate_day(pact, today, now)
        pact.initiator_completed_today = True
        pact.partner_completed_today = True
        assert PactService.evaluate_day(pact, today, now) is None
        assert pact.current_streak == 1

    def test_inactive_pact_is_skipped(self, now, today):
        pact = make_pact(status=PactStatus.PENDING.value)
        assert PactService.evaluate_day(pact, today, now) is None


class TestLifecycle:
    """Tests for the stored pact lifecycle"""

    def test_create_uses_default_target(self, db_session):
        pact = PactService(db_session).create_pact(ALICE, BOB, PactCommitmentType.FOCUS_TIME)
        assert pact.status == PactStatus.PENDING.value
        assert pact.target_value == 30

    def test_cannot_pact_with_self(self, db_session):
        with pytest.raises(ValidationException):
            PactService(db_session).create_pact(ALICE, ALICE, PactCommitmentType.DAILY_TASKS)

    def test_no_duplicate_open_pact(self, db_session, active_pact):
        with pytest.raises(ValidationException):
            PactService(db_session).create_pact(BOB, ALICE, PactCommitmentType.FOCUS_TIME)

    def test_only_partner_accepts(self, db_session, now):
        service = PactService(db_session)
        pact = service.create_pact(ALICE, BOB, PactCommitmentType.DAILY_TASKS)
        with pytest.raises(NotPactMemberException):
            service.accept_pact(pact.id, ALICE, now)

        accepted = service.accept_pact(pact.id, BOB, now)
        assert accepted.status == PactStatus.ACTIVE.value
        assert accepted.accepted_at == now

    def test_accept_twice_fails(self, db_session, active_pact, now):
        with pytest.raises(ValidationException):
            PactService(db_session).accept_pact(active_pact.id, BOB, now)

    def test_unknown_pact(self, db_session):
        with pytest.raises(PactNotFoundException):
            PactService(db_session).get_pact(42)

    def test_record_progress_sets_flag(self, db_session, active_pact):
        service = PactService(db_session)
        service.record_progress(active_pact.id, ALICE, 2)
        assert active_pact.initiator_completed_today is False

        service.record_progress(active_pact.id, ALICE, 3)
        assert active_pact.initiator_completed_today is True
        assert service.status_for_user(active_pact, BOB) == PactUserStatus.WAITING_ON_YOU

    def test_outsider_cannot_record(self, db_session, active_pact):
        with pytest.raises(NotPactMemberException):
            PactService(db_session).record_progress(active_pact.id, CAROL, 5)

    def test_end_pact(self, db_session, active_pact):
        pact = PactService(db_session).end_pact(active_pact.id, ALICE)
        assert pact.status == PactStatus.COMPLETED.value

    def test_nightly_pass_counts_outcomes(self, db_session, active_pact, now, today):
        service = PactService(db_session)
        second = service.create_pact(CAROL, BOB, PactCommitmentType.DAILY_TASKS)
        service.accept_pact(second.id, BOB, now)
        service.record_progress(active_pact.id, ALICE, 3)
        service.record_progress(active_pact.id, BOB, 3)
        service.activate_shield(second.id, CAROL)

        counts = service.evaluate_active_pacts(today, now)

        assert counts == {"extended": 1, "shielded": 1, "broken": 0}
        assert active_pact.current_streak == 1
        # already evaluated today
        assert service.evaluate_active_pacts(today, now + timedelta(minutes=5)) == {
            "extended": 0, "shielded": 0, "broken": 0
        }
