"""
Pact service.
Handles the two-party accountability streak: lifecycle, daily progress,
shields and the nightly evaluation.
"""
import json
import logging
from datetime import date, datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from veloce.models import Pact
from veloce.enums import PactStatus, PactCommitmentType, PactUserStatus
from veloce.exceptions import (
    PactNotFoundException, NotPactMemberException, ValidationException
)
from veloce.repositories.pact_repository import PactRepository
from veloce.constants import PACT_MILESTONES, PACT_XP_PER_STREAK_DAY

logger = logging.getLogger("veloce.pacts")


class PactService:
    """Service for pacts between two users"""

    def __init__(self, db: Session):
        self.db = db
        self.pact_repo = PactRepository()

    # === Read model ===

    @staticmethod
    def is_member(pact: Pact, user_id: int) -> bool:
        return user_id in (pact.initiator_id, pact.partner_id)

    @staticmethod
    def _require_member(pact: Pact, user_id: int) -> None:
        if not PactService.is_member(pact, user_id):
            raise NotPactMemberException(pact.id, user_id)

    @staticmethod
    def user_completed_today(pact: Pact, user_id: int) -> bool:
        if user_id == pact.initiator_id:
            return bool(pact.initiator_completed_today)
        return bool(pact.partner_completed_today)

    @staticmethod
    def partner_completed_today(pact: Pact, user_id: int) -> bool:
        if user_id == pact.initiator_id:
            return bool(pact.partner_completed_today)
        return bool(pact.initiator_completed_today)

    @staticmethod
    def status_for_user(pact: Pact, user_id: int) -> PactUserStatus:
        """Today's state of the pact as seen by one of its members"""
        PactService._require_member(pact, user_id)
        if pact.status != PactStatus.ACTIVE.value:
            return PactUserStatus.INACTIVE

        user_done = PactService.user_completed_today(pact, user_id)
        partner_done = PactService.partner_completed_today(pact, user_id)

        if user_done and partner_done:
            return PactUserStatus.BOTH_DONE
        if user_done:
            return PactUserStatus.WAITING_ON_PARTNER
        if partner_done:
            return PactUserStatus.WAITING_ON_YOU
        return PactUserStatus.NEITHER_DONE

    @staticmethod
    def next_milestone(current_streak: int) -> Optional[int]:
        for milestone in PACT_MILESTONES:
            if current_streak < milestone:
                return milestone
        return None

    @staticmethod
    def days_until_next_milestone(current_streak: int) -> Optional[int]:
        milestone = PactService.next_milestone(current_streak)
        if milestone is None:
            return None
        return milestone - current_streak

    @staticmethod
    def commitment_description(pact: Pact) -> str:
        commitment = PactCommitmentType.parse(pact.commitment_type)
        target = pact.target_value
        if commitment == PactCommitmentType.DAILY_TASKS:
            return f"Complete {target} task{'' if target == 1 else 's'} per day"
        if commitment == PactCommitmentType.FOCUS_TIME:
            return f"Focus for {target} minutes per day"
        if commitment == PactCommitmentType.GOAL_PROGRESS:
            return f"Make {target}% progress on goal"
        return pact.custom_description or "Custom commitment"

    @staticmethod
    def milestones_reached(pact: Pact) -> List[int]:
        try:
            return json.loads(pact.milestones_reached or "[]")
        except json.JSONDecodeError:
            return []

    @staticmethod
    def is_commitment_met(target_value: int, current_value: int) -> bool:
        return current_value >= target_value

    # === Nightly evaluation ===

    @staticmethod
    def evaluate_day(pact: Pact, today: date, now: Optional[datetime] = None) -> Optional[str]:
        """
        Close out one day of an active pact.

        Both done: streak grows, milestones and XP recorded.
        Otherwise an active shield absorbs the miss; without one the pact breaks.
        Runs at most once per calendar day.

        Returns:
            "extended", "shielded", "broken", or None when nothing was evaluated
        """
        if pact.status != PactStatus.ACTIVE.value:
            return None
        if pact.last_checked_date == today:
            return None

        now = now or datetime.now()
        initiator_done = bool(pact.initiator_completed_today)
        partner_done = bool(pact.partner_completed_today)

        if initiator_done and partner_done:
            pact.current_streak = (pact.current_streak or 0) + 1
            pact.longest_streak = max(pact.longest_streak or 0, pact.current_streak)

            reached = PactService.milestones_reached(pact)
            if pact.current_streak in PACT_MILESTONES and pact.current_streak not in reached:
                reached.append(pact.current_streak)
                pact.milestones_reached = json.dumps(reached)

            pact.xp_earned = (pact.xp_earned or 0) + PACT_XP_PER_STREAK_DAY * pact.current_streak
            outcome = "extended"
        elif pact.shield_active:
            pact.shield_active = False
            pact.shield_used_at = now
            outcome = "shielded"
        else:
            pact.status = PactStatus.BROKEN.value
            pact.broken_at = now
            pact.broken_by_user_id = pact.initiator_id if not initiator_done else pact.partner_id
            pact.current_streak = 0
            outcome = "broken"

        pact.initiator_completed_today = False
        pact.partner_completed_today = False
        pact.last_checked_date = today
        return outcome

    # === Lifecycle ===

    def get_pact(self, pact_id: int) -> Pact:
        pact = self.pact_repo.get_by_id(self.db, pact_id)
        if not pact:
            raise PactNotFoundException(pact_id)
        return pact

    def get_pacts_for_user(self, user_id: int) -> List[Pact]:
        return self.pact_repo.get_for_user(self.db, user_id)

    def create_pact(
        self,
        initiator_id: int,
        partner_id: int,
        commitment_type: PactCommitmentType,
        target_value: Optional[int] = None,
        custom_description: Optional[str] = None
    ) -> Pact:
        """Propose a pact; it stays pending until the partner accepts"""
        if initiator_id == partner_id:
            raise ValidationException("partner_id", "cannot make a pact with yourself")

        for existing in self.pact_repo.get_for_user(self.db, initiator_id):
            open_pact = existing.status in (PactStatus.PENDING.value, PactStatus.ACTIVE.value)
            if open_pact and partner_id in (existing.initiator_id, existing.partner_id):
                raise ValidationException("partner_id", "an open pact with this partner already exists")

        pact = Pact(
            initiator_id=initiator_id,
            partner_id=partner_id,
            commitment_type=commitment_type.value,
            target_value=target_value if target_value is not None else commitment_type.default_target,
            custom_description=custom_description,
            status=PactStatus.PENDING.value,
            current_streak=0,
            longest_streak=0,
            xp_earned=0,
            milestones_reached="[]",
        )
        pact = self.pact_repo.create(self.db, pact)
        logger.info(f"Pact {pact.id} proposed by {initiator_id} to {partner_id}")
        return pact

    def accept_pact(self, pact_id: int, user_id: int, now: Optional[datetime] = None) -> Pact:
        """Only the invited partner can accept a pending pact"""
        pact = self.get_pact(pact_id)
        if user_id != pact.partner_id:
            raise NotPactMemberException(pact_id, user_id)
        if pact.status != PactStatus.PENDING.value:
            raise ValidationException("status", f"pact {pact_id} is {pact.status}, not pending")

        pact.status = PactStatus.ACTIVE.value
        pact.accepted_at = now or datetime.now()
        logger.info(f"Pact {pact_id} accepted")
        return self.pact_repo.update(self.db, pact)

    def end_pact(self, pact_id: int, user_id: int) -> Pact:
        """Mutually end an active pact"""
        pact = self.get_pact(pact_id)
        self._require_member(pact, user_id)
        if pact.status != PactStatus.ACTIVE.value:
            raise ValidationException("status", f"pact {pact_id} is {pact.status}, not active")
        pact.status = PactStatus.COMPLETED.value
        logger.info(f"Pact {pact_id} completed with a {pact.current_streak}-day streak")
        return self.pact_repo.update(self.db, pact)

    def record_progress(self, pact_id: int, user_id: int, current_value: int) -> Pact:
        """Set the member's completion flag for today from their progress value"""
        pact = self.get_pact(pact_id)
        self._require_member(pact, user_id)
        if pact.status != PactStatus.ACTIVE.value:
            raise ValidationException("status", f"pact {pact_id} is {pact.status}, not active")

        completed = self.is_commitment_met(pact.target_value, current_value)
        if user_id == pact.initiator_id:
            pact.initiator_completed_today = completed
        else:
            pact.partner_completed_today = completed
        return self.pact_repo.update(self.db, pact)

    def activate_shield(self, pact_id: int, user_id: int) -> Pact:
        pact = self.get_pact(pact_id)
        self._require_member(pact, user_id)
        if pact.status != PactStatus.ACTIVE.value:
            raise ValidationException("status", f"pact {pact_id} is {pact.status}, not active")
        pact.shield_active = True
        logger.info(f"Shield raised on pact {pact_id} by user {user_id}")
        return self.pact_repo.update(self.db, pact)

    def evaluate_pact(self, pact_id: int, today: Optional[date] = None, now: Optional[datetime] = None) -> Pact:
        now = now or datetime.now()
        pact = self.get_pact(pact_id)
        self._evaluate_and_log(pact, today or now.date(), now)
        return self.pact_repo.update(self.db, pact)

    def evaluate_active_pacts(self, today: Optional[date] = None, now: Optional[datetime] = None) -> dict:
        """Nightly pass over every active pact. Returns outcome counts."""
        now = now or datetime.now()
        today = today or now.date()
        counts = {"extended": 0, "shielded": 0, "broken": 0}
        for pact in self.pact_repo.get_active(self.db):
            outcome = self._evaluate_and_log(pact, today, now)
            if outcome:
                counts[outcome] += 1
        self.db.commit()
        return counts

    def _evaluate_and_log(self, pact: Pact, today: date, now: datetime) -> Optional[str]:
        outcome = self.evaluate_day(pact, today, now)
        if outcome == "shielded":
            logger.info(f"Shield consumed on pact {pact.id}, streak kept at {pact.current_streak}")
        elif outcome == "broken":
            logger.info(f"Pact {pact.id} broken by user {pact.broken_by_user_id}")
        return outcome
