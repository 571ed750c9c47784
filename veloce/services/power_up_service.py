"""
Power-up service.
Handles the inventory of consumable power-ups and their activation windows.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional
from sqlalchemy.orm import Session

from veloce.models import PowerUp
from veloce.enums import PowerUpType, PowerUpSource
from veloce.exceptions import PowerUpNotFoundException
from veloce.repositories.gamification_repository import PowerUpRepository
from veloce.services.date_service import DateService

logger = logging.getLogger("veloce.gamification")


class PowerUpService:
    """Service for power-up inventory"""

    def __init__(self, db: Session):
        self.db = db
        self.power_up_repo = PowerUpRepository()
        self.date_service = DateService()

    # === Single power-up ===

    @staticmethod
    def is_expired(power_up: PowerUp, now: datetime) -> bool:
        if power_up.expires_at is None:
            return False
        return now > power_up.expires_at

    @staticmethod
    def can_use(power_up: PowerUp) -> bool:
        return (power_up.quantity or 0) > 0 and not power_up.is_active

    @staticmethod
    def activate(power_up: PowerUp, now: Optional[datetime] = None) -> bool:
        """
        Consume one unit and open the activation window.
        No-op when the inventory is empty or the power-up is already active.

        Returns:
            True if the power-up was activated
        """
        if not PowerUpService.can_use(power_up):
            return False
        now = now or datetime.now()
        duration = PowerUpType.parse(power_up.power_up_type).duration_seconds
        power_up.quantity -= 1
        power_up.is_active = True
        power_up.activated_at = now
        power_up.expires_at = now + timedelta(seconds=duration)
        return True

    @staticmethod
    def deactivate(power_up: PowerUp) -> None:
        power_up.is_active = False
        power_up.activated_at = None
        power_up.expires_at = None

    @staticmethod
    def check_expiration(power_up: PowerUp, now: Optional[datetime] = None) -> bool:
        """Deactivate once the window has passed. Returns True if it expired now."""
        if power_up.is_active and PowerUpService.is_expired(power_up, now or datetime.now()):
            PowerUpService.deactivate(power_up)
            return True
        return False

    @staticmethod
    def add_quantity(power_up: PowerUp, amount: int = 1) -> None:
        """Add to inventory, capped at the type's maximum"""
        max_quantity = PowerUpType.parse(power_up.power_up_type).max_quantity
        power_up.quantity = min((power_up.quantity or 0) + amount, max_quantity)

    @staticmethod
    def time_remaining_seconds(power_up: PowerUp, now: datetime) -> float:
        if power_up.expires_at is None:
            return 0.0
        return max(0.0, (power_up.expires_at - now).total_seconds())

    # === Inventory ===

    def get_inventory(self) -> List[PowerUp]:
        return self.power_up_repo.get_all(self.db)

    def power_up_of(self, power_up_type: PowerUpType) -> Optional[PowerUp]:
        return self.power_up_repo.get_by_type(self.db, power_up_type.value)

    def quantity(self, power_up_type: PowerUpType) -> int:
        power_up = self.power_up_of(power_up_type)
        return power_up.quantity if power_up else 0

    def is_active(self, power_up_type: PowerUpType, now: Optional[datetime] = None) -> bool:
        """Active and not yet past its window"""
        power_up = self.power_up_of(power_up_type)
        if not power_up:
            return False
        return bool(power_up.is_active) and not self.is_expired(power_up, now or datetime.now())

    def time_remaining(self, power_up_type: PowerUpType, now: Optional[datetime] = None) -> float:
        power_up = self.power_up_of(power_up_type)
        if not power_up or not power_up.is_active:
            return 0.0
        return self.time_remaining_seconds(power_up, now or datetime.now())

    def active_power_ups(self, now: Optional[datetime] = None) -> List[PowerUp]:
        now = now or datetime.now()
        return [p for p in self.power_up_repo.get_active(self.db) if not self.is_expired(p, now)]

    def total_count(self) -> int:
        return sum(p.quantity or 0 for p in self.get_inventory())

    def summary(self, now: Optional[datetime] = None) -> dict:
        """Inventory read model with per-type flags"""
        now = now or datetime.now()
        active = {}
        for power_up in self.active_power_ups(now):
            active[power_up.power_up_type] = self.date_service.format_short_countdown(
                self.time_remaining_seconds(power_up, now)
            )
        return {
            "items": self.get_inventory(),
            "total_count": self.total_count(),
            "active": active,
            "has_xp_boost": PowerUpType.XP_BOOST.value in active,
            "has_streak_shield": PowerUpType.STREAK_SHIELD.value in active,
            "has_goal_accelerator": PowerUpType.GOAL_ACCELERATOR.value in active,
            "has_focus_force_field": PowerUpType.FOCUS_FORCE_FIELD.value in active,
            "has_combo_keeper": PowerUpType.COMBO_KEEPER.value in active,
        }

    def grant(
        self,
        power_up_type: PowerUpType,
        amount: int = 1,
        source: Optional[PowerUpSource] = None
    ) -> PowerUp:
        """Add units to inventory, creating the row on first grant"""
        power_up = self.power_up_of(power_up_type)
        if not power_up:
            power_up = PowerUp(power_up_type=power_up_type.value, quantity=0, is_active=False)
            self.db.add(power_up)
        self.add_quantity(power_up, amount)
        if source is not None:
            power_up.earned_from = source.value
        return self.power_up_repo.update(self.db, power_up)

    def use(self, power_up_type: PowerUpType, now: Optional[datetime] = None) -> PowerUp:
        """
        Activate a power-up from inventory.

        Raises:
            PowerUpNotFoundException: If the type was never granted
        """
        now = now or datetime.now()
        power_up = self.power_up_of(power_up_type)
        if not power_up:
            raise PowerUpNotFoundException(power_up_type.value)

        # An elapsed window frees the slot before trying again
        self.check_expiration(power_up, now)
        if self.activate(power_up, now):
            logger.info(f"Power-up activated: {power_up_type.display_name} until {power_up.expires_at}")
        return self.power_up_repo.update(self.db, power_up)

    def consume_active(self, power_up_type: PowerUpType, now: Optional[datetime] = None) -> bool:
        """
        Spend an active power-up before its window ends (e.g. a streak
        shield absorbing a missed day).

        Returns:
            True if an active power-up was consumed
        """
        if not self.is_active(power_up_type, now):
            return False
        power_up = self.power_up_of(power_up_type)
        self.deactivate(power_up)
        self.power_up_repo.update(self.db, power_up)
        return True

    def expire_power_ups(self, now: Optional[datetime] = None) -> int:
        """Deactivate every power-up whose window has passed"""
        now = now or datetime.now()
        expired = 0
        for power_up in self.power_up_repo.get_active(self.db):
            if self.check_expiration(power_up, now):
                expired += 1
        if expired:
            self.db.commit()
            logger.info(f"Expired {expired} power-ups")
        return expired
