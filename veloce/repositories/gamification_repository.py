"""
Gamification repository - Data access layer for daily challenges,
weekly bosses and power-ups.
"""
from datetime import date, datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import and_

from veloce.models import DailyChallenge, WeeklyBoss, PowerUp


class ChallengeRepository:
    """Repository for DailyChallenge data access"""

    @staticmethod
    def get_by_id(db: Session, challenge_id: int) -> Optional[DailyChallenge]:
        """Get challenge by ID"""
        return db.query(DailyChallenge).filter(DailyChallenge.id == challenge_id).first()

    @staticmethod
    def get_for_date(db: Session, challenge_date: date) -> List[DailyChallenge]:
        """Get the challenges generated for a day"""
        return db.query(DailyChallenge).filter(
            DailyChallenge.challenge_date == challenge_date
        ).order_by(DailyChallenge.id).all()

    @staticmethod
    def get_open_for_date(db: Session, challenge_date: date) -> List[DailyChallenge]:
        """Get the not yet completed challenges of a day"""
        return db.query(DailyChallenge).filter(
            and_(
                DailyChallenge.challenge_date == challenge_date,
                DailyChallenge.is_completed == False
            )
        ).order_by(DailyChallenge.id).all()

    @staticmethod
    def create_many(db: Session, challenges: List[DailyChallenge]) -> List[DailyChallenge]:
        """Create several challenges in one commit"""
        db.add_all(challenges)
        db.commit()
        for challenge in challenges:
            db.refresh(challenge)
        return challenges

    @staticmethod
    def update(db: Session, challenge: DailyChallenge) -> DailyChallenge:
        """Update existing challenge"""
        db.commit()
        db.refresh(challenge)
        return challenge


class BossRepository:
    """Repository for WeeklyBoss data access"""

    @staticmethod
    def get_by_id(db: Session, boss_id: int) -> Optional[WeeklyBoss]:
        """Get boss by ID"""
        return db.query(WeeklyBoss).filter(WeeklyBoss.id == boss_id).first()

    @staticmethod
    def get_for_week(db: Session, week_start: datetime) -> Optional[WeeklyBoss]:
        """Get the boss of the week starting at week_start"""
        return db.query(WeeklyBoss).filter(WeeklyBoss.week_start == week_start).first()

    @staticmethod
    def get_history(db: Session, limit: int = 10) -> List[WeeklyBoss]:
        """Get the most recent bosses, newest first"""
        return db.query(WeeklyBoss).order_by(WeeklyBoss.week_start.desc()).limit(limit).all()

    @staticmethod
    def create(db: Session, boss: WeeklyBoss) -> WeeklyBoss:
        """Create a new boss"""
        db.add(boss)
        db.commit()
        db.refresh(boss)
        return boss

    @staticmethod
    def update(db: Session, boss: WeeklyBoss) -> WeeklyBoss:
        """Update existing boss"""
        db.commit()
        db.refresh(boss)
        return boss


class PowerUpRepository:
    """Repository for PowerUp data access"""

    @staticmethod
    def get_by_type(db: Session, power_up_type: str) -> Optional[PowerUp]:
        """Get the inventory row of a power-up type"""
        return db.query(PowerUp).filter(PowerUp.power_up_type == power_up_type).first()

    @staticmethod
    def get_all(db: Session) -> List[PowerUp]:
        """Get the whole inventory"""
        return db.query(PowerUp).order_by(PowerUp.id).all()

    @staticmethod
    def get_active(db: Session) -> List[PowerUp]:
        """Get power-ups flagged active"""
        return db.query(PowerUp).filter(PowerUp.is_active == True).all()

    @staticmethod
    def create(db: Session, power_up: PowerUp) -> PowerUp:
        """Create a new inventory row"""
        db.add(power_up)
        db.commit()
        db.refresh(power_up)
        return power_up

    @staticmethod
    def update(db: Session, power_up: PowerUp) -> PowerUp:
        """Update existing inventory row"""
        db.commit()
        db.refresh(power_up)
        return power_up
