"""
Pact repository - Data access layer for Pact model.
"""
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import or_

from veloce.models import Pact
from veloce.enums import PactStatus


class PactRepository:
    """Repository for Pact data access"""

    @staticmethod
    def get_by_id(db: Session, pact_id: int) -> Optional[Pact]:
        """Get pact by ID"""
        return db.query(Pact).filter(Pact.id == pact_id).first()

    @staticmethod
    def get_active(db: Session) -> List[Pact]:
        """Get all pacts in the active lifecycle state"""
        return db.query(Pact).filter(Pact.status == PactStatus.ACTIVE.value).all()

    @staticmethod
    def get_for_user(db: Session, user_id: int) -> List[Pact]:
        """Get pacts where the user is initiator or partner"""
        return db.query(Pact).filter(
            or_(Pact.initiator_id == user_id, Pact.partner_id == user_id)
        ).order_by(Pact.id).all()

    @staticmethod
    def create(db: Session, pact: Pact) -> Pact:
        """Create a new pact"""
        db.add(pact)
        db.commit()
        db.refresh(pact)
        return pact

    @staticmethod
    def update(db: Session, pact: Pact) -> Pact:
        """Update existing pact"""
        db.commit()
        db.refresh(pact)
        return pact
