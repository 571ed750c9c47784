"""
Settings repository - Data access layer for Settings and UserStats models.
Both tables hold a single row that is created with defaults on first access.
"""
from sqlalchemy.orm import Session
from veloce.models import Settings, UserStats


class SettingsRepository:
    """Repository for Settings data access"""

    @staticmethod
    def get(db: Session) -> Settings:
        """
        Get settings (creates with defaults if not exists).

        Returns:
            Settings object
        """
        settings = db.query(Settings).first()
        if not settings:
            settings = Settings()
            db.add(settings)
            db.commit()
            db.refresh(settings)
        return settings

    @staticmethod
    def update(db: Session, settings: Settings) -> Settings:
        """Persist changes made to the settings row"""
        db.commit()
        db.refresh(settings)
        return settings


class UserStatsRepository:
    """Repository for UserStats data access"""

    @staticmethod
    def get(db: Session) -> UserStats:
        """Get user stats (creates an empty row if not exists)"""
        stats = db.query(UserStats).first()
        if not stats:
            stats = UserStats()
            db.add(stats)
            db.commit()
            db.refresh(stats)
        return stats

    @staticmethod
    def update(db: Session, stats: UserStats) -> UserStats:
        """Persist changes made to the stats row"""
        db.commit()
        db.refresh(stats)
        return stats
