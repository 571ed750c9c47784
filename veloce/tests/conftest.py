"""
Shared fixtures for the Veloce test suite.
Every test gets a fresh in-memory SQLite database and a pinned clock.
"""
import os

# The application module creates its tables at import time
os.environ.setdefault("VELOCE_DB_URL", "sqlite://")
os.environ.setdefault("VELOCE_LOG_DIR", "./logs")

import pytest
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from veloce.database import Base
from veloce.models import Task, Goal, Settings, UserStats
from veloce.repositories.settings_repository import SettingsRepository

# Wednesday morning
FIXED_NOW = datetime(2025, 1, 15, 10, 0, 0)


@pytest.fixture
def db_session():
    """Fresh database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def default_settings(db_session) -> Settings:
    return SettingsRepository.get(db_session)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def today(now):
    return now.date()


@pytest.fixture
def yesterday(today):
    return today - timedelta(days=1)


def create_task(db_session, **kwargs) -> Task:
    """Persist a task with sensible defaults"""
    values = {"title": "Test task", "star_rating": 2, "is_completed": False, "points_earned": 0}
    values.update(kwargs)
    task = Task(**values)
    db_session.add(task)
    db_session.commit()
    db_session.refresh(task)
    return task


def create_goal(db_session, **kwargs) -> Goal:
    """Persist an open goal with sensible defaults"""
    values = {
        "title": "Test goal",
        "progress": 0.0,
        "is_completed": False,
        "check_in_streak": 0,
        "milestone_count": 0,
        "completed_milestone_count": 0,
    }
    values.update(kwargs)
    goal = Goal(**values)
    db_session.add(goal)
    db_session.commit()
    db_session.refresh(goal)
    return goal


def set_points(db_session, total_points: int) -> UserStats:
    stats = db_session.query(UserStats).first()
    if not stats:
        stats = UserStats()
        db_session.add(stats)
    stats.total_points = total_points
    db_session.commit()
    db_session.refresh(stats)
    return stats
