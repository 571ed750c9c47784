"""
Background scheduler for generation jobs
Handles:
- Daily challenge generation
- Weekly boss generation
- Nightly roll (pact evaluation and the daily-goal streak)
- Power-up expiry sweep
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from veloce.database import SessionLocal
from veloce.repositories.settings_repository import SettingsRepository
from veloce.services.boss_service import BossService
from veloce.services.challenge_service import ChallengeService
from veloce.services.pact_service import PactService
from veloce.services.power_up_service import PowerUpService
from veloce.services.stats_service import StatsService
from veloce.constants import DAILY_ROLL_TIME

logger = logging.getLogger("veloce.scheduler")

# Create scheduler instance
scheduler = AsyncIOScheduler()


def _normalize_time(time_str: Optional[str]) -> str:
    """
    Normalize a time to HHMM.
    Examples: '06:00' -> '0600', '0600' -> '0600', None -> '0000'
    """
    if not time_str:
        return "0000"
    return time_str.replace(":", "")


def generate_challenges(db: Session, now: Optional[datetime] = None) -> int:
    """Create today's challenges if they are missing. Returns how many exist."""
    settings = SettingsRepository.get(db)
    if not settings.auto_generation_enabled:
        return 0
    challenges = ChallengeService(db).generate_daily_challenges(now)
    return len(challenges)


def generate_boss(db: Session, now: Optional[datetime] = None) -> bool:
    """Create this week's boss if it is missing. Returns True if one exists."""
    settings = SettingsRepository.get(db)
    if not settings.auto_generation_enabled:
        return False
    BossService(db).generate_weekly_boss(now)
    return True


def nightly_roll(db: Session, now: Optional[datetime] = None) -> bool:
    """
    Close out yesterday once the roll time has passed: evaluate every active
    pact and settle the daily-goal streak.

    Returns:
        True if the roll ran
    """
    now = now or datetime.now()
    settings = SettingsRepository.get(db)
    if not settings.auto_generation_enabled:
        return False

    today = now.date()
    current_time = now.strftime("%H%M")
    target_time = _normalize_time(settings.nightly_roll_time or DAILY_ROLL_TIME)
    if int(current_time) < int(target_time) or settings.last_nightly_roll_date == today:
        return False

    yesterday = today - timedelta(days=1)
    logger.info(f"Executing nightly roll for {yesterday} (Current: {current_time}, Target: {target_time})")

    counts = PactService(db).evaluate_active_pacts(today=yesterday, now=now)
    logger.info(
        f"Pacts evaluated: {counts['extended']} extended, "
        f"{counts['shielded']} shielded, {counts['broken']} broken"
    )
    StatsService(db).roll_day(yesterday, now)

    settings.last_nightly_roll_date = today
    SettingsRepository.update(db, settings)
    return True


def expire_power_ups(db: Session, now: Optional[datetime] = None) -> int:
    return PowerUpService(db).expire_power_ups(now)


async def run_daily_challenges():
    """Job: daily challenge generation"""
    db = SessionLocal()
    try:
        generate_challenges(db)
    except Exception as e:
        logger.error(f"Scheduler Error (Daily Challenges): {e}")
    finally:
        db.close()


async def run_weekly_boss():
    """Job: weekly boss generation"""
    db = SessionLocal()
    try:
        generate_boss(db)
    except Exception as e:
        logger.error(f"Scheduler Error (Weekly Boss): {e}")
    finally:
        db.close()


async def run_nightly_roll():
    """Job: nightly roll"""
    db = SessionLocal()
    try:
        nightly_roll(db)
    except Exception as e:
        logger.error(f"Scheduler Error (Nightly Roll): {e}")
    finally:
        db.close()


async def run_power_up_expiry():
    """Job: power-up expiry sweep"""
    db = SessionLocal()
    try:
        expire_power_ups(db)
    except Exception as e:
        logger.error(f"Scheduler Error (Power-Up Expiry): {e}")
    finally:
        db.close()


def start_scheduler():
    """Start the scheduler"""
    if not scheduler.running:
        # Every job runs each minute and decides for itself whether there is work
        trigger = CronTrigger(minute='*')

        scheduler.add_job(run_daily_challenges, trigger, id='daily_challenges', replace_existing=True)
        scheduler.add_job(run_weekly_boss, trigger, id='weekly_boss', replace_existing=True)
        scheduler.add_job(run_nightly_roll, trigger, id='nightly_roll', replace_existing=True)
        scheduler.add_job(run_power_up_expiry, trigger, id='power_up_expiry', replace_existing=True)

        scheduler.start()
        logger.info(">>> APScheduler STARTED <<<")
        logger.info(f"Scheduled jobs: {[job.id for job in scheduler.get_jobs()]}")


def stop_scheduler():
    """Stop the scheduler"""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("APScheduler stopped")
