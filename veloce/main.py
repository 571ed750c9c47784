from fastapi import FastAPI, Depends, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from typing import List, Optional
import logging
import os
from pathlib import Path

from veloce.database import engine, get_db, Base
from veloce import models  # noqa: F401  registers all models with Base
from veloce.schemas import (
    TaskCreate, TaskUpdate, TaskResponse, TaskInsightsResponse, TaskCompletionResponse, BrainDumpRequest,
    GoalCreate, GoalResponse, GoalProgressUpdate, GoalInsightsResponse, GoalSummaryResponse,
    MilestoneCreate, MilestoneResponse, MilestoneSummaryResponse,
    LinkCreate, LinkResponse,
    ChallengeResponse, ProgressUpdate,
    BossResponse, BossStatusResponse, BossDamage,
    PowerUpResponse, PowerUpGrant, PowerUpSummaryResponse,
    PactCreate, PactResponse, PactMemberAction, PactProgressRecord, PactStatusResponse,
    PactEvaluationResponse,
    SettingsUpdate, SettingsResponse,
    LevelResponse, VelocityResponse, StreakResponse,
    StrategyRequest, StrategyResponse
)
from veloce.auth import verify_api_key
from veloce.enums import GoalTimeframe, PowerUpType
from veloce.exceptions import (
    VeloceException, NotPactMemberException, InvalidEnumValueException, ValidationException
)
from veloce.repositories.settings_repository import SettingsRepository
from veloce.services.task_service import TaskService
from veloce.services.goal_service import GoalService
from veloce.services.milestone_service import MilestoneService
from veloce.services.challenge_service import ChallengeService
from veloce.services.boss_service import BossService
from veloce.services.power_up_service import PowerUpService
from veloce.services.pact_service import PactService
from veloce.services.points_service import PointsService
from veloce.services.stats_service import StatsService
from veloce.services.strategy_service import StrategyService
from veloce.services.scheduler_service import start_scheduler, stop_scheduler

from veloce.constants import (
    DEFAULT_LOG_DIRECTORY_PROD, DEFAULT_LOG_DIRECTORY_DEV, DEFAULT_LOG_FILE, CORS_ALLOWED_ORIGINS
)

LOG_DIR = os.getenv("VELOCE_LOG_DIR", DEFAULT_LOG_DIRECTORY_PROD)
LOG_FILE = os.getenv("VELOCE_LOG_FILE", DEFAULT_LOG_FILE)

# Create log directory if it doesn't exist (for development)
try:
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / LOG_FILE
except PermissionError:
    # Fallback to local directory if no permissions for /var/log
    LOG_DIR = DEFAULT_LOG_DIRECTORY_DEV
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / LOG_FILE

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(log_path),
        logging.StreamHandler()  # Also log to console
    ]
)

logger = logging.getLogger("veloce")

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Veloce API",
    description="Gamified task and goal tracker with bosses, challenges and accountability pacts",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _http_error(e: VeloceException) -> HTTPException:
    """Translate a service exception into the matching HTTP error"""
    if isinstance(e, NotPactMemberException):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if isinstance(e, (InvalidEnumValueException, ValidationException)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# Startup event
@app.on_event("startup")
async def startup_event():
    logger.info(f"Veloce API started. Logging to: {log_path}")
    start_scheduler()

# Shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down Veloce API")
    stop_scheduler()

# Health check (no auth required)
@app.get("/")
async def root():
    return {"message": "Veloce API", "status": "active"}


# === Tasks ===

@app.get("/api/tasks", response_model=List[TaskResponse], dependencies=[Depends(verify_api_key)])
async def get_tasks(skip: int = 0, limit: int = 100, db: Session = Depends(get_db)):
    """Get all tasks"""
    return TaskService(db).get_tasks(skip, limit)

@app.post("/api/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED, dependencies=[Depends(verify_api_key)])
async def create_task(task: TaskCreate, db: Session = Depends(get_db)):
    """Create a new task"""
    return TaskService(db).create_task(task)

@app.post("/api/tasks/brain-dump", response_model=List[TaskResponse], status_code=status.HTTP_201_CREATED, dependencies=[Depends(verify_api_key)])
async def brain_dump(request: BrainDumpRequest, db: Session = Depends(get_db)):
    """Create one task per line; a leading *, ** or *** sets the priority"""
    return TaskService(db).create_from_text(request.text.splitlines())

@app.get("/api/tasks/{task_id}", response_model=TaskResponse, dependencies=[Depends(verify_api_key)])
async def get_task(task_id: int, db: Session = Depends(get_db)):
    """Get a specific task"""
    try:
        return TaskService(db).get_task(task_id)
    except VeloceException as e:
        raise _http_error(e)

@app.put("/api/tasks/{task_id}", response_model=TaskResponse, dependencies=[Depends(verify_api_key)])
async def update_task(task_id: int, task_update: TaskUpdate, db: Session = Depends(get_db)):
    """Update a task"""
    try:
        return TaskService(db).update_task(task_id, task_update)
    except VeloceException as e:
        raise _http_error(e)

@app.delete("/api/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(verify_api_key)])
async def delete_task(task_id: int, db: Session = Depends(get_db)):
    """Delete a task"""
    try:
        TaskService(db).delete_task(task_id)
    except VeloceException as e:
        raise _http_error(e)

@app.get("/api/tasks/{task_id}/insights", response_model=TaskInsightsResponse, dependencies=[Depends(verify_api_key)])
async def get_task_insights(task_id: int, db: Session = Depends(get_db)):
    """Potential points, energy state and display values of a task"""
    service = TaskService(db)
    try:
        insights = service.describe(service.get_task(task_id))
    except VeloceException as e:
        raise _http_error(e)
    insights["energy_state"] = insights["energy_state"].value
    return insights

@app.post("/api/tasks/{task_id}/complete", response_model=TaskCompletionResponse, dependencies=[Depends(verify_api_key)])
async def complete_task(task_id: int, db: Session = Depends(get_db)):
    """Complete a task and apply points, boss damage, challenges and streak"""
    try:
        return TaskService(db).complete_task(task_id)
    except VeloceException as e:
        raise _http_error(e)

@app.post("/api/tasks/{task_id}/uncomplete", response_model=TaskResponse, dependencies=[Depends(verify_api_key)])
async def uncomplete_task(task_id: int, db: Session = Depends(get_db)):
    """Reopen a completed task"""
    try:
        return TaskService(db).uncomplete_task(task_id)
    except VeloceException as e:
        raise _http_error(e)

@app.get("/api/tasks/{task_id}/next-occurrence", dependencies=[Depends(verify_api_key)])
async def get_next_occurrence(task_id: int, db: Session = Depends(get_db)):
    """Next scheduled date of a recurring task"""
    service = TaskService(db)
    try:
        task = service.get_task(task_id)
        next_date = service.next_occurrence(task)
    except VeloceException as e:
        raise _http_error(e)
    return {
        "task_id": task_id,
        "next_occurrence": next_date.isoformat() if next_date else None
    }

@app.post("/api/tasks/{task_id}/strategy", response_model=StrategyResponse, dependencies=[Depends(verify_api_key)])
async def get_task_strategy(task_id: int, request: StrategyRequest, db: Session = Depends(get_db)):
    """Strategy from the submitted advice payload, or the offline fallback"""
    try:
        strategy = StrategyService(db).strategy_for_task(task_id, request.raw_response)
    except VeloceException as e:
        raise _http_error(e)
    return strategy.model_copy(update={
        "formatted": StrategyService.formatted_strategy(strategy),
        "summary": StrategyService.brief_summary(strategy),
    })


# === Goals ===

@app.get("/api/goals", response_model=List[GoalResponse], dependencies=[Depends(verify_api_key)])
async def get_goals(timeframe: Optional[GoalTimeframe] = None, db: Session = Depends(get_db)):
    """Get all goals, optionally of one timeframe"""
    return GoalService(db).get_goals(timeframe)

@app.post("/api/goals", response_model=GoalResponse, status_code=status.HTTP_201_CREATED, dependencies=[Depends(verify_api_key)])
async def create_goal(goal: GoalCreate, db: Session = Depends(get_db)):
    """Create a new goal"""
    return GoalService(db).create_goal(goal)

@app.get("/api/goals/summary", response_model=GoalSummaryResponse, dependencies=[Depends(verify_api_key)])
async def get_goal_summary(days: int = 7, db: Session = Depends(get_db)):
    """Aggregates over all goals"""
    return GoalService(db).collection_summary(days=days)

@app.get("/api/goals/{goal_id}", response_model=GoalResponse, dependencies=[Depends(verify_api_key)])
async def get_goal(goal_id: int, db: Session = Depends(get_db)):
    """Get a specific goal"""
    try:
        return GoalService(db).get_goal(goal_id)
    except VeloceException as e:
        raise _http_error(e)

@app.get("/api/goals/{goal_id}/insights", response_model=GoalInsightsResponse, dependencies=[Depends(verify_api_key)])
async def get_goal_insights(goal_id: int, db: Session = Depends(get_db)):
    """SMART score, days remaining and completion points of a goal"""
    service = GoalService(db)
    try:
        insights = service.describe(service.get_goal(goal_id))
        insights["linked_tasks_progress"] = service.linked_tasks_progress(goal_id)
    except VeloceException as e:
        raise _http_error(e)
    return insights

@app.put("/api/goals/{goal_id}/progress", response_model=GoalResponse, dependencies=[Depends(verify_api_key)])
async def update_goal_progress(goal_id: int, update: GoalProgressUpdate, db: Session = Depends(get_db)):
    """Set goal progress; reaching 100% completes the goal"""
    try:
        return GoalService(db).set_progress(goal_id, update.progress)
    except VeloceException as e:
        raise _http_error(e)

@app.post("/api/goals/{goal_id}/complete", response_model=GoalResponse, dependencies=[Depends(verify_api_key)])
async def complete_goal(goal_id: int, db: Session = Depends(get_db)):
    """Mark a goal completed"""
    try:
        return GoalService(db).complete_goal(goal_id)
    except VeloceException as e:
        raise _http_error(e)

@app.post("/api/goals/{goal_id}/check-in", response_model=GoalResponse, dependencies=[Depends(verify_api_key)])
async def check_in_goal(goal_id: int, db: Session = Depends(get_db)):
    """Weekly goal check-in"""
    try:
        return GoalService(db).check_in(goal_id)
    except VeloceException as e:
        raise _http_error(e)


# === Milestones ===

@app.get("/api/goals/{goal_id}/milestones", response_model=MilestoneSummaryResponse, dependencies=[Depends(verify_api_key)])
async def get_milestones(goal_id: int, db: Session = Depends(get_db)):
    """Milestones of a goal with their progress"""
    try:
        return MilestoneService(db).summary(goal_id)
    except VeloceException as e:
        raise _http_error(e)

@app.post("/api/goals/{goal_id}/milestones", response_model=MilestoneResponse, status_code=status.HTTP_201_CREATED, dependencies=[Depends(verify_api_key)])
async def add_milestone(goal_id: int, milestone: MilestoneCreate, db: Session = Depends(get_db)):
    """Add a milestone to a goal"""
    try:
        return MilestoneService(db).add_milestone(goal_id, milestone)
    except VeloceException as e:
        raise _http_error(e)

@app.post("/api/milestones/{milestone_id}/toggle", response_model=MilestoneResponse, dependencies=[Depends(verify_api_key)])
async def toggle_milestone(milestone_id: int, db: Session = Depends(get_db)):
    """Toggle milestone completion"""
    try:
        return MilestoneService(db).toggle_milestone(milestone_id)
    except VeloceException as e:
        raise _http_error(e)


# === Goal-task links ===

@app.get("/api/goals/{goal_id}/links", response_model=List[LinkResponse], dependencies=[Depends(verify_api_key)])
async def get_goal_links(goal_id: int, db: Session = Depends(get_db)):
    """Task links of a goal"""
    try:
        return GoalService(db).get_links(goal_id)
    except VeloceException as e:
        raise _http_error(e)

@app.post("/api/goals/{goal_id}/links", response_model=LinkResponse, status_code=status.HTTP_201_CREATED, dependencies=[Depends(verify_api_key)])
async def link_task(goal_id: int, link: LinkCreate, db: Session = Depends(get_db)):
    """Link a task to a goal; suggested links wait for approval"""
    try:
        return GoalService(db).link_task(
            goal_id, link.task_id, link.link_type, link.milestone_id, link.suggested
        )
    except VeloceException as e:
        raise _http_error(e)

@app.post("/api/links/{link_id}/approve", response_model=LinkResponse, dependencies=[Depends(verify_api_key)])
async def approve_link(link_id: int, db: Session = Depends(get_db)):
    try:
        return GoalService(db).approve_link(link_id)
    except VeloceException as e:
        raise _http_error(e)

@app.post("/api/links/{link_id}/reject", response_model=LinkResponse, dependencies=[Depends(verify_api_key)])
async def reject_link(link_id: int, db: Session = Depends(get_db)):
    try:
        return GoalService(db).reject_link(link_id)
    except VeloceException as e:
        raise _http_error(e)


# === Daily challenges ===

@app.get("/api/challenges/today", response_model=List[ChallengeResponse], dependencies=[Depends(verify_api_key)])
async def get_today_challenges(db: Session = Depends(get_db)):
    """Today's challenges (empty until generated)"""
    return ChallengeService(db).get_today()

@app.post("/api/challenges/generate", response_model=List[ChallengeResponse], dependencies=[Depends(verify_api_key)])
async def generate_challenges(db: Session = Depends(get_db)):
    """Generate today's challenges if they don't exist yet"""
    return ChallengeService(db).generate_daily_challenges()

@app.put("/api/challenges/{challenge_id}/progress", response_model=ChallengeResponse, dependencies=[Depends(verify_api_key)])
async def update_challenge_progress(challenge_id: int, update: ProgressUpdate, db: Session = Depends(get_db)):
    """Set challenge progress; the value is clamped to the target"""
    try:
        return ChallengeService(db).record_progress(challenge_id, update.value)
    except VeloceException as e:
        raise _http_error(e)


# === Weekly boss ===

@app.get("/api/boss/current", response_model=BossStatusResponse, dependencies=[Depends(verify_api_key)])
async def get_current_boss(db: Session = Depends(get_db)):
    """This week's boss with its health and countdown"""
    service = BossService(db)
    try:
        boss = service.require_current_boss()
    except VeloceException as e:
        raise _http_error(e)
    return {**BossResponse.model_validate(boss).model_dump(), **service.describe(boss)}

@app.post("/api/boss/generate", response_model=BossResponse, dependencies=[Depends(verify_api_key)])
async def generate_boss(db: Session = Depends(get_db)):
    """Spawn this week's boss if it doesn't exist yet"""
    return BossService(db).generate_weekly_boss()

@app.post("/api/boss/damage", response_model=BossResponse, dependencies=[Depends(verify_api_key)])
async def damage_boss(damage: BossDamage, db: Session = Depends(get_db)):
    """Deal damage to this week's boss"""
    service = BossService(db)
    try:
        service.require_current_boss()
    except VeloceException as e:
        raise _http_error(e)
    return service.damage_current_boss(damage.amount, critical=damage.critical)


# === Power-ups ===

@app.get("/api/power-ups", response_model=PowerUpSummaryResponse, dependencies=[Depends(verify_api_key)])
async def get_power_ups(db: Session = Depends(get_db)):
    """Inventory and active power-ups"""
    return PowerUpService(db).summary()

@app.post("/api/power-ups/grant", response_model=PowerUpResponse, dependencies=[Depends(verify_api_key)])
async def grant_power_up(grant: PowerUpGrant, db: Session = Depends(get_db)):
    """Add power-ups to inventory (capped per type)"""
    return PowerUpService(db).grant(grant.power_up_type, grant.amount, grant.source)

@app.post("/api/power-ups/{power_up_type}/activate", response_model=PowerUpResponse, dependencies=[Depends(verify_api_key)])
async def activate_power_up(power_up_type: PowerUpType, db: Session = Depends(get_db)):
    """Activate a power-up; does nothing if none is left or it is already active"""
    try:
        return PowerUpService(db).use(power_up_type)
    except VeloceException as e:
        raise _http_error(e)


# === Pacts ===

@app.get("/api/pacts", response_model=List[PactResponse], dependencies=[Depends(verify_api_key)])
async def get_pacts(user_id: int, db: Session = Depends(get_db)):
    """Pacts a user is part of"""
    return PactService(db).get_pacts_for_user(user_id)

@app.post("/api/pacts", response_model=PactResponse, status_code=status.HTTP_201_CREATED, dependencies=[Depends(verify_api_key)])
async def create_pact(pact: PactCreate, db: Session = Depends(get_db)):
    """Propose a pact to a partner"""
    try:
        return PactService(db).create_pact(
            pact.initiator_id, pact.partner_id, pact.commitment_type,
            pact.target_value, pact.custom_description
        )
    except VeloceException as e:
        raise _http_error(e)

@app.post("/api/pacts/evaluate", response_model=PactEvaluationResponse, dependencies=[Depends(verify_api_key)])
async def evaluate_pacts(db: Session = Depends(get_db)):
    """Evaluate today for every active pact"""
    return PactService(db).evaluate_active_pacts()

@app.get("/api/pacts/{pact_id}", response_model=PactResponse, dependencies=[Depends(verify_api_key)])
async def get_pact(pact_id: int, db: Session = Depends(get_db)):
    try:
        return PactService(db).get_pact(pact_id)
    except VeloceException as e:
        raise _http_error(e)

@app.get("/api/pacts/{pact_id}/status", response_model=PactStatusResponse, dependencies=[Depends(verify_api_key)])
async def get_pact_status(pact_id: int, user_id: int, db: Session = Depends(get_db)):
    """Today's pact state as seen by one member"""
    service = PactService(db)
    try:
        pact = service.get_pact(pact_id)
        user_status = service.status_for_user(pact, user_id)
    except VeloceException as e:
        raise _http_error(e)
    streak = pact.current_streak or 0
    return {
        "pact_id": pact.id,
        "user_status": user_status.value,
        "status_text": user_status.display_text,
        "commitment_description": service.commitment_description(pact),
        "next_milestone": service.next_milestone(streak),
        "days_until_next_milestone": service.days_until_next_milestone(streak),
    }

@app.post("/api/pacts/{pact_id}/accept", response_model=PactResponse, dependencies=[Depends(verify_api_key)])
async def accept_pact(pact_id: int, action: PactMemberAction, db: Session = Depends(get_db)):
    try:
        return PactService(db).accept_pact(pact_id, action.user_id)
    except VeloceException as e:
        raise _http_error(e)

@app.post("/api/pacts/{pact_id}/end", response_model=PactResponse, dependencies=[Depends(verify_api_key)])
async def end_pact(pact_id: int, action: PactMemberAction, db: Session = Depends(get_db)):
    try:
        return PactService(db).end_pact(pact_id, action.user_id)
    except VeloceException as e:
        raise _http_error(e)

@app.post("/api/pacts/{pact_id}/progress", response_model=PactResponse, dependencies=[Depends(verify_api_key)])
async def record_pact_progress(pact_id: int, record: PactProgressRecord, db: Session = Depends(get_db)):
    """Report a member's progress for today"""
    try:
        return PactService(db).record_progress(pact_id, record.user_id, record.current_value)
    except VeloceException as e:
        raise _http_error(e)

@app.post("/api/pacts/{pact_id}/shield", response_model=PactResponse, dependencies=[Depends(verify_api_key)])
async def activate_pact_shield(pact_id: int, action: PactMemberAction, db: Session = Depends(get_db)):
    """Raise a shield that absorbs one missed day"""
    try:
        return PactService(db).activate_shield(pact_id, action.user_id)
    except VeloceException as e:
        raise _http_error(e)

@app.post("/api/pacts/{pact_id}/evaluate", response_model=PactResponse, dependencies=[Depends(verify_api_key)])
async def evaluate_pact(pact_id: int, db: Session = Depends(get_db)):
    try:
        return PactService(db).evaluate_pact(pact_id)
    except VeloceException as e:
        raise _http_error(e)


# === Stats ===

@app.get("/api/stats/level", response_model=LevelResponse, dependencies=[Depends(verify_api_key)])
async def get_level(db: Session = Depends(get_db)):
    """Point balance and level"""
    return PointsService(db).get_level_summary()

@app.get("/api/stats/velocity", response_model=VelocityResponse, dependencies=[Depends(verify_api_key)])
async def get_velocity(db: Session = Depends(get_db)):
    """This week's velocity score"""
    score = StatsService(db).get_velocity_score()
    score["tier"] = score["tier"].value
    return score

@app.get("/api/stats/streak", response_model=StreakResponse, dependencies=[Depends(verify_api_key)])
async def get_streak(db: Session = Depends(get_db)):
    """Daily-goal streak and today's completions"""
    return StatsService(db).get_summary()


# === Settings ===

@app.get("/api/settings", response_model=SettingsResponse, dependencies=[Depends(verify_api_key)])
async def get_settings(db: Session = Depends(get_db)):
    """Get current settings"""
    return SettingsRepository.get(db)

@app.put("/api/settings", response_model=SettingsResponse, dependencies=[Depends(verify_api_key)])
async def update_settings(settings_update: SettingsUpdate, db: Session = Depends(get_db)):
    """Update settings"""
    settings = SettingsRepository.get(db)
    for key, value in settings_update.model_dump(exclude_unset=True).items():
        setattr(settings, key, value)
    return SettingsRepository.update(db, settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("veloce.main:app", host="0.0.0.0", port=8000, reload=False)
