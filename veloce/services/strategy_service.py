"""
Task strategy service.
Turns a remote advice payload into a cached strategy for a task, or builds
the offline fallback for the task's type when the payload is unusable.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional
from pydantic import ValidationError
from sqlalchemy.orm import Session

from veloce.models import Task
from veloce.enums import TaskType
from veloce.schemas import StrategyPayload, StrategyResponse
from veloce.repositories.task_repository import TaskRepository
from veloce.exceptions import TaskNotFoundException
from veloce.services.date_service import DateService
from veloce.constants import STRATEGY_TTL_HOURS, FALLBACK_STRATEGY_TTL_HOURS

logger = logging.getLogger("veloce.strategy")


_FALLBACK_CONTENT = {
    TaskType.CREATE: {
        "overview": (
            "Creative work like '{title}' requires sustained focus and an uninterrupted "
            "environment. Block out distractions and commit to at least 90 minutes of deep "
            "work for optimal flow state."
        ),
        "key_points": [
            "Creative tasks need longer uninterrupted blocks",
            "Morning hours often yield best creative output",
            "Silence notifications and close unnecessary tabs",
            "Start with the easiest part to build momentum",
        ],
        "actionable_steps": [
            "Open the relevant document/tool (30 seconds)",
            "Write just the first line or make the first mark",
            "Set a 25-minute timer and work without stopping",
            "Take a 5-minute break, then continue",
        ],
        "potential_obstacles": [
            "Perfectionism - aim for 'good enough' first draft",
            "Research rabbit holes - set a research time limit",
        ],
    },
    TaskType.COMMUNICATE: {
        "overview": (
            "Communication tasks benefit from clear preparation and focused execution. "
            "Prepare your key points before starting to prevent unnecessary back-and-forth."
        ),
        "key_points": [
            "Clarity prevents follow-up clarifications",
            "Batch similar communications together",
            "Use templates for recurring messages",
            "Set specific response windows",
        ],
        "actionable_steps": [
            "List 3 key points you need to convey",
            "Draft the core message (under 5 minutes)",
            "Review for clarity and brevity",
            "Send and set a reminder for follow-up if needed",
        ],
        "potential_obstacles": [
            "Over-explaining - keep it concise",
            "Waiting for perfect timing - done is better than perfect",
        ],
    },
    TaskType.CONSUME: {
        "overview": (
            "Learning tasks like '{title}' require active engagement. Passive reading rarely "
            "sticks - take notes and create connections to existing knowledge."
        ),
        "key_points": [
            "Active engagement beats passive consumption",
            "Take brief notes to improve retention",
            "Connect new info to things you already know",
            "Teach someone else to solidify understanding",
        ],
        "actionable_steps": [
            "Set a clear learning objective before starting",
            "Read/watch for 20 minutes with focused attention",
            "Write 3 key takeaways in your own words",
            "Identify one immediate application",
        ],
        "potential_obstacles": [
            "Information overload - limit scope",
            "Passive consumption - engage actively",
        ],
    },
    TaskType.COORDINATE: {
        "overview": (
            "Administrative tasks are best batched together for efficiency. '{title}' "
            "benefits from quick, decisive action rather than overthinking."
        ),
        "key_points": [
            "Batch similar admin tasks together",
            "Set time limits to prevent overthinking",
            "Use checklists for recurring processes",
            "Automate or delegate when possible",
        ],
        "actionable_steps": [
            "Gather all necessary information first (2 min)",
            "Make decisions quickly - most are reversible",
            "Complete the task without interruption",
            "Document any follow-up items immediately",
        ],
        "potential_obstacles": [
            "Overthinking simple decisions",
            "Context switching - batch similar tasks",
        ],
    },
}


class StrategyService:
    """Service for per-task strategies"""

    def __init__(self, db: Session):
        self.db = db
        self.task_repo = TaskRepository()

    @staticmethod
    def parse_remote(
        task_id: int,
        raw_response: Optional[str],
        now: Optional[datetime] = None
    ) -> Optional[StrategyResponse]:
        """Parse the remote JSON payload. None if it is missing or malformed."""
        if not raw_response:
            return None
        try:
            payload = StrategyPayload.model_validate_json(raw_response)
        except ValidationError as e:
            logger.warning(f"Unusable strategy payload for task {task_id}: {e.error_count()} errors")
            return None

        now = now or datetime.now()
        return StrategyResponse(
            task_id=task_id,
            **payload.model_dump(),
            generated_at=now,
            expires_at=now + timedelta(hours=STRATEGY_TTL_HOURS),
            is_fallback=False,
        )

    @staticmethod
    def fallback(
        task_id: int,
        title: str,
        task_type: TaskType,
        now: Optional[datetime] = None
    ) -> StrategyResponse:
        """Offline strategy keyed on task type"""
        now = now or datetime.now()
        content = _FALLBACK_CONTENT[task_type]
        return StrategyResponse(
            task_id=task_id,
            overview=content["overview"].format(title=title),
            key_points=list(content["key_points"]),
            actionable_steps=list(content["actionable_steps"]),
            potential_obstacles=list(content["potential_obstacles"]),
            estimated_minutes=task_type.suggested_minutes,
            thought_process=f"Pattern-based strategy for {task_type.display_name} tasks (offline fallback)",
            generated_at=now,
            expires_at=now + timedelta(hours=FALLBACK_STRATEGY_TTL_HOURS),
            is_fallback=True,
        )

    @staticmethod
    def is_expired(strategy: StrategyResponse, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now()) > strategy.expires_at

    @staticmethod
    def formatted_strategy(strategy: StrategyResponse) -> str:
        result = strategy.overview + "\n\n"
        result += "Key Strategy Points:\n"
        result += "\n".join(f"• {point}" for point in strategy.key_points)
        result += "\n\nActionable Steps:\n"
        result += "\n".join(f"{i}. {step}" for i, step in enumerate(strategy.actionable_steps, start=1))
        if strategy.potential_obstacles:
            result += "\n\nWatch Out For:\n"
            result += "\n".join(f"⚠️ {obstacle}" for obstacle in strategy.potential_obstacles)
        return result

    @staticmethod
    def brief_summary(strategy: StrategyResponse) -> str:
        """First sentence of the overview, always ending with a period"""
        first_sentence = strategy.overview.split(". ")[0]
        return first_sentence if first_sentence.endswith(".") else first_sentence + "."

    @staticmethod
    def formatted_duration(strategy: StrategyResponse) -> Optional[str]:
        if strategy.estimated_minutes is None:
            return None
        return DateService.format_duration(strategy.estimated_minutes)

    def strategy_for_task(
        self,
        task_id: int,
        raw_response: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> StrategyResponse:
        """
        Strategy for a stored task. A usable remote payload is also written
        back to the task as its AI advice.
        """
        now = now or datetime.now()
        task = self.task_repo.get_by_id(self.db, task_id)
        if not task:
            raise TaskNotFoundException(task_id)

        strategy = self.parse_remote(task.id, raw_response, now)
        if strategy is None:
            task_type = TaskType.parse_optional(task.task_type) or TaskType.COORDINATE
            logger.info(f"Using fallback strategy for task {task.id} ({task_type.value})")
            return self.fallback(task.id, task.title, task_type, now)

        self._apply_to_task(task, strategy, now)
        return strategy

    def _apply_to_task(self, task: Task, strategy: StrategyResponse, now: datetime) -> None:
        task.ai_advice = strategy.overview
        task.ai_thought_process = strategy.thought_process
        task.ai_processed_at = now
        if task.estimated_minutes is None and strategy.estimated_minutes is not None:
            task.estimated_minutes = strategy.estimated_minutes
        self.task_repo.update(self.db, task)
