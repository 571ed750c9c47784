"""
Closed enumerations for task, goal and gamification tags.

Raw values are the strings (or star counts) stored in the database and sent
in sync payloads. Unknown raw values raise InvalidEnumValueException instead
of silently falling back to a default member.
"""
from enum import Enum
from typing import Optional

from veloce.exceptions import InvalidEnumValueException


class ParsableEnum(Enum):
    """Enum base with strict parsing of raw stored values"""

    @classmethod
    def parse(cls, raw):
        """
        Convert a raw stored value into an enum member.

        Raises:
            InvalidEnumValueException: If raw is not a known value
        """
        if isinstance(raw, cls):
            return raw
        try:
            return cls(raw)
        except ValueError:
            raise InvalidEnumValueException(cls.__name__, raw) from None

    @classmethod
    def parse_optional(cls, raw):
        """Parse a nullable raw value; None stays None"""
        if raw is None:
            return None
        return cls.parse(raw)


# === Tasks ===

class TaskPriority(int, ParsableEnum):
    """Star priority: * low, ** medium, *** high"""
    LOW = 1
    MEDIUM = 2
    HIGH = 3

    @property
    def stars(self) -> str:
        return "*" * self.value

    @property
    def label(self) -> str:
        return f"{self.name.capitalize()} Priority"

    @classmethod
    def parse_prefix(cls, text: str) -> tuple["TaskPriority", str]:
        """
        Parse a brain-dump line with a star prefix.

        "*** Ship release" -> (HIGH, "Ship release")
        Lines without a prefix are medium priority.
        """
        trimmed = text.strip()
        for prefix, priority in (("***", cls.HIGH), ("**", cls.MEDIUM), ("*", cls.LOW)):
            if trimmed.startswith(prefix):
                return priority, trimmed[len(prefix):].strip()
        return cls.MEDIUM, trimmed


class AIPriority(str, ParsableEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, raw):
        if isinstance(raw, str):
            raw = raw.lower()
        return super().parse(raw)


class TaskType(str, ParsableEnum):
    CREATE = "create"
    COMMUNICATE = "communicate"
    CONSUME = "consume"
    COORDINATE = "coordinate"

    @property
    def display_name(self) -> str:
        return _TASK_TYPE_NAMES[self]

    @property
    def suggested_minutes(self) -> int:
        return _TASK_TYPE_MINUTES[self]


_TASK_TYPE_NAMES = {
    TaskType.CREATE: "Create",
    TaskType.COMMUNICATE: "Communicate",
    TaskType.CONSUME: "Learn",
    TaskType.COORDINATE: "Coordinate",
}

_TASK_TYPE_MINUTES = {
    TaskType.CREATE: 90,
    TaskType.COMMUNICATE: 30,
    TaskType.CONSUME: 45,
    TaskType.COORDINATE: 15,
}


class RecurrenceType(str, ParsableEnum):
    ONCE = "once"
    DAILY = "daily"
    WEEKDAYS = "weekdays"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class EnergyState(str, ParsableEnum):
    """Visual band of a task's potential points"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    MAX = "max"

    @property
    def fill_percentage(self) -> float:
        return _ENERGY_FILL[self]

    @property
    def is_breathing(self) -> bool:
        return self is EnergyState.MEDIUM

    @property
    def is_pulsing(self) -> bool:
        return self in (EnergyState.HIGH, EnergyState.MAX)

    @property
    def has_particles(self) -> bool:
        return self is EnergyState.MAX

    @property
    def glow_intensity(self) -> float:
        return _ENERGY_GLOW[self]


_ENERGY_FILL = {
    EnergyState.LOW: 0.25,
    EnergyState.MEDIUM: 0.50,
    EnergyState.HIGH: 0.75,
    EnergyState.MAX: 1.0,
}

_ENERGY_GLOW = {
    EnergyState.LOW: 0.2,
    EnergyState.MEDIUM: 0.4,
    EnergyState.HIGH: 0.6,
    EnergyState.MAX: 1.0,
}


# === Goals ===

class GoalCategory(str, ParsableEnum):
    CAREER = "career"
    HEALTH = "health"
    PERSONAL = "personal"
    FINANCIAL = "financial"
    EDUCATION = "education"
    RELATIONSHIPS = "relationships"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class GoalTimeframe(str, ParsableEnum):
    SPRINT = "sprint"
    MILESTONE = "milestone"
    HORIZON = "horizon"

    @property
    def base_completion_points(self) -> int:
        return _TIMEFRAME_POINTS[self][0]

    @property
    def points_multiplier(self) -> float:
        return _TIMEFRAME_POINTS[self][1]


# (base points, multiplier)
_TIMEFRAME_POINTS = {
    GoalTimeframe.SPRINT: (100, 1.0),
    GoalTimeframe.MILESTONE: (250, 1.5),
    GoalTimeframe.HORIZON: (500, 2.0),
}


class GoalTaskLinkType(str, ParsableEnum):
    DIRECT_ACTION = "direct_action"
    HABIT = "habit"
    MILESTONE = "milestone"
    PREPARATION = "preparation"

    @property
    def progress_weight(self) -> float:
        return _LINK_WEIGHTS[self]


_LINK_WEIGHTS = {
    GoalTaskLinkType.DIRECT_ACTION: 1.0,
    GoalTaskLinkType.HABIT: 0.5,
    GoalTaskLinkType.MILESTONE: 2.0,
    GoalTaskLinkType.PREPARATION: 0.5,
}


class GoalTaskLinkStatus(str, ParsableEnum):
    APPROVED = "approved"
    PENDING = "pending"
    REJECTED = "rejected"


# === Weekly boss ===

class BossAppearance(str, ParsableEnum):
    DEADLINE_DRAGON = "deadline_dragon"
    PROCRASTINATION_PHOENIX = "procrastination_phoenix"
    KNOWLEDGE_KRAKEN = "knowledge_kraken"
    BUDGET_BEHEMOTH = "budget_behemoth"
    CHAOS_CHIMERA = "chaos_chimera"
    CREATIVE_CERBERUS = "creative_cerberus"
    SHADOW_SERPENT = "shadow_serpent"
    VOID_VANGUARD = "void_vanguard"

    @property
    def display_name(self) -> str:
        return _BOSS_NAMES[self]

    @property
    def taunts(self) -> tuple:
        return _BOSS_TAUNTS[self]

    @property
    def defeat_message(self) -> str:
        return _BOSS_DEFEAT_MESSAGES[self]

    @classmethod
    def from_goal_category(cls, category: Optional[str]) -> "BossAppearance":
        """Theme a boss after a goal category; anything unmapped is the void vanguard"""
        if not category:
            return cls.VOID_VANGUARD
        return _CATEGORY_APPEARANCES.get(category.lower(), cls.VOID_VANGUARD)


_BOSS_NAMES = {
    BossAppearance.DEADLINE_DRAGON: "The Deadline Dragon",
    BossAppearance.PROCRASTINATION_PHOENIX: "The Procrastination Phoenix",
    BossAppearance.KNOWLEDGE_KRAKEN: "The Knowledge Kraken",
    BossAppearance.BUDGET_BEHEMOTH: "The Budget Behemoth",
    BossAppearance.CHAOS_CHIMERA: "The Chaos Chimera",
    BossAppearance.CREATIVE_CERBERUS: "The Creative Cerberus",
    BossAppearance.SHADOW_SERPENT: "The Shadow Serpent",
    BossAppearance.VOID_VANGUARD: "The Void Vanguard",
}

_BOSS_TAUNTS = {
    BossAppearance.DEADLINE_DRAGON: (
        "Your deadlines fuel my flames!",
        "Tick tock... time slips away...",
        "Another task undone, another victory for me!",
    ),
    BossAppearance.PROCRASTINATION_PHOENIX: (
        "Why do today what you can put off forever?",
        "Rest now... there's always tomorrow...",
        "Your motivation feeds my rebirth!",
    ),
    BossAppearance.KNOWLEDGE_KRAKEN: (
        "Your confusion is my power!",
        "The depths of ignorance are endless...",
        "Each unlearned lesson strengthens me!",
    ),
    BossAppearance.BUDGET_BEHEMOTH: (
        "Your finances are in chaos!",
        "Spend now, regret later...",
        "Every impulse purchase makes me grow!",
    ),
    BossAppearance.CHAOS_CHIMERA: (
        "Relationships crumble around you!",
        "Isolation is my domain...",
        "Your disconnection empowers me!",
    ),
    BossAppearance.CREATIVE_CERBERUS: (
        "Your creativity withers!",
        "Blank pages are my feast...",
        "Each abandoned project feeds me!",
    ),
    BossAppearance.SHADOW_SERPENT: (
        "Your goals slip into shadow...",
        "Personal growth? A distant dream...",
        "Self-improvement is futile!",
    ),
    BossAppearance.VOID_VANGUARD: (
        "The void consumes all progress!",
        "Your efforts are meaningless...",
        "Entropy always wins!",
    ),
}

_BOSS_DEFEAT_MESSAGES = {
    BossAppearance.DEADLINE_DRAGON: "You've conquered the flames of deadlines!",
    BossAppearance.PROCRASTINATION_PHOENIX: "Procrastination has been defeated!",
    BossAppearance.KNOWLEDGE_KRAKEN: "Knowledge triumphs over ignorance!",
    BossAppearance.BUDGET_BEHEMOTH: "Financial discipline prevails!",
    BossAppearance.CHAOS_CHIMERA: "Harmony overcomes chaos!",
    BossAppearance.CREATIVE_CERBERUS: "Creativity flows freely once more!",
    BossAppearance.SHADOW_SERPENT: "Personal growth illuminates the shadow!",
    BossAppearance.VOID_VANGUARD: "You've filled the void with purpose!",
}

# Free-text category lookup. Includes the GoalCategory spellings
# (financial, education) next to the short forms.
_CATEGORY_APPEARANCES = {
    "career": BossAppearance.DEADLINE_DRAGON,
    "health": BossAppearance.PROCRASTINATION_PHOENIX,
    "learning": BossAppearance.KNOWLEDGE_KRAKEN,
    "education": BossAppearance.KNOWLEDGE_KRAKEN,
    "finance": BossAppearance.BUDGET_BEHEMOTH,
    "financial": BossAppearance.BUDGET_BEHEMOTH,
    "relationships": BossAppearance.CHAOS_CHIMERA,
    "creative": BossAppearance.CREATIVE_CERBERUS,
    "personal": BossAppearance.SHADOW_SERPENT,
}


class BossDifficulty(str, ParsableEnum):
    NORMAL = "normal"
    HARD = "hard"
    NIGHTMARE = "nightmare"

    @property
    def health_multiplier(self) -> float:
        return _DIFFICULTY_MULTIPLIERS[self][0]

    @property
    def xp_multiplier(self) -> float:
        return _DIFFICULTY_MULTIPLIERS[self][1]


# (health, xp)
_DIFFICULTY_MULTIPLIERS = {
    BossDifficulty.NORMAL: (1.0, 1.0),
    BossDifficulty.HARD: (1.5, 1.5),
    BossDifficulty.NIGHTMARE: (2.0, 2.5),
}


# === Daily challenges ===

class DailyChallengeType(str, ParsableEnum):
    GOAL_SPRINT = "goal_sprint"
    FOCUS_POWER = "focus_power"
    MOMENTUM_BUILDER = "momentum"
    MILESTONE_PUSH = "milestone"
    STREAK_EXTENDER = "streak"
    EARLY_BIRD = "early_bird"
    TASK_MASTER = "task_master"
    DEEP_WORK = "deep_work"

    @property
    def base_xp_reward(self) -> int:
        return _CHALLENGE_XP[self]


_CHALLENGE_XP = {
    DailyChallengeType.GOAL_SPRINT: 50,
    DailyChallengeType.FOCUS_POWER: 40,
    DailyChallengeType.MOMENTUM_BUILDER: 35,
    DailyChallengeType.MILESTONE_PUSH: 75,
    DailyChallengeType.STREAK_EXTENDER: 30,
    DailyChallengeType.EARLY_BIRD: 25,
    DailyChallengeType.TASK_MASTER: 45,
    DailyChallengeType.DEEP_WORK: 60,
}


# === Power-ups ===

class PowerUpRarity(str, ParsableEnum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"

    @property
    def glow_intensity(self) -> float:
        return {"common": 0.3, "rare": 0.5, "epic": 0.7, "legendary": 1.0}[self.value]


class PowerUpType(str, ParsableEnum):
    XP_BOOST = "xp_boost"
    STREAK_SHIELD = "streak_shield"
    GOAL_ACCELERATOR = "goal_accelerator"
    FOCUS_FORCE_FIELD = "focus_force_field"
    COMBO_KEEPER = "combo_keeper"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title().replace("Xp", "XP")

    @property
    def duration_seconds(self) -> int:
        return _POWER_UP_DURATIONS[self]

    @property
    def max_quantity(self) -> int:
        return 3

    @property
    def rarity(self) -> PowerUpRarity:
        return _POWER_UP_RARITY[self]


_POWER_UP_DURATIONS = {
    PowerUpType.XP_BOOST: 30 * 60,
    PowerUpType.STREAK_SHIELD: 24 * 60 * 60,
    PowerUpType.GOAL_ACCELERATOR: 24 * 60 * 60,
    PowerUpType.FOCUS_FORCE_FIELD: 60 * 60,
    PowerUpType.COMBO_KEEPER: 60 * 60,
}

_POWER_UP_RARITY = {
    PowerUpType.XP_BOOST: PowerUpRarity.COMMON,
    PowerUpType.STREAK_SHIELD: PowerUpRarity.RARE,
    PowerUpType.GOAL_ACCELERATOR: PowerUpRarity.RARE,
    PowerUpType.FOCUS_FORCE_FIELD: PowerUpRarity.EPIC,
    PowerUpType.COMBO_KEEPER: PowerUpRarity.COMMON,
}


class PowerUpSource(str, ParsableEnum):
    ACHIEVEMENT = "achievement"
    STREAK = "streak"
    MILESTONE = "milestone"
    DAILY_LOGIN = "daily_login"
    BOSS_DEFEAT = "boss_defeat"
    LEVEL_UP = "level_up"
    PURCHASE = "purchase"


# === Pacts ===

class PactStatus(str, ParsableEnum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    BROKEN = "broken"


class PactCommitmentType(str, ParsableEnum):
    DAILY_TASKS = "daily_tasks"
    FOCUS_TIME = "focus_time"
    GOAL_PROGRESS = "goal_progress"
    CUSTOM = "custom"

    @property
    def default_target(self) -> int:
        return _COMMITMENT_TARGETS[self]

    @property
    def unit(self) -> str:
        return _COMMITMENT_UNITS[self]


_COMMITMENT_TARGETS = {
    PactCommitmentType.DAILY_TASKS: 3,
    PactCommitmentType.FOCUS_TIME: 30,
    PactCommitmentType.GOAL_PROGRESS: 10,
    PactCommitmentType.CUSTOM: 1,
}

_COMMITMENT_UNITS = {
    PactCommitmentType.DAILY_TASKS: "tasks",
    PactCommitmentType.FOCUS_TIME: "minutes",
    PactCommitmentType.GOAL_PROGRESS: "%",
    PactCommitmentType.CUSTOM: "",
}


class PactUserStatus(str, ParsableEnum):
    BOTH_DONE = "both_done"
    WAITING_ON_PARTNER = "waiting_on_partner"
    WAITING_ON_YOU = "waiting_on_you"
    NEITHER_DONE = "neither_done"
    INACTIVE = "inactive"

    @property
    def display_text(self) -> str:
        return _PACT_STATUS_TEXT[self]


_PACT_STATUS_TEXT = {
    PactUserStatus.BOTH_DONE: "Both done!",
    PactUserStatus.WAITING_ON_PARTNER: "Waiting on partner",
    PactUserStatus.WAITING_ON_YOU: "Your turn!",
    PactUserStatus.NEITHER_DONE: "Get started",
    PactUserStatus.INACTIVE: "Inactive",
}


# === Velocity score ===

class ScoreTier(str, ParsableEnum):
    BEGINNING = "beginning"
    STARTING = "starting"
    BUILDING = "building"
    GOOD = "good"
    EXCELLENT = "excellent"
    LEGENDARY = "legendary"

    @classmethod
    def from_score(cls, total: int) -> "ScoreTier":
        if total >= 90:
            return cls.LEGENDARY
        if total >= 75:
            return cls.EXCELLENT
        if total >= 60:
            return cls.GOOD
        if total >= 40:
            return cls.BUILDING
        if total >= 20:
            return cls.STARTING
        return cls.BEGINNING

    @property
    def message(self) -> str:
        return _TIER_MESSAGES[self]


_TIER_MESSAGES = {
    ScoreTier.BEGINNING: "Every journey starts somewhere",
    ScoreTier.STARTING: "You're building momentum",
    ScoreTier.BUILDING: "Great progress this week!",
    ScoreTier.GOOD: "You're on fire! Keep it up",
    ScoreTier.EXCELLENT: "Outstanding performance!",
    ScoreTier.LEGENDARY: "Legendary productivity master!",
}
