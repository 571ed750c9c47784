"""
Custom exceptions for the Veloce service.
Provides specific exception types for better error handling and recovery.
"""


class VeloceException(Exception):
    """Base exception for Veloce application"""
    pass


class TaskNotFoundException(VeloceException):
    """Raised when a task is not found"""
    def __init__(self, task_id: int):
        self.task_id = task_id
        super().__init__(f"Task with ID {task_id} not found")


class GoalNotFoundException(VeloceException):
    """Raised when a goal is not found"""
    def __init__(self, goal_id: int):
        self.goal_id = goal_id
        super().__init__(f"Goal with ID {goal_id} not found")


class MilestoneNotFoundException(VeloceException):
    """Raised when a goal milestone is not found"""
    def __init__(self, milestone_id: int):
        self.milestone_id = milestone_id
        super().__init__(f"Milestone with ID {milestone_id} not found")


class PactNotFoundException(VeloceException):
    """Raised when a pact is not found"""
    def __init__(self, pact_id: int):
        self.pact_id = pact_id
        super().__init__(f"Pact with ID {pact_id} not found")


class PowerUpNotFoundException(VeloceException):
    """Raised when no power-up of the requested type is in inventory"""
    def __init__(self, power_up_type: str):
        self.power_up_type = power_up_type
        super().__init__(f"No power-up of type {power_up_type} in inventory")


class ChallengeNotFoundException(VeloceException):
    """Raised when a daily challenge is not found"""
    def __init__(self, challenge_id: int):
        self.challenge_id = challenge_id
        super().__init__(f"Challenge with ID {challenge_id} not found")


class BossNotFoundException(VeloceException):
    """Raised when there is no weekly boss for the requested week"""
    def __init__(self, week_start):
        self.week_start = week_start
        super().__init__(f"No weekly boss for week starting {week_start}")


class InvalidEnumValueException(VeloceException):
    """Raised when a stored or submitted raw value is not a known enum member"""
    def __init__(self, enum_name: str, value):
        self.enum_name = enum_name
        self.value = value
        super().__init__(f"Unknown {enum_name} value: {value!r}")


class NotPactMemberException(VeloceException):
    """Raised when a user acts on a pact they are not part of"""
    def __init__(self, pact_id: int, user_id: int):
        self.pact_id = pact_id
        self.user_id = user_id
        super().__init__(f"User {user_id} is not a member of pact {pact_id}")


class ValidationException(VeloceException):
    """Raised when data validation fails"""
    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Validation error for {field}: {message}")
