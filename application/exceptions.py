"""
Application-layer exceptions.

These exceptions are used across application and infrastructure layers.
Guard outcomes of a progression evaluation (no_block, too_soon, too_early)
are not exceptions; see domain.models.EvaluationOutcome.
"""


class ProgressionError(Exception):
    """Base class for progression engine errors."""

    pass


# =============================================================================
# Not found
# =============================================================================


class NotFoundError(ProgressionError):
    """A referenced entity does not exist."""

    pass


class ProgramNotFoundError(NotFoundError):
    def __init__(self, program_id: str):
        self.program_id = program_id
        super().__init__(f"Program not found: {program_id}")


class BlockNotFoundError(NotFoundError):
    """Raised when an operation needs an active block and none exists."""

    def __init__(self, program_id: str = "", block_id: str = ""):
        self.program_id = program_id
        self.block_id = block_id
        if block_id:
            message = f"Block not found: {block_id}"
        else:
            message = f"No active block found for program {program_id}"
        super().__init__(message)


class CycleNotFoundError(NotFoundError):
    def __init__(self, program_id: str):
        self.program_id = program_id
        super().__init__(f"No active cycle found for program {program_id}")


class CellNotFoundError(NotFoundError):
    def __init__(self, block_id: str, exercise_id: str, week_number: int):
        self.block_id = block_id
        self.exercise_id = exercise_id
        self.week_number = week_number
        super().__init__(
            f"No cell for exercise {exercise_id} in week {week_number} of block {block_id}"
        )


class FlagNotFoundError(NotFoundError):
    def __init__(self, flag_id: str):
        self.flag_id = flag_id
        super().__init__(f"Flag not found: {flag_id}")


class ExerciseNotFoundError(NotFoundError):
    def __init__(self, exercise_id: str):
        self.exercise_id = exercise_id
        super().__init__(f"Exercise not found: {exercise_id}")


# =============================================================================
# Validation
# =============================================================================


class ValidationError(ProgressionError):
    """Input rejected before any state was touched."""

    pass


class InvalidBlockDurationError(ValidationError):
    def __init__(self, duration):
        self.duration = duration
        super().__init__(f"blockDuration must be 4, 6, or 8 (got {duration})")


class InvalidOverrideActionError(ValidationError):
    def __init__(self, action):
        self.action = action
        super().__init__(f"action must be advance, hold, or regress (got {action})")


class InvalidWeekError(ValidationError):
    def __init__(self, week_number: int, block_duration: int):
        self.week_number = week_number
        self.block_duration = block_duration
        super().__init__(f"Week {week_number} out of range [1, {block_duration}]")


# =============================================================================
# Concurrency / persistence
# =============================================================================


class ProgressionConflictError(ProgressionError):
    """Error when a concurrent trigger already mutated the same state.

    Raised when the optimistic-concurrency token read before a commit no
    longer matches the stored row. Nothing was written.
    """

    pass


class PersistenceError(ProgressionError):
    """Error during an atomic multi-entity mutation.

    Raised when an RPC or table write fails. The transaction was rolled
    back; callers may retry at the transaction boundary.
    """

    pass
