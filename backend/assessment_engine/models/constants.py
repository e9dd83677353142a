from enum import StrEnum

ROLE_VALUES = ['admin', 'staff', 'student']
STAFF_ROLES = ('admin', 'staff')

SIMULATION_STATUS_VALUES = ['draft', 'published', 'closed', 'archived']
ACCESS_MODE_VALUES = ['open', 'room']
QUESTION_TYPE_VALUES = ['single_choice', 'open_text']
ASSIGNMENT_STATUS_VALUES = ['active', 'closed']
ROOM_STATUS_VALUES = ['waiting', 'started', 'completed']
ROOM_LIVE_STATUSES = ('waiting', 'started')
RESULT_STATUS_VALUES = ['in_progress', 'completed']
RESULT_ENTRY_MODE_VALUES = ['online', 'paper']

PUBLIC_SCOPE_KEY = 'public'


def values_check(column: str, values) -> str:
    """SQL for a CHECK constraint limiting ``column`` to ``values``."""
    allowed = ', '.join(f"'{value}'" for value in values)
    return f'{column} in ({allowed})'


class Outcome(StrEnum):
    """Per-question evaluation outcome."""

    CORRECT = 'correct'
    INCORRECT = 'incorrect'
    BLANK = 'blank'
    PENDING = 'pending'


class Correctness(StrEnum):
    """Graded state of an answer: the three variants every branch must handle."""

    CORRECT = 'correct'
    INCORRECT = 'incorrect'
    PENDING = 'pending'


def correctness_of(outcome: Outcome) -> Correctness:
    if outcome is Outcome.CORRECT:
        return Correctness.CORRECT
    if outcome is Outcome.PENDING:
        return Correctness.PENDING
    # A blank answer is graded as not correct.
    return Correctness.INCORRECT
