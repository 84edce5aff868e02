"""
Debate Phases — The lifecycle as an explicit transition function.

    setup → researching → live → voting → summarizing → completed
    any phase before completed ──── failure ────→ completed (failed)

Normal progress moves exactly one step forward. The only other edge is the
failure edge, which jumps from any non-terminal phase straight to completed.
Everything that writes a status goes through next_status(), so an illegal
jump fails loudly instead of leaving the row in a state nobody expects.
"""

from enum import Enum

from debate_arena.models.enums import DebateStatus

PHASE_ORDER: tuple[DebateStatus, ...] = (
    DebateStatus.SETUP,
    DebateStatus.RESEARCHING,
    DebateStatus.LIVE,
    DebateStatus.VOTING,
    DebateStatus.SUMMARIZING,
    DebateStatus.COMPLETED,
)

# Prefix written into the description of a debate that ended on the failure edge
FAILURE_MARKER = "[ERROR]"


class PhaseEvent(str, Enum):
    ADVANCE = "advance"
    FAIL = "fail"


class OrchestrationError(Exception):
    """Base class for errors the orchestrator raises on purpose."""


class DebateNotFoundError(OrchestrationError):
    def __init__(self, debate_id):
        self.debate_id = debate_id
        super().__init__(f"Debate {debate_id} not found")


class ParticipantsMissingError(OrchestrationError):
    def __init__(self, debate_id):
        self.debate_id = debate_id
        super().__init__("Debate requires both a pro and con agent")


class InvalidTransitionError(OrchestrationError):
    def __init__(self, current: DebateStatus, event: PhaseEvent):
        self.current = current
        self.event = event
        super().__init__(f"Cannot {event.value} a debate in status '{current.value}'")


def is_terminal(status: DebateStatus) -> bool:
    return status is DebateStatus.COMPLETED


def next_status(current: DebateStatus, event: PhaseEvent) -> DebateStatus:
    """
    Compute the status that follows `current` after `event`.

    Raises:
        InvalidTransitionError: when the debate is already completed
    """
    if is_terminal(current):
        raise InvalidTransitionError(current, event)

    if event is PhaseEvent.FAIL:
        return DebateStatus.COMPLETED

    return PHASE_ORDER[PHASE_ORDER.index(current) + 1]


def failure_description(error: BaseException) -> str:
    """Human-readable marker stored in the description of a failed debate."""
    message = str(error) or type(error).__name__
    return f"{FAILURE_MARKER} {message}"
