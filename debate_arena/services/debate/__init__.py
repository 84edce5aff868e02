"""
Debate Module — The orchestration engine.

COMPONENTS:
- DebateOrchestrator: Walks a debate through its phases
- DebateSupervisor: Runs orchestrations as background tasks
- TurnScheduler: Generates, paces and persists turns
- ClaimVerifier: Fact-checks turns and raises lie alerts
- phases: The lifecycle transition function and its errors

USAGE:
    from debate_arena.services.debate import DebateSupervisor, build_orchestrator

    supervisor = DebateSupervisor(build_orchestrator())
    supervisor.start(debate_id)
"""

# Main entry points
from debate_arena.services.debate.orchestrator import (
    DebateOrchestrator,
    DebateSupervisor,
    build_orchestrator,
)

# Lifecycle
from debate_arena.services.debate.phases import (
    DebateNotFoundError,
    InvalidTransitionError,
    OrchestrationError,
    ParticipantsMissingError,
    next_status,
)

# Components
from debate_arena.services.debate.turns import TurnScheduler, get_turn_type
from debate_arena.services.debate.verifier import ClaimVerifier

__all__ = [
    # Main entry points
    "DebateOrchestrator",
    "DebateSupervisor",
    "build_orchestrator",
    # Lifecycle
    "DebateNotFoundError",
    "InvalidTransitionError",
    "OrchestrationError",
    "ParticipantsMissingError",
    "next_status",
    # Components
    "ClaimVerifier",
    "TurnScheduler",
    "get_turn_type",
]
