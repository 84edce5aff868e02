"""
Closed value sets shared by the tables, the API schemas and the engine.

All of them subclass str so they serialize as plain strings in JSON columns
and API responses.
"""

from enum import Enum


class DebateStatus(str, Enum):
    """Debate lifecycle. Order matters: phases only ever move forward."""

    SETUP = "setup"
    RESEARCHING = "researching"
    LIVE = "live"
    VOTING = "voting"
    SUMMARIZING = "summarizing"
    COMPLETED = "completed"


class ParticipantRole(str, Enum):
    PRO = "pro"
    CON = "con"
    FACT_CHECKER = "fact_checker"
    MODERATOR = "moderator"

    @property
    def opponent(self) -> "ParticipantRole":
        """The other debating side (only meaningful for pro/con)."""
        if self is ParticipantRole.PRO:
            return ParticipantRole.CON
        if self is ParticipantRole.CON:
            return ParticipantRole.PRO
        raise ValueError(f"{self.value} has no opponent")


class TurnType(str, Enum):
    OPENING = "opening"
    REBUTTAL = "rebuttal"
    CLOSING = "closing"


class Verdict(str, Enum):
    TRUE = "true"
    MOSTLY_TRUE = "mostly_true"
    MIXED = "mixed"
    MOSTLY_FALSE = "mostly_false"
    FALSE = "false"
    UNVERIFIABLE = "unverifiable"


class Severity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


class ResearchDepth(str, Enum):
    QUICK = "quick"
    STANDARD = "standard"
    DEEP = "deep"


class DebateType(str, Enum):
    STANDARD = "standard"
    COURT_SIMULATION = "court_simulation"


class VoteChoice(str, Enum):
    PRO = "pro"
    CON = "con"
