# Database models and API schemas
from debate_arena.models.debate import Debate, Participant, Turn
from debate_arena.models.document import Document
from debate_arena.models.fact_check import Alert, ClaimVerdict
from debate_arena.models.vote import Summary, Vote
from debate_arena.models.schemas import (
    DebateConfig,
    DebateCreateRequest,
    VoteRequest,
)

__all__ = [
    "Alert",
    "ClaimVerdict",
    "Debate",
    "DebateConfig",
    "DebateCreateRequest",
    "Document",
    "Participant",
    "Summary",
    "Turn",
    "Vote",
    "VoteRequest",
]
