"""
Pydantic schemas for API request/response validation.

FLOW OVERVIEW:
==============
1. Client sends DebateCreateRequest to POST /api/debates
2. Client calls POST /api/debates/{id}/start → orchestration runs in background
3. Turns, fact checks and lie alerts appear in the database as they happen
   (clients follow them through the pg_notify channel)
4. Audience sends VoteRequest while the debate is live or voting
5. Once completed, GET /api/debates/{id}/summary returns the SummaryResponse
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from debate_arena.models.enums import (
    DebateStatus,
    DebateType,
    ResearchDepth,
    VoteChoice,
)


# =============================================================================
# DEBATE CONFIGURATION
# =============================================================================

class DebateConfig(BaseModel):
    """
    Per-debate settings, stored as JSON on the debates row.

    Immutable once research begins.
    """
    max_turns: int = Field(default=6, ge=2, le=20)
    turn_time_limit_sec: int = Field(default=120, ge=10)
    research_depth: ResearchDepth = ResearchDepth.STANDARD
    voice_enabled: bool = False
    debate_type: DebateType = DebateType.STANDARD


# =============================================================================
# API REQUEST SCHEMAS
# =============================================================================

class AgentSpec(BaseModel):
    """How one debating side should present itself."""
    name: str | None = None
    persona: str = ""
    voice: str | None = None


class DebateCreateRequest(BaseModel):
    """
    Request body for POST /api/debates.

    Example:
        {"topic": "Nuclear power should replace coal",
         "pro_agent": {"name": "Ada", "persona": "An energy economist"},
         "con_agent": {"name": "Rex", "persona": "An environmental lawyer"},
         "max_turns": 4}
    """
    topic: str = Field(min_length=3)
    description: str = ""
    debate_type: DebateType = DebateType.STANDARD
    max_turns: int = Field(default=6, ge=2, le=20)
    research_depth: ResearchDepth = ResearchDepth.STANDARD
    voice_enabled: bool = False
    pro_agent: AgentSpec
    con_agent: AgentSpec

    def to_config(self) -> DebateConfig:
        return DebateConfig(
            max_turns=self.max_turns,
            research_depth=self.research_depth,
            voice_enabled=self.voice_enabled,
            debate_type=self.debate_type,
        )


class VoteRequest(BaseModel):
    """Request body for POST /api/votes. One vote per voter session, last one wins."""
    debate_id: uuid.UUID
    voter_session_id: str = Field(min_length=1)
    vote: VoteChoice


# =============================================================================
# API RESPONSE SCHEMAS
# =============================================================================

class DebateCreatedResponse(BaseModel):
    id: uuid.UUID


class DebateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    topic: str
    description: str
    status: DebateStatus
    config: DebateConfig
    created_at: datetime


class CitationOut(BaseModel):
    label: str
    source_url: str | None = None


class ResearchSourceOut(BaseModel):
    url: str
    title: str
    snippet: str = ""


class TurnResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    debate_id: uuid.UUID
    agent_id: uuid.UUID
    turn_number: int
    turn_type: str
    content: str
    citations: list[CitationOut] = Field(default_factory=list)
    research_sources: list[ResearchSourceOut] = Field(default_factory=list)
    audio_url: str | None = None
    duration_ms: int | None = None
    created_at: datetime


class FactCheckResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    turn_id: uuid.UUID
    agent_id: uuid.UUID
    claim_text: str
    verdict: str
    explanation: str
    sources: list[dict] = Field(default_factory=list)
    confidence: float = Field(ge=0, le=1)
    is_lie: bool


class VoteTallyResponse(BaseModel):
    pro_count: int
    con_count: int
    total: int
    pro_percentage: float
    con_percentage: float


class SummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    debate_id: uuid.UUID
    overall_summary: str
    winner_analysis: str
    accuracy_scores: dict[str, float] = Field(default_factory=dict)
    key_arguments: list[dict] = Field(default_factory=list)
    fact_check_summary: dict[str, int] = Field(default_factory=dict)
    sources_used: list[dict] = Field(default_factory=list)
    recommendations: str
    vote_results: VoteTallyResponse | None = None
    created_at: datetime
