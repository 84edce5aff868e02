"""
API Routes — The thin request layer in front of the debate engine.

ENDPOINTS:
- POST /api/debates                      → Create a debate and its four participants
- POST /api/debates/{id}/start           → Start orchestration in the background
- GET  /api/debates/{id}                 → Debate record (status, config)
- GET  /api/debates/{id}/turns           → Transcript so far
- GET  /api/debates/{id}/fact-checks     → Verdicts so far
- GET  /api/debates/{id}/summary         → Moderator summary (once completed)
- GET  /api/debates/{id}/export.md       → Markdown export
- POST /api/votes                        → Cast or change a vote
- GET  /api/votes?debate_id=...          → Current tally

FLOW:
1. POST /api/debates with topic and both debaters
2. POST /api/debates/{id}/start (returns immediately)
3. Follow turns/fact checks through the 'debate_events' notifications or by polling
4. Vote while the debate runs
5. Read the summary once status is 'completed'
"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse

from debate_arena.database import get_sessionmaker
from debate_arena.models.debate import Debate
from debate_arena.models.enums import DebateStatus, ParticipantRole
from debate_arena.models.schemas import (
    DebateCreatedResponse,
    DebateCreateRequest,
    DebateResponse,
    FactCheckResponse,
    SummaryResponse,
    TurnResponse,
    VoteRequest,
    VoteTallyResponse,
)
from debate_arena.services.debate.models import VoteTally
from debate_arena.services.debate.orchestrator import DebateSupervisor
from debate_arena.services.debate.store import DebateStore
from debate_arena.services.export import render_debate_markdown

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_store() -> DebateStore:
    return DebateStore(get_sessionmaker())


def get_supervisor(request: Request) -> DebateSupervisor:
    """The supervisor created in the app lifespan."""
    return request.app.state.supervisor


async def _get_debate_or_404(store: DebateStore, debate_id: uuid.UUID) -> Debate:
    debate = await store.get_debate(debate_id)
    if debate is None:
        raise HTTPException(status_code=404, detail=f"Debate {debate_id} not found")
    return debate


# =============================================================================
# DEBATE LIFECYCLE
# =============================================================================

@router.post("/debates", response_model=DebateCreatedResponse)
async def create_debate(
    request: DebateCreateRequest,
    store: DebateStore = Depends(get_store),
) -> DebateCreatedResponse:
    """
    Create a debate in 'setup' with pro, con, fact-checker and moderator.

    Example:
        POST /api/debates
        {"topic": "Nuclear power should replace coal",
         "pro_agent": {"name": "Ada"}, "con_agent": {"name": "Rex"}, "max_turns": 4}

        Returns {"id": "..."}
    """
    participants = [
        {
            "role": ParticipantRole.PRO.value,
            "name": request.pro_agent.name or "Pro Agent",
            "persona_description": request.pro_agent.persona,
            "voice_id": request.pro_agent.voice or "alloy",
        },
        {
            "role": ParticipantRole.CON.value,
            "name": request.con_agent.name or "Con Agent",
            "persona_description": request.con_agent.persona,
            "voice_id": request.con_agent.voice or "echo",
        },
        {
            "role": ParticipantRole.FACT_CHECKER.value,
            "name": "Fact Checker",
            "persona_description": "An impartial fact-checking agent that verifies claims made during the debate.",
            "voice_id": "nova",
        },
        {
            "role": ParticipantRole.MODERATOR.value,
            "name": "Moderator",
            "persona_description": "A neutral moderator that guides the debate and ensures fair discussion.",
            "voice_id": "shimmer",
        },
    ]

    debate = await store.create_debate(
        topic=request.topic,
        description=request.description,
        config=request.to_config(),
        participants=participants,
    )
    return DebateCreatedResponse(id=debate.id)


@router.post("/debates/{debate_id}/start")
async def start_debate(
    debate_id: uuid.UUID,
    store: DebateStore = Depends(get_store),
    supervisor: DebateSupervisor = Depends(get_supervisor),
) -> dict:
    """
    Start orchestration and return without waiting for it.

    Only a debate in 'setup' can be started.
    """
    debate = await _get_debate_or_404(store, debate_id)

    if debate.status != DebateStatus.SETUP.value or supervisor.is_running(debate_id):
        raise HTTPException(
            status_code=400,
            detail=f"Debate {debate_id} cannot be started from status '{debate.status}'",
        )

    supervisor.start(debate_id)
    logger.info(f"Debate {debate_id} scheduled")
    return {"id": str(debate_id), "status": "started"}


# =============================================================================
# READ MODELS
# =============================================================================

@router.get("/debates/{debate_id}", response_model=DebateResponse)
async def get_debate(
    debate_id: uuid.UUID,
    store: DebateStore = Depends(get_store),
) -> DebateResponse:
    debate = await _get_debate_or_404(store, debate_id)
    return DebateResponse.model_validate(debate)


@router.get("/debates/{debate_id}/turns", response_model=list[TurnResponse])
async def list_turns(
    debate_id: uuid.UUID,
    store: DebateStore = Depends(get_store),
) -> list[TurnResponse]:
    await _get_debate_or_404(store, debate_id)
    turns = await store.list_turns(debate_id)
    return [TurnResponse.model_validate(turn) for turn in turns]


@router.get("/debates/{debate_id}/fact-checks", response_model=list[FactCheckResponse])
async def list_fact_checks(
    debate_id: uuid.UUID,
    store: DebateStore = Depends(get_store),
) -> list[FactCheckResponse]:
    await _get_debate_or_404(store, debate_id)
    verdicts = await store.list_verdicts(debate_id)
    return [FactCheckResponse.model_validate(v) for v in verdicts]


@router.get("/debates/{debate_id}/summary", response_model=SummaryResponse)
async def get_summary(
    debate_id: uuid.UUID,
    store: DebateStore = Depends(get_store),
) -> SummaryResponse:
    await _get_debate_or_404(store, debate_id)
    summary = await store.get_summary(debate_id)
    if summary is None:
        raise HTTPException(status_code=404, detail=f"No summary for debate {debate_id} yet")
    return SummaryResponse.model_validate(summary)


@router.get("/debates/{debate_id}/export.md", response_class=PlainTextResponse)
async def export_debate(
    debate_id: uuid.UUID,
    store: DebateStore = Depends(get_store),
) -> PlainTextResponse:
    """
    Download the debate as markdown.

    Example:
        GET /api/debates/{id}/export.md
    """
    debate = await _get_debate_or_404(store, debate_id)
    markdown = render_debate_markdown(
        debate=debate,
        summary=await store.get_summary(debate_id),
        verdicts=await store.list_verdicts(debate_id),
        participants=await store.get_participants(debate_id),
    )
    return PlainTextResponse(
        markdown,
        media_type="text/markdown",
        headers={"Content-Disposition": f'attachment; filename="debate-{debate_id}.md"'},
    )


# =============================================================================
# VOTING
# =============================================================================

@router.post("/votes")
async def cast_vote(
    request: VoteRequest,
    store: DebateStore = Depends(get_store),
) -> dict:
    """
    Record a vote. Voting again from the same session replaces the earlier vote.

    Example:
        POST /api/votes
        {"debate_id": "...", "voter_session_id": "browser-123", "vote": "pro"}
    """
    debate = await _get_debate_or_404(store, request.debate_id)
    if debate.status == DebateStatus.COMPLETED.value:
        raise HTTPException(status_code=400, detail="Voting is closed for this debate")

    await store.record_vote(request.debate_id, request.voter_session_id, request.vote)
    return {"success": True}


@router.get("/votes", response_model=VoteTallyResponse)
async def get_votes(
    debate_id: uuid.UUID,
    store: DebateStore = Depends(get_store),
) -> VoteTallyResponse:
    tally = await store.get_vote_tally(debate_id) or VoteTally(pro_count=0, con_count=0)
    return VoteTallyResponse(**tally.to_dict())
