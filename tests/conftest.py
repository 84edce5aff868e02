"""
Shared fixtures: an in-memory debate store and scripted collaborators.

The fake store implements the same contract as DebateStore (natural-key
idempotence included) on plain lists, so engine tests run without Postgres.
"""

import uuid
from datetime import datetime
from typing import Optional
from unittest.mock import AsyncMock

import pytest

from debate_arena.config import Settings
from debate_arena.models.debate import Debate, Participant, Turn
from debate_arena.models.enums import DebateStatus, ParticipantRole, TurnType, VoteChoice
from debate_arena.models.fact_check import Alert, ClaimVerdict
from debate_arena.models.schemas import DebateConfig
from debate_arena.models.vote import Summary
from debate_arena.services.debate.models import (
    AgentResponse,
    CitedDocument,
    ResearchSource,
    SummaryRecord,
    VerdictRecord,
    VoteTally,
)
from debate_arena.services.debate.protocols import (
    BaseDebater,
    BaseDebateStore,
    BaseFactChecker,
    BaseModerator,
)


class FakeStore(BaseDebateStore):
    def __init__(self):
        self.debates: dict[uuid.UUID, Debate] = {}
        self.participants: list[Participant] = []
        self.status_history: list[tuple[uuid.UUID, DebateStatus]] = []
        self.documents: list[tuple[uuid.UUID, uuid.UUID, ResearchSource]] = []
        self.embeddings: dict[uuid.UUID, list[float]] = {}
        self.turns: list[Turn] = []
        self.verdicts: list[ClaimVerdict] = []
        self.alerts: list[Alert] = []
        self.votes: dict[tuple[uuid.UUID, str], VoteChoice] = {}
        self.summaries: list[Summary] = []

    # --- helpers for tests --------------------------------------------------

    def add_debate(
        self,
        topic: str = "Cities should ban cars downtown",
        config: Optional[DebateConfig] = None,
        status: DebateStatus = DebateStatus.SETUP,
        roles: tuple[ParticipantRole, ...] = (
            ParticipantRole.PRO,
            ParticipantRole.CON,
            ParticipantRole.FACT_CHECKER,
            ParticipantRole.MODERATOR,
        ),
    ) -> Debate:
        debate = Debate(
            id=uuid.uuid4(),
            topic=topic,
            description="",
            status=status.value,
            config=(config or DebateConfig()).model_dump(mode="json"),
            created_at=datetime.utcnow(),
        )
        self.debates[debate.id] = debate
        for role in roles:
            self.participants.append(Participant(
                id=uuid.uuid4(),
                debate_id=debate.id,
                role=role.value,
                name=f"{role.value.title()} Agent",
                persona_description=f"A {role.value} persona",
                voice_id="alloy",
            ))
        return debate

    def participant(self, debate_id: uuid.UUID, role: ParticipantRole) -> Participant:
        return next(
            p for p in self.participants if p.debate_id == debate_id and p.role == role.value
        )

    # --- debates & participants -------------------------------------------

    async def get_debate(self, debate_id):
        return self.debates.get(debate_id)

    async def get_participants(self, debate_id):
        return [p for p in self.participants if p.debate_id == debate_id]

    async def update_status(self, debate_id, status, description=None):
        debate = self.debates[debate_id]
        debate.status = status.value
        if description is not None:
            debate.description = description
        self.status_history.append((debate_id, status))

    # --- research documents -----------------------------------------------

    async def save_documents(self, debate_id, sources):
        ids = []
        for source in sources:
            doc_id = uuid.uuid4()
            self.documents.append((debate_id, doc_id, source))
            ids.append(doc_id)
        return ids

    async def set_document_embeddings(self, embeddings):
        self.embeddings.update(embeddings)

    async def list_documents(self, debate_id, limit):
        docs = [
            CitedDocument(id=str(doc_id), title=s.title, summary=s.snippet, source_url=s.url)
            for d_id, doc_id, s in reversed(self.documents)
            if d_id == debate_id
        ]
        return docs[:limit]

    # --- turns ---------------------------------------------------------------

    async def insert_turn(
        self,
        *,
        debate_id,
        agent_id,
        turn_number,
        turn_type: TurnType,
        content,
        citations,
        research_sources,
        audio_url,
        duration_ms,
        turn_id=None,
    ):
        for turn in self.turns:
            if turn.debate_id == debate_id and turn.turn_number == turn_number:
                return turn
        turn = Turn(
            id=turn_id or uuid.uuid4(),
            debate_id=debate_id,
            agent_id=agent_id,
            turn_number=turn_number,
            turn_type=turn_type.value,
            content=content,
            citations=citations,
            research_sources=research_sources,
            audio_url=audio_url,
            duration_ms=duration_ms,
            created_at=datetime.utcnow(),
        )
        self.turns.append(turn)
        return turn

    async def list_turns(self, debate_id):
        return sorted(
            (t for t in self.turns if t.debate_id == debate_id),
            key=lambda t: t.turn_number,
        )

    # --- verification ------------------------------------------------------

    async def insert_verdict(self, *, debate_id, turn_id, agent_id, record: VerdictRecord):
        row = ClaimVerdict(
            id=uuid.uuid4(),
            debate_id=debate_id,
            turn_id=turn_id,
            agent_id=agent_id,
            claim_text=record.claim_text,
            verdict=record.verdict.value,
            explanation=record.explanation,
            sources=[s.to_dict() for s in record.sources],
            confidence=record.confidence,
            is_lie=record.is_lie,
            created_at=datetime.utcnow(),
        )
        self.verdicts.append(row)
        return row

    async def insert_alert(self, *, debate_id, verdict, agent_name, record: VerdictRecord):
        row = Alert(
            id=uuid.uuid4(),
            debate_id=debate_id,
            fact_check_id=verdict.id,
            agent_name=agent_name,
            claim_text=record.claim_text,
            explanation=record.explanation,
            severity=record.severity.value,
            dismissed=False,
        )
        self.alerts.append(row)
        return row

    async def list_verdicts(self, debate_id):
        return [v for v in self.verdicts if v.debate_id == debate_id]

    # --- voting & summary --------------------------------------------------

    async def record_vote(self, debate_id, voter_session_id, vote):
        self.votes[(debate_id, voter_session_id)] = vote

    async def get_vote_tally(self, debate_id):
        choices = [v for (d_id, _), v in self.votes.items() if d_id == debate_id]
        if not choices:
            return None
        return VoteTally(
            pro_count=sum(1 for v in choices if v is VoteChoice.PRO),
            con_count=sum(1 for v in choices if v is VoteChoice.CON),
        )

    async def insert_summary(self, debate_id, summary: SummaryRecord):
        for row in self.summaries:
            if row.debate_id == debate_id:
                return row
        row = Summary(
            id=uuid.uuid4(),
            debate_id=debate_id,
            overall_summary=summary.overall_summary,
            winner_analysis=summary.winner_analysis,
            accuracy_scores=summary.accuracy_scores,
            key_arguments=[],
            fact_check_summary=summary.verdict_counts,
            sources_used=[],
            recommendations=summary.recommendations,
            vote_results=summary.vote_snapshot.to_dict() if summary.vote_snapshot else None,
            created_at=datetime.utcnow(),
        )
        self.summaries.append(row)
        return row

    async def get_summary(self, debate_id):
        return next((s for s in self.summaries if s.debate_id == debate_id), None)

    async def create_debate(self, topic, description, config, participants):
        debate = Debate(
            id=uuid.uuid4(),
            topic=topic,
            description=description,
            status=DebateStatus.SETUP.value,
            config=config.model_dump(mode="json"),
            created_at=datetime.utcnow(),
        )
        self.debates[debate.id] = debate
        for fields in participants:
            self.participants.append(Participant(id=uuid.uuid4(), debate_id=debate.id, **fields))
        return debate


class ScriptedDebater(BaseDebater):
    """
    Returns "<role> turn <n>" arguments and records every call.

    claims_per_turn controls how many claims each argument carries.
    """

    def __init__(self, claims_per_turn: int = 0):
        self.claims_per_turn = claims_per_turn
        self.calls: list[dict] = []

    async def generate_argument(self, **kwargs) -> AgentResponse:
        self.calls.append(kwargs)
        n = len(self.calls)
        role = kwargs["role"].value
        return AgentResponse(
            argument=f"{role} argument number {n}",
            claims=[f"{role} claim {n}.{i}" for i in range(self.claims_per_turn)],
        )


class StaticFactChecker(BaseFactChecker):
    """Gives every claim the same verdict and confidence."""

    def __init__(self, verdict, confidence: float):
        self.verdict = verdict
        self.confidence = confidence
        self.calls: list[list[str]] = []

    async def check_claims(self, *, topic, argument, claims, research_context):
        self.calls.append(list(claims))
        return [
            VerdictRecord(
                claim_text=claim,
                verdict=self.verdict,
                explanation="scripted",
                confidence=self.confidence,
            )
            for claim in claims
        ]


class EchoModerator(BaseModerator):
    def __init__(self):
        self.calls: list[dict] = []

    async def summarize(self, *, topic, transcript, verdicts, vote_tally):
        self.calls.append({
            "topic": topic,
            "transcript": transcript,
            "verdicts": verdicts,
            "vote_tally": vote_tally,
        })
        return SummaryRecord(
            overall_summary=f"{len(transcript)} turns on {topic}",
            winner_analysis="Too close to call",
            vote_snapshot=vote_tally,
        )


@pytest.fixture
def settings():
    return Settings(
        database_url="",
        openai_api_key="test",
        perplexity_api_key="test",
        words_per_minute=150,
        min_display_seconds=15.0,
        voting_window_seconds=5.0,
        max_documents_in_context=50,
    )


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def sleeps():
    """Recorded sleep durations; pass `sleeps.sleep` wherever a sleep is injected."""

    class SleepRecorder(list):
        async def sleep(self, seconds: float) -> None:
            self.append(seconds)

    return SleepRecorder()


@pytest.fixture
def failing_research_client():
    client = AsyncMock()
    client.search.side_effect = RuntimeError("research service unavailable")
    return client
