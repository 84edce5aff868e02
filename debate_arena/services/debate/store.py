"""
Debate Store — SQLAlchemy implementation of the durable store.

WHAT THIS DOES:
Reads and writes every debate table for both the engine and the API routes.

WHY ONE SESSION PER OPERATION:
The engine writes concurrently (both opening turns, all verdicts of a turn).
An AsyncSession must not be shared between concurrent tasks, so the store
holds a session factory and opens a short-lived session per call.

CHANGE NOTIFICATIONS:
Each write publishes {"table", "event", "debate_id", "id"} on the
'debate_events' Postgres channel inside the same transaction, so listeners
only hear about committed rows. Consumers filter by debate_id.

IDEMPOTENCE:
Turns are unique per (debate_id, turn_number) and summaries per debate_id.
Re-inserting either returns the existing row instead of failing.
"""

import json
import logging
import uuid
from typing import Optional

from sqlalchemy import func, select, text, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from debate_arena.models.debate import Debate, Participant, Turn
from debate_arena.models.document import Document
from debate_arena.models.enums import DebateStatus, TurnType, VoteChoice
from debate_arena.models.fact_check import Alert, ClaimVerdict
from debate_arena.models.schemas import DebateConfig
from debate_arena.models.vote import Summary, Vote
from debate_arena.services.debate.models import (
    CitedDocument,
    ResearchSource,
    SummaryRecord,
    VerdictRecord,
    VoteTally,
)
from debate_arena.services.debate.protocols import BaseDebateStore

logger = logging.getLogger(__name__)

NOTIFY_CHANNEL = "debate_events"


async def _notify(
    session: AsyncSession,
    table: str,
    event: str,
    debate_id: uuid.UUID,
    row_id: uuid.UUID,
) -> None:
    """Queue a change notification; delivered by Postgres on commit."""
    if session.bind.dialect.name != "postgresql":
        return
    payload = json.dumps({
        "table": table,
        "event": event,
        "debate_id": str(debate_id),
        "id": str(row_id),
    })
    await session.execute(
        text("SELECT pg_notify(:channel, :payload)"),
        {"channel": NOTIFY_CHANNEL, "payload": payload},
    )


class DebateStore(BaseDebateStore):
    """
    Durable store backed by Supabase PostgreSQL.

    Handles:
    - Debate/participant creation and status changes
    - Research documents (and their embeddings)
    - Turns, fact checks, lie alerts
    - Votes and the final summary
    """

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]):
        self.sessionmaker = sessionmaker

    # =========================================================================
    # DEBATES & PARTICIPANTS
    # =========================================================================

    async def create_debate(
        self,
        topic: str,
        description: str,
        config: DebateConfig,
        participants: list[dict],
    ) -> Debate:
        """
        Create a debate in 'setup' with its participants, in one transaction.

        Args:
            participants: Dicts with role, name, persona_description, voice_id
        """
        async with self.sessionmaker() as session:
            debate = Debate(
                id=uuid.uuid4(),
                topic=topic,
                description=description,
                status=DebateStatus.SETUP.value,
                config=config.model_dump(mode="json"),
            )
            session.add(debate)
            for fields in participants:
                session.add(Participant(id=uuid.uuid4(), debate_id=debate.id, **fields))
            await _notify(session, "debates", "insert", debate.id, debate.id)
            await session.commit()

        logger.info(f"Created debate {debate.id} with {len(participants)} participants")
        return debate

    async def get_debate(self, debate_id: uuid.UUID) -> Optional[Debate]:
        async with self.sessionmaker() as session:
            return await session.get(Debate, debate_id)

    async def get_participants(self, debate_id: uuid.UUID) -> list[Participant]:
        async with self.sessionmaker() as session:
            result = await session.execute(
                select(Participant).where(Participant.debate_id == debate_id)
            )
            return list(result.scalars().all())

    async def update_status(
        self,
        debate_id: uuid.UUID,
        status: DebateStatus,
        description: Optional[str] = None,
    ) -> None:
        values = {"status": status.value}
        if description is not None:
            values["description"] = description

        async with self.sessionmaker() as session:
            await session.execute(update(Debate).where(Debate.id == debate_id).values(**values))
            await _notify(session, "debates", "update", debate_id, debate_id)
            await session.commit()

    # =========================================================================
    # RESEARCH DOCUMENTS
    # =========================================================================

    async def save_documents(
        self,
        debate_id: uuid.UUID,
        sources: list[ResearchSource],
    ) -> list[uuid.UUID]:
        async with self.sessionmaker() as session:
            ids = []
            for source in sources:
                doc = Document(
                    id=uuid.uuid4(),
                    debate_id=debate_id,
                    title=source.title or "Untitled Source",
                    summary=source.snippet or "",
                    content=source.snippet or "",
                    source_url=source.url or None,
                    source_type="perplexity",
                )
                session.add(doc)
                ids.append(doc.id)
                await _notify(session, "documents", "insert", debate_id, doc.id)
            await session.commit()

        logger.info(f"Saved {len(ids)} research documents for debate {debate_id}")
        return ids

    async def set_document_embeddings(self, embeddings: dict[uuid.UUID, list[float]]) -> None:
        async with self.sessionmaker() as session:
            for doc_id, vector in embeddings.items():
                await session.execute(
                    update(Document).where(Document.id == doc_id).values(embedding=vector)
                )
            await session.commit()

    async def list_documents(self, debate_id: uuid.UUID, limit: int) -> list[CitedDocument]:
        async with self.sessionmaker() as session:
            result = await session.execute(
                select(Document)
                .where(Document.debate_id == debate_id)
                .order_by(Document.created_at.desc())
                .limit(limit)
            )
            return [
                CitedDocument(
                    id=str(doc.id),
                    title=doc.title,
                    summary=doc.summary,
                    source_url=doc.source_url or "",
                )
                for doc in result.scalars().all()
            ]

    # =========================================================================
    # TURNS
    # =========================================================================

    async def insert_turn(
        self,
        *,
        debate_id: uuid.UUID,
        agent_id: uuid.UUID,
        turn_number: int,
        turn_type: TurnType,
        content: str,
        citations: list[dict],
        research_sources: list[dict],
        audio_url: Optional[str],
        duration_ms: Optional[int],
        turn_id: Optional[uuid.UUID] = None,
    ) -> Turn:
        async with self.sessionmaker() as session:
            existing = await session.execute(
                select(Turn).where(Turn.debate_id == debate_id, Turn.turn_number == turn_number)
            )
            turn = existing.scalar_one_or_none()
            if turn is not None:
                logger.warning(f"Turn {turn_number} of debate {debate_id} already stored, keeping it")
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
            )
            session.add(turn)
            await _notify(session, "debate_turns", "insert", debate_id, turn.id)
            await session.commit()
            return turn

    async def list_turns(self, debate_id: uuid.UUID) -> list[Turn]:
        async with self.sessionmaker() as session:
            result = await session.execute(
                select(Turn).where(Turn.debate_id == debate_id).order_by(Turn.turn_number)
            )
            return list(result.scalars().all())

    # =========================================================================
    # FACT CHECKS & LIE ALERTS
    # =========================================================================

    async def insert_verdict(
        self,
        *,
        debate_id: uuid.UUID,
        turn_id: uuid.UUID,
        agent_id: uuid.UUID,
        record: VerdictRecord,
    ) -> ClaimVerdict:
        async with self.sessionmaker() as session:
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
            )
            session.add(row)
            await _notify(session, "fact_checks", "insert", debate_id, row.id)
            await session.commit()
            return row

    async def insert_alert(
        self,
        *,
        debate_id: uuid.UUID,
        verdict: ClaimVerdict,
        agent_name: str,
        record: VerdictRecord,
    ) -> Alert:
        async with self.sessionmaker() as session:
            row = Alert(
                id=uuid.uuid4(),
                debate_id=debate_id,
                fact_check_id=verdict.id,
                agent_name=agent_name,
                claim_text=record.claim_text,
                explanation=record.explanation,
                severity=record.severity.value,
            )
            session.add(row)
            await _notify(session, "lie_alerts", "insert", debate_id, row.id)
            await session.commit()
            return row

    async def list_verdicts(self, debate_id: uuid.UUID) -> list[ClaimVerdict]:
        async with self.sessionmaker() as session:
            result = await session.execute(
                select(ClaimVerdict)
                .where(ClaimVerdict.debate_id == debate_id)
                .order_by(ClaimVerdict.created_at)
            )
            return list(result.scalars().all())

    # =========================================================================
    # VOTES & SUMMARY
    # =========================================================================

    async def record_vote(self, debate_id: uuid.UUID, voter_session_id: str, vote: VoteChoice) -> None:
        """Upsert a vote: a voter session can change its mind, never vote twice."""
        async with self.sessionmaker() as session:
            existing = await session.execute(
                select(Vote).where(
                    Vote.debate_id == debate_id,
                    Vote.voter_session_id == voter_session_id,
                )
            )
            row = existing.scalar_one_or_none()
            if row is None:
                row = Vote(id=uuid.uuid4(), debate_id=debate_id, voter_session_id=voter_session_id)
                session.add(row)
            row.vote = vote.value
            await _notify(session, "debate_votes", "upsert", debate_id, row.id)
            await session.commit()

    async def get_vote_tally(self, debate_id: uuid.UUID) -> Optional[VoteTally]:
        async with self.sessionmaker() as session:
            result = await session.execute(
                select(Vote.vote, func.count(Vote.id))
                .where(Vote.debate_id == debate_id)
                .group_by(Vote.vote)
            )
            counts = dict(result.all())

        if not counts:
            return None
        return VoteTally(
            pro_count=counts.get(VoteChoice.PRO.value, 0),
            con_count=counts.get(VoteChoice.CON.value, 0),
        )

    async def insert_summary(self, debate_id: uuid.UUID, summary: SummaryRecord) -> Summary:
        async with self.sessionmaker() as session:
            existing = await session.execute(select(Summary).where(Summary.debate_id == debate_id))
            row = existing.scalar_one_or_none()
            if row is not None:
                logger.warning(f"Summary for debate {debate_id} already stored, keeping it")
                return row

            row = Summary(
                id=uuid.uuid4(),
                debate_id=debate_id,
                overall_summary=summary.overall_summary,
                winner_analysis=summary.winner_analysis,
                accuracy_scores=summary.accuracy_scores,
                key_arguments=[
                    {
                        "agent_role": a.agent_role,
                        "argument": a.argument,
                        "strength": a.strength,
                        "supported_by": a.supported_by,
                    }
                    for a in summary.key_arguments
                ],
                fact_check_summary=summary.verdict_counts,
                sources_used=[
                    {
                        "url": s.url,
                        "title": s.title,
                        "cited_by": s.cited_by,
                        "reliability": s.reliability,
                    }
                    for s in summary.sources_used
                ],
                recommendations=summary.recommendations,
                vote_results=summary.vote_snapshot.to_dict() if summary.vote_snapshot else None,
            )
            session.add(row)
            await _notify(session, "debate_summaries", "insert", debate_id, row.id)
            await session.commit()
            return row

    async def get_summary(self, debate_id: uuid.UUID) -> Optional[Summary]:
        async with self.sessionmaker() as session:
            result = await session.execute(select(Summary).where(Summary.debate_id == debate_id))
            return result.scalar_one_or_none()
