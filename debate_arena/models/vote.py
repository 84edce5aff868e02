"""
SQLAlchemy models for audience votes and the moderator's summary.

Votes are written by the request layer (one per voter session, upserted);
the engine only reads the tally. Exactly one summary exists per debate.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from debate_arena.database import Base


class Vote(Base):
    __tablename__ = "debate_votes"
    __table_args__ = (UniqueConstraint("debate_id", "voter_session_id", name="uq_vote_session"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    debate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("debates.id", ondelete="CASCADE"), index=True
    )
    voter_session_id: Mapped[str] = mapped_column(String(200))
    vote: Mapped[str] = mapped_column(String(10))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Summary(Base):
    __tablename__ = "debate_summaries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    debate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("debates.id", ondelete="CASCADE"), unique=True
    )
    overall_summary: Mapped[str] = mapped_column(Text, default="")
    winner_analysis: Mapped[str] = mapped_column(Text, default="")
    accuracy_scores: Mapped[dict] = mapped_column(JSON, default=dict)
    key_arguments: Mapped[list] = mapped_column(JSON, default=list)
    fact_check_summary: Mapped[dict] = mapped_column(JSON, default=dict)
    sources_used: Mapped[list] = mapped_column(JSON, default=list)
    recommendations: Mapped[str] = mapped_column(Text, default="")
    vote_results: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
