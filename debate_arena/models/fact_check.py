"""
SQLAlchemy models for claim verification output.

A fact_checks row exists for every verified claim; a lie_alerts row exists
only for verdicts flagged as lies.
"""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from debate_arena.database import Base


class ClaimVerdict(Base):
    __tablename__ = "fact_checks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    debate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("debates.id", ondelete="CASCADE"), index=True
    )
    turn_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("debate_turns.id", ondelete="CASCADE"), index=True
    )
    agent_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("debate_agents.id", ondelete="CASCADE")
    )
    claim_text: Mapped[str] = mapped_column(Text)
    verdict: Mapped[str] = mapped_column(String(20))
    explanation: Mapped[str] = mapped_column(Text, default="")
    # [{"url": ..., "title": ..., "relevant_text": ...}]
    sources: Mapped[list] = mapped_column(JSON, default=list)
    confidence: Mapped[float] = mapped_column(Float, default=0.0)
    is_lie: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Alert(Base):
    __tablename__ = "lie_alerts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    debate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("debates.id", ondelete="CASCADE"), index=True
    )
    fact_check_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("fact_checks.id", ondelete="CASCADE")
    )
    agent_name: Mapped[str] = mapped_column(String(200))
    claim_text: Mapped[str] = mapped_column(Text)
    explanation: Mapped[str] = mapped_column(Text, default="")
    severity: Mapped[str] = mapped_column(String(20))
    dismissed: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
