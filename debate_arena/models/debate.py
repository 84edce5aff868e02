"""
SQLAlchemy models for the debate core tables.

- debates: one row per debate, status is the only field mutated while it runs
- debate_agents: the four participants (pro, con, fact-checker, moderator)
- debate_turns: append-only, unique per (debate_id, turn_number)
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from debate_arena.database import Base
from debate_arena.models.enums import DebateStatus


def default_debate_config() -> dict:
    return {
        "max_turns": 6,
        "turn_time_limit_sec": 120,
        "research_depth": "standard",
        "voice_enabled": False,
        "debate_type": "standard",
    }


class Debate(Base):
    """
    A debate on a single topic.

    The config JSON holds max_turns, turn_time_limit_sec, research_depth,
    voice_enabled and debate_type. It is frozen once research begins.
    """

    __tablename__ = "debates"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    topic: Mapped[str] = mapped_column(Text)
    description: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[str] = mapped_column(String(20), default=DebateStatus.SETUP.value, index=True)
    config: Mapped[dict] = mapped_column(JSON, default=default_debate_config)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Debate id={self.id} status={self.status} topic={self.topic[:50]}...>"


class Participant(Base):
    """An agent taking part in a debate."""

    __tablename__ = "debate_agents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    debate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("debates.id", ondelete="CASCADE"), index=True
    )
    role: Mapped[str] = mapped_column(String(20))
    name: Mapped[str] = mapped_column(String(200))
    persona_description: Mapped[str] = mapped_column(Text, default="")
    voice_id: Mapped[str] = mapped_column(String(40), default="alloy")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Turn(Base):
    """
    One participant's contribution at a fixed position in the debate.

    citations: [{"label": ..., "source_url": ...}]
    research_sources: [{"url": ..., "title": ..., "snippet": ...}]
    """

    __tablename__ = "debate_turns"
    __table_args__ = (UniqueConstraint("debate_id", "turn_number", name="uq_turn_number"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    debate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("debates.id", ondelete="CASCADE"), index=True
    )
    agent_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("debate_agents.id", ondelete="CASCADE")
    )
    turn_number: Mapped[int] = mapped_column(Integer)
    turn_type: Mapped[str] = mapped_column(String(20))
    content: Mapped[str] = mapped_column(Text)
    citations: Mapped[list] = mapped_column(JSON, default=list)
    research_sources: Mapped[list] = mapped_column(JSON, default=list)
    audio_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Turn debate={self.debate_id} #{self.turn_number} {self.turn_type}>"
