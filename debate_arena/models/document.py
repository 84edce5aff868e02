"""
SQLAlchemy model for the documents table.

Research sources discovered for a debate are stored here so debaters can cite
them in later turns. The embedding column is filled opportunistically after
the source is saved.
"""

import uuid
from datetime import datetime
from typing import Optional

from pgvector.sqlalchemy import Vector
from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from debate_arena.database import Base


class Document(Base):
    """
    A research source attached to a debate.

    1536 dimensions = OpenAI text-embedding-3-small output size.
    """

    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    debate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("debates.id", ondelete="CASCADE"), index=True
    )

    title: Mapped[str] = mapped_column(Text)
    summary: Mapped[str] = mapped_column(Text, default="")
    content: Mapped[str] = mapped_column(Text, default="")
    source_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source_type: Mapped[str] = mapped_column(String(40), default="perplexity")

    embedding: Mapped[Optional[list[float]]] = mapped_column(Vector(1536), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Document debate={self.debate_id} title={self.title[:50]}...>"
