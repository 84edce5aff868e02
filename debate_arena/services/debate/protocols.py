"""
Debate Protocols — Abstract base classes for everything the engine calls out to.

WHAT THIS IS:
The orchestration core never talks to OpenAI, Perplexity, Supabase or the
database directly. It talks to these interfaces, and the concrete
implementations live next to the service they wrap:

    BaseResearchClient     → services/research/perplexity.py
    BaseDebater            → services/agents/debater.py
    BaseFactChecker        → services/agents/fact_checker.py
    BaseModerator          → services/agents/moderator.py
    BaseSpeechSynthesizer  → services/media/tts.py
    BaseAudioStorage       → services/media/storage.py
    BaseEmbedder           → services/embeddings.py
    BaseDebateStore        → services/debate/store.py

WHY ABSTRACT CLASSES:
- Swap providers without touching the state machine
- Tests replace every collaborator with a fake
"""

import uuid
from abc import ABC, abstractmethod
from typing import Optional

from debate_arena.models.debate import Debate, Participant, Turn
from debate_arena.models.enums import (
    DebateStatus,
    DebateType,
    ParticipantRole,
    ResearchDepth,
    TurnType,
)
from debate_arena.models.fact_check import Alert, ClaimVerdict
from debate_arena.models.vote import Summary
from debate_arena.services.debate.models import (
    AgentResponse,
    CitedDocument,
    PriorTurn,
    ResearchSource,
    SummaryRecord,
    TranscriptEntry,
    VerdictRecord,
    VoteTally,
)


# =============================================================================
# EXTERNAL CAPABILITIES
# =============================================================================

class BaseResearchClient(ABC):
    """Web research lookup."""

    @abstractmethod
    async def search(
        self,
        query: str,
        depth: ResearchDepth,
    ) -> tuple[str, list[ResearchSource]]:
        """
        Run one research query.

        Returns:
            Tuple of (narrative answer, sources in the order returned)

        Raises:
            Whatever the transport raises; callers decide how to degrade.
        """
        pass


class BaseDebater(ABC):
    """Argument generation for the pro and con sides."""

    @abstractmethod
    async def generate_argument(
        self,
        *,
        role: ParticipantRole,
        topic: str,
        debate_type: DebateType,
        persona: str,
        turn_type: TurnType,
        previous_turns: list[PriorTurn],
        research_context: str,
        documents: list[CitedDocument],
    ) -> AgentResponse:
        """
        Produce the argument for one turn.

        Must not raise on malformed model output: unparseable text becomes the
        argument with no citations or claims.
        """
        pass


class BaseFactChecker(ABC):
    """Batched claim verification."""

    @abstractmethod
    async def check_claims(
        self,
        *,
        topic: str,
        argument: str,
        claims: list[str],
        research_context: str,
    ) -> list[VerdictRecord]:
        """
        Verify all claims from one turn in a single request.

        On malformed output, returns one unverifiable record per claim.
        """
        pass


class BaseModerator(ABC):
    """Post-hoc analysis of a finished debate."""

    @abstractmethod
    async def summarize(
        self,
        *,
        topic: str,
        transcript: list[TranscriptEntry],
        verdicts: list[VerdictRecord],
        vote_tally: Optional[VoteTally],
    ) -> SummaryRecord:
        pass


class BaseSpeechSynthesizer(ABC):
    @abstractmethod
    async def synthesize(self, text: str, voice: str) -> bytes:
        """Audio bytes (mp3) for the text, chunked internally if needed."""
        pass


class BaseAudioStorage(ABC):
    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str = "audio/mpeg") -> str:
        """Upload a blob and return its durable public URL."""
        pass


class BaseEmbedder(ABC):
    @abstractmethod
    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """One vector per input text, same order."""
        pass


# =============================================================================
# DURABLE STORE
# =============================================================================

class BaseDebateStore(ABC):
    """
    Persistence for everything the engine produces.

    Every write is also a change notification for downstream consumers; the
    engine never calls a presentation layer directly. Writes are keyed by
    natural keys (debate + turn number, debate for summaries) so replays do
    not create duplicates.
    """

    # --- debates & participants -------------------------------------------

    @abstractmethod
    async def get_debate(self, debate_id: uuid.UUID) -> Optional[Debate]:
        pass

    @abstractmethod
    async def get_participants(self, debate_id: uuid.UUID) -> list[Participant]:
        pass

    @abstractmethod
    async def update_status(
        self,
        debate_id: uuid.UUID,
        status: DebateStatus,
        description: Optional[str] = None,
    ) -> None:
        """Write the status (and optionally replace the description)."""
        pass

    # --- research documents -----------------------------------------------

    @abstractmethod
    async def save_documents(
        self,
        debate_id: uuid.UUID,
        sources: list[ResearchSource],
    ) -> list[uuid.UUID]:
        """Persist sources as citable documents; returns ids in input order."""
        pass

    @abstractmethod
    async def set_document_embeddings(
        self,
        embeddings: dict[uuid.UUID, list[float]],
    ) -> None:
        pass

    @abstractmethod
    async def list_documents(self, debate_id: uuid.UUID, limit: int) -> list[CitedDocument]:
        """Most recent documents first."""
        pass

    # --- turns ---------------------------------------------------------------

    @abstractmethod
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
        pass

    @abstractmethod
    async def list_turns(self, debate_id: uuid.UUID) -> list[Turn]:
        """Ordered by turn number."""
        pass

    # --- verification ------------------------------------------------------

    @abstractmethod
    async def insert_verdict(
        self,
        *,
        debate_id: uuid.UUID,
        turn_id: uuid.UUID,
        agent_id: uuid.UUID,
        record: VerdictRecord,
    ) -> ClaimVerdict:
        pass

    @abstractmethod
    async def insert_alert(
        self,
        *,
        debate_id: uuid.UUID,
        verdict: ClaimVerdict,
        agent_name: str,
        record: VerdictRecord,
    ) -> Alert:
        pass

    @abstractmethod
    async def list_verdicts(self, debate_id: uuid.UUID) -> list[ClaimVerdict]:
        pass

    # --- voting & summary --------------------------------------------------

    @abstractmethod
    async def get_vote_tally(self, debate_id: uuid.UUID) -> Optional[VoteTally]:
        """None when nobody voted."""
        pass

    @abstractmethod
    async def insert_summary(self, debate_id: uuid.UUID, summary: SummaryRecord) -> Summary:
        pass
