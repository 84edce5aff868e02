"""
Research Coordinator — Gathers evidence for one side of the debate.

WHAT THIS DOES:
Before the first turn, each side gets its own research: the topic is phrased
as "arguments in favor of" or "arguments against", sent to the research
lookup, and the result merged into one grounding text used by the debater
and the fact-checker for every turn of that side.

BEST EFFORT:
- Lookup fails → empty bundle, the debate goes on with general knowledge
- Saving sources as documents fails → logged, bundle still returned
- Embedding the saved documents fails → logged, documents stay unembedded

USAGE:
    coordinator = ResearchCoordinator(research_client, store, embedder)
    bundle = await coordinator.research(debate_id, topic, ParticipantRole.PRO, ResearchDepth.STANDARD)
"""

import logging
import time
import uuid
from typing import Optional

from debate_arena.models.enums import ParticipantRole, ResearchDepth
from debate_arena.services.debate.models import ResearchBundle, ResearchSource
from debate_arena.services.debate.protocols import (
    BaseDebateStore,
    BaseEmbedder,
    BaseResearchClient,
)

logger = logging.getLogger(__name__)

NO_RESEARCH_CONTEXT = "No research context available. Please rely on general knowledge."


def build_search_query(topic: str, side: ParticipantRole) -> str:
    """Bias the research question toward the side being researched."""
    perspective = "arguments in favor of" if side is ParticipantRole.PRO else "arguments against"
    return f"{perspective} {topic}. Include statistics, expert opinions, and evidence."


def build_combined_context(answer: str, sources: list[ResearchSource]) -> str:
    """
    Merge a research answer and its sources into one grounding text.

    Deterministic: same answer and same source order → same text.
    """
    sections = []

    if answer:
        sections.append("## Web Research")
        sections.append(answer)

    if sources:
        sections.append("\n### Sources")
        for source in sources:
            sections.append(f"- [{source.title}]({source.url})")
            if source.snippet:
                sections.append(f"  > {source.snippet}")

    if not sections:
        return NO_RESEARCH_CONTEXT

    return "\n".join(sections)


def empty_bundle() -> ResearchBundle:
    return ResearchBundle(answer="", sources=[], combined_context=NO_RESEARCH_CONTEXT)


class ResearchCoordinator:
    """
    Runs the research lookup for one side and persists what it found.

    The embedder is optional: without one, documents are saved unembedded.
    """

    def __init__(
        self,
        client: BaseResearchClient,
        store: BaseDebateStore,
        embedder: Optional[BaseEmbedder] = None,
    ):
        self.client = client
        self.store = store
        self.embedder = embedder

    async def research(
        self,
        debate_id: uuid.UUID,
        topic: str,
        side: ParticipantRole,
        depth: ResearchDepth,
    ) -> ResearchBundle:
        """
        Research one side of the topic. Never raises.

        Returns:
            ResearchBundle (empty when the lookup failed)
        """
        query = build_search_query(topic, side)
        start_time = time.time()
        logger.info(f"[Research {side.value}] Searching (depth: {depth.value})")

        try:
            answer, sources = await self.client.search(query, depth)
        except Exception as e:
            logger.warning(f"[Research {side.value}] Lookup failed, continuing without research: {e}")
            return empty_bundle()

        logger.info(
            f"[Research {side.value}] {len(sources)} sources in {time.time() - start_time:.2f}s"
        )

        if sources:
            await self._persist_sources(debate_id, side, sources)

        return ResearchBundle(
            answer=answer,
            sources=sources,
            combined_context=build_combined_context(answer, sources),
        )

    async def _persist_sources(
        self,
        debate_id: uuid.UUID,
        side: ParticipantRole,
        sources: list[ResearchSource],
    ) -> None:
        """Save sources as citable documents, then embed them. Failures are logged only."""
        try:
            doc_ids = await self.store.save_documents(debate_id, sources)
        except Exception as e:
            logger.warning(f"[Research {side.value}] Saving documents failed (non-fatal): {e}")
            return

        if self.embedder is None or not doc_ids:
            return

        texts = [f"{s.title or 'Untitled Source'}. {s.snippet}".strip() for s in sources]
        try:
            vectors = await self.embedder.embed_texts(texts)
            await self.store.set_document_embeddings(dict(zip(doc_ids, vectors)))
            logger.info(f"[Research {side.value}] Embedded {len(vectors)} documents")
        except Exception as e:
            logger.warning(f"[Research {side.value}] Embedding documents failed (non-fatal): {e}")
