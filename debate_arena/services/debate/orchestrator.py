"""
Debate Orchestrator — Drives one debate from setup to completed.

WHAT THIS DOES:
Walks the debate through its lifecycle, one phase at a time:

    setup
      → researching   research both sides concurrently (best effort)
      → live          run every turn, wait for every verification
      → voting        hold the voting window open
      → summarizing   moderator analysis of transcript + verdicts + votes
      → completed

Every status write goes through phases.next_status(), and the only place
that catches errors is run(): whatever escapes a phase sends the debate down
the failure edge (status completed, "[ERROR] ..." in the description). Turns
and verdicts already persisted stay where they are.
A run cancelled by shutdown takes the same edge before the cancellation
propagates.

REJECTED UP FRONT (nothing is written):
- the debate does not exist
- the debate has already been started (status other than setup)

BACKGROUND EXECUTION:
A request handler must not wait for a debate to finish. DebateSupervisor
starts run() as a task, keeps a reference to it and logs anything that
escapes.

USAGE:
    orchestrator = build_orchestrator()
    supervisor = DebateSupervisor(orchestrator)
    supervisor.start(debate_id)          # returns immediately
"""

import asyncio
import logging
import time
import uuid
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from debate_arena.config import Settings, get_settings
from debate_arena.models.debate import Debate, Participant
from debate_arena.models.enums import DebateStatus, ParticipantRole, Verdict
from debate_arena.models.schemas import DebateConfig
from debate_arena.services.debate.models import (
    TranscriptEntry,
    VerdictRecord,
    VerdictSource,
)
from debate_arena.services.debate.phases import (
    DebateNotFoundError,
    InvalidTransitionError,
    OrchestrationError,
    ParticipantsMissingError,
    PhaseEvent,
    failure_description,
    is_terminal,
    next_status,
)
from debate_arena.services.debate.protocols import BaseDebateStore, BaseModerator
from debate_arena.services.debate.turns import DebateSession, TurnScheduler

if TYPE_CHECKING:
    # research.coordinator imports services.debate, which imports this module
    from debate_arena.services.research.coordinator import ResearchCoordinator

logger = logging.getLogger(__name__)

INTERRUPTED_MESSAGE = "Debate interrupted by shutdown"


class DebateOrchestrator:
    """
    Owns the status field of a debate while it runs.

    `sleep` is only used for the voting window; pacing between turns lives in
    the TurnScheduler.
    """

    def __init__(
        self,
        store: BaseDebateStore,
        research: "ResearchCoordinator",
        scheduler: TurnScheduler,
        moderator: BaseModerator,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.research = research
        self.scheduler = scheduler
        self.moderator = moderator
        self.settings = settings or get_settings()
        self.sleep = sleep

    # =========================================================================
    # ENTRY POINT
    # =========================================================================

    async def run(self, debate_id: uuid.UUID) -> DebateStatus:
        """
        Run the debate to completion.

        Returns:
            The final status (always completed once the debate was accepted)

        Raises:
            DebateNotFoundError: no debate with this id
            InvalidTransitionError: the debate is not in setup
        """
        debate = await self.store.get_debate(debate_id)
        if debate is None:
            raise DebateNotFoundError(debate_id)

        status = DebateStatus(debate.status)
        if status is not DebateStatus.SETUP:
            raise InvalidTransitionError(status, PhaseEvent.ADVANCE)

        start_time = time.time()
        logger.info(f"Debate {debate_id}: starting '{debate.topic[:80]}'")

        try:
            config = DebateConfig.model_validate(debate.config or {})
            participants = await self._load_debaters(debate_id)

            status = await self._advance(debate_id, status)
            research = await self._research(debate, config)

            status = await self._advance(debate_id, status)
            session = DebateSession(
                debate_id=debate_id,
                topic=debate.topic,
                config=config,
                participants=participants,
                research=research,
            )
            await self.scheduler.run(session)

            status = await self._advance(debate_id, status)
            logger.info(f"Debate {debate_id}: voting open for {self.settings.voting_window_seconds}s")
            await self.sleep(self.settings.voting_window_seconds)

            status = await self._advance(debate_id, status)
            await self._summarize(debate, participants)

            status = await self._advance(debate_id, status)
        except asyncio.CancelledError:
            logger.warning(f"Debate {debate_id} interrupted during '{status.value}'")
            await self._fail(debate_id, status, OrchestrationError(INTERRUPTED_MESSAGE))
            raise
        except Exception as e:
            logger.exception(f"Debate {debate_id} failed during '{status.value}': {e}")
            return await self._fail(debate_id, status, e)

        logger.info(f"Debate {debate_id}: completed in {time.time() - start_time:.1f}s")
        return status

    # =========================================================================
    # PHASES
    # =========================================================================

    async def _load_debaters(self, debate_id: uuid.UUID) -> dict[ParticipantRole, Participant]:
        participants = await self.store.get_participants(debate_id)
        by_role = {ParticipantRole(p.role): p for p in participants}
        if ParticipantRole.PRO not in by_role or ParticipantRole.CON not in by_role:
            raise ParticipantsMissingError(debate_id)
        return {
            ParticipantRole.PRO: by_role[ParticipantRole.PRO],
            ParticipantRole.CON: by_role[ParticipantRole.CON],
        }

    async def _research(self, debate: Debate, config: DebateConfig) -> dict:
        pro_bundle, con_bundle = await asyncio.gather(
            self.research.research(debate.id, debate.topic, ParticipantRole.PRO, config.research_depth),
            self.research.research(debate.id, debate.topic, ParticipantRole.CON, config.research_depth),
        )
        logger.info(
            f"Debate {debate.id}: research done "
            f"(pro: {len(pro_bundle.sources)} sources, con: {len(con_bundle.sources)} sources)"
        )
        return {ParticipantRole.PRO: pro_bundle, ParticipantRole.CON: con_bundle}

    async def _summarize(
        self,
        debate: Debate,
        participants: dict[ParticipantRole, Participant],
    ) -> None:
        vote_tally = await self.store.get_vote_tally(debate.id)

        roles = {p.id: role for role, p in participants.items()}
        turns = await self.store.list_turns(debate.id)
        transcript = [
            TranscriptEntry(
                turn_number=turn.turn_number,
                role=roles.get(turn.agent_id, ParticipantRole.PRO),
                content=turn.content,
            )
            for turn in sorted(turns, key=lambda t: t.turn_number)
        ]

        rows = await self.store.list_verdicts(debate.id)
        verdicts = [
            VerdictRecord(
                claim_text=row.claim_text,
                verdict=Verdict(row.verdict),
                explanation=row.explanation,
                confidence=row.confidence,
                sources=[
                    VerdictSource(
                        url=s.get("url", ""),
                        title=s.get("title", ""),
                        relevant_text=s.get("relevant_text", ""),
                    )
                    for s in row.sources or []
                ],
            )
            for row in rows
        ]

        summary = await self.moderator.summarize(
            topic=debate.topic,
            transcript=transcript,
            verdicts=verdicts,
            vote_tally=vote_tally,
        )
        await self.store.insert_summary(debate.id, summary)
        logger.info(
            f"Debate {debate.id}: summary stored ({len(transcript)} turns, {len(verdicts)} verdicts)"
        )

    # =========================================================================
    # STATUS WRITES
    # =========================================================================

    async def _advance(self, debate_id: uuid.UUID, current: DebateStatus) -> DebateStatus:
        status = next_status(current, PhaseEvent.ADVANCE)
        await self.store.update_status(debate_id, status)
        logger.info(f"Debate {debate_id}: {current.value} → {status.value}")
        return status

    async def _fail(
        self,
        debate_id: uuid.UUID,
        current: DebateStatus,
        error: Exception,
    ) -> DebateStatus:
        """Take the failure edge. A debate that already reached completed is left alone."""
        if is_terminal(current):
            return current

        status = next_status(current, PhaseEvent.FAIL)
        try:
            await self.store.update_status(debate_id, status, failure_description(error))
        except Exception as write_error:
            logger.error(f"Debate {debate_id}: could not record failure: {write_error}")
        return status

    async def close(self) -> None:
        """Close the HTTP clients of the research lookup and audio storage."""
        for client in (self.research.client, self.scheduler.audio_storage):
            close = getattr(client, "close", None)
            if close is not None:
                await close()


# =============================================================================
# BACKGROUND SUPERVISION
# =============================================================================

class DebateSupervisor:
    """
    Runs debates as background tasks.

    Holds a strong reference to every running task (the event loop only keeps
    weak ones) and logs exceptions that escape DebateOrchestrator.run().
    """

    def __init__(self, orchestrator: DebateOrchestrator):
        self.orchestrator = orchestrator
        self._tasks: dict[uuid.UUID, asyncio.Task] = {}

    def start(self, debate_id: uuid.UUID) -> asyncio.Task:
        """Schedule the debate and return without waiting for it."""
        running = self._tasks.get(debate_id)
        if running is not None and not running.done():
            logger.warning(f"Debate {debate_id} is already running")
            return running

        task = asyncio.create_task(self.orchestrator.run(debate_id), name=f"debate-{debate_id}")
        self._tasks[debate_id] = task
        task.add_done_callback(lambda t: self._on_done(debate_id, t))
        return task

    def is_running(self, debate_id: uuid.UUID) -> bool:
        task = self._tasks.get(debate_id)
        return task is not None and not task.done()

    def _on_done(self, debate_id: uuid.UUID, task: asyncio.Task) -> None:
        if self._tasks.get(debate_id) is task:
            del self._tasks[debate_id]
        if task.cancelled():
            logger.warning(f"Debate {debate_id} task was cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Debate {debate_id} task ended with an unhandled error: {error!r}")

    async def shutdown(self) -> None:
        """Cancel running debates and wait for them to unwind."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


# =============================================================================
# DEFAULT WIRING
# =============================================================================

def build_orchestrator(
    sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None,
    settings: Optional[Settings] = None,
) -> DebateOrchestrator:
    """
    Wire the production collaborators (Postgres, OpenAI, Perplexity, Supabase).

    Speech is only wired when Supabase Storage is configured.
    """
    # Imported here: the agents and media modules import services.debate themselves
    from debate_arena.database import get_sessionmaker
    from debate_arena.services.agents import DebaterAgent, FactCheckerAgent, ModeratorAgent
    from debate_arena.services.debate.store import DebateStore
    from debate_arena.services.debate.verifier import ClaimVerifier
    from debate_arena.services.embeddings import EmbeddingService
    from debate_arena.services.media import SupabaseAudioStorage, TTSClient
    from debate_arena.services.research import PerplexityClient
    from debate_arena.services.research.coordinator import ResearchCoordinator

    settings = settings or get_settings()
    store = DebateStore(sessionmaker or get_sessionmaker())

    synthesizer = None
    audio_storage = None
    if settings.supabase_url and settings.supabase_service_key:
        synthesizer = TTSClient()
        audio_storage = SupabaseAudioStorage()

    scheduler = TurnScheduler(
        debater=DebaterAgent(),
        verifier=ClaimVerifier(FactCheckerAgent(), store),
        store=store,
        synthesizer=synthesizer,
        audio_storage=audio_storage,
        settings=settings,
    )
    return DebateOrchestrator(
        store=store,
        research=ResearchCoordinator(PerplexityClient(), store, EmbeddingService()),
        scheduler=scheduler,
        moderator=ModeratorAgent(),
        settings=settings,
    )
