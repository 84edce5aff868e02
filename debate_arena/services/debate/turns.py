"""
Turn Scheduler — Generates, paces and persists the debate turns.

TURN TYPES:
    turns 1-2                      → opening
    turns max_turns-1 .. max_turns → closing
    everything else                → rebuttal
The opening check runs first, so with max_turns <= 3 the overlapping turns
stay openings.

PAIRS:
Turns run in pro/con pairs: (1, 2), (3, 4), ... Pro always speaks on odd
numbers, con on even numbers. With an odd max_turns the last pair has no con.

- Opening pair: neither side can depend on the other, so both arguments are
  generated concurrently. Pro is persisted, the audience gets time to listen,
  then con is persisted.
- Rebuttal/closing pair: con must answer pro's actual words, so pro is
  generated and persisted first, con is generated with pro in its history,
  and con is persisted after pro's listening time.

PER TURN:
    generate (argument + optional speech)  →  persist  →  verify in background
Verification runs as a background task per turn; all of them are awaited
before run() returns, so the transcript and the verdicts agree by the time
the summary is written.

PACING:
Listening time = words / words_per_minute, at least min_display_seconds.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from debate_arena.config import Settings, get_settings
from debate_arena.models.debate import Participant, Turn
from debate_arena.models.enums import DebateType, ParticipantRole, TurnType
from debate_arena.models.schemas import DebateConfig
from debate_arena.services.debate.models import AgentResponse, PriorTurn, ResearchBundle
from debate_arena.services.debate.protocols import (
    BaseAudioStorage,
    BaseDebater,
    BaseDebateStore,
    BaseSpeechSynthesizer,
)
from debate_arena.services.debate.verifier import ClaimVerifier

logger = logging.getLogger(__name__)


def get_turn_type(turn_number: int, max_turns: int) -> TurnType:
    """Position-derived turn type (opening wins over closing when they overlap)."""
    if turn_number <= 2:
        return TurnType.OPENING
    if turn_number >= max_turns - 1:
        return TurnType.CLOSING
    return TurnType.REBUTTAL


def speaker_role(turn_number: int) -> ParticipantRole:
    """Pro speaks on odd turns, con on even turns."""
    return ParticipantRole.PRO if turn_number % 2 == 1 else ParticipantRole.CON


def estimate_display_seconds(
    text: str,
    words_per_minute: int = 150,
    min_seconds: float = 15.0,
) -> float:
    """How long a listener needs for this text."""
    words = len(text.split())
    return max(min_seconds, words / words_per_minute * 60)


@dataclass
class DebateSession:
    """Everything the scheduler needs about a running debate."""

    debate_id: uuid.UUID
    topic: str
    config: DebateConfig
    participants: dict[ParticipantRole, Participant]
    research: dict[ParticipantRole, ResearchBundle]
    turns: list[Turn] = field(default_factory=list)
    """Persisted turns, in turn-number order"""
    verifications: list[asyncio.Task] = field(default_factory=list)
    """Claim verifications still running for this debate"""

    def history_for(self, speaker: Participant) -> list[PriorTurn]:
        """Previous turns relabeled from the speaker's point of view."""
        return [
            PriorTurn(
                speaker="self" if turn.agent_id == speaker.id else "opponent",
                content=turn.content,
            )
            for turn in self.turns
        ]


@dataclass
class GeneratedTurn:
    """A turn that has been written but not persisted yet."""

    turn_id: uuid.UUID
    turn_number: int
    turn_type: TurnType
    speaker: Participant
    response: AgentResponse
    audio_url: Optional[str] = None


class TurnScheduler:
    """
    Runs the live phase of a debate.

    Speech synthesis only happens when the debate has voice enabled and both
    a synthesizer and an audio storage are configured. `sleep` is injectable
    so pacing can be observed without waiting.
    """

    def __init__(
        self,
        debater: BaseDebater,
        verifier: ClaimVerifier,
        store: BaseDebateStore,
        synthesizer: Optional[BaseSpeechSynthesizer] = None,
        audio_storage: Optional[BaseAudioStorage] = None,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.debater = debater
        self.verifier = verifier
        self.store = store
        self.synthesizer = synthesizer
        self.audio_storage = audio_storage
        self.settings = settings or get_settings()
        self.sleep = sleep

    # =========================================================================
    # LOOP
    # =========================================================================

    async def run(self, session: DebateSession) -> list[Turn]:
        """
        Produce all turns of the debate and wait for their verification.

        Returns:
            The persisted turns, in order
        """
        max_turns = session.config.max_turns
        try:
            for pro_number in range(1, max_turns + 1, 2):
                await self.process_pair(session, pro_number)
        except asyncio.CancelledError:
            for task in session.verifications:
                task.cancel()
            await self.drain_verifications(session, raise_errors=False)
            raise
        except Exception:
            # The loop error is the failure reason; verification errors are only logged
            await self.drain_verifications(session, raise_errors=False)
            raise
        await self.drain_verifications(session)

        logger.info(f"Debate {session.debate_id}: all {len(session.turns)} turns persisted")
        return session.turns

    async def process_pair(self, session: DebateSession, pro_number: int) -> None:
        max_turns = session.config.max_turns
        con_number = pro_number + 1
        has_con = con_number <= max_turns

        if get_turn_type(pro_number, max_turns) is TurnType.OPENING and has_con:
            # Openings are independent of each other
            pro_turn, con_turn = await asyncio.gather(
                self.generate(session, pro_number),
                self.generate(session, con_number),
            )
            persisted_pro = await self.persist(session, pro_turn)
            await self.sleep(self._display_seconds(persisted_pro))
            await self.persist(session, con_turn)
            return

        pro_turn = await self.generate(session, pro_number)
        persisted_pro = await self.persist(session, pro_turn)
        if not has_con:
            return

        # Con sees pro's persisted turn in its history
        con_turn = await self.generate(session, con_number)
        await self.sleep(self._display_seconds(persisted_pro))
        await self.persist(session, con_turn)

    # =========================================================================
    # PER-TURN STAGES
    # =========================================================================

    async def generate(self, session: DebateSession, turn_number: int) -> GeneratedTurn:
        """Write the argument (and audio) for one turn without persisting it."""
        role = speaker_role(turn_number)
        speaker = session.participants[role]
        turn_type = get_turn_type(turn_number, session.config.max_turns)

        documents = await self.store.list_documents(
            session.debate_id, self.settings.max_documents_in_context
        )

        response = await self.debater.generate_argument(
            role=role,
            topic=session.topic,
            debate_type=DebateType(session.config.debate_type),
            persona=speaker.persona_description,
            turn_type=turn_type,
            previous_turns=session.history_for(speaker),
            research_context=session.research[role].combined_context,
            documents=documents,
        )

        generated = GeneratedTurn(
            turn_id=uuid.uuid4(),
            turn_number=turn_number,
            turn_type=turn_type,
            speaker=speaker,
            response=response,
        )
        if session.config.voice_enabled:
            generated.audio_url = await self._synthesize(session.debate_id, generated)
        return generated

    async def persist(self, session: DebateSession, generated: GeneratedTurn) -> Turn:
        """Store the turn, then start verifying its claims in the background."""
        role = speaker_role(generated.turn_number)
        bundle = session.research[role]
        response = generated.response

        turn = await self.store.insert_turn(
            debate_id=session.debate_id,
            agent_id=generated.speaker.id,
            turn_number=generated.turn_number,
            turn_type=generated.turn_type,
            content=response.argument,
            citations=[c.to_dict() for c in response.citations],
            research_sources=[s.to_dict() for s in bundle.sources],
            audio_url=generated.audio_url,
            duration_ms=int(self._display_seconds_for(response.argument) * 1000),
            turn_id=generated.turn_id,
        )
        session.turns.append(turn)
        logger.info(
            f"Debate {session.debate_id}: turn {turn.turn_number} ({generated.turn_type.value}, "
            f"{role.value}) persisted with {len(response.claims)} claims"
        )

        if response.claims:
            session.verifications.append(asyncio.create_task(
                self.verifier.verify(
                    debate_id=session.debate_id,
                    turn=turn,
                    speaker=generated.speaker,
                    topic=session.topic,
                    argument=response.argument,
                    claims=response.claims,
                    research_context=bundle.combined_context,
                ),
                name=f"verify-{session.debate_id}-{turn.turn_number}",
            ))
        return turn

    async def drain_verifications(self, session: DebateSession, raise_errors: bool = True) -> None:
        """Wait for every background verification; the first failure is re-raised unless raise_errors is off."""
        pending, session.verifications = session.verifications, []
        if not pending:
            return
        results = await asyncio.gather(*pending, return_exceptions=True)
        errors = [r for r in results if isinstance(r, BaseException)]
        for error in errors:
            logger.error(f"Claim verification failed: {error!r}")
        if errors and raise_errors:
            raise errors[0]

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _synthesize(self, debate_id: uuid.UUID, generated: GeneratedTurn) -> Optional[str]:
        """Audio URL for the turn, or None when synthesis is off or fails."""
        if self.synthesizer is None or self.audio_storage is None:
            return None
        try:
            audio = await self.synthesizer.synthesize(
                generated.response.argument, generated.speaker.voice_id
            )
            return await self.audio_storage.upload(f"{debate_id}/{generated.turn_id}.mp3", audio)
        except Exception as e:
            logger.warning(f"Speech synthesis failed for turn {generated.turn_number}, continuing without audio: {e}")
            return None

    def _display_seconds(self, turn: Turn) -> float:
        return self._display_seconds_for(turn.content)

    def _display_seconds_for(self, text: str) -> float:
        return estimate_display_seconds(
            text,
            words_per_minute=self.settings.words_per_minute,
            min_seconds=self.settings.min_display_seconds,
        )
