"""
Claim Verifier — Fact-checks a turn and raises lie alerts.

WHAT THIS DOES:
1. Skips turns without claims entirely (verification is claim-gated)
2. Sends all claims of the turn to the fact-checker in one batch
3. Persists a fact_checks row for every verdict, concurrently
4. For every verdict flagged as a lie, persists a lie_alerts row

LIE RULE:
    is_lie   = confidence >= 0.8 and verdict in {false, mostly_false}
    severity = critical if confidence >= 0.9 else warning

Both live on VerdictRecord (services/debate/models.py) so the rule exists in
exactly one place.
"""

import asyncio
import logging
import uuid

from debate_arena.models.debate import Participant, Turn
from debate_arena.services.debate.models import VerdictRecord
from debate_arena.services.debate.protocols import BaseDebateStore, BaseFactChecker

logger = logging.getLogger(__name__)


class ClaimVerifier:
    def __init__(self, fact_checker: BaseFactChecker, store: BaseDebateStore):
        self.fact_checker = fact_checker
        self.store = store

    async def verify(
        self,
        *,
        debate_id: uuid.UUID,
        turn: Turn,
        speaker: Participant,
        topic: str,
        argument: str,
        claims: list[str],
        research_context: str,
    ) -> list[VerdictRecord]:
        """
        Verify the claims of a persisted turn and store the results.

        Args:
            debate_id: Debate the turn belongs to
            turn: The persisted turn the claims came from
            speaker: Participant who made the claims (named in alerts)
            topic: Debate topic
            argument: Full argument text of the turn
            claims: Claims extracted from the argument
            research_context: The speaker's research context

        Returns:
            The verdicts, in the order the fact-checker returned them
        """
        if not claims:
            return []

        records = await self.fact_checker.check_claims(
            topic=topic,
            argument=argument,
            claims=claims,
            research_context=research_context,
        )

        await asyncio.gather(*(
            self._persist(debate_id, turn, speaker, record) for record in records
        ))

        lies = sum(1 for r in records if r.is_lie)
        logger.info(
            f"Turn {turn.turn_number}: {len(records)} claims checked, {lies} flagged as lies"
        )
        return records

    async def _persist(
        self,
        debate_id: uuid.UUID,
        turn: Turn,
        speaker: Participant,
        record: VerdictRecord,
    ) -> None:
        """Store one verdict (and its alert). A failed write only loses this claim."""
        try:
            row = await self.store.insert_verdict(
                debate_id=debate_id,
                turn_id=turn.id,
                agent_id=speaker.id,
                record=record,
            )
            if record.is_lie:
                await self.store.insert_alert(
                    debate_id=debate_id,
                    verdict=row,
                    agent_name=speaker.name,
                    record=record,
                )
                logger.info(
                    f"Lie alert ({record.severity.value}) for {speaker.name}: "
                    f"{record.claim_text[:80]}"
                )
        except Exception as e:
            logger.error(f"Failed to store fact check for claim '{record.claim_text[:80]}': {e}")
