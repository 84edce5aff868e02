"""
Moderator Agent — Writes the post-debate analysis.

WHAT THIS DOES:
After voting closes, reads the full transcript, every fact-check verdict and
the audience vote, and produces:
- an overall summary and a winner analysis
- an accuracy score per side (0-1)
- the key arguments, strongest first
- the sources used, most reliable first
- recommendations for the audience

Verdict counts are computed here from the verdicts themselves rather than
asked of the model, so the numbers always match the fact_checks table.

PERMISSIVE PARSING:
If the response cannot be decoded, the raw text becomes the overall summary
and every other section gets a placeholder. The vote snapshot and verdict
counts are attached either way.
"""

import logging
from typing import Optional

from openai import AsyncOpenAI

from debate_arena.config import get_settings
from debate_arena.services.debate.models import (
    KeyArgument,
    SourceUsed,
    SummaryRecord,
    TranscriptEntry,
    VerdictRecord,
    VoteTally,
    count_verdicts,
)
from debate_arena.services.debate.protocols import BaseModerator
from debate_arena.services.parsing import as_list, as_str, clamp_unit, decode_json

logger = logging.getLogger(__name__)

MODERATOR_SYSTEM_PROMPT = """You are a neutral, expert debate moderator analyzing a finished debate on: "{topic}".

YOUR ROLE:
1. Summarize how the debate unfolded
2. Judge which side argued better, on evidence and reasoning, not on the audience vote
3. Score each side's factual accuracy using the fact-check results
4. Identify the key arguments and how well each was supported
5. Assess the reliability of the sources the debaters relied on

OUTPUT FORMAT (JSON):
{{
  "overall_summary": "2-3 paragraphs",
  "winner_analysis": "which side made the stronger case and why",
  "accuracy_scores": {{"pro": 0.0, "con": 0.0}},
  "key_arguments": [
    {{"agent_role": "pro | con", "argument": "...", "strength": 0.0, "supported_by": ["source title or url"]}}
  ],
  "sources_used": [
    {{"url": "...", "title": "...", "cited_by": ["pro", "con"], "reliability": 0.0}}
  ],
  "recommendations": "what the audience should read or consider next"
}}"""


def _format_votes(vote_tally: Optional[VoteTally]) -> str:
    if vote_tally is None or vote_tally.total == 0:
        return "No audience votes were cast."
    return (
        "Audience Vote Results:\n"
        f"- Pro: {vote_tally.pro_count} votes ({vote_tally.pro_percentage:.1f}%)\n"
        f"- Con: {vote_tally.con_count} votes ({vote_tally.con_percentage:.1f}%)\n"
        f"- Total: {vote_tally.total} votes"
    )


def build_user_message(
    transcript: list[TranscriptEntry],
    verdicts: list[VerdictRecord],
    vote_tally: Optional[VoteTally],
) -> str:
    turns = "\n\n---\n\n".join(
        f"[Turn {entry.turn_number} - {entry.role.value.upper()}]:\n{entry.content}"
        for entry in sorted(transcript, key=lambda e: e.turn_number)
    )
    fact_checks = "\n".join(
        f'- Claim: "{v.claim_text}"\n  Verdict: {v.verdict.value} (confidence: {v.confidence})'
        for v in verdicts
    )

    return f"""## Full Debate Transcript

{turns}

## Fact-Check Results

{fact_checks or 'No fact-checks were performed.'}

## Audience Votes

{_format_votes(vote_tally)}

---

Analyze the entire debate and provide your comprehensive summary. Respond with valid JSON only."""


def parse_summary(
    raw: str,
    verdicts: list[VerdictRecord],
    vote_tally: Optional[VoteTally],
) -> SummaryRecord:
    verdict_counts = count_verdicts(verdicts)

    def normalize(parsed: dict) -> SummaryRecord:
        scores = parsed.get("accuracy_scores")
        accuracy_scores = (
            {as_str(k): clamp_unit(v) for k, v in scores.items()}
            if isinstance(scores, dict)
            else {}
        )

        key_arguments = [
            KeyArgument(
                agent_role=as_str(a.get("agent_role")),
                argument=as_str(a.get("argument")),
                strength=clamp_unit(a.get("strength")),
                supported_by=[as_str(s) for s in as_list(a.get("supported_by"))],
            )
            for a in as_list(parsed.get("key_arguments"))
            if isinstance(a, dict)
        ]
        key_arguments.sort(key=lambda a: a.strength, reverse=True)

        sources_used = [
            SourceUsed(
                url=as_str(s.get("url")),
                title=as_str(s.get("title")),
                reliability=clamp_unit(s.get("reliability")),
                cited_by=[as_str(c) for c in as_list(s.get("cited_by"))],
            )
            for s in as_list(parsed.get("sources_used"))
            if isinstance(s, dict)
        ]
        sources_used.sort(key=lambda s: s.reliability, reverse=True)

        return SummaryRecord(
            overall_summary=as_str(parsed.get("overall_summary")),
            winner_analysis=as_str(parsed.get("winner_analysis")),
            accuracy_scores=accuracy_scores,
            key_arguments=key_arguments,
            verdict_counts=verdict_counts,
            sources_used=sources_used,
            recommendations=as_str(parsed.get("recommendations")),
            vote_snapshot=vote_tally,
        )

    def fallback(text: str) -> SummaryRecord:
        return SummaryRecord(
            overall_summary=text or "Unable to generate debate summary due to a processing error.",
            winner_analysis="Analysis unavailable due to a processing error.",
            verdict_counts=verdict_counts,
            recommendations="Unable to provide recommendations due to a processing error.",
            vote_snapshot=vote_tally,
        )

    return decode_json(raw, normalize=normalize, fallback=fallback, label="moderator")


class ModeratorAgent(BaseModerator):
    """Summarizes finished debates with an OpenAI chat model."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        settings = get_settings()
        self.model = model or settings.moderator_model
        self.client = client or AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.request_timeout_seconds,
        )

    async def summarize(
        self,
        *,
        topic: str,
        transcript: list[TranscriptEntry],
        verdicts: list[VerdictRecord],
        vote_tally: Optional[VoteTally],
    ) -> SummaryRecord:
        logger.info(f"Summarizing {len(transcript)} turns and {len(verdicts)} verdicts")

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": MODERATOR_SYSTEM_PROMPT.format(topic=topic)},
                {"role": "user", "content": build_user_message(transcript, verdicts, vote_tally)},
            ],
            response_format={"type": "json_object"},
            max_tokens=4096,
            temperature=0.3,
        )

        return parse_summary(response.choices[0].message.content or "", verdicts, vote_tally)
