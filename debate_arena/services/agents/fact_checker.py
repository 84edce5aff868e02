"""
Fact-Checker Agent — Verifies the factual claims made in a turn.

WHAT THIS DOES:
Sends every claim from one turn, the argument they came from and the
speaker's research context to the model in a single request, and gets back
one verdict per claim:

    true | mostly_true | mixed | mostly_false | false | unverifiable

with an explanation, supporting sources and a confidence in [0, 1].

WHY BATCHED:
One request per turn instead of one per claim keeps latency flat while the
debate is live, and lets the model judge claims in the context of each other.

PERMISSIVE PARSING:
- Unknown verdict strings become "unverifiable"
- Confidence is clamped to [0, 1] (missing → 0.5)
- If the response has no usable "claims" list, every input claim is returned
  as unverifiable with confidence 0, so nothing is dropped silently

USAGE:
    checker = FactCheckerAgent()
    verdicts = await checker.check_claims(
        topic="...", argument=turn_text, claims=["..."], research_context=context,
    )
"""

import logging
from typing import Optional

from openai import AsyncOpenAI

from debate_arena.config import get_settings
from debate_arena.models.enums import Verdict
from debate_arena.services.debate.models import VerdictRecord, VerdictSource
from debate_arena.services.debate.protocols import BaseFactChecker
from debate_arena.services.parsing import as_list, as_str, clamp_unit, decode_json

logger = logging.getLogger(__name__)

FALLBACK_EXPLANATION = "Unable to verify this claim due to a processing error."

FACT_CHECKER_SYSTEM_PROMPT = """You are an impartial, rigorous fact-checker for a live debate on the topic: "{topic}".

YOUR ROLE:
Evaluate each numbered claim against the research context and your own knowledge.
You do not take sides. A persuasive claim is not a true claim.

VERDICTS:
- true: accurate and supported by reliable evidence
- mostly_true: accurate with minor imprecision or missing context
- mixed: partially accurate, partially misleading
- mostly_false: largely inaccurate or seriously misleading
- false: inaccurate, contradicted by reliable evidence
- unverifiable: cannot be checked against available evidence

CONFIDENCE:
How sure you are of the verdict, from 0.0 to 1.0. Only use 0.8 or above for
false/mostly_false when the evidence clearly contradicts the claim.

OUTPUT FORMAT (JSON):
{{
  "claims": [
    {{
      "claim_text": "the claim, verbatim",
      "verdict": "true | mostly_true | mixed | mostly_false | false | unverifiable",
      "explanation": "one or two sentences",
      "sources": [{{"url": "...", "title": "...", "relevant_text": "..."}}],
      "confidence": 0.0
    }}
  ]
}}

Return one entry per claim, in the same order."""


def normalize_verdict(value: object) -> Verdict:
    """Map free-form verdict text onto the closed verdict set."""
    normalized = as_str(value).strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return Verdict(normalized)
    except ValueError:
        return Verdict.UNVERIFIABLE


def fallback_verdicts(claims: list[str]) -> list[VerdictRecord]:
    """One unverifiable, zero-confidence record per claim."""
    return [
        VerdictRecord(
            claim_text=claim,
            verdict=Verdict.UNVERIFIABLE,
            explanation=FALLBACK_EXPLANATION,
            confidence=0.0,
        )
        for claim in claims
    ]


def parse_verdicts(raw: str, claims: list[str]) -> list[VerdictRecord]:
    """Decode a fact-check response; never drops claims on malformed output."""

    def normalize(parsed: dict) -> list[VerdictRecord]:
        entries = parsed.get("claims")
        if not isinstance(entries, list):
            raise ValueError("response has no 'claims' list")

        records = []
        for i, entry in enumerate(entries):
            default_text = claims[i] if i < len(claims) else ""
            if not isinstance(entry, dict):
                records.extend(fallback_verdicts([default_text] if default_text else []))
                continue
            records.append(VerdictRecord(
                claim_text=as_str(entry.get("claim_text"), default_text) or default_text,
                verdict=normalize_verdict(entry.get("verdict")),
                explanation=as_str(entry.get("explanation")),
                confidence=clamp_unit(entry.get("confidence"), default=0.5),
                sources=[
                    VerdictSource(
                        url=as_str(s.get("url")),
                        title=as_str(s.get("title")),
                        relevant_text=as_str(s.get("relevant_text")),
                    )
                    for s in as_list(entry.get("sources"))
                    if isinstance(s, dict)
                ],
            ))
        # Claims the model left out still get a verdict
        records.extend(fallback_verdicts(claims[len(entries):]))
        return records

    return decode_json(
        raw,
        normalize=normalize,
        fallback=lambda _: fallback_verdicts(claims),
        label="fact-checker",
    )


class FactCheckerAgent(BaseFactChecker):
    """Verifies claims with an OpenAI chat model."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        settings = get_settings()
        self.model = model or settings.fact_checker_model
        self.client = client or AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.request_timeout_seconds,
        )

    async def check_claims(
        self,
        *,
        topic: str,
        argument: str,
        claims: list[str],
        research_context: str,
    ) -> list[VerdictRecord]:
        if not claims:
            return []

        claims_list = "\n".join(f'{i}. "{claim}"' for i, claim in enumerate(claims, 1))

        user_message = f"""## Research Context & Source Documents

{research_context}

## Argument Being Fact-Checked

{argument}

## Claims to Verify

{claims_list}

---

Evaluate each claim above. Respond with valid JSON only."""

        logger.info(f"Fact-checking {len(claims)} claims")

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": FACT_CHECKER_SYSTEM_PROMPT.format(topic=topic)},
                {"role": "user", "content": user_message},
            ],
            response_format={"type": "json_object"},
            max_tokens=4096,
            temperature=0.1,  # Low temperature for consistent verdicts
        )

        return parse_verdicts(response.choices[0].message.content or "", claims)
