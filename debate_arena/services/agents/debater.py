"""
Debater Agent — Writes one side's argument for one turn.

WHAT THIS DOES:
Given the topic, the side, the persona, the turn type, everything said so
far, the side's research context and the documents available for citation,
produce the next argument as structured JSON:

    {"argument": "...",
     "citations": [{"document_id": "...", "label": "[1]", "source_url": "..."}],
     "claims": ["standalone factual claim", ...]}

The claims list is what the fact-checker verifies afterwards, so the prompt
asks for discrete, independently checkable sentences.

PERMISSIVE PARSING:
If the model ignores the format, the raw text becomes the argument with no
citations and no claims. A turn is never lost to a formatting slip.

USAGE:
    debater = DebaterAgent()
    response = await debater.generate_argument(
        role=ParticipantRole.PRO, topic="...", debate_type=DebateType.STANDARD,
        persona="...", turn_type=TurnType.OPENING, previous_turns=[],
        research_context=bundle.combined_context, documents=docs,
    )
"""

import logging
from typing import Optional

from openai import AsyncOpenAI

from debate_arena.config import get_settings
from debate_arena.models.enums import DebateType, ParticipantRole, TurnType
from debate_arena.services.debate.models import (
    AgentCitation,
    AgentResponse,
    CitedDocument,
    PriorTurn,
)
from debate_arena.services.debate.protocols import BaseDebater
from debate_arena.services.parsing import as_list, as_str, decode_json

logger = logging.getLogger(__name__)

RESPONSE_FORMAT = """## Response Format

You MUST respond with valid JSON only. No text outside the JSON object. Use this exact structure:

{
  "argument": "Your full argument text for this turn, written to be spoken aloud.",
  "citations": [
    {
      "document_id": "id of the source document",
      "label": "Short label for the citation, e.g. [1]",
      "source_url": "URL of the source if available"
    }
  ],
  "claims": [
    "Each discrete factual claim you make, as a standalone sentence"
  ]
}"""

TURN_GUIDANCE = {
    TurnType.OPENING: (
        "This is your OPENING statement. Lay out your core case and strongest evidence. "
        "Do not rebut arguments that have not been made yet."
    ),
    TurnType.REBUTTAL: (
        "This is a REBUTTAL. Engage directly with your opponent's most recent points, "
        "expose weak evidence or faulty reasoning, and reinforce your own case."
    ),
    TurnType.CLOSING: (
        "This is your CLOSING statement. Summarize why your side has the stronger case, "
        "address the opponent's best point, and do not introduce brand new evidence."
    ),
}


def build_system_prompt(
    role: ParticipantRole,
    topic: str,
    debate_type: DebateType,
    persona: str,
    turn_type: TurnType,
) -> str:
    """System framing for one turn: side, format, persona and turn guidance."""
    if debate_type is DebateType.COURT_SIMULATION:
        court_role = "PROSECUTION" if role is ParticipantRole.PRO else "DEFENSE"
        duty = (
            "present the strongest possible case supporting the proposition and establish "
            "facts through evidence"
            if role is ParticipantRole.PRO
            else "challenge the prosecution's evidence, present counter-evidence and "
            "establish reasonable doubt"
        )
        framing = f"""You are an AI debate agent acting as the {court_role} in a court-style debate simulation.

**Your Persona:** {persona}

**Case/Topic:** "{topic}"

Your duty is to {duty}.

## Court Simulation Rules

1. All claims must be supported by cited sources. Avoid unsupported assertions (hearsay).
2. You may object to opposing arguments inline with [OBJECTION: reason]. Valid grounds: hearsay, relevance, speculation, misrepresentation.
3. The prosecution bears the initial burden of proof.
4. Maintain formal, professional language. No ad hominem attacks."""
    else:
        side = "FOR" if role is ParticipantRole.PRO else "AGAINST"
        framing = f"""You are an AI debate agent arguing {side} the following topic.

**Your Persona:** {persona}

**Topic:** "{topic}"

Present the strongest possible arguments {"in favor of" if role is ParticipantRole.PRO else "against"} this proposition.

## Instructions

1. Argue persuasively with logic, evidence and rhetorical skill.
2. Cite the provided documents by their document IDs. Every significant claim needs a citation.
3. State factual claims as clear, discrete sentences. They will be fact-checked.
4. Point to specific data, studies, statistics or expert opinions.
5. Never invent sources or statistics."""

    return f"{framing}\n\n## This Turn\n\n{TURN_GUIDANCE[turn_type]}\n\n{RESPONSE_FORMAT}"


def build_user_message(
    previous_turns: list[PriorTurn],
    research_context: str,
    documents: list[CitedDocument],
) -> str:
    """Documents first, then research, then history, so sources are seen before the debate."""
    document_context = "\n\n".join(
        f"[Document ID: {doc.id}]\nTitle: {doc.title}\nURL: {doc.source_url}\nSummary: {doc.summary}"
        for doc in documents
    )

    turn_history = "\n\n---\n\n".join(
        f"[{'YOU' if turn.speaker == 'self' else 'OPPONENT'}]: {turn.content}"
        for turn in previous_turns
    )

    return f"""## Available Source Documents (CITE THESE)

{document_context or 'No documents provided.'}

## Research Context

{research_context}

## Debate History

{turn_history or 'This is the opening statement. No previous turns.'}

---

Now present your argument for this turn. Respond with valid JSON only."""


def _normalize(parsed: dict) -> AgentResponse:
    citations = [
        AgentCitation(
            document_id=as_str(c.get("document_id")),
            label=as_str(c.get("label")),
            source_url=as_str(c["source_url"]) if c.get("source_url") is not None else None,
        )
        for c in as_list(parsed.get("citations"))
        if isinstance(c, dict)
    ]
    return AgentResponse(
        argument=as_str(parsed.get("argument")),
        citations=citations,
        claims=[as_str(c) for c in as_list(parsed.get("claims")) if as_str(c).strip()],
    )


def parse_agent_response(raw: str) -> AgentResponse:
    """Structured response, or the raw text as a bare argument."""
    return decode_json(
        raw,
        normalize=_normalize,
        fallback=lambda text: AgentResponse(argument=text),
        label="debater",
    )


class DebaterAgent(BaseDebater):
    """Generates debate arguments with an OpenAI chat model."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        settings = get_settings()
        self.model = model or settings.debater_model
        self.client = client or AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.request_timeout_seconds,
        )

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
        logger.info(
            f"Debater ({role.value}) writing {turn_type.value} with "
            f"{len(previous_turns)} prior turns, {len(documents)} documents"
        )

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "system",
                    "content": build_system_prompt(role, topic, debate_type, persona, turn_type),
                },
                {
                    "role": "user",
                    "content": build_user_message(previous_turns, research_context, documents),
                },
            ],
            response_format={"type": "json_object"},
            max_tokens=1024,
            temperature=0.7,
        )

        return parse_agent_response(response.choices[0].message.content or "")
