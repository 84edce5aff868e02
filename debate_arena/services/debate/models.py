"""
Debate Models — Data structures exchanged between the engine components.

These dataclasses define the contract between the orchestrator, the turn
scheduler, the claim verifier and the collaborators they call:
- ResearchBundle: what one side's research produced
- AgentResponse: what a debater produced for one turn
- VerdictRecord: what the fact-checker concluded about one claim
- SummaryRecord: what the moderator concluded about the whole debate

Database rows live in debate_arena.models; nothing here touches SQLAlchemy.
"""

from dataclasses import dataclass, field
from typing import Optional

from debate_arena.models.enums import ParticipantRole, Severity, Verdict

# A verdict is a lie when the fact-checker is at least this sure it is false
LIE_CONFIDENCE_THRESHOLD = 0.8

# Lies at or above this confidence raise a critical alert instead of a warning
CRITICAL_CONFIDENCE_THRESHOLD = 0.9

LIE_VERDICTS = frozenset({Verdict.FALSE, Verdict.MOSTLY_FALSE})


# =============================================================================
# RESEARCH
# =============================================================================

@dataclass
class ResearchSource:
    url: str
    title: str
    snippet: str = ""

    def to_dict(self) -> dict:
        return {"url": self.url, "title": self.title, "snippet": self.snippet}


@dataclass
class ResearchBundle:
    """
    Merged research for one side of the debate.

    combined_context is handed verbatim to the debater and the fact-checker,
    so it must be reproducible from answer + sources alone.
    """

    answer: str
    """Narrative answer from the research lookup"""

    sources: list[ResearchSource]
    """Sources in the order the lookup returned them"""

    combined_context: str
    """Grounding text for generation and verification"""


@dataclass
class CitedDocument:
    """A stored research document a debater may cite."""

    id: str
    title: str
    summary: str
    source_url: str


# =============================================================================
# TURN GENERATION
# =============================================================================

@dataclass
class PriorTurn:
    """
    A previous turn as seen by the speaker about to talk.

    speaker is "self" for the speaker's own turns, "opponent" otherwise.
    """

    speaker: str
    content: str


@dataclass
class AgentCitation:
    document_id: str
    label: str
    source_url: Optional[str] = None

    def to_dict(self) -> dict:
        """Stored form on the turn row (document id is not persisted)."""
        return {"label": self.label, "source_url": self.source_url}


@dataclass
class AgentResponse:
    """A debater's structured output for one turn."""

    argument: str
    citations: list[AgentCitation] = field(default_factory=list)
    claims: list[str] = field(default_factory=list)


# =============================================================================
# VERIFICATION
# =============================================================================

@dataclass
class VerdictSource:
    url: str
    title: str
    relevant_text: str = ""

    def to_dict(self) -> dict:
        return {"url": self.url, "title": self.title, "relevant_text": self.relevant_text}


@dataclass
class VerdictRecord:
    """The fact-checker's verdict on one claim."""

    claim_text: str
    verdict: Verdict
    explanation: str
    confidence: float
    """Clamped to [0, 1]"""
    sources: list[VerdictSource] = field(default_factory=list)

    @property
    def is_lie(self) -> bool:
        return self.confidence >= LIE_CONFIDENCE_THRESHOLD and self.verdict in LIE_VERDICTS

    @property
    def severity(self) -> Optional[Severity]:
        """Alert severity, or None when the verdict is not a lie."""
        if not self.is_lie:
            return None
        if self.confidence >= CRITICAL_CONFIDENCE_THRESHOLD:
            return Severity.CRITICAL
        return Severity.WARNING


# =============================================================================
# SUMMARY
# =============================================================================

@dataclass
class VoteTally:
    pro_count: int
    con_count: int

    @property
    def total(self) -> int:
        return self.pro_count + self.con_count

    @property
    def pro_percentage(self) -> float:
        return self.pro_count / self.total * 100 if self.total else 0.0

    @property
    def con_percentage(self) -> float:
        return self.con_count / self.total * 100 if self.total else 0.0

    def to_dict(self) -> dict:
        return {
            "pro_count": self.pro_count,
            "con_count": self.con_count,
            "total": self.total,
            "pro_percentage": self.pro_percentage,
            "con_percentage": self.con_percentage,
        }


@dataclass
class TranscriptEntry:
    turn_number: int
    role: ParticipantRole
    content: str


@dataclass
class KeyArgument:
    agent_role: str
    argument: str
    strength: float
    supported_by: list[str] = field(default_factory=list)


@dataclass
class SourceUsed:
    url: str
    title: str
    reliability: float
    cited_by: list[str] = field(default_factory=list)


@dataclass
class SummaryRecord:
    """The moderator's post-hoc analysis of a finished debate."""

    overall_summary: str
    winner_analysis: str
    accuracy_scores: dict[str, float] = field(default_factory=dict)
    key_arguments: list[KeyArgument] = field(default_factory=list)
    """Strongest first"""
    verdict_counts: dict[str, int] = field(default_factory=dict)
    sources_used: list[SourceUsed] = field(default_factory=list)
    """Most reliable first"""
    recommendations: str = ""
    vote_snapshot: Optional[VoteTally] = None


def count_verdicts(verdicts: list[VerdictRecord]) -> dict[str, int]:
    """Aggregate verdicts into the buckets shown on the summary page."""
    counts = {
        "total_claims": len(verdicts),
        "verified_true": 0,
        "verified_false": 0,
        "mixed": 0,
        "unverifiable": 0,
    }
    for record in verdicts:
        if record.verdict in (Verdict.TRUE, Verdict.MOSTLY_TRUE):
            counts["verified_true"] += 1
        elif record.verdict in LIE_VERDICTS:
            counts["verified_false"] += 1
        elif record.verdict is Verdict.MIXED:
            counts["mixed"] += 1
        else:
            counts["unverifiable"] += 1
    return counts
