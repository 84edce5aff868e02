"""
Markdown export of a finished debate.

WHAT THIS DOES:
Renders the stored summary, the fact checks and the vote results of a debate
into a single markdown document, suitable for download or sharing.

    # Debate: <topic>
    ## Summary
    ## Winner Analysis
    ## Accuracy Scores
    ## Key Arguments
    ## Fact Checks          ← one line per verified claim, tagged with the verdict
    ## Sources
    ## Audience Vote

Only reads rows; nothing here talks to the database.
"""

from typing import Optional

from debate_arena.models.debate import Debate, Participant
from debate_arena.models.fact_check import ClaimVerdict
from debate_arena.models.vote import Summary

VERDICT_TAGS = {
    "true": "TRUE",
    "mostly_true": "MOSTLY TRUE",
    "mixed": "MIXED",
    "mostly_false": "MOSTLY FALSE",
    "false": "FALSE",
    "unverifiable": "UNVERIFIABLE",
}


def _percent(value: float) -> str:
    return f"{value * 100:.0f}%"


def render_debate_markdown(
    debate: Debate,
    summary: Optional[Summary],
    verdicts: list[ClaimVerdict],
    participants: list[Participant],
) -> str:
    """
    Build the markdown export.

    Args:
        debate: The debate row
        summary: The stored summary, or None if the debate never got one
        verdicts: All fact checks of the debate
        participants: Used to name the speaker of each fact-checked claim
    """
    names = {p.id: p.name for p in participants}
    lines = [f"# Debate: {debate.topic}", ""]

    if debate.description:
        lines += [debate.description, ""]

    if summary is None:
        lines += ["_No summary available for this debate._", ""]
    else:
        lines += ["## Summary", "", summary.overall_summary, ""]
        lines += ["## Winner Analysis", "", summary.winner_analysis, ""]

        if summary.accuracy_scores:
            lines += ["## Accuracy Scores", ""]
            for speaker, score in summary.accuracy_scores.items():
                lines.append(f"- **{speaker}**: {_percent(score)}")
            lines.append("")

        if summary.key_arguments:
            lines += ["## Key Arguments", ""]
            for argument in summary.key_arguments:
                lines.append(
                    f"- **{argument.get('agent_role', '').upper()}** "
                    f"({_percent(argument.get('strength', 0.0))}): {argument.get('argument', '')}"
                )
            lines.append("")

    lines += ["## Fact Checks", ""]
    if verdicts:
        for verdict in verdicts:
            tag = VERDICT_TAGS.get(verdict.verdict, verdict.verdict.upper())
            speaker = names.get(verdict.agent_id, "Unknown")
            lie = " ⚠ lie" if verdict.is_lie else ""
            lines.append(f"- [{tag}]{lie} {speaker}: \"{verdict.claim_text}\"")
            if verdict.explanation:
                lines.append(f"  - {verdict.explanation}")
    else:
        lines.append("_No claims were fact-checked._")
    lines.append("")

    if summary is not None:
        if summary.sources_used:
            lines += ["## Sources", ""]
            for source in summary.sources_used:
                lines.append(
                    f"- [{source.get('title') or source.get('url')}]({source.get('url')}) "
                    f"(reliability {_percent(source.get('reliability', 0.0))})"
                )
            lines.append("")

        if summary.recommendations:
            lines += ["## Recommendations", "", summary.recommendations, ""]

        votes = summary.vote_results
        lines += ["## Audience Vote", ""]
        if votes and votes.get("total"):
            lines.append(f"- Pro: {votes['pro_count']} ({votes['pro_percentage']:.0f}%)")
            lines.append(f"- Con: {votes['con_count']} ({votes['con_percentage']:.0f}%)")
            lines.append(f"- Total: {votes['total']}")
        else:
            lines.append("_No votes were cast._")
        lines.append("")

    return "\n".join(lines)
