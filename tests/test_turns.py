"""
Tests for the turn scheduler: turn types, pair ordering, pacing and
verification draining.

Run with: pytest tests/test_turns.py -v
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from debate_arena.models.enums import ParticipantRole, TurnType, Verdict
from debate_arena.models.schemas import DebateConfig
from debate_arena.services.debate.models import AgentResponse, ResearchBundle
from debate_arena.services.debate.turns import (
    DebateSession,
    TurnScheduler,
    estimate_display_seconds,
    get_turn_type,
    speaker_role,
)
from debate_arena.services.debate.verifier import ClaimVerifier
from debate_arena.services.research.coordinator import empty_bundle

from conftest import ScriptedDebater, StaticFactChecker


def make_session(store, max_turns=6, voice_enabled=False):
    config = DebateConfig(max_turns=max_turns, voice_enabled=voice_enabled)
    debate = store.add_debate(config=config)
    return DebateSession(
        debate_id=debate.id,
        topic=debate.topic,
        config=config,
        participants={
            ParticipantRole.PRO: store.participant(debate.id, ParticipantRole.PRO),
            ParticipantRole.CON: store.participant(debate.id, ParticipantRole.CON),
        },
        research={
            ParticipantRole.PRO: ResearchBundle("pro answer", [], "PRO CONTEXT"),
            ParticipantRole.CON: empty_bundle(),
        },
    )


def make_scheduler(store, settings, sleeps, debater=None, checker=None, **kwargs):
    checker = checker or StaticFactChecker(Verdict.TRUE, 0.9)
    return TurnScheduler(
        debater=debater or ScriptedDebater(),
        verifier=ClaimVerifier(checker, store),
        store=store,
        settings=settings,
        sleep=sleeps.sleep,
        **kwargs,
    )


# =============================================================================
# TURN TYPES
# =============================================================================

@pytest.mark.parametrize("turn_number, expected", [
    (1, TurnType.OPENING),
    (2, TurnType.OPENING),
    (3, TurnType.REBUTTAL),
    (4, TurnType.REBUTTAL),
    (5, TurnType.CLOSING),
    (6, TurnType.CLOSING),
])
def test_turn_types_for_six_turns(turn_number, expected):
    assert get_turn_type(turn_number, 6) is expected


def test_opening_wins_when_ranges_overlap():
    assert get_turn_type(1, 2) is TurnType.OPENING
    assert get_turn_type(2, 2) is TurnType.OPENING
    assert get_turn_type(2, 3) is TurnType.OPENING
    assert get_turn_type(3, 3) is TurnType.CLOSING


def test_four_turns_have_no_rebuttal():
    assert [get_turn_type(n, 4) for n in range(1, 5)] == [
        TurnType.OPENING, TurnType.OPENING, TurnType.CLOSING, TurnType.CLOSING,
    ]


def test_speaker_alternates_starting_with_pro():
    assert speaker_role(1) is ParticipantRole.PRO
    assert speaker_role(2) is ParticipantRole.CON
    assert speaker_role(7) is ParticipantRole.PRO


# =============================================================================
# PACING
# =============================================================================

def test_display_time_has_a_floor():
    assert estimate_display_seconds("just a few words") == 15.0


def test_display_time_scales_with_words():
    text = " ".join(["word"] * 300)
    assert estimate_display_seconds(text) == pytest.approx(120.0)


# =============================================================================
# SCHEDULING
# =============================================================================

@pytest.mark.asyncio
async def test_persists_all_turns_in_order(store, settings, sleeps):
    session = make_session(store, max_turns=6)
    scheduler = make_scheduler(store, settings, sleeps)

    turns = await scheduler.run(session)

    assert [t.turn_number for t in turns] == [1, 2, 3, 4, 5, 6]
    assert [t.turn_type for t in turns] == [
        "opening", "opening", "rebuttal", "rebuttal", "closing", "closing",
    ]
    pro = session.participants[ParticipantRole.PRO]
    con = session.participants[ParticipantRole.CON]
    assert [t.agent_id for t in turns] == [pro.id, con.id] * 3
    # One display pause per pair, each at least the floor
    assert sleeps == [15.0, 15.0, 15.0]


@pytest.mark.asyncio
async def test_rebuttal_con_sees_pro_turn_of_same_pair(store, settings, sleeps):
    session = make_session(store, max_turns=4)
    debater = ScriptedDebater()
    scheduler = make_scheduler(store, settings, sleeps, debater=debater)

    await scheduler.run(session)

    # Calls 1-2 are the concurrent openings, 3 is pro's closing, 4 is con's closing
    con_closing = debater.calls[3]
    assert con_closing["role"] is ParticipantRole.CON
    assert con_closing["turn_type"] is TurnType.CLOSING
    history = con_closing["previous_turns"]
    assert len(history) == 3
    assert history[-1].speaker == "opponent"
    assert history[-1].content == store.turns[2].content
    # Con's own opening is labeled from its own point of view
    assert history[1].speaker == "self"


@pytest.mark.asyncio
async def test_openings_are_generated_without_each_others_text(store, settings, sleeps):
    session = make_session(store, max_turns=2)
    debater = ScriptedDebater()
    scheduler = make_scheduler(store, settings, sleeps, debater=debater)

    await scheduler.run(session)

    assert [call["previous_turns"] for call in debater.calls] == [[], []]
    assert [call["research_context"] for call in debater.calls] == [
        "PRO CONTEXT", empty_bundle().combined_context,
    ]


@pytest.mark.asyncio
async def test_odd_max_turns_ends_with_pro(store, settings, sleeps):
    session = make_session(store, max_turns=5)
    scheduler = make_scheduler(store, settings, sleeps)

    turns = await scheduler.run(session)

    assert [t.turn_number for t in turns] == [1, 2, 3, 4, 5]
    assert turns[-1].agent_id == session.participants[ParticipantRole.PRO].id
    assert turns[-1].turn_type == "closing"


@pytest.mark.asyncio
async def test_duration_is_stored_in_milliseconds(store, settings, sleeps):
    session = make_session(store, max_turns=2)
    scheduler = make_scheduler(store, settings, sleeps)

    turns = await scheduler.run(session)

    assert all(t.duration_ms == 15000 for t in turns)


# =============================================================================
# VERIFICATION
# =============================================================================

@pytest.mark.asyncio
async def test_turns_without_claims_are_never_verified(store, settings, sleeps):
    session = make_session(store, max_turns=4)
    checker = StaticFactChecker(Verdict.FALSE, 0.95)
    scheduler = make_scheduler(store, settings, sleeps, debater=ScriptedDebater(0), checker=checker)

    await scheduler.run(session)

    assert checker.calls == []
    assert store.verdicts == []
    assert store.alerts == []


@pytest.mark.asyncio
async def test_all_verifications_finish_before_run_returns(store, settings, sleeps):
    session = make_session(store, max_turns=4)
    checker = StaticFactChecker(Verdict.MOSTLY_TRUE, 0.7)
    original = checker.check_claims

    async def slow_check(**kwargs):
        await asyncio.sleep(0.01)
        return await original(**kwargs)

    checker.check_claims = slow_check
    scheduler = make_scheduler(store, settings, sleeps, debater=ScriptedDebater(2), checker=checker)

    await scheduler.run(session)

    assert len(store.verdicts) == 8
    assert {v.turn_id for v in store.verdicts} == {t.id for t in store.turns}


@pytest.mark.asyncio
async def test_verification_failure_surfaces_after_the_loop(store, settings, sleeps):
    session = make_session(store, max_turns=2)
    checker = StaticFactChecker(Verdict.TRUE, 0.9)
    checker.check_claims = AsyncMock(side_effect=RuntimeError("checker down"))
    scheduler = make_scheduler(store, settings, sleeps, debater=ScriptedDebater(1), checker=checker)

    with pytest.raises(RuntimeError, match="checker down"):
        await scheduler.run(session)

    # Both turns were still persisted
    assert len(store.turns) == 2


@pytest.mark.asyncio
async def test_generation_error_wins_over_verification_error(store, settings, sleeps):
    session = make_session(store, max_turns=4)
    debater = ScriptedDebater(1)
    original = debater.generate_argument

    async def fail_on_third(**kwargs):
        if len(debater.calls) == 2:
            raise RuntimeError("model overloaded")
        return await original(**kwargs)

    debater.generate_argument = fail_on_third
    checker = StaticFactChecker(Verdict.TRUE, 0.9)
    checker.check_claims = AsyncMock(side_effect=RuntimeError("checker down"))
    scheduler = make_scheduler(store, settings, sleeps, debater=debater, checker=checker)

    with pytest.raises(RuntimeError, match="model overloaded"):
        await scheduler.run(session)

    # The failed verifications were still awaited
    assert session.verifications == []
    assert checker.check_claims.await_count == 2


# =============================================================================
# SPEECH
# =============================================================================

@pytest.mark.asyncio
async def test_voice_enabled_uploads_audio(store, settings, sleeps):
    session = make_session(store, max_turns=2, voice_enabled=True)
    synthesizer = AsyncMock()
    synthesizer.synthesize.return_value = b"mp3"
    audio_storage = AsyncMock()
    audio_storage.upload.side_effect = lambda path, data: f"https://cdn.test/{path}"
    scheduler = make_scheduler(
        store, settings, sleeps, synthesizer=synthesizer, audio_storage=audio_storage,
    )

    turns = await scheduler.run(session)

    for turn in turns:
        assert turn.audio_url == f"https://cdn.test/{session.debate_id}/{turn.id}.mp3"


@pytest.mark.asyncio
async def test_speech_failure_keeps_the_turn(store, settings, sleeps):
    session = make_session(store, max_turns=2, voice_enabled=True)
    synthesizer = AsyncMock()
    synthesizer.synthesize.side_effect = RuntimeError("tts down")
    scheduler = make_scheduler(
        store, settings, sleeps, synthesizer=synthesizer, audio_storage=AsyncMock(),
    )

    turns = await scheduler.run(session)

    assert len(turns) == 2
    assert all(t.audio_url is None for t in turns)


@pytest.mark.asyncio
async def test_voice_disabled_skips_speech(store, settings, sleeps):
    session = make_session(store, max_turns=2, voice_enabled=False)
    synthesizer = AsyncMock()
    scheduler = make_scheduler(
        store, settings, sleeps, synthesizer=synthesizer, audio_storage=AsyncMock(),
    )

    await scheduler.run(session)

    synthesizer.synthesize.assert_not_called()


@pytest.mark.asyncio
async def test_citations_are_stored_without_document_ids(store, settings, sleeps):
    from debate_arena.services.debate.models import AgentCitation

    session = make_session(store, max_turns=2)
    debater = AsyncMock()
    debater.generate_argument.return_value = AgentResponse(
        argument="Cars cost cities money.",
        citations=[AgentCitation(document_id="doc-1", label="[1]", source_url="https://a.test")],
    )
    scheduler = make_scheduler(store, settings, sleeps, debater=debater)

    turns = await scheduler.run(session)

    assert turns[0].citations == [{"label": "[1]", "source_url": "https://a.test"}]
