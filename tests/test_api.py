"""
Tests for the HTTP layer, with the store and supervisor overridden.

Run with: pytest tests/test_api.py -v
"""

import asyncio
import uuid
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from debate_arena.api.routes import get_store, get_supervisor, router
from debate_arena.models.enums import DebateStatus, ParticipantRole, TurnType, Verdict
from debate_arena.services.debate.models import SummaryRecord, VerdictRecord

from conftest import FakeStore


@pytest.fixture
def api_store():
    return FakeStore()


@pytest.fixture
def supervisor():
    supervisor = MagicMock()
    supervisor.is_running.return_value = False
    return supervisor


@pytest.fixture
def client(api_store, supervisor):
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_store] = lambda: api_store
    app.dependency_overrides[get_supervisor] = lambda: supervisor
    return TestClient(app)


# =============================================================================
# DEBATE LIFECYCLE
# =============================================================================

def test_create_debate_adds_four_participants(client, api_store):
    response = client.post("/api/debates", json={
        "topic": "Cities should ban cars downtown",
        "max_turns": 4,
        "pro_agent": {"name": "Ada", "persona": "Urban planner"},
        "con_agent": {"persona": "Small business owner"},
    })

    assert response.status_code == 200
    debate_id = uuid.UUID(response.json()["id"])
    debate = api_store.debates[debate_id]
    assert debate.status == "setup"
    assert debate.config["max_turns"] == 4
    roles = {p.role: p for p in api_store.participants}
    assert set(roles) == {"pro", "con", "fact_checker", "moderator"}
    assert roles["pro"].name == "Ada"
    assert roles["con"].name == "Con Agent"
    assert roles["con"].voice_id == "echo"


def test_create_debate_validates_max_turns(client):
    response = client.post("/api/debates", json={
        "topic": "Cities should ban cars downtown",
        "max_turns": 1,
        "pro_agent": {},
        "con_agent": {},
    })
    assert response.status_code == 422


def test_start_schedules_in_background(client, api_store, supervisor):
    debate = api_store.add_debate()

    response = client.post(f"/api/debates/{debate.id}/start")

    assert response.status_code == 200
    supervisor.start.assert_called_once_with(debate.id)


def test_start_rejects_debate_already_started(client, api_store, supervisor):
    debate = api_store.add_debate(status=DebateStatus.LIVE)

    response = client.post(f"/api/debates/{debate.id}/start")

    assert response.status_code == 400
    supervisor.start.assert_not_called()


def test_start_unknown_debate(client):
    assert client.post(f"/api/debates/{uuid.uuid4()}/start").status_code == 404


# =============================================================================
# READ MODELS
# =============================================================================

def test_get_debate(client, api_store):
    debate = api_store.add_debate()

    body = client.get(f"/api/debates/{debate.id}").json()

    assert body["status"] == "setup"
    assert body["config"]["research_depth"] == "standard"


def test_turns_and_fact_checks(client, api_store):
    debate = api_store.add_debate()
    pro = api_store.participant(debate.id, ParticipantRole.PRO)
    turn = asyncio.run(api_store.insert_turn(
        debate_id=debate.id, agent_id=pro.id, turn_number=1, turn_type=TurnType.OPENING,
        content="Opening.", citations=[{"label": "[1]", "source_url": None}],
        research_sources=[], audio_url=None, duration_ms=15000,
    ))
    asyncio.run(api_store.insert_verdict(
        debate_id=debate.id, turn_id=turn.id, agent_id=pro.id,
        record=VerdictRecord("claim", Verdict.FALSE, "nope", 0.9),
    ))

    turns = client.get(f"/api/debates/{debate.id}/turns").json()
    checks = client.get(f"/api/debates/{debate.id}/fact-checks").json()

    assert [t["turn_type"] for t in turns] == ["opening"]
    assert turns[0]["citations"] == [{"label": "[1]", "source_url": None}]
    assert checks[0]["is_lie"] is True


def test_summary_and_export(client, api_store):
    debate = api_store.add_debate(topic="Ban cars")
    missing = client.get(f"/api/debates/{debate.id}/summary")
    assert missing.status_code == 404

    asyncio.run(api_store.insert_summary(debate.id, SummaryRecord(
        overall_summary="A close one.",
        winner_analysis="Pro, narrowly.",
        verdict_counts={"total_claims": 0},
    )))

    summary = client.get(f"/api/debates/{debate.id}/summary").json()
    export = client.get(f"/api/debates/{debate.id}/export.md")

    assert summary["overall_summary"] == "A close one."
    assert export.status_code == 200
    assert export.text.startswith("# Debate: Ban cars")
    assert "Pro, narrowly." in export.text


# =============================================================================
# VOTING
# =============================================================================

def test_vote_upserts_per_session(client, api_store):
    debate = api_store.add_debate(status=DebateStatus.LIVE)

    for vote in ("pro", "con"):
        response = client.post("/api/votes", json={
            "debate_id": str(debate.id), "voter_session_id": "viewer-1", "vote": vote,
        })
        assert response.status_code == 200

    tally = client.get("/api/votes", params={"debate_id": str(debate.id)}).json()
    assert tally["total"] == 1
    assert tally["con_count"] == 1
    assert tally["con_percentage"] == 100.0


def test_vote_rejected_after_completion(client, api_store):
    debate = api_store.add_debate(status=DebateStatus.COMPLETED)

    response = client.post("/api/votes", json={
        "debate_id": str(debate.id), "voter_session_id": "viewer-1", "vote": "pro",
    })

    assert response.status_code == 400
    assert api_store.votes == {}


def test_vote_must_be_pro_or_con(client, api_store):
    debate = api_store.add_debate()

    response = client.post("/api/votes", json={
        "debate_id": str(debate.id), "voter_session_id": "viewer-1", "vote": "maybe",
    })

    assert response.status_code == 422


def test_empty_tally(client):
    tally = client.get("/api/votes", params={"debate_id": str(uuid.uuid4())}).json()
    assert tally == {
        "pro_count": 0, "con_count": 0, "total": 0, "pro_percentage": 0.0, "con_percentage": 0.0,
    }


def test_health():
    from debate_arena.main import app

    assert TestClient(app).get("/health").json() == {"status": "healthy"}
