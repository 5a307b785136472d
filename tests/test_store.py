import json
import os

import pytest

from mockprep.errors import InvalidState
from mockprep.infrastructure.data import InterviewStore, JsonFileStore, next_stage
from mockprep.interview.models import (
    AnalysisResult, InterviewSession, InterviewStage, Message, SessionSelection, Speaker,
)


def make_session(session_id="s1", stage_id="screening", stage_name="Screening"):
    return InterviewSession(
        id=session_id,
        stage_id=stage_id,
        stage_name=stage_name,
        started_at="2026-01-05T10:00:00+00:00",
        ended_at="2026-01-05T10:20:00+00:00",
        transcript=[Message(Speaker.INTERVIEWER, "Hi"), Message(Speaker.CANDIDATE, "Hello")],
    )


def test_json_backend_round_trip(tmp_path):
    backend = JsonFileStore(str(tmp_path))
    backend.set("thing", {"a": [1, 2]})

    assert backend.get("thing") == {"a": [1, 2]}
    with open(os.path.join(str(tmp_path), "thing.json"), encoding="utf-8") as f:
        assert json.load(f) == {"a": [1, 2]}

    backend.delete("thing")
    backend.delete("thing")
    assert backend.get("thing") is None
    assert [p for p in os.listdir(str(tmp_path)) if p.endswith(".tmp")] == []


def test_profile_create_and_update(store):
    assert store.get_profile() is None
    created = store.create_profile("Sam", background="Designer", strengths=["systems"], cv_text="CV")

    updated = store.update_profile(preferences="Remote")

    loaded = store.get_profile()
    assert loaded.name == "Sam"
    assert loaded.strengths == ["systems"]
    assert loaded.default_cv_text == "CV"
    assert loaded.preferences == "Remote"
    assert loaded.created_at == created.created_at
    assert updated == loaded


def test_update_profile_without_profile_returns_none(store):
    assert store.update_profile(name="x") is None


def test_roles_keep_stage_order_and_newest_first(store):
    stages = [
        InterviewStage("tech", "Technical", "Pairing exercise"),
        InterviewStage("final", "Final", "Meet the founders"),
    ]
    first = store.create_role("Designer at Acme", "Acme", "Senior Designer")
    second = store.create_role("Engineer at Beta", "Beta", "Engineer", stages=stages)

    roles = store.list_roles()
    assert [r.role_id for r in roles] == [second.role_id, first.role_id]
    assert [s.id for s in roles[0].stages] == ["tech", "final"]
    assert [s.id for s in roles[1].stages] == ["screening", "hiring-manager", "cultural-fit"]


def test_update_role(store):
    role = store.create_role("Designer at Acme", "Acme", "Senior Designer")

    updated = store.update_role(role.role_id, extra_context="Weak on metrics", custom_cv_text="Role CV")

    assert updated.extra_context == "Weak on metrics"
    assert store.get_role(role.role_id).custom_cv_text == "Role CV"
    assert store.update_role("missing", extra_context="x") is None
    with pytest.raises(ValueError):
        store.update_role(role.role_id, sessions=[])


def test_delete_role_cascades_and_clears_selection(store):
    role = store.create_role("Designer at Acme", "Acme", "Senior Designer")
    other = store.create_role("Engineer at Beta", "Beta", "Engineer")
    store.add_session(role.role_id, make_session())
    store.set_selection(SessionSelection(role.role_id, "screening", "s1"))

    store.delete_role(role.role_id)

    assert store.get_role(role.role_id) is None
    assert [r.role_id for r in store.list_roles()] == [other.role_id]
    assert store.get_selection() == SessionSelection()


def test_delete_other_role_keeps_selection(store):
    role = store.create_role("Designer at Acme", "Acme", "Senior Designer")
    other = store.create_role("Engineer at Beta", "Beta", "Engineer")
    store.set_selection(SessionSelection(role.role_id, "screening"))

    store.delete_role(other.role_id)

    assert store.get_selection().role_id == role.role_id


def test_sessions_round_trip_and_reject_duplicates(store):
    role = store.create_role("Designer at Acme", "Acme", "Senior Designer")
    store.add_session(role.role_id, make_session())

    loaded = store.get_role(role.role_id).sessions[0]
    assert loaded.transcript[1] == Message(Speaker.CANDIDATE, "Hello")
    assert loaded.analysis is None

    with pytest.raises(InvalidState):
        store.add_session(role.role_id, make_session())
    with pytest.raises(KeyError):
        store.add_session("missing", make_session("s2"))


def test_analysis_attaches_only_once(store):
    role = store.create_role("Designer at Acme", "Acme", "Senior Designer")
    store.add_session(role.role_id, make_session())
    analysis = AnalysisResult(score=72, summary="Solid", strengths=("clear",))

    session = store.attach_analysis(role.role_id, "s1", analysis)

    assert session.analysis == analysis
    assert store.get_role(role.role_id).sessions[0].analysis == analysis
    with pytest.raises(InvalidState):
        store.attach_analysis(role.role_id, "s1", analysis)
    with pytest.raises(KeyError):
        store.attach_analysis(role.role_id, "nope", analysis)


def test_past_feedback_only_includes_analysed_sessions(store):
    role = store.create_role("Designer at Acme", "Acme", "Senior Designer")
    assert store.past_feedback_summary(role.role_id) is None

    store.add_session(role.role_id, make_session("s1"))
    store.add_session(role.role_id, make_session("s2", "hiring-manager", "Hiring Manager"))
    store.attach_analysis(role.role_id, "s2", AnalysisResult(
        score=64, summary="ok",
        strengths=("storytelling", "craft"), weaknesses=("metrics",), improvements=("quantify impact",),
    ))

    summary = store.past_feedback_summary(role.role_id)

    assert summary == (
        "Session 1 (Hiring Manager, Score: 64/100):\n"
        "- Strengths: storytelling, craft\n"
        "- Weaknesses: metrics\n"
        "- Tips: quantify impact"
    )


def test_selection_round_trip(store):
    selection = SessionSelection(role_id="r1", stage_id="screening")
    store.set_selection(selection)
    assert store.get_selection() == selection


def test_next_stage_follows_stage_order(store):
    role = store.create_role("Designer at Acme", "Acme", "Senior Designer")

    assert next_stage(role, "screening").id == "hiring-manager"
    assert next_stage(role, "hiring-manager").id == "cultural-fit"
    assert next_stage(role, "cultural-fit") is None
    assert next_stage(role, "unknown").id == "screening"
    assert next_stage(role, None).id == "screening"
