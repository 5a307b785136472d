import pytest

from mockprep.config import FALLBACK_REPLY
from mockprep.errors import InvalidState, ServiceUnavailable
from mockprep.interview.engine import EngineState, InterviewEngine
from mockprep.interview.events import EventType, InterviewMetrics
from mockprep.interview.models import MessageStatus, Speaker
from mockprep.interview.testing import MockLLMClient


def make_engine(llm, clock, bus=None):
    return InterviewEngine(llm, clock=clock, event_bus=bus, session_id="session-1")


def test_start_interview_asks_opening_question(context, clock):
    llm = MockLLMClient(replies=["Hi, I'm Jordan from Acme. Could you give me your intro pitch?"])
    engine = make_engine(llm, clock)

    message = engine.start_interview(context)

    assert engine.state is EngineState.ACTIVE
    assert message.role is Speaker.INTERVIEWER
    assert engine.messages == (message,)

    instruction, history = llm.request_history[0]
    assert history == ()
    assert "Senior Designer at Acme" in instruction
    assert "[Interview Stage]: Screening" in instruction
    assert "(elevator pitch)" in instruction
    assert "ACTIVE CONSTRAINTS" not in instruction


def test_empty_reply_falls_back(context, clock):
    engine = make_engine(MockLLMClient(replies=[""]), clock)
    assert engine.start_interview(context).text == FALLBACK_REPLY


def test_turns_alternate_and_history_is_replayed(context, clock):
    llm = MockLLMClient()
    engine = make_engine(llm, clock)
    engine.start_interview(context)

    for i in range(3):
        engine.send_turn(f"Answer {i}")

    roles = [m.role for m in engine.messages]
    assert len(roles) == 1 + 2 * 3
    assert roles == [Speaker.INTERVIEWER, Speaker.CANDIDATE] * 3 + [Speaker.INTERVIEWER]

    _, history = llm.request_history[-1]
    assert [m.text for m in history][-1] == "Answer 2"
    assert len(history) == 6


def test_candidate_text_is_stripped_and_confirmed(context, clock):
    engine = make_engine(MockLLMClient(), clock)
    engine.start_interview(context)
    engine.send_turn("  I led the redesign.  ")

    candidate = engine.messages[1]
    assert candidate.text == "I led the redesign."
    assert candidate.status is MessageStatus.CONFIRMED


def test_wrap_up_after_nine_questions(context, clock):
    llm = MockLLMClient()
    engine = make_engine(llm, clock)
    engine.start_interview(context)
    for i in range(8):
        engine.send_turn(f"Answer {i}")
    assert engine.transcript.count(Speaker.INTERVIEWER) == 9

    engine.send_turn("Another answer")

    instruction, _ = llm.request_history[-1]
    assert "You have asked 9 questions" in instruction
    assert "2 questions remaining" in instruction


def test_time_hard_stop_injects_single_urgent_directive(context, clock, bus, recorded_events):
    llm = MockLLMClient()
    engine = make_engine(llm, clock, bus)
    engine.start_interview(context)
    clock.advance(minutes=31)

    engine.send_turn("Sorry, I'm running long.")

    instruction, _ = llm.request_history[-1]
    assert instruction.count("**URGENT**") == 1
    assert "30-minute time limit has been reached" in instruction
    assert "**CONSTRAINT**" not in instruction

    directive_events = [e for e in recorded_events if e.event_type is EventType.BUDGET_DIRECTIVE_ISSUED]
    assert [e.data for e in directive_events] == [{"severity": "conclude", "reason": "time"}]


def test_failed_turn_keeps_candidate_message(context, clock, bus, recorded_events):
    llm = MockLLMClient(fail_on_calls=[1])
    engine = make_engine(llm, clock, bus)
    engine.start_interview(context)

    with pytest.raises(ServiceUnavailable):
        engine.send_turn("My biggest project was a rebrand.")

    assert engine.state is EngineState.ACTIVE
    last = engine.messages[-1]
    assert last.role is Speaker.CANDIDATE
    assert last.status is MessageStatus.FAILED
    assert EventType.TURN_FAILED in [e.event_type for e in recorded_events]

    engine.send_turn("My biggest project was a rebrand.")
    assert [m.status for m in engine.messages] == [
        MessageStatus.CONFIRMED, MessageStatus.FAILED, MessageStatus.CONFIRMED, MessageStatus.CONFIRMED,
    ]


def test_failed_start_leaves_engine_retryable(context, clock):
    llm = MockLLMClient(fail_on_calls=[0])
    engine = make_engine(llm, clock)

    with pytest.raises(ServiceUnavailable):
        engine.start_interview(context)
    assert engine.state is EngineState.UNINITIALIZED
    assert engine.messages == ()

    engine.start_interview(context)
    assert engine.state is EngineState.ACTIVE
    assert len(engine.messages) == 1


def test_invalid_state_transitions(context, clock):
    engine = make_engine(MockLLMClient(), clock)

    with pytest.raises(InvalidState):
        engine.send_turn("hello")

    engine.start_interview(context)
    with pytest.raises(InvalidState):
        engine.start_interview(context)

    engine.end_interview()
    with pytest.raises(InvalidState):
        engine.send_turn("hello")


def test_empty_candidate_text_rejected(context, clock):
    engine = make_engine(MockLLMClient(), clock)
    engine.start_interview(context)
    with pytest.raises(ValueError):
        engine.send_turn("   ")


def test_end_interview_freezes_and_is_idempotent(context, clock, bus, recorded_events):
    engine = make_engine(MockLLMClient(), clock, bus)
    engine.start_interview(context)
    engine.send_turn("An answer")
    clock.advance(minutes=5)

    first = engine.end_interview()
    second = engine.end_interview()

    assert first == second
    assert len(first) == 3
    assert engine.transcript.frozen
    assert engine.ended_at == clock()
    ended = [e for e in recorded_events if e.event_type is EventType.INTERVIEW_ENDED]
    assert len(ended) == 1
    assert ended[0].data == {"message_count": 3, "modality": "text"}


def test_end_during_pending_turn_drops_reply(context, clock):
    llm = MockLLMClient()
    engine = make_engine(llm, clock)
    engine.start_interview(context)
    llm.on_call = engine.end_interview

    with pytest.raises(InvalidState):
        engine.send_turn("An answer")
    assert engine.state is EngineState.ENDED
    assert all(m.role is not Speaker.INTERVIEWER for m in engine.messages[1:])


def test_metrics_count_engine_events(context, clock, bus):
    metrics = InterviewMetrics()
    bus.subscribe_all(metrics.handle_event)
    engine = make_engine(MockLLMClient(fail_on_calls=[2]), clock, bus)

    engine.start_interview(context)
    engine.send_turn("one")
    with pytest.raises(ServiceUnavailable):
        engine.send_turn("two")
    engine.end_interview()

    counts = metrics.get_metrics()
    assert counts["interviews_started"] == 1
    assert counts["turns_completed"] == 1
    assert counts["turns_failed"] == 1
    assert counts["errors_occurred"] == 1
    assert counts["interviews_ended"] == 1
