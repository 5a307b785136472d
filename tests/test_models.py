import pytest

from mockprep.errors import InvalidState
from mockprep.interview.models import (
    DEFAULT_STAGES, InterviewContext, MessageStatus, Speaker, Transcript, default_stages,
)
from mockprep.interview.prompts import InterviewPrompts, stage_key


def test_provisional_append_then_confirm():
    transcript = Transcript()
    transcript.append(Speaker.INTERVIEWER, "Q1")
    index = transcript.append_provisional(Speaker.CANDIDATE, "A1")

    assert transcript[index].status is MessageStatus.PENDING
    assert transcript.confirm(index).status is MessageStatus.CONFIRMED
    with pytest.raises(InvalidState):
        transcript.mark_failed(index)


def test_frozen_transcript_rejects_changes():
    transcript = Transcript()
    index = transcript.append_provisional(Speaker.CANDIDATE, "A1")
    frozen = transcript.freeze()

    assert len(frozen) == 1
    with pytest.raises(InvalidState):
        transcript.append(Speaker.INTERVIEWER, "late")
    with pytest.raises(InvalidState):
        transcript.confirm(index)


def test_messages_is_a_snapshot():
    transcript = Transcript()
    snapshot = transcript.messages
    transcript.append(Speaker.INTERVIEWER, "Q1")
    assert snapshot == ()
    assert transcript.count(Speaker.INTERVIEWER) == 1


def test_default_stages_are_copies():
    stages = default_stages()
    stages[0].name = "Changed"
    assert DEFAULT_STAGES[0].name == "Screening"


@pytest.mark.parametrize("name, key", [
    ("Hiring Manager", "hiring-manager"),
    ("cultural_fit", "cultural-fit"),
    (None, "screening"),
])
def test_stage_key(name, key):
    assert stage_key(name) == key


def test_instruction_defaults_for_missing_context():
    instruction = InterviewPrompts.system_instruction(InterviewContext())

    assert "[Candidate]: Not provided" in instruction
    assert "[Recruiter Context]: Professional recruiter" in instruction
    assert "[Extra Context / Feedback]: None provided" in instruction
    assert "efficient recruiter" in instruction


def test_realtime_instructions_share_the_context(context):
    instructions = InterviewPrompts.realtime_instructions(context)
    assert "Senior Designer at Acme" in instructions
    assert "efficient recruiter" in instructions
    assert "intro pitch" in instructions
