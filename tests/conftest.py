import pytest

from mockprep.infrastructure.data import InterviewStore, JsonFileStore
from mockprep.interview.events import InterviewEventBus
from mockprep.interview.models import InterviewContext
from mockprep.interview.testing import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def bus():
    return InterviewEventBus()


@pytest.fixture
def recorded_events(bus):
    events = []
    bus.subscribe_all(events.append)
    return events


@pytest.fixture
def context():
    return InterviewContext(
        candidate_name="Sam Rivera",
        cv_text="Ten years of product design.",
        role_name="Senior Designer at Acme",
        company_name="Acme",
        role_title="Senior Designer",
        jd_text="Own the design system.",
        stage_name="Screening",
        stage_description="Recruiter call focusing on logistics.",
    )


@pytest.fixture
def store(tmp_path):
    return InterviewStore(JsonFileStore(str(tmp_path / "data")))
