from mockprep.interview.budget import Severity, TurnBudget


def test_no_directives_early_in_the_interview():
    budget = TurnBudget(interviewer_messages=3, elapsed_minutes=10.0)
    assert budget.question_count == 4
    assert budget.directives() == []


def test_question_wrap_up_reports_remaining_questions():
    directives = TurnBudget(interviewer_messages=9, elapsed_minutes=5.0).directives()

    assert len(directives) == 1
    assert directives[0].severity is Severity.WRAP_UP
    assert directives[0].reason == "questions"
    assert "You have asked 9 questions" in directives[0].text
    assert "2 questions remaining" in directives[0].text


def test_question_wrap_up_starts_at_ninth_question():
    directives = TurnBudget(interviewer_messages=8, elapsed_minutes=0.0).directives()
    assert [d.reason for d in directives] == ["questions"]
    assert "3 questions remaining" in directives[0].text


def test_time_wrap_up_after_25_minutes():
    directives = TurnBudget(interviewer_messages=2, elapsed_minutes=26.4).directives()

    assert len(directives) == 1
    assert directives[0].reason == "time"
    assert "interviewing for 26 minutes" in directives[0].text


def test_soft_directives_accumulate():
    directives = TurnBudget(interviewer_messages=8, elapsed_minutes=27.0).directives()
    assert [d.reason for d in directives] == ["questions", "time"]
    assert all(d.severity is Severity.WRAP_UP for d in directives)


def test_time_hard_stop_suppresses_soft_directives():
    directives = TurnBudget(interviewer_messages=2, elapsed_minutes=31.0).directives()

    assert len(directives) == 1
    assert directives[0].severity is Severity.CONCLUDE
    assert directives[0].reason == "time"
    assert directives[0].text.startswith("**URGENT**")
    assert "30-minute" in directives[0].text


def test_question_hard_stop():
    directives = TurnBudget(interviewer_messages=10, elapsed_minutes=1.0).directives()

    assert len(directives) == 1
    assert directives[0].reason == "questions"
    assert "10-question limit" in directives[0].text
    assert "MUST conclude" in directives[0].text


def test_both_hard_stops_yield_one_directive():
    directives = TurnBudget(interviewer_messages=12, elapsed_minutes=45.0).directives()

    assert len(directives) == 1
    assert directives[0].reason == "questions+time"


def test_remaining_never_negative():
    assert TurnBudget(interviewer_messages=20, elapsed_minutes=0.0).questions_remaining == 0


def test_question_directive_window():
    reasons = {
        messages: [(d.severity, d.reason) for d in TurnBudget(messages, 0.0).directives()]
        for messages in range(7, 12)
    }
    assert reasons[7] == []
    assert reasons[8] == [(Severity.WRAP_UP, "questions")]
    assert reasons[9] == [(Severity.WRAP_UP, "questions")]
    assert reasons[10] == [(Severity.CONCLUDE, "questions")]
    assert reasons[11] == [(Severity.CONCLUDE, "questions")]


def test_time_directive_thresholds():
    assert TurnBudget(0, 24.9).directives() == []
    assert [d.severity for d in TurnBudget(0, 25.0).directives()] == [Severity.WRAP_UP]
    assert [d.severity for d in TurnBudget(0, 30.0).directives()] == [Severity.CONCLUDE]
