"""
Question-count and elapsed-time budget for one interview.

The budget is derived fresh on every turn from the transcript and the wall
clock; nothing here is stored between turns.
"""
from dataclasses import dataclass
from enum import Enum
from typing import List

from ..config import (
    QUESTION_WRAP_UP_THRESHOLD, QUESTION_HARD_LIMIT,
    TIME_WRAP_UP_MINUTES, TIME_HARD_LIMIT_MINUTES,
)

CONCLUDE_SUFFIX = "You MUST conclude the interview immediately. Thank the candidate and end the session."


class Severity(str, Enum):
    WRAP_UP = "wrap_up"
    CONCLUDE = "conclude"


@dataclass(frozen=True)
class BudgetDirective:
    severity: Severity
    reason: str  # "questions", "time" or "questions+time"
    text: str


@dataclass(frozen=True)
class TurnBudget:
    interviewer_messages: int
    elapsed_minutes: float

    @property
    def question_count(self) -> int:
        """Number of the question about to be asked."""
        return self.interviewer_messages + 1

    @property
    def questions_remaining(self) -> int:
        return max(0, QUESTION_HARD_LIMIT - self.interviewer_messages)

    @property
    def question_limit_reached(self) -> bool:
        return self.question_count >= QUESTION_HARD_LIMIT

    @property
    def time_limit_reached(self) -> bool:
        return self.elapsed_minutes >= TIME_HARD_LIMIT_MINUTES

    def directives(self) -> List[BudgetDirective]:
        """
        Directives to inject into this turn's instructions.

        A hard stop on either axis yields exactly one conclude directive and
        suppresses the soft ones; otherwise soft directives accumulate.
        """
        if self.question_limit_reached or self.time_limit_reached:
            return [self._conclude()]

        directives = []
        if self.question_count >= QUESTION_WRAP_UP_THRESHOLD:
            remaining = self.questions_remaining
            plural = "s" if remaining != 1 else ""
            directives.append(BudgetDirective(
                severity=Severity.WRAP_UP,
                reason="questions",
                text=(f"**CONSTRAINT**: You have asked {self.interviewer_messages} questions. "
                      f"You have {remaining} question{plural} remaining. Start wrapping up naturally."),
            ))
        if self.elapsed_minutes >= TIME_WRAP_UP_MINUTES:
            directives.append(BudgetDirective(
                severity=Severity.WRAP_UP,
                reason="time",
                text=(f"**CONSTRAINT**: You have been interviewing for {int(self.elapsed_minutes)} minutes. "
                      "You must conclude the interview in the next few minutes."),
            ))
        return directives

    def _conclude(self) -> BudgetDirective:
        question_limit = QUESTION_HARD_LIMIT - 1
        if self.question_limit_reached and self.time_limit_reached:
            reason = "questions+time"
            lead = f"The {question_limit}-question and {TIME_HARD_LIMIT_MINUTES}-minute limits have been reached."
        elif self.question_limit_reached:
            reason = "questions"
            lead = f"The {question_limit}-question limit has been reached."
        else:
            reason = "time"
            lead = f"The {TIME_HARD_LIMIT_MINUTES}-minute time limit has been reached."
        return BudgetDirective(
            severity=Severity.CONCLUDE,
            reason=reason,
            text=f"**URGENT**: {lead} {CONCLUDE_SUFFIX}",
        )
