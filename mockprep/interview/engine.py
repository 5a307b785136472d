"""
Conversational turn engine.

Drives one text interview from the opening question to the end, one exchange
at a time. Each turn recomputes the question/time budget from the transcript
and the wall clock and folds the resulting directives into the system
instruction sent to the reasoning service.

The engine is sequential: callers must not overlap ``send_turn`` calls.
"""
import time
import uuid
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional, Sequence, Tuple

from ..config import FALLBACK_REPLY
from ..errors import InvalidState
from .budget import TurnBudget, BudgetDirective
from .events import (
    InterviewEventBus, InterviewStartedEvent, TurnCompletedEvent, TurnFailedEvent,
    BudgetDirectiveIssuedEvent, InterviewEndedEvent, ErrorOccurredEvent,
)
from .models import InterviewContext, Message, Speaker, Transcript
from .prompts import InterviewPrompts

logger = logging.getLogger("turn_engine")


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    ENDED = "ended"


def to_iso(ts: Optional[float]) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, timezone.utc).isoformat()


class InterviewEngine:
    """
    State machine ``UNINITIALIZED -> ACTIVE -> ENDED``.

    ``llm`` needs one method, ``generate_reply(system_instruction, messages) -> str``,
    raising ``ServiceUnavailable`` when the service can't answer.
    """

    def __init__(self,
                 llm,
                 clock: Callable[[], float] = time.time,
                 event_bus: Optional[InterviewEventBus] = None,
                 session_id: Optional[str] = None):
        self.llm = llm
        self.clock = clock
        self.event_bus = event_bus or InterviewEventBus()
        self.session_id = session_id or uuid.uuid4().hex

        self.state = EngineState.UNINITIALIZED
        self.transcript = Transcript()
        self.context: Optional[InterviewContext] = None
        self.started_at: Optional[float] = None
        self.ended_at: Optional[float] = None

    @property
    def messages(self) -> Tuple[Message, ...]:
        return self.transcript.messages

    def current_budget(self) -> TurnBudget:
        elapsed = 0.0
        if self.started_at is not None:
            elapsed = max(0.0, (self.clock() - self.started_at) / 60.0)
        return TurnBudget(
            interviewer_messages=self.transcript.count(Speaker.INTERVIEWER),
            elapsed_minutes=elapsed,
        )

    def start_interview(self, context: InterviewContext) -> Message:
        """
        Fix the start time and ask the reasoning service for the opening question.

        On failure nothing is kept: the engine stays UNINITIALIZED with an
        empty transcript so the caller can simply retry.
        """
        if self.state is not EngineState.UNINITIALIZED:
            raise InvalidState(f"cannot start an interview that is {self.state.value}")

        started_at = self.clock()
        instruction = InterviewPrompts.system_instruction(context, opening=True)
        logger.info("Starting interview %s (%s / %s)", self.session_id, context.role_title, context.stage_name)

        try:
            reply = self.llm.generate_reply(instruction, ())
        except Exception as e:
            logger.error("Opening question failed: %s", e)
            self._emit_error(e, "start_interview")
            raise

        if self.state is EngineState.ENDED:
            raise InvalidState("interview ended before it started")

        self.transcript = Transcript()
        self.context = context
        self.started_at = started_at
        message = self.transcript.append(Speaker.INTERVIEWER, reply or FALLBACK_REPLY)
        self.state = EngineState.ACTIVE

        self.event_bus.emit(InterviewStartedEvent(
            self.session_id, self.clock(), context.role_title, context.stage_name,
        ))
        return message

    def check_turn(self, candidate_text: str) -> str:
        """Raise unless ``candidate_text`` can be sent now; returns it stripped."""
        if not candidate_text or not candidate_text.strip():
            raise ValueError("candidate_text must be non-empty")
        if self.state is not EngineState.ACTIVE:
            raise InvalidState(f"send_turn requires an active interview, not {self.state.value}")
        return candidate_text.strip()

    def send_turn(self, candidate_text: str) -> Message:
        """
        Record the candidate's answer and fetch the next interviewer message.

        The candidate message is appended before the service call and is kept
        (marked FAILED) if the call raises; the exception then propagates.
        """
        text = self.check_turn(candidate_text)

        index = self.transcript.append_provisional(Speaker.CANDIDATE, text)
        budget = self.current_budget()
        directives = budget.directives()
        self._announce(directives)

        instruction = InterviewPrompts.system_instruction(self.context, directives)
        try:
            reply = self.llm.generate_reply(instruction, self.transcript.messages)
        except Exception as e:
            logger.error("Turn %d failed: %s", budget.question_count, e)
            if not self.transcript.frozen:
                self.transcript.mark_failed(index)
            self.event_bus.emit(TurnFailedEvent(self.session_id, self.clock(), budget.question_count, str(e)))
            self._emit_error(e, "send_turn")
            raise

        if self.state is EngineState.ENDED:
            logger.warning("Interview ended while waiting for reply; dropping it")
            raise InvalidState("interview ended during the turn")

        self.transcript.confirm(index)
        message = self.transcript.append(Speaker.INTERVIEWER, reply or FALLBACK_REPLY)
        self.event_bus.emit(TurnCompletedEvent(
            self.session_id, self.clock(), budget.question_count, budget.elapsed_minutes,
        ))
        return message

    def end_interview(self) -> Tuple[Message, ...]:
        """Freeze the transcript and stamp the end time. Idempotent."""
        if self.state is EngineState.ENDED:
            return self.transcript.messages

        self.ended_at = self.clock()
        self.state = EngineState.ENDED
        messages = self.transcript.freeze()
        logger.info("Interview %s ended with %d messages", self.session_id, len(messages))
        self.event_bus.emit(InterviewEndedEvent(self.session_id, self.ended_at, len(messages), "text"))
        return messages

    def _announce(self, directives: Sequence[BudgetDirective]) -> None:
        for directive in directives:
            logger.info("Budget directive: %s (%s)", directive.severity.value, directive.reason)
            self.event_bus.emit(BudgetDirectiveIssuedEvent(
                self.session_id, self.clock(), directive.severity.value, directive.reason,
            ))

    def _emit_error(self, error: Exception, component: str) -> None:
        self.event_bus.emit(ErrorOccurredEvent(
            self.session_id, self.clock(), type(error).__name__, str(error), component,
        ))
