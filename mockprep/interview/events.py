"""
Event-driven hooks for the interview system.
"""
import logging
from abc import ABC
from typing import Dict, Any, List, Callable, Optional
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger("events")


class EventType(str, Enum):
    """Types of interview events."""
    INTERVIEW_STARTED = "interview_started"
    TURN_COMPLETED = "turn_completed"
    TURN_FAILED = "turn_failed"
    BUDGET_DIRECTIVE_ISSUED = "budget_directive_issued"
    INTERVIEW_ENDED = "interview_ended"
    REALTIME_STATUS_CHANGED = "realtime_status_changed"
    ERROR_OCCURRED = "error_occurred"


@dataclass
class InterviewEvent(ABC):
    """Base class for all interview events."""
    event_type: EventType
    session_id: str
    timestamp: float
    data: Dict[str, Any]


@dataclass
class InterviewStartedEvent(InterviewEvent):
    def __init__(self, session_id: str, timestamp: float, role_title: Optional[str], stage_name: Optional[str]):
        super().__init__(
            event_type=EventType.INTERVIEW_STARTED,
            session_id=session_id,
            timestamp=timestamp,
            data={"role_title": role_title, "stage_name": stage_name}
        )


@dataclass
class TurnCompletedEvent(InterviewEvent):
    def __init__(self, session_id: str, timestamp: float, question_count: int, elapsed_minutes: float):
        super().__init__(
            event_type=EventType.TURN_COMPLETED,
            session_id=session_id,
            timestamp=timestamp,
            data={"question_count": question_count, "elapsed_minutes": round(elapsed_minutes, 2)}
        )


@dataclass
class TurnFailedEvent(InterviewEvent):
    def __init__(self, session_id: str, timestamp: float, question_count: int, error_message: str):
        super().__init__(
            event_type=EventType.TURN_FAILED,
            session_id=session_id,
            timestamp=timestamp,
            data={"question_count": question_count, "error_message": error_message}
        )


@dataclass
class BudgetDirectiveIssuedEvent(InterviewEvent):
    def __init__(self, session_id: str, timestamp: float, severity: str, reason: str):
        super().__init__(
            event_type=EventType.BUDGET_DIRECTIVE_ISSUED,
            session_id=session_id,
            timestamp=timestamp,
            data={"severity": severity, "reason": reason}
        )


@dataclass
class InterviewEndedEvent(InterviewEvent):
    def __init__(self, session_id: str, timestamp: float, message_count: int, modality: str):
        super().__init__(
            event_type=EventType.INTERVIEW_ENDED,
            session_id=session_id,
            timestamp=timestamp,
            data={"message_count": message_count, "modality": modality}
        )


@dataclass
class RealtimeStatusChangedEvent(InterviewEvent):
    def __init__(self, session_id: str, timestamp: float, status: str, error_kind: Optional[str] = None):
        super().__init__(
            event_type=EventType.REALTIME_STATUS_CHANGED,
            session_id=session_id,
            timestamp=timestamp,
            data={"status": status, "error_kind": error_kind}
        )


@dataclass
class ErrorOccurredEvent(InterviewEvent):
    def __init__(self, session_id: str, timestamp: float, error_type: str,
                 error_message: str, component: str):
        super().__init__(
            event_type=EventType.ERROR_OCCURRED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "error_type": error_type,
                "error_message": error_message,
                "component": component
            }
        )


EventHandler = Callable[[InterviewEvent], None]


class InterviewEventBus:
    """Event bus for interview system communication."""

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed handler to {event_type}")

    def subscribe_all(self, handler: EventHandler) -> None:
        self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
            except ValueError:
                logger.warning(f"Handler not found for {event_type}")

    def emit(self, event: InterviewEvent) -> None:
        """
        Emit an event to all subscribers.

        A failing handler is logged and skipped; it never breaks the emitter.
        """
        logger.debug(f"Emitting event: {event.event_type} for session {event.session_id}")

        for handler in list(self._handlers.get(event.event_type, [])):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.event_type}: {e}")

        for handler in list(self._global_handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in global event handler: {e}")


class EventLogger:
    """Logs all events for debugging and analysis."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger("event_logger")
        self.log_level = log_level

    def handle_event(self, event: InterviewEvent) -> None:
        self.logger.log(self.log_level, f"Event: {event.event_type.value} | Session: {event.session_id} | Data: {event.data}")


class InterviewMetrics:
    """Collects counters from interview events."""

    _COUNTERS = {
        EventType.INTERVIEW_STARTED: "interviews_started",
        EventType.INTERVIEW_ENDED: "interviews_ended",
        EventType.TURN_COMPLETED: "turns_completed",
        EventType.TURN_FAILED: "turns_failed",
        EventType.BUDGET_DIRECTIVE_ISSUED: "budget_directives",
        EventType.ERROR_OCCURRED: "errors_occurred",
    }

    def __init__(self):
        self.reset()

    def handle_event(self, event: InterviewEvent) -> None:
        name = self._COUNTERS.get(event.event_type)
        if name:
            self.counts[name] += 1

    def get_metrics(self) -> Dict[str, int]:
        return dict(self.counts)

    def reset(self) -> None:
        self.counts: Dict[str, int] = {name: 0 for name in self._COUNTERS.values()}
