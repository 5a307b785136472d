"""Interview system components.

This module contains the business logic for running mock interviews: the
turn engine and its budget, prompt assembly, the push-to-talk and realtime
voice paths, evaluation, and the services that tie them to the session store.
"""

# Data models
from .models import (
    Speaker, MessageStatus, Message, Transcript, InterviewContext,
    InterviewStage, AnalysisResult, InterviewSession, Role, UserProfile,
    SessionSelection, ProfileDraft, RoleDraft, DEFAULT_STAGES,
)

# Turn engine and budget
from .budget import TurnBudget, BudgetDirective, Severity
from .engine import InterviewEngine, EngineState
from .prompts import InterviewPrompts

# Evaluation
from .schemas import AnalysisPayload, parse_analysis, ProfilePayload, RolePayload, parse_profile, parse_role
from .evaluation import InterviewEvaluator
from .extraction import ProfileExtractor, RoleExtractor

# Service classes
from .services import ContextBuilder, SessionRecorder

# Event system
from .events import (
    InterviewEventBus, EventLogger, InterviewMetrics,
    EventType, InterviewEvent, InterviewStartedEvent,
    TurnCompletedEvent, TurnFailedEvent, BudgetDirectiveIssuedEvent,
    InterviewEndedEvent, RealtimeStatusChangedEvent, ErrorOccurredEvent,
)

__all__ = [
    # Data models
    "Speaker", "MessageStatus", "Message", "Transcript", "InterviewContext",
    "InterviewStage", "AnalysisResult", "InterviewSession", "Role", "UserProfile",
    "SessionSelection", "ProfileDraft", "RoleDraft", "DEFAULT_STAGES",

    # Engine
    "TurnBudget", "BudgetDirective", "Severity",
    "InterviewEngine", "EngineState", "InterviewPrompts",

    # Evaluation
    "AnalysisPayload", "parse_analysis", "InterviewEvaluator",
    "ProfilePayload", "RolePayload", "parse_profile", "parse_role",
    "ProfileExtractor", "RoleExtractor",

    # Services
    "ContextBuilder", "SessionRecorder",

    # Events
    "InterviewEventBus", "EventLogger", "InterviewMetrics",
    "EventType", "InterviewEvent", "InterviewStartedEvent",
    "TurnCompletedEvent", "TurnFailedEvent", "BudgetDirectiveIssuedEvent",
    "InterviewEndedEvent", "RealtimeStatusChangedEvent", "ErrorOccurredEvent",
]
