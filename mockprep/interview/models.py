"""
Data models for the interview system.
"""
from dataclasses import dataclass, field, asdict, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any, Tuple, Iterator

from ..errors import InvalidState


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Speaker(str, Enum):
    INTERVIEWER = "interviewer"
    CANDIDATE = "candidate"


class MessageStatus(str, Enum):
    """Two-phase append state for candidate turns."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True)
class Message:
    """A single utterance in the conversation."""
    role: Speaker
    text: str
    status: MessageStatus = MessageStatus.CONFIRMED

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role.value, "text": self.text, "status": self.status.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        return cls(
            role=Speaker(data["role"]),
            text=data["text"],
            status=MessageStatus(data.get("status", MessageStatus.CONFIRMED.value)),
        )


class Transcript:
    """
    Ordered, append-only message history for one live session.

    Insertion order is conversation order and is replayed verbatim to the
    reasoning service on every turn. Candidate turns go through a two-phase
    append: ``append_provisional`` then ``confirm`` or ``mark_failed``. A
    failed entry stays in the history. After ``freeze`` nothing may change.
    """

    def __init__(self, messages: Optional[List[Message]] = None):
        self._messages: List[Message] = list(messages or [])
        self._frozen = False

    @property
    def messages(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]

    def _check_writable(self) -> None:
        if self._frozen:
            raise InvalidState("transcript is frozen")

    def append(self, role: Speaker, text: str) -> Message:
        self._check_writable()
        message = Message(role=role, text=text)
        self._messages.append(message)
        return message

    def append_provisional(self, role: Speaker, text: str) -> int:
        """Insert a PENDING message and return its index for later settlement."""
        self._check_writable()
        self._messages.append(Message(role=role, text=text, status=MessageStatus.PENDING))
        return len(self._messages) - 1

    def confirm(self, index: int) -> Message:
        return self._settle(index, MessageStatus.CONFIRMED)

    def mark_failed(self, index: int) -> Message:
        return self._settle(index, MessageStatus.FAILED)

    def _settle(self, index: int, status: MessageStatus) -> Message:
        self._check_writable()
        current = self._messages[index]
        if current.status is not MessageStatus.PENDING:
            raise InvalidState(f"message {index} already settled as {current.status.value}")
        settled = replace(current, status=status)
        self._messages[index] = settled
        return settled

    def count(self, role: Speaker) -> int:
        return sum(1 for m in self._messages if m.role is role)

    def freeze(self) -> Tuple[Message, ...]:
        self._frozen = True
        return self.messages


@dataclass(frozen=True)
class InterviewContext:
    """Immutable per-session configuration assembled before the first turn."""
    # Candidate
    candidate_name: Optional[str] = None
    candidate_background: Optional[str] = None
    candidate_strengths: Tuple[str, ...] = ()
    candidate_preferences: Optional[str] = None
    cv_text: Optional[str] = None
    # Role
    role_name: Optional[str] = None
    company_name: Optional[str] = None
    role_title: Optional[str] = None
    jd_text: Optional[str] = None
    recruiter_text: Optional[str] = None
    extra_context: Optional[str] = None
    # Stage
    stage_name: Optional[str] = None
    stage_description: Optional[str] = None
    # Previous sessions for the same role
    past_feedback: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["candidate_strengths"] = list(self.candidate_strengths)
        return {k: v for k, v in data.items() if v}


@dataclass
class InterviewStage:
    id: str
    name: str
    description: str


DEFAULT_STAGES: Tuple[InterviewStage, ...] = (
    InterviewStage(
        id="screening",
        name="Screening",
        description="Recruiter call focusing on logistics, salary expectations, and high-level fit assessment.",
    ),
    InterviewStage(
        id="hiring-manager",
        name="Hiring Manager",
        description="Deep dive into experience, technical skills, project impact, and problem-solving abilities.",
    ),
    InterviewStage(
        id="cultural-fit",
        name="Cultural Fit",
        description="Values alignment, collaboration style, team dynamics, and interpersonal skills assessment.",
    ),
)


def default_stages() -> List[InterviewStage]:
    return [replace(stage) for stage in DEFAULT_STAGES]


@dataclass(frozen=True)
class ProfileDraft:
    """Profile fields read out of a CV."""
    name: str
    background: str = ""
    strengths: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RoleDraft:
    """Role fields read out of a job description; empty when not found."""
    role_name: str = ""
    company_name: str = ""
    role_title: str = ""


@dataclass(frozen=True)
class AnalysisResult:
    """Evaluator output for one finished session."""
    score: int
    summary: str
    strengths: Tuple[str, ...] = ()
    weaknesses: Tuple[str, ...] = ()
    improvements: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "summary": self.summary,
            "strengths": list(self.strengths),
            "weaknesses": list(self.weaknesses),
            "improvements": list(self.improvements),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        return cls(
            score=int(data["score"]),
            summary=data.get("summary", ""),
            strengths=tuple(data.get("strengths", ())),
            weaknesses=tuple(data.get("weaknesses", ())),
            improvements=tuple(data.get("improvements", ())),
        )


@dataclass
class InterviewSession:
    """Durable record of one finished interview."""
    id: str
    stage_id: str
    stage_name: str
    started_at: str
    ended_at: str
    transcript: List[Message] = field(default_factory=list)
    analysis: Optional[AnalysisResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "stage_id": self.stage_id,
            "stage_name": self.stage_name,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "transcript": [m.to_dict() for m in self.transcript],
            "analysis": self.analysis.to_dict() if self.analysis else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InterviewSession":
        analysis = data.get("analysis")
        return cls(
            id=data["id"],
            stage_id=data["stage_id"],
            stage_name=data["stage_name"],
            started_at=data["started_at"],
            ended_at=data["ended_at"],
            transcript=[Message.from_dict(m) for m in data.get("transcript", [])],
            analysis=AnalysisResult.from_dict(analysis) if analysis else None,
        )


@dataclass
class Role:
    """A tracked job opportunity."""
    role_id: str
    role_name: str
    company_name: str
    role_title: str
    jd_text: Optional[str] = None
    jd_file_name: Optional[str] = None
    recruiter_text: Optional[str] = None
    recruiter_file_name: Optional[str] = None
    extra_context: Optional[str] = None
    custom_cv_text: Optional[str] = None
    custom_cv_file_name: Optional[str] = None
    stages: List[InterviewStage] = field(default_factory=default_stages)
    created_at: str = field(default_factory=utc_now_iso)
    sessions: List[InterviewSession] = field(default_factory=list)

    def stage(self, stage_id: str) -> Optional[InterviewStage]:
        return next((s for s in self.stages if s.id == stage_id), None)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["sessions"] = [s.to_dict() for s in self.sessions]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Role":
        data = dict(data)
        data["stages"] = [InterviewStage(**s) for s in data.get("stages", [])]
        data["sessions"] = [InterviewSession.from_dict(s) for s in data.get("sessions", [])]
        return cls(**data)


@dataclass
class UserProfile:
    """Singleton candidate profile."""
    name: str
    background: str = ""
    strengths: List[str] = field(default_factory=list)
    preferences: str = ""
    default_cv_text: Optional[str] = None
    default_cv_file_name: Optional[str] = None
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        return cls(**data)


@dataclass(frozen=True)
class SessionSelection:
    """Explicit role/stage/session choice handed to services."""
    role_id: Optional[str] = None
    stage_id: Optional[str] = None
    session_id: Optional[str] = None
