"""
Service layer between the session store and a running interview.

``ContextBuilder`` assembles the immutable InterviewContext for an explicit
SessionSelection; ``SessionRecorder`` turns a finished transcript into a stored
InterviewSession and later attaches its analysis.
"""
import logging
from typing import Optional, Sequence

from ..errors import InvalidState
from .models import (
    AnalysisResult, InterviewContext, InterviewSession, InterviewStage, Message,
    SessionSelection,
)

logger = logging.getLogger("interview_services")


class ContextBuilder:
    """Builds an InterviewContext from the profile, a role and one of its stages."""

    def __init__(self, store):
        self.store = store

    def build(self, selection: SessionSelection) -> InterviewContext:
        profile = self.store.get_profile()
        if not selection.role_id:
            raise InvalidState("no role selected")

        role = self.store.get_role(selection.role_id)
        if role is None:
            raise InvalidState(f"unknown role {selection.role_id}")

        stage = self.resolve_stage(role, selection.stage_id)
        cv_text = role.custom_cv_text or (profile.default_cv_text if profile else None)

        return InterviewContext(
            candidate_name=profile.name if profile else None,
            candidate_background=profile.background if profile else None,
            candidate_strengths=tuple(profile.strengths) if profile else (),
            candidate_preferences=profile.preferences if profile else None,
            cv_text=cv_text,
            role_name=role.role_name,
            company_name=role.company_name,
            role_title=role.role_title,
            jd_text=role.jd_text,
            recruiter_text=role.recruiter_text,
            extra_context=role.extra_context,
            stage_name=stage.name,
            stage_description=stage.description,
            past_feedback=self.store.past_feedback_summary(role.role_id),
        )

    @staticmethod
    def resolve_stage(role, stage_id: Optional[str]) -> InterviewStage:
        if not role.stages:
            raise InvalidState(f"role {role.role_id} has no stages")
        if stage_id is None:
            return role.stages[0]
        stage = role.stage(stage_id)
        if stage is None:
            raise InvalidState(f"role {role.role_id} has no stage {stage_id}")
        return stage


class SessionRecorder:
    """Persists finished interviews and their single analysis attachment."""

    def __init__(self, store):
        self.store = store

    def record(self,
               role_id: str,
               stage: InterviewStage,
               session_id: str,
               started_at: str,
               ended_at: str,
               messages: Sequence[Message]) -> InterviewSession:
        session = InterviewSession(
            id=session_id,
            stage_id=stage.id,
            stage_name=stage.name,
            started_at=started_at,
            ended_at=ended_at,
            transcript=list(messages),
        )
        self.store.add_session(role_id, session)
        logger.info("Recorded session %s for role %s (%d messages)", session_id, role_id, len(messages))
        return session

    def attach_analysis(self, role_id: str, session_id: str, analysis: AnalysisResult) -> InterviewSession:
        return self.store.attach_analysis(role_id, session_id, analysis)
