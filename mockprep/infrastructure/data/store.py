"""
Session store: user profile, roles with their stages and sessions, and the
persisted active selection.

Records live in a string-keyed JSON backend, one file per key.
"""
import os
import json
import uuid
import logging
import tempfile
from dataclasses import replace
from typing import Any, List, Optional

from ...errors import InvalidState
from ...interview.models import (
    AnalysisResult, InterviewSession, InterviewStage, Role, SessionSelection,
    UserProfile, default_stages, utc_now_iso,
)

logger = logging.getLogger("session_store")

USER_PROFILE = "userProfile"
ROLES_LIST = "rolesList"
ACTIVE_ROLE_ID = "activeRoleId"
ACTIVE_SESSION_ID = "activeSessionId"
ACTIVE_STAGE_ID = "activeStageId"


def generate_id() -> str:
    return uuid.uuid4().hex


class JsonFileStore:
    """Key-value backend writing ``<key>.json`` under a directory."""

    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        os.makedirs(self.data_dir, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self.data_dir, f"{key}.json")

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def set(self, key: str, value: Any) -> None:
        # Write-then-rename so a crash never leaves a truncated record
        fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(value, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self._path(key))
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def delete(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass


class InterviewStore:
    """Profile, role and session persistence on top of a key-value backend."""

    def __init__(self, backend: JsonFileStore):
        self.backend = backend

    # ---- profile -----------------------------------------------------------

    def get_profile(self) -> Optional[UserProfile]:
        data = self.backend.get(USER_PROFILE)
        return UserProfile.from_dict(data) if data else None

    def save_profile(self, profile: UserProfile) -> None:
        self.backend.set(USER_PROFILE, profile.to_dict())

    def create_profile(self, name: str, background: str = "", strengths: Optional[List[str]] = None,
                       cv_text: Optional[str] = None, cv_file_name: Optional[str] = None) -> UserProfile:
        profile = UserProfile(
            name=name,
            background=background,
            strengths=list(strengths or []),
            default_cv_text=cv_text,
            default_cv_file_name=cv_file_name,
        )
        self.save_profile(profile)
        logger.info("Created profile for %s", name)
        return profile

    def update_profile(self, **updates: Any) -> Optional[UserProfile]:
        profile = self.get_profile()
        if profile is None:
            return None
        updated = replace(profile, **updates, updated_at=utc_now_iso())
        self.save_profile(updated)
        return updated

    # ---- roles -------------------------------------------------------------

    def list_roles(self) -> List[Role]:
        return [Role.from_dict(r) for r in self.backend.get(ROLES_LIST) or []]

    def _save_roles(self, roles: List[Role]) -> None:
        self.backend.set(ROLES_LIST, [r.to_dict() for r in roles])

    def get_role(self, role_id: str) -> Optional[Role]:
        return next((r for r in self.list_roles() if r.role_id == role_id), None)

    def create_role(self, role_name: str, company_name: str, role_title: str,
                    jd_text: Optional[str] = None, jd_file_name: Optional[str] = None,
                    recruiter_text: Optional[str] = None, recruiter_file_name: Optional[str] = None,
                    extra_context: Optional[str] = None,
                    stages: Optional[List[InterviewStage]] = None) -> Role:
        role = Role(
            role_id=generate_id(),
            role_name=role_name,
            company_name=company_name,
            role_title=role_title,
            jd_text=jd_text,
            jd_file_name=jd_file_name,
            recruiter_text=recruiter_text,
            recruiter_file_name=recruiter_file_name,
            extra_context=extra_context,
            stages=list(stages) if stages else default_stages(),
        )
        roles = self.list_roles()
        roles.insert(0, role)  # newest first
        self._save_roles(roles)
        logger.info("Created role %s (%s)", role.role_id, role_name)
        return role

    def update_role(self, role_id: str, **updates: Any) -> Optional[Role]:
        if "role_id" in updates or "sessions" in updates:
            raise ValueError("role_id and sessions cannot be updated directly")
        roles = self.list_roles()
        for i, role in enumerate(roles):
            if role.role_id == role_id:
                roles[i] = replace(role, **updates)
                self._save_roles(roles)
                return roles[i]
        return None

    def delete_role(self, role_id: str) -> None:
        """Delete a role and its sessions; clears the active selection if it pointed here."""
        roles = [r for r in self.list_roles() if r.role_id != role_id]
        self._save_roles(roles)
        if self.backend.get(ACTIVE_ROLE_ID) == role_id:
            self.set_selection(SessionSelection())
        logger.info("Deleted role %s", role_id)

    # ---- sessions ----------------------------------------------------------

    def add_session(self, role_id: str, session: InterviewSession) -> None:
        roles = self.list_roles()
        for role in roles:
            if role.role_id == role_id:
                if any(s.id == session.id for s in role.sessions):
                    raise InvalidState(f"session {session.id} already recorded")
                role.sessions.append(session)
                self._save_roles(roles)
                return
        raise KeyError(role_id)

    def attach_analysis(self, role_id: str, session_id: str, analysis: AnalysisResult) -> InterviewSession:
        """The single post-end mutation a session allows."""
        roles = self.list_roles()
        for role in roles:
            if role.role_id != role_id:
                continue
            for i, session in enumerate(role.sessions):
                if session.id == session_id:
                    if session.analysis is not None:
                        raise InvalidState(f"session {session_id} already has an analysis")
                    role.sessions[i] = replace(session, analysis=analysis)
                    self._save_roles(roles)
                    return role.sessions[i]
        raise KeyError(session_id)

    # ---- active selection --------------------------------------------------

    def get_selection(self) -> SessionSelection:
        return SessionSelection(
            role_id=self.backend.get(ACTIVE_ROLE_ID),
            stage_id=self.backend.get(ACTIVE_STAGE_ID),
            session_id=self.backend.get(ACTIVE_SESSION_ID),
        )

    def set_selection(self, selection: SessionSelection) -> None:
        for key, value in ((ACTIVE_ROLE_ID, selection.role_id),
                           (ACTIVE_STAGE_ID, selection.stage_id),
                           (ACTIVE_SESSION_ID, selection.session_id)):
            if value:
                self.backend.set(key, value)
            else:
                self.backend.delete(key)

    # ---- derived -----------------------------------------------------------

    def past_feedback_summary(self, role_id: str) -> Optional[str]:
        """Digest of every analysed session for the role, oldest first."""
        role = self.get_role(role_id)
        if role is None:
            return None
        analysed = [s for s in role.sessions if s.analysis]
        if not analysed:
            return None

        blocks = []
        for i, session in enumerate(analysed, start=1):
            a = session.analysis
            blocks.append(
                f"Session {i} ({session.stage_name}, Score: {a.score}/100):\n"
                f"- Strengths: {', '.join(a.strengths)}\n"
                f"- Weaknesses: {', '.join(a.weaknesses)}\n"
                f"- Tips: {', '.join(a.improvements)}"
            )
        return "\n\n".join(blocks)


def next_stage(role: Role, current_stage_id: Optional[str]) -> Optional[InterviewStage]:
    """Stage after ``current_stage_id``; the first stage when the current one is unknown."""
    ids = [s.id for s in role.stages]
    index = ids.index(current_stage_id) if current_stage_id in ids else -1
    if index < len(role.stages) - 1:
        return role.stages[index + 1]
    return None

