"""
Profile and role extraction from uploaded documents.

Both extractors hand the converted document text to the reasoning service's
JSON mode and validate the reply; the caller decides which extracted fields
to keep.
"""
import logging

from .models import ProfileDraft, RoleDraft
from .prompts import InterviewPrompts
from .schemas import parse_profile, parse_role

logger = logging.getLogger("extraction")


class ProfileExtractor:
    """Reads name, background and strengths out of a CV."""

    def __init__(self, llm):
        self.llm = llm

    def extract(self, cv_text: str) -> ProfileDraft:
        if not cv_text or not cv_text.strip():
            raise ValueError("cv_text must be non-empty")
        data = self.llm.generate_json(InterviewPrompts.cv_extraction_prompt(cv_text))
        draft = parse_profile(data)
        logger.info("Extracted profile for %s with %d strengths", draft.name, len(draft.strengths))
        return draft


class RoleExtractor:
    """Reads role name, company and title out of a job description."""

    def __init__(self, llm):
        self.llm = llm

    def extract(self, jd_text: str) -> RoleDraft:
        if not jd_text or not jd_text.strip():
            raise ValueError("jd_text must be non-empty")
        data = self.llm.generate_json(InterviewPrompts.jd_extraction_prompt(jd_text))
        draft = parse_role(data)
        logger.info("Extracted role %r", draft.role_name or draft.role_title)
        return draft
