"""
Validation schemas for the JSON replies of the evaluator and the CV and
job description extractors.
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import MalformedResponse
from .models import AnalysisResult, ProfileDraft, RoleDraft

logger = logging.getLogger("schemas")


class AnalysisPayload(BaseModel):
    """Shape the evaluator is asked to return."""
    score: int = Field(ge=0, le=100)
    summary: str
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def round_score(cls, value: Any) -> Any:
        # Models sometimes answer 82.5 or "82"
        if isinstance(value, str):
            value = value.strip().rstrip("%")
        if isinstance(value, (str, float)):
            try:
                return round(float(value))
            except ValueError:
                return value
        return value

    def to_result(self) -> AnalysisResult:
        return AnalysisResult(
            score=self.score,
            summary=self.summary.strip(),
            strengths=tuple(s.strip() for s in self.strengths if s.strip()),
            weaknesses=tuple(s.strip() for s in self.weaknesses if s.strip()),
            improvements=tuple(s.strip() for s in self.improvements if s.strip()),
        )


def parse_analysis(data: Dict[str, Any]) -> AnalysisResult:
    """Validate evaluator output; raises MalformedResponse on missing or out-of-range fields."""
    try:
        payload = AnalysisPayload.model_validate(data)
    except ValidationError as e:
        logger.warning("Evaluator reply failed validation: %s", e)
        raise MalformedResponse(f"Invalid analysis payload: {e}",
                                user_message="The evaluation came back incomplete. Please retry.") from e
    return payload.to_result()


class ProfilePayload(BaseModel):
    """Shape the CV extractor is asked to return."""
    name: Optional[str] = None
    background: str = ""
    strengths: List[str] = Field(default_factory=list)

    @field_validator("background", mode="before")
    @classmethod
    def blank_if_null(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("strengths", mode="before")
    @classmethod
    def listify(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    def to_draft(self) -> ProfileDraft:
        return ProfileDraft(
            name=(self.name or "").strip() or "Unknown",
            background=self.background.strip(),
            strengths=tuple(s.strip() for s in self.strengths if s.strip()),
        )


class RolePayload(BaseModel):
    """Shape the job description extractor is asked to return."""
    model_config = ConfigDict(populate_by_name=True)

    role_name: str = Field(default="", alias="roleName")
    company_name: str = Field(default="", alias="companyName")
    role_title: str = Field(default="", alias="roleTitle")

    @field_validator("role_name", "company_name", "role_title", mode="before")
    @classmethod
    def blank_if_null(cls, value: Any) -> Any:
        return "" if value is None else value

    def to_draft(self) -> RoleDraft:
        return RoleDraft(
            role_name=self.role_name.strip(),
            company_name=self.company_name.strip(),
            role_title=self.role_title.strip(),
        )


def parse_profile(data: Dict[str, Any]) -> ProfileDraft:
    """Validate CV extractor output; raises MalformedResponse on wrongly typed fields."""
    try:
        payload = ProfilePayload.model_validate(data)
    except ValidationError as e:
        logger.warning("CV extraction reply failed validation: %s", e)
        raise MalformedResponse(f"Invalid profile payload: {e}",
                                user_message="Couldn't read your CV. Please check the file and retry.") from e
    return payload.to_draft()


def parse_role(data: Dict[str, Any]) -> RoleDraft:
    """Validate job description extractor output; raises MalformedResponse on wrongly typed fields."""
    try:
        payload = RolePayload.model_validate(data)
    except ValidationError as e:
        logger.warning("Job description extraction reply failed validation: %s", e)
        raise MalformedResponse(f"Invalid role payload: {e}",
                                user_message="Couldn't read the job description. Please enter the role manually.") from e
    return payload.to_draft()
