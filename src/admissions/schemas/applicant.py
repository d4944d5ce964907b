from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AnswerEvaluation(BaseModel):
    """Judge verdict for a single interview answer."""

    score: int = Field(ge=0, le=100)
    explanation: str = ""

    model_config = ConfigDict(extra="ignore")


class SurveyResults(BaseModel):
    """Stored outcome of one psychometric instrument."""

    results: dict[str, Any] = Field(default_factory=dict)
    total_score: int = 0
    overall_level: str | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Applicant(BaseModel):
    """Applicant identity plus derived assessment fields.

    The calling system owns persistence; the core only reads and returns copies.
    """

    applicant_id: str
    name: str = ""
    email: str | None = None
    digital_id: str | None = None
    program: str | None = None
    role: Literal["user", "admin"] = "user"
    is_active: bool = False

    skills: list[str] = Field(default_factory=list)
    questions: list[str] = Field(default_factory=list)
    cv_score: int | None = None
    cv_analyzed: bool = False

    interview_responses: list[str] = Field(default_factory=list)
    interview_score: int | None = None
    interview_evaluations: list[AnswerEvaluation] = Field(default_factory=list)
    interview_completed: bool = False

    soft_skills_results: SurveyResults | None = None
    hard_skills_results: SurveyResults | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")
