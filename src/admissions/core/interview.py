"""Interview answer aggregation and CV scoring."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Sequence

import structlog
from pydantic import ValidationError as PydanticValidationError

from ..errors import AdmissionsError, CollaboratorError, ValidationError
from ..schemas import AnswerEvaluation

RECOMMENDATIONS_UNAVAILABLE = "Unable to generate analysis at this time. Please try again later."


@dataclass(slots=True)
class InterviewAssessment:
    total_score: int
    evaluations: list[AnswerEvaluation]
    recommendations: str | None = None
    warnings: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "totalScore": self.total_score,
            "evaluations": [item.model_dump() for item in self.evaluations],
            "recommendations": self.recommendations,
            "warnings": list(self.warnings),
        }


def cv_score(skill_count: int, *, points_per_skill: int = 10, ceiling: int = 100) -> int:
    """CV score from the number of canonical skills found."""
    return min(max(skill_count, 0) * points_per_skill, ceiling)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class InterviewScoringAggregator:
    """Score a batch of interview answers through the semantic evaluator."""

    def __init__(self, evaluator: Any | None = None, *, with_recommendations: bool = False) -> None:
        self._evaluator = evaluator
        self._with_recommendations = with_recommendations
        self._logger = structlog.get_logger(__name__)

    def aggregate(self, questions: Sequence[str], answers: Sequence[str]) -> InterviewAssessment:
        questions = list(questions or [])
        answers = list(answers or [])
        if len(questions) != len(answers):
            raise ValidationError(
                f"Number of answers ({len(answers)}) does not match the number of questions ({len(questions)})."
            )
        if self._evaluator is None:
            raise CollaboratorError("evaluator", "No semantic evaluator configured.")

        try:
            raw = self._evaluator.evaluate(questions, answers)
        except AdmissionsError:
            raise
        except Exception as exc:  # noqa: BLE001
            self._logger.error("interview.evaluator_failed", error=str(exc))
            raise CollaboratorError("evaluator", f"Evaluation failed: {exc}") from exc

        evaluations = self._validate(raw, expected=len(questions))
        total = (
            round_half_up(sum(item.score for item in evaluations) / len(evaluations))
            if evaluations
            else 0
        )

        assessment = InterviewAssessment(total_score=total, evaluations=evaluations)
        if self._with_recommendations:
            assessment.recommendations = self._recommend(questions, answers, assessment.warnings)

        self._logger.info(
            "interview.scored",
            question_count=len(questions),
            total_score=total,
        )
        return assessment

    def _validate(self, raw: Any, *, expected: int) -> list[AnswerEvaluation]:
        if isinstance(raw, dict):
            raw = raw.get("evaluations")
        if not isinstance(raw, list):
            self._logger.error("interview.evaluator_malformed", payload_type=type(raw).__name__)
            raise CollaboratorError("evaluator", "Evaluator response is not a list of evaluations.")
        if len(raw) != expected:
            self._logger.error("interview.evaluator_count_mismatch", expected=expected, received=len(raw))
            raise CollaboratorError(
                "evaluator",
                f"Evaluator returned {len(raw)} evaluations for {expected} questions.",
            )
        try:
            return [AnswerEvaluation.model_validate(item) for item in raw]
        except PydanticValidationError as exc:
            self._logger.error("interview.evaluator_malformed", error=str(exc))
            raise CollaboratorError("evaluator", "Evaluator returned malformed evaluations.") from exc

    def _recommend(self, questions: list[str], answers: list[str], warnings: list[str]) -> str:
        recommend = getattr(self._evaluator, "recommend", None)
        if recommend is None:
            return RECOMMENDATIONS_UNAVAILABLE
        try:
            text = recommend(questions, answers)
        except Exception as exc:  # noqa: BLE001
            self._logger.warning("interview.recommendations_failed", error=str(exc))
            warnings.append(f"Recommendations unavailable: {exc}")
            return RECOMMENDATIONS_UNAVAILABLE
        if not isinstance(text, str) or not text.strip():
            return RECOMMENDATIONS_UNAVAILABLE
        return text.strip()


__all__ = [
    "InterviewAssessment",
    "InterviewScoringAggregator",
    "RECOMMENDATIONS_UNAVAILABLE",
    "cv_score",
    "round_half_up",
]
