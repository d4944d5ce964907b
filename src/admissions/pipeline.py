"""Assessment flows tying CV analysis and interviews to the application workflow."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

import pendulum
import structlog

from . import __version__
from .core import (
    ApplicationStateTracker,
    CompetencyScoringEngine,
    InstrumentScore,
    InterviewAssessment,
    InterviewScoringAggregator,
    SkillNormalizer,
    cv_score,
)
from .errors import AdmissionsError, CollaboratorError
from .schemas import Applicant

DEFAULT_QUESTIONS: tuple[str, ...] = (
    "What is your motivation for applying to this program and joining Mirai Innovation Research Institute?",
    "What is your plan to finance your tuition, travel expenses, and accommodation during your stay in Japan?",
)
QUESTION_COUNT = 4


@dataclass(slots=True)
class CvAnalysis:
    skills: list[str]
    score: int
    questions: list[str]
    cv_text: str
    warnings: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "skills": list(self.skills),
            "cvScore": self.score,
            "questions": list(self.questions),
            "warnings": list(self.warnings),
        }


class AuditLogger:
    """Append-only audit logger writing JSON lines."""

    def __init__(self, path: Path):
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, record: dict) -> None:
        entry = {
            "timestamp": pendulum.now().to_iso8601_string(),
            "app_version": __version__,
            **record,
        }
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(entry, ensure_ascii=False))
            handle.write("\n")


class AssessmentPipeline:
    """CV analysis, interview submission and survey scoring for one applicant at a time."""

    def __init__(
        self,
        *,
        normalizer: SkillNormalizer,
        aggregator: InterviewScoringAggregator,
        engine: CompetencyScoringEngine,
        tracker: ApplicationStateTracker | None = None,
        evaluator: Any | None = None,
        text_extractor: Any | None = None,
    ) -> None:
        self._normalizer = normalizer
        self._aggregator = aggregator
        self._engine = engine
        self._tracker = tracker
        self._evaluator = evaluator
        self._extractor = text_extractor
        self._logger = structlog.get_logger(__name__)

    def analyze_cv(
        self,
        applicant: Applicant,
        cv_ref: str,
        *,
        audit_logger: AuditLogger | None = None,
    ) -> CvAnalysis:
        if self._extractor is None:
            raise CollaboratorError("text_extractor", "No text extractor configured.")
        if self._evaluator is None:
            raise CollaboratorError("evaluator", "No semantic evaluator configured.")

        cv_text = self._extractor.extract_text(cv_ref)
        try:
            raw_skills = self._evaluator.extract_skills(cv_text)
        except AdmissionsError:
            raise
        except Exception as exc:  # noqa: BLE001
            self._logger.error("cv.skill_extraction_failed", applicant_id=applicant.applicant_id, error=str(exc))
            raise CollaboratorError("evaluator", f"Skill extraction failed: {exc}") from exc

        skills = self._normalizer.normalize(raw_skills or [])
        score = cv_score(len(skills))
        warnings: list[str] = []
        questions = self._generate_questions(skills, warnings)

        analysis = CvAnalysis(skills=skills, score=score, questions=questions, cv_text=cv_text, warnings=warnings)
        if audit_logger:
            audit_logger.append(
                {
                    "event": "cv_analyzed",
                    "applicant_id": applicant.applicant_id,
                    "skills": skills,
                    "cv_score": score,
                    "question_count": len(questions),
                    "warnings": warnings,
                }
            )
        self._logger.info(
            "cv.analyzed",
            applicant_id=applicant.applicant_id,
            skill_count=len(skills),
            cv_score=score,
        )
        return analysis

    def _generate_questions(self, skills: list[str], warnings: list[str]) -> list[str]:
        generate = getattr(self._evaluator, "generate_questions", None)
        if generate is None or not skills:
            return []
        try:
            questions = generate(skills, count=QUESTION_COUNT)
        except Exception as exc:  # noqa: BLE001
            self._logger.warning("cv.question_generation_failed", error=str(exc))
            warnings.append(f"Interview questions unavailable: {exc}")
            return []
        return [q for q in (questions or []) if isinstance(q, str) and q.strip()]

    def interview_questions(self, applicant: Applicant) -> list[str]:
        """Generated questions followed by the fixed program questions."""
        return [*applicant.questions, *DEFAULT_QUESTIONS]

    def submit_interview(
        self,
        applicant: Applicant,
        answers: Sequence[str],
        *,
        audit_logger: AuditLogger | None = None,
    ) -> InterviewAssessment:
        questions = self.interview_questions(applicant)
        assessment = self._aggregator.aggregate(questions, answers)

        if self._tracker is not None:
            try:
                self._tracker.mark_interview_completed(applicant.applicant_id)
            except Exception as exc:  # noqa: BLE001
                self._logger.warning(
                    "interview.step2_update_failed",
                    applicant_id=applicant.applicant_id,
                    error=str(exc),
                )
                assessment.warnings.append(f"Application progress not updated: {exc}")

        if audit_logger:
            audit_logger.append(
                {
                    "event": "interview_submitted",
                    "applicant_id": applicant.applicant_id,
                    "question_count": len(questions),
                    "total_score": assessment.total_score,
                    "scores": [item.score for item in assessment.evaluations],
                    "warnings": assessment.warnings,
                }
            )
        self._logger.info(
            "interview.submitted",
            applicant_id=applicant.applicant_id,
            total_score=assessment.total_score,
        )
        return assessment

    def score_survey(self, instrument: str, responses: dict[Any, Any]) -> InstrumentScore:
        return self._engine.score(instrument, responses)


__all__ = [
    "AssessmentPipeline",
    "AuditLogger",
    "CvAnalysis",
    "DEFAULT_QUESTIONS",
]
