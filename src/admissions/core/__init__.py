"""Core admissions components."""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

from ..schemas import ApplicationRecord

# NOTE: keep imports explicit for export clarity.
from .competency import (
    CompetencyResult,
    CompetencyScoringEngine,
    InstrumentScore,
    LevelTable,
    load_instruments,
)
from .interview import InterviewAssessment, InterviewScoringAggregator, cv_score
from .invoice import InvoiceConfig, ScholarshipInvoiceCalculator
from .letters import AcceptanceLetter, ProgramVariant, compose_acceptance_letter
from .skills import SkillNormalizer, SkillNormalizerConfig
from .tracker import (
    ApplicationStateTracker,
    MeetingSpec,
    RenderedDocument,
    ScheduleResult,
    TrackerConfig,
    effective_progress,
)


@runtime_checkable
class ApplicationStore(Protocol):
    """Persistence contract; ``upsert`` must be atomic per applicant."""

    def find_by_applicant_id(self, applicant_id: str) -> ApplicationRecord | None:
        """Return the stored record or None."""

    def upsert(self, applicant_id: str, patch: dict[str, Any]) -> ApplicationRecord:
        """Merge ``patch`` into the record, creating it if absent.

        ``current_step`` is merged as the maximum of the stored and patched
        values inside the same atomic operation, so a stale read never moves
        the step backwards.
        """

    def exists(self, applicant_id: str) -> bool:
        """Return True when a record exists."""


@runtime_checkable
class SemanticEvaluator(Protocol):
    """Natural-language judge for interview answers and CV text."""

    def evaluate(self, questions: Sequence[str], answers: Sequence[str]) -> list[dict]:
        """Return one ``{score, explanation}`` entry per question."""

    def extract_skills(self, text: str) -> list[str]:
        """Return raw skill labels found in ``text``."""


@runtime_checkable
class TextExtractor(Protocol):
    def extract_text(self, file_ref: str) -> str:
        """Return document text; raise NotFoundError for unresolvable references."""


@runtime_checkable
class MeetingScheduler(Protocol):
    """Video-meeting or calendar collaborator."""

    def create(self, spec: MeetingSpec) -> dict[str, Any]:
        """Create the meeting and return the collaborator's answer."""


@runtime_checkable
class DocumentRenderer(Protocol):
    def render(self, kind: str, context: dict[str, Any]) -> bytes:
        """Render a letter or invoice to bytes."""


__all__ = [
    "ApplicationStore",
    "SemanticEvaluator",
    "TextExtractor",
    "MeetingScheduler",
    "DocumentRenderer",
    "CompetencyResult",
    "CompetencyScoringEngine",
    "InstrumentScore",
    "LevelTable",
    "load_instruments",
    "InterviewAssessment",
    "InterviewScoringAggregator",
    "cv_score",
    "InvoiceConfig",
    "ScholarshipInvoiceCalculator",
    "AcceptanceLetter",
    "ProgramVariant",
    "compose_acceptance_letter",
    "SkillNormalizer",
    "SkillNormalizerConfig",
    "ApplicationStateTracker",
    "MeetingSpec",
    "RenderedDocument",
    "ScheduleResult",
    "TrackerConfig",
    "effective_progress",
]
