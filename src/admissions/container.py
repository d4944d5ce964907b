"""Dependency injection container for the admissions core."""

from __future__ import annotations

from dependency_injector import containers, providers

from .core import (
    ApplicationStateTracker,
    CompetencyScoringEngine,
    InterviewScoringAggregator,
    InvoiceConfig,
    ScholarshipInvoiceCalculator,
    SkillNormalizer,
    TrackerConfig,
)
from .llm import HTTPSemanticEvaluator
from .pdf_utils import PdfTextExtractor
from .persistence import InMemoryApplicationStore
from .pipeline import AssessmentPipeline


class AdmissionsContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    skill_normalizer = providers.Singleton(SkillNormalizer)
    competency_engine = providers.Singleton(CompetencyScoringEngine)

    invoice_config = providers.Object(InvoiceConfig())
    invoice_calculator = providers.Singleton(ScholarshipInvoiceCalculator, config=invoice_config)

    semantic_evaluator = providers.Object(None)
    text_extractor = providers.Singleton(PdfTextExtractor)

    interview_aggregator = providers.Singleton(
        InterviewScoringAggregator,
        evaluator=semantic_evaluator,
        with_recommendations=True,
    )

    application_store = providers.Singleton(InMemoryApplicationStore)

    video_scheduler = providers.Object(None)
    calendar_scheduler = providers.Object(None)
    renderer = providers.Object(None)
    tracker_config = providers.Object(TrackerConfig())

    tracker = providers.Singleton(
        ApplicationStateTracker,
        application_store,
        calculator=invoice_calculator,
        video_scheduler=video_scheduler,
        calendar_scheduler=calendar_scheduler,
        renderer=renderer,
        config=tracker_config,
    )

    pipeline = providers.Factory(
        AssessmentPipeline,
        normalizer=skill_normalizer,
        aggregator=interview_aggregator,
        engine=competency_engine,
        tracker=tracker,
        evaluator=semantic_evaluator,
        text_extractor=text_extractor,
    )


def create_container(*, settings: dict | None = None) -> AdmissionsContainer:
    """Instantiate container with optional overrides."""

    container = AdmissionsContainer()

    if not settings or not isinstance(settings, dict):
        return container

    invoice_settings = settings.get("invoice") or {}
    if invoice_settings:
        container.invoice_config.override(providers.Object(InvoiceConfig(**invoice_settings)))

    tracker_settings = settings.get("tracker") or {}
    if tracker_settings:
        container.tracker_config.override(providers.Object(TrackerConfig(**tracker_settings)))

    evaluator_settings = dict(settings.get("evaluator") or {})
    endpoint = evaluator_settings.pop("endpoint", None)
    if endpoint:
        container.semantic_evaluator.override(
            providers.Singleton(HTTPSemanticEvaluator, endpoint, **evaluator_settings)
        )

    return container
