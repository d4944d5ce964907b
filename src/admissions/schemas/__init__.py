"""Pydantic schema definitions for the admissions boundary records."""

from __future__ import annotations

from .applicant import AnswerEvaluation, Applicant, SurveyResults
from .application import (
    WORKFLOW_FIELDS,
    ApplicationForm,
    ApplicationRecord,
    ApplicationStatus,
    InvoiceDateRange,
    ScheduledMeeting,
)
from .invoice import InvoiceBreakdown

__all__ = [
    "AnswerEvaluation",
    "Applicant",
    "SurveyResults",
    "WORKFLOW_FIELDS",
    "ApplicationForm",
    "ApplicationRecord",
    "ApplicationStatus",
    "InvoiceDateRange",
    "ScheduledMeeting",
    "InvoiceBreakdown",
]
