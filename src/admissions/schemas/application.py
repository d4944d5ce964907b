from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

InvoiceStatus = Literal["pending", "approved", "rejected"]
ProgramType = Literal["MIRI", "FIJSE"]

# Fields only the workflow itself may write; draft saves drop them.
WORKFLOW_FIELDS: frozenset[str] = frozenset(
    {
        "applicant_id",
        "email",
        "step1_completed",
        "step2_completed",
        "step3_completed",
        "step4_completed",
        "current_step",
        "is_draft",
        "last_saved_at",
        "scheduled_meeting",
        "acceptance_letter_generated_at",
        "acceptance_letter_program_type",
        "invoice_date_range",
        "invoice_status",
        "scholarship_percentage",
        "invoice_approved_at",
    }
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InvoiceDateRange(_CamelModel):
    """Confirmed stay used for invoicing."""

    start_date: datetime | None = None
    end_date: datetime | None = None

    @property
    def is_complete(self) -> bool:
        return self.start_date is not None and self.end_date is not None


class ScheduledMeeting(_CamelModel):
    """Screening meeting with the raw answers of both scheduling collaborators."""

    date_time: datetime
    timezone: str = "UTC"
    additional_notes: str = ""
    zoom_meeting: dict[str, Any] | None = None
    google_calendar_event: dict[str, Any] | None = None


class ApplicationForm(_CamelModel):
    """Step-1 form fields as sent by the applicant; every field optional for drafts."""

    promotional_code: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    sex: str | None = None
    date_of_birth: str | None = None
    country_of_citizenship: str | None = None
    country_of_residency: str | None = None
    primary_phone_type: str | None = None
    phone_number: str | None = None
    linked_in_profile_url: str | None = None
    has_medical_condition: bool | None = None
    medical_condition_details: str | None = None
    cv_url: str | None = None
    institution_name: str | None = None
    main_academic_major: str | None = None
    other_studies_certifications: str | None = None
    current_semester: str | None = None
    participation_in_challenges: str | None = None
    awards_and_distinctions: str | None = None
    portfolio_url: str | None = None
    has_academic_publications: bool | None = None
    english_level: str | None = None
    has_english_certification: bool | None = None
    applied_before: bool | None = None
    payment_source: str | None = None
    plagiarism_check_confirmed: bool | None = None
    signature: str | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class ApplicationRecord(ApplicationForm):
    """One persisted application per applicant."""

    applicant_id: str
    email: str | None = None

    step1_completed: bool = False
    step2_completed: bool = False
    step3_completed: bool = False
    step4_completed: bool = False
    current_step: int = Field(default=1, ge=1, le=4)

    is_draft: bool = True
    last_saved_at: datetime | None = None

    scheduled_meeting: ScheduledMeeting | None = None

    acceptance_letter_generated_at: datetime | None = None
    acceptance_letter_program_type: ProgramType = "MIRI"

    invoice_date_range: InvoiceDateRange | None = None
    invoice_status: InvoiceStatus | None = None
    scholarship_percentage: float | None = Field(default=None, ge=0, le=100)
    invoice_approved_at: datetime | None = None


class ApplicationStatus(_CamelModel):
    """Read-time status view returned to clients; never persisted."""

    exists: bool
    current_step: int
    step1_completed: bool = False
    step2_completed: bool = False
    step3_completed: bool = False
    step4_completed: bool = False
    is_draft: bool | None = None
    last_saved_at: datetime | None = None
    scheduled_meeting: ScheduledMeeting | None = None
    acceptance_letter_generated_at: datetime | None = None
    invoice_date_range: InvoiceDateRange | None = None
    invoice_status: InvoiceStatus | None = None
    scholarship_percentage: float | None = None
    invoice_approved_at: datetime | None = None
