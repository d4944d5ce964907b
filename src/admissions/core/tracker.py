"""Gated four-step application workflow."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

import pendulum
import structlog
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from ..errors import (
    AdmissionsError,
    CollaboratorError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from ..schemas import (
    WORKFLOW_FIELDS,
    Applicant,
    ApplicationForm,
    ApplicationRecord,
    ApplicationStatus,
    InvoiceBreakdown,
    InvoiceDateRange,
    ScheduledMeeting,
)
from .invoice import ScholarshipInvoiceCalculator, to_datetime
from .letters import AcceptanceLetter, build_registration_code, compose_acceptance_letter

FINAL_STEP = 4

# Mandatory step-1 fields and the message reported when one is missing.
REQUIRED_STEP1_FIELDS: tuple[tuple[str, str], ...] = (
    ("first_name", "First name is required"),
    ("last_name", "Last name is required"),
    ("sex", "Sex is required"),
    ("date_of_birth", "Date of birth is required"),
    ("country_of_citizenship", "Country of citizenship is required"),
    ("country_of_residency", "Country of residency is required"),
    ("primary_phone_type", "Primary phone type is required"),
    ("phone_number", "Phone number is required"),
    ("institution_name", "Institution name is required"),
    ("main_academic_major", "Main academic major is required"),
    ("english_level", "English level is required"),
    ("payment_source", "Payment source is required"),
    ("plagiarism_check_confirmed", "Plagiarism check confirmation is required"),
    ("signature", "Signature is required"),
)
MIN_SIGNATURE_LENGTH = 3

_PROTECTED_KEYS: frozenset[str] = WORKFLOW_FIELDS | {to_camel(name) for name in WORKFLOW_FIELDS}


@dataclass
class TrackerConfig:
    """Workflow switches."""

    strict_mode: bool = False
    meeting_duration_minutes: int = 30
    default_timezone: str = "UTC"


@dataclass(slots=True)
class MeetingSpec:
    topic: str
    start: pendulum.DateTime
    end: pendulum.DateTime
    duration_minutes: int
    timezone: str
    attendees: list[str] = field(default_factory=list)
    description: str = ""
    location: str = "Online"


@dataclass(slots=True)
class ScheduleResult:
    record: ApplicationRecord
    meeting: ScheduledMeeting
    warnings: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.warnings:
            return "Screening interview scheduled with warnings: " + "; ".join(self.warnings)
        return "Screening interview scheduled successfully"


@dataclass(slots=True)
class RenderedDocument:
    kind: str
    filename: str
    context: dict[str, Any]
    content: bytes | None = None


def effective_progress(
    stored_step2_completed: bool,
    stored_current_step: int,
    interview_completed: bool,
) -> tuple[bool, int]:
    """Derived (step2Completed, currentStep) shown to clients.

    The interview may be recorded on the applicant before the application record
    catches up, so either source counts.
    """
    step2 = bool(stored_step2_completed or interview_completed)
    return step2, max(stored_current_step, 3 if step2 else 1)


def _is_blank(value: Any) -> bool:
    if value is None or value is False:
        return True
    return isinstance(value, str) and not value.strip()


class ApplicationStateTracker:
    """Owns step gates and the persisted application record of each applicant."""

    def __init__(
        self,
        store: Any,
        *,
        calculator: ScholarshipInvoiceCalculator | None = None,
        video_scheduler: Any | None = None,
        calendar_scheduler: Any | None = None,
        renderer: Any | None = None,
        config: TrackerConfig | None = None,
        now_provider: Callable[[], pendulum.DateTime] | None = None,
    ) -> None:
        self._store = store
        self._calculator = calculator or ScholarshipInvoiceCalculator()
        self._video = video_scheduler
        self._calendar = calendar_scheduler
        self._renderer = renderer
        self._config = config or TrackerConfig()
        self._now = now_provider or pendulum.now
        self._logger = structlog.get_logger(__name__)

    # -- reads -----------------------------------------------------------------

    def status(self, applicant: Applicant) -> ApplicationStatus:
        record = self._find(applicant.applicant_id)
        if record is None:
            step2, current_step = effective_progress(False, 1, applicant.interview_completed)
            return ApplicationStatus(exists=False, current_step=current_step, step2_completed=step2)

        step2, current_step = effective_progress(
            record.step2_completed, record.current_step, applicant.interview_completed
        )
        return ApplicationStatus(
            exists=True,
            current_step=current_step,
            step1_completed=record.step1_completed,
            step2_completed=step2,
            step3_completed=record.step3_completed,
            step4_completed=record.step4_completed,
            is_draft=record.is_draft,
            last_saved_at=record.last_saved_at,
            scheduled_meeting=record.scheduled_meeting,
            acceptance_letter_generated_at=record.acceptance_letter_generated_at,
            invoice_date_range=record.invoice_date_range,
            invoice_status=record.invoice_status,
            scholarship_percentage=record.scholarship_percentage,
            invoice_approved_at=record.invoice_approved_at,
        )

    def get(self, applicant_id: str) -> ApplicationRecord | None:
        return self._find(applicant_id)

    # -- step 1 ----------------------------------------------------------------

    def save_draft(self, applicant: Applicant, data: dict[str, Any]) -> ApplicationRecord:
        patch = self._form_patch(data)
        patch.update(email=applicant.email, is_draft=True, last_saved_at=self._now())
        record = self._upsert(applicant.applicant_id, patch)
        self._logger.info("application.draft_saved", applicant_id=applicant.applicant_id)
        return record

    def submit_step1(self, applicant: Applicant, data: dict[str, Any]) -> ApplicationRecord:
        patch = self._form_patch(data)

        errors = [message for name, message in REQUIRED_STEP1_FIELDS if _is_blank(patch.get(name))]
        signature = patch.get("signature")
        if isinstance(signature, str) and signature.strip() and len(signature.strip()) < MIN_SIGNATURE_LENGTH:
            errors.append(f"Signature must be at least {MIN_SIGNATURE_LENGTH} characters")
        if errors:
            self._logger.info(
                "application.step1_rejected",
                applicant_id=applicant.applicant_id,
                errors=errors,
            )
            raise ValidationError(errors)

        existing = self._find(applicant.applicant_id)
        current_step = existing.current_step if existing else 1
        patch.update(
            email=applicant.email,
            step1_completed=True,
            current_step=max(current_step, 2),
            is_draft=False,
            last_saved_at=self._now(),
        )
        record = self._upsert(applicant.applicant_id, patch)
        self._logger.info("application.step1_submitted", applicant_id=applicant.applicant_id)
        return record

    # -- step 2 ----------------------------------------------------------------

    def mark_interview_completed(self, applicant_id: str) -> ApplicationRecord | None:
        """Record step 2 on an existing application; never creates one."""
        record = self._find(applicant_id)
        if record is None:
            return None
        record = self._upsert(
            applicant_id,
            {"step2_completed": True, "current_step": max(record.current_step, 3)},
        )
        self._logger.info("application.step2_completed", applicant_id=applicant_id)
        return record

    # -- step 3 ----------------------------------------------------------------

    def schedule_screening(
        self,
        applicant: Applicant,
        *,
        date_time: Any,
        timezone: str | None = None,
        additional_notes: str | None = None,
    ) -> ScheduleResult:
        record = self._find(applicant.applicant_id)
        if record is None or not record.step1_completed:
            raise StateConflictError("Please complete Step 1 (Application Form) first")

        if self._config.strict_mode:
            step2, _ = effective_progress(
                record.step2_completed, record.current_step, applicant.interview_completed
            )
            if not step2:
                raise StateConflictError("Please complete Step 2 (AI Interview) first")

        if date_time is None or date_time == "":
            raise ValidationError("Date and time are required")
        try:
            start = to_datetime(date_time)
        except (ValueError, TypeError) as exc:
            raise ValidationError(f"Invalid date and time: {date_time!r}") from exc
        if start is None or start <= self._now():
            raise ValidationError("Please select a future date and time")

        timezone = timezone or self._config.default_timezone
        notes = additional_notes or ""
        duration = self._config.meeting_duration_minutes
        topic = f"Screening Interview - {applicant.name}"
        description = f"Screening interview for {applicant.name}"
        if notes:
            description += f"\n\nAdditional Notes: {notes}"
        warnings: list[str] = []

        spec = MeetingSpec(
            topic=topic,
            start=start,
            end=start.add(minutes=duration),
            duration_minutes=duration,
            timezone=timezone,
            attendees=[applicant.email] if applicant.email else [],
            description=description,
        )
        zoom_meeting = self._call_scheduler("video", self._video, spec, warnings)

        if zoom_meeting:
            spec.location = str(zoom_meeting.get("join_url") or zoom_meeting.get("joinUrl") or "Online")
        calendar_event = self._call_scheduler("calendar", self._calendar, spec, warnings)

        meeting = ScheduledMeeting(
            date_time=start,
            timezone=timezone,
            additional_notes=notes,
            zoom_meeting=zoom_meeting,
            google_calendar_event=calendar_event,
        )
        record = self._upsert(
            applicant.applicant_id,
            {"scheduled_meeting": meeting, "step3_completed": True, "current_step": FINAL_STEP},
        )
        self._logger.info(
            "application.screening_scheduled",
            applicant_id=applicant.applicant_id,
            warnings=warnings,
        )
        return ScheduleResult(record=record, meeting=meeting, warnings=warnings)

    def _call_scheduler(
        self,
        name: str,
        scheduler: Any | None,
        spec: MeetingSpec,
        warnings: list[str],
    ) -> dict[str, Any] | None:
        if scheduler is None:
            warnings.append(f"{name} scheduling is not configured")
            return None
        try:
            result = scheduler.create(spec)
        except Exception as exc:  # noqa: BLE001
            self._logger.warning(f"scheduling.{name}_failed", error=str(exc))
            warnings.append(f"{name} scheduling failed: {exc}")
            return None
        if result is None:
            return None
        if hasattr(result, "model_dump"):
            result = result.model_dump()
        if not isinstance(result, dict):
            self._logger.warning(f"scheduling.{name}_malformed", result_type=type(result).__name__)
            warnings.append(f"{name} scheduling returned an unexpected response")
            return None
        return result

    # -- step 4 ----------------------------------------------------------------

    def download_acceptance_letter(self, applicant: Applicant) -> RenderedDocument:
        record = self._find(applicant.applicant_id)
        if record is None:
            raise NotFoundError("Application not found")
        if record.acceptance_letter_generated_at is None:
            raise StateConflictError("Acceptance letter is not available yet")

        letter = self._compose(applicant, record)
        document = self._render("acceptance_letter", letter.filename, letter.to_payload())

        if not (record.step4_completed and record.current_step == FINAL_STEP):
            self._upsert(applicant.applicant_id, {"step4_completed": True, "current_step": FINAL_STEP})
            self._logger.info("application.step4_completed", applicant_id=applicant.applicant_id)
        return document

    def compose_letter(self, applicant: Applicant) -> AcceptanceLetter:
        """Letter body without rendering or state changes."""
        record = self._find(applicant.applicant_id)
        if record is None:
            raise NotFoundError("Application not found")
        return self._compose(applicant, record)

    def _compose(self, applicant: Applicant, record: ApplicationRecord) -> AcceptanceLetter:
        now = self._now()
        return compose_acceptance_letter(
            record.acceptance_letter_program_type,
            full_name=self._full_name(applicant, record),
            registration_code=build_registration_code(
                applicant.applicant_id, applicant.digital_id, now.year
            ),
            issued_on=now,
            invoice_config=self._calculator.config,
        )

    def confirm_invoice_dates(self, applicant: Applicant, start: Any, end: Any) -> ApplicationRecord:
        record = self._find(applicant.applicant_id)
        if record is None:
            raise NotFoundError("Application not found")
        if not record.step4_completed:
            raise StateConflictError("Please download your acceptance letter first")
        if record.invoice_status == "approved":
            raise StateConflictError("Invoice dates are already approved")

        try:
            start_dt = to_datetime(start)
            end_dt = to_datetime(end)
        except (ValueError, TypeError) as exc:
            raise ValidationError("Start and end dates must be valid dates") from exc
        errors = []
        if start_dt is None:
            errors.append("Start date is required")
        if end_dt is None:
            errors.append("End date is required")
        if errors:
            raise ValidationError(errors)
        if end_dt <= start_dt:
            raise ValidationError("End date must be after start date")

        record = self._upsert(
            applicant.applicant_id,
            {
                "invoice_date_range": InvoiceDateRange(start_date=start_dt, end_date=end_dt),
                "invoice_status": "pending",
                "scholarship_percentage": None,
                "invoice_approved_at": None,
            },
        )
        self._logger.info(
            "application.invoice_dates_confirmed",
            applicant_id=applicant.applicant_id,
            weeks=self._calculator.weeks_between(start_dt, end_dt),
        )
        return record

    def invoice_breakdown(self, applicant: Applicant) -> InvoiceBreakdown:
        _, breakdown = self._approved_invoice(applicant)
        return breakdown

    def _approved_invoice(self, applicant: Applicant) -> tuple[ApplicationRecord, InvoiceBreakdown]:
        record = self._find(applicant.applicant_id)
        if record is None:
            raise NotFoundError("Application not found")
        if record.invoice_status != "approved":
            raise StateConflictError("Invoice is not approved yet")
        date_range = record.invoice_date_range
        if date_range is None or not date_range.is_complete:
            raise StateConflictError("Invoice dates are not confirmed")

        breakdown = self._calculator.compute_invoice(
            date_range.start_date, date_range.end_date, record.scholarship_percentage or 0
        )
        if not breakdown.is_computable:
            raise ValidationError("Invoice dates do not cover a billable stay")
        return record, breakdown

    def download_invoice(self, applicant: Applicant) -> RenderedDocument:
        record, breakdown = self._approved_invoice(applicant)

        full_name = self._full_name(applicant, record) or "Participant"
        now = self._now()
        context = {
            "invoiceNumber": self._invoice_number(applicant, now),
            "invoiceDate": now.to_date_string(),
            "fullName": full_name,
            "email": applicant.email,
            "dateRange": record.invoice_date_range.model_dump(mode="json", by_alias=True),
            "breakdown": breakdown.model_dump(by_alias=True),
            "registrationFee": breakdown.registration_fee,
        }
        filename = f"MIRI_Invoice_{'_'.join(full_name.split())}.pdf"
        return self._render("invoice", filename, context)

    # -- helpers ---------------------------------------------------------------

    @staticmethod
    def _full_name(applicant: Applicant, record: ApplicationRecord) -> str:
        if record.first_name and record.last_name:
            return f"{record.first_name} {record.last_name}"
        return applicant.name

    @staticmethod
    def _invoice_number(applicant: Applicant, now: pendulum.DateTime) -> str:
        if applicant.digital_id:
            return "Invoice_" + "-".join(applicant.digital_id.split())
        return f"MIRI-{now.year}-{applicant.applicant_id[-6:]}"

    def _form_patch(self, data: dict[str, Any] | None) -> dict[str, Any]:
        try:
            form = ApplicationForm.model_validate(data or {})
        except PydanticValidationError as exc:
            raise ValidationError(
                [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
            ) from exc
        patch = form.model_dump(exclude_unset=True)
        return {key: value for key, value in patch.items() if key not in _PROTECTED_KEYS}

    def _render(self, kind: str, filename: str, context: dict[str, Any]) -> RenderedDocument:
        document = RenderedDocument(kind=kind, filename=filename, context=context)
        if self._renderer is None:
            return document
        try:
            document.content = self._renderer.render(kind, context)
        except Exception as exc:  # noqa: BLE001
            self._logger.error("rendering.failed", kind=kind, error=str(exc))
            raise CollaboratorError("renderer", f"Could not render {kind}") from exc
        return document

    def _find(self, applicant_id: str) -> ApplicationRecord | None:
        try:
            return self._store.find_by_applicant_id(applicant_id)
        except AdmissionsError:
            raise
        except Exception as exc:  # noqa: BLE001
            self._logger.error("persistence.read_failed", applicant_id=applicant_id, error=str(exc))
            raise CollaboratorError("persistence", "Error fetching application") from exc

    def _upsert(self, applicant_id: str, patch: dict[str, Any]) -> ApplicationRecord:
        try:
            return self._store.upsert(applicant_id, patch)
        except AdmissionsError:
            raise
        except Exception as exc:  # noqa: BLE001
            self._logger.error("persistence.write_failed", applicant_id=applicant_id, error=str(exc))
            raise CollaboratorError("persistence", "Error saving application") from exc


__all__ = [
    "ApplicationStateTracker",
    "MeetingSpec",
    "RenderedDocument",
    "ScheduleResult",
    "TrackerConfig",
    "REQUIRED_STEP1_FIELDS",
    "effective_progress",
]
