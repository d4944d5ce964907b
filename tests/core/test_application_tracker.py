from __future__ import annotations

from typing import Any

import pendulum
import pytest

from admissions.core import ApplicationStateTracker, MeetingSpec, TrackerConfig
from admissions.errors import CollaboratorError, NotFoundError, StateConflictError, ValidationError
from admissions.persistence import InMemoryApplicationStore
from admissions.schemas import Applicant

NOW = pendulum.datetime(2026, 10, 17, 9)
FUTURE = "2026-10-20T15:00:00Z"

COMPLETE_FORM: dict[str, Any] = {
    "firstName": "Ana",
    "lastName": "Torres",
    "sex": "Female",
    "dateOfBirth": "2001-04-02",
    "countryOfCitizenship": "Mexico",
    "countryOfResidency": "Mexico",
    "primaryPhoneType": "Mobile",
    "phoneNumber": "+52 55 1234 5678",
    "institutionName": "UNAM",
    "mainAcademicMajor": "Mechatronics",
    "englishLevel": "B2",
    "paymentSource": "Family",
    "plagiarismCheckConfirmed": True,
    "signature": "Ana Torres",
}


class StubScheduler:
    def __init__(self, result: dict[str, Any] | None = None, error: Exception | None = None) -> None:
        self._result = result
        self._error = error
        self.specs: list[MeetingSpec] = []

    def create(self, spec: MeetingSpec) -> dict[str, Any] | None:
        self.specs.append(spec)
        if self._error is not None:
            raise self._error
        return self._result


class StubRenderer:
    def __init__(self, error: Exception | None = None) -> None:
        self._error = error
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def render(self, kind: str, context: dict[str, Any]) -> bytes:
        self.calls.append((kind, context))
        if self._error is not None:
            raise self._error
        return b"%PDF-1.7"


class ConcurrentWriteStore(InMemoryApplicationStore):
    """Commits another request's write right after each armed read."""

    def __init__(self) -> None:
        super().__init__()
        self._pending: dict[str, Any] | None = None

    def arm(self, patch: dict[str, Any]) -> None:
        self._pending = patch

    def find_by_applicant_id(self, applicant_id: str):
        record = super().find_by_applicant_id(applicant_id)
        if record is not None and self._pending is not None:
            patch, self._pending = self._pending, None
            super().upsert(applicant_id, patch)
        return record


class BrokenStore:
    def find_by_applicant_id(self, applicant_id: str):
        raise RuntimeError("connection reset")

    def upsert(self, applicant_id: str, patch: dict[str, Any]):
        raise RuntimeError("connection reset")

    def exists(self, applicant_id: str) -> bool:
        return False


@pytest.fixture
def store() -> InMemoryApplicationStore:
    return InMemoryApplicationStore()


@pytest.fixture
def applicant() -> Applicant:
    return Applicant(applicant_id="app-000123", name="Ana Torres", email="ana@example.com")


def make_tracker(store: Any, **kwargs: Any) -> ApplicationStateTracker:
    return ApplicationStateTracker(store, now_provider=lambda: NOW, **kwargs)


@pytest.fixture
def tracker(store: InMemoryApplicationStore) -> ApplicationStateTracker:
    return make_tracker(
        store,
        video_scheduler=StubScheduler({"id": 991, "join_url": "https://zoom.example/j/991"}),
        calendar_scheduler=StubScheduler({"id": "evt-1", "htmlLink": "https://calendar.example/evt-1"}),
        renderer=StubRenderer(),
    )


def grant_letter(store: InMemoryApplicationStore, applicant_id: str) -> None:
    store.upsert(applicant_id, {"acceptance_letter_generated_at": NOW})


def reach_step4(tracker: ApplicationStateTracker, store: InMemoryApplicationStore, applicant: Applicant) -> None:
    tracker.submit_step1(applicant, COMPLETE_FORM)
    tracker.schedule_screening(applicant, date_time=FUTURE)
    grant_letter(store, applicant.applicant_id)
    tracker.download_acceptance_letter(applicant)


# -- status ---------------------------------------------------------------------


def test_status_without_record(tracker: ApplicationStateTracker, applicant: Applicant) -> None:
    status = tracker.status(applicant)

    assert status.exists is False
    assert status.current_step == 1
    assert status.step2_completed is False


def test_status_reflects_interview_signal_without_persisting(
    tracker: ApplicationStateTracker, store: InMemoryApplicationStore, applicant: Applicant
) -> None:
    tracker.submit_step1(applicant, COMPLETE_FORM)
    interviewed = applicant.model_copy(update={"interview_completed": True})

    status = tracker.status(interviewed)

    assert status.step2_completed is True
    assert status.current_step == 3
    stored = store.find_by_applicant_id(applicant.applicant_id)
    assert stored.step2_completed is False
    assert stored.current_step == 2


def test_status_payload_shape(tracker: ApplicationStateTracker, applicant: Applicant) -> None:
    tracker.save_draft(applicant, {"firstName": "Ana"})
    payload = tracker.status(applicant).model_dump(by_alias=True)

    for key in (
        "exists",
        "currentStep",
        "step1Completed",
        "step2Completed",
        "step3Completed",
        "step4Completed",
        "acceptanceLetterGeneratedAt",
        "invoiceDateRange",
        "invoiceStatus",
        "scholarshipPercentage",
        "invoiceApprovedAt",
    ):
        assert key in payload


# -- step 1 ---------------------------------------------------------------------


def test_save_draft_creates_record_and_ignores_workflow_fields(
    tracker: ApplicationStateTracker, applicant: Applicant
) -> None:
    record = tracker.save_draft(
        applicant,
        {
            "firstName": "Ana",
            "email": "someone@else.com",
            "step1Completed": True,
            "currentStep": 4,
            "invoiceStatus": "approved",
            "scholarship_percentage": 100,
        },
    )

    assert record.first_name == "Ana"
    assert record.email == "ana@example.com"
    assert record.is_draft is True
    assert record.last_saved_at == NOW
    assert record.step1_completed is False
    assert record.current_step == 1
    assert record.invoice_status is None
    assert record.scholarship_percentage is None


def test_save_draft_keeps_completion_flags(
    tracker: ApplicationStateTracker, applicant: Applicant
) -> None:
    tracker.submit_step1(applicant, COMPLETE_FORM)
    record = tracker.save_draft(applicant, {"phoneNumber": "+52 55 0000 0000"})

    assert record.step1_completed is True
    assert record.current_step == 2
    assert record.is_draft is True
    assert record.phone_number == "+52 55 0000 0000"
    assert record.first_name == "Ana"


def test_submit_step1_lists_every_missing_field(tracker: ApplicationStateTracker, applicant: Applicant) -> None:
    with pytest.raises(ValidationError) as excinfo:
        tracker.submit_step1(applicant, {"firstName": "Ana", "lastName": "   "})

    messages = excinfo.value.messages
    assert "Last name is required" in messages
    assert "First name is required" not in messages
    assert "Signature is required" in messages
    assert "Plagiarism check confirmation is required" in messages
    assert len(messages) == 13
    assert tracker.get(applicant.applicant_id) is None


@pytest.mark.parametrize("field", sorted(COMPLETE_FORM))
def test_submit_step1_blank_field_is_reported(
    tracker: ApplicationStateTracker, applicant: Applicant, field: str
) -> None:
    form = dict(COMPLETE_FORM)
    form[field] = False if field == "plagiarismCheckConfirmed" else ""

    with pytest.raises(ValidationError) as excinfo:
        tracker.submit_step1(applicant, form)
    assert len(excinfo.value.messages) == 1


def test_submit_step1_short_signature(tracker: ApplicationStateTracker, applicant: Applicant) -> None:
    with pytest.raises(ValidationError) as excinfo:
        tracker.submit_step1(applicant, {**COMPLETE_FORM, "signature": "AT"})
    assert excinfo.value.messages == ["Signature must be at least 3 characters"]


def test_submit_step1_success(tracker: ApplicationStateTracker, applicant: Applicant) -> None:
    tracker.save_draft(applicant, {"firstName": "Ana"})
    record = tracker.submit_step1(applicant, COMPLETE_FORM)

    assert record.step1_completed is True
    assert record.current_step == 2
    assert record.is_draft is False
    assert record.email == "ana@example.com"


# -- step 2 ---------------------------------------------------------------------


def test_interview_completion_never_creates_record(
    tracker: ApplicationStateTracker, store: InMemoryApplicationStore, applicant: Applicant
) -> None:
    assert tracker.mark_interview_completed(applicant.applicant_id) is None
    assert len(store) == 0


def test_interview_completion_advances_step(tracker: ApplicationStateTracker, applicant: Applicant) -> None:
    tracker.submit_step1(applicant, COMPLETE_FORM)
    record = tracker.mark_interview_completed(applicant.applicant_id)

    assert record.step2_completed is True
    assert record.current_step == 3


def test_interview_completion_after_concurrent_schedule_keeps_step(applicant: Applicant) -> None:
    store = ConcurrentWriteStore()
    tracker = make_tracker(store)
    tracker.submit_step1(applicant, COMPLETE_FORM)

    store.arm({"step3_completed": True, "current_step": 4})
    record = tracker.mark_interview_completed(applicant.applicant_id)

    assert record.step2_completed is True
    assert record.current_step == 4


def test_resubmitting_step1_after_concurrent_schedule_keeps_step(applicant: Applicant) -> None:
    store = ConcurrentWriteStore()
    tracker = make_tracker(store)
    tracker.submit_step1(applicant, COMPLETE_FORM)

    store.arm({"step3_completed": True, "current_step": 4})
    record = tracker.submit_step1(applicant, COMPLETE_FORM)

    assert record.step3_completed is True
    assert record.current_step == 4


# -- step 3 ---------------------------------------------------------------------


def test_schedule_requires_step1(tracker: ApplicationStateTracker, applicant: Applicant) -> None:
    tracker.save_draft(applicant, {"firstName": "Ana"})
    with pytest.raises(StateConflictError):
        tracker.schedule_screening(applicant, date_time=FUTURE)


def test_strict_mode_requires_interview(store: InMemoryApplicationStore, applicant: Applicant) -> None:
    tracker = make_tracker(store, config=TrackerConfig(strict_mode=True))
    tracker.submit_step1(applicant, COMPLETE_FORM)

    with pytest.raises(StateConflictError):
        tracker.schedule_screening(applicant, date_time=FUTURE)

    interviewed = applicant.model_copy(update={"interview_completed": True})
    result = tracker.schedule_screening(interviewed, date_time=FUTURE)
    assert result.record.step3_completed is True


@pytest.mark.parametrize("date_time", [None, "", "2026-10-01T10:00:00Z", "not a date"])
def test_schedule_requires_future_datetime(
    tracker: ApplicationStateTracker, applicant: Applicant, date_time: Any
) -> None:
    tracker.submit_step1(applicant, COMPLETE_FORM)
    with pytest.raises(ValidationError):
        tracker.schedule_screening(applicant, date_time=date_time)


def test_schedule_success_stores_both_results(tracker: ApplicationStateTracker, applicant: Applicant) -> None:
    tracker.submit_step1(applicant, COMPLETE_FORM)
    result = tracker.schedule_screening(applicant, date_time=FUTURE, additional_notes="Prefers mornings")

    assert result.warnings == []
    assert result.message == "Screening interview scheduled successfully"
    assert result.record.step3_completed is True
    assert result.record.current_step == 4
    meeting = result.record.scheduled_meeting
    assert meeting.zoom_meeting["id"] == 991
    assert meeting.google_calendar_event["id"] == "evt-1"
    assert meeting.additional_notes == "Prefers mornings"
    assert meeting.timezone == "UTC"


def test_calendar_failure_is_a_warning(store: InMemoryApplicationStore, applicant: Applicant) -> None:
    video = StubScheduler({"id": 5, "join_url": "https://zoom.example/j/5"})
    calendar = StubScheduler(error=TimeoutError("calendar timed out"))
    tracker = make_tracker(store, video_scheduler=video, calendar_scheduler=calendar)
    tracker.submit_step1(applicant, COMPLETE_FORM)

    result = tracker.schedule_screening(applicant, date_time=FUTURE)

    assert result.warnings
    assert result.meeting.zoom_meeting == {"id": 5, "join_url": "https://zoom.example/j/5"}
    assert result.meeting.google_calendar_event is None
    assert result.record.step3_completed is True
    assert calendar.specs[0].location == "https://zoom.example/j/5"


def test_video_failure_does_not_block_calendar(store: InMemoryApplicationStore, applicant: Applicant) -> None:
    video = StubScheduler(error=RuntimeError("zoom down"))
    calendar = StubScheduler({"id": "evt-9"})
    tracker = make_tracker(store, video_scheduler=video, calendar_scheduler=calendar)
    tracker.submit_step1(applicant, COMPLETE_FORM)

    result = tracker.schedule_screening(applicant, date_time=FUTURE, timezone="Asia/Tokyo")

    assert len(result.warnings) == 1
    assert result.meeting.zoom_meeting is None
    assert result.meeting.google_calendar_event == {"id": "evt-9"}
    spec = calendar.specs[0]
    assert spec.location == "Online"
    assert spec.timezone == "Asia/Tokyo"
    assert spec.topic == "Screening Interview - Ana Torres"
    assert spec.duration_minutes == 30
    assert spec.attendees == ["ana@example.com"]


def test_missing_schedulers_still_schedule(store: InMemoryApplicationStore, applicant: Applicant) -> None:
    tracker = make_tracker(store)
    tracker.submit_step1(applicant, COMPLETE_FORM)

    result = tracker.schedule_screening(applicant, date_time=FUTURE)

    assert len(result.warnings) == 2
    assert result.message.startswith("Screening interview scheduled with warnings")
    assert result.record.current_step == 4


# -- step 4 ---------------------------------------------------------------------


def test_letter_requires_record(tracker: ApplicationStateTracker, applicant: Applicant) -> None:
    with pytest.raises(NotFoundError):
        tracker.download_acceptance_letter(applicant)


def test_letter_requires_generation(tracker: ApplicationStateTracker, applicant: Applicant) -> None:
    tracker.submit_step1(applicant, COMPLETE_FORM)
    with pytest.raises(StateConflictError):
        tracker.download_acceptance_letter(applicant)


def test_letter_download_is_idempotent(
    tracker: ApplicationStateTracker, store: InMemoryApplicationStore, applicant: Applicant
) -> None:
    tracker.submit_step1(applicant, COMPLETE_FORM)
    tracker.schedule_screening(applicant, date_time=FUTURE)
    grant_letter(store, applicant.applicant_id)

    first = tracker.download_acceptance_letter(applicant)
    after_first = store.find_by_applicant_id(applicant.applicant_id)
    second = tracker.download_acceptance_letter(applicant)
    after_second = store.find_by_applicant_id(applicant.applicant_id)

    assert first.filename == "Acceptance_Letter_Ana_Torres.pdf"
    assert first.content == b"%PDF-1.7"
    assert second.filename == first.filename
    for record in (after_first, after_second):
        assert record.step4_completed is True
        assert record.current_step == 4


def test_letter_uses_program_variant(
    tracker: ApplicationStateTracker, store: InMemoryApplicationStore, applicant: Applicant
) -> None:
    tracker.submit_step1(applicant, COMPLETE_FORM)
    store.upsert(
        applicant.applicant_id,
        {"acceptance_letter_generated_at": NOW, "acceptance_letter_program_type": "FIJSE"},
    )

    document = tracker.download_acceptance_letter(applicant)

    assert document.filename == "Acceptance_Letter_FIJSE_Ana_Torres.pdf"
    assert document.context["registrationCode"] == "MIRI-2026-01-123"


def test_renderer_failure_leaves_step4_open(store: InMemoryApplicationStore, applicant: Applicant) -> None:
    tracker = make_tracker(store, renderer=StubRenderer(error=OSError("disk full")))
    tracker.submit_step1(applicant, COMPLETE_FORM)
    grant_letter(store, applicant.applicant_id)

    with pytest.raises(CollaboratorError) as excinfo:
        tracker.download_acceptance_letter(applicant)

    assert excinfo.value.collaborator == "renderer"
    assert store.find_by_applicant_id(applicant.applicant_id).step4_completed is False


def test_invoice_dates_require_step4(tracker: ApplicationStateTracker, applicant: Applicant) -> None:
    with pytest.raises(NotFoundError):
        tracker.confirm_invoice_dates(applicant, "2027-01-04", "2027-03-01")
    tracker.submit_step1(applicant, COMPLETE_FORM)
    with pytest.raises(StateConflictError):
        tracker.confirm_invoice_dates(applicant, "2027-01-04", "2027-03-01")


@pytest.mark.parametrize(
    ("start", "end"),
    [("2027-03-01", "2027-01-04"), ("2027-01-04", "2027-01-04"), (None, "2027-01-04"), ("soon", "later")],
)
def test_invoice_dates_must_be_ordered(
    tracker: ApplicationStateTracker, store: InMemoryApplicationStore, applicant: Applicant, start: Any, end: Any
) -> None:
    reach_step4(tracker, store, applicant)
    with pytest.raises(ValidationError):
        tracker.confirm_invoice_dates(applicant, start, end)


def test_confirm_invoice_dates_resets_approval(
    tracker: ApplicationStateTracker, store: InMemoryApplicationStore, applicant: Applicant
) -> None:
    reach_step4(tracker, store, applicant)
    store.upsert(applicant.applicant_id, {"invoice_status": "rejected", "scholarship_percentage": 20})

    record = tracker.confirm_invoice_dates(applicant, "2027-01-04", "2027-03-01")

    assert record.invoice_status == "pending"
    assert record.scholarship_percentage is None
    assert record.invoice_approved_at is None
    assert record.invoice_date_range.is_complete


def test_approved_invoice_dates_are_locked(
    tracker: ApplicationStateTracker, store: InMemoryApplicationStore, applicant: Applicant
) -> None:
    reach_step4(tracker, store, applicant)
    tracker.confirm_invoice_dates(applicant, "2027-01-04", "2027-03-01")
    store.upsert(applicant.applicant_id, {"invoice_status": "approved", "invoice_approved_at": NOW})

    with pytest.raises(StateConflictError):
        tracker.confirm_invoice_dates(applicant, "2027-01-11", "2027-03-01")


def test_invoice_requires_approval(
    tracker: ApplicationStateTracker, store: InMemoryApplicationStore, applicant: Applicant
) -> None:
    reach_step4(tracker, store, applicant)
    tracker.confirm_invoice_dates(applicant, "2027-01-04", "2027-03-01")

    with pytest.raises(StateConflictError):
        tracker.download_invoice(applicant)


def test_download_invoice(
    tracker: ApplicationStateTracker, store: InMemoryApplicationStore, applicant: Applicant
) -> None:
    reach_step4(tracker, store, applicant)
    tracker.confirm_invoice_dates(applicant, "2027-01-04", "2027-03-01")
    store.upsert(
        applicant.applicant_id,
        {"invoice_status": "approved", "scholarship_percentage": 15, "invoice_approved_at": NOW},
    )

    document = tracker.download_invoice(applicant)

    assert document.kind == "invoice"
    assert document.filename == "MIRI_Invoice_Ana_Torres.pdf"
    assert document.content == b"%PDF-1.7"
    assert document.context["invoiceNumber"] == "MIRI-2026-000123"
    assert document.context["breakdown"]["weeks"] == 8
    assert document.context["breakdown"]["total"] == 2244.00
    assert document.context["registrationFee"] == 250
    assert tracker.invoice_breakdown(applicant).total == 2244.00


def test_invoice_number_prefers_digital_id(
    tracker: ApplicationStateTracker, store: InMemoryApplicationStore, applicant: Applicant
) -> None:
    reach_step4(tracker, store, applicant)
    tracker.confirm_invoice_dates(applicant, "2027-01-04", "2027-02-15")
    store.upsert(applicant.applicant_id, {"invoice_status": "approved"})
    with_id = applicant.model_copy(update={"digital_id": "MIRI 2026 07"})

    document = tracker.download_invoice(with_id)

    assert document.context["invoiceNumber"] == "Invoice_MIRI-2026-07"
    assert document.context["breakdown"]["total"] == 2310.00


# -- invariants -----------------------------------------------------------------


def test_current_step_never_decreases(
    tracker: ApplicationStateTracker, store: InMemoryApplicationStore, applicant: Applicant
) -> None:
    steps: list[int] = []

    def observe() -> None:
        steps.append(store.find_by_applicant_id(applicant.applicant_id).current_step)

    tracker.save_draft(applicant, {"firstName": "Ana"})
    observe()
    tracker.submit_step1(applicant, COMPLETE_FORM)
    observe()
    tracker.mark_interview_completed(applicant.applicant_id)
    observe()
    tracker.schedule_screening(applicant, date_time=FUTURE)
    observe()
    tracker.save_draft(applicant, {"currentStep": 1})
    observe()
    tracker.submit_step1(applicant, COMPLETE_FORM)
    observe()
    grant_letter(store, applicant.applicant_id)
    tracker.download_acceptance_letter(applicant)
    observe()
    tracker.mark_interview_completed(applicant.applicant_id)
    observe()

    assert steps == sorted(steps)
    assert steps[-1] == 4


def test_persistence_failure_is_collaborator_error(applicant: Applicant) -> None:
    tracker = make_tracker(BrokenStore())

    with pytest.raises(CollaboratorError) as excinfo:
        tracker.status(applicant)
    assert excinfo.value.collaborator == "persistence"

    with pytest.raises(CollaboratorError):
        tracker.save_draft(applicant, {"firstName": "Ana"})
