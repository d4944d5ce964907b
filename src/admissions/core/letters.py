"""Acceptance letter composition for every program variant."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Any

import pendulum

from .invoice import InvoiceConfig, ScholarshipInvoiceCalculator

REGISTRATION_LINK = "https://www.mirai-innovation-lab.com/miri-program-registration-form"
INSTITUTE = "Mirai Innovation Research Institute"
PROGRAM = "Mirai Innovation Research Immersion Program (MIRI)"


class ProgramVariant(str, enum.Enum):
    MIRI = "MIRI"
    FIJSE = "FIJSE"


@dataclass(frozen=True, slots=True)
class VariantFragments:
    """Text and values that differ between letter variants."""

    filename_prefix: str
    subject: str
    opening: tuple[str, ...]
    scholarship_percentage: float | None = None
    shows_fee_table: bool = False


@dataclass(slots=True)
class AcceptanceLetter:
    variant: ProgramVariant
    filename: str
    issued_on: str
    subject: str
    salutation: str
    paragraphs: list[str]
    fee_lines: list[str] = field(default_factory=list)
    registration_code: str = ""
    registration_link: str = REGISTRATION_LINK
    closing: tuple[str, str] = ("Evaluation Committee", INSTITUTE)

    def to_payload(self) -> dict[str, Any]:
        return {
            "variant": self.variant.value,
            "filename": self.filename,
            "issuedOn": self.issued_on,
            "subject": self.subject,
            "salutation": self.salutation,
            "paragraphs": list(self.paragraphs),
            "feeLines": list(self.fee_lines),
            "registrationCode": self.registration_code,
            "registrationLink": self.registration_link,
            "closing": list(self.closing),
        }


def _fragments(variant: ProgramVariant, year: int) -> VariantFragments:
    if variant is ProgramVariant.FIJSE:
        return VariantFragments(
            filename_prefix="Acceptance_Letter_FIJSE_",
            subject=f"Subject: Official Acceptance Letter for the {PROGRAM} {year}",
            opening=(
                "Thank you for your participation in the Future Innovators Japan Selection Entry. "
                "We truly appreciate the time, effort, and commitment you demonstrated throughout the process.",
                f"On behalf of the evaluation committee of the {PROGRAM} {year} at the {INSTITUTE}, "
                "we are pleased to extend this official acceptance letter inviting you to participate in our "
                "short-term academic immersion program in Osaka, Japan, for a duration of 4 to 12 weeks.",
                "Although you were not selected as the recipient of the Full Scholarship in the Future Innovators "
                "Japan Selection Entry, we would like to express our recognition of your strong academic potential, "
                "talent, and performance throughout the evaluation process. Based on your profile and demonstrated "
                "capabilities, we are pleased to offer you this opportunity to join the MIRI program with a "
                "partial tuition scholarship of 15%.",
            ),
            scholarship_percentage=15.0,
            shows_fee_table=True,
        )
    return VariantFragments(
        filename_prefix="Acceptance_Letter_",
        subject=f"Subject: Official Final Decision for {PROGRAM} {year}",
        opening=(
            f"On behalf of the evaluation committee of the {PROGRAM} {year} at the {INSTITUTE}, "
            "it is a great pleasure to inform you that you have been accepted to participate in our "
            "short-term academic immersion program in Osaka, Japan, for a duration of 4 to 12 weeks.",
        ),
    )


def format_long_date(value: pendulum.DateTime) -> str:
    """``October 17th, 2026``."""
    return value.format("MMMM Do, YYYY")


def build_registration_code(applicant_id: str, digital_id: str | None, year: int) -> str:
    if digital_id:
        return digital_id
    return f"MIRI-{year}-01-{str(applicant_id)[-3:].zfill(3)}"


def compose_acceptance_letter(
    variant: ProgramVariant | str,
    *,
    full_name: str,
    registration_code: str,
    issued_on: pendulum.DateTime | None = None,
    invoice_config: InvoiceConfig | None = None,
) -> AcceptanceLetter:
    """Build the letter body shared by all variants plus the variant fragments."""
    variant = ProgramVariant(variant)
    issued_on = issued_on or pendulum.now()
    year = issued_on.year
    fragments = _fragments(variant, year)
    fees = invoice_config or InvoiceConfig()

    paragraphs = list(fragments.opening)
    paragraphs.append(
        f"Your acceptance is valid for the year {year}. The exact starting date is flexible, allowing you "
        "to select the period that best fits your academic or professional schedule."
    )

    fee_lines: list[str] = []
    if fragments.shows_fee_table and fragments.scholarship_percentage is not None:
        pct = fragments.scholarship_percentage
        standard, extended = ScholarshipInvoiceCalculator(config=fees).discounted_rates(pct)
        fee_lines = [
            f"USD {fees.standard_rate:.2f} per week for programs lasting 4–{fees.extended_min_weeks - 1} weeks",
            f"USD {fees.extended_rate:.2f} per week for programs lasting "
            f"{fees.extended_min_weeks}–{fees.extended_max_weeks} weeks",
            f"With your {pct:g}% tuition scholarship: USD {standard:.2f} per week (4–{fees.extended_min_weeks - 1} weeks)",
            f"With your {pct:g}% tuition scholarship: USD {extended:.2f} per week "
            f"({fees.extended_min_weeks}–{fees.extended_max_weeks} weeks)",
        ]
        paragraphs.append(
            f"The {pct:g}% scholarship applies only to tuition fees and does not apply to the program "
            f"registration fee of USD {fees.registration_fee:g}."
        )

    paragraphs.extend(
        [
            "To confirm your participation, please complete your registration within 1 week after "
            "receiving this acceptance letter using the registration code and link below.",
            "After completing your registration, you will receive detailed information regarding the "
            "program venue, logistics, and preparation guidelines.",
            "If you have any questions or require further assistance, please feel free to contact us.",
        ]
    )

    safe_name = re.sub(r"\s+", "_", full_name.strip())
    return AcceptanceLetter(
        variant=variant,
        filename=f"{fragments.filename_prefix}{safe_name}.pdf",
        issued_on=format_long_date(issued_on),
        subject=fragments.subject,
        salutation=f"Dear {full_name},",
        paragraphs=paragraphs,
        fee_lines=fee_lines,
        registration_code=registration_code,
    )


__all__ = [
    "AcceptanceLetter",
    "ProgramVariant",
    "compose_acceptance_letter",
    "format_long_date",
    "build_registration_code",
]
