"""Tuition invoice computation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

import pendulum

from ..schemas import InvoiceBreakdown

_SECONDS_PER_DAY = 86_400


@dataclass
class InvoiceConfig:
    """Tuition tiers, tax and registration fee (USD)."""

    standard_rate: float = 350.0
    extended_rate: float = 300.0
    extended_min_weeks: int = 7
    extended_max_weeks: int = 12
    tax_rate: float = 0.10
    registration_fee: float = 250.0


def round2(value: float) -> float:
    """Round half up to cents."""
    return math.floor(value * 100 + 0.5) / 100


def to_datetime(value: Any) -> pendulum.DateTime | None:
    if value is None or value == "":
        return None
    if isinstance(value, pendulum.DateTime):
        return value
    if isinstance(value, datetime):
        return pendulum.instance(value)
    if isinstance(value, date):
        return pendulum.datetime(value.year, value.month, value.day)
    parsed = pendulum.parse(str(value))
    if isinstance(parsed, pendulum.DateTime):
        return parsed
    if isinstance(parsed, pendulum.Date):
        return pendulum.datetime(parsed.year, parsed.month, parsed.day)
    raise ValueError(f"Not a date: {value!r}")


class ScholarshipInvoiceCalculator:
    """Weeks, tier rate, scholarship discount, tax and total for a stay."""

    def __init__(self, *, config: InvoiceConfig | None = None) -> None:
        self._config = config or InvoiceConfig()

    @property
    def config(self) -> InvoiceConfig:
        return self._config

    def weeks_between(self, start: Any, end: Any) -> int:
        """Started weeks over the calendar-day difference; a partial week counts as a full one."""
        start_dt = to_datetime(start)
        end_dt = to_datetime(end)
        if start_dt is None or end_dt is None:
            return 0
        days = math.ceil((end_dt - start_dt).total_seconds() / _SECONDS_PER_DAY)
        return max(0, math.ceil(days / 7))

    def tuition_per_week(self, weeks: int) -> float:
        if self._config.extended_min_weeks <= weeks <= self._config.extended_max_weeks:
            return self._config.extended_rate
        return self._config.standard_rate

    def compute_invoice(self, start: Any, end: Any, scholarship_percentage: float | None = 0) -> InvoiceBreakdown:
        return self.breakdown_for_weeks(self.weeks_between(start, end), scholarship_percentage)

    def breakdown_for_weeks(self, weeks: int, scholarship_percentage: float | None = 0) -> InvoiceBreakdown:
        percentage = float(scholarship_percentage or 0)
        if weeks <= 0:
            return InvoiceBreakdown(
                weeks=0,
                tuition_per_week=0.0,
                tuition_before_scholarship=0.0,
                scholarship_percentage=percentage,
                scholarship_discount=0.0,
                tuition_after_scholarship=0.0,
                subtotal=0.0,
                tax=0.0,
                total=0.0,
                registration_fee=self._config.registration_fee,
            )

        tuition_per_week = self.tuition_per_week(weeks)
        before = weeks * tuition_per_week
        discount = before * (percentage / 100)
        subtotal = before - discount
        tax = round2(subtotal * self._config.tax_rate)
        total = round2(subtotal + tax)

        return InvoiceBreakdown(
            weeks=weeks,
            tuition_per_week=tuition_per_week,
            tuition_before_scholarship=before,
            scholarship_percentage=percentage,
            scholarship_discount=discount,
            tuition_after_scholarship=subtotal,
            subtotal=subtotal,
            tax=tax,
            total=total,
            registration_fee=self._config.registration_fee,
        )

    def discounted_rates(self, scholarship_percentage: float) -> tuple[float, float]:
        """Weekly (standard, extended) rates after a tuition scholarship."""
        factor = 1 - scholarship_percentage / 100
        return (
            round2(self._config.standard_rate * factor),
            round2(self._config.extended_rate * factor),
        )


__all__ = [
    "InvoiceConfig",
    "ScholarshipInvoiceCalculator",
    "round2",
    "to_datetime",
]
