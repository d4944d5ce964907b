from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class InvoiceBreakdown(BaseModel):
    """Tuition, scholarship and tax figures for one confirmed stay.

    ``registration_fee`` is informational and never part of ``total``.
    """

    weeks: int
    tuition_per_week: float
    tuition_before_scholarship: float
    scholarship_percentage: float
    scholarship_discount: float
    tuition_after_scholarship: float
    subtotal: float
    tax: float
    total: float
    registration_fee: float

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    @property
    def is_computable(self) -> bool:
        return self.weeks > 0
