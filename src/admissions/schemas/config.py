"""Pydantic configuration schema for CLI YAML input."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class InvoiceSettings(BaseModel):
    standard_rate: float | None = None
    extended_rate: float | None = None
    extended_min_weeks: int | None = None
    extended_max_weeks: int | None = None
    tax_rate: float | None = None
    registration_fee: float | None = None

    model_config = ConfigDict(extra="forbid")


class TrackerSettings(BaseModel):
    strict_mode: bool | None = None
    meeting_duration_minutes: int | None = None
    default_timezone: str | None = None

    model_config = ConfigDict(extra="forbid")


class EvaluatorSettings(BaseModel):
    endpoint: str | None = None
    api_key: str | None = None
    timeout: float | None = None

    model_config = ConfigDict(extra="forbid")


class AppConfig(BaseModel):
    invoice: InvoiceSettings = Field(default_factory=InvoiceSettings)
    tracker: TrackerSettings = Field(default_factory=TrackerSettings)
    evaluator: EvaluatorSettings = Field(default_factory=EvaluatorSettings)

    def to_settings(self) -> dict[str, Any]:
        settings: dict[str, Any] = {}
        for section in ("invoice", "tracker", "evaluator"):
            values = getattr(self, section).model_dump(exclude_none=True)
            if values:
                settings[section] = values
        return settings


def load_config(raw: Any) -> AppConfig:
    if not isinstance(raw, dict):
        raise ValidationError.from_exception_data(
            "AppConfig",
            [{"type": "dict_type", "loc": ("config",), "input": raw}],
        )
    return AppConfig.model_validate(raw)
