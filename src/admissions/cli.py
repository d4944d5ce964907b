"""Typer CLI entrypoint for the admissions core."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Optional

import typer
import yaml
from pydantic import ValidationError as PydanticValidationError

from .container import AdmissionsContainer, create_container
from .errors import AdmissionsError
from .logging import configure_logging
from .pipeline import AuditLogger
from .schemas import Applicant
from .schemas.config import load_config

app = typer.Typer(help="Admission workflow tooling.")


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


def _container(ctx: typer.Context) -> AdmissionsContainer:
    return ctx.obj["container"]


@app.callback()
def main_options(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    log_level: str = typer.Option("WARNING", help="Log level for structured logging."),
    log_json: bool = typer.Option(True, "--log-json/--log-console", help="Render log events as JSON or console text."),
) -> None:
    """Load configuration and wire the container shared by every command."""
    settings: dict[str, Any] = {}
    if config:
        with config.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle) or {}
        try:
            settings = load_config(loaded).to_settings()
        except PydanticValidationError as exc:
            raise typer.BadParameter(f"Invalid config file: {exc}", param_hint="--config") from exc

    configure_logging(log_level, json_output=log_json)
    ctx.obj = {"container": create_container(settings=settings)}


@app.command()
def invoice(
    ctx: typer.Context,
    start: str = typer.Option(..., help="Program start date (ISO)."),
    end: str = typer.Option(..., help="Program end date (ISO)."),
    scholarship: float = typer.Option(0.0, min=0, max=100, help="Tuition scholarship percentage."),
) -> None:
    """Print the invoice breakdown for a stay."""
    calculator = _container(ctx).invoice_calculator()
    try:
        breakdown = calculator.compute_invoice(start, end, scholarship)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid date: {exc}") from exc
    if not breakdown.is_computable:
        typer.echo("End date must be after start date.", err=True)
        raise typer.Exit(code=1)
    _echo_json(breakdown.model_dump(by_alias=True))


@app.command("score-survey")
def score_survey(
    ctx: typer.Context,
    instrument: str = typer.Argument(..., help="Instrument name (soft_skills, multiple_intelligences)."),
    responses: Path = typer.Argument(..., exists=True, readable=True, dir_okay=False, help="Responses JSON path."),
) -> None:
    """Score a JSON object of question index to answer."""
    with responses.open("r", encoding="utf-8") as handle:
        try:
            answers = json.load(handle)
        except json.JSONDecodeError as exc:
            raise typer.BadParameter(f"Invalid responses JSON: {exc}", param_hint="RESPONSES") from exc
    if not isinstance(answers, dict):
        raise typer.BadParameter("Responses must be a JSON object", param_hint="RESPONSES")

    engine = _container(ctx).competency_engine()
    try:
        result = engine.score(instrument, answers)
    except KeyError as exc:
        raise typer.BadParameter(
            f"Unknown instrument {instrument!r}; expected one of {', '.join(engine.instruments)}",
            param_hint="INSTRUMENT",
        ) from exc
    _echo_json(result.to_payload())


@app.command("normalize-skills")
def normalize_skills(
    ctx: typer.Context,
    skills: List[str] = typer.Argument(..., help="Raw skill labels."),
) -> None:
    """Print the canonical, ordered skill list."""
    _echo_json(_container(ctx).skill_normalizer().normalize(skills))


@app.command("analyze-cv")
def analyze_cv(
    ctx: typer.Context,
    cv: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="CV PDF path."),
    applicant_id: str = typer.Option("cli", help="Applicant id recorded in the audit log."),
    audit_log: Optional[Path] = typer.Option(None, dir_okay=False, help="Audit log output (JSONL)."),
) -> None:
    """Extract, normalize and score the skills of a CV (needs an evaluator endpoint)."""
    pipeline = _container(ctx).pipeline()
    audit_logger = AuditLogger(audit_log) if audit_log else None
    try:
        analysis = pipeline.analyze_cv(
            Applicant(applicant_id=applicant_id),
            str(cv),
            audit_logger=audit_logger,
        )
    except AdmissionsError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    _echo_json(analysis.to_payload())


def main() -> None:
    app()


if __name__ == "__main__":
    main()
