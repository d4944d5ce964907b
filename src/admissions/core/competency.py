"""Survey scoring against fixed question-index and level-band tables."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal, Mapping

from ..config import INSTRUMENTS_DIR, ConfigManager

Scheme = Literal["sum", "max_rating_count"]

SOFT_SKILLS = "soft_skills"
MULTIPLE_INTELLIGENCES = "multiple_intelligences"

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


class InstrumentTableError(ValueError):
    """Raised when an instrument table file is inconsistent."""


@dataclass(frozen=True, slots=True)
class LevelBand:
    lower: int
    upper: int
    label: str

    def contains(self, score: int) -> bool:
        return self.lower <= score <= self.upper


@dataclass(frozen=True, slots=True)
class LevelTable:
    """Ordered, contiguous, non-overlapping score bands."""

    bands: tuple[LevelBand, ...]

    def __post_init__(self) -> None:
        if not self.bands:
            raise InstrumentTableError("Level table must declare at least one band.")
        previous: LevelBand | None = None
        for band in self.bands:
            if band.lower > band.upper:
                raise InstrumentTableError(
                    f"Band {band.label!r} has lower bound above upper bound."
                )
            if previous is not None and band.lower != previous.upper + 1:
                raise InstrumentTableError(
                    f"Bands {previous.label!r} and {band.label!r} are not contiguous."
                )
            previous = band

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(band.label for band in self.bands)

    @property
    def domain(self) -> tuple[int, int]:
        return self.bands[0].lower, self.bands[-1].upper

    def level_for(self, score: int) -> str:
        """First band containing ``score``; scores outside the domain get the lowest level."""
        for band in self.bands:
            if band.contains(score):
                return band.label
        return self.bands[0].label

    @classmethod
    def from_rows(cls, rows: Any) -> "LevelTable":
        try:
            bands = tuple(LevelBand(int(lower), int(upper), str(label)) for lower, upper, label in rows)
        except (TypeError, ValueError) as exc:
            raise InstrumentTableError(f"Malformed level table rows: {rows!r}") from exc
        return cls(bands)


@dataclass(frozen=True, slots=True)
class Facet:
    name: str
    questions: tuple[int, ...]


@dataclass(frozen=True, slots=True)
class Competency:
    name: str
    facets: tuple[Facet, ...]
    levels: LevelTable

    @property
    def questions(self) -> tuple[int, ...]:
        return tuple(q for facet in self.facets for q in facet.questions)


@dataclass(frozen=True, slots=True)
class Instrument:
    """Immutable definition of a survey instrument."""

    name: str
    version: int
    scheme: Scheme
    competencies: tuple[Competency, ...]
    overall: LevelTable | None = None
    max_rating: int = 5
    points_per_answer: int = 5

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Instrument":
        scheme = data.get("scheme")
        if scheme not in ("sum", "max_rating_count"):
            raise InstrumentTableError(f"Unknown scoring scheme: {scheme!r}")

        tables = {
            name: LevelTable.from_rows(rows)
            for name, rows in (data.get("level_tables") or {}).items()
        }
        competencies: list[Competency] = []
        seen_questions: set[int] = set()
        for entry in data.get("competencies") or []:
            table_name = entry.get("levels")
            if table_name not in tables:
                raise InstrumentTableError(
                    f"Competency {entry.get('name')!r} references unknown level table {table_name!r}."
                )
            facets = tuple(
                Facet(str(facet["name"]), tuple(int(q) for q in facet["questions"]))
                for facet in entry.get("facets") or []
            )
            for facet in facets:
                overlap = seen_questions.intersection(facet.questions)
                if overlap:
                    raise InstrumentTableError(
                        f"Questions {sorted(overlap)} are assigned to more than one facet."
                    )
                seen_questions.update(facet.questions)
            competencies.append(Competency(str(entry["name"]), facets, tables[table_name]))

        if not competencies:
            raise InstrumentTableError(f"Instrument {data.get('name')!r} has no competencies.")

        overall_rows = data.get("overall")
        return cls(
            name=str(data["name"]),
            version=int(data.get("version", 1)),
            scheme=scheme,
            competencies=tuple(competencies),
            overall=LevelTable.from_rows(overall_rows) if overall_rows else None,
            max_rating=int(data.get("max_rating", 5)),
            points_per_answer=int(data.get("points_per_answer", 5)),
        )


@dataclass(slots=True)
class CompetencyResult:
    score: int
    level: str
    facets: dict[str, int] = field(default_factory=dict)


@dataclass(slots=True)
class InstrumentScore:
    instrument: str
    per_competency: dict[str, CompetencyResult]
    total: int
    overall_level: str | None

    def to_payload(self) -> dict[str, Any]:
        return {
            "instrument": self.instrument,
            "results": {
                name: {"score": result.score, "level": result.level, "facets": dict(result.facets)}
                for name, result in self.per_competency.items()
            },
            "totalScore": self.total,
            "overallLevel": self.overall_level,
        }


def load_instruments(manager: ConfigManager | None = None) -> Mapping[str, Instrument]:
    """Load and validate every instrument table shipped with the package."""
    manager = manager or ConfigManager(INSTRUMENTS_DIR)
    instruments = {}
    for name in manager.available():
        instrument = Instrument.from_mapping(manager.load(name))
        instruments[instrument.name] = instrument
    return MappingProxyType(instruments)


class CompetencyScoringEngine:
    """Score raw survey answers per competency and assign qualitative levels."""

    def __init__(self, instruments: Mapping[str, Instrument] | None = None) -> None:
        self._instruments = instruments if instruments is not None else load_instruments()

    @property
    def instruments(self) -> tuple[str, ...]:
        return tuple(self._instruments)

    def score(self, instrument: str, responses: Mapping[Any, Any]) -> InstrumentScore:
        try:
            definition = self._instruments[instrument]
        except KeyError as exc:
            raise KeyError(f"Unknown instrument: {instrument!r}") from exc

        responses = responses or {}
        if definition.scheme == "sum":
            return self._score_sum(definition, responses)
        return self._score_max_rating(definition, responses)

    def _score_sum(self, definition: Instrument, responses: Mapping[Any, Any]) -> InstrumentScore:
        per_competency: dict[str, CompetencyResult] = {}
        total = 0
        for competency in definition.competencies:
            facets = {
                facet.name: sum(_as_int(_response(responses, q)) for q in facet.questions)
                for facet in competency.facets
            }
            score = sum(facets.values())
            per_competency[competency.name] = CompetencyResult(
                score=score,
                level=competency.levels.level_for(score),
                facets=facets,
            )
            total += score

        overall = definition.overall.level_for(total) if definition.overall else None
        return InstrumentScore(definition.name, per_competency, total, overall)

    def _score_max_rating(self, definition: Instrument, responses: Mapping[Any, Any]) -> InstrumentScore:
        per_competency: dict[str, CompetencyResult] = {}
        total = 0
        for competency in definition.competencies:
            qualifying = sum(
                1
                for q in competency.questions
                if _is_rating(_response(responses, q), definition.max_rating)
            )
            score = qualifying * definition.points_per_answer
            per_competency[competency.name] = CompetencyResult(
                score=score,
                level=competency.levels.level_for(qualifying),
            )
            total += score

        overall = definition.overall.level_for(total) if definition.overall else None
        return InstrumentScore(definition.name, per_competency, total, overall)


def _response(responses: Mapping[Any, Any], question: int) -> Any:
    value = responses.get(question)
    if value is None:
        value = responses.get(str(question))
    return value


def _as_int(value: Any) -> int:
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = _LEADING_INT_RE.match(str(value))
    return int(match.group(1)) if match else 0


def _is_rating(value: Any, rating: int) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value == rating
    return isinstance(value, str) and value == str(rating)


__all__ = [
    "SOFT_SKILLS",
    "MULTIPLE_INTELLIGENCES",
    "InstrumentTableError",
    "LevelBand",
    "LevelTable",
    "Facet",
    "Competency",
    "Instrument",
    "CompetencyResult",
    "InstrumentScore",
    "CompetencyScoringEngine",
    "load_instruments",
]
