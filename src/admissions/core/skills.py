"""Canonicalization of free-text skill labels."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

DEFAULT_CANONICAL_NAMES: dict[str, str] = {
    # programming languages
    "js": "JavaScript",
    "ts": "TypeScript",
    "c++": "C++",
    "c#": "C#",
    ".net": ".NET",
    "ai/ml": "Machine Learning",
    "ml": "Machine Learning",
    "ai": "Artificial Intelligence",
    "ros": "ROS (Robot Operating System)",
    # soft skills
    "team work": "Teamwork",
    "team-work": "Teamwork",
    "project management": "Project Management",
    "time management": "Time Management",
    "problem solving": "Problem Solving",
    "critical thinking": "Critical Thinking",
    "communication skills": "Communication",
    "public speaking": "Public Speaking",
    # technical skills
    "cad": "CAD",
    "solidworks": "SolidWorks",
    "fusion 360": "Fusion 360",
    "web development": "Web Development",
    "mobile development": "Mobile Development",
}

DEFAULT_HARD_SKILL_KEYWORDS: tuple[str, ...] = (
    "python",
    "javascript",
    "java",
    "c++",
    "c#",
    "react",
    "node",
    "sql",
    "mongodb",
    "aws",
    "docker",
    "kubernetes",
    "git",
    "linux",
    "cad",
    "solidworks",
    "tensorflow",
    "machine learning",
    "artificial intelligence",
    "ros",
    "robotics",
    "programming",
    "development",
    "design",
    "engineering",
    "data",
    "analytics",
    "cloud",
    "devops",
)

_MARKUP_RE = re.compile(r"\*\*")
_BULLET_RE = re.compile(r"^[-•*]+\s*")
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass
class SkillNormalizerConfig:
    """Lookup tables and length bounds for skill canonicalization."""

    canonical_names: Mapping[str, str] = field(
        default_factory=lambda: dict(DEFAULT_CANONICAL_NAMES)
    )
    hard_skill_keywords: tuple[str, ...] = DEFAULT_HARD_SKILL_KEYWORDS
    min_length: int = 2
    max_length: int = 50


class SkillNormalizer:
    """Turn raw labels into an ordered, deduplicated list of canonical skills."""

    def __init__(self, *, config: SkillNormalizerConfig | None = None) -> None:
        self._config = config or SkillNormalizerConfig()

    def normalize(self, raw_labels: Iterable[Any]) -> list[str]:
        """Return canonical skills, hard skills first, each group alphabetical.

        Invalid labels are dropped; this never raises.
        """
        skills: list[str] = []
        seen: set[str] = set()
        for raw in raw_labels or ():
            name = self.canonicalize(raw)
            if name is None:
                continue
            key = name.casefold()
            if key in seen:
                continue
            seen.add(key)
            skills.append(name)
        return self.order(skills)

    def canonicalize(self, raw: Any) -> str | None:
        if not isinstance(raw, str):
            return None
        cleaned = raw.strip()
        cleaned = _MARKUP_RE.sub("", cleaned)
        cleaned = _BULLET_RE.sub("", cleaned)
        cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()

        canonical = self._config.canonical_names.get(cleaned.lower())
        name = canonical if canonical is not None else _title_case(cleaned)

        if not self._config.min_length <= len(name) <= self._config.max_length:
            return None
        return name

    def is_hard_skill(self, name: str) -> bool:
        lowered = name.lower()
        return any(keyword in lowered for keyword in self._config.hard_skill_keywords)

    def order(self, skills: list[str]) -> list[str]:
        return sorted(skills, key=lambda name: (not self.is_hard_skill(name), name.casefold()))


def _title_case(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in text.split(" "))


__all__ = ["SkillNormalizer", "SkillNormalizerConfig"]
