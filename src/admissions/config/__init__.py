"""YAML data files shipped with the package."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

INSTRUMENTS_DIR = Path(__file__).resolve().parent.parent / "instruments"


class ConfigManager:
    """Loads named YAML mappings from one directory (instrument tables by default)."""

    def __init__(self, base_path: str | Path = INSTRUMENTS_DIR):
        self._base_path = Path(base_path)

    def path_for(self, name: str) -> Path:
        return self._base_path / f"{name}.yaml"

    def load(self, name: str) -> dict[str, Any]:
        """Load a YAML mapping by name without file extension."""
        path = self.path_for(name)
        if not path.is_file():
            raise FileNotFoundError(f"No {name!r} table under {self._base_path}")
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path.name} must contain a YAML mapping")
        return data

    def available(self) -> list[str]:
        return sorted(path.stem for path in self._base_path.glob("*.yaml"))


__all__ = ["ConfigManager", "INSTRUMENTS_DIR"]
