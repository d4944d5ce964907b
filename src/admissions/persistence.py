"""In-process application store honouring the persistence contract."""

from __future__ import annotations

import threading
from typing import Any

from .schemas import ApplicationRecord


class InMemoryApplicationStore:
    """Dictionary-backed store with atomic find-and-update-or-create."""

    def __init__(self) -> None:
        self._records: dict[str, ApplicationRecord] = {}
        self._lock = threading.Lock()

    def find_by_applicant_id(self, applicant_id: str) -> ApplicationRecord | None:
        with self._lock:
            record = self._records.get(applicant_id)
            return record.model_copy(deep=True) if record else None

    def exists(self, applicant_id: str) -> bool:
        with self._lock:
            return applicant_id in self._records

    def upsert(self, applicant_id: str, patch: dict[str, Any]) -> ApplicationRecord:
        with self._lock:
            current = self._records.get(applicant_id)
            base = current.model_dump() if current else {}
            merged = {**base, **patch, "applicant_id": applicant_id}
            if current is not None and isinstance(patch.get("current_step"), int):
                # The step only moves forward, whatever the caller read before writing.
                merged["current_step"] = max(current.current_step, patch["current_step"])
            record = ApplicationRecord.model_validate(merged)
            self._records[applicant_id] = record
            return record.model_copy(deep=True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


__all__ = ["InMemoryApplicationStore"]
