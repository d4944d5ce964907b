"""Error taxonomy shared by every admissions component."""

from __future__ import annotations

from typing import Iterable


class AdmissionsError(Exception):
    """Base class for errors surfaced to callers of the core."""


class ValidationError(AdmissionsError):
    """Caller input is malformed or incomplete.

    Carries every detail message, not only the first one found.
    """

    def __init__(self, messages: Iterable[str] | str):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__("Validation failed")

    def __str__(self) -> str:
        return f"Validation failed: {'; '.join(self.messages)}"


class NotFoundError(AdmissionsError):
    """A required applicant, record or resource does not exist."""


class StateConflictError(AdmissionsError):
    """A workflow gate is not satisfied."""


class CollaboratorError(AdmissionsError):
    """An external collaborator failed, timed out or answered malformed content."""

    def __init__(self, collaborator: str, message: str):
        self.collaborator = collaborator
        self.message = message
        super().__init__(f"{collaborator}: {message}")


__all__ = [
    "AdmissionsError",
    "ValidationError",
    "NotFoundError",
    "StateConflictError",
    "CollaboratorError",
]
