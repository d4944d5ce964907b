"""HTTP client for the external semantic evaluator (interview and CV judge)."""

from __future__ import annotations

import json
import re
import socket
from typing import Any, Sequence
from urllib import error, request

import structlog

from .errors import CollaboratorError

CV_TEXT_LIMIT = 8000

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def parse_json_payload(text: str) -> Any:
    """Parse JSON that may be wrapped in a markdown code fence."""
    cleaned = _FENCE_RE.sub("", text.strip()).strip()
    return json.loads(cleaned) if cleaned else {}


def build_evaluation_payload(questions: Sequence[str], answers: Sequence[str]) -> dict[str, Any]:
    return {
        "task": "evaluate_answers",
        "scale": {"min": 0, "max": 100},
        "pairs": [
            {"index": idx, "question": question, "answer": answer}
            for idx, (question, answer) in enumerate(zip(questions, answers), start=1)
        ],
    }


def build_skills_payload(text: str) -> dict[str, Any]:
    truncated = text[:CV_TEXT_LIMIT]
    if len(text) > CV_TEXT_LIMIT:
        truncated += "\n[... text truncated ...]"
    return {"task": "extract_skills", "text": truncated, "max_skills": 30}


class HTTPSemanticEvaluator:
    """JSON-over-HTTP judge; every failure surfaces as CollaboratorError."""

    def __init__(self, endpoint: str, api_key: str | None = None, *, timeout: float = 30.0):
        self._endpoint = endpoint
        self._api_key = api_key
        self._timeout = timeout
        self._logger = structlog.get_logger(__name__)

    def evaluate(self, questions: Sequence[str], answers: Sequence[str]) -> list[dict[str, Any]]:
        body = self._post(build_evaluation_payload(questions, answers))
        evaluations = body.get("evaluations") if isinstance(body, dict) else None
        if not isinstance(evaluations, list):
            raise CollaboratorError("evaluator", "Response has no 'evaluations' array.")
        return evaluations

    def extract_skills(self, text: str) -> list[str]:
        body = self._post(build_skills_payload(text))
        skills = body.get("skills") if isinstance(body, dict) else None
        if not isinstance(skills, list):
            raise CollaboratorError("evaluator", "Response has no 'skills' array.")
        return [skill for skill in skills if isinstance(skill, str)]

    def generate_questions(self, skills: Sequence[str], *, count: int = 4) -> list[str]:
        body = self._post({"task": "generate_questions", "skills": list(skills), "count": count})
        questions = body.get("questions") if isinstance(body, dict) else None
        if not isinstance(questions, list):
            raise CollaboratorError("evaluator", "Response has no 'questions' array.")
        cleaned = [re.sub(r"^\d+\.\s*", "", str(q)).strip() for q in questions]
        return [q for q in cleaned if q][:count]

    def recommend(self, questions: Sequence[str], answers: Sequence[str]) -> str:
        payload = build_evaluation_payload(questions, answers)
        payload["task"] = "recommend"
        body = self._post(payload)
        text = body.get("recommendations") if isinstance(body, dict) else None
        if not isinstance(text, str):
            raise CollaboratorError("evaluator", "Response has no 'recommendations' text.")
        return text

    def _post(self, payload: dict[str, Any]) -> Any:
        data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        req = request.Request(self._endpoint, data=data, headers=headers, method="POST")
        try:
            with request.urlopen(req, timeout=self._timeout) as resp:
                body = resp.read().decode("utf-8")
        except (error.URLError, socket.timeout, TimeoutError) as exc:
            self._logger.warning("evaluator.request_failed", task=payload.get("task"), error=str(exc))
            raise CollaboratorError("evaluator", f"Request failed: {exc}") from exc

        try:
            return parse_json_payload(body)
        except json.JSONDecodeError as exc:
            self._logger.warning("evaluator.malformed_response", task=payload.get("task"))
            raise CollaboratorError("evaluator", "Response is not valid JSON.") from exc


__all__ = [
    "HTTPSemanticEvaluator",
    "build_evaluation_payload",
    "build_skills_payload",
    "parse_json_payload",
]
