from __future__ import annotations

import json
import logging
import time
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from projecthub.schemas.ai import ExtractedTask, ExtractedTasks, MeetingSummary, TranscriptionResult
from projecthub.settings import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class AIError(Exception):
    pass


class AITransientError(AIError):
    """Transient AI errors (timeouts, 429/5xx, network) that should be retried."""


def _post(path: str, payload: dict[str, Any]) -> Any:
    settings = get_settings()
    if not settings.AI_BASE_URL:
        raise AIError("AI_BASE_URL not configured")

    url = settings.AI_BASE_URL.rstrip("/") + path
    headers = {"Authorization": f"Bearer {settings.AI_API_KEY}"} if settings.AI_API_KEY else {}

    logger.info("Calling AI endpoint. path=%s", path)
    start_time = time.time()
    try:
        with httpx.Client(timeout=settings.AI_TIMEOUT_SECONDS) as client:
            resp = client.post(url, json=payload, headers=headers)
            resp.raise_for_status()
    except (httpx.TimeoutException, httpx.NetworkError) as e:
        raise AITransientError(str(e)) from e
    except httpx.HTTPStatusError as e:
        code = e.response.status_code
        if code == 429 or 500 <= code <= 599:
            raise AITransientError(f"AI HTTP {code}") from e
        raise AIError(f"AI HTTP {code}: {e.response.text[:300]}") from e

    logger.info("AI response received. path=%s elapsed=%.2fs", path, time.time() - start_time)
    try:
        return resp.json()
    except ValueError:
        # some endpoints answer with a fenced or wrapped JSON body
        return json.loads(_extract_json_object(resp.text))


def _extract_json_object(text: str) -> str:
    """
    Best-effort extraction of a single JSON object from model output.
    Handles markdown code blocks (```json ... ```).
    """
    s = text.strip()

    if s.startswith("```"):
        end_marker = s.find("```", 3)
        if end_marker > 0:
            s = s[3:end_marker].strip()
            if s.lower().startswith("json"):
                s = s[4:].strip()

    start = s.find("{")
    if start < 0:
        return s

    depth = 0
    for i in range(start, len(s)):
        if s[i] == "{":
            depth += 1
        elif s[i] == "}":
            depth -= 1
            if depth == 0:
                return s[start : i + 1]

    end = s.rfind("}")
    if end > start:
        return s[start : end + 1]
    return s


def _validate(model: type[T], body: Any) -> T:
    try:
        return model.model_validate(body)
    except ValidationError as e:
        raise AIError(f"Unexpected AI response shape for {model.__name__}: {e}") from e


def transcribe(audio_b64: str, mime_type: str = "audio/webm") -> TranscriptionResult:
    body = _post("/transcribe", {"audio_data": audio_b64, "mime_type": mime_type})
    result = _validate(TranscriptionResult, body)
    logger.info("Transcription done. chars=%d", len(result.text))
    return result


def summarize(text: str) -> MeetingSummary:
    body = _post("/summarize", {"text": text})
    if isinstance(body, str):
        return MeetingSummary(summary=body)
    return _validate(MeetingSummary, body)


def extract_tasks(text: str) -> list[ExtractedTask]:
    body = _post("/extract-tasks", {"text": text})
    if isinstance(body, list):
        body = {"tasks": body}
    tasks = _validate(ExtractedTasks, body).tasks
    logger.info("Extracted tasks. count=%d", len(tasks))
    return tasks
