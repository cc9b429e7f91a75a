"""
Text helpers for meeting transcripts and AI-extracted tasks.
"""

from __future__ import annotations

from difflib import SequenceMatcher


def normalize_title(text: str) -> str:
    return " ".join((text or "").lower().split())


def string_similarity(a: str, b: str) -> float:
    """
    Ratio in [0, 1]; 1.0 for identical strings (after case/whitespace folding).
    Two empty strings are considered identical.
    """
    na, nb = normalize_title(a), normalize_title(b)
    if na == nb:
        return 1.0
    if not na or not nb:
        return 0.0
    return SequenceMatcher(None, na, nb).ratio()


def truncate(text: str, limit: int = 200) -> str:
    text = (text or "").strip()
    return text if len(text) <= limit else text[:limit] + "..."


def strip_data_url(audio: str) -> str:
    """'data:audio/webm;base64,AAAA' -> 'AAAA'; bare base64 passes through."""
    if audio.startswith("data:") and "," in audio:
        return audio.split(",", 1)[1]
    return audio


def is_voice_recording_entry(title: str | None, description: str | None) -> bool:
    """Meetings created from voice recordings stay off the calendar grid."""
    t = title or ""
    d = description or ""
    return "Voice Recording" in t or "from Modal" in t or "AI-processed" in d
