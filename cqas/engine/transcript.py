"""Transcript flattening - turns stored transcription payloads into prompt text."""

import json
from typing import Any


def _segment_line(segment: Any) -> str:
    if isinstance(segment, dict):
        text = str(segment.get("text") or "").strip()
        speaker = str(segment.get("speaker") or "").strip()
        if text and speaker:
            return f"{speaker}: {text}"
        return text
    if isinstance(segment, str):
        return segment.strip()
    return ""


def transcript_to_text(transcription: Any) -> str | None:
    """
    Flatten a transcription into plain text, one line per segment.
    Accepts a segment list, a JSON-encoded segment list, or a plain string.
    Returns None when there is nothing to evaluate.
    """
    if transcription is None:
        return None
    if isinstance(transcription, str):
        stripped = transcription.strip()
        if stripped.startswith("["):
            try:
                decoded = json.loads(stripped)
            except json.JSONDecodeError:
                decoded = None
            if isinstance(decoded, list):
                return transcript_to_text(decoded)
        return stripped or None
    if isinstance(transcription, list):
        lines = [line for line in (_segment_line(s) for s in transcription) if line]
        return "\n".join(lines) or None
    return None
