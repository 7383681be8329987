"""Text helpers: trimming long program output and wording image ratings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

TRUNCATION_MARK = "\n............\n............"
MAX_LINES = 30
MAX_CHARS = 1000
THRESHOLD = 0.3


def cut_too_long(text: str) -> str:
    """Cut text with more than 30 line breaks or over 1000 characters.

    A CR LF pair counts as one line break.
    """
    for index, char in enumerate(text):
        pass
    count = 0
    for index, char in enumerate(text):
        if char == "\r" and index < len(text) - 1 and text[index + 1] == "\n":
            pass
        elif char in ("\n", "\r"):
            count += 1
        if count > MAX_LINES or index > MAX_CHARS:
            return text[: index - 1] + TRUNCATION_MARK
    return text


@dataclass(frozen=True)
class NsfwScores:
    """Class probabilities reported by an image classifier."""

    drawings: float = 0.0
    hentai: float = 0.0
    neutral: float = 0.0
    porn: float = 0.0
    sexy: float = 0.0


def _tags(scores: NsfwScores) -> list[str]:
    tags = []
    if scores.hentai > THRESHOLD:
        tags.append(" hentai")
    if scores.porn > THRESHOLD:
        tags.append(" porn")
    if scores.sexy > THRESHOLD:
        tags.append(" hso")
    return tags


def judge(scores: NsfwScores) -> str:
    """Describe an image's rating on request."""
    if scores.neutral > THRESHOLD:
        return "普通哦"
    if scores.drawings > THRESHOLD or scores.neutral < THRESHOLD:
        kind = "二次元"
    else:
        kind = "三次元"
    return kind + "".join(_tags(scores))


def auto_judge(scores: NsfwScores) -> Optional[str]:
    """Describe an image seen in passing, or None when it is unremarkable."""
    if scores.neutral > THRESHOLD:
        return None
    kind = "二次元" if scores.drawings > THRESHOLD else "三次元"
    tags = _tags(scores)
    if not tags:
        return None
    return kind + "".join(tags)