"""Rough token counts for usage blocks when a model family reports none."""

from __future__ import annotations

import math
from typing import Iterable

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN) if text else 0


def estimate_texts_tokens(texts: Iterable[str]) -> int:
    """Sum of per-text estimates; each non-empty text counts at least one token."""

    return sum(estimate_tokens(text) for text in texts)
