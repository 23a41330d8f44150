from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Citation:
    """Evidence the tutor points at. ``page`` is 0-based."""

    page: int
    term: str = ""
    annotation: Optional[str] = None


@dataclass(frozen=True)
class PendingAnnotation:
    page: int
    text: str


@dataclass(frozen=True)
class HighlightState:
    page: int
    term: str
    annotation: Optional[str]
    expires_at_ms: float
