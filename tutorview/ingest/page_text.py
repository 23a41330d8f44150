from __future__ import annotations

import json
import logging
from pathlib import Path

from pdfminer.high_level import extract_text as extract_pdf_text

from tutorview.engine.page_store import PageText

logger = logging.getLogger(__name__)

PAGE_BREAK = "\f"
SUPPORTED_SUFFIXES = (".pdf", ".txt", ".json")


class DocumentLoadError(RuntimeError):
    """The document could not be turned into page texts."""


def split_pages(text: str) -> list[PageText]:
    """Split form-feed separated text into pages, dropping a trailing empty page."""
    parts = (text or "").split(PAGE_BREAK)
    if len(parts) > 1 and not parts[-1].strip():
        parts.pop()
    return [PageText(idx, part) for idx, part in enumerate(parts)]


def _pages_from_json(path: Path) -> list[PageText]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise DocumentLoadError(f"Invalid JSON in {path}: {exc}") from exc
    if isinstance(payload, dict):
        payload = payload.get("pages", payload.get("content"))
    if not isinstance(payload, list):
        raise DocumentLoadError(f"{path} must hold a list of pages")
    pages: list[PageText] = []
    for position, entry in enumerate(payload):
        if isinstance(entry, str):
            pages.append(PageText(position, entry))
        elif isinstance(entry, dict) and "content" in entry:
            pages.append(PageText(int(entry.get("index", position)), str(entry["content"] or "")))
        else:
            raise DocumentLoadError(f"Unsupported page entry #{position} in {path}")
    return pages


def load_page_texts(path: Path) -> list[PageText]:
    """Read a document as an ordered list of page texts."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise DocumentLoadError(f"Unsupported document type: {path.name}")
    try:
        if suffix == ".pdf":
            pages = split_pages(extract_pdf_text(str(path)))
        elif suffix == ".json":
            pages = _pages_from_json(path)
        else:
            pages = split_pages(path.read_text(encoding="utf-8", errors="ignore"))
    except DocumentLoadError:
        raise
    except Exception as exc:
        raise DocumentLoadError(f"Failed to read {path}: {exc}") from exc
    logger.debug("Loaded %s pages from %s", len(pages), path)
    return pages
