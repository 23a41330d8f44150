from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from tutorview.engine.commands import DEFAULT_GRAMMAR, GRAMMARS
from tutorview.engine.coordinator import ViewerTimings
from tutorview.engine.styling import MatchMode

GLOBAL_CONFIG = Path.home() / ".tutorview_config.json"

HIGHLIGHT_STYLES = ("red-circle", "underline")
SEARCH_STYLES = ("bg-yellow", "bg-green")
MIN_ZOOM = 0.5
MAX_ZOOM = 3.0


def init_settings() -> None:
    GLOBAL_CONFIG.parent.mkdir(parents=True, exist_ok=True)


def _read_global_config() -> dict:
    """Return the parsed global config, or an empty dict on error/missing."""
    if not GLOBAL_CONFIG.exists():
        return {}
    try:
        payload = json.loads(GLOBAL_CONFIG.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return {}
    return payload if isinstance(payload, dict) else {}


def _update_global_config(updates: dict) -> None:
    payload = _read_global_config()
    payload.update(updates)
    GLOBAL_CONFIG.parent.mkdir(parents=True, exist_ok=True)
    GLOBAL_CONFIG.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def _positive_int(value, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 0 else default


def load_viewer_timings() -> ViewerTimings:
    """Typewriter, cooldown, blink and highlight durations in milliseconds."""
    payload = _read_global_config().get("timings")
    defaults = ViewerTimings()
    if not isinstance(payload, dict):
        return defaults
    return ViewerTimings(
        char_interval_ms=_positive_int(payload.get("char_interval_ms"), defaults.char_interval_ms),
        cooldown_ms=_positive_int(payload.get("cooldown_ms"), defaults.cooldown_ms),
        blink_ms=_positive_int(payload.get("blink_ms"), defaults.blink_ms),
        highlight_dwell_ms=_positive_int(payload.get("highlight_dwell_ms"), defaults.highlight_dwell_ms),
    )


def save_viewer_timings(timings: ViewerTimings) -> None:
    _update_global_config(
        {
            "timings": {
                "char_interval_ms": timings.char_interval_ms,
                "cooldown_ms": timings.cooldown_ms,
                "blink_ms": timings.blink_ms,
                "highlight_dwell_ms": timings.highlight_dwell_ms,
            }
        }
    )


def load_match_mode() -> MatchMode:
    payload = _read_global_config()
    return MatchMode(
        case_sensitive=bool(payload.get("match_case", False)),
        whole_token=bool(payload.get("full_word", False)),
    )


def save_match_mode(mode: MatchMode) -> None:
    _update_global_config({"match_case": mode.case_sensitive, "full_word": mode.whole_token})


def load_highlight_style() -> str:
    style = _read_global_config().get("highlight_style")
    return style if style in HIGHLIGHT_STYLES else HIGHLIGHT_STYLES[0]


def save_highlight_style(style: str) -> None:
    if style not in HIGHLIGHT_STYLES:
        raise ValueError(f"Unknown highlight style: {style}")
    _update_global_config({"highlight_style": style})


def load_search_style() -> str:
    style = _read_global_config().get("search_style")
    return style if style in SEARCH_STYLES else SEARCH_STYLES[0]


def save_search_style(style: str) -> None:
    if style not in SEARCH_STYLES:
        raise ValueError(f"Unknown search style: {style}")
    _update_global_config({"search_style": style})


def load_command_grammar() -> str:
    version = _read_global_config().get("command_grammar")
    if isinstance(version, str) and version.strip().lower() in GRAMMARS:
        return version.strip().lower()
    return DEFAULT_GRAMMAR


def save_command_grammar(version: str) -> None:
    version = (version or "").strip().lower()
    if version not in GRAMMARS:
        raise ValueError(f"Unknown command grammar: {version}")
    _update_global_config({"command_grammar": version})


def load_zoom() -> float:
    try:
        zoom = float(_read_global_config().get("zoom", 1.0))
    except (TypeError, ValueError):
        return 1.0
    return min(MAX_ZOOM, max(MIN_ZOOM, zoom))


def save_zoom(zoom: float) -> None:
    _update_global_config({"zoom": round(min(MAX_ZOOM, max(MIN_ZOOM, zoom)), 2)})


def load_last_document() -> Optional[str]:
    last = _read_global_config().get("last_document")
    return last if isinstance(last, str) else None


def save_last_document(path: str) -> None:
    _update_global_config({"last_document": str(Path(path))})
