"""In-process settings state.

FastAPI routes use this module to read (and hot-reload) the settings that seed
each analysis session's defaults.
"""

from __future__ import annotations

from threading import RLock

from pixelaudit.core.config.settings import AnalysisSettings, load_settings, settings_to_dict

_settings: AnalysisSettings | None = None
_lock = RLock()


def get_settings() -> AnalysisSettings:
    """Return cached settings, loading them on first use."""

    global _settings
    with _lock:
        if _settings is None:
            _settings = load_settings()
    return _settings


def reload_settings(data: dict | None = None) -> AnalysisSettings:
    """Reload settings from YAML/env and apply an optional patch.

    Args:
        data: Optional patch dict merged over the current settings.
    """

    global _settings
    with _lock:
        base = load_settings()
        if data:
            current = _settings if _settings is not None else base
            _settings = AnalysisSettings(**{**settings_to_dict(current), **data})
        else:
            _settings = base
    return _settings


def reset_settings() -> None:
    """Drop cached settings so the next access reloads them."""

    global _settings
    with _lock:
        _settings = None
