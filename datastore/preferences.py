from __future__ import annotations

from functools import lru_cache
from threading import Lock
from typing import Any, Mapping

from app.schemas import DashboardPreferences


def _to_aliases(patch: Mapping[str, Any]) -> dict[str, Any]:
    fields = DashboardPreferences.model_fields
    normalized: dict[str, Any] = {}
    for key, value in patch.items():
        field = fields.get(key)
        alias = field.alias if field is not None else None
        normalized[alias or key] = value
    return normalized


class PreferencesStore:
    """In-memory holder for the dashboard configuration record."""

    def __init__(self, initial: DashboardPreferences | None = None) -> None:
        self._current = initial or DashboardPreferences()
        self._lock = Lock()

    def get(self) -> DashboardPreferences:
        with self._lock:
            return self._current.model_copy(deep=True)

    def update(self, patch: Mapping[str, Any]) -> DashboardPreferences:
        """Merge ``patch`` (snake_case or camelCase keys) and validate the result.

        Raises ``pydantic.ValidationError`` and keeps the old record when the
        merged values are out of range.
        """
        with self._lock:
            merged = self._current.model_dump(by_alias=True)
            merged.update(_to_aliases(patch))
            self._current = DashboardPreferences.model_validate(merged)
            return self._current.model_copy(deep=True)

    def reset(self) -> DashboardPreferences:
        with self._lock:
            self._current = DashboardPreferences()
            return self._current.model_copy(deep=True)


@lru_cache
def build_default_preferences() -> PreferencesStore:
    return PreferencesStore()
