"""
Analysis cache: ``chart_id -> fingerprint -> AnalysisEntry``.

Entries are kept for every filter combination a chart has ever been
analysed under; only deleting the chart removes them. The persisted blob is
plain JSON; older blobs that stored one entry per chart are migrated on load
by nesting the entry under LEGACY_FINGERPRINT.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable, Iterable, Optional

import redis
from pydantic import ValidationError

from sliceboard.schemas.analysis import AnalysisEntry

logger = logging.getLogger(__name__)

LEGACY_FINGERPRINT = "legacy"

# One lock per project key, shared by every store instance in the process.
_update_locks: dict[str, threading.Lock] = {}
_update_locks_guard = threading.Lock()


def _lock_for(key: str) -> threading.Lock:
    with _update_locks_guard:
        return _update_locks.setdefault(key, threading.Lock())

_ENTRY_KEYS = {"content", "error", "generated_at", "generatedAt", "is_generating", "isGenerating"}


def _looks_like_entry(value: dict) -> bool:
    """Old blobs map a chart id straight to ``{content, error?}``."""
    return bool(value) and set(value) <= _ENTRY_KEYS and "content" in value


def _entry_from_raw(raw: Any) -> Optional[AnalysisEntry]:
    if not isinstance(raw, dict):
        return None
    content = raw.get("content")
    try:
        return AnalysisEntry(
            content=content if isinstance(content, str) else "",
            error=raw.get("error") or None,
            generated_at=raw.get("generated_at") or raw.get("generatedAt"),
            is_generating=False,
        )
    except ValidationError:
        logger.warning("Dropping malformed analysis entry: %r", raw)
        return None


class AnalysisCache:
    def __init__(self, entries: Optional[dict[str, dict[str, AnalysisEntry]]] = None):
        self._entries: dict[str, dict[str, AnalysisEntry]] = entries or {}

    # ── Lookup ────────────────────────────────────────────────────────────────

    def get(self, chart_id: str, fingerprint: str) -> Optional[AnalysisEntry]:
        return self._entries.get(chart_id, {}).get(fingerprint)

    def has_any_entry(self, chart_id: str) -> bool:
        """True once a chart has been analysed under *some* filter state."""
        return bool(self._entries.get(chart_id))

    def entries_for(self, chart_id: str) -> dict[str, AnalysisEntry]:
        return dict(self._entries.get(chart_id, {}))

    def chart_ids(self) -> list[str]:
        return list(self._entries)

    # ── Mutation (always replaces the per-chart map) ─────────────────────────

    def put(self, chart_id: str, fingerprint: str, entry: AnalysisEntry) -> None:
        chart_entries = dict(self._entries.get(chart_id, {}))
        chart_entries[fingerprint] = entry
        self._entries = {**self._entries, chart_id: chart_entries}

    def drop_chart(self, chart_id: str) -> None:
        if chart_id in self._entries:
            self._entries = {k: v for k, v in self._entries.items() if k != chart_id}

    def prune(self, valid_chart_ids: Iterable[str]) -> None:
        keep = set(valid_chart_ids)
        self._entries = {k: v for k, v in self._entries.items() if k in keep}

    # ── Serialisation ────────────────────────────────────────────────────────

    @classmethod
    def from_blob(cls, raw: Optional[str]) -> "AnalysisCache":
        """Parse a persisted blob. Malformed input yields an empty cache."""
        if not raw:
            return cls()
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Analysis cache blob is not valid JSON; starting empty")
            return cls()
        if not isinstance(data, dict):
            logger.warning("Analysis cache blob has unexpected shape; starting empty")
            return cls()

        entries: dict[str, dict[str, AnalysisEntry]] = {}
        for chart_id, value in data.items():
            if not isinstance(value, dict):
                continue
            if _looks_like_entry(value):
                entry = _entry_from_raw(value)
                if entry is not None:
                    entries[chart_id] = {LEGACY_FINGERPRINT: entry}
                continue
            chart_entries = {}
            for fp, raw_entry in value.items():
                entry = _entry_from_raw(raw_entry)
                if entry is not None:
                    chart_entries[fp] = entry
            if chart_entries:
                entries[chart_id] = chart_entries
        return cls(entries)

    def to_dict(self) -> dict[str, dict[str, dict[str, Any]]]:
        out: dict[str, dict[str, dict[str, Any]]] = {}
        for chart_id, chart_entries in self._entries.items():
            persisted = {}
            for fp, entry in chart_entries.items():
                if not entry.content.strip():
                    continue
                item: dict[str, Any] = {"content": entry.content}
                if entry.generated_at is not None:
                    item["generated_at"] = entry.generated_at.isoformat()
                if entry.error:
                    item["error"] = entry.error
                persisted[fp] = item
            if persisted:
                out[chart_id] = persisted
        return out

    def to_blob(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)


class AnalysisCacheStore:
    """Loads and saves one AnalysisCache blob per project."""

    def __init__(self, blob_store):
        self._store = blob_store

    @staticmethod
    def _key(project_id: str) -> str:
        return f"chart_analyses:{project_id}"

    def load(self, project_id: str) -> AnalysisCache:
        try:
            raw = self._store.get(self._key(project_id))
        except redis.RedisError:
            logger.warning("Could not read analysis cache for project %s", project_id, exc_info=True)
            return AnalysisCache()
        return AnalysisCache.from_blob(raw)

    def save(self, project_id: str, cache: AnalysisCache) -> None:
        try:
            self._store.set(self._key(project_id), cache.to_blob())
        except redis.RedisError:
            logger.warning("Could not persist analysis cache for project %s", project_id, exc_info=True)

    def update(self, project_id: str, mutate: Callable[[AnalysisCache], None]) -> AnalysisCache:
        """Read-modify-write against the latest persisted state, serialised per project."""
        with _lock_for(self._key(project_id)):
            cache = self.load(project_id)
            mutate(cache)
            self.save(project_id, cache)
            return cache

    def delete(self, project_id: str) -> None:
        try:
            self._store.delete(self._key(project_id))
        except redis.RedisError:
            logger.warning("Could not delete analysis cache for project %s", project_id, exc_info=True)
