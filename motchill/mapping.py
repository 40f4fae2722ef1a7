from __future__ import annotations

import logging
from typing import Iterable, Optional

from motchill.models import MappingEntry
from motchill.parser import fold

logger = logging.getLogger(__name__)

DEFAULT_ENTRIES = [
    MappingEntry(
        slug="con-ra-the-thong-gi-nua",
        external_id="tt35231547",
        canonical_title="How Dare You",
        local_title="Còn Ra Thể Thống Gì Nữa",
        aliases=["Cheng He Ti Tong", "In What Manner", "This Is Ridiculous", "What a Disgrace"],
    ),
]


class TitleMapping:
    """Slug-keyed cross-reference between site slugs and external ids/titles."""

    def __init__(self, entries: Iterable[MappingEntry] = ()):
        self._entries: dict[str, MappingEntry] = {}
        for entry in entries:
            self._entries[entry.slug] = entry

    def __len__(self) -> int:
        return len(self._entries)

    def all(self) -> list[MappingEntry]:
        return list(self._entries.values())

    def resolve(self, query: str) -> Optional[MappingEntry]:
        needle = fold(query or "")
        if not needle:
            return None
        for entry in list(self._entries.values()):
            canonical = fold(entry.canonical_title)
            if canonical and canonical == needle:
                return entry
            if entry.external_id and entry.external_id.lower() == needle:
                return entry
            if any(fold(title) == needle for title in [entry.local_title, *entry.aliases] if title):
                return entry
            if canonical and (canonical in needle or needle in canonical):
                return entry
        logger.debug("No mapping for %r", query)
        return None

    def slug_for(self, external_id: str) -> Optional[str]:
        needle = (external_id or "").strip().lower()
        if not needle:
            return None
        for entry in list(self._entries.values()):
            if entry.external_id and entry.external_id.lower() == needle:
                return entry.slug
        return None

    def metadata_for(self, slug: str) -> Optional[MappingEntry]:
        return self._entries.get(slug)

    def upsert(self, slug: str, data: dict) -> MappingEntry:
        entry = MappingEntry(
            slug=slug,
            external_id=data.get("external_id") or "",
            canonical_title=data.get("canonical_title") or "",
            local_title=data.get("local_title") or "",
            aliases=list(data.get("aliases") or []),
        )
        self._entries[slug] = entry
        logger.info("Mapping for %s set to %s", slug, entry.external_id or "(no external id)")
        return entry


def default_mapping() -> TitleMapping:
    return TitleMapping(
        MappingEntry(
            slug=e.slug,
            external_id=e.external_id,
            canonical_title=e.canonical_title,
            local_title=e.local_title,
            aliases=list(e.aliases),
        )
        for e in DEFAULT_ENTRIES
    )
