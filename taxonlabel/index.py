from __future__ import annotations

import threading
from dataclasses import dataclass, field

import structlog
from rapidfuzz import utils

from .models import SpeciesList, TaxonRecord
from .ranks import genus_species_name

logger = structlog.get_logger()

_EXACT_RANKS = ("species", "genus", "family", "order", "class", "phylum", "kingdom")
_SEARCH_FIELDS = ("species", "genus", "family", "order", "class", "phylum", "kingdom")


@dataclass(slots=True)
class FuzzyItem:
    record: TaxonRecord
    text: str
    prepared: str


@dataclass(slots=True)
class IndexEntry:
    fuzzy_items: list[FuzzyItem] = field(default_factory=list)
    exact: dict[str, list[TaxonRecord]] = field(default_factory=dict)
    prepared: list[str] = field(default_factory=list)
    source: SpeciesList | None = None

    def exact_matches(self, query: str) -> list[TaxonRecord]:
        return list(self.exact.get(query.strip().lower(), []))


def is_accepted_ranked(record: TaxonRecord) -> bool:
    status = (record.taxonomic_status or "").strip().lower()
    return record.rank != "unranked" and (not status or status == "accepted")


def searchable_text(record: TaxonRecord) -> str:
    values = [record.rank_value(rank) for rank in _SEARCH_FIELDS]
    if record.genus and record.species:
        values.append(genus_species_name(record.genus, record.species))
    values.append(record.vernacular_name)
    return " | ".join(value for value in values if value)


def build_entry(records: tuple[TaxonRecord, ...] | list[TaxonRecord]) -> IndexEntry:
    entry = IndexEntry()
    for record in records:
        text = searchable_text(record)
        prepared = utils.default_process(text)
        entry.fuzzy_items.append(FuzzyItem(record=record, text=text, prepared=prepared))
        entry.prepared.append(prepared)
        if not is_accepted_ranked(record):
            continue
        for rank in _EXACT_RANKS:
            key = (record.rank_value(rank) or "").strip().lower()
            if key:
                entry.exact.setdefault(key, []).append(record)
    return entry


class TaxonomyIndex:
    """Per-list search structures, built lazily and dropped on invalidation.

    One lock per list id serialises build and invalidation for that list.
    A reader that races an invalidation simply rebuilds. Entries remember the
    list object they were built from; a lookup with a different object for
    the same id rebuilds instead of serving the old records.
    """

    def __init__(self) -> None:
        self._entries: dict[str, IndexEntry] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, list_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(list_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[list_id] = lock
            return lock

    def ensure(self, species_list: SpeciesList) -> IndexEntry:
        cached = self._entries.get(species_list.id)
        if cached is not None and cached.source is species_list:
            return cached

        with self._lock_for(species_list.id):
            cached = self._entries.get(species_list.id)
            if cached is not None and cached.source is species_list:
                return cached
            entry = build_entry(species_list.records)
            entry.source = species_list
            self._entries[species_list.id] = entry

        logger.debug(
            "species_index_built",
            list_id=species_list.id,
            records=len(entry.fuzzy_items),
            exact_keys=len(entry.exact),
        )
        return entry

    def invalidate(self, list_id: str) -> None:
        if not list_id:
            return
        with self._lock_for(list_id):
            removed = self._entries.pop(list_id, None)
        if removed is not None:
            logger.debug("species_index_invalidated", list_id=list_id)

    def forget(self, list_id: str) -> None:
        """Drop the entry and the per-list lock of a list that is gone for good."""
        self.invalidate(list_id)
        with self._locks_guard:
            self._locks.pop(list_id, None)

    def clear(self) -> None:
        for list_id in list(self._entries):
            self.invalidate(list_id)

    def __contains__(self, list_id: object) -> bool:
        return list_id in self._entries


__all__ = [
    "FuzzyItem",
    "IndexEntry",
    "TaxonomyIndex",
    "build_entry",
    "is_accepted_ranked",
    "searchable_text",
]
