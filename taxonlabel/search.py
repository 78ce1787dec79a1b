"""Species search over one reference list.

Exact rank-value hits come first, scored fuzzy hits after them, and results
are rewritten to the rank the query actually named. When nothing matches, a
bounded edit-distance scan recovers misspellings.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

import structlog
from rapidfuzz import fuzz, process, utils

from .config import SearchConfig
from .distance import approximate_search
from .index import IndexEntry, is_accepted_ranked
from .keys import dedupe_by_key, stable_key
from .models import SpeciesList, TaxonRecord
from .ranks import RANK_PRIORITY, rank_priority, ranks_below
from .registry import SpeciesListRegistry

logger = structlog.get_logger()

_PROMOTABLE = ("genus", "family", "order")
_MATCH_ORDER = tuple(sorted(RANK_PRIORITY, key=RANK_PRIORITY.__getitem__))


class SpeciesSearchEngine:
    def __init__(
        self,
        registry: SpeciesListRegistry,
        config: SearchConfig | None = None,
    ) -> None:
        self.registry = registry
        self.config = config or SearchConfig()

    def search(self, list_id: str | None, query: str, limit: int | None = None) -> list[TaxonRecord]:
        species_list = self.registry.get(list_id)
        if species_list is None:
            return []
        return self.search_list(species_list, query, limit)

    def search_list(
        self,
        species_list: SpeciesList,
        query: str,
        limit: int | None = None,
    ) -> list[TaxonRecord]:
        if limit is None:
            limit = self.config.default_limit
        trimmed = (query or "").strip()
        if not trimmed or limit <= 0:
            return []

        entry = self.registry.index.ensure(species_list)
        if not entry.fuzzy_items:
            return []

        needle = trimmed.lower()
        exact = [r for r in entry.exact_matches(needle) if is_accepted_ranked(r)]
        fuzzy = [r for r in self._fuzzy(entry, trimmed, limit) if is_accepted_ranked(r)]

        ordered = _order_results(dedupe_by_key([*exact, *fuzzy]), exact, needle)
        results = dedupe_by_key(
            normalize_result(record, promotion_rank(record, needle)) for record in ordered[:limit]
        )

        used_fallback = False
        if (
            not results
            and species_list.records
            and len(trimmed) >= self.config.fallback_min_query_length
        ):
            used_fallback = True
            matches = approximate_search(
                (r for r in species_list.records if is_accepted_ranked(r)),
                trimmed,
                limit=limit,
                max_distance=self.config.fallback_max_distance,
            )
            logger.debug(
                "species_search_fallback",
                list_id=species_list.id,
                query=trimmed,
                matches=len(matches),
            )
            results = dedupe_by_key(
                normalize_result(m.record, m.rank if m.rank in _PROMOTABLE else None)
                for m in matches
            )

        logger.debug(
            "species_search",
            list_id=species_list.id,
            query=trimmed,
            index_size=len(entry.fuzzy_items),
            exact_count=len(exact),
            fuzzy_count=len(fuzzy),
            fallback=used_fallback,
            result_count=len(results),
        )
        return results

    def resolve_rank_taxon(self, list_id: str | None, rank: str, value: str) -> TaxonRecord | None:
        """Best search hit for ``value`` that ended up at ``rank``."""
        for record in self.search(list_id, value, limit=self.config.default_limit):
            if record.rank == rank.lower():
                return record
        return None

    def _fuzzy(self, entry: IndexEntry, query: str, limit: int) -> list[TaxonRecord]:
        hits = process.extract(
            utils.default_process(query),
            entry.prepared,
            scorer=term_score,
            processor=None,
            limit=limit,
            score_cutoff=self.config.fuzzy_score_cutoff,
        )
        return [entry.fuzzy_items[index].record for _, _, index in hits]


def term_score(query: str, choice: str, **kwargs: object) -> float:
    """Score of the weakest query term against ``choice``.

    Each whitespace-separated term is matched on its own with
    ``fuzz.partial_ratio``, so ``"zelus lon"`` and ``"longipes zelus"`` both
    reach ``Zelus longipes``. Every term has to match for the choice to score.
    """
    terms = query.split()
    if not terms:
        return 0.0
    return min(fuzz.partial_ratio(term, choice) for term in terms)


def matched_rank(record: TaxonRecord, needle: str) -> str | None:
    """Rank at which the record's own value equals the lower-cased query."""
    for rank in _MATCH_ORDER:
        if (record.rank_value(rank) or "").strip().lower() == needle:
            return rank
    return None


def promotion_rank(record: TaxonRecord, needle: str) -> str | None:
    for rank in _PROMOTABLE:
        if (record.rank_value(rank) or "").strip().lower() == needle:
            return rank
    return None


def normalize_result(record: TaxonRecord, rank: str | None) -> TaxonRecord:
    """Rewrite a hit to ``rank`` and strip fields that do not belong to it.

    A species row found by its order name comes back as an order-level
    record: empty scientific name, no family/genus/species, no accepted-name
    metadata.
    """
    normalized = record
    if rank is not None and record.rank != rank:
        normalized = replace(
            record,
            taxon_rank=rank,
            scientific_name="",
            rank_keys=dict(record.rank_keys),
            accepted_scientific_name=None,
            accepted_taxon_key=None,
        )

    current = normalized.rank
    if current != "species" and (
        normalized.accepted_scientific_name is not None or normalized.accepted_taxon_key is not None
    ):
        normalized = replace(
            normalized,
            accepted_scientific_name=None,
            accepted_taxon_key=None,
            rank_keys=dict(normalized.rank_keys),
        )

    if current in _PROMOTABLE:
        stale = {
            ("class_" if below == "class" else below): None
            for below in ranks_below(current)  # type: ignore[arg-type]
            if normalized.rank_value(below) is not None
        }
        if stale:
            normalized = replace(normalized, rank_keys=dict(normalized.rank_keys), **stale)

    return normalized


def _order_results(
    combined: list[TaxonRecord],
    exact: Iterable[TaxonRecord],
    needle: str,
) -> list[TaxonRecord]:
    exact_keys = {stable_key(record) for record in exact}

    def sort_key(item: tuple[int, TaxonRecord]) -> tuple:
        position, record = item
        if stable_key(record) not in exact_keys:
            return (1, 0, 0, "", position)
        rank = matched_rank(record, needle)
        same_rank = 0 if rank is not None and record.rank == rank else 1
        name = record.scientific_name or ""
        return (0, rank_priority(rank), same_rank, name.casefold(), position)

    return [record for _, record in sorted(enumerate(combined), key=sort_key)]


__all__ = [
    "SpeciesSearchEngine",
    "matched_rank",
    "normalize_result",
    "promotion_rank",
    "term_score",
]
