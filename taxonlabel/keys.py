from __future__ import annotations

from collections.abc import Iterable

from .models import TaxonRecord
from .normalizer import normalize_taxon_value
from .ranks import RANKS


def stable_key(record: TaxonRecord | None) -> str:
    """Rank-aware identity of a record, e.g. ``animalia:arthropoda:insecta:hemiptera``.

    The path runs from kingdom down to the record's own rank, skipping ranks
    the record leaves empty. Records without a kingdom cannot be keyed and get
    an empty string.
    """
    if record is None:
        return ""

    kingdom = normalize_taxon_value(record.kingdom)
    if kingdom is None:
        return ""

    rank = normalize_taxon_value(record.taxon_rank)
    rank = rank.lower() if rank else None

    parts = [kingdom.lower()]
    if rank == "kingdom":
        return ":".join(parts)

    for level in RANKS[1:]:
        value = normalize_taxon_value(record.rank_value(level))
        if value is None:
            continue
        parts.append(value.lower())
        if rank == level:
            break

    return ":".join(parts)


def dedupe_by_key(records: Iterable[TaxonRecord]) -> list[TaxonRecord]:
    seen: set[str] = set()
    result: list[TaxonRecord] = []
    for record in records:
        key = stable_key(record)
        if not key or key in seen:
            continue
        seen.add(key)
        result.append(record)
    return result


__all__ = ["dedupe_by_key", "stable_key"]
