from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .models import TaxonRecord
from .ranks import rank_priority

_APPROX_RANKS = ("species", "genus", "family", "order", "class", "phylum", "kingdom")


@dataclass(slots=True)
class ApproximateMatch:
    record: TaxonRecord
    distance: int
    rank: str | None = None

    @property
    def matched_value(self) -> str | None:
        if self.rank is None:
            return None
        return self.record.rank_value(self.rank)


def damerau_levenshtein(a: str, b: str, max_distance: int) -> int:
    """Optimal-string-alignment distance, capped at ``max_distance + 1``.

    Keeps three rows (two back for transpositions). As soon as a full row
    exceeds the cap no later row can come back under it, so the scan stops.
    """
    if a == b:
        return 0
    a_len = len(a)
    b_len = len(b)
    if not a_len:
        return min(b_len, max_distance + 1)
    if not b_len:
        return min(a_len, max_distance + 1)

    prev2 = [0] * (b_len + 1)
    prev = list(range(b_len + 1))
    curr = [0] * (b_len + 1)

    for i in range(1, a_len + 1):
        curr[0] = i
        row_min = i
        a_char = a[i - 1]
        for j in range(1, b_len + 1):
            b_char = b[j - 1]
            cost = 0 if a_char == b_char else 1
            value = min(prev[j] + 1, curr[j - 1] + 1, prev[j - 1] + cost)
            if i > 1 and j > 1 and a_char == b[j - 2] and a[i - 2] == b_char:
                value = min(value, prev2[j - 2] + 1)
            curr[j] = value
            if value < row_min:
                row_min = value
        if row_min > max_distance:
            return max_distance + 1
        prev2, prev, curr = prev, curr, prev2

    return min(prev[b_len], max_distance + 1)


def approximate_search(
    records: Iterable[TaxonRecord],
    query: str,
    *,
    limit: int,
    max_distance: int,
) -> list[ApproximateMatch]:
    needle = (query or "").strip().lower()
    if not needle or limit <= 0:
        return []

    matches: list[ApproximateMatch] = []
    for record in records:
        best = _best_rank_match(record, needle, max_distance)
        if best is None:
            best = _name_match(record, needle, max_distance)
        if best is not None:
            matches.append(best)

    matches.sort(
        key=lambda m: (m.distance, rank_priority(m.rank), m.record.scientific_name or "")
    )
    return matches[:limit]


def _best_rank_match(record: TaxonRecord, needle: str, max_distance: int) -> ApproximateMatch | None:
    best: ApproximateMatch | None = None
    for rank in _APPROX_RANKS:
        value = (record.rank_value(rank) or "").strip().lower()
        if not value:
            continue
        distance = damerau_levenshtein(needle, value, max_distance)
        if distance > max_distance:
            continue
        if (
            best is None
            or distance < best.distance
            or (distance == best.distance and rank_priority(rank) < rank_priority(best.rank))
        ):
            best = ApproximateMatch(record=record, distance=distance, rank=rank)
    return best


def _name_match(record: TaxonRecord, needle: str, max_distance: int) -> ApproximateMatch | None:
    value = (record.scientific_name or record.vernacular_name or "").strip().lower()
    if not value:
        return None
    distance = damerau_levenshtein(needle, value, max_distance)
    if distance > max_distance:
        return None
    return ApproximateMatch(record=record, distance=distance)


__all__ = ["ApproximateMatch", "approximate_search", "damerau_levenshtein"]
