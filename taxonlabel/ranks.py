from __future__ import annotations

from dataclasses import dataclass, replace

from .models import Rank, TaxonRecord
from .normalizer import looks_like_morphospecies_code

RANKS: tuple[Rank, ...] = ("kingdom", "phylum", "class", "order", "family", "genus", "species")

# Tie-break order for matched ranks: a genus or species hit disambiguates
# better than a hit on a broad rank.
RANK_PRIORITY: dict[str, int] = {
    "genus": 0,
    "species": 1,
    "family": 2,
    "order": 3,
    "class": 4,
    "phylum": 5,
    "kingdom": 6,
}
UNKNOWN_PRIORITY = 99

EXTENDED_HIERARCHY: tuple[str, ...] = (
    "kingdom",
    "phylum",
    "class",
    "order",
    "suborder",
    "family",
    "subfamily",
    "tribe",
    "genus",
    "species",
)

_ANCHORS: dict[str, Rank] = {
    "suborder": "order",
    "subfamily": "family",
    "tribe": "genus",
}

_HIGHER_THAN_SPECIES = frozenset(EXTENDED_HIERARCHY[:-1])


@dataclass(slots=True)
class MissingRank:
    rank: Rank
    missing_name: bool
    missing_id: bool


def rank_priority(rank: str | None) -> int:
    if rank is None:
        return UNKNOWN_PRIORITY
    return RANK_PRIORITY.get(rank, UNKNOWN_PRIORITY)


def rank_index(rank: str | None) -> int:
    lower = (rank or "").lower()
    if lower in EXTENDED_HIERARCHY:
        return EXTENDED_HIERARCHY.index(lower)
    return len(EXTENDED_HIERARCHY)


def is_rank_higher_than_species(rank: str | None) -> bool:
    return (rank or "").lower() in _HIGHER_THAN_SPECIES


def anchor_rank(rank: str | None) -> Rank | None:
    """Map a rank to the hierarchy field it is recorded in."""
    lower = (rank or "").strip().lower()
    if lower in RANKS:
        return lower  # type: ignore[return-value]
    return _ANCHORS.get(lower)


def ranks_below(rank: Rank) -> tuple[Rank, ...]:
    return RANKS[RANKS.index(rank) + 1 :]


def ranks_above(rank: Rank) -> tuple[Rank, ...]:
    return RANKS[: RANKS.index(rank)]


def has_higher_taxonomy_context(record: TaxonRecord | None) -> bool:
    if record is None:
        return False
    return bool(record.order or record.family or record.genus)


def deepest_rank_value(record: TaxonRecord | None) -> str | None:
    if record is None:
        return None
    if record.species and not looks_like_morphospecies_code(record.species):
        return record.species
    for rank in reversed(RANKS[:-1]):
        value = record.rank_value(rank)
        if value:
            return value
    return None


def deepest_rank(record: TaxonRecord) -> Rank | None:
    for rank in reversed(RANKS):
        if record.rank_value(rank):
            return rank
    return None


def set_rank_value(record: TaxonRecord, rank: Rank, value: str | None) -> TaxonRecord:
    attr = "class_" if rank == "class" else rank
    return replace(record, **{attr: value})


def has_rank_id(record: TaxonRecord | None, rank: Rank) -> bool:
    if record is None:
        return False
    value = record.rank_keys.get(rank)
    if value is None:
        return False
    text = str(value).strip().upper()
    return text not in ("", "NA")


def detect_missing_ranks(record: TaxonRecord) -> list[MissingRank]:
    """Ranks above the record's own rank lacking a name or a rank key."""
    if record.rank not in RANKS:
        return []

    missing: list[MissingRank] = []
    for expected in ranks_above(record.rank):  # type: ignore[arg-type]
        has_name = bool((record.rank_value(expected) or "").strip())
        has_id = has_rank_id(record, expected)
        if not has_name or not has_id:
            missing.append(MissingRank(rank=expected, missing_name=not has_name, missing_id=not has_id))
    return missing


def has_taxonomy_gaps(record: TaxonRecord) -> bool:
    return bool(detect_missing_ranks(record))


def fill_rank_gaps(record: TaxonRecord, values: dict[Rank, tuple[str, str]]) -> TaxonRecord:
    """Apply user-supplied (name, id) pairs to the ranks they belong to."""
    filled = replace(record, rank_keys=dict(record.rank_keys))
    for rank, (name, rank_id) in values.items():
        if rank not in RANKS:
            continue
        name = name.strip()
        rank_id = rank_id.strip()
        if name:
            filled = set_rank_value(filled, rank, name)
        if rank_id:
            filled.rank_keys[rank] = int(rank_id) if rank_id.isdigit() else rank_id
    return filled


def genus_species_name(genus: str | None, species: str) -> str:
    if not genus:
        return species
    if species.lower().startswith(genus.lower()):
        return species
    return f"{genus} {species}".strip()


__all__ = [
    "EXTENDED_HIERARCHY",
    "MissingRank",
    "RANKS",
    "RANK_PRIORITY",
    "anchor_rank",
    "deepest_rank",
    "deepest_rank_value",
    "detect_missing_ranks",
    "fill_rank_gaps",
    "genus_species_name",
    "has_higher_taxonomy_context",
    "has_rank_id",
    "has_taxonomy_gaps",
    "is_rank_higher_than_species",
    "rank_index",
    "rank_priority",
    "ranks_above",
    "ranks_below",
    "set_rank_value",
]
