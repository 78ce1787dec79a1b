"""Reconcile a new taxonomic judgment with a detection's recorded one.

``classify`` decides which of the six merge situations applies and ``merge``
dispatches to a pure function per situation. Changing the value at a rank
drops everything recorded below it; adding a broader rank on top of a
morphospecies keeps the morphospecies.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum

from .models import Rank, TaxonRecord
from .normalizer import normalize_species_field, parse_binomial
from .ranks import (
    RANKS,
    anchor_rank,
    has_higher_taxonomy_context,
    is_rank_higher_than_species,
    ranks_above,
)


class MergeBranch(str, Enum):
    FULL_SPECIES = "full_species"
    RANK_CHANGED = "rank_changed"
    HIGHER_RANK_ON_MORPHOSPECIES = "higher_rank_on_morphospecies"
    PARTIAL_ON_MORPHOSPECIES = "partial_on_morphospecies"
    SPECIES_MISSING_PARENTAGE = "species_missing_parentage"
    DEFAULT = "default"


@dataclass(slots=True)
class MergeResult:
    taxon: TaxonRecord
    morphospecies: str | None = None
    branch: MergeBranch = MergeBranch.DEFAULT


_RANK_ATTRS = {rank: ("class_" if rank == "class" else rank) for rank in RANKS}
_UPPER_RANKS = ("kingdom", "phylum", "class")


def classify(
    existing: TaxonRecord | None,
    incoming: TaxonRecord,
    existing_morphospecies: str | None = None,
) -> MergeBranch:
    rank = incoming.rank
    has_genus = bool(incoming.genus)
    has_family = bool(incoming.family)
    has_order = bool(incoming.order)

    if has_genus and incoming.species and rank == "species":
        return MergeBranch.FULL_SPECIES
    if is_rank_changed(existing, incoming):
        return MergeBranch.RANK_CHANGED
    if existing_morphospecies and is_rank_higher_than_species(rank):
        return MergeBranch.HIGHER_RANK_ON_MORPHOSPECIES
    if existing_morphospecies and (has_genus or has_family or has_order):
        return MergeBranch.PARTIAL_ON_MORPHOSPECIES
    if rank == "species" and incoming.species and not (has_genus or has_family or has_order):
        return MergeBranch.SPECIES_MISSING_PARENTAGE
    return MergeBranch.DEFAULT


def is_rank_changed(existing: TaxonRecord | None, incoming: TaxonRecord) -> bool:
    anchor = anchor_rank(incoming.taxon_rank)
    if existing is None or anchor is None:
        return False
    old = existing.rank_value(anchor)
    new = incoming.rank_value(anchor)
    return old is not None and new is not None and old != new


def merge(
    existing: TaxonRecord | None,
    incoming: TaxonRecord,
    existing_morphospecies: str | None = None,
) -> MergeResult:
    branch = classify(existing, incoming, existing_morphospecies)
    result = _BRANCHES[branch](existing, incoming, existing_morphospecies)
    result.taxon = carry_metadata(result.taxon, existing, incoming)
    result.branch = branch
    return result


def assign_morphospecies(existing: TaxonRecord | None, text: str) -> MergeResult | None:
    """Attach a free-text morphospecies label to an existing judgment.

    Returns None when the label is blank or the existing judgment has no
    order, family or genus to group the morphospecies under.
    """
    label = (text or "").strip()
    if not label or existing is None or not has_higher_taxonomy_context(existing):
        return None
    taxon = replace(existing, scientific_name=existing.scientific_name or "")
    return MergeResult(taxon=taxon, morphospecies=label)


def merge_ranks(
    existing: TaxonRecord | None,
    incoming: TaxonRecord,
    *,
    keep_existing_upper: bool = False,
) -> TaxonRecord:
    """Overlay ``incoming``'s hierarchy onto ``existing``.

    Ranks above the incoming rank take the incoming value and fall back to
    the existing one. With ``keep_existing_upper`` the ranks above order
    (kingdom, phylum, class) keep the existing value instead. The incoming
    rank itself takes the incoming value. Below it, a changed rank resets to
    whatever the incoming record carries; otherwise values are filled in, and
    a species already on record wins over the incoming one unless the
    incoming rank is species.
    """
    base = existing if existing is not None else TaxonRecord()
    anchor = anchor_rank(incoming.taxon_rank)
    changed = is_rank_changed(existing, incoming)

    values: dict[str, str | None] = {}
    for rank in RANKS:
        old = base.rank_value(rank)
        new = incoming.rank_value(rank)
        if anchor is None:
            value = new or old
        elif rank in ranks_above(anchor):
            value = (old or new) if keep_existing_upper and rank in _UPPER_RANKS else (new or old)
        elif rank == anchor:
            value = new or old
        elif changed:
            value = new
        elif rank == "species" and anchor != "species":
            value = old or new
        else:
            value = new or old
        values[_RANK_ATTRS[rank]] = value

    return replace(
        base,
        scientific_name=incoming.scientific_name,
        taxon_rank=incoming.taxon_rank if anchor is not None else base.taxon_rank,
        taxonomic_status=incoming.taxonomic_status or base.taxonomic_status,
        rank_keys={**base.rank_keys, **incoming.rank_keys},
        **values,
    )


def carry_metadata(
    taxon: TaxonRecord,
    existing: TaxonRecord | None,
    incoming: TaxonRecord,
) -> TaxonRecord:
    def pick(attr: str) -> object:
        value = getattr(incoming, attr)
        if value:
            return value
        if existing is not None and getattr(existing, attr):
            return getattr(existing, attr)
        return getattr(taxon, attr)

    return replace(
        taxon,
        taxon_id=pick("taxon_id"),
        accepted_taxon_key=pick("accepted_taxon_key"),
        accepted_scientific_name=pick("accepted_scientific_name"),
        vernacular_name=pick("vernacular_name"),
    )


def _full_species(
    existing: TaxonRecord | None, incoming: TaxonRecord, morphospecies: str | None
) -> MergeResult:
    return MergeResult(taxon=normalize_species_field(incoming))


def _rank_changed(
    existing: TaxonRecord | None, incoming: TaxonRecord, morphospecies: str | None
) -> MergeResult:
    taxon = merge_ranks(existing, incoming, keep_existing_upper=True)
    if incoming.rank == "species":
        taxon = normalize_species_field(taxon)
    return MergeResult(taxon=taxon)


def _higher_rank_on_morphospecies(
    existing: TaxonRecord | None, incoming: TaxonRecord, morphospecies: str | None
) -> MergeResult:
    taxon = merge_ranks(existing, incoming)
    if incoming.rank == "genus":
        taxon = replace(taxon, species=None)
        if incoming.genus and not taxon.scientific_name:
            taxon = replace(taxon, scientific_name=incoming.genus)
    else:
        # Placeholder so the hierarchy still displays the morphospecies.
        taxon = replace(taxon, species=morphospecies)
    return MergeResult(taxon=taxon, morphospecies=morphospecies)


def _partial_on_morphospecies(
    existing: TaxonRecord | None, incoming: TaxonRecord, morphospecies: str | None
) -> MergeResult:
    taxon = replace(merge_ranks(existing, incoming), species=morphospecies)
    deepest: Rank | None = None
    for rank in ("genus", "family", "order"):
        if incoming.rank_value(rank):
            deepest = rank  # type: ignore[assignment]
            break
    if deepest is not None and not is_rank_higher_than_species(incoming.rank):
        taxon = replace(taxon, taxon_rank=deepest)
    return MergeResult(taxon=taxon, morphospecies=morphospecies)


def _species_missing_parentage(
    existing: TaxonRecord | None, incoming: TaxonRecord, morphospecies: str | None
) -> MergeResult:
    candidate = incoming
    parsed = parse_binomial(incoming.species)
    if parsed is not None and parsed[0] is not None:
        genus, epithet = parsed
        candidate = replace(
            incoming,
            genus=genus,
            species=epithet,
            scientific_name=incoming.scientific_name or f"{genus} {epithet}",
        )

    if has_higher_taxonomy_context(existing):
        taxon = normalize_species_field(merge_ranks(existing, candidate))
    else:
        taxon = normalize_species_field(candidate)
    return MergeResult(taxon=taxon)


def _default(
    existing: TaxonRecord | None, incoming: TaxonRecord, morphospecies: str | None
) -> MergeResult:
    taxon = normalize_species_field(incoming) if incoming.rank == "species" else incoming
    return MergeResult(taxon=taxon)


_BRANCHES: dict[
    MergeBranch,
    Callable[[TaxonRecord | None, TaxonRecord, str | None], MergeResult],
] = {
    MergeBranch.FULL_SPECIES: _full_species,
    MergeBranch.RANK_CHANGED: _rank_changed,
    MergeBranch.HIGHER_RANK_ON_MORPHOSPECIES: _higher_rank_on_morphospecies,
    MergeBranch.PARTIAL_ON_MORPHOSPECIES: _partial_on_morphospecies,
    MergeBranch.SPECIES_MISSING_PARENTAGE: _species_missing_parentage,
    MergeBranch.DEFAULT: _default,
}


__all__ = [
    "MergeBranch",
    "MergeResult",
    "assign_morphospecies",
    "carry_metadata",
    "classify",
    "is_rank_changed",
    "merge",
    "merge_ranks",
]
