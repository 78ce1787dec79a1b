from __future__ import annotations

from taxonlabel.models import TaxonRecord
from taxonlabel.ranks import (
    anchor_rank,
    deepest_rank,
    deepest_rank_value,
    detect_missing_ranks,
    fill_rank_gaps,
    genus_species_name,
    has_higher_taxonomy_context,
    has_taxonomy_gaps,
    is_rank_higher_than_species,
    rank_index,
    rank_priority,
    ranks_above,
    ranks_below,
)


def test_rank_priority_prefers_genus_then_species() -> None:
    assert rank_priority("genus") < rank_priority("species") < rank_priority("family")
    assert rank_priority("order") < rank_priority("kingdom")
    assert rank_priority(None) == rank_priority("tribe") == 99


def test_extended_hierarchy_index() -> None:
    assert rank_index("order") < rank_index("suborder") < rank_index("family")
    assert rank_index("tribe") < rank_index("genus")
    assert rank_index("unknown") == rank_index(None)


def test_is_rank_higher_than_species() -> None:
    assert is_rank_higher_than_species("genus")
    assert is_rank_higher_than_species("Subfamily")
    assert not is_rank_higher_than_species("species")
    assert not is_rank_higher_than_species(None)


def test_anchor_rank_maps_informal_ranks() -> None:
    assert anchor_rank("suborder") == "order"
    assert anchor_rank("subfamily") == "family"
    assert anchor_rank("tribe") == "genus"
    assert anchor_rank("Order") == "order"
    assert anchor_rank("variety") is None


def test_ranks_above_and_below() -> None:
    assert ranks_above("order") == ("kingdom", "phylum", "class")
    assert ranks_below("genus") == ("species",)


def test_has_higher_taxonomy_context() -> None:
    assert has_higher_taxonomy_context(TaxonRecord(family="Muscidae"))
    assert not has_higher_taxonomy_context(TaxonRecord(class_="Insecta"))
    assert not has_higher_taxonomy_context(None)


def test_deepest_rank_value_skips_morphospecies_codes() -> None:
    record = TaxonRecord(order="Diptera", genus="Lispe", species="sp1")

    assert deepest_rank_value(record) == "Lispe"
    assert deepest_rank(record) == "species"


def test_detect_missing_ranks() -> None:
    record = TaxonRecord(
        taxon_rank="family",
        kingdom="Animalia",
        phylum="Arthropoda",
        class_="Insecta",
        order="Diptera",
        family="Muscidae",
        rank_keys={"kingdom": 1, "phylum": 54, "class": 216},
    )

    missing = detect_missing_ranks(record)

    assert [m.rank for m in missing] == ["order"]
    assert missing[0].missing_id and not missing[0].missing_name
    assert has_taxonomy_gaps(record)


def test_fill_rank_gaps_sets_name_and_numeric_id() -> None:
    record = TaxonRecord(taxon_rank="family", family="Muscidae")

    filled = fill_rank_gaps(record, {"order": (" Diptera ", "811")})

    assert filled.order == "Diptera"
    assert filled.rank_keys == {"order": 811}
    assert record.rank_keys == {}


def test_genus_species_name() -> None:
    assert genus_species_name("Zelus", "longipes") == "Zelus longipes"
    assert genus_species_name("Zelus", "Zelus longipes") == "Zelus longipes"
    assert genus_species_name(None, "longipes") == "longipes"
