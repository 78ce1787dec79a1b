from __future__ import annotations

from pathlib import Path

import pytest

from taxonlabel.loaders import load_rows, load_species_list, names_from_file, records_from_row
from taxonlabel.loaders.csv_rows import CsvSpeciesListLoader

HEADER = "taxonKey,scientificName,taxonRank,taxonomicStatus,kingdom,kingdomKey,phylum,class,order,orderKey,family,genus,species,speciesKey"
ZELUS = "1234,Zelus longipes,SPECIES,ACCEPTED,Animalia,1,Arthropoda,Insecta,Hemiptera,809,Reduviidae,Zelus,Zelus longipes,1234"
SINEA = "2222,Sinea diadema,SPECIES,ACCEPTED,Animalia,1,Arthropoda,Insecta,Hemiptera,809,Reduviidae,Sinea,Sinea diadema,2222"


def test_records_from_row_creates_one_record_per_rank() -> None:
    row = {
        "Kingdom": "Animalia",
        "phylum": "Arthropoda",
        "class": "Insecta",
        "ORDER": "Hemiptera",
        "family": "Reduviidae",
        "genus": "Zelus",
        "species": "Zelus longipes",
        "orderKey": "809",
        "taxonKey": "1234",
        "vernacularName": "Milkweed assassin bug",
    }

    records = records_from_row(row)

    assert [r.taxon_rank for r in records] == [
        "kingdom",
        "phylum",
        "class",
        "order",
        "family",
        "genus",
        "species",
    ]
    order = records[3]
    assert order.scientific_name == ""
    assert order.family is None
    assert order.taxon_id == 809
    assert order.rank_keys == {"order": 809}
    assert order.vernacular_name is None

    species = records[-1]
    assert species.scientific_name == "Zelus longipes"
    assert species.taxon_id == 1234
    assert species.vernacular_name == "Milkweed assassin bug"
    assert species.class_ == "Insecta"


def test_records_from_row_drops_null_like_values() -> None:
    records = records_from_row({"kingdom": "Animalia", "order": "NA", "family": " ", "genus": "Zelus"})

    assert [r.taxon_rank for r in records] == ["kingdom", "genus"]
    assert records[1].order is None


def test_records_from_row_skips_morphospecies_codes() -> None:
    records = records_from_row({"kingdom": "Animalia", "genus": "Zelus", "species": "sp1"})

    assert [r.taxon_rank for r in records] == ["kingdom", "genus"]


def test_load_species_list_dedupes_rank_records(tmp_path: Path) -> None:
    path = tmp_path / "SpeciesList_Kenya_GBIF_10.15468-dl.abc.csv"
    path.write_text("\n".join([HEADER, ZELUS, SINEA]) + "\n", encoding="utf-8")

    species_list = load_species_list(path, max_file_size_mb=1.0)

    ranks = [r.taxon_rank for r in species_list.records]
    assert ranks.count("order") == 1
    assert ranks.count("genus") == 2
    assert ranks.count("species") == 2
    assert species_list.record_count == 9
    assert species_list.name == "Kenya - GBIF"
    assert species_list.doi == "10.15468-dl.abc"
    assert species_list.source_path == str(path.resolve())


def test_load_species_list_id_is_stable(tmp_path: Path) -> None:
    path = tmp_path / "list.csv"
    path.write_text("\n".join([HEADER, ZELUS]) + "\n", encoding="utf-8")

    first = load_species_list(path, name="Mine")
    second = load_species_list(path)

    assert first.id == second.id
    assert first.name == "Mine"
    assert second.name == "list"


def test_tsv_rows_are_read(tmp_path: Path) -> None:
    path = tmp_path / "list.tsv"
    path.write_text("kingdom\torder\nAnimalia\tDiptera\n", encoding="utf-8")

    rows = load_rows(path, max_file_size_mb=1.0)

    assert rows == [{"kingdom": "Animalia", "order": "Diptera"}]


def test_legacy_encoding_is_decoded(tmp_path: Path) -> None:
    path = tmp_path / "legacy.csv"
    text = "kingdom,order,vernacularName\nAnimalia,Diptera,Mouches à deux ailes\n"
    path.write_bytes(text.encode("cp1252"))

    rows = CsvSpeciesListLoader().load(path, max_file_size_mb=1.0)

    assert rows[0]["order"] == "Diptera"
    assert rows[0]["kingdom"] == "Animalia"


def test_loader_rejects_large_file(tmp_path: Path) -> None:
    path = tmp_path / "large.csv"
    path.write_bytes(b"a" * 1024)

    with pytest.raises(ValueError, match="Species list exceeds maximum size"):
        load_rows(path, max_file_size_mb=0.0001)


def test_loader_rejects_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_rows(tmp_path / "missing.csv")


def test_unsupported_format(tmp_path: Path) -> None:
    path = tmp_path / "list.xlsx"
    path.write_text("dummy", encoding="utf-8")

    with pytest.raises(ValueError, match="Unsupported file format"):
        load_rows(path)


def test_names_from_file() -> None:
    assert names_from_file(Path("SpeciesList_Panama_iNat_10.1-x.csv")) == ("Panama - iNat", "10.1-x")
    assert names_from_file(Path("plain.csv")) == ("plain", "")
