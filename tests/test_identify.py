from __future__ import annotations

import pytest

from taxonlabel.identify import (
    AcceptInput,
    ErrorInput,
    IdentificationContext,
    MorphospeciesInput,
    TaxonInput,
    display_name,
    final_label,
    identify_detection,
    identify_detections,
    species_for_export,
)
from taxonlabel.models import DetectionState, TaxonRecord

BASE = {"kingdom": "Animalia", "phylum": "Arthropoda", "class_": "Insecta"}
NIGHT = "project/site/deployment/night1"


def _clock() -> float:
    return 1700000000.0


def _taxon(**fields: object) -> TaxonRecord:
    return TaxonRecord(**{**BASE, **fields})  # type: ignore[arg-type]


def _detection(**fields: object) -> DetectionState:
    return DetectionState(**{"id": "patch1", "night_id": NIGHT, **fields})  # type: ignore[arg-type]


def _diptera_detection() -> DetectionState:
    return _detection(
        label="Diptera",
        taxon=_taxon(taxon_rank="order", order="Diptera", scientific_name="Diptera"),
    )


def test_morphospecies_on_auto_detection_with_order() -> None:
    result = identify_detection(
        _diptera_detection(), MorphospeciesInput("Custom Morpho A"), clock=_clock
    )

    updated = result.detection
    assert result.changed and not result.skipped
    assert updated.label == "Custom Morpho A"
    assert updated.morphospecies == "Custom Morpho A"
    assert updated.detected_by == "user"
    assert updated.identified_at == 1700000000.0
    assert updated.taxon is not None
    assert updated.taxon.order == "Diptera"
    assert updated.taxon.scientific_name == "Diptera"
    assert display_name(updated) == "Custom Morpho A"


def test_morphospecies_without_context_is_skipped() -> None:
    detection = _detection(label="Unknown")

    result = identify_detection(detection, MorphospeciesInput("Custom Morpho C"), clock=_clock)

    assert result.skipped
    assert not result.changed
    assert result.detection is detection
    assert detection.detected_by == "auto"
    assert "higher taxonomy" in result.skip_reason


def test_genus_added_to_morphospecies() -> None:
    detection = _detection(
        label="Custom Morpho A",
        detected_by="user",
        morphospecies="Custom Morpho A",
        taxon=_taxon(taxon_rank="order", order="Diptera", scientific_name="Diptera"),
    )
    incoming = _taxon(
        taxon_rank="genus", order="Diptera", family="Muscidae", genus="Lispe", scientific_name="Lispe"
    )

    updated = identify_detection(detection, TaxonInput(incoming, label="Lispe"), clock=_clock).detection

    assert updated.label == "Lispe"
    assert updated.morphospecies == "Custom Morpho A"
    assert updated.taxon is not None
    assert updated.taxon.genus == "Lispe"
    assert updated.taxon.species is None
    assert display_name(updated) == "Custom Morpho A"


def test_full_species_replaces_morphospecies() -> None:
    detection = _detection(
        label="Custom Morpho D",
        detected_by="user",
        morphospecies="Custom Morpho D",
        taxon=_taxon(
            taxon_rank="species", order="Diptera", family="Muscidae", species="Custom Morpho D"
        ),
    )
    incoming = _taxon(
        taxon_rank="species",
        order="Diptera",
        family="Muscidae",
        genus="Musca",
        species="Musca domestica",
        scientific_name="Musca domestica",
    )

    updated = identify_detection(detection, TaxonInput(incoming), clock=_clock).detection

    assert updated.label == "Musca domestica"
    assert updated.morphospecies is None
    assert display_name(updated) == "Musca domestica"


def test_error_clears_taxonomy() -> None:
    detection = _detection(
        label="Musca domestica",
        detected_by="user",
        morphospecies="Custom Morpho X",
        taxon=_taxon(taxon_rank="species", genus="Musca", species="domestica"),
    )

    updated = identify_detection(detection, ErrorInput(), clock=_clock).detection

    assert updated.label == "ERROR"
    assert updated.is_error
    assert updated.taxon is None
    assert updated.morphospecies is None
    assert updated.detected_by == "user"


def test_accept_only_changes_provenance() -> None:
    detection = _diptera_detection()
    context = IdentificationContext(species_list_id="list-1", species_list_doi="10.15468/dl.x")

    updated = identify_detection(detection, AcceptInput(), context, clock=_clock).detection

    assert updated.detected_by == "user"
    assert updated.taxon == detection.taxon
    assert updated.label == "Diptera"
    assert updated.species_list_id == "list-1"
    assert updated.species_list_doi == "10.15468/dl.x"


def test_taxon_input_without_taxon_fields_is_skipped() -> None:
    result = identify_detection(
        _diptera_detection(), TaxonInput(TaxonRecord(kingdom="Animalia")), clock=_clock
    )

    assert result.skipped
    assert result.skip_reason == "No valid taxon provided"


def test_identify_detections_reports_skips() -> None:
    detections = {
        "a": _diptera_detection(),
        "b": _detection(id="b"),
    }

    batch = identify_detections(
        detections, ["a", "b", "missing"], MorphospeciesInput("M1"), clock=_clock
    )

    assert list(batch.updated) == ["a"]
    assert batch.updated["a"].morphospecies == "M1"
    assert batch.skipped == ["b", "missing"]
    assert batch.skip_reasons["missing"] == "Detection not found"


@pytest.mark.parametrize(
    ("taxon", "label", "morphospecies", "expected"),
    [
        (_taxon(taxon_rank="species", scientific_name="Musca domestica"), "x", None, "Musca domestica"),
        (_taxon(taxon_rank="genus", order="Diptera", genus="Lispe"), "x", "M1", "Lispe"),
        (_taxon(taxon_rank="family", order="Diptera", family="Muscidae"), None, None, "Muscidae"),
        (None, " typed ", None, "typed"),
        (None, "typed", "M2", "M2"),
    ],
)
def test_final_label(
    taxon: TaxonRecord | None, label: str | None, morphospecies: str | None, expected: str
) -> None:
    assert final_label(taxon, label, morphospecies) == expected


def test_species_for_export_hides_codes() -> None:
    assert species_for_export(_taxon(species="domestica"), None) == "domestica"
    assert species_for_export(_taxon(species="sp1"), None) == ""
    assert species_for_export(_taxon(species="domestica"), "M1") == ""
    assert species_for_export(None, None) == ""


def test_display_name_falls_back_to_deepest_rank_then_label() -> None:
    assert display_name(_detection(taxon=_taxon(order="Diptera", family="Muscidae"))) == "Muscidae"
    assert display_name(_detection(label="Unknown")) == "Unknown"
