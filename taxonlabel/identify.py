from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace

import structlog

from .merge import assign_morphospecies, merge
from .models import DetectionState, TaxonRecord
from .normalizer import looks_like_morphospecies_code
from .ranks import deepest_rank_value, genus_species_name

logger = structlog.get_logger()

ERROR_LABEL = "ERROR"


@dataclass(slots=True)
class TaxonInput:
    taxon: TaxonRecord
    label: str | None = None


@dataclass(slots=True)
class MorphospeciesInput:
    text: str


@dataclass(slots=True)
class ErrorInput:
    pass


@dataclass(slots=True)
class AcceptInput:
    pass


IdentificationInput = TaxonInput | MorphospeciesInput | ErrorInput | AcceptInput


@dataclass(slots=True)
class IdentificationContext:
    species_list_id: str | None = None
    species_list_doi: str | None = None


@dataclass(slots=True)
class IdentificationResult:
    detection: DetectionState
    changed: bool
    skipped: bool
    skip_reason: str = ""


@dataclass(slots=True)
class BatchIdentification:
    updated: dict[str, DetectionState] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)
    skip_reasons: dict[str, str] = field(default_factory=dict)


def final_label(
    taxon: TaxonRecord | None,
    label: str | None = None,
    morphospecies: str | None = None,
) -> str:
    """Label shown for a detection; the taxonomy wins over a typed label."""
    if taxon is not None and taxon.has_taxon_fields():
        if taxon.taxon_rank == "species":
            return taxon.scientific_name or ""
        return (
            taxon.genus
            or taxon.family
            or taxon.order
            or taxon.scientific_name
            or (label or "").strip()
        )
    if morphospecies:
        return morphospecies
    return (label or "").strip()


def display_name(detection: DetectionState) -> str:
    if detection.morphospecies:
        return detection.morphospecies

    taxon = detection.taxon
    species = species_for_export(taxon, detection.morphospecies)
    if species and taxon is not None and taxon.genus:
        return genus_species_name(taxon.genus, species)

    return deepest_rank_value(taxon) or detection.label or ""


def species_for_export(taxon: TaxonRecord | None, morphospecies: str | None) -> str:
    """True species epithet only; morphospecies codes never leak into it."""
    if morphospecies or taxon is None:
        return ""
    species = taxon.species or ""
    if looks_like_morphospecies_code(species):
        return ""
    return species


def identify_detection(
    detection: DetectionState,
    identification: IdentificationInput,
    context: IdentificationContext | None = None,
    *,
    clock: Callable[[], float] = time.time,
) -> IdentificationResult:
    context = context or IdentificationContext()

    if isinstance(identification, ErrorInput):
        return _identify_error(detection, context, clock)
    if isinstance(identification, AcceptInput):
        return _identify_accept(detection, context, clock)
    if isinstance(identification, MorphospeciesInput):
        return _identify_morphospecies(detection, identification.text, context, clock)
    if isinstance(identification, TaxonInput):
        return _identify_taxon(detection, identification, context, clock)

    return IdentificationResult(
        detection=detection, changed=False, skipped=True, skip_reason="Unknown input type"
    )


def identify_detections(
    detections: dict[str, DetectionState],
    detection_ids: list[str],
    identification: IdentificationInput,
    context: IdentificationContext | None = None,
    *,
    clock: Callable[[], float] = time.time,
) -> BatchIdentification:
    batch = BatchIdentification()
    for detection_id in detection_ids:
        existing = detections.get(detection_id)
        if existing is None:
            batch.skipped.append(detection_id)
            batch.skip_reasons[detection_id] = "Detection not found"
            continue

        result = identify_detection(existing, identification, context, clock=clock)
        if result.skipped:
            batch.skipped.append(detection_id)
            if result.skip_reason:
                batch.skip_reasons[detection_id] = result.skip_reason
        elif result.changed:
            batch.updated[detection_id] = result.detection

    if batch.skipped:
        logger.info(
            "identification_skipped",
            count=len(batch.skipped),
            reasons=sorted(set(batch.skip_reasons.values())),
        )
    return batch


def _provenance(
    detection: DetectionState,
    context: IdentificationContext,
    clock: Callable[[], float],
    **changes: object,
) -> DetectionState:
    return replace(
        detection,
        detected_by="user",
        identified_at=clock(),
        species_list_id=context.species_list_id or detection.species_list_id,
        species_list_doi=context.species_list_doi or detection.species_list_doi,
        **changes,
    )


def _identify_error(
    detection: DetectionState, context: IdentificationContext, clock: Callable[[], float]
) -> IdentificationResult:
    updated = _provenance(
        detection,
        context,
        clock,
        label=ERROR_LABEL,
        taxon=None,
        morphospecies=None,
        is_error=True,
    )
    return IdentificationResult(detection=updated, changed=True, skipped=False)


def _identify_accept(
    detection: DetectionState, context: IdentificationContext, clock: Callable[[], float]
) -> IdentificationResult:
    return IdentificationResult(
        detection=_provenance(detection, context, clock), changed=True, skipped=False
    )


def _identify_morphospecies(
    detection: DetectionState,
    text: str,
    context: IdentificationContext,
    clock: Callable[[], float],
) -> IdentificationResult:
    if not (text or "").strip():
        return IdentificationResult(
            detection=detection, changed=False, skipped=True, skip_reason="Empty morphospecies text"
        )

    merged = assign_morphospecies(detection.taxon, text)
    if merged is None:
        return IdentificationResult(
            detection=detection,
            changed=False,
            skipped=True,
            skip_reason="Morphospecies requires higher taxonomy context (order, family, or genus)",
        )

    updated = _provenance(
        detection,
        context,
        clock,
        label=merged.morphospecies,
        taxon=merged.taxon,
        morphospecies=merged.morphospecies,
        is_error=False,
    )
    return IdentificationResult(detection=updated, changed=True, skipped=False)


def _identify_taxon(
    detection: DetectionState,
    identification: TaxonInput,
    context: IdentificationContext,
    clock: Callable[[], float],
) -> IdentificationResult:
    if not identification.taxon.has_taxon_fields():
        return IdentificationResult(
            detection=detection, changed=False, skipped=True, skip_reason="No valid taxon provided"
        )

    merged = merge(detection.taxon, identification.taxon, detection.morphospecies)
    updated = _provenance(
        detection,
        context,
        clock,
        label=final_label(merged.taxon, identification.label, merged.morphospecies),
        taxon=merged.taxon,
        morphospecies=merged.morphospecies,
        is_error=False,
    )
    return IdentificationResult(detection=updated, changed=True, skipped=False)


__all__ = [
    "AcceptInput",
    "BatchIdentification",
    "ERROR_LABEL",
    "ErrorInput",
    "IdentificationContext",
    "IdentificationInput",
    "IdentificationResult",
    "MorphospeciesInput",
    "TaxonInput",
    "display_name",
    "final_label",
    "identify_detection",
    "identify_detections",
    "species_for_export",
]
