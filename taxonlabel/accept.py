from __future__ import annotations

from dataclasses import dataclass, field

from .models import DetectionState, TaxonRecord
from .search import SpeciesSearchEngine


@dataclass(slots=True)
class AcceptError:
    detection_id: str
    message: str


@dataclass(slots=True)
class AcceptGroup:
    order: str
    species_list_id: str
    ids: list[str] = field(default_factory=list)


@dataclass(slots=True)
class AcceptPlan:
    groups: list[AcceptGroup] = field(default_factory=list)
    errors: list[AcceptError] = field(default_factory=list)


@dataclass(slots=True)
class OrderResolution:
    taxon: TaxonRecord | None
    error_ids: list[str] = field(default_factory=list)
    error_message: str | None = None


def project_id_from_night_id(night_id: str | None) -> str | None:
    if not night_id:
        return None
    head = night_id.strip("/").split("/", 1)[0]
    return head or None


def group_for_accept(
    detection_ids: list[str],
    detections: dict[str, DetectionState],
    selection_by_project: dict[str, str],
) -> AcceptPlan:
    """Group detections by (species list, order) ahead of a bulk accept.

    Unknown ids are ignored. Detections without an order or whose project has
    no species list selected are reported as errors instead of grouped.
    """
    plan = AcceptPlan()
    groups: dict[tuple[str, str], AcceptGroup] = {}

    for detection_id in detection_ids:
        detection = detections.get(detection_id)
        if detection is None:
            continue

        order = detection.taxon.order if detection.taxon is not None else None
        if not order:
            plan.errors.append(
                AcceptError(detection_id, "Cannot accept: detection missing order")
            )
            continue

        project_id = project_id_from_night_id(detection.night_id)
        list_id = selection_by_project.get(project_id) if project_id else None
        if not list_id:
            plan.errors.append(
                AcceptError(detection_id, "Cannot accept: no species list selected for project")
            )
            continue

        group = groups.get((list_id, order))
        if group is None:
            group = groups[(list_id, order)] = AcceptGroup(order=order, species_list_id=list_id)
        group.ids.append(detection_id)

    plan.groups = list(groups.values())
    return plan


def resolve_order_taxon(engine: SpeciesSearchEngine, group: AcceptGroup) -> OrderResolution:
    results = engine.search(group.species_list_id, group.order, limit=1)
    if not results:
        return OrderResolution(
            taxon=None,
            error_ids=list(group.ids),
            error_message=f"Cannot accept: order '{group.order}' not found in species list",
        )
    return OrderResolution(taxon=results[0])


__all__ = [
    "AcceptError",
    "AcceptGroup",
    "AcceptPlan",
    "OrderResolution",
    "group_for_accept",
    "project_id_from_night_id",
    "resolve_order_taxon",
]
