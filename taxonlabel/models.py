from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

Rank = Literal["kingdom", "phylum", "class", "order", "family", "genus", "species"]
DetectedBy = Literal["auto", "user"]

_RANK_ATTRS: dict[str, str] = {
    "kingdom": "kingdom",
    "phylum": "phylum",
    "class": "class_",
    "order": "order",
    "family": "family",
    "genus": "genus",
    "species": "species",
}

_METADATA_KEYS: tuple[tuple[str, str], ...] = (
    ("taxon_id", "taxonID"),
    ("accepted_taxon_key", "acceptedTaxonKey"),
    ("accepted_scientific_name", "acceptedScientificName"),
    ("vernacular_name", "vernacularName"),
    ("taxonomic_status", "taxonomicStatus"),
    ("iucn_red_list_category", "iucnRedListCategory"),
)


@dataclass(slots=True)
class TaxonRecord:
    scientific_name: str = ""
    taxon_rank: str | None = None
    taxonomic_status: str | None = None
    kingdom: str | None = None
    phylum: str | None = None
    class_: str | None = None
    order: str | None = None
    family: str | None = None
    genus: str | None = None
    species: str | None = None
    taxon_id: str | int | None = None
    accepted_taxon_key: str | int | None = None
    accepted_scientific_name: str | None = None
    vernacular_name: str | None = None
    iucn_red_list_category: str | None = None
    rank_keys: dict[Rank, str | int] = field(default_factory=dict)

    @property
    def rank(self) -> str:
        return (self.taxon_rank or "").strip().lower()

    def rank_value(self, rank: str) -> str | None:
        attr = _RANK_ATTRS.get(rank.lower())
        if attr is None:
            return None
        return getattr(self, attr)

    def ranks(self) -> dict[str, str | None]:
        return {rank: getattr(self, attr) for rank, attr in _RANK_ATTRS.items()}

    def has_taxon_fields(self) -> bool:
        return bool(self.taxon_rank or self.genus or self.family or self.order or self.species)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "scientificName": self.scientific_name,
            "taxonRank": self.taxon_rank,
        }
        for rank, attr in _RANK_ATTRS.items():
            data[rank] = getattr(self, attr)
        for attr, key in _METADATA_KEYS:
            data[key] = getattr(self, attr)
        for rank, value in self.rank_keys.items():
            data[f"{rank}Key"] = value
        return data

    @staticmethod
    def from_dict(data: dict[str, Any]) -> TaxonRecord:
        rank_keys: dict[Rank, str | int] = {}
        for rank in _RANK_ATTRS:
            value = data.get(f"{rank}Key")
            if value is not None and value != "":
                rank_keys[rank] = value  # type: ignore[index]

        return TaxonRecord(
            scientific_name=str(data.get("scientificName") or ""),
            taxon_rank=data.get("taxonRank"),
            taxonomic_status=data.get("taxonomicStatus"),
            kingdom=data.get("kingdom"),
            phylum=data.get("phylum"),
            class_=data.get("class"),
            order=data.get("order"),
            family=data.get("family"),
            genus=data.get("genus"),
            species=data.get("species"),
            taxon_id=data.get("taxonID"),
            accepted_taxon_key=data.get("acceptedTaxonKey"),
            accepted_scientific_name=data.get("acceptedScientificName"),
            vernacular_name=data.get("vernacularName"),
            iucn_red_list_category=data.get("iucnRedListCategory"),
            rank_keys=rank_keys,
        )


@dataclass(frozen=True, slots=True)
class SpeciesList:
    id: str
    name: str
    records: tuple[TaxonRecord, ...] = ()
    source_path: str = ""
    doi: str = ""

    @property
    def record_count(self) -> int:
        return len(self.records)


@dataclass(slots=True)
class DetectionState:
    id: str
    taxon: TaxonRecord | None = None
    morphospecies: str | None = None
    detected_by: DetectedBy = "auto"
    label: str = ""
    is_error: bool = False
    identified_at: float | None = None
    night_id: str = ""
    species_list_id: str | None = None
    species_list_doi: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "taxon": None if self.taxon is None else self.taxon.to_dict(),
            "morphospecies": self.morphospecies,
            "detectedBy": self.detected_by,
            "label": self.label,
            "isError": self.is_error,
            "identifiedAt": self.identified_at,
            "nightId": self.night_id,
            "speciesListId": self.species_list_id,
            "speciesListDOI": self.species_list_doi,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> DetectionState:
        taxon_data = data.get("taxon")
        return DetectionState(
            id=str(data["id"]),
            taxon=None if taxon_data is None else TaxonRecord.from_dict(taxon_data),
            morphospecies=data.get("morphospecies"),
            detected_by=data.get("detectedBy", "auto"),
            label=str(data.get("label") or ""),
            is_error=bool(data.get("isError", False)),
            identified_at=data.get("identifiedAt"),
            night_id=str(data.get("nightId") or ""),
            species_list_id=data.get("speciesListId"),
            species_list_doi=data.get("speciesListDOI"),
        )


__all__ = ["DetectedBy", "DetectionState", "Rank", "SpeciesList", "TaxonRecord"]
