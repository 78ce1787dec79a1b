from __future__ import annotations

import csv
import io
from pathlib import Path

from charset_normalizer import from_bytes

from ..models import Rank, TaxonRecord
from ..normalizer import looks_like_morphospecies_code, normalize_taxon_value
from ..ranks import RANKS, genus_species_name

_FALLBACK_ENCODINGS = ("cp1252", "latin-1")

_TAXON_ID_KEYS = ("taxonID", "taxonKey")
_ACCEPTED_KEY_KEYS = ("acceptedTaxonKey", "acceptedNameUsageID")


class CsvSpeciesListLoader:
    def supports(self, path: Path) -> bool:
        return path.suffix.lower() in {".csv", ".tsv"}

    def load(self, path: Path, *, max_file_size_mb: float) -> list[dict[str, str]]:
        if not path.exists():
            raise FileNotFoundError(f"Species list not found: {path}")

        size_bytes = path.stat().st_size
        max_bytes = int(max_file_size_mb * 1024 * 1024)
        if size_bytes > max_bytes:
            size_mb = size_bytes / (1024 * 1024)
            raise ValueError(
                f"Species list exceeds maximum size ({max_file_size_mb:.1f} MB). "
                f"Current: {size_mb:.1f} MB."
            )

        data = path.read_bytes()
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError:
            text = _decode_with_fallback(data)

        delimiter = _detect_delimiter(text, default="\t" if path.suffix.lower() == ".tsv" else ",")
        reader = csv.DictReader(io.StringIO(text, newline=""), delimiter=delimiter)
        return [
            {key.strip(): value for key, value in row.items() if key is not None}
            for row in reader
        ]


def records_from_row(row: dict[str, object]) -> list[TaxonRecord]:
    """One record per rank filled in on a species-list row.

    Each record carries the hierarchy down to its own rank. Only the species
    record keeps a scientific name; higher-rank records get an empty one.
    """
    lower = {str(key).strip().lower(): value for key, value in row.items() if key is not None}

    values: dict[Rank, str | None] = {
        rank: normalize_taxon_value(_text(lower, rank)) for rank in RANKS
    }
    rank_keys: dict[Rank, str | int] = {}
    for rank in RANKS:
        key = _identifier(lower, (f"{rank}Key",))
        if key is not None:
            rank_keys[rank] = key

    general_id = _identifier(lower, _TAXON_ID_KEYS)
    accepted_key = _identifier(lower, _ACCEPTED_KEY_KEYS)
    accepted_name = _text(lower, "acceptedScientificName")
    status = _text(lower, "taxonomicStatus")
    iucn = _text(lower, "iucnRedListCategory")
    vernacular = _text(lower, "vernacularName")

    records: list[TaxonRecord] = []
    for depth, rank in enumerate(RANKS):
        value = values[rank]
        if value is None:
            continue
        if rank == "species" and looks_like_morphospecies_code(value):
            continue

        hierarchy = {
            ("class_" if level == "class" else level): values[level]
            for level in RANKS[: depth + 1]
        }
        is_species = rank == "species"
        records.append(
            TaxonRecord(
                scientific_name=genus_species_name(values["genus"], value) if is_species else "",
                taxon_rank=rank,
                taxonomic_status=status,
                taxon_id=rank_keys.get(rank, general_id),
                accepted_taxon_key=accepted_key,
                accepted_scientific_name=accepted_name,
                vernacular_name=vernacular if is_species else None,
                iucn_red_list_category=iucn,
                rank_keys={level: rank_keys[level] for level in RANKS[: depth + 1] if level in rank_keys},
                **hierarchy,
            )
        )
    return records


def _text(lower: dict[str, object], key: str) -> str | None:
    value = lower.get(key.lower())
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _identifier(lower: dict[str, object], keys: tuple[str, ...]) -> str | int | None:
    for key in keys:
        value = lower.get(key.lower())
        if value is None:
            continue
        if isinstance(value, int):
            return value
        text = str(value).strip()
        if not text:
            continue
        return int(text) if text.isdigit() else text
    return None


def _detect_delimiter(text: str, *, default: str) -> str:
    header = text.split("\n", 1)[0]
    try:
        return csv.Sniffer().sniff(header, delimiters=",\t;").delimiter
    except csv.Error:
        return default


def _decode_with_fallback(data: bytes) -> str:
    best = from_bytes(data).best()
    candidates: list[str] = []
    if best is not None and best.encoding:
        candidates.append(best.encoding)
    candidates.extend(_FALLBACK_ENCODINGS)

    for encoding in candidates:
        try:
            return data.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            continue

    raise ValueError("Unable to detect species list encoding. Please convert the file to UTF-8.")


__all__ = ["CsvSpeciesListLoader", "records_from_row"]
