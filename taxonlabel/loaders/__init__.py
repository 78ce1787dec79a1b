from __future__ import annotations

import hashlib
from pathlib import Path

import structlog

from ..keys import dedupe_by_key
from ..models import SpeciesList
from .base import SpeciesListLoader
from .csv_rows import CsvSpeciesListLoader, records_from_row

logger = structlog.get_logger()

_LOADERS: list[SpeciesListLoader] = [CsvSpeciesListLoader()]


def load_rows(path: Path, *, max_file_size_mb: float = 50.0) -> list[dict[str, str]]:
    for loader in _LOADERS:
        if loader.supports(path):
            return loader.load(path, max_file_size_mb=max_file_size_mb)

    raise ValueError(f"Unsupported file format: {path.suffix}")


def load_species_list(
    path: Path,
    *,
    name: str | None = None,
    max_file_size_mb: float = 50.0,
) -> SpeciesList:
    rows = load_rows(path, max_file_size_mb=max_file_size_mb)
    records = dedupe_by_key(record for row in rows for record in records_from_row(row))

    resolved = path.resolve()
    list_id = hashlib.sha256(str(resolved).encode("utf-8")).hexdigest()[:16]
    default_name, doi = names_from_file(path)
    species_list = SpeciesList(
        id=list_id,
        name=name or default_name,
        records=tuple(records),
        source_path=str(resolved),
        doi=doi,
    )
    logger.info(
        "species_list_loaded",
        list_id=list_id,
        path=str(resolved),
        rows=len(rows),
        records=species_list.record_count,
    )
    return species_list


def names_from_file(path: Path) -> tuple[str, str]:
    """Display name and DOI from ``SpeciesList_<region>_<source>_<doi>.csv``.

    Other file names are used as-is with no DOI.
    """
    stem = path.stem
    if not stem.startswith("SpeciesList_"):
        return stem, ""
    parts = stem.removeprefix("SpeciesList_").split("_")
    if len(parts) < 2:
        return stem, ""
    doi = parts[2] if len(parts) > 2 else ""
    return f"{parts[0]} - {parts[1]}", doi


__all__ = [
    "CsvSpeciesListLoader",
    "SpeciesListLoader",
    "load_rows",
    "load_species_list",
    "names_from_file",
    "records_from_row",
]
