from __future__ import annotations

import re
from dataclasses import replace

from .models import TaxonRecord

_NULL_LIKE = {"na", "n/a", "null", "undefined", "na na"}
_WHITESPACE_RE = re.compile(r"\s+")
_DIGIT_RE = re.compile(r"\d")
_LETTER_RE = re.compile(r"[A-Za-z]")


def normalize_taxon_value(value: object) -> str | None:
    """Trim a raw taxonomy value; empty and null-like strings become None."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed or trimmed.lower() in _NULL_LIKE:
        return None
    return trimmed


def normalize_morpho_key(text: str | None) -> str:
    return (text or "").strip().lower()


def parse_binomial(text: str | None) -> tuple[str | None, str] | None:
    """Split "Genus epithet" into its parts.

    A single token is returned as an epithet without genus. Anything past the
    second token (authors, infraspecific names) is ignored.
    """
    if not text:
        return None
    parts = [part for part in _WHITESPACE_RE.split(text.strip()) if part]
    if not parts:
        return None
    if len(parts) == 1:
        return None, parts[0]
    return parts[0], parts[1]


def normalize_species_field(record: TaxonRecord) -> TaxonRecord:
    if not record.species or record.taxon_rank != "species":
        return record

    parsed = parse_binomial(record.species)
    if parsed is None:
        return record

    genus, epithet = parsed
    if genus is None:
        return record

    # A conflicting genus is kept; the species slot still loses the binomial.
    update_genus = not record.genus or record.genus == genus
    return replace(
        record,
        genus=genus if update_genus else record.genus,
        species=epithet,
        scientific_name=record.scientific_name or f"{genus} {epithet}",
    )


def looks_like_morphospecies_code(value: str | None) -> bool:
    if not value:
        return False
    trimmed = value.strip()
    if not trimmed:
        return False
    if trimmed.isdigit():
        return True

    digits = len(_DIGIT_RE.findall(trimmed))
    if len(trimmed) <= 4 and digits:
        return True
    letters = len(_LETTER_RE.findall(trimmed))
    return digits > 0 and digits >= letters


__all__ = [
    "looks_like_morphospecies_code",
    "normalize_morpho_key",
    "normalize_species_field",
    "normalize_taxon_value",
    "parse_binomial",
]
