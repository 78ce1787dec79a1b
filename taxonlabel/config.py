from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

import jsonschema
from dotenv import load_dotenv

SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "config.schema.json"
SPECIES_LIST_ENV = "TAXONLABEL_SPECIES_LIST"


@dataclass
class SearchConfig:
    default_limit: int = 20
    fuzzy_score_cutoff: float = 90.0
    fallback_min_query_length: int = 4
    fallback_max_distance: int = 2


@dataclass
class Config:
    species_list_path: str | None = None
    species_list_name: str | None = None
    max_file_size_mb: float = 50.0
    search: SearchConfig = field(default_factory=SearchConfig)


def load_config(path: Path) -> Config:
    load_dotenv()

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    data = json.loads(path.read_text(encoding="utf-8"))
    _validate_config(data)

    return Config(
        species_list_path=os.getenv(SPECIES_LIST_ENV) or data.get("species_list_path"),
        species_list_name=data.get("species_list_name"),
        max_file_size_mb=float(data.get("max_file_size_mb", Config.max_file_size_mb)),
        search=_load_search(data.get("search")),
    )


def _validate_config(data: dict) -> None:
    schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    validator = jsonschema.Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda e: list(e.path))
    if errors:
        messages = "; ".join(error.message for error in errors)
        raise ValueError(f"Invalid config: {messages}")


def _load_search(data: dict | None) -> SearchConfig:
    if not data:
        return SearchConfig()
    return SearchConfig(
        default_limit=int(data.get("default_limit", SearchConfig.default_limit)),
        fuzzy_score_cutoff=float(data.get("fuzzy_score_cutoff", SearchConfig.fuzzy_score_cutoff)),
        fallback_min_query_length=int(
            data.get("fallback_min_query_length", SearchConfig.fallback_min_query_length)
        ),
        fallback_max_distance=int(
            data.get("fallback_max_distance", SearchConfig.fallback_max_distance)
        ),
    )


__all__ = ["Config", "SPECIES_LIST_ENV", "SearchConfig", "load_config"]
