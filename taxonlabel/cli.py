from __future__ import annotations

import json
from pathlib import Path

import click

from .config import Config, load_config
from .keys import stable_key
from .loaders import load_species_list
from .logging import setup_logging
from .merge import merge
from .models import TaxonRecord
from .registry import SpeciesListRegistry
from .search import SpeciesSearchEngine


def _load_config(config_path: Path | None) -> Config:
    if config_path is None:
        return Config()
    return load_config(config_path)


def _read_record(path: Path) -> TaxonRecord | None:
    data = json.loads(path.read_text(encoding="utf-8"))
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object in {path}")
    return TaxonRecord.from_dict(data)


def _dump(payload: object) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)


@click.group()
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to configuration JSON file.",
)
@click.option(
    "--json-logs",
    is_flag=True,
    default=False,
    help="Emit logs in JSON (overrides LOG_FORMAT env).",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Show debug logs.")
@click.pass_context
def main(ctx: click.Context, config_path: Path | None, json_logs: bool, verbose: bool) -> None:
    """TaxonLabel CLI."""
    logger = setup_logging(json_mode=True if json_logs else None, verbose=verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["logger"] = logger


@main.command(name="search")
@click.argument("query")
@click.argument(
    "list_path",
    required=False,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("--limit", type=int, default=None, help="Maximum number of results.")
@click.pass_context
def search_cmd(
    ctx: click.Context,
    query: str,
    list_path: Path | None,
    limit: int | None,
) -> None:
    """Search a species list CSV and print matching records as JSON.

    Without LIST_PATH the list named by `species_list_path` in the config is used.
    """
    logger = ctx.obj["logger"]
    try:
        config = _load_config(ctx.obj["config_path"])
        if list_path is None:
            if not config.species_list_path:
                raise ValueError("No species list given and none configured")
            list_path = Path(config.species_list_path)
        species_list = load_species_list(
            list_path,
            name=config.species_list_name,
            max_file_size_mb=config.max_file_size_mb,
        )
        registry = SpeciesListRegistry()
        registry.put(species_list)
        engine = SpeciesSearchEngine(registry, config.search)

        results = engine.search(species_list.id, query, limit=limit)
        click.echo(_dump([record.to_dict() for record in results]))
    except Exception as exc:  # noqa: BLE001
        logger.error("cli_search_failed", error=str(exc))
        raise click.ClickException(str(exc)) from exc


@main.command(name="merge")
@click.argument("existing_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("incoming_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--morphospecies", default=None, help="Morphospecies already on the detection.")
@click.pass_context
def merge_cmd(
    ctx: click.Context,
    existing_path: Path,
    incoming_path: Path,
    morphospecies: str | None,
) -> None:
    """Merge an incoming identification into an existing one."""
    logger = ctx.obj["logger"]
    try:
        existing = _read_record(existing_path)
        incoming = _read_record(incoming_path)
        if incoming is None:
            raise ValueError("Incoming record must not be null")

        result = merge(existing, incoming, morphospecies)
        click.echo(
            _dump(
                {
                    "taxon": result.taxon.to_dict(),
                    "morphospecies": result.morphospecies,
                    "branch": result.branch.value,
                }
            )
        )
    except Exception as exc:  # noqa: BLE001
        logger.error("cli_merge_failed", error=str(exc))
        raise click.ClickException(str(exc)) from exc


@main.command(name="key")
@click.argument("record_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def key_cmd(record_path: Path) -> None:
    """Print the stable key of a record."""
    try:
        click.echo(stable_key(_read_record(record_path)))
    except Exception as exc:  # noqa: BLE001
        raise click.ClickException(str(exc)) from exc


if __name__ == "__main__":
    main()
