from __future__ import annotations

import threading

import structlog

from .index import TaxonomyIndex
from .models import SpeciesList

logger = structlog.get_logger()


class SpeciesListRegistry:
    """Holds the ingested species lists and which list each project uses.

    Replacing or removing a list invalidates its index entry before the new
    records become visible to searches.
    """

    def __init__(self, index: TaxonomyIndex | None = None) -> None:
        self.index = index if index is not None else TaxonomyIndex()
        self._lists: dict[str, SpeciesList] = {}
        self._selection: dict[str, str] = {}
        self._lock = threading.Lock()

    def put(self, species_list: SpeciesList) -> None:
        with self._lock:
            replaced = species_list.id in self._lists
            self.index.invalidate(species_list.id)
            self._lists[species_list.id] = species_list
        logger.info(
            "species_list_registered",
            list_id=species_list.id,
            records=species_list.record_count,
            replaced=replaced,
        )

    def remove(self, list_id: str) -> None:
        with self._lock:
            self.index.forget(list_id)
            self._lists.pop(list_id, None)
            for project_id in [p for p, selected in self._selection.items() if selected == list_id]:
                del self._selection[project_id]

    def get(self, list_id: str | None) -> SpeciesList | None:
        if not list_id:
            return None
        return self._lists.get(list_id)

    def lists(self) -> list[SpeciesList]:
        return list(self._lists.values())

    def select_for_project(self, project_id: str, list_id: str) -> None:
        if not project_id or not list_id:
            return
        self._selection[project_id] = list_id

    def selected_list_id(self, project_id: str | None) -> str | None:
        if not project_id:
            return None
        return self._selection.get(project_id)

    def selection(self) -> dict[str, str]:
        return dict(self._selection)


__all__ = ["SpeciesListRegistry"]
