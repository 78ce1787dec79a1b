from __future__ import annotations

from pathlib import Path
from typing import Protocol


class SpeciesListLoader(Protocol):
    def supports(self, path: Path) -> bool:
        ...

    def load(self, path: Path, *, max_file_size_mb: float) -> list[dict[str, str]]:
        ...
