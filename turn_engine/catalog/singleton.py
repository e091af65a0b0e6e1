from __future__ import annotations

from pathlib import Path

from turn_engine.catalog.registry import GameCatalog, load_game_catalog


_CATALOG: GameCatalog | None = None


def init_catalog(*, project_root: Path) -> GameCatalog:
    """Load game definitions once and cache them.

    Safe to call multiple times; subsequent calls return the already loaded instance.
    """

    global _CATALOG
    if _CATALOG is None:
        _CATALOG = load_game_catalog(root=project_root)
    return _CATALOG


def reset_catalog_for_tests() -> None:
    global _CATALOG
    _CATALOG = None


def get_catalog() -> GameCatalog:
    if _CATALOG is None:
        raise RuntimeError("Game catalog not initialized. Call init_catalog() at startup.")
    return _CATALOG
