from __future__ import annotations

from pathlib import Path

from turn_engine.catalog.singleton import init_catalog


def init_catalog_for_app() -> None:
    # project root is two levels up from this file: turn_engine/catalog/startup.py
    project_root = Path(__file__).resolve().parents[2]
    init_catalog(project_root=project_root)
