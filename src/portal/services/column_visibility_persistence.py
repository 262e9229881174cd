"""Column visibility persistence per entity table.

Stores a mapping of column id -> visible bool in ``{entity}_columns.json``
under the data directory. Columns never seen before default to visible, and
an unreadable file yields the default state rather than an error.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from config import settings

__all__ = ["ColumnVisibilityState", "ColumnVisibilityPersistenceService"]

log = logging.getLogger(__name__)


@dataclass
class ColumnVisibilityState:
    visible: Dict[str, bool] = field(default_factory=dict)
    version: int = 1

    def is_visible(self, key: str) -> bool:
        return self.visible.get(key, True)

    def set_visible(self, key: str, flag: bool) -> None:
        self.visible[key] = flag

    def visible_columns(self, keys: Iterable[str]) -> List[str]:
        return [k for k in keys if self.is_visible(k)]


class ColumnVisibilityPersistenceService:
    def __init__(self, entity: str, base_dir: str | None = None):
        self.entity = entity
        self.base_dir = base_dir or settings.DATA_DIR
        self.path = os.path.join(self.base_dir, f"{entity}_columns.json")

    def load(self) -> ColumnVisibilityState:
        if not os.path.exists(self.path):
            return ColumnVisibilityState()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            log.warning("Ignoring unreadable column settings %s: %s", self.path, e)
            return ColumnVisibilityState()
        if not isinstance(raw, dict) or not isinstance(raw.get("visible", {}), dict):
            return ColumnVisibilityState()
        return ColumnVisibilityState(
            visible={str(k): bool(v) for k, v in raw.get("visible", {}).items()},
            version=raw.get("version", 1),
        )

    def save(self, state: ColumnVisibilityState) -> None:
        os.makedirs(self.base_dir, exist_ok=True)
        data = {"visible": state.visible, "version": state.version}
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
