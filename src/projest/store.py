"""JSON-file persistence for projects, estimations, team members and resources."""
from __future__ import annotations

import json
import logging
import uuid
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional

from .errors import StoreError
from .models import Estimation, Project, Resource, TeamMember

logger = logging.getLogger(__name__)

COLLECTIONS = {
    "projects": Project,
    "estimations": Estimation,
    "team_members": TeamMember,
    "resources": Resource,
}


class JsonStore:
    """
    Explicitly constructed persistence handle.

    Records are kept per collection keyed by id and written back to ``path`` on
    every change. ``path=None`` keeps everything in memory. Saving a record
    whose id already exists replaces it outright (last writer wins).
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else None
        self._data: Dict[str, Dict[str, dict]] = {name: {} for name in COLLECTIONS}
        if self.path is not None and self.path.exists():
            self._data.update(self._read(self.path))

    @staticmethod
    def _read(path: Path) -> Dict[str, Dict[str, dict]]:
        try:
            with path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as exc:
            raise StoreError(f"Unable to read store {path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise StoreError(f"Store {path} does not contain a JSON object")
        return {name: dict(raw.get(name) or {}) for name in COLLECTIONS}

    def save_file(self) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, sort_keys=True)
        except OSError as exc:
            raise StoreError(f"Unable to write store {self.path}: {exc}") from exc

    @staticmethod
    def _model(collection: str):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise StoreError(f"Unknown collection {collection!r}") from None

    def fetch_all_by_owner(self, collection: str, owner_id: Optional[str]) -> List:
        model = self._model(collection)
        return [
            model.from_dict(data)
            for data in self._data[collection].values()
            if owner_id is None or data.get("owner_id") == owner_id
        ]

    def fetch_by_id(self, collection: str, record_id: str):
        model = self._model(collection)
        data = self._data[collection].get(record_id)
        return model.from_dict(data) if data is not None else None

    def save(self, collection: str, record):
        """Insert or replace ``record``; an id is assigned when it has none."""

        model = self._model(collection)
        if not isinstance(record, model):
            record = model.from_dict(record)
        if not record.id:
            record = replace(record, id=uuid.uuid4().hex)
        elif record.id in self._data[collection]:
            logger.debug("Replacing %s/%s", collection, record.id)
        self._data[collection][record.id] = record.to_dict()
        self.save_file()
        return record

    def delete(self, collection: str, record_id: str) -> bool:
        self._model(collection)
        removed = self._data[collection].pop(record_id, None) is not None
        if removed:
            self.save_file()
        return removed


__all__ = ["COLLECTIONS", "JsonStore"]
