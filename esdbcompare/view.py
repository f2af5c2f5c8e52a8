"""Read-only lookup surface over the two snapshots and their merged tree."""

from __future__ import annotations

from typing import Any

from .exceptions import EntityNotFoundError
from .utils import find_by_id, get_in, to_jsonpath


class MergedView:
    """
    The DB tree, the ES tree and the DB tree with the diff re-applied.

    The merged tree holds every entity touched by a field-level change, so
    ids can be resolved there whichever side a value lives on. Built once per
    run and never mutated.
    """

    def __init__(self, db_data: Any, es_data: Any, merged: Any, identity_key: str = "id"):
        self.db_data = db_data
        self.es_data = es_data
        self.merged = merged
        self.identity_key = identity_key

    def resolve_id(self, path: tuple, model_name: str) -> Any:
        """Id of the entity at ``path`` in the merged tree."""
        return self._id_at(self.merged, path, model_name)

    def db_id(self, path: tuple, model_name: str) -> Any:
        return self._id_at(self.db_data, path, model_name)

    def es_id(self, path: tuple, model_name: str) -> Any:
        return self._id_at(self.es_data, path, model_name)

    def find(self, side: str, lookups: list[tuple[str, Any]], model_name: str) -> dict:
        """
        Walk down a side by ids.

        ``lookups`` is a list of ``(collection field, id)`` steps; the first
        collection field is ``None`` for the top-level list of root entities.
        """
        current = self.db_data if side == "db" else self.es_data
        for collection, id in lookups:
            items = current if collection is None else (current or {}).get(collection)
            current = find_by_id(items, id, self.identity_key)
            if current is None:
                raise EntityNotFoundError(model_name, id=id)
        return current

    def _id_at(self, tree: Any, path: tuple, model_name: str) -> Any:
        entity = get_in(tree, path)
        if not isinstance(entity, dict) or entity.get(self.identity_key) is None:
            raise EntityNotFoundError(model_name, path=to_jsonpath(path))
        return entity[self.identity_key]
