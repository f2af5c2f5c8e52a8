"""Stage 3: Classification of normalized deltas by entity kind and depth."""

from __future__ import annotations

import logging
from typing import Any, Optional

from .exceptions import EntityNotFoundError
from .models import (
    ChangeType,
    ClassifiedDelta,
    CompareConfig,
    DataType,
    DeltaType,
    RawDelta,
)
from .utils import to_field_locator, to_jsonpath
from .view import MergedView

logger = logging.getLogger(__name__)


class PathMatcher:
    """
    One path shape of the entity tree.

    ``matches`` decides on the path shape alone; ``classify`` turns a matching
    delta into a ``ClassifiedDelta``, or returns None when the delta is not
    reportable on its own.
    """

    def __init__(self, config: CompareConfig):
        self.config = config

    def matches(self, delta: RawDelta) -> bool:
        raise NotImplementedError

    def classify(self, delta: RawDelta, view: MergedView) -> Optional[ClassifiedDelta]:
        raise NotImplementedError

    def _missing_entity(
        self,
        delta: RawDelta,
        view: MergedView,
        model_name: str
    ) -> Optional[ClassifiedDelta]:
        """A whole entity present on one side only."""
        root_model = self.config.root_model
        if delta.type is ChangeType.DELETE:
            return ClassifiedDelta(
                type=DeltaType.DB_ONLY,
                project_id=view.db_id(delta.path[:1], root_model),
                model_name=model_name,
                id=self._entity_id(delta.original_value, delta, model_name),
                db_copy=delta.original_value,
            )
        if delta.type is ChangeType.ADD:
            return ClassifiedDelta(
                type=DeltaType.ES_ONLY,
                project_id=view.es_id(delta.path[:1], root_model),
                model_name=model_name,
                id=self._entity_id(delta.value, delta, model_name),
                es_copy=delta.value,
            )
        # An element slot modified in place carries no identity of its own
        return None

    def _mismatch(
        self,
        delta: RawDelta,
        view: MergedView,
        model_name: str,
        project_id: Any,
        id: Any,
        lookups: list[tuple[Optional[str], Any]],
        field_path: tuple
    ) -> ClassifiedDelta:
        """A field that differs on an entity present on both sides."""
        return ClassifiedDelta(
            type=DeltaType.MISMATCH,
            project_id=project_id,
            model_name=model_name,
            id=id,
            kind=delta.type,
            data_type=delta.data_type,
            path=to_field_locator(field_path),
            db_copy=view.find("db", lookups, model_name),
            es_copy=view.find("es", lookups, model_name),
        )

    def _entity_id(self, entity: Any, delta: RawDelta, model_name: str) -> Any:
        key = self.config.identity_key
        if not isinstance(entity, dict) or entity.get(key) is None:
            raise EntityNotFoundError(model_name, path=delta.json_path)
        return entity[key]


class NestedAssociationMatcher(PathMatcher):
    """Changes inside a collection nested in an association, e.g. a phase's products."""

    def matches(self, delta: RawDelta) -> bool:
        path = delta.path
        if len(path) < 5 or path[1] not in self.config.nested_associations:
            return False
        nested_collection, _ = self.config.nested_associations[path[1]]
        return path[3] == nested_collection

    def classify(self, delta: RawDelta, view: MergedView) -> Optional[ClassifiedDelta]:
        path = delta.path
        collection = path[1]
        parent_model = self.config.associations[collection]
        nested_collection, model_name = self.config.nested_associations[collection]

        sub_path = path[4:]
        if delta.data_type is DataType.ARRAY and len(sub_path) == 1:
            return self._missing_entity(delta, view, model_name)

        id = view.resolve_id(path[:5], model_name)
        parent_id = view.resolve_id(path[:3], parent_model)
        project_id = view.resolve_id(path[:1], self.config.root_model)
        lookups = [(None, project_id), (collection, parent_id), (nested_collection, id)]
        return self._mismatch(delta, view, model_name, project_id, id, lookups, sub_path[1:])


class AssociationMatcher(PathMatcher):
    """Changes inside a child collection of the root entity."""

    def matches(self, delta: RawDelta) -> bool:
        return len(delta.path) > 2 and delta.path[1] in self.config.associations

    def classify(self, delta: RawDelta, view: MergedView) -> Optional[ClassifiedDelta]:
        path = delta.path
        collection = path[1]
        model_name = self.config.associations[collection]

        sub_path = path[2:]
        if delta.data_type is DataType.ARRAY and len(sub_path) == 1:
            return self._missing_entity(delta, view, model_name)

        id = view.resolve_id(path[:3], model_name)
        project_id = view.resolve_id(path[:1], self.config.root_model)
        lookups = [(None, project_id), (collection, id)]
        return self._mismatch(delta, view, model_name, project_id, id, lookups, sub_path[1:])


class RootEntityMatcher(PathMatcher):
    """A root entity added to or removed from the top-level collection."""

    def matches(self, delta: RawDelta) -> bool:
        return len(delta.path) == 1 and delta.data_type is DataType.ARRAY

    def classify(self, delta: RawDelta, view: MergedView) -> Optional[ClassifiedDelta]:
        return self._missing_entity(delta, view, self.config.root_model)


class RootFieldMatcher(PathMatcher):
    """Any other change on a field of a root entity."""

    def matches(self, delta: RawDelta) -> bool:
        return len(delta.path) >= 2

    def classify(self, delta: RawDelta, view: MergedView) -> Optional[ClassifiedDelta]:
        model_name = self.config.root_model
        id = view.resolve_id(delta.path[:1], model_name)
        return self._mismatch(delta, view, model_name, id, id, [(None, id)], delta.path[1:])


class DeltaClassifier:
    """
    Attributes normalized deltas to entities of the project tree.

    Matchers are tried in a fixed priority order; the first whose path shape
    matches decides the outcome.
    """

    MATCHERS = (
        NestedAssociationMatcher,
        AssociationMatcher,
        RootEntityMatcher,
        RootFieldMatcher,
    )

    def __init__(self, config: Optional[CompareConfig] = None):
        self.config = config or CompareConfig()
        self.matchers = [matcher(self.config) for matcher in self.MATCHERS]

    def matcher_for(self, delta: RawDelta) -> Optional[PathMatcher]:
        for matcher in self.matchers:
            if matcher.matches(delta):
                return matcher
        return None

    def classify(self, delta: RawDelta, view: MergedView) -> Optional[ClassifiedDelta]:
        """
        Classify one delta.

        Returns None when the delta is not reportable: either its shape is
        not recognized or it only matters through a sibling path.

        Raises:
            EntityNotFoundError: an id needed to attribute the delta cannot
                be resolved
        """
        matcher = self.matcher_for(delta)
        if matcher is None:
            logger.warning("Unrecognized %s delta at %s",
                           delta.type.value, to_jsonpath(delta.path))
            return None

        classified = matcher.classify(delta, view)
        if classified is None:
            logger.debug("Dropped %s delta at %s: not reportable on its own",
                         delta.type.value, to_jsonpath(delta.path))
            return None

        logger.info("one %s found for %s with id %s",
                    classified.type.value, classified.model_name, classified.id)
        return classified
