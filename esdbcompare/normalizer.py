"""Stage 2: Normalization of raw diff output."""

from __future__ import annotations

import logging
from typing import Any, Iterator

from .differ import data_type_for
from .exceptions import DuplicatePathError
from .models import ChangeType, DataType, RawDelta
from .utils import element_keys, to_jsonpath

logger = logging.getLogger(__name__)


class DeltaNormalizer:
    """
    Normalizes raw deltas so that each one addresses a single elementary change.

    Stages:
    1. Flatten: expand compound modifications (a container replaced by a
       value of another kind) into one delete per old child and one add per
       new child; a collection field missing on one side is expanded into
       its elements the same way
    2. Same-path merge: an element deleted and added at the same path is a
       single modification
    """

    def __init__(self, identity_key: str = "id"):
        self.identity_key = identity_key

    def normalize(self, deltas: list[RawDelta]) -> list[RawDelta]:
        return self.merge_same_path(self.flatten(deltas))

    def flatten(self, deltas: list[RawDelta]) -> list[RawDelta]:
        result = []
        for delta in deltas:
            if self._is_compound(delta):
                result.extend(self._expand(delta))
            else:
                result.append(delta)
        return result

    def merge_same_path(self, deltas: list[RawDelta]) -> list[RawDelta]:
        """
        Merge deltas sharing a path.

        A single delta passes through. A pair (one add and one delete from an
        array slot) becomes one ``modify`` carrying the first delta's fields.
        More than two deltas at one path cannot come out of a sound diff and
        raise ``DuplicatePathError``.
        """
        groups: dict[tuple, list[RawDelta]] = {}
        for delta in deltas:
            groups.setdefault(delta.path, []).append(delta)

        result = []
        for path, group in groups.items():
            if len(group) == 1:
                result.append(group[0])
                continue
            if len(group) == 2:
                first, second = group
                merged = first.replace(type=ChangeType.MODIFY)
                if merged.value is None:
                    merged.value = second.value
                if merged.original_value is None:
                    merged.original_value = second.original_value
                logger.debug("Merged %s and %s at %s into modify",
                             first.type.value, second.type.value, to_jsonpath(path))
                result.append(merged)
                continue
            raise DuplicatePathError(to_jsonpath(path), len(group))
        return result

    @staticmethod
    def _is_compound(delta: RawDelta) -> bool:
        if delta.data_type is DataType.ARRAY:
            return False
        if delta.type is ChangeType.MODIFY:
            return _has_children(delta.original_value) or _has_children(delta.value)
        # A collection field present on one side only
        side = delta.value if delta.type is ChangeType.ADD else delta.original_value
        return isinstance(side, list) and len(side) > 0

    def _expand(self, delta: RawDelta) -> Iterator[RawDelta]:
        if delta.type is not ChangeType.ADD:
            yield from self._leaves(delta.path, ChangeType.DELETE, delta.original_value)
        if delta.type is not ChangeType.DELETE:
            yield from self._leaves(delta.path, ChangeType.ADD, delta.value)

    def _leaves(self, path: tuple, change: ChangeType, value: Any) -> Iterator[RawDelta]:
        if not _has_children(value):
            yield self._elementary(path, change, value)
        elif isinstance(value, dict):
            for key, child in value.items():
                yield self._elementary(path + (key,), change, child)
        else:
            for key, child in zip(element_keys(value, self.identity_key), value):
                yield self._elementary(path + (key,), change, child)

    @staticmethod
    def _elementary(path: tuple, change: ChangeType, value: Any) -> RawDelta:
        if change is ChangeType.ADD:
            return RawDelta(path, change, data_type_for(path, value), value=value)
        return RawDelta(path, change, data_type_for(path, value), original_value=value)


def _has_children(value: Any) -> bool:
    return isinstance(value, (dict, list)) and len(value) > 0
