"""Stage 1: Identity-aware diffing and patching of entity trees."""

from __future__ import annotations

from typing import Any

from .models import ChangeType, DataType, Identity, RawDelta
from .utils import deep_copy, element_keys, get_in, is_container, values_equal


class DiffEngine:
    """
    Computes a structural diff of two nested values.

    Handles:
    - Objects, key by key
    - Arrays of identified objects, matched by identity key (order ignored)
    - Arrays of other values, matched by value (order ignored)
    - Scalars and type changes as a single modification

    Changes are addressed by paths of field names, ``Identity`` keys and,
    for elements without identity, indexes.
    """

    def __init__(self, identity_key: str = "id"):
        self.identity_key = identity_key

    def diff(self, left: Any, right: Any) -> list[RawDelta]:
        """
        Perform deep diff comparison.

        Args:
            left: The baseline value (system of record)
            right: The value compared against it (search index)

        Returns:
            Flat list of raw deltas, in traversal order
        """
        deltas: list[RawDelta] = []
        self._diff(left, right, (), deltas)
        return deltas

    def _diff(self, old: Any, new: Any, path: tuple, deltas: list[RawDelta]):
        # Dispatch by type
        if isinstance(old, dict) and isinstance(new, dict):
            self._diff_objects(old, new, path, deltas)
        elif isinstance(old, list) and isinstance(new, list):
            self._diff_arrays(old, new, path, deltas)
        elif is_container(old) or is_container(new) or not values_equal(old, new):
            deltas.append(RawDelta(
                path=path,
                type=ChangeType.MODIFY,
                data_type=data_type_for(path, old, new),
                value=new,
                original_value=old,
            ))

    def _diff_objects(self, old: dict, new: dict, path: tuple, deltas: list[RawDelta]):
        """Compare two objects."""
        for key, old_value in old.items():
            child_path = path + (key,)
            if key not in new:
                deltas.append(RawDelta(
                    path=child_path,
                    type=ChangeType.DELETE,
                    data_type=data_type_for(child_path, old_value),
                    original_value=old_value,
                ))
                continue

            # Both have the key - recurse
            self._diff(old_value, new[key], child_path, deltas)

        for key, new_value in new.items():
            if key in old:
                continue
            child_path = path + (key,)
            deltas.append(RawDelta(
                path=child_path,
                type=ChangeType.ADD,
                data_type=data_type_for(child_path, new_value),
                value=new_value,
            ))

    def _diff_arrays(self, old: list, new: list, path: tuple, deltas: list[RawDelta]):
        """Compare arrays, matching identified elements by identity and the rest by value."""
        old_keys = element_keys(old, self.identity_key)
        new_keys = element_keys(new, self.identity_key)

        new_by_identity = {
            key: new[j] for j, key in enumerate(new_keys) if isinstance(key, Identity)
        }

        # Unidentified elements: pairwise matching by value
        new_matched = [
            isinstance(key, Identity) for key in new_keys
        ]

        for i, (key, old_item) in enumerate(zip(old_keys, old)):
            if isinstance(key, Identity):
                if key in new_by_identity:
                    self._diff(old_item, new_by_identity[key], path + (key,), deltas)
                else:
                    self._add_element_delta(deltas, path + (key,), ChangeType.DELETE, old_item)
                continue

            for j, new_item in enumerate(new):
                if new_matched[j]:
                    continue
                if self._items_equal(old_item, new_item):
                    new_matched[j] = True
                    break
            else:
                self._add_element_delta(deltas, path + (i,), ChangeType.DELETE, old_item)

        old_identities = {key for key in old_keys if isinstance(key, Identity)}
        for j, (key, new_item) in enumerate(zip(new_keys, new)):
            if isinstance(key, Identity):
                if key not in old_identities:
                    self._add_element_delta(deltas, path + (key,), ChangeType.ADD, new_item)
            elif not new_matched[j]:
                self._add_element_delta(deltas, path + (j,), ChangeType.ADD, new_item)

    def _items_equal(self, old: Any, new: Any) -> bool:
        """Check if two items are equal (for unidentified array elements)."""
        # Use a scratch list so nothing leaks into the caller's deltas
        scratch: list[RawDelta] = []
        self._diff(old, new, (), scratch)
        return not scratch

    @staticmethod
    def _add_element_delta(deltas: list[RawDelta], path: tuple, change: ChangeType, item: Any):
        if change is ChangeType.ADD:
            deltas.append(RawDelta(path, change, DataType.ARRAY, value=item))
        else:
            deltas.append(RawDelta(path, change, DataType.ARRAY, original_value=item))

    def apply(self, base: Any, deltas: list[RawDelta]) -> Any:
        """
        Replay deltas produced by ``diff(base, other)`` onto a copy of ``base``.

        The result equals ``other`` under identity-aware structural equality;
        identified elements keep the order they had in ``base`` and added ones
        are appended.
        """
        result = deep_copy(base)

        # Array element changes are grouped per array so that indexes resolve
        # against the original positions.
        array_changes: dict[tuple, list[RawDelta]] = {}
        for delta in deltas:
            if not delta.path:
                # The whole value was replaced
                return deep_copy(delta.value)
            if isinstance(delta.path[-1], (Identity, int)):
                array_changes.setdefault(delta.path[:-1], []).append(delta)
            else:
                self._apply_field(result, delta)

        for array_path, changes in array_changes.items():
            self._apply_array(result, array_path, changes)

        return result

    def _apply_field(self, result: Any, delta: RawDelta):
        parent = get_in(result, delta.path[:-1])
        if not isinstance(parent, dict):
            raise ValueError(f"Cannot apply {delta.type.value} at {delta.json_path}")

        key = delta.path[-1]
        if delta.type is ChangeType.DELETE:
            parent.pop(key, None)
        else:
            parent[key] = deep_copy(delta.value)

    def _apply_array(self, result: Any, array_path: tuple, changes: list[RawDelta]):
        items = get_in(result, array_path)
        if not isinstance(items, list):
            raise ValueError(f"Cannot apply array changes at {array_path!r}")

        removed = {d.path[-1] for d in changes if d.type is ChangeType.DELETE}
        kept = [
            item for key, item in zip(element_keys(items, self.identity_key), items)
            if key not in removed
        ]

        positional = sorted(
            (d for d in changes if d.type is ChangeType.ADD and isinstance(d.path[-1], int)),
            key=lambda d: d.path[-1],
        )
        for delta in positional:
            kept.insert(delta.path[-1], deep_copy(delta.value))
        for delta in changes:
            if delta.type is ChangeType.ADD and isinstance(delta.path[-1], Identity):
                kept.append(deep_copy(delta.value))

        # Replace in place so enclosing containers keep pointing at the list
        items[:] = kept


def data_type_for(path: tuple, *values: Any) -> DataType:
    """Data type of a change: array element, container-valued field or scalar field."""
    if path and isinstance(path[-1], (Identity, int)):
        return DataType.ARRAY
    if any(is_container(value) for value in values):
        return DataType.OBJECT
    return DataType.SCALAR
