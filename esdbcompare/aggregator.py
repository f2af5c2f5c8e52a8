"""Stage 4: Aggregation of classified deltas into a report."""

from __future__ import annotations

from typing import Iterable, Optional

from .models import (
    AssociationBucket,
    ClassifiedDelta,
    CopyPool,
    DeltaType,
    ExecutionInfo,
    Report,
    ReportMeta,
    RootBucket,
)


class ReportAggregator:
    """
    Buckets classified deltas by project and entity kind.

    One aggregator accumulates a single run: feed it with ``add`` and call
    ``build`` once, or use ``aggregate`` for both.
    """

    def __init__(self, root_model: str = "Project"):
        self.root_model = root_model
        self.root_mismatch: dict = {}
        self.es_only: list[ClassifiedDelta] = []
        self.db_only: list[ClassifiedDelta] = []
        self.copies = CopyPool()
        self.ignored = 0
        self.dropped = 0
        self.unclassified = 0
        self._db_copy_keys: set = set()
        self._es_copy_keys: set = set()

    def aggregate(self, deltas: Iterable[ClassifiedDelta]) -> Report:
        for delta in deltas:
            self.add(delta)
        return self.build()

    def add(self, delta: ClassifiedDelta):
        self._collect_copies(delta)
        self._store(delta)

    def _store(self, delta: ClassifiedDelta):
        if delta.model_name == self.root_model:
            if delta.type is DeltaType.ES_ONLY:
                self.es_only.append(delta)
                return
            if delta.type is DeltaType.DB_ONLY:
                self.db_only.append(delta)
                return

        bucket = self.root_mismatch.setdefault(delta.project_id, RootBucket())
        if delta.model_name == self.root_model:
            bucket.entity.append(delta)
            return

        association = bucket.associations.setdefault(delta.model_name, AssociationBucket())
        if delta.type is DeltaType.MISMATCH:
            association.mismatches.setdefault(delta.id, []).append(delta)
        elif delta.type is DeltaType.ES_ONLY:
            association.es_only.append(delta)
        else:
            association.db_only.append(delta)

    def _collect_copies(self, delta: ClassifiedDelta):
        key = delta.copy_key
        if delta.db_copy is not None and key not in self._db_copy_keys:
            self._db_copy_keys.add(key)
            self.copies.db_copies.append(delta)
        if delta.es_copy is not None and key not in self._es_copy_keys:
            self._es_copy_keys.add(key)
            self.copies.es_copies.append(delta)

    def build(self, execution: Optional[ExecutionInfo] = None) -> Report:
        """Compute counts bottom-up and return the report."""
        total_objects = len(self.es_only) + len(self.db_only)
        for bucket in self.root_mismatch.values():
            bucket.counts = 1 if bucket.entity else 0
            for association in bucket.associations.values():
                association.counts = (
                    len(association.mismatches)
                    + len(association.es_only)
                    + len(association.db_only)
                )
                bucket.counts += association.counts
            total_objects += bucket.counts

        meta = ReportMeta(
            total_objects=total_objects,
            total_projects=len(self.root_mismatch) + len(self.es_only) + len(self.db_only),
            ignored=self.ignored,
            dropped=self.dropped,
            unclassified=self.unclassified,
        )
        return Report(
            root_mismatch=self.root_mismatch,
            es_only=self.es_only,
            db_only=self.db_only,
            meta=meta,
            copies=self.copies,
            execution=execution,
        )
