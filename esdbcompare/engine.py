"""Main comparison engine for project data in the DB and in ES."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional

from .aggregator import ReportAggregator
from .classifier import DeltaClassifier
from .differ import DiffEngine
from .exceptions import PayloadSizeError, ValidationError
from .ignore import IgnoreFilter
from .models import CompareConfig, ExecutionInfo, Report
from .normalizer import DeltaNormalizer
from .utils import get_json_size_mb
from .view import MergedView

logger = logging.getLogger(__name__)


class CompareEngine:
    """
    Main comparison engine that orchestrates the pipeline:

    1. Diffing: identity-aware diff of the DB tree against the ES tree, and
       the merged view (DB tree with the diff re-applied)
    2. Normalization: flatten compound changes, merge same-path pairs
    3. Filtering: drop changes on volatile fields
    4. Classification: attribute each change to a project and an entity
    5. Aggregation: bucket and count into a report

    Engines hold configuration only and can be reused across runs.
    """

    VERSION = "1.0.0"

    def __init__(self, config: Optional[CompareConfig] = None):
        """
        Initialize the engine.

        Args:
            config: Comparison configuration (uses defaults if not provided)
        """
        self.config = config or CompareConfig()
        self.differ = DiffEngine(self.config.identity_key)
        self.normalizer = DeltaNormalizer(self.config.identity_key)
        self.ignore_filter = IgnoreFilter(self.config.ignored_paths)
        self.classifier = DeltaClassifier(self.config)

    def compare(self, db_data: Any, es_data: Any) -> Report:
        """
        Compare project data from the DB and from ES.

        Args:
            db_data: List of projects from the system of record
            es_data: List of projects from the search index

        Returns:
            Report of every inconsistency

        Raises:
            ValidationError: inputs are not lists of projects
            PayloadSizeError: an input exceeds the configured size
            InternalConsistencyError: the diff could not be attributed soundly
        """
        start_time = time.time()
        self._validate_inputs(db_data, es_data)

        raw_deltas = self.differ.diff(db_data, es_data)
        view = MergedView(
            db_data,
            es_data,
            self.differ.apply(db_data, raw_deltas),
            self.config.identity_key,
        )
        deltas = self.normalizer.normalize(raw_deltas)
        logger.debug("%d raw deltas normalized to %d", len(raw_deltas), len(deltas))

        aggregator = ReportAggregator(self.config.root_model)
        for delta in deltas:
            if self.ignore_filter.is_ignored(self.config.scope, delta.path):
                aggregator.ignored += 1
                continue

            classified = self.classifier.classify(delta, view)
            if classified is not None:
                aggregator.add(classified)
            elif self.classifier.matcher_for(delta) is None:
                aggregator.unclassified += 1
            else:
                aggregator.dropped += 1

        duration_ms = int((time.time() - start_time) * 1000)
        report = aggregator.build(ExecutionInfo(
            duration_ms=duration_ms,
            timestamp=datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            engine_version=self.VERSION,
        ))
        logger.info(
            "Compared %d DB and %d ES projects: %d inconsistencies in %d projects",
            len(db_data), len(es_data),
            report.meta.total_objects, report.meta.total_projects,
        )
        return report

    def _validate_inputs(self, db_data: Any, es_data: Any):
        """Validate input parameters."""
        for name, data in (("db_data", db_data), ("es_data", es_data)):
            if data is None:
                raise ValidationError(f"{name} is required")
            if not isinstance(data, list):
                raise ValidationError(
                    f"{name} must be a list of projects",
                    {"type": type(data).__name__}
                )

            size = get_json_size_mb(data)
            if size > self.config.max_payload_size_mb:
                raise PayloadSizeError(size, self.config.max_payload_size_mb)


def compare(
    db_data: Any,
    es_data: Any,
    config: Optional[CompareConfig] = None
) -> Report:
    """
    Convenience function to compare project data from the DB and from ES.

    Args:
        db_data: List of projects from the system of record
        es_data: List of projects from the search index
        config: Optional comparison configuration

    Returns:
        Report of every inconsistency
    """
    engine = CompareEngine(config)
    return engine.compare(db_data, es_data)
