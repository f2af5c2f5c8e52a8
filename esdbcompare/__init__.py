"""
esdbcompare - Structural reconciliation of DB and ES project data

Compares the project tree held by the system of record with the copy
indexed in Elasticsearch and reports, per project and per associated
entity, what exists on one side only and which fields disagree.
"""

from .engine import CompareEngine, compare
from .models import (
    CompareConfig,
    LogLevel,
    Report,
    RootBucket,
    AssociationBucket,
    ClassifiedDelta,
    RawDelta,
    Identity,
    ChangeType,
    DataType,
    DeltaType,
    ErrorResponse,
)
from .differ import DiffEngine
from .normalizer import DeltaNormalizer
from .classifier import DeltaClassifier
from .aggregator import ReportAggregator
from .ignore import IgnoreFilter
from .view import MergedView
from .exceptions import (
    CompareError,
    ValidationError,
    ConfigError,
    PayloadSizeError,
    InternalConsistencyError,
    DuplicatePathError,
    EntityNotFoundError,
)
from .runner import (
    ComparisonRunner,
    load_config,
    run_compare,
)

__version__ = "1.0.0"
__all__ = [
    # Engine
    "CompareEngine",
    "CompareConfig",
    "LogLevel",
    "compare",
    # Pipeline
    "DiffEngine",
    "DeltaNormalizer",
    "DeltaClassifier",
    "ReportAggregator",
    "IgnoreFilter",
    "MergedView",
    # Models
    "Report",
    "RootBucket",
    "AssociationBucket",
    "ClassifiedDelta",
    "RawDelta",
    "Identity",
    "ChangeType",
    "DataType",
    "DeltaType",
    "ErrorResponse",
    # Errors
    "CompareError",
    "ValidationError",
    "ConfigError",
    "PayloadSizeError",
    "InternalConsistencyError",
    "DuplicatePathError",
    "EntityNotFoundError",
    # Runner
    "ComparisonRunner",
    "load_config",
    "run_compare",
]
