"""Data models for the ES/DB comparison engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional

from .exceptions import ConfigError


class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"

    def to_logging(self) -> int:
        if self is LogLevel.WARN:
            return logging.WARNING
        return getattr(logging, self.value)


class ChangeType(Enum):
    ADD = "add"
    DELETE = "delete"
    MODIFY = "modify"


class DataType(Enum):
    SCALAR = "scalar"
    OBJECT = "object"
    ARRAY = "array"


class DeltaType(Enum):
    DB_ONLY = "dbOnly"
    ES_ONLY = "esOnly"
    MISMATCH = "mismatch"


DEFAULT_ASSOCIATIONS = {
    "phases": "Phase",
    "members": "Member",
    "invites": "Invite",
    "attachments": "Attachment",
}

DEFAULT_NESTED_ASSOCIATIONS = {
    "phases": ("products", "Product"),
}

DEFAULT_IGNORED_PATHS = {
    "project": [
        "$..updatedAt",
        "$..updatedBy",
        "$..lastActivityAt",
        "$..lastActivityUserId",
    ],
}


@dataclass(frozen=True)
class Identity:
    """Path segment locating a collection element by its identity key."""
    value: Any
    key: str = "id"

    def locator(self) -> str:
        return f"[?(@.{self.key}=={self.value!r})]"

    def __str__(self) -> str:
        return self.locator()


@dataclass
class CompareConfig:
    """Configuration for a comparison run."""
    root_model: str = "Project"
    scope: str = "project"
    identity_key: str = "id"
    associations: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_ASSOCIATIONS))
    # collection -> (nested collection, nested model name)
    nested_associations: dict[str, tuple[str, str]] = field(
        default_factory=lambda: dict(DEFAULT_NESTED_ASSOCIATIONS))
    ignored_paths: dict[str, list[str]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_IGNORED_PATHS.items()})
    max_payload_size_mb: float = 200
    log_level: LogLevel = LogLevel.INFO

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> CompareConfig:
        """
        Build a config from a plain mapping (e.g. a parsed YAML file).

        Unknown keys are rejected; missing keys keep their defaults.
        """
        if not data:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a mapping")

        known = {
            "root_model", "scope", "identity_key", "associations",
            "nested_associations", "ignored_paths", "max_payload_size_mb",
            "log_level",
        }
        unknown = set(data) - known
        if unknown:
            raise ConfigError(
                f"Unknown configuration keys: {', '.join(sorted(unknown))}",
                key=sorted(unknown)[0],
            )

        kwargs = dict(data)
        if "log_level" in kwargs:
            try:
                kwargs["log_level"] = LogLevel(str(kwargs["log_level"]).upper())
            except ValueError:
                raise ConfigError(
                    f"Invalid log level: {kwargs['log_level']}", key="log_level")

        for key in ("associations", "nested_associations", "ignored_paths"):
            if key in kwargs and not isinstance(kwargs[key], dict):
                raise ConfigError(f"'{key}' must be a mapping", key=key)

        if "nested_associations" in kwargs:
            nested = {}
            for collection, entry in kwargs["nested_associations"].items():
                if isinstance(entry, dict):
                    entry = (entry.get("collection"), entry.get("model"))
                if not isinstance(entry, (list, tuple)) or len(entry) != 2 or not all(entry):
                    raise ConfigError(
                        f"Nested association '{collection}' needs a collection and a model",
                        key="nested_associations",
                    )
                nested[collection] = tuple(entry)
            kwargs["nested_associations"] = nested

        if "ignored_paths" in kwargs:
            kwargs["ignored_paths"] = {
                scope: list(patterns or [])
                for scope, patterns in kwargs["ignored_paths"].items()
            }

        config = cls(**kwargs)
        for collection in config.nested_associations:
            if collection not in config.associations:
                raise ConfigError(
                    f"Nested association '{collection}' is not a configured association",
                    key="nested_associations",
                )
        return config


@dataclass
class RawDelta:
    """A single change produced by the diff engine."""
    path: tuple
    type: ChangeType
    data_type: DataType
    value: Any = None
    original_value: Any = None

    def replace(self, **changes) -> RawDelta:
        return replace(self, **changes)

    @property
    def json_path(self) -> str:
        from .utils import to_jsonpath
        return to_jsonpath(self.path)


@dataclass
class ClassifiedDelta:
    """A discrepancy attributed to one entity of the project tree."""
    type: DeltaType
    project_id: Any
    model_name: str
    id: Any
    kind: Optional[ChangeType] = None
    data_type: Optional[DataType] = None
    path: Optional[str] = None
    db_copy: Any = None
    es_copy: Any = None

    @property
    def copy_key(self) -> tuple:
        return (self.model_name, self.id)

    def to_dict(self) -> dict:
        result = {
            "type": self.type.value,
            "projectId": self.project_id,
            "modelName": self.model_name,
            "id": self.id,
        }
        if self.type is DeltaType.MISMATCH:
            result["kind"] = self.kind.value
            result["dataType"] = self.data_type.value
            result["path"] = self.path
        if self.db_copy is not None:
            result["dbCopy"] = self.db_copy
        if self.es_copy is not None:
            result["esCopy"] = self.es_copy
        return result


@dataclass
class AssociationBucket:
    """Discrepancies for one child entity kind under one project."""
    mismatches: dict[Any, list[ClassifiedDelta]] = field(default_factory=dict)
    es_only: list[ClassifiedDelta] = field(default_factory=list)
    db_only: list[ClassifiedDelta] = field(default_factory=list)
    counts: int = 0

    def to_dict(self) -> dict:
        return {
            "mismatches": {
                str(id): [d.to_dict() for d in deltas]
                for id, deltas in self.mismatches.items()
            },
            "esOnly": [d.to_dict() for d in self.es_only],
            "dbOnly": [d.to_dict() for d in self.db_only],
            "meta": {"counts": self.counts},
        }


@dataclass
class RootBucket:
    """Discrepancies for a project present on both sides."""
    entity: list[ClassifiedDelta] = field(default_factory=list)
    associations: dict[str, AssociationBucket] = field(default_factory=dict)
    counts: int = 0

    def to_dict(self) -> dict:
        return {
            "entity": [d.to_dict() for d in self.entity],
            "associations": {
                name: bucket.to_dict() for name, bucket in self.associations.items()
            },
            "meta": {"counts": self.counts},
        }


@dataclass
class CopyPool:
    """Entity copies referenced by any delta, unique per (model name, id)."""
    db_copies: list[ClassifiedDelta] = field(default_factory=list)
    es_copies: list[ClassifiedDelta] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "dbCopies": [
                {"modelName": d.model_name, "id": d.id, "dbCopy": d.db_copy}
                for d in self.db_copies
            ],
            "esCopies": [
                {"modelName": d.model_name, "id": d.id, "esCopy": d.es_copy}
                for d in self.es_copies
            ],
        }


@dataclass
class ReportMeta:
    """Summary counts of a comparison."""
    total_objects: int = 0
    total_projects: int = 0
    ignored: int = 0
    dropped: int = 0
    unclassified: int = 0

    def to_dict(self) -> dict:
        return {
            "totalObjects": self.total_objects,
            "totalProjects": self.total_projects,
            "ignoredDeltas": self.ignored,
            "droppedDeltas": self.dropped,
            "unclassifiedDeltas": self.unclassified,
        }


@dataclass
class ExecutionInfo:
    """Execution metadata."""
    duration_ms: int
    timestamp: str
    engine_version: str = "1.0.0"

    def to_dict(self) -> dict:
        return {
            "duration_ms": self.duration_ms,
            "timestamp": self.timestamp,
            "engine_version": self.engine_version,
        }


@dataclass
class Report:
    """Complete discrepancy report between the DB and ES snapshots."""
    root_mismatch: dict[Any, RootBucket] = field(default_factory=dict)
    es_only: list[ClassifiedDelta] = field(default_factory=list)
    db_only: list[ClassifiedDelta] = field(default_factory=list)
    meta: ReportMeta = field(default_factory=ReportMeta)
    copies: CopyPool = field(default_factory=CopyPool)
    execution: Optional[ExecutionInfo] = None

    @property
    def is_consistent(self) -> bool:
        return self.meta.total_objects == 0

    def to_dict(self) -> dict:
        meta = self.meta.to_dict()
        meta.update(self.copies.to_dict())
        result = {
            "rootMismatch": {
                str(id): bucket.to_dict() for id, bucket in self.root_mismatch.items()
            },
            "esOnly": [d.to_dict() for d in self.es_only],
            "dbOnly": [d.to_dict() for d in self.db_only],
            "meta": meta,
        }
        if self.execution:
            result["execution"] = self.execution.to_dict()
        return result


@dataclass
class ErrorResponse:
    """Error response structure."""
    success: bool = False
    error: Optional[dict] = None

    def to_dict(self) -> dict:
        result = {"success": self.success}
        if self.error:
            result["error"] = self.error
        return result
