"""Runner that compares snapshot files using a YAML configuration."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import yaml

from .engine import CompareEngine
from .exceptions import (
    CompareError,
    ConfigError,
    InternalConsistencyError,
    PayloadSizeError,
    ValidationError,
)
from .models import CompareConfig, ErrorResponse, Report

logger = logging.getLogger(__name__)


def load_config(config_path: Optional[str]) -> CompareConfig:
    """Load a comparison config from a YAML or JSON file."""
    if not config_path:
        return CompareConfig()

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, 'r') as f:
        content = f.read()

    # JSON is valid YAML
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config file: {e}")

    return CompareConfig.from_dict(data)


def load_snapshot(snapshot_path: str) -> Any:
    """Load a snapshot of projects from a JSON file."""
    path = Path(snapshot_path)
    if not path.exists():
        raise FileNotFoundError(f"Snapshot file not found: {path}")

    with open(path, 'r') as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(
                f"Failed to parse snapshot {path.name}: {e.msg}",
                {"line": e.lineno, "column": e.colno}
            )


class ComparisonRunner:
    """
    Compares a DB snapshot file with an ES snapshot file.

    Usage:
        runner = ComparisonRunner("config.yaml")
        result = runner.run("db.json", "es.json")
        print(json.dumps(result.to_dict(), indent=2))
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the runner.

        Args:
            config_path: Path to YAML/JSON config file (defaults when omitted)
        """
        self.config_path = config_path
        self._config: Optional[CompareConfig] = None

    @property
    def config(self) -> CompareConfig:
        """Load and cache the config from file."""
        if self._config is None:
            self._config = load_config(self.config_path)
        return self._config

    def run(self, db_path: str, es_path: str) -> Report | ErrorResponse:
        """
        Compare two snapshot files.

        Returns:
            Report on success, ErrorResponse when the comparison fails
        """
        try:
            engine = CompareEngine(self.config)
            return engine.compare(load_snapshot(db_path), load_snapshot(es_path))
        except ValidationError as e:
            return self._create_error_response("VALIDATION_ERROR", e.message, e.details)
        except ConfigError as e:
            return self._create_error_response("CONFIG_ERROR", e.message, {"key": e.key})
        except PayloadSizeError as e:
            return self._create_error_response(
                "PAYLOAD_SIZE_ERROR",
                str(e),
                {"size_mb": e.size_mb, "limit_mb": e.limit_mb}
            )
        except InternalConsistencyError as e:
            logger.error("Comparison aborted: %s", e)
            return self._create_error_response(
                "INTERNAL_CONSISTENCY_ERROR",
                str(e),
                {"type": type(e).__name__}
            )
        except CompareError as e:
            return self._create_error_response(
                "PROCESSING_ERROR",
                str(e),
                {"type": type(e).__name__}
            )

    def _create_error_response(self, code: str, message: str, details: dict) -> ErrorResponse:
        """Create an error response."""
        return ErrorResponse(
            success=False,
            error={
                "code": code,
                "message": message,
                "details": details
            }
        )


def run_compare(
    db_path: str,
    es_path: str,
    config_path: Optional[str] = None
) -> Report | ErrorResponse:
    """
    Compare two snapshot files.

        from esdbcompare.runner import run_compare
        result = run_compare("db.json", "es.json", "config.yaml")

    Args:
        db_path: JSON file with the list of projects from the DB
        es_path: JSON file with the list of projects from ES
        config_path: Optional YAML/JSON config file

    Returns:
        Report on success, ErrorResponse on errors
    """
    return ComparisonRunner(config_path).run(db_path, es_path)
