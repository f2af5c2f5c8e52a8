"""Ignore filter: suppresses changes on known-volatile fields."""

from __future__ import annotations

import logging
from typing import Optional

from .exceptions import ConfigError
from .jsonpath_utils import JSONPathMatcher
from .utils import to_jsonpath

logger = logging.getLogger(__name__)


class IgnoreFilter:
    """
    Decides whether a change-path must never be reported.

    Rules are JSONPath patterns grouped by scope, e.g.::

        {"project": ["$..updatedAt", "$[*].members[*].handle"]}

    A path is ignored when it lies at or below a node selected by one of the
    scope's patterns.
    """

    def __init__(self, ignored_paths: Optional[dict[str, list[str]]] = None):
        self.ignored_paths = {}
        for scope, patterns in (ignored_paths or {}).items():
            for pattern in patterns:
                try:
                    JSONPathMatcher.compile(pattern)
                except ValueError as e:
                    raise ConfigError(str(e), key=f"ignored_paths.{scope}")
            self.ignored_paths[scope] = list(patterns)

    def is_ignored(self, scope: str, path: tuple) -> bool:
        patterns = self.ignored_paths.get(scope)
        if not patterns or not path:
            return False

        concrete_path = to_jsonpath(path)
        for pattern in patterns:
            if JSONPathMatcher.matches_pattern(concrete_path, pattern):
                logger.debug("Ignoring %s (matches %s)", concrete_path, pattern)
                return True
        return False
