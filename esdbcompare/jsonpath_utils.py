"""JSONPath utilities for ignore rules."""

from __future__ import annotations

import re

from jsonpath_ng import parse as jsonpath_parse
from jsonpath_ng.exceptions import JsonPathLexerError, JsonPathParserError


class JSONPathMatcher:
    """Utility class for JSONPath matching."""

    # Cache for compiled JSONPath expressions
    _cache: dict = {}
    _regex_cache: dict = {}

    @classmethod
    def compile(cls, path: str):
        """Compile and cache a JSONPath expression."""
        if path not in cls._cache:
            try:
                cls._cache[path] = jsonpath_parse(path)
            except (JsonPathLexerError, JsonPathParserError) as e:
                raise ValueError(f"Invalid JSONPath expression '{path}': {e}")
        return cls._cache[path]

    @classmethod
    def matches_pattern(cls, concrete_path: str, pattern: str) -> bool:
        """
        Check if a concrete path lies at or below a JSONPath pattern.

        Supports:
        - Exact match: $.foo.bar
        - Recursive descent: $..field, $..phases..updatedAt
        - Wildcard: $[*].members[*].name, $[*].*

        A pattern also matches every path beneath the node it selects, so
        ignoring ``$..details`` ignores ``$[0].details.budget`` too.
        """
        regex = cls._regex_cache.get(pattern)
        if regex is None:
            regex = re.compile(cls._to_regex(pattern))
            cls._regex_cache[pattern] = regex
        return bool(regex.match(concrete_path))

    @staticmethod
    def _to_regex(pattern: str) -> str:
        # Anything following the selected node: a field or an element
        below = r'(?:[.\[].*)?$'

        # Each recursive descent skips any number of fields and elements
        head, *fields = pattern.split('..')
        regex = '^' + JSONPathMatcher._wildcards(head)
        for field in fields:
            regex += r'(?:[.\[].*)?\.' + JSONPathMatcher._wildcards(field)
        return regex + below

    @staticmethod
    def _wildcards(pattern: str) -> str:
        regex = re.escape(pattern)
        # Any element, by index or by identity
        regex = regex.replace(r'\[\*\]', r'\[[^\]]+\]')
        # Any field name
        regex = regex.replace(r'\*', r'[^.\[]+')
        return regex
