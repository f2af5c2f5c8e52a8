"""Custom exceptions for the ES/DB comparison engine."""


class CompareError(Exception):
    """Base exception for comparison errors."""
    pass


class ValidationError(CompareError):
    """Raised when input validation fails."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigError(CompareError):
    """Raised when the comparison configuration is invalid."""
    def __init__(self, message: str, key: str = None):
        super().__init__(message)
        self.message = message
        self.key = key


class PayloadSizeError(CompareError):
    """Raised when payload size exceeds limit."""
    def __init__(self, size_mb: float, limit_mb: float):
        super().__init__(f"Payload size ({size_mb:.2f}MB) exceeds limit ({limit_mb}MB)")
        self.size_mb = size_mb
        self.limit_mb = limit_mb


class InternalConsistencyError(CompareError):
    """
    Raised when the diff pipeline produces output it cannot make sense of.

    Fatal for the whole run: no partial report is produced.
    """
    pass


class DuplicatePathError(InternalConsistencyError):
    """Raised when more than two raw deltas share the same path."""
    def __init__(self, path: str, count: int):
        super().__init__(f"{count} deltas found at path {path}, expected at most 2")
        self.path = path
        self.count = count


class EntityNotFoundError(InternalConsistencyError):
    """Raised when an entity cannot be resolved by its identity."""
    def __init__(self, model_name: str, path: str = None, id=None):
        where = f"id {id!r}" if id is not None else f"path {path}"
        super().__init__(f"{model_name} not found at {where}")
        self.model_name = model_name
        self.path = path
        self.id = id
