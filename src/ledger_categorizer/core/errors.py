class ConfigurationError(ValueError):
    """Rejected categorization settings; the stored settings are left unchanged."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or [message]


class PatternError(ValueError):
    """A merchant pattern that cannot be compiled."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid merchant pattern '{pattern}': {reason}")
        self.pattern = pattern


class RepositoryUnavailable(RuntimeError):
    """The category or settings store could not be read or written."""


class BatchCancelled(RuntimeError):
    """The caller went away while a batch was still being categorized."""
