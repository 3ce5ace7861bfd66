class SecurityDocsGeneratorError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(SecurityDocsGeneratorError):
    """Raised when the Elasticsearch connection settings are missing or invalid."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class IngestionStopped(SecurityDocsGeneratorError):
    """Raised from a document transform when the user asked to stop."""
