"""Custom exception hierarchy for tanuki."""

from __future__ import annotations


class TanukiError(Exception):
    """Base class for all custom errors raised by tanuki."""


# --- 3-layer hierarchy ---

class DomainError(TanukiError):
    """Base class for domain-level errors."""


class InfrastructureError(TanukiError):
    """Base class for infrastructure-level errors."""


class ApplicationError(TanukiError):
    """Base class for application-level errors."""


# --- Domain errors ---

class AssetNotFoundError(DomainError):
    """Raised when an operation requires an asset that does not exist."""


# --- Infrastructure errors ---

class ConnectionPoolExhausted(InfrastructureError):
    """Raised when no connections are available in the pool."""


class RepositoryInitError(InfrastructureError):
    """Raised when a record repository cannot prepare its schema or indices."""


class RecordConflictError(InfrastructureError):
    """Raised when an upsert keeps losing to concurrent writers."""


class DocumentConflictError(InfrastructureError):
    """Raised when a document is written with a stale or missing revision."""


class DocumentNotFoundError(InfrastructureError):
    """Raised when the document store has no document with the given id."""


class BlobStoreError(InfrastructureError):
    """Raised when asset content cannot be moved into the blob store."""


# --- Application errors ---

class ImportFailedError(ApplicationError):
    """Raised when a file cannot be imported as an asset."""


# --- DI-specific errors ---

class CircularDependencyError(TanukiError):
    """Raised when a circular dependency is detected during resolution."""


class ResolutionError(TanukiError):
    """Raised when a dependency cannot be resolved."""


# --- Settings ---

class SettingsError(TanukiError):
    """Base class for settings related failures."""


class SettingsLoadError(SettingsError):
    """Raised when the settings file cannot be parsed or loaded."""


class SettingsValidationError(SettingsError):
    """Raised when settings data fails schema validation."""
