"""Domain errors returned by the catalog and acquisition pipeline."""


class CraneError(Exception):
    """Base class for all catalog and acquisition errors."""


class NotFoundError(CraneError):
    """A category or document key is absent from the catalog."""


class ConflictError(CraneError):
    """A destination category or document already exists."""


class DuplicateError(ConflictError):
    """The requested document is already cataloged under the same identifier."""


class UpstreamError(CraneError):
    """A remote fetch failed or returned something unusable."""


class UnresolvableError(UpstreamError):
    """No acquisition strategy produced a document."""

    def __init__(self, source: str, reasons: list[str] | None = None) -> None:
        self.source = source
        self.reasons = reasons or []
        message = f"{source!r}: source not resolvable"
        if self.reasons:
            message += f" ({'; '.join(self.reasons)})"
        super().__init__(message)


class ValidationError(CraneError):
    """Input is malformed or unsafe."""


class StorageError(CraneError):
    """A filesystem operation failed."""
