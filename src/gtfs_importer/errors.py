from __future__ import annotations


class GTFSImportError(Exception):
    """Base class for importer errors."""


class ConfigError(GTFSImportError):
    pass


class PreconditionError(GTFSImportError):
    """The feed is missing required files; nothing was uploaded."""

    def __init__(self, missing: list[str]):
        super().__init__(
            "Invalid GTFS format. No files were uploaded. Missing: " + ", ".join(missing)
        )
        self.missing = list(missing)


class ExtractionError(GTFSImportError):
    pass


class RemoteError(GTFSImportError):
    """Raised when the hosted-data platform rejects a request."""

    def __init__(self, message: str, code: int | None = None, details: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = list(details or [])

    def __str__(self) -> str:
        parts = [self.message]
        if self.code is not None:
            parts[0] = f"[{self.code}] {self.message}"
        parts.extend(self.details)
        return "; ".join(parts)
