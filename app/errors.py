"""Exception hierarchy and its HTTP mapping."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi.responses import JSONResponse


class MediaTrackerError(Exception):
    """Base class for errors raised by the tracker services."""


class NotFoundError(MediaTrackerError, LookupError):
    """A referenced user or catalog item does not exist."""


class InvalidCategoryError(MediaTrackerError, ValueError):
    """The requested list category is not accepted."""


class ConflictError(MediaTrackerError):
    """A natural key is already taken."""


class AuthenticationError(MediaTrackerError):
    """Credentials or session token were rejected."""


class StorageUnavailableError(MediaTrackerError):
    """The database could not be reached or refused the operation."""


@dataclass(frozen=True)
class ErrorMapper:
    """Maps service exceptions to HTTP ``(status_code, detail)`` pairs.

    One mapper is created per catalog family so not-found messages name the
    right resource (``"The User or Movie was not found"``).
    """

    resource_name: str = "Resource"

    def to_http(self, exc: Exception) -> tuple[int, str]:
        if isinstance(exc, NotFoundError):
            return (404, str(exc) or f"The User or {self.resource_name} was not found")
        if isinstance(exc, InvalidCategoryError):
            return (400, str(exc) or "Unknown list category")
        if isinstance(exc, ConflictError):
            return (409, str(exc) or f"{self.resource_name} already exists")
        if isinstance(exc, AuthenticationError):
            return (401, str(exc) or "Not authenticated")
        if isinstance(exc, StorageUnavailableError):
            return (503, "Storage is currently unavailable")
        return (500, "Internal server error")

    def to_response(self, exc: Exception) -> JSONResponse:
        """Render the exception as the ``{"message": ...}`` body used by the API."""

        status_code, detail = self.to_http(exc)
        return JSONResponse({"message": detail}, status_code=status_code)
