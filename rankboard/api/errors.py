from __future__ import annotations

from typing import Any

from rankboard.services.ranking import ValidationError
from rankboard.storage.database import StoreError


class APIError(Exception):
    def __init__(
        self,
        code: str,
        message: str,
        status_code: int,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


def from_domain_error(exc: ValidationError | StoreError) -> APIError:
    if isinstance(exc, ValidationError):
        return APIError(code="VALIDATION_ERROR", message=str(exc), status_code=400)
    # Store internals are logged at the storage layer, not echoed to clients.
    return APIError(code="STORE_ERROR", message="Internal server error", status_code=500)
