"""
Domain exceptions surfaced to callers of the persistence, parsing and validation layers.

Every exception here carries a message that is safe to show to clients. Raw database
or driver text never ends up in `message`; it is logged at DEBUG where needed.
"""

from typing import Any, Iterable


class BridgeError(Exception):
    """
    Base exception for service-level errors.

    - message: human-friendly message (safe to show to clients)
    - fields: optional list of field names related to the error (e.g., ['email'])
    - error_code: canonical short code (e.g., 'entity_already_exists') used by clients
    """

    # Map canonical error_code -> default HTTP status.
    ERROR_CODE_TO_STATUS = {
        "entity_already_exists": 409,
        "concurrent_modification": 409,
        "constraint_violation": 409,
        "invalid_payload": 400,
        "invalid_entity": 400,
        "repository_error": 500,
    }

    def __init__(self, message: str, *, fields: Iterable[str] | None = None, error_code: str | None = None):
        super().__init__(message)
        self.message = message
        self.fields = list(fields) if fields else None
        self.error_code = error_code

    def __str__(self) -> str:
        return self.message

    def to_payload(self) -> dict:
        """
        Return a JSON-serializable dict suitable for HTTP responses:
            {"detail": "...", "code": "entity_already_exists", "fields": ["email"]}
        """
        payload: dict[str, Any] = {"detail": self.message}
        if self.error_code:
            payload["code"] = self.error_code
        if self.fields:
            payload["fields"] = list(self.fields)
        return payload

    def http_status(self) -> int:
        if self.error_code:
            return self.ERROR_CODE_TO_STATUS.get(self.error_code, 400)
        return 400


class EntityAlreadyExistsError(BridgeError):
    """An entity conflicts with one that already exists; `entity_keys` identifies the existing one."""

    def __init__(
        self,
        message: str,
        *,
        entity_type: str,
        entity_keys: dict[str, Any] | None = None,
        fields: Iterable[str] | None = None,
    ):
        super().__init__(message, fields=fields, error_code="entity_already_exists")
        self.entity_type = entity_type
        self.entity_keys = dict(entity_keys or {})

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["entity_type"] = self.entity_type
        payload["entity_keys"] = dict(self.entity_keys)
        return payload


class ConcurrentModificationError(BridgeError):
    def __init__(self, message: str, *, entity_type: str | None = None):
        super().__init__(message, error_code="concurrent_modification")
        self.entity_type = entity_type


class ConstraintViolationError(BridgeError):
    """A write was rejected by a constraint that could not be attributed to a specific record."""

    def __init__(self, message: str, *, entity_type: str | None = None, fields: Iterable[str] | None = None):
        super().__init__(message, fields=fields, error_code="constraint_violation")
        self.entity_type = entity_type


class RepositoryError(BridgeError):
    """Unexpected database failure outside of the cases the converters recognize."""

    def __init__(self, message: str):
        super().__init__(message, error_code="repository_error")


class ParseError(BridgeError):
    """Input document could not be turned into the requested model."""

    def __init__(self, message: str):
        super().__init__(message, error_code="invalid_payload")


class InvalidEntityError(BridgeError):
    """
    Raised once validation has finished and recorded at least one error.

    `errors` maps the full field path (e.g. 'labels[0].lang') to its messages.
    """

    def __init__(self, message: str, *, errors: dict[str, list[str]] | None = None):
        self.errors = {k: list(v) for k, v in (errors or {}).items()}
        super().__init__(message, fields=list(self.errors), error_code="invalid_entity")

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["errors"] = {k: list(v) for k, v in self.errors.items()}
        return payload


__all__ = [
    "BridgeError",
    "EntityAlreadyExistsError",
    "ConcurrentModificationError",
    "ConstraintViolationError",
    "ParseError",
    "InvalidEntityError",
    "RepositoryError",
]
