r"""
Two levels of exception handling
================================

1. Failure classification (internal)
    `integrity_classifier.classify_persistence_error(exc)` looks at what SQLAlchemy raised
    (IntegrityError, StaleDataError, identity-map conflicts) and returns a
    `PersistenceFailure`: the kind of failure plus the violated constraint name or
    column list when the driver reports one. Never raised, never shown to clients.

2. Domain errors (public)
    `base.BridgeError` and its subclasses. These are what repositories raise and what
    `api.v1.error_handlers` turns into HTTP responses.

`mapper.AccountPersistenceExceptionConverter` sits between the two for account writes:

| Failure                          | Result                                            |
| -------------------------------- | ------------------------------------------------- |
| unique violation, owner found    | `EntityAlreadyExistsError` (entity_keys.userId)   |
| other / unattributable violation | `ConstraintViolationError`                        |
| stale version                    | `ConcurrentModificationError`                     |
| identity-map conflict            | `ConstraintViolationError` (NON_UNIQUE_MSG)       |
| anything else                    | returned unchanged                                |
"""

from .base import (
    BridgeError,
    ConcurrentModificationError,
    ConstraintViolationError,
    EntityAlreadyExistsError,
    InvalidEntityError,
    ParseError,
    RepositoryError,
)

__all__ = [
    "BridgeError",
    "ConcurrentModificationError",
    "ConstraintViolationError",
    "EntityAlreadyExistsError",
    "InvalidEntityError",
    "ParseError",
    "RepositoryError",
]
