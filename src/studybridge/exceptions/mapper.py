import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studybridge.core.request_context import NULL_CONTEXT, RequestContext
from studybridge.models.account import (
    EMAIL_CONSTRAINT,
    PHONE_CONSTRAINT,
    SYNAPSE_USER_ID_CONSTRAINT,
    Account,
)
from studybridge.models.enrollment import EXTERNAL_ID_CONSTRAINT

from .base import ConcurrentModificationError, ConstraintViolationError, EntityAlreadyExistsError
from .integrity_classifier import FailureKind, PersistenceFailure, classify_persistence_error

logger = logging.getLogger(__name__)

ACCOUNT = "Account"

CONSTRAINT_MSG = "Accounts table constraint prevented save or update."
CONCURRENT_MODIFICATION_MSG = "Account has the wrong version number; it may have been saved in the background."
NON_UNIQUE_MSG = "Account already has an enrollment in one of the requested studies."


class AccountField(str, Enum):
    """Account values that must be unique within an app, with the message shown on conflict."""

    EMAIL = "email"
    PHONE = "phone"
    EXTERNAL_ID = "externalId"
    SYNAPSE_USER_ID = "synapseUserId"

    @property
    def message(self) -> str:
        return _FIELD_MESSAGES[self]


_FIELD_MESSAGES = {
    AccountField.EMAIL: "Email address has already been used by another account.",
    AccountField.PHONE: "Phone number has already been used by another account.",
    AccountField.EXTERNAL_ID: "External ID has already been used by another account.",
    AccountField.SYNAPSE_USER_ID: "Synapse User ID has already been used by another account.",
}

# Structured identifiers first: the name of the violated constraint...
CONSTRAINT_FIELDS = {
    EMAIL_CONSTRAINT: AccountField.EMAIL,
    PHONE_CONSTRAINT: AccountField.PHONE,
    EXTERNAL_ID_CONSTRAINT: AccountField.EXTERNAL_ID,
    SYNAPSE_USER_ID_CONSTRAINT: AccountField.SYNAPSE_USER_ID,
}

# ...or, for SQLite, the columns it reports instead of a name.
COLUMN_FIELDS = {
    ("app_id", "email"): AccountField.EMAIL,
    ("app_id", "phone_number"): AccountField.PHONE,
    ("app_id", "study_id", "external_id"): AccountField.EXTERNAL_ID,
    ("app_id", "synapse_user_id"): AccountField.SYNAPSE_USER_ID,
}

# A second row with the same primary key: an enrollment repeated for a study, or an account
# inserted twice. SQLite reports the key columns, MySQL names the key PRIMARY.
PRIMARY_KEY_CONSTRAINTS = {"pk_accounts", "pk_enrollments", "PRIMARY"}
PRIMARY_KEY_COLUMNS = {("id",), ("account_id", "study_id")}


class AccountLookup(Protocol):
    async def get_by_email(self, app_id: str, email: str) -> Account | None: ...

    async def get_by_phone(self, app_id: str, phone_number: str) -> Account | None: ...

    async def get_by_external_id(self, app_id: str, external_id: str) -> Account | None: ...

    async def get_by_synapse_user_id(self, app_id: str, synapse_user_id: str) -> Account | None: ...


def is_primary_key_conflict(failure: PersistenceFailure) -> bool:
    if failure.kind is not FailureKind.UNIQUE_VIOLATION:
        return False
    return failure.constraint_name in PRIMARY_KEY_CONSTRAINTS or failure.columns in PRIMARY_KEY_COLUMNS


def resolve_account_field(failure: PersistenceFailure) -> AccountField | None:
    """Map a uniqueness failure to the account field whose value collided, if it can be told."""
    if failure.constraint_name:
        field = CONSTRAINT_FIELDS.get(failure.constraint_name)
        if field is not None:
            return field
    if failure.columns:
        field = COLUMN_FIELDS.get(failure.columns)
        if field is not None:
            return field
    # Last resort: a known constraint name anywhere in the driver text
    if failure.error is not None:
        text = str(getattr(failure.error, "orig", None) or failure.error)
        for name, field in CONSTRAINT_FIELDS.items():
            if name in text:
                return field
    return None


class AccountPersistenceExceptionConverter:
    """
    Turn persistence failures raised while saving an account into domain exceptions.

    For uniqueness violations the store is queried once more to find the account that
    already holds the value, so the caller learns which user it conflicts with.
    """

    def __init__(self, accounts: AccountLookup):
        self.accounts = accounts

    async def convert(
        self,
        exc: BaseException,
        entity: Any | None,
        context: RequestContext | None = None,
    ) -> BaseException:
        """
        Return the exception to surface for `exc`, raised while saving `entity`.

        `entity` is an Account or AccountSnapshot (or None). Failures that are not recognized
        are returned unchanged. Errors raised by the diagnostic lookup propagate.
        """
        context = context or NULL_CONTEXT
        failure = classify_persistence_error(exc)

        if failure.kind is FailureKind.OPTIMISTIC_LOCK:
            logger.info("converter.concurrent_modification", extra={"model": ACCOUNT})
            return ConcurrentModificationError(CONCURRENT_MODIFICATION_MSG, entity_type=ACCOUNT)

        if failure.kind is FailureKind.NON_UNIQUE_OBJECT or is_primary_key_conflict(failure):
            logger.info("converter.non_unique_object", extra={"model": ACCOUNT})
            return ConstraintViolationError(NON_UNIQUE_MSG, entity_type=ACCOUNT)

        if failure.kind in (FailureKind.UNIQUE_VIOLATION, FailureKind.CONSTRAINT_VIOLATION):
            field = resolve_account_field(failure)
            existing = None
            if field is not None and entity is not None:
                existing = await self._find_existing(field, entity, context)
            if existing is not None:
                logger.info(
                    "converter.entity_already_exists",
                    extra={"model": ACCOUNT, "fields": [field.value], "existing_id": existing.id},
                )
                return EntityAlreadyExistsError(
                    field.message,
                    entity_type=ACCOUNT,
                    entity_keys={"userId": existing.id},
                    fields=[field.value],
                )
            logger.info(
                "converter.constraint_violation",
                extra={
                    "model": ACCOUNT,
                    "fields": [field.value] if field else None,
                    "constraint": failure.constraint_name,
                },
            )
            return ConstraintViolationError(CONSTRAINT_MSG, entity_type=ACCOUNT)

        return exc

    async def _find_existing(self, field: AccountField, entity: Any, context: RequestContext) -> Account | None:
        app_id = entity.app_id
        if field is AccountField.EMAIL and entity.email is not None:
            return await self.accounts.get_by_email(app_id, entity.email)
        if field is AccountField.PHONE and entity.phone_number is not None:
            return await self.accounts.get_by_phone(app_id, entity.phone_number)
        if field is AccountField.SYNAPSE_USER_ID and entity.synapse_user_id is not None:
            return await self.accounts.get_by_synapse_user_id(app_id, entity.synapse_user_id)
        if field is AccountField.EXTERNAL_ID:
            return await self._find_by_external_ids(entity, context)
        return None

    async def _find_by_external_ids(self, entity: Any, context: RequestContext) -> Account | None:
        # Candidates are tried in enrollment order regardless of the caller's studies;
        # this lookup explains a conflict, it does not grant access to anything.
        for enrollment in entity.enrollments or ():
            external_id = enrollment.external_id
            if external_id is None or not external_id.strip():
                continue
            existing = await self.accounts.get_by_external_id(entity.app_id, external_id)
            if existing is not None:
                if not context.can_see_study(enrollment.study_id):
                    logger.debug(
                        "converter.conflict_outside_caller_studies",
                        extra={"study_id": enrollment.study_id, "caller_user_id": context.caller_user_id},
                    )
                return existing
        return None


# -----------------------
# Async context manager to DRY error handling in repositories
# -----------------------
@asynccontextmanager
async def persistence_error_handler(
    db: AsyncSession,
    translate: Callable[[BaseException, Any], Awaitable[BaseException]],
    entity: Any | None = None,
):
    """
    Usage:
        async with persistence_error_handler(self.db, converter.convert, account.snapshot()):
            await self.db.flush()

    On a database error the session is rolled back, `translate(exc, entity)` picks the
    exception to raise, and it is raised chained to the original failure.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        try:
            await db.rollback()
        except Exception:
            logger.exception("Failed to rollback session after database error")
        converted = await translate(exc, entity)
        if converted is exc:
            raise
        raise converted from exc
