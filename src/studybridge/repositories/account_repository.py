"""
Account repository: lookups by each unique account value, and writes whose database
failures are explained through `AccountPersistenceExceptionConverter`.
"""

import logging
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from studybridge.core.request_context import RequestContext
from studybridge.exceptions.mapper import AccountPersistenceExceptionConverter
from studybridge.models.account import Account, AccountSnapshot
from studybridge.models.enrollment import Enrollment

from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AccountRepository(BaseRepository[Account]):

    def __init__(self, db: AsyncSession):
        super().__init__(Account, db)
        self.converter = AccountPersistenceExceptionConverter(self)

    # =================================================================================================================
    # Read Operations
    # =================================================================================================================

    async def get_account(self, app_id: str, user_id: str) -> Account | None:
        return await self.find_one(Account.app_id == app_id, Account.id == user_id)

    async def get_by_email(self, app_id: str, email: str) -> Account | None:
        return await self.find_one(Account.app_id == app_id, Account.email == email)

    async def get_by_phone(self, app_id: str, phone_number: str) -> Account | None:
        return await self.find_one(Account.app_id == app_id, Account.phone_number == phone_number)

    async def get_by_synapse_user_id(self, app_id: str, synapse_user_id: str) -> Account | None:
        return await self.find_one(Account.app_id == app_id, Account.synapse_user_id == synapse_user_id)

    async def get_by_external_id(self, app_id: str, external_id: str) -> Account | None:
        """
        Find the account enrolled under `external_id` in any study of the app.

        External IDs are unique per study, so more than one account can match across
        studies; any one of them is returned.
        """
        return await self.find_one(
            Account.app_id == app_id,
            Account.enrollments.any(
                (Enrollment.app_id == app_id) & (Enrollment.external_id == external_id)
            ),
        )

    # =================================================================================================================
    # Write Operations
    # =================================================================================================================

    async def translate_error(
        self, exc: BaseException, entity: Any, context: RequestContext | None = None, **kwargs: Any
    ) -> BaseException:
        return await self.converter.convert(exc, entity, context)

    async def _snapshot(self, account: Account) -> AccountSnapshot:
        """
        Copy the account's lookup keys, loading whatever is unloaded or expired first.

        `snapshot()` reads plain attributes, so an unloaded `enrollments` collection (an account
        created without enrollments) or attributes expired by an earlier rollback must be fetched
        here; a lazy load inside `snapshot()` cannot run under asyncio. Autoflush is off so
        pending changes are only flushed inside the error handler.
        """
        state = inspect(account)
        if state.persistent and state.unloaded:
            with self.db.no_autoflush:
                await self.db.refresh(account, attribute_names=sorted(state.unloaded))
        return account.snapshot()

    async def create_account(self, account: Account, context: RequestContext | None = None) -> Account:
        """
        Insert a new account (and its enrollments).

        Raises:
            EntityAlreadyExistsError: email, phone, Synapse user ID or an external ID is taken.
            ConstraintViolationError: some other constraint rejected the insert.
        """
        logger.debug("repo.account.create", extra={"app_id": account.app_id})
        return await self.save(account, await self._snapshot(account), context=context)

    async def update_account(self, account: Account, context: RequestContext | None = None) -> Account:
        """
        Flush changes to an already persisted account.

        Raises:
            ConcurrentModificationError: the stored version moved on since the account was loaded.
            EntityAlreadyExistsError / ConstraintViolationError: as for `create_account`.
        """
        logger.debug("repo.account.update", extra={"app_id": account.app_id, "id": account.id})
        return await self.save(account, await self._snapshot(account), context=context)
