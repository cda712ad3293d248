import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from studybridge.core.request_context import RequestContext
from studybridge.exceptions import (
    ConcurrentModificationError,
    ConstraintViolationError,
    EntityAlreadyExistsError,
)
from studybridge.models import Account, Enrollment, Phone
from studybridge.repositories import AccountRepository
from studybridge.tests.test_fixtures.account_fixtures import APP_ID


@pytest.mark.asyncio
class TestAccountRepositoryLookups:
    """
    Lookups by each unique value. The converter relies on these to name the existing
    account behind a uniqueness failure.
    """

    async def test_get_account(self, account_repository: AccountRepository, persisted_account: Account):
        found = await account_repository.get_account(APP_ID, persisted_account.id)
        assert found is not None
        assert found.id == persisted_account.id

        assert await account_repository.get_account("other-app", persisted_account.id) is None

    async def test_get_by_each_unique_value(self, account_repository: AccountRepository, persisted_account: Account):
        assert (await account_repository.get_by_email(APP_ID, "existing@example.com")).id == persisted_account.id
        assert (await account_repository.get_by_phone(APP_ID, "+12065550100")).id == persisted_account.id
        assert (await account_repository.get_by_synapse_user_id(APP_ID, "8675309")).id == persisted_account.id
        assert (await account_repository.get_by_external_id(APP_ID, "ext-1")).id == persisted_account.id

    async def test_lookups_are_scoped_to_the_app(self, account_repository: AccountRepository, persisted_account: Account):
        assert await account_repository.get_by_email("other-app", "existing@example.com") is None
        assert await account_repository.get_by_external_id("other-app", "ext-1") is None

    async def test_missing_values(self, account_repository: AccountRepository, persisted_account: Account):
        assert await account_repository.get_by_email(APP_ID, "nobody@example.com") is None
        assert await account_repository.get_by_external_id(APP_ID, "ext-404") is None

    async def test_phone_round_trip(self, account_repository: AccountRepository, persisted_account: Account):
        found = await account_repository.get_by_phone(APP_ID, "+12065550100")
        assert found.phone == Phone("+12065550100", "US")


@pytest.mark.asyncio
class TestAccountRepositoryCreate:

    async def test_create_account(self, account_repository: AccountRepository, db_session: AsyncSession, make_account):
        account = make_account(enrollments={"study1": "ext-9"})

        created = await account_repository.create_account(account)
        await db_session.commit()

        assert created.id is not None
        assert created.version == 1
        assert [e.external_id for e in created.enrollments] == ["ext-9"]

    async def test_duplicate_email_names_the_existing_account(
        self, account_repository: AccountRepository, persisted_account: Account, make_account
    ):
        # the failed flush rolls back, which expires every instance in the session
        existing_id = persisted_account.id
        duplicate = make_account(email="existing@example.com")

        with pytest.raises(EntityAlreadyExistsError) as exc_info:
            await account_repository.create_account(duplicate)

        exc = exc_info.value
        assert exc.message == "Email address has already been used by another account."
        assert exc.entity_keys == {"userId": existing_id}
        assert exc.fields == ["email"]
        assert exc.__cause__ is not None

    async def test_duplicate_phone(self, account_repository: AccountRepository, persisted_account: Account, make_account):
        existing_id = persisted_account.id
        duplicate = make_account(phone=Phone("+12065550100", "US"))

        with pytest.raises(EntityAlreadyExistsError) as exc_info:
            await account_repository.create_account(duplicate)

        assert exc_info.value.message == "Phone number has already been used by another account."
        assert exc_info.value.entity_keys == {"userId": existing_id}

    async def test_duplicate_synapse_user_id(
        self, account_repository: AccountRepository, persisted_account: Account, make_account
    ):
        duplicate = make_account(synapse_user_id="8675309")

        with pytest.raises(EntityAlreadyExistsError) as exc_info:
            await account_repository.create_account(duplicate)

        assert exc_info.value.message == "Synapse User ID has already been used by another account."

    async def test_duplicate_external_id(
        self, account_repository: AccountRepository, persisted_account: Account, make_account
    ):
        existing_id = persisted_account.id
        duplicate = make_account(enrollments={"study1": "ext-1"})
        context = RequestContext(caller_user_id="researcher", caller_study_ids=frozenset({"study1"}))

        with pytest.raises(EntityAlreadyExistsError) as exc_info:
            await account_repository.create_account(duplicate, context)

        assert exc_info.value.message == "External ID has already been used by another account."
        assert exc_info.value.entity_keys == {"userId": existing_id}

    async def test_same_external_id_in_another_study_is_allowed(
        self, account_repository: AccountRepository, db_session: AsyncSession, persisted_account: Account, make_account
    ):
        account = make_account(enrollments={"study2": "ext-1"})

        await account_repository.create_account(account)
        await db_session.commit()

        assert account.id != persisted_account.id

    async def test_session_is_usable_after_a_conflict(
        self, account_repository: AccountRepository, db_session: AsyncSession, persisted_account: Account, make_account
    ):
        with pytest.raises(EntityAlreadyExistsError):
            await account_repository.create_account(make_account(email="existing@example.com"))

        account = await account_repository.create_account(make_account(email="fresh@example.com"))
        await db_session.commit()

        assert (await account_repository.get_by_email(APP_ID, "fresh@example.com")).id == account.id

    async def test_missing_app_id_is_a_generic_constraint_violation(
        self, account_repository: AccountRepository, make_account
    ):
        with pytest.raises(ConstraintViolationError) as exc_info:
            await account_repository.create_account(make_account(app_id=None))

        assert exc_info.value.message == "Accounts table constraint prevented save or update."


@pytest.mark.asyncio
class TestAccountRepositoryUpdate:

    async def test_update_bumps_version(
        self, account_repository: AccountRepository, db_session: AsyncSession, persisted_account: Account
    ):
        persisted_account.email = "changed@example.com"

        await account_repository.update_account(persisted_account)
        await db_session.commit()

        assert persisted_account.version == 2

    async def test_stale_version_is_a_concurrent_modification(
        self, account_repository: AccountRepository, async_engine, persisted_account: Account
    ):
        # A second session saves the account first
        async with AsyncSession(async_engine, expire_on_commit=False) as other:
            other_repo = AccountRepository(other)
            concurrent = await other_repo.get_account(APP_ID, persisted_account.id)
            concurrent.email = "background@example.com"
            await other_repo.update_account(concurrent)
            await other.commit()

        persisted_account.email = "foreground@example.com"
        with pytest.raises(ConcurrentModificationError) as exc_info:
            await account_repository.update_account(persisted_account)

        assert exc_info.value.message == (
            "Account has the wrong version number; it may have been saved in the background."
        )

    async def test_update_account_created_without_enrollments(
        self, account_repository: AccountRepository, db_session: AsyncSession, make_account
    ):
        account = await account_repository.create_account(make_account())
        await db_session.commit()

        account.email = "renamed@example.com"
        await account_repository.update_account(account)
        await db_session.commit()

        assert account.version == 2
        assert account.enrollments == []
        assert (await account_repository.get_by_email(APP_ID, "renamed@example.com")).id == account.id

    async def test_update_without_changes_keeps_the_version(
        self, account_repository: AccountRepository, db_session: AsyncSession, make_account
    ):
        account = await account_repository.create_account(make_account())
        await db_session.commit()

        await account_repository.update_account(account)

        assert account.version == 1

    async def test_update_into_a_taken_email_names_the_existing_account(
        self, account_repository: AccountRepository, db_session: AsyncSession, make_account
    ):
        first = await account_repository.create_account(make_account(email="first@example.com"))
        second = await account_repository.create_account(make_account(email="second@example.com"))
        await db_session.commit()
        first_id = first.id

        second.email = "first@example.com"
        with pytest.raises(EntityAlreadyExistsError) as exc_info:
            await account_repository.update_account(second)

        assert exc_info.value.message == "Email address has already been used by another account."
        assert exc_info.value.entity_keys == {"userId": first_id}

    @pytest.mark.filterwarnings("ignore::sqlalchemy.exc.SAWarning")
    async def test_second_enrollment_in_the_same_study(
        self, account_repository: AccountRepository, persisted_account: Account
    ):
        persisted_account.enrollments.append(Enrollment(app_id=APP_ID, study_id="study1", external_id="ext-2"))

        with pytest.raises(ConstraintViolationError) as exc_info:
            await account_repository.update_account(persisted_account)

        assert exc_info.value.message == "Account already has an enrollment in one of the requested studies."
        assert exc_info.value.http_status() == 409
