"""
Repository layer.

    from studybridge.repositories import AccountRepository

    repo = AccountRepository(session)
    await repo.create_account(account, context)
"""

from .account_repository import AccountRepository
from .base_repository import BaseRepository

__all__ = [
    "BaseRepository",
    "AccountRepository",
]
