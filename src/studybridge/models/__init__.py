"""
Single point of access to the ORM models.

Importing this package registers every model with `Base.metadata`, which the
relationship string references ("Enrollment", "Demographic") rely on.

    from studybridge.models import Account, Enrollment, DemographicUser
"""

from .account import (
    Account,
    AccountSnapshot,
    EnrollmentSnapshot,
    Phone,
    collect_external_ids,
    EMAIL_CONSTRAINT,
    PHONE_CONSTRAINT,
    SYNAPSE_USER_ID_CONSTRAINT,
)
from .enrollment import Enrollment, EXTERNAL_ID_CONSTRAINT
from .demographic import Demographic, DemographicUser

__all__ = [
    "Account",
    "AccountSnapshot",
    "EnrollmentSnapshot",
    "Phone",
    "collect_external_ids",
    "Enrollment",
    "Demographic",
    "DemographicUser",
    "EMAIL_CONSTRAINT",
    "PHONE_CONSTRAINT",
    "SYNAPSE_USER_ID_CONSTRAINT",
    "EXTERNAL_ID_CONSTRAINT",
]
