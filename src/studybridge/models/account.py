from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING
import uuid

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studybridge.database.base import Base

if TYPE_CHECKING:
    from .enrollment import Enrollment

# Unique constraint names. The persistence exception converter maps these back to fields.
EMAIL_CONSTRAINT = "Accounts-AppId-Email-Index"
PHONE_CONSTRAINT = "Accounts-AppId-Phone-Index"
SYNAPSE_USER_ID_CONSTRAINT = "Accounts-AppId-SynapseUserId-Index"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Phone:
    """Phone number in E.164 form plus the region it was entered for."""
    number: str
    region_code: str | None = None


@dataclass(frozen=True)
class EnrollmentSnapshot:
    study_id: str
    external_id: str | None = None


@dataclass(frozen=True)
class AccountSnapshot:
    """
    Detached copy of the values that identify an account.

    Taken before a failed session is rolled back, since rollback expires the ORM instance.
    Attribute names mirror `Account` so either can be handed to the exception converter.
    """
    app_id: str | None
    email: str | None = None
    phone_number: str | None = None
    synapse_user_id: str | None = None
    enrollments: tuple[EnrollmentSnapshot, ...] = ()


class Account(Base):
    """
    A participant or researcher account inside one app.

    Email, phone, Synapse user ID and (study, external ID) are each unique within an app;
    the database enforces this and the converter explains violations to callers.
    `version` is the optimistic-lock counter.
    """
    __tablename__ = "accounts"
    __table_args__ = (
        UniqueConstraint("app_id", "email", name=EMAIL_CONSTRAINT),
        UniqueConstraint("app_id", "phone_number", name=PHONE_CONSTRAINT),
        UniqueConstraint("app_id", "synapse_user_id", name=SYNAPSE_USER_ID_CONSTRAINT),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    app_id: Mapped[str] = mapped_column(String(60), nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(30), nullable=True)
    phone_region: Mapped[str | None] = mapped_column(String(2), nullable=True)
    synapse_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_on: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    enrollments: Mapped[list["Enrollment"]] = relationship(
        "Enrollment",
        back_populates="account",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Enrollment.enrolled_on",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def phone(self) -> Phone | None:
        if self.phone_number is None:
            return None
        return Phone(self.phone_number, self.phone_region)

    @phone.setter
    def phone(self, value: Phone | None) -> None:
        self.phone_number = value.number if value else None
        self.phone_region = value.region_code if value else None

    def snapshot(self) -> AccountSnapshot:
        return AccountSnapshot(
            app_id=self.app_id,
            email=self.email,
            phone_number=self.phone_number,
            synapse_user_id=self.synapse_user_id,
            enrollments=tuple(EnrollmentSnapshot(e.study_id, e.external_id) for e in self.enrollments),
        )

    def __repr__(self) -> str:
        # ids only; email/phone are PII
        return f"<Account(id={self.id!r}, app_id={self.app_id!r})>"


def collect_external_ids(account) -> set[str]:
    """Non-blank external IDs across the account's enrollments."""
    return {
        e.external_id for e in (account.enrollments or [])
        if e.external_id is not None and e.external_id.strip()
    }
