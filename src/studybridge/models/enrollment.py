from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studybridge.database.base import Base

if TYPE_CHECKING:
    from .account import Account

EXTERNAL_ID_CONSTRAINT = "Enrollments-AppId-StudyId-ExternalId-Index"


class Enrollment(Base):
    """
    Association of an account with a study, optionally carrying the study's external ID
    for that participant.
    """
    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("app_id", "study_id", "external_id", name=EXTERNAL_ID_CONSTRAINT),
    )

    account_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True
    )
    study_id: Mapped[str] = mapped_column(String(60), primary_key=True)
    app_id: Mapped[str] = mapped_column(String(60), nullable=False)
    external_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    enrolled_on: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    account: Mapped["Account"] = relationship("Account", back_populates="enrollments")

    def __repr__(self) -> str:
        return f"<Enrollment(account_id={self.account_id!r}, study_id={self.study_id!r})>"
