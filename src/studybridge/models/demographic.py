from typing import Any
import uuid

from sqlalchemy import JSON, Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, attribute_keyed_dict, mapped_column, relationship

from studybridge.database.base import Base


class DemographicUser(Base):
    """
    Demographic answers of one user, optionally scoped to a study.

    `demographics` is keyed by category name; assigning a category that already exists
    replaces the previous Demographic.
    """
    __tablename__ = "demographics_users"
    __table_args__ = (
        UniqueConstraint("app_id", "study_id", "user_id", name="DemographicsUsers-AppId-StudyId-UserId-Index"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    app_id: Mapped[str] = mapped_column(String(60), nullable=False)
    study_id: Mapped[str | None] = mapped_column(String(60), nullable=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    demographics: Mapped[dict[str, "Demographic"]] = relationship(
        "Demographic",
        collection_class=attribute_keyed_dict("category_name"),
        back_populates="demographic_user",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<DemographicUser(id={self.id!r}, study_id={self.study_id!r}, user_id={self.user_id!r})>"


class Demographic(Base):
    __tablename__ = "demographics"
    __table_args__ = (
        UniqueConstraint("demographic_user_id", "category_name", name="Demographics-UserId-Category-Index"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    demographic_user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("demographics_users.id", ondelete="CASCADE"), nullable=False
    )
    category_name: Mapped[str] = mapped_column(String(768), nullable=False)
    multiple_select: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Ordered, non-null scalars (strings, numbers, booleans)
    values: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    units: Mapped[str | None] = mapped_column(String(512), nullable=True)

    demographic_user: Mapped["DemographicUser"] = relationship("DemographicUser", back_populates="demographics")

    def __repr__(self) -> str:
        return (
            f"<Demographic(category_name={self.category_name!r}, multiple_select={self.multiple_select!r}, "
            f"values={self.values!r})>"
        )
