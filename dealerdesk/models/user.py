"""
models/user.py
--------------
User ORM model with role, tenant binding and reporting line.

reports_to_id is a self-reference. It must stay inside the user's company and
is only rewritten by HierarchyService; ON DELETE SET NULL detaches the reports
of a deleted manager.

role stores a Role value as plain text so that a role renamed at the identity
provider degrades to Role.unknown instead of breaking row loading.
"""

from typing import Optional

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dealerdesk.core.permissions import Role
from dealerdesk.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("company_id", "email", name="users_company_id_email_key"),
        Index("idx_user_reports_to_id", "reports_to_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # Subject id issued by the identity provider
    external_identity_id: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True, index=True
    )
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id"),
        nullable=False,
        index=True,
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(
        String(50), nullable=False, default=Role.junior_executive.value
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    reports_to_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL", onupdate="CASCADE"),
        nullable=True,
    )
    region: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    area: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    company: Mapped["Company"] = relationship("Company", back_populates="users")  # noqa: F821
    dealers: Mapped[list["Dealer"]] = relationship(  # noqa: F821
        "Dealer", back_populates="user"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role}>"
