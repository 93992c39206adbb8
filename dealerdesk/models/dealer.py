"""
models/dealer.py
----------------
Dealer ORM model.

A dealer with user_id NULL is an orphan: it belongs to no salesperson and is
therefore visible to every company's location and mapping screens.
"""

import uuid
from typing import Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dealerdesk.db.base import Base, TimestampMixin


class Dealer(Base, TimestampMixin):
    __tablename__ = "dealers"

    id: Mapped[str] = mapped_column(
        String(255), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    region: Mapped[str] = mapped_column(String(100), nullable=False)
    area: Mapped[str] = mapped_column(String(255), nullable=False)
    verification_status: Mapped[str] = mapped_column(
        String(50), nullable=False, default="PENDING"
    )

    # Relationships
    user: Mapped[Optional["User"]] = relationship("User", back_populates="dealers")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Dealer id={self.id} name={self.name} user_id={self.user_id}>"
