"""Driver registry model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from fleet_api.db.base import Base


class Driver(Base):
    """Registered fleet driver. Read-only from the SOS pipeline's point of view."""

    __tablename__ = "tbl_drivers"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    registration_code: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    phone_number: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
