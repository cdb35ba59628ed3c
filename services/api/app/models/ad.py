"""Ad model.

Represents a classified-ad listing. id and both timestamps are assigned by
the database; updated_at is bumped by the UPDATE statement itself.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Numeric, String, Text, func, true
from sqlalchemy.orm import Mapped, mapped_column

from app.stores.postgres import Base


class AdRecord(Base):
    """Row in the ads table."""

    __tablename__ = "ads"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)

    # Listing
    title: Mapped[str] = mapped_column(String(255), index=True)
    description: Mapped[str] = mapped_column(Text)
    price: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), index=True)
    active: Mapped[bool] = mapped_column(default=True, server_default=true())

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Ad {self.id} {self.title!r} ${self.price:.2f}>"
