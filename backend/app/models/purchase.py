"""Purchase records.

Amounts are stored as NUMERIC(10, 2) and read back as floats.
"""

from sqlalchemy import Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TimestampMixin, UUIDMixin


class Purchase(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "purchases"

    product: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False)
    quantity: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False)

    def __repr__(self) -> str:
        return f"<Purchase {self.product} x{self.quantity}>"
