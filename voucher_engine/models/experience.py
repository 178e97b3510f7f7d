from sqlalchemy import Boolean, Column, DateTime, Numeric, String
from sqlalchemy.sql import func

from voucher_engine.core.database import Base


class Experience(Base):
    """Catalog entry. Owned by the catalog service; the engine only reads it."""

    __tablename__ = "experiences"

    id = Column(String(36), primary_key=True, index=True)
    title = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
