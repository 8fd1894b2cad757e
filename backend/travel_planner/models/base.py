from sqlalchemy import Column, Integer, DateTime, BigInteger, Boolean
from sqlalchemy.sql import func
from travel_planner.core.database import Base

# SQLite only auto-increments INTEGER primary keys
IdType = BigInteger().with_variant(Integer, "sqlite")


class BaseModel(Base):
    __abstract__ = True

    id = Column(IdType, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class SoftDeleteMixin:
    """Columns shared by every entity with a delete/undo lifecycle."""

    is_deleted = Column(Boolean, default=False, nullable=False, index=True)
    deleted_expiry = Column(DateTime(timezone=True), nullable=True)
