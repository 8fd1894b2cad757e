from sqlalchemy import Column, String, Boolean, ForeignKey, Float, Table, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from travel_planner.core.database import Base
from .base import BaseModel, SoftDeleteMixin, IdType


destination_traveller_type = Table(
    "destination_traveller_type",
    Base.metadata,
    Column("destination_id", IdType, ForeignKey("destination.id", ondelete="CASCADE"), primary_key=True),
    Column("traveller_type_id", IdType, ForeignKey("traveller_type.id", ondelete="CASCADE"), primary_key=True),
)

proposal_traveller_type = Table(
    "proposal_traveller_type",
    Base.metadata,
    Column("proposal_id", IdType, ForeignKey("destination_proposal.id", ondelete="CASCADE"), primary_key=True),
    Column("traveller_type_id", IdType, ForeignKey("traveller_type.id", ondelete="CASCADE"), primary_key=True),
)


class DestinationType(BaseModel):
    __tablename__ = "destination_type"

    name = Column(String(100), unique=True, nullable=False)


class Country(BaseModel):
    __tablename__ = "country"

    name = Column(String(255), nullable=False, index=True)
    iso_code = Column(String(3), unique=True)


class TravellerType(BaseModel):
    __tablename__ = "traveller_type"

    name = Column(String(100), unique=True, nullable=False)


class Destination(SoftDeleteMixin, BaseModel):
    __tablename__ = "destination"

    name = Column(String(255), nullable=False, index=True)
    district = Column(String(255))
    latitude = Column(Float)
    longitude = Column(Float)
    is_public = Column(Boolean, default=False, nullable=False)

    # Foreign keys
    type_id = Column(IdType, ForeignKey("destination_type.id"), nullable=False)
    country_id = Column(IdType, ForeignKey("country.id"), nullable=False)
    owner_id = Column(IdType, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)  # None = public-owned

    # Relationships
    destination_type = relationship("DestinationType", lazy="joined")
    country = relationship("Country", lazy="joined")
    traveller_types = relationship(
        "TravellerType",
        secondary=destination_traveller_type,
        lazy="selectin",
        order_by="TravellerType.id",
    )


# Business key among active rows. Enforced here so racing creates cannot both commit.
Index(
    "uq_destination_business_key",
    func.lower(Destination.name),
    Destination.type_id,
    Destination.country_id,
    Destination.is_public,
    Destination.owner_id,
    unique=True,
    postgresql_where=Destination.is_deleted == False,  # noqa: E712
    sqlite_where=Destination.is_deleted == False,  # noqa: E712
)


class DestinationPhoto(SoftDeleteMixin, BaseModel):
    __tablename__ = "destination_photo"

    # Foreign keys
    destination_id = Column(IdType, ForeignKey("destination.id", ondelete="CASCADE"), nullable=False, index=True)
    personal_photo_id = Column(IdType, ForeignKey("personal_photo.id", ondelete="CASCADE"), nullable=False)

    # Relationships
    personal_photo = relationship("PersonalPhoto", lazy="joined")


class DestinationProposal(SoftDeleteMixin, BaseModel):
    __tablename__ = "destination_proposal"

    # Foreign keys
    destination_id = Column(IdType, ForeignKey("destination.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(IdType, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)

    # Relationships
    traveller_types = relationship(
        "TravellerType",
        secondary=proposal_traveller_type,
        lazy="selectin",
        order_by="TravellerType.id",
    )
