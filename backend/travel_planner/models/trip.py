from sqlalchemy import Column, String, Integer, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from .base import BaseModel, IdType


class Trip(BaseModel):
    __tablename__ = "trip"

    name = Column(String(255), nullable=False)

    # Foreign keys
    user_id = Column(IdType, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)

    # Relationships
    trip_destinations = relationship(
        "TripDestination",
        back_populates="trip",
        cascade="all, delete-orphan",
        order_by="TripDestination.position",
        lazy="selectin",
    )


class TripDestination(BaseModel):
    __tablename__ = "trip_destination"

    position = Column(Integer, nullable=False)
    arrival = Column(DateTime(timezone=True))
    departure = Column(DateTime(timezone=True))

    # Foreign keys
    trip_id = Column(IdType, ForeignKey("trip.id", ondelete="CASCADE"), nullable=False, index=True)
    destination_id = Column(IdType, ForeignKey("destination.id", ondelete="CASCADE"), nullable=False, index=True)

    # Relationships
    trip = relationship("Trip", back_populates="trip_destinations")
