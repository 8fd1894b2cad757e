from .base import BaseModel, SoftDeleteMixin
from .user import User, RefreshToken
from .destination import (
    Destination,
    DestinationType,
    Country,
    TravellerType,
    DestinationPhoto,
    DestinationProposal,
)
from .photo import PersonalPhoto
from .trip import Trip, TripDestination
from .treasure_hunt import TreasureHunt

__all__ = [
    "BaseModel",
    "SoftDeleteMixin",
    "User",
    "RefreshToken",
    "Destination",
    "DestinationType",
    "Country",
    "TravellerType",
    "DestinationPhoto",
    "DestinationProposal",
    "PersonalPhoto",
    "Trip",
    "TripDestination",
    "TreasureHunt",
]
