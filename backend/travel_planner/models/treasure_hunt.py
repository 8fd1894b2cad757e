from sqlalchemy import Column, String, Text, ForeignKey, Date
from .base import BaseModel, IdType


class TreasureHunt(BaseModel):
    __tablename__ = "treasure_hunt"

    name = Column(String(255), nullable=False)
    riddle = Column(Text, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    # Foreign keys
    owner_id = Column(IdType, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    destination_id = Column(IdType, ForeignKey("destination.id", ondelete="CASCADE"), nullable=False)
