from sqlalchemy import Column, String, Boolean, ForeignKey
from .base import BaseModel, SoftDeleteMixin, IdType


class PersonalPhoto(SoftDeleteMixin, BaseModel):
    __tablename__ = "personal_photo"

    filename_hash = Column(String(255), unique=True, nullable=False)  # Blob name in photo storage
    original_filename = Column(String(255))
    content_type = Column(String(100))
    is_public = Column(Boolean, default=False, nullable=False)

    # Foreign keys
    owner_id = Column(IdType, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
