from sqlalchemy import Column, String, Boolean, ForeignKey, Integer, DateTime
from sqlalchemy.orm import relationship
from .base import BaseModel, IdType

ROLE_ADMIN = "ADMIN"
ROLE_TRAVELLER = "TRAVELLER"


class User(BaseModel):
    __tablename__ = "user"

    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(50), default=ROLE_TRAVELLER)  # ADMIN or TRAVELLER
    is_active = Column(Boolean, default=True)
    failed_login_attempts = Column(Integer, default=0)
    locked_until = Column(DateTime(timezone=True), nullable=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    refresh_tokens = relationship("RefreshToken", back_populates="user", cascade="all, delete-orphan")

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


class RefreshToken(BaseModel):
    __tablename__ = "refresh_token"

    jti = Column(String(255), unique=True, index=True, nullable=False)
    hashed_token = Column(String(255), index=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    is_revoked = Column(Boolean, default=False)

    # Foreign keys
    user_id = Column(IdType, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)

    # Relationships
    user = relationship("User", back_populates="refresh_tokens")
