from jose import JWTError, jwt
import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional, Tuple
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from sqlalchemy.orm import Session
from travel_planner.models import RefreshToken, User
from travel_planner.core.config import settings


class JWTManager:
    """Manages JWT token creation, validation, and refresh token rotation."""

    def __init__(self):
        # Generate RSA key pair for RS256 signing
        self.private_key = rsa.generate_private_key(
            public_exponent=65537,
            key_size=2048
        )
        self.public_key = self.private_key.public_key()

        # Serialize keys for JWT library
        self.private_key_pem = self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption()
        )

        self.public_key_pem = self.public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo
        )

        # Token TTLs
        self.access_token_ttl = timedelta(minutes=settings.jwt_access_token_expire_minutes)
        self.refresh_token_ttl = timedelta(days=settings.jwt_refresh_token_expire_days)

    @staticmethod
    def _hash_jti(jti: str) -> str:
        return hashlib.sha256(jti.encode()).hexdigest()

    def create_access_token(self, user_id: int, role: str) -> str:
        """Create a new access token."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "role": role,
            "iat": now,
            "exp": now + self.access_token_ttl,
            "type": "access"
        }

        return jwt.encode(payload, self.private_key_pem, algorithm="RS256")

    def create_refresh_token(self, db: Session, user_id: int) -> Tuple[str, str]:
        """Create a new refresh token and store it in the database."""
        # Generate a random JTI (JWT ID)
        jti = secrets.token_urlsafe(32)

        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "jti": jti,
            "iat": now,
            "exp": now + self.refresh_token_ttl,
            "type": "refresh"
        }

        token = jwt.encode(payload, self.private_key_pem, algorithm="RS256")

        # Only the hash of the JTI is kept
        refresh_token = RefreshToken(
            user_id=user_id,
            jti=jti,
            hashed_token=self._hash_jti(jti),
            expires_at=now + self.refresh_token_ttl
        )
        db.add(refresh_token)
        db.commit()

        return token, jti

    def create_token_pair(self, db: Session, user: User) -> Dict[str, Any]:
        access_token = self.create_access_token(user.id, user.role)
        refresh_token, _ = self.create_refresh_token(db, user.id)
        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "expires_in": int(self.access_token_ttl.total_seconds()),
        }

    def verify_access_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Verify and decode an access token."""
        try:
            payload = jwt.decode(token, self.public_key_pem, algorithms=["RS256"])

            # Check token type
            if payload.get("type") != "access":
                return None

            return payload
        except JWTError:
            return None

    def verify_refresh_token(self, db: Session, token: str) -> Optional[Dict[str, Any]]:
        """Verify a refresh token and check if it's still valid in the database."""
        try:
            payload = jwt.decode(token, self.public_key_pem, algorithms=["RS256"])
        except JWTError:
            return None

        # Check token type
        if payload.get("type") != "refresh":
            return None

        jti = payload.get("jti")
        if not jti:
            return None

        refresh_token = db.query(RefreshToken).filter(
            RefreshToken.hashed_token == self._hash_jti(jti),
            RefreshToken.expires_at > datetime.now(timezone.utc),
            RefreshToken.is_revoked == False  # noqa: E712
        ).first()

        if not refresh_token:
            return None

        return payload

    def revoke_refresh_token(self, db: Session, jti: str) -> bool:
        """Revoke a refresh token by JTI."""
        refresh_token = db.query(RefreshToken).filter(
            RefreshToken.hashed_token == self._hash_jti(jti)
        ).first()

        if refresh_token:
            refresh_token.is_revoked = True
            db.commit()
            return True

        return False

    def revoke_all_user_tokens(self, db: Session, user_id: int) -> int:
        """Revoke all refresh tokens for a user. Returns count of revoked tokens."""
        count = db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id,
            RefreshToken.is_revoked == False  # noqa: E712
        ).update({"is_revoked": True})

        db.commit()
        return count

    def rotate_refresh_token(self, db: Session, old_token: str) -> Optional[Dict[str, Any]]:
        """Rotate a refresh token, returning a new token pair."""
        payload = self.verify_refresh_token(db, old_token)
        if not payload:
            return None

        user = db.query(User).filter(User.id == int(payload["sub"])).first()
        if not user or not user.is_active:
            return None

        self.revoke_refresh_token(db, payload["jti"])
        return self.create_token_pair(db, user)

    def cleanup_expired_tokens(self, db: Session) -> int:
        """Clean up expired refresh tokens from the database."""
        count = db.query(RefreshToken).filter(
            RefreshToken.expires_at < datetime.now(timezone.utc)
        ).delete()

        db.commit()
        return count


# Global JWT manager instance
jwt_manager = JWTManager()
