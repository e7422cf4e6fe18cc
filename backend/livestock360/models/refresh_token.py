"""Refresh token model for storing user sessions."""
from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from livestock360.core.database import Base, utcnow


class RefreshToken(Base):
    """Refresh token issued to one client; revoked on rotation or logout."""

    __tablename__ = "refresh_tokens"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    token = Column(String(500), unique=True, nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked = Column(Boolean, default=False, nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    client_info = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    last_used_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="refresh_tokens")

    def __repr__(self) -> str:
        """String representation of refresh token."""
        return f"<RefreshToken user={self.user_id}>"
