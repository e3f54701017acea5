from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func

from app.database import Base


class UserSession(Base):
    __tablename__ = "user_sessions"

    sid = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
