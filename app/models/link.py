from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.database import Base


class Link(Base):
    __tablename__ = "links"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    url = Column(String, nullable=False)
    icon = Column(String, nullable=False, default="link")  # lucide icon name, e.g. "github"
    order = Column(Integer, nullable=False, default=0)     # display order, not unique

    user = relationship("User", back_populates="links")
