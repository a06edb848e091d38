"""
Database model for conversations.
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from sitegen.models.base import Base
import uuid


class Conversation(Base):
    """
    Conversation model representing one website-building session.
    """
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=True, doc="Derived from the first prompt, never changed")
    description = Column(Text, nullable=True, doc="The first prompt")
    current_generation_id = Column(String(36), nullable=True, doc="Generation flagged as current")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    generations = relationship(
        "Generation",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Generation.version",
    )

    def __repr__(self):
        return f"<Conversation(id={self.id}, user_id={self.user_id}, title={self.title!r})>"

    def to_dict(self):
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "current_generation_id": self.current_generation_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
