"""
Database model for AI generations (one versioned HTML artifact each).
"""

from datetime import datetime
from sqlalchemy import (
    Column, String, DateTime, Text, Integer, Boolean, ForeignKey, Enum, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sitegen.models.base import Base
import uuid
import enum


class GenerationStatus(str, enum.Enum):
    """Outcome of the model call that produced a generation."""
    COMPLETED = "completed"
    FAILED = "failed"
    PENDING = "pending"


class DeploymentStatus(str, enum.Enum):
    """Lifecycle of publishing a generation to static hosting."""
    NOT_DEPLOYED = "not_deployed"
    DEPLOYING = "deploying"
    DEPLOYED = "deployed"
    FAILED = "failed"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Generation(Base):
    """
    Generation model: one HTML document produced within a conversation.
    """
    __tablename__ = "ai_generations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    conversation_id = Column(
        String(36),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    version = Column(Integer, default=1, nullable=False, doc="Version number within the conversation")
    user_prompt = Column(Text, nullable=False, doc="Raw prompt or JSON array of user messages")
    ai_response = Column(Text, nullable=False, doc="Generated HTML, possibly fenced")
    previous_html = Column(Text, nullable=True, doc="HTML the edit was based on")
    model = Column(String(255), nullable=False)
    status = Column(
        Enum(GenerationStatus, values_callable=_enum_values, native_enum=False, length=20),
        default=GenerationStatus.COMPLETED,
        nullable=False
    )
    is_current_version = Column(Boolean, default=True, nullable=False)

    # Deployment fields
    deployment_status = Column(
        Enum(DeploymentStatus, values_callable=_enum_values, native_enum=False, length=20),
        default=DeploymentStatus.NOT_DEPLOYED,
        nullable=False
    )
    deployment_url = Column(String(1024), nullable=True)
    deployment_id = Column(String(255), nullable=True, doc="External site id")
    deployed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    conversation = relationship("Conversation", back_populates="generations")

    __table_args__ = (
        UniqueConstraint("conversation_id", "version", name="uq_generation_conversation_version"),
        # At most one current row per conversation
        Index(
            "uq_generation_current_version",
            "conversation_id",
            unique=True,
            sqlite_where=is_current_version.is_(True),
            postgresql_where=is_current_version.is_(True),
        ),
    )

    @property
    def is_deployed_or_deploying(self) -> bool:
        return self.deployment_status in (DeploymentStatus.DEPLOYED, DeploymentStatus.DEPLOYING)

    def __repr__(self):
        return (
            f"<Generation(id={self.id}, conversation_id={self.conversation_id}, "
            f"version={self.version}, current={self.is_current_version})>"
        )

    def to_dict(self):
        """Convert to dictionary."""
        return {
            "id": self.id,
            "conversation_id": self.conversation_id,
            "user_id": self.user_id,
            "version": self.version,
            "user_prompt": self.user_prompt,
            "ai_response": self.ai_response,
            "previous_html": self.previous_html,
            "model": self.model,
            "status": self.status.value if self.status else None,
            "is_current_version": self.is_current_version,
            "deployment_status": self.deployment_status.value if self.deployment_status else None,
            "deployment_url": self.deployment_url,
            "deployment_id": self.deployment_id,
            "deployed_at": self.deployed_at.isoformat() if self.deployed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
