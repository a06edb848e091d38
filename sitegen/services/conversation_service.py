"""
Conversation service for creating, listing and deleting conversations.
"""

from datetime import datetime
from typing import List, Dict, Any, Optional
from sqlalchemy.orm import Session
from sqlalchemy import desc
import uuid

from sitegen.models.conversation import Conversation
from sitegen.models.generation import Generation
from sitegen.utils.html_helpers import generate_title


class ConversationService:
    """Service for managing a user's conversations."""

    def __init__(self, db: Session):
        """
        Initialize conversation service.

        Args:
            db: Database session
        """
        self.db = db

    def create_conversation(self, user_id: str, first_prompt: str, commit: bool = True) -> Conversation:
        """
        Create a new conversation titled after its first prompt.

        Args:
            user_id: Owner of the conversation
            first_prompt: Raw prompt or serialized message array
            commit: Commit immediately; pass False to join the caller's transaction

        Returns:
            Conversation: Created conversation
        """
        now = datetime.utcnow()
        conversation = Conversation(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=generate_title(first_prompt),
            description=first_prompt,
            created_at=now,
            updated_at=now
        )

        self.db.add(conversation)
        if commit:
            self.db.commit()
            self.db.refresh(conversation)
        else:
            self.db.flush()

        return conversation

    def get_conversation(self, conversation_id: str, user_id: str) -> Optional[Conversation]:
        """
        Get a conversation owned by the user.

        Args:
            conversation_id: Conversation UUID
            user_id: Caller

        Returns:
            Conversation or None if absent or owned by someone else
        """
        return self.db.query(Conversation).filter(
            Conversation.id == conversation_id,
            Conversation.user_id == user_id
        ).first()

    def get_current_generation(self, conversation: Conversation) -> Optional[Generation]:
        """Generation the conversation currently points at."""
        if not conversation.current_generation_id:
            return None
        return self.db.query(Generation).filter(
            Generation.id == conversation.current_generation_id
        ).first()

    def list_conversations(self, user_id: str) -> List[Dict[str, Any]]:
        """
        List the user's conversations, most recently updated first.

        Args:
            user_id: Caller

        Returns:
            List of conversation dicts, each with its current generation
        """
        conversations = self.db.query(Conversation).filter(
            Conversation.user_id == user_id
        ).order_by(desc(Conversation.updated_at)).all()

        current_ids = [c.current_generation_id for c in conversations if c.current_generation_id]
        current_by_id = {}
        if current_ids:
            current_by_id = {
                generation.id: generation
                for generation in self.db.query(Generation).filter(Generation.id.in_(current_ids)).all()
            }

        results = []
        for conversation in conversations:
            data = conversation.to_dict()
            current = current_by_id.get(conversation.current_generation_id)
            data["current_generation"] = current.to_dict() if current else None
            results.append(data)

        return results

    def delete_conversation(self, conversation_id: str, user_id: str) -> bool:
        """
        Delete a conversation and all of its generations.

        Args:
            conversation_id: Conversation UUID
            user_id: Caller; must own the conversation

        Returns:
            bool: True if deleted, False if not found or not owned
        """
        conversation = self.get_conversation(conversation_id, user_id)
        if not conversation:
            return False

        self.db.delete(conversation)
        self.db.commit()
        return True
