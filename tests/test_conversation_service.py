"""
Tests for ConversationService.
"""

from datetime import datetime, timedelta

from sitegen.models.conversation import Conversation
from sitegen.models.generation import Generation
from sitegen.services.conversation_service import ConversationService


class TestConversationService:
    """Tests for conversation management."""

    def test_create_conversation(self, test_db, user):
        """Test creating a new conversation."""
        service = ConversationService(test_db)
        conversation = service.create_conversation(user.id, "Build a landing page for my bakery in Lyon")

        assert conversation.id is not None
        assert conversation.user_id == user.id
        assert conversation.title == "Build a landing page for my"
        assert conversation.description == "Build a landing page for my bakery in Lyon"
        assert conversation.current_generation_id is None

    def test_create_conversation_uncommitted(self, test_db, user):
        """Test the conversation joins the caller's transaction."""
        service = ConversationService(test_db)
        conversation = service.create_conversation(user.id, "Draft", commit=False)
        test_db.rollback()

        assert test_db.query(Conversation).filter(Conversation.id == conversation.id).first() is None

    def test_get_conversation_success(self, test_db, user, make_conversation):
        conversation = make_conversation(user.id)

        found = ConversationService(test_db).get_conversation(conversation.id, user.id)

        assert found is not None
        assert found.id == conversation.id

    def test_get_conversation_hidden_from_other_users(self, test_db, user, other_user, make_conversation):
        """Test another user's conversation looks absent."""
        conversation = make_conversation(user.id)

        assert ConversationService(test_db).get_conversation(conversation.id, other_user.id) is None

    def test_get_conversation_not_found(self, test_db, user):
        assert ConversationService(test_db).get_conversation("nonexistent-id", user.id) is None

    def test_list_conversations_newest_first(self, test_db, user, other_user, make_conversation):
        """Test listing is per user and ordered by last update."""
        older = make_conversation(user.id, title="Older")
        newer = make_conversation(user.id, versions=2, title="Newer")
        make_conversation(other_user.id, title="Not mine")

        older.updated_at = datetime.utcnow() - timedelta(days=1)
        test_db.commit()

        listed = ConversationService(test_db).list_conversations(user.id)

        assert [c["id"] for c in listed] == [newer.id, older.id]
        assert listed[0]["current_generation"]["version"] == 2
        assert listed[0]["current_generation"]["is_current_version"] is True

    def test_list_conversations_empty_conversation(self, test_db, user, make_conversation):
        make_conversation(user.id, versions=0)

        listed = ConversationService(test_db).list_conversations(user.id)

        assert len(listed) == 1
        assert listed[0]["current_generation"] is None

    def test_delete_conversation_cascades(self, test_db, user, make_conversation):
        """Test deleting a conversation removes its generations."""
        conversation = make_conversation(user.id, versions=3)

        deleted = ConversationService(test_db).delete_conversation(conversation.id, user.id)

        assert deleted is True
        assert test_db.query(Conversation).count() == 0
        assert test_db.query(Generation).filter(Generation.conversation_id == conversation.id).count() == 0

    def test_delete_conversation_not_owned(self, test_db, user, other_user, make_conversation):
        conversation = make_conversation(user.id)

        assert ConversationService(test_db).delete_conversation(conversation.id, other_user.id) is False
        assert test_db.query(Conversation).count() == 1
