"""
Conversation API routes.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sitegen.models.base import get_db_dependency
from sitegen.routes.dependencies import get_current_user_id, get_netlify_service
from sitegen.schemas.response_schemas import ConversationResponse, ConversationListResponse, DeleteResponse
from sitegen.services.conversation_service import ConversationService
from sitegen.services.deployment_service import DeploymentService
from sitegen.services.errors import NotFoundError
from sitegen.services.netlify_service import NetlifyService
from sitegen.utils.logger import get_logger

router = APIRouter(prefix="/api/conversations", tags=["conversations"])
logger = get_logger(__name__)


@router.get("", response_model=ConversationListResponse)
def list_conversations(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_dependency)
):
    """List the caller's conversations, most recently updated first."""
    conversations = ConversationService(db).list_conversations(user_id)
    return ConversationListResponse(
        conversations=[ConversationResponse(**c) for c in conversations],
        total_count=len(conversations)
    )


@router.get("/{conversation_id}", response_model=ConversationResponse)
def get_conversation(
    conversation_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_dependency)
):
    """
    Get one conversation with every version of its site.

    Raises:
        NotFoundError: If absent or owned by someone else
    """
    conversation_service = ConversationService(db)
    conversation = conversation_service.get_conversation(conversation_id, user_id)
    if conversation is None:
        raise NotFoundError("Conversation not found", {"conversation_id": conversation_id})

    current = conversation_service.get_current_generation(conversation)
    data = conversation.to_dict()
    data["current_generation"] = current.to_dict() if current else None
    data["generations"] = [g.to_dict() for g in conversation.generations]
    return ConversationResponse(**data)


@router.delete("/{conversation_id}", response_model=DeleteResponse)
def delete_conversation(
    conversation_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_dependency),
    netlify_service: NetlifyService = Depends(get_netlify_service)
):
    """
    Delete a conversation, its generations and their hosted sites.

    Raises:
        NotFoundError: If absent or owned by someone else
    """
    conversation_service = ConversationService(db)
    if conversation_service.get_conversation(conversation_id, user_id) is None:
        raise NotFoundError("Conversation not found", {"conversation_id": conversation_id})

    released = DeploymentService(db, netlify_service).release_conversation_sites(user_id, conversation_id)
    conversation_service.delete_conversation(conversation_id, user_id)

    logger.info(f"Deleted conversation {conversation_id} ({released} hosted site(s) released)")
    return DeleteResponse(
        success=True,
        message="Conversation deleted successfully",
        sites_released=released
    )
