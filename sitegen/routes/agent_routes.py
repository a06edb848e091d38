"""
Conversational agent and streaming chat routes.
"""

import json
import time

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from sitegen.models.base import get_db_dependency
from sitegen.models.generation import Generation
from sitegen.routes.dependencies import (
    get_current_user_id,
    get_claude_service,
    get_netlify_service,
    get_session_factory,
)
from sitegen.schemas.request_schemas import AgentRequest, ChatRequest
from sitegen.schemas.response_schemas import AgentResponse, DeploymentResponse
from sitegen.services.claude_service import ClaudeService, BedrockException
from sitegen.services.conversation_service import ConversationService
from sitegen.services.deployment_service import DeploymentService, DeploymentOutcome
from sitegen.services.errors import NotFoundError
from sitegen.services.generation_service import GenerationService
from sitegen.services.intention_classifier import IntentionClassifier, Intention
from sitegen.services.netlify_service import NetlifyService
from sitegen.services.prompts import GENERATE_SYSTEM_PROMPT
from sitegen.utils.html_helpers import extract_html
from sitegen.utils.logger import get_logger

router = APIRouter(prefix="/api", tags=["agent"])
logger = get_logger(__name__)


def sse_event(event_type: str, data: dict) -> str:
    """Format a Server-Sent Event string."""
    payload = {"type": event_type, **data}
    return f"data: {json.dumps(payload)}\n\n"


def _generation_response(action: str, message: str, generation: Generation) -> AgentResponse:
    return AgentResponse(
        action=action,
        message=message,
        conversation_id=generation.conversation_id,
        generation_id=generation.id,
        version=generation.version,
        html=extract_html(generation.ai_response)
    )


@router.post("/agent", response_model=AgentResponse)
def run_agent(
    request: AgentRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_dependency),
    claude_service: ClaudeService = Depends(get_claude_service),
    netlify_service: NetlifyService = Depends(get_netlify_service)
):
    """
    Classify a chat message and run the matching action.

    Args:
        request: AgentRequest with message and optional conversation_id
        user_id: Authenticated caller
        db: Database session

    Returns:
        AgentResponse describing what was done

    Raises:
        SiteGenError: Precondition, ownership or conflict failures
        BedrockException: Model unavailable (nothing is written)
    """
    start_time = time.time()

    intention = IntentionClassifier(claude_service).classify(request.message)
    logger.info(f"Agent request: intention={intention.value} conversation={request.conversation_id}")

    generation_service = GenerationService(db, claude_service)
    deployment_service = DeploymentService(db, netlify_service, generation_service)

    if intention == Intention.EDIT:
        generation = generation_service.edit(user_id, request.conversation_id, request.message)
        response = _generation_response("edit", "Website updated successfully!", generation)

    elif intention == Intention.DOWNLOAD:
        download = generation_service.get_download(user_id, request.conversation_id)
        response = AgentResponse(
            action="download",
            message="Website ready for download!",
            conversation_id=request.conversation_id,
            generation_id=download["generation"].id,
            version=download["generation"].version,
            html=download["html"],
            filename=download["filename"]
        )

    elif intention == Intention.DEPLOY:
        current = generation_service.require_current_generation(user_id, request.conversation_id, "deploy")
        result = deployment_service.deploy(user_id, current.id)
        response = AgentResponse(
            action="deploy",
            success=result.success,
            message=result.message,
            conversation_id=request.conversation_id,
            generation_id=current.id,
            version=current.version,
            deploy_url=result.url,
            deployment=DeploymentResponse(**result.to_dict())
        )

    elif intention == Intention.BOTH:
        generation = generation_service.generate(user_id, request.message, request.conversation_id)
        result = deployment_service.deploy(user_id, generation.id)

        if result.outcome == DeploymentOutcome.DEPLOYED:
            message = "Website generated and deployed successfully!"
        else:
            message = f"Website generated. {result.message}"

        response = _generation_response("both", message, generation)
        response.success = result.success
        response.deploy_url = result.url
        response.deployment = DeploymentResponse(**result.to_dict())

    else:
        generation = generation_service.generate(user_id, request.message, request.conversation_id)
        response = _generation_response("generate", "Website generated successfully!", generation)

    logger.info(f"Agent action '{response.action}' completed in {time.time() - start_time:.2f}s")
    return response


@router.post("/chat")
def stream_chat(
    request: ChatRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_dependency),
    claude_service: ClaudeService = Depends(get_claude_service),
    session_factory=Depends(get_session_factory)
):
    """
    Stream a generation from a message history as server-sent events.

    Events are {"type": "delta", "text": ...} while the model writes, then
    one final "done" event once the text is saved, or an "error" event if
    generation or saving fails.
    """
    if request.conversation_id:
        if ConversationService(db).get_conversation(request.conversation_id, user_id) is None:
            raise NotFoundError(
                "Conversation not found",
                {"conversation_id": request.conversation_id}
            )

    user_prompt = json.dumps([m for m in request.messages if m.get("role") == "user"])
    messages = request.messages
    conversation_id = request.conversation_id

    def event_stream():
        chunks = []
        try:
            for text in claude_service.stream_text(GENERATE_SYSTEM_PROMPT, messages=messages):
                chunks.append(text)
                yield sse_event("delta", {"text": text})
        except (BedrockException, ValueError) as e:
            logger.error(f"Chat stream failed: {e}")
            yield sse_event("error", {"stage": "generation", "message": "Website generation failed. Please try again."})
            return

        # Join point: the full text exists only once the stream is drained
        session = session_factory()
        try:
            generation = GenerationService(session, claude_service).save_generation(
                user_id, user_prompt, "".join(chunks), conversation_id=conversation_id
            )
            done = {
                "conversation_id": generation.conversation_id,
                "generation_id": generation.id,
                "version": generation.version
            }
        except Exception as e:
            session.rollback()
            logger.error(f"Failed to save streamed generation: {e}", exc_info=True)
            yield sse_event("error", {"stage": "persistence", "message": "The website was generated but could not be saved."})
            return
        finally:
            session.close()

        yield sse_event("done", done)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}
    )
