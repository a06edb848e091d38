"""
Generation API routes (profile listing and the manual HTML editor).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sitegen.models.base import get_db_dependency
from sitegen.routes.dependencies import get_current_user_id
from sitegen.schemas.request_schemas import UpdateHtmlRequest
from sitegen.schemas.response_schemas import GenerationResponse, GenerationListResponse
from sitegen.services.generation_service import GenerationService

router = APIRouter(prefix="/api/generations", tags=["generations"])


@router.get("", response_model=GenerationListResponse)
def list_generations(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_dependency)
):
    """List every generation the caller owns, newest first."""
    generations = GenerationService(db).list_generations(user_id)
    return GenerationListResponse(
        generations=[GenerationResponse(**g.to_dict()) for g in generations],
        total_count=len(generations)
    )


@router.post("/update-html", response_model=GenerationResponse)
def update_html(
    request: UpdateHtmlRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_dependency)
):
    """Overwrite a generation's HTML without calling the model."""
    generation = GenerationService(db).update_html(user_id, request.generation_id, request.html_content)
    return GenerationResponse(**generation.to_dict())
