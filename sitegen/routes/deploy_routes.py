"""
Deployment API routes.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sitegen.models.base import get_db_dependency
from sitegen.routes.dependencies import get_current_user_id, get_netlify_service
from sitegen.schemas.request_schemas import DeployRequest, GenerationIdRequest, ManualDeploymentRequest
from sitegen.schemas.response_schemas import DeploymentResponse
from sitegen.services.deployment_service import DeploymentService
from sitegen.services.netlify_service import NetlifyService

router = APIRouter(prefix="/api/deploy", tags=["deploy"])


@router.post("", response_model=DeploymentResponse)
def deploy_generation(
    request: DeployRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_dependency),
    netlify_service: NetlifyService = Depends(get_netlify_service)
):
    """
    Publish a generation to Netlify.

    Provider failures come back as a result with success=false and the
    generation marked failed, not as an HTTP error.
    """
    result = DeploymentService(db, netlify_service).deploy(
        user_id,
        request.generation_id,
        html=request.html_content,
        site_name=request.site_name
    )
    return DeploymentResponse(**result.to_dict())


@router.post("/check-status", response_model=DeploymentResponse)
def check_deployment_status(
    request: GenerationIdRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_dependency),
    netlify_service: NetlifyService = Depends(get_netlify_service)
):
    """Reconcile a generation that is still deploying."""
    result = DeploymentService(db, netlify_service).check_status(user_id, request.generation_id)
    return DeploymentResponse(**result.to_dict())


@router.post("/status", response_model=DeploymentResponse)
def record_manual_deployment(
    request: ManualDeploymentRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_dependency),
    netlify_service: NetlifyService = Depends(get_netlify_service)
):
    """Mark a generation as deployed by hand."""
    result = DeploymentService(db, netlify_service).record_manual_deployment(
        user_id, request.generation_id, request.deployment_url
    )
    return DeploymentResponse(**result.to_dict())


@router.delete("/delete", response_model=DeploymentResponse)
def delete_deployment(
    request: GenerationIdRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db_dependency),
    netlify_service: NetlifyService = Depends(get_netlify_service)
):
    """Take a deployment down, or delete a generation that was never deployed."""
    result = DeploymentService(db, netlify_service).delete(user_id, request.generation_id)
    return DeploymentResponse(**result.to_dict())
