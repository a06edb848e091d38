"""
Response schemas for API responses.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any


class GenerationResponse(BaseModel):
    """Response schema for one generation (one version of a site)."""

    id: str
    conversation_id: str
    user_id: str
    version: int
    user_prompt: str
    ai_response: str
    previous_html: Optional[str] = None
    model: Optional[str] = None
    status: Optional[str] = None
    is_current_version: bool
    deployment_status: Optional[str] = None
    deployment_url: Optional[str] = None
    deployment_id: Optional[str] = None
    deployed_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class GenerationListResponse(BaseModel):
    """Response schema for the caller's generations."""

    generations: List[GenerationResponse]
    total_count: int


class ConversationResponse(BaseModel):
    """Response schema for conversation details."""

    id: str
    user_id: str
    title: Optional[str]
    description: Optional[str]
    current_generation_id: Optional[str]
    created_at: Optional[str]
    updated_at: Optional[str]
    current_generation: Optional[GenerationResponse] = None
    generations: Optional[List[GenerationResponse]] = None

    class Config:
        json_schema_extra = {
            "example": {
                "id": "550e8400-e29b-41d4-a716-446655440000",
                "user_id": "7c9e6679-7425-40de-944b-e07fc1f90ae7",
                "title": "Build a landing page for my",
                "description": "Build a landing page for my bakery",
                "current_generation_id": "a3bb189e-8bf9-4888-9912-ace4e6543002",
                "created_at": "2025-01-07T10:00:00",
                "updated_at": "2025-01-07T10:05:00",
                "current_generation": None
            }
        }


class ConversationListResponse(BaseModel):
    """Response schema for the caller's conversations."""

    conversations: List[ConversationResponse]
    total_count: int


class DeploymentResponse(BaseModel):
    """Response schema for deployment operations."""

    success: bool = Field(..., description="Whether the operation achieved its goal")
    outcome: str = Field(
        ...,
        description="deployed | deploying | provider_failed | unconfirmed | not_configured | unchanged | reset | deleted | manual"
    )
    generation_id: str
    status: Optional[str] = Field(None, description="Local deployment status after the operation")
    message: str
    url: Optional[str] = None
    site_id: Optional[str] = None
    deploy_id: Optional[str] = None
    mock: bool = False
    changed: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "outcome": "deployed",
                "generation_id": "a3bb189e-8bf9-4888-9912-ace4e6543002",
                "status": "deployed",
                "message": "Successfully deployed to Netlify! Your website is now live.",
                "url": "https://my-bakery.netlify.app",
                "site_id": "3970e0fe-8564-4903-9a55-c5f8de49fb8b",
                "deploy_id": "5e3f0b7a1c9d2a0007c1b2d3",
                "mock": False,
                "changed": True
            }
        }


class AgentResponse(BaseModel):
    """Response schema for the conversational agent."""

    action: str = Field(..., description="generate | edit | deploy | both | download")
    success: bool = True
    message: str
    conversation_id: Optional[str] = None
    generation_id: Optional[str] = None
    version: Optional[int] = None
    html: Optional[str] = None
    filename: Optional[str] = None
    deploy_url: Optional[str] = None
    deployment: Optional[DeploymentResponse] = None

    class Config:
        json_schema_extra = {
            "example": {
                "action": "generate",
                "success": True,
                "message": "Website generated successfully!",
                "conversation_id": "550e8400-e29b-41d4-a716-446655440000",
                "generation_id": "a3bb189e-8bf9-4888-9912-ace4e6543002",
                "version": 1,
                "html": "<!DOCTYPE html>..."
            }
        }


class HealthResponse(BaseModel):
    """Response schema for health check."""

    status: str = Field(..., description="Overall status: healthy | degraded | unhealthy")
    services: Dict[str, str] = Field(..., description="Status of individual services")
    timestamp: str = Field(..., description="Timestamp of health check")

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "services": {
                    "database": "healthy",
                    "bedrock": "configured",
                    "netlify": "not_configured"
                },
                "timestamp": "2025-01-07T10:00:00"
            }
        }


class ErrorResponse(BaseModel):
    """Response schema for errors."""

    success: bool = False
    error: str = Field(..., description="Error type/code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")

    class Config:
        json_schema_extra = {
            "example": {
                "success": False,
                "error": "PreconditionFailed",
                "message": "No website found to edit",
                "details": {"conversation_id": "550e8400-e29b-41d4-a716-446655440000"}
            }
        }


class DeleteResponse(BaseModel):
    """Response schema for delete operations."""

    success: bool = Field(..., description="Whether deletion was successful")
    message: str = Field(..., description="Result message")
    sites_released: int = Field(0, description="Hosted sites a deletion was attempted for")

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "message": "Conversation deleted successfully",
                "sites_released": 0
            }
        }
