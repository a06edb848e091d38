"""
Request schemas for API validation using Pydantic.
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any

from sitegen.utils.validators import is_blank, is_valid_uuid


def _check_uuid(value: Optional[str], field_name: str) -> Optional[str]:
    if value is not None and not is_valid_uuid(value):
        raise ValueError(f"Invalid {field_name} format (must be UUID)")
    return value


class AgentRequest(BaseModel):
    """Request schema for the conversational agent."""

    message: str = Field(
        ...,
        min_length=1,
        max_length=10000,
        description="What the user wants (build, change, deploy or download a site)"
    )

    conversation_id: Optional[str] = Field(
        None,
        description="Conversation to continue; omitted to start a new one"
    )

    @validator('message')
    def validate_message(cls, v):
        """Validate message is not empty or whitespace only."""
        if is_blank(v):
            raise ValueError("Message cannot be empty or whitespace only")
        return v.strip()

    @validator('conversation_id')
    def validate_conversation_id(cls, v):
        return _check_uuid(v, "conversation_id")

    class Config:
        json_schema_extra = {
            "example": {
                "message": "Build a landing page for my bakery",
                "conversation_id": None
            }
        }


class ChatRequest(BaseModel):
    """Request schema for streaming generation from a message history."""

    messages: List[Dict[str, Any]] = Field(
        ...,
        min_length=1,
        description="Chat history, oldest first; each item has a role and content or parts"
    )

    conversation_id: Optional[str] = Field(
        None,
        description="Conversation to add the result to"
    )

    @validator('messages')
    def validate_messages(cls, v):
        """Require at least one user message."""
        if not any(isinstance(m, dict) and m.get("role") == "user" for m in v):
            raise ValueError("At least one user message is required")
        return v

    @validator('conversation_id')
    def validate_conversation_id(cls, v):
        return _check_uuid(v, "conversation_id")


class GenerationIdRequest(BaseModel):
    """Request schema naming a single generation."""

    generation_id: str = Field(..., min_length=1, description="Generation ID")

    @validator('generation_id')
    def validate_generation_id(cls, v):
        if is_blank(v):
            raise ValueError("generation_id cannot be empty")
        return v.strip()


class DeployRequest(GenerationIdRequest):
    """Request schema for deploying a generation."""

    html_content: Optional[str] = Field(
        None,
        description="Document to publish; defaults to the stored response"
    )

    site_name: Optional[str] = Field(
        None,
        max_length=63,
        description="Requested Netlify subdomain"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "generation_id": "550e8400-e29b-41d4-a716-446655440000",
                "site_name": "my-bakery"
            }
        }


class UpdateHtmlRequest(GenerationIdRequest):
    """Request schema for manually overwriting a generation's HTML."""

    html_content: str = Field(..., description="New HTML document")

    @validator('html_content')
    def validate_html_content(cls, v):
        if is_blank(v):
            raise ValueError("HTML content cannot be empty")
        return v


class ManualDeploymentRequest(GenerationIdRequest):
    """Request schema for recording a deployment made by hand."""

    deployment_url: Optional[str] = Field(None, max_length=1024, description="Where the site was published")
