"""Common Pydantic schemas."""
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class BaseSchema(BaseModel):
    """Base schema with common configuration."""
    
    model_config = {
        "from_attributes": True,
        "validate_assignment": True,
        "arbitrary_types_allowed": True,
    }


class APIResponse(BaseSchema):
    """Envelope returned by every endpoint."""
    
    success: bool = Field(True, description="Success status")
    message: str = Field(..., description="Human readable outcome")
    data: Optional[Dict[str, Any]] = Field(None, description="Payload")

