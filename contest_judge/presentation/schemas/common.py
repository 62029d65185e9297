"""
Common schemas
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error body carried in HTTPException.detail"""
    error: bool = Field(True, description="Always true")
    error_code: str = Field(..., description="Machine readable error code")
    error_message: str = Field(..., description="Human readable message")
    details: Optional[Dict[str, Any]] = Field(None, description="Extra context")
