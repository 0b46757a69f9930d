"""
Base schemas used across the application.
"""
from typing import Optional, Any, Dict
from pydantic import BaseModel, ConfigDict

class ErrorResponse(BaseModel):
    """Error body returned by every exception handler."""
    success: bool = False
    error: str
    message: str
    details: Optional[Dict[str, Any]] = None
    request_id: Optional[str] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)
