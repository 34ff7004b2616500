from __future__ import annotations
from pydantic import BaseModel
from typing import Optional, Dict, Any

# ERROR AND STATUS SCHEMAS

class ErrorResponse(BaseModel):
    """Standard error response"""
    error_code: str
    message: str
    details: Optional[Dict[str, Any]] = None
