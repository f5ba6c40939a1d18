"""
Common Pydantic schemas
"""

from typing import Any, List, Optional
from pydantic import BaseModel

class StandardResponse(BaseModel):
    """Standard API response"""
    success: bool
    message: str
    data: Optional[Any] = None

class ErrorResponse(BaseModel):
    """Error response schema"""
    success: bool = False
    message: str
    error_code: Optional[str] = None
    details: Optional[Any] = None

class ActionResponse(BaseModel):
    """Never-raising wrapper result: data on success, error message otherwise"""
    data: Optional[Any] = None
    error: Optional[str] = None
    status: str = "success"

class ActionResult(BaseModel):
    """Discriminated result returned by the AI generation actions"""
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None

class GenerationFailure(BaseModel):
    item_id: int
    item_name: Optional[str] = None
    error: str

class BulkGenerationSummary(BaseModel):
    processed: int = 0
    failed: int = 0
    errors: List[GenerationFailure] = []
