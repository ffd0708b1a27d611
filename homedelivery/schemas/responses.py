"""Standardized Response Schemas"""

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Error details structure"""
    code: str
    message: str


class ErrorResponse(BaseModel):
    """
    Standard error response envelope.

    Example:
        {
            "success": false,
            "error": {
                "code": "RESOURCE_NOT_FOUND",
                "message": "Bill not found"
            }
        }
    """
    success: bool = False
    error: ErrorDetail
