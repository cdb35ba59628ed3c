"""Pydantic schemas for API request/response validation."""

from app.schemas.ads import Ad, AdCreate, AdList, AdPage, AdUpdate, AdWrite, MessageResponse
from app.schemas.common import ErrorDetail, ErrorResponse

__all__ = [
    "Ad",
    "AdCreate",
    "AdList",
    "AdPage",
    "AdUpdate",
    "AdWrite",
    "ErrorDetail",
    "ErrorResponse",
    "MessageResponse",
]
