"""Error envelope returned by every failing request."""

from typing import Any

from pydantic import BaseModel

# Machine-readable error codes
CODE_INVALID_ID = "INVALID_ID"
CODE_INVALID_REQUEST = "INVALID_REQUEST"
CODE_INVALID_PAGINATION = "INVALID_PAGINATION"
CODE_AD_NOT_FOUND = "AD_NOT_FOUND"
CODE_INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorDetail(BaseModel):
    code: str
    message: str
    detail: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Body of 4xx/5xx responses: {"error": {"code", "message", "detail"}}.

    detail is null unless the failure has context worth returning (the
    offending id, the invalid fields).
    """

    error: ErrorDetail

    @classmethod
    def build(cls, code: str, message: str, detail: dict[str, Any] | None = None) -> dict[str, Any]:
        """JSON-ready body for a JSONResponse."""
        return cls(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(mode="json")
