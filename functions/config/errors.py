"""Error codes and exceptions for the draft pipeline.

Every failure that reaches the HTTP layer is a DraftPipelineError carrying a
stable code; ValidationError maps to 400, everything else to 500.
"""

from typing import Optional, Dict, Any


class ErrorCode:
    """Stable error codes returned in ``error.code``."""

    # Request
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"

    # Draft generation
    DRAFT_FAILED = "DRAFT_FAILED"
    ENHANCEMENT_FAILED = "ENHANCEMENT_FAILED"
    PRICEBOOK_ERROR = "PRICEBOOK_ERROR"

    # Regional pricing
    PRICING_PROVIDER_UNCONFIGURED = "PRICING_PROVIDER_UNCONFIGURED"
    EXTERNAL_API_ERROR = "EXTERNAL_API_ERROR"

    # Price cache
    FIRESTORE_ERROR = "FIRESTORE_ERROR"
    FIRESTORE_WRITE_FAILED = "FIRESTORE_WRITE_FAILED"

    # Scope enhancement model
    LLM_ERROR = "LLM_ERROR"
    LLM_RATE_LIMIT = "LLM_RATE_LIMIT"
    LLM_CONTEXT_TOO_LONG = "LLM_CONTEXT_TOO_LONG"


class DraftPipelineError(Exception):
    """Pipeline failure with a code, a message and optional details.

    Attributes:
        code: One of the ErrorCode constants.
        message: Human-readable message.
        details: Extra context echoed in the error response.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    def __repr__(self) -> str:
        return f"DraftPipelineError(code={self.code!r}, message={self.message!r})"


class ValidationError(DraftPipelineError):
    """Rejected request body."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict] = None):
        if field:
            details = {**(details or {}), "field": field}
        super().__init__(code=ErrorCode.VALIDATION_ERROR, message=message, details=details)


class PricingError(DraftPipelineError):
    """Regional pricing lookup failure for one trade and zip."""

    def __init__(
        self,
        code: str,
        message: str,
        trade_id: str,
        zipcode: Optional[str] = None,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details={**(details or {}), "trade_id": trade_id, "zipcode": zipcode}
        )
        self.trade_id = trade_id
        self.zipcode = zipcode
