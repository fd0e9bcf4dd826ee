"""
Error taxonomy for the generation and editing pipeline.

Stage-internal failures (manifest, blueprint, single sections) are absorbed
into fallbacks and never reach the caller. The errors below are the ones
that do, and they always leave the HTTP layer as a structured message.
"""

from enum import Enum
import uuid


class ErrorCode(str, Enum):
    MODEL_CALL_FAILED = "MODEL_CALL_FAILED"
    RATE_LIMITED = "RATE_LIMITED"
    MALFORMED_OUTPUT = "MALFORMED_OUTPUT"
    TRUNCATED_OUTPUT = "TRUNCATED_OUTPUT"
    IDENTITY_EXTRACTION_FAILED = "IDENTITY_EXTRACTION_FAILED"
    EDIT_FAILED = "EDIT_FAILED"
    EMPTY_DOCUMENT = "EMPTY_DOCUMENT"
    INVALID_REQUEST = "INVALID_REQUEST"
    TIMEOUT = "TIMEOUT"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


class PipelineError(Exception):
    """Base error surfaced to callers of the pipeline."""

    code = ErrorCode.MODEL_CALL_FAILED

    def __init__(self, message: str, code: ErrorCode | None = None,
                 retryable: bool = False, hint: str | None = None):
        self.error_id = str(uuid.uuid4())
        if code is not None:
            self.code = code
        self.message = message
        self.retryable = retryable
        self.hint = hint
        super().__init__(message)

    def model_dump(self) -> dict:
        """Return dict representation for API responses"""
        return {
            "error_id": self.error_id,
            "code": self.code.value,
            "message": self.message,
            "hint": self.hint,
            "retryable": self.retryable,
        }

    @property
    def http_status(self) -> int:
        mapping = {
            ErrorCode.INVALID_REQUEST: 400,
            ErrorCode.EDIT_FAILED: 422,
            ErrorCode.RATE_LIMITED: 429,
            ErrorCode.IDENTITY_EXTRACTION_FAILED: 502,
            ErrorCode.MODEL_CALL_FAILED: 502,
            ErrorCode.TIMEOUT: 504,
        }
        return mapping.get(self.code, 500)


class ModelCallError(PipelineError):
    """The generative model call failed (network or error status)."""

    code = ErrorCode.MODEL_CALL_FAILED

    def __init__(self, message: str, status_code: int | None = None, **kwargs):
        self.status_code = status_code
        super().__init__(message, **kwargs)


class RateLimitError(ModelCallError):
    """HTTP 429 from the model API. Always retryable."""

    code = ErrorCode.RATE_LIMITED

    def __init__(self, message: str, retry_after: float | None = None):
        self.retry_after = retry_after
        super().__init__(message, status_code=429, retryable=True)


class MalformedOutputError(PipelineError):
    """The model answered, but not with a parseable structured payload."""

    code = ErrorCode.MALFORMED_OUTPUT


class IdentityExtractionError(PipelineError):
    code = ErrorCode.IDENTITY_EXTRACTION_FAILED


class EditError(PipelineError):
    code = ErrorCode.EDIT_FAILED


class EmptyDocumentError(PipelineError):
    """Assembled document has no recognizable visible content."""

    code = ErrorCode.EMPTY_DOCUMENT
