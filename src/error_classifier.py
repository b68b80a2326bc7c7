"""Classification of lesson generation failures into user-facing categories."""

import traceback
import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

import config
from src.model_client import to_base36

QUOTA_INDICATORS = (
    "quota",
    "rate limit",
    "too many requests",
    "limit exceeded",
    "429",
    "resource_exhausted",
)

CONTENT_INDICATORS = (
    "invalid input",
    "content too short",
    "unsupported format",
    "parsing error",
    "invalid content",
    "content validation",
    "invalid_argument",
)

NETWORK_STATUSES = {0, 502, 503, 504}

SUPPORT_CONTACT = "support@linguaspark.com"


class ErrorType(str, Enum):
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    NETWORK_ERROR = "NETWORK_ERROR"
    CONTENT_ISSUE = "CONTENT_ISSUE"
    UNKNOWN = "UNKNOWN"


class ClassifiedError(BaseModel):
    """A failure tagged with its category and a support id."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: ErrorType
    error_id: str
    error: BaseException
    context: dict = Field(default_factory=dict)


def new_error_id() -> str:
    """Support id of the form ERR_<base36 ms>_<8 hex>, upper-cased."""
    timestamp = to_base36(int(datetime.now().timestamp() * 1000))
    return f"ERR_{timestamp}_{uuid.uuid4().hex[:8]}".upper()


def _status(exc: BaseException) -> int | None:
    """HTTP status of the error or of the error that caused it."""
    seen = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        status = getattr(exc, "status", None)
        if status is not None:
            return status
        exc = exc.__cause__
    return None


def _messages(exc: BaseException) -> str:
    parts = []
    seen = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        parts.append(str(exc))
        exc = exc.__cause__
    return " ".join(parts).lower()


def determine_error_type(exc: BaseException) -> ErrorType:
    """
    Categorise an error by status code and message.

    Quota errors are checked first, then network errors, then content
    errors. Anything else is UNKNOWN.
    """
    status = _status(exc)
    text = _messages(exc)

    if status == 429 or any(marker in text for marker in QUOTA_INDICATORS):
        return ErrorType.QUOTA_EXCEEDED
    if status in NETWORK_STATUSES or any(
        marker in text for marker in config.NETWORK_ERROR_MARKERS
    ):
        return ErrorType.NETWORK_ERROR
    if status == 400 or any(marker in text for marker in CONTENT_INDICATORS):
        return ErrorType.CONTENT_ISSUE
    return ErrorType.UNKNOWN


def classify_error(exc: BaseException, context: dict | None = None) -> ClassifiedError:
    """
    Classify an error for reporting.

    Args:
        exc: The error to classify
        context: Optional request details (lesson type, content length, ...)

    Returns:
        ClassifiedError with a fresh error id and a timestamped context
    """
    return ClassifiedError(
        type=determine_error_type(exc),
        error_id=new_error_id(),
        error=exc,
        context={"timestamp": datetime.now().isoformat(), **(context or {})},
    )


def user_message(classified: ClassifiedError) -> dict:
    """Title, message and actionable steps to show the user."""
    if classified.type == ErrorType.QUOTA_EXCEEDED:
        message = {
            "title": "API Quota Exceeded",
            "message": "API quota exceeded, please try again later",
            "actionable_steps": [
                "Wait a few minutes before trying again",
                "Try generating a shorter lesson",
                "Contact support if the issue persists",
            ],
            "support_contact": SUPPORT_CONTACT,
        }
    elif classified.type == ErrorType.CONTENT_ISSUE:
        message = {
            "title": "Content Processing Error",
            "message": "Unable to process this content, please try different text",
            "actionable_steps": [
                "Ensure the content has at least 50 words",
                "Try a different passage of text",
                "Check that the content is in a supported language",
                "Remove any special characters or formatting",
            ],
        }
    elif classified.type == ErrorType.NETWORK_ERROR:
        message = {
            "title": "Connection Error",
            "message": "Connection error, please check your internet and try again",
            "actionable_steps": [
                "Check your internet connection",
                "Wait a moment and try again",
                "Contact support if the problem continues",
            ],
        }
    else:
        message = {
            "title": "Service Temporarily Unavailable",
            "message": "AI service temporarily unavailable, please try again later",
            "actionable_steps": [
                "Wait a few minutes and try again",
                "Contact support with the error ID below",
            ],
            "support_contact": SUPPORT_CONTACT,
        }
    message["error_id"] = classified.error_id
    return message


def support_message(classified: ClassifiedError) -> dict:
    """Technical details for the support log."""
    exc = classified.error
    details = [f"Message: {exc}"]
    status = _status(exc)
    if status is not None:
        details.append(f"Status: {status}")
    if exc.__cause__ is not None:
        details.append(f"Cause: {type(exc.__cause__).__name__}: {exc.__cause__}")

    return {
        "error_id": classified.error_id,
        "type": classified.type.value,
        "technical_details": "\n".join(details),
        "context": classified.context,
        "stack_trace": "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        ),
        "timestamp": classified.context.get("timestamp"),
    }
