"""Error taxonomy for the generation workflow, plus tool error serialisation."""

from __future__ import annotations

from enum import Enum

from google.genai import errors as genai_errors
from pydantic import BaseModel

# Returned by the Veo endpoints when the API key's billing project is gone
# or the key belongs to a project without Veo access.
CREDENTIAL_ERROR_MESSAGE = "Requested entity was not found"


class ErrorCategory(str, Enum):
    """Categories of errors for diagnostics."""

    INVALID_INPUT = "INVALID_INPUT"
    CREDENTIAL_INVALID = "CREDENTIAL_INVALID"
    OPERATION_FAILED = "OPERATION_FAILED"
    ARTIFACT_MISSING = "ARTIFACT_MISSING"
    NETWORK_ERROR = "NETWORK_ERROR"
    POLL_TIMEOUT = "POLL_TIMEOUT"
    JOB_CANCELLED = "JOB_CANCELLED"
    JOB_NOT_FOUND = "JOB_NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    API_QUOTA_EXCEEDED = "API_QUOTA_EXCEEDED"
    UNKNOWN = "UNKNOWN"


class StudioError(Exception):
    """Base class for every failure the generation workflow reports."""

    category = ErrorCategory.UNKNOWN


class InvalidInput(StudioError, ValueError):
    """Rejected before submission; no job is created."""

    category = ErrorCategory.INVALID_INPUT


class CredentialError(StudioError):
    """The API key or its billing project is missing or invalid."""

    category = ErrorCategory.CREDENTIAL_INVALID


class OperationError(StudioError):
    """The remote operation finished with an error payload."""

    category = ErrorCategory.OPERATION_FAILED


class MissingArtifact(StudioError):
    """The operation finished cleanly but returned no video URI."""

    category = ErrorCategory.ARTIFACT_MISSING


class TransportError(StudioError):
    """A submission, status query, or download call failed."""

    category = ErrorCategory.NETWORK_ERROR


class PollTimeout(StudioError):
    """The operation did not finish within the configured bound."""

    category = ErrorCategory.POLL_TIMEOUT


class JobCancelled(StudioError):
    """Polling was stopped through the job's cancel event."""

    category = ErrorCategory.JOB_CANCELLED


class JobNotFound(StudioError, LookupError):
    """No job with the given id is tracked by the registry."""

    category = ErrorCategory.JOB_NOT_FOUND


class InvalidTransition(StudioError):
    """A status update would move a job out of a terminal state."""

    category = ErrorCategory.INVALID_TRANSITION


class ToolError(BaseModel):
    """Structured error returned from any tool."""

    error: str
    category: str
    hint: str
    retryable: bool = False
    retry_after_seconds: int | None = None


def is_credential_error(error: BaseException | str) -> bool:
    """Return True when *error* means the selected credential is unusable.

    Structured signals are checked first: an ``UNAUTHENTICATED`` (401)
    response from the genai SDK. Otherwise falls back to matching the
    message the Veo endpoints return for a missing billing project.
    """
    if isinstance(error, CredentialError):
        return True
    if isinstance(error, genai_errors.APIError):
        if error.code == 401 or (error.status or "").upper() == "UNAUTHENTICATED":
            return True
        if error.message and CREDENTIAL_ERROR_MESSAGE.lower() in error.message.lower():
            return True
    return CREDENTIAL_ERROR_MESSAGE.lower() in str(error).lower()


def classify_remote_error(error: Exception) -> StudioError:
    """Wrap an exception raised by a remote call in the matching StudioError."""
    if isinstance(error, StudioError):
        return error
    if is_credential_error(error):
        return CredentialError(str(error))
    return TransportError(str(error) or type(error).__name__)


_HINTS: dict[ErrorCategory, str] = {
    ErrorCategory.INVALID_INPUT: "Check the prompt and reference images — the prompt must not be blank",
    ErrorCategory.CREDENTIAL_INVALID: (
        "API key missing or its billing project was not found — "
        "select a key from a paid GCP project with credential_select"
    ),
    ErrorCategory.OPERATION_FAILED: "Veo rejected the generation — adjust the prompt or images and retry",
    ErrorCategory.ARTIFACT_MISSING: "Generation finished without a video — usually a safety filter; rephrase the prompt",
    ErrorCategory.NETWORK_ERROR: "Network or API call failed — try again or check connectivity",
    ErrorCategory.POLL_TIMEOUT: "Generation took longer than VEO_POLL_TIMEOUT — raise it or retry later",
    ErrorCategory.JOB_CANCELLED: "Job was cancelled before it finished",
    ErrorCategory.JOB_NOT_FOUND: "Unknown job ID — list jobs with video_jobs_list",
    ErrorCategory.INVALID_TRANSITION: "Job already reached a terminal state",
    ErrorCategory.API_QUOTA_EXCEEDED: "Rate limit hit — wait and retry",
}


def categorize_error(error: Exception) -> tuple[ErrorCategory, str]:
    """Map an exception to an ErrorCategory + human-readable hint."""
    if isinstance(error, StudioError):
        return error.category, _HINTS.get(error.category, str(error))

    s = str(error).lower()
    if is_credential_error(error):
        cat = ErrorCategory.CREDENTIAL_INVALID
    elif "429" in s or "quota" in s or "resource_exhausted" in s:
        cat = ErrorCategory.API_QUOTA_EXCEEDED
    elif isinstance(error, (TimeoutError, ConnectionError)) or "timeout" in s or "timed out" in s:
        cat = ErrorCategory.NETWORK_ERROR
    elif isinstance(error, ValueError):
        cat = ErrorCategory.INVALID_INPUT
    else:
        return (ErrorCategory.UNKNOWN, str(error))
    return cat, _HINTS[cat]


def make_tool_error(error: Exception) -> dict:
    """Create a serialisable ToolError dict from an exception."""
    cat, hint = categorize_error(error)
    retryable = cat in {
        ErrorCategory.API_QUOTA_EXCEEDED,
        ErrorCategory.NETWORK_ERROR,
        ErrorCategory.POLL_TIMEOUT,
    }
    return ToolError(
        error=str(error),
        category=cat.value,
        hint=hint,
        retryable=retryable,
        retry_after_seconds=60 if cat == ErrorCategory.API_QUOTA_EXCEEDED else None,
    ).model_dump(mode="json")
