"""
Custom error classes for the Daily Digest service.
Structured error handling with error codes across all modules.

Hierarchy:
    DigestError
    ├── APIError
    │   ├── APITimeoutError
    │   ├── APIRateLimitError
    │   └── APIAuthError
    ├── DataError
    │   ├── ConfigError
    │   ├── DataFetchError
    │   └── SourceUnavailableError
    ├── PipelineError
    │   └── PipelineStepError
    └── DeliveryError
        └── EmailDeliveryError
"""


class DigestError(Exception):
    """Base exception for all Daily Digest errors."""

    def __init__(self, message: str, code: str = "UNKNOWN", details: dict = None):
        self.code = code
        self.details = details or {}
        super().__init__(f"[{code}] {message}")


# --- API Errors ---

class APIError(DigestError):
    """Base class for CRM API errors."""

    def __init__(self, message: str, code: str = "API_ERROR",
                 status_code: int = None, url: str = None, **kwargs):
        self.status_code = status_code
        self.url = url
        details = {"status_code": status_code, "url": url, **kwargs}
        super().__init__(message, code=code, details=details)


class APITimeoutError(APIError):
    """Request timed out."""

    def __init__(self, url: str, timeout: float):
        super().__init__(
            f"Request timed out after {timeout}s: {url}",
            code="API_TIMEOUT", url=url, timeout=timeout,
        )


class APIRateLimitError(APIError):
    """Rate limit exceeded and retries exhausted."""

    def __init__(self, url: str, retry_after: int = None):
        msg = f"Rate limit exceeded: {url}"
        if retry_after:
            msg += f" (retry after {retry_after}s)"
        super().__init__(
            msg, code="API_RATE_LIMIT", status_code=429, url=url,
            retry_after=retry_after,
        )


class APIAuthError(APIError):
    """Authentication or authorization failure."""

    def __init__(self, url: str, status_code: int = 401):
        super().__init__(
            f"Authentication failed: {url}",
            code="API_AUTH_FAILED", url=url, status_code=status_code,
        )


# --- Data Errors ---

class DataError(DigestError):
    """Base class for data processing errors."""
    pass


class ConfigError(DataError):
    """Missing or invalid configuration."""

    def __init__(self, message: str, missing: list = None):
        super().__init__(
            message, code="CONFIG_ERROR",
            details={"missing": list(missing or [])},
        )


class DataFetchError(DataError):
    """The CRM answered but the payload was unusable."""

    def __init__(self, message: str, source: str = None):
        super().__init__(
            message, code="DATA_FETCH_FAILED", details={"source": source},
        )


class SourceUnavailableError(DataError):
    """A required CRM source could not be fetched; the run is abandoned."""

    def __init__(self, source: str, cause: Exception = None):
        msg = f"Required source '{source}' unavailable"
        if cause:
            msg += f": {cause}"
        super().__init__(
            msg, code="SOURCE_UNAVAILABLE", details={"source": source},
        )
        self.source = source


# --- Pipeline Errors ---

class PipelineError(DigestError):
    """Report run orchestration error."""
    pass


class PipelineStepError(PipelineError):
    """A specific step of the report run failed."""

    def __init__(self, step_name: str, cause: Exception = None):
        msg = f"Digest step '{step_name}' failed"
        if cause:
            msg += f": {cause}"
        super().__init__(
            msg, code="PIPELINE_STEP_FAILED", details={"step": step_name},
        )


# --- Delivery Errors ---

class DeliveryError(DigestError):
    """Base class for report delivery errors."""
    pass


class EmailDeliveryError(DeliveryError):
    """The email transport refused or failed to deliver the report."""

    def __init__(self, message: str, recipients: list = None):
        super().__init__(
            message, code="EMAIL_DELIVERY_FAILED",
            details={"recipients": list(recipients or [])},
        )
