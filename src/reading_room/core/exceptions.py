"""
Exception hierarchy for the reading room backend.
"""

from typing import Any, Optional


class ReadingRoomError(Exception):
    """Base exception for all reading room errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        recoverable: bool = False,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.recoverable = recoverable
        self.details = details or {}

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "recoverable": self.recoverable,
            "details": self.details,
        }


class ProviderError(ReadingRoomError):
    """An upstream data provider failed or returned an unusable payload."""

    def __init__(self, provider: str, message: str, **kwargs: Any):
        kwargs.setdefault("code", "PROVIDER_ERROR")
        kwargs.setdefault("recoverable", True)
        super().__init__(f"{provider}: {message}", **kwargs)
        self.provider = provider


class ProviderTimeoutError(ProviderError):
    """Provider did not answer within its timeout."""

    def __init__(self, provider: str, timeout: float, **kwargs: Any):
        super().__init__(
            provider, f"timed out after {timeout:g}s", code="PROVIDER_TIMEOUT", **kwargs
        )
        self.timeout = timeout


class RateLimitedError(ProviderError):
    """Provider answered with a rate-limit notice."""

    def __init__(self, provider: str, message: str = "rate limited", **kwargs: Any):
        super().__init__(provider, message, code="RATE_LIMITED", **kwargs)


class AllProvidersFailedError(ReadingRoomError):
    """Every provider in a cascade failed and no fallback was given."""

    def __init__(self, kind: str, errors: Optional[dict[str, str]] = None, **kwargs: Any):
        errors = errors or {}
        super().__init__(
            f"All {kind} providers failed ({len(errors)} attempted)",
            code="ALL_PROVIDERS_FAILED",
            details={"errors": errors},
            **kwargs,
        )
        self.kind = kind
        self.errors = errors


class DataError(ReadingRoomError):
    """Data loading or validation error."""

    pass


class DataNotFoundError(DataError):
    """Requested data does not exist."""

    def __init__(self, ticker: str, data_type: str = "price", **kwargs: Any):
        message = f"No {data_type} data found for {ticker}"
        super().__init__(message, code="DATA_NOT_FOUND", **kwargs)
        self.ticker = ticker
        self.data_type = data_type


class DataValidationError(DataError):
    """Data failed validation checks."""

    def __init__(self, message: str, issues: Optional[list[str]] = None, **kwargs: Any):
        super().__init__(message, code="DATA_VALIDATION_FAILED", **kwargs)
        self.issues = issues or []


class AnalysisError(ReadingRoomError):
    """Analysis could not be produced."""

    def __init__(self, message: str, ticker: Optional[str] = None, **kwargs: Any):
        kwargs.setdefault("code", "ANALYSIS_ERROR")
        full_message = "Analysis error" + (f" for {ticker}" if ticker else "") + f": {message}"
        super().__init__(full_message, **kwargs)
        self.ticker = ticker


class LLMError(AnalysisError):
    """Generative model call failed or returned unusable output."""

    def __init__(self, model: str, message: str, **kwargs: Any):
        super().__init__(f"model '{model}': {message}", code="LLM_ERROR", recoverable=True, **kwargs)
        self.model = model


class StorageError(ReadingRoomError):
    """Persistence layer error."""

    def __init__(self, message: str, table: Optional[str] = None, **kwargs: Any):
        full_message = "Storage error" + (f" on '{table}'" if table else "") + f": {message}"
        super().__init__(full_message, code="STORAGE_ERROR", recoverable=True, **kwargs)
        self.table = table


class ConfigError(ReadingRoomError):
    """Configuration error."""

    def __init__(self, message: str, key: Optional[str] = None, **kwargs: Any):
        full_message = "Configuration error" + (f" for '{key}'" if key else "") + f": {message}"
        super().__init__(full_message, code="CONFIG_ERROR", **kwargs)
        self.key = key


class ValidationError(ReadingRoomError):
    """Input validation error."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs: Any):
        full_message = "Validation error" + (f" for '{field}'" if field else "") + f": {message}"
        super().__init__(full_message, code="VALIDATION_ERROR", **kwargs)
        self.field = field
