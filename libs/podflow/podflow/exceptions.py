"""PodFlow exception hierarchy."""

from __future__ import annotations

from podflow.error_codes import ErrorCode


class PodFlowError(Exception):
    """Base error for PodFlow."""

    error_code: ErrorCode | str | None = None


class ConfigurationError(PodFlowError):
    """Raised when configuration or inputs are invalid."""


class ProviderError(PodFlowError):
    """Raised when an external provider call fails."""

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        error_code: ErrorCode | str | None = None,
    ) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message
        self.error_code = error_code or ErrorCode.PROVIDER_FAILED


class NetworkError(ProviderError):
    """Raised on transport-level failures talking to a provider."""

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        error_code: ErrorCode | str | None = None,
    ) -> None:
        super().__init__(provider, message, error_code=error_code or ErrorCode.NETWORK_FAILED)


class GenerationError(PodFlowError):
    """Raised when a generation task cannot produce its artifact."""

    default_code: ErrorCode = ErrorCode.GENERATION_FAILED

    def __init__(
        self,
        task: str,
        message: str,
        *,
        error_code: ErrorCode | str | None = None,
    ) -> None:
        super().__init__(message)
        self.task = task
        self.message = message
        self.error_code = error_code or self.default_code


class ValidationError(GenerationError):
    """Provider output failed the artifact schema check."""

    default_code = ErrorCode.VALIDATION_FAILED


class PreconditionError(GenerationError):
    """The transcript does not satisfy a task's input requirements."""

    default_code = ErrorCode.PRECONDITION_FAILED


class NotEntitledError(PodFlowError):
    """Raised when the current plan does not include a generation task."""

    error_code = ErrorCode.NOT_ENTITLED

    def __init__(self, task: str, tier: str, *, required_tier: str | None = None) -> None:
        msg = f"This feature ({task}) is not available on your current plan ({tier})."
        if required_tier:
            msg += f" Please upgrade to {required_tier} to access it."
        else:
            msg += " Please upgrade to access it."
        super().__init__(msg)
        self.task = task
        self.tier = tier
        self.required_tier = required_tier


class NotFoundError(PodFlowError):
    """Raised when a project (or something it references) is missing."""

    error_code = ErrorCode.NOT_FOUND


class MissingTranscriptError(NotFoundError):
    """Raised when a project has no persisted transcript yet."""


class NothingToGenerateError(PodFlowError):
    """Raised when every entitled artifact is already present."""


class PersistenceError(PodFlowError):
    """Raised when the persistence gateway fails (infrastructure fault)."""

    error_code = ErrorCode.PERSISTENCE_FAILED
