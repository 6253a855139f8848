"""Custom exceptions for the compliance AI orchestration layer."""
from typing import List, Optional, Tuple


class ComplianceAIError(Exception):
    """Base exception for the orchestration layer."""
    pass


class ConfigurationError(ComplianceAIError):
    """Raised when there's a configuration issue."""
    pass


class ProviderCallError(ComplianceAIError):
    """Raised when a single provider call fails."""

    def __init__(self, provider: str, message: str, cause: Optional[BaseException] = None):
        self.provider = provider
        self.message = message
        self.cause = cause
        super().__init__(f"{provider}: {message}")


class CircuitOpenError(ProviderCallError):
    """Raised when the provider's circuit breaker rejects a call."""

    def __init__(self, provider: str, retry_after: Optional[float] = None):
        self.retry_after = retry_after
        super().__init__(provider, "circuit breaker is open")


class AllProvidersFailedError(ComplianceAIError):
    """Raised when the primary provider and its fallback both fail."""

    def __init__(self, request_id: str, failures: List[Tuple[str, BaseException]]):
        self.request_id = request_id
        self.failures = failures
        details = "; ".join(f"{provider}: {error}" for provider, error in failures)
        super().__init__(
            f"All providers failed for request {request_id} ({details})"
        )


class GuardrailPipelineError(ComplianceAIError):
    """Raised inside the guardrail pipeline; converted to a fail-secure verdict."""
    pass


class GuardrailInvocationError(ComplianceAIError, ValueError):
    """Raised when the guardrail pipeline is called with an unusable context."""
    pass


class AuditSinkError(GuardrailPipelineError):
    """Raised when an audit entry cannot be recorded."""
    pass


class QualityAnalysisError(ComplianceAIError):
    """Raised when quality analysis fails."""
    pass


class TemplateNotFoundError(ComplianceAIError, LookupError):
    """Raised when no templates exist for a framework."""
    pass


class JobNotFoundError(ComplianceAIError, LookupError):
    """Raised when a batch job id is unknown."""
    pass
