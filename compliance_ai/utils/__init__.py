"""
Utility functions and helpers.
"""

from .exceptions import (
    AllProvidersFailedError,
    AuditSinkError,
    CircuitOpenError,
    ComplianceAIError,
    ConfigurationError,
    GuardrailInvocationError,
    GuardrailPipelineError,
    JobNotFoundError,
    ProviderCallError,
    QualityAnalysisError,
    TemplateNotFoundError,
)
from .logging import OperationLogger, log_operation, setup_logging

__all__ = [
    "ComplianceAIError",
    "ConfigurationError",
    "ProviderCallError",
    "CircuitOpenError",
    "AllProvidersFailedError",
    "GuardrailPipelineError",
    "GuardrailInvocationError",
    "AuditSinkError",
    "QualityAnalysisError",
    "TemplateNotFoundError",
    "JobNotFoundError",
    "OperationLogger",
    "log_operation",
    "setup_logging",
]
