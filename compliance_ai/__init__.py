"""
Compliance AI Orchestrator

Guarded multi-provider generation of compliance documents.
"""

__version__ = "1.0.0"

from .guardrails import GuardrailAction, GuardrailContext, GuardrailPipeline, GuardrailVerdict, Severity
from .orchestration import (
    AIOrchestrator,
    BatchJobManager,
    CompanyProfile,
    ContentGenerationRequest,
    DocumentTemplate,
    GenerationOptions,
    GenerationResult,
    create_orchestrator,
)
from .providers import ProviderId, ProviderRegistry, ProviderTarget

__all__ = [
    "AIOrchestrator",
    "BatchJobManager",
    "create_orchestrator",
    "CompanyProfile",
    "ContentGenerationRequest",
    "DocumentTemplate",
    "GenerationOptions",
    "GenerationResult",
    "GuardrailAction",
    "GuardrailContext",
    "GuardrailPipeline",
    "GuardrailVerdict",
    "Severity",
    "ProviderId",
    "ProviderRegistry",
    "ProviderTarget",
]
