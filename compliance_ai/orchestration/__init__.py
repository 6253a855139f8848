"""
Document generation orchestration.
"""

from .factory import create_audit_sink, create_orchestrator, create_registry
from .jobs import BatchJobManager
from .models import (
    BatchJob,
    BatchProgress,
    CompanyProfile,
    ContentGenerationRequest,
    ContentGenerationResponse,
    DocumentTemplate,
    GenerationOptions,
    GenerationResult,
    GuardrailRequestContext,
    JobStatus,
    QualityAnalysis,
)
from .orchestrator import AIOrchestrator
from .quality import LLMQualityAnalyzer, parse_quality_response
from .templates import TemplateCatalog

__all__ = [
    "AIOrchestrator",
    "BatchJobManager",
    "create_orchestrator",
    "create_registry",
    "create_audit_sink",
    "BatchJob",
    "BatchProgress",
    "CompanyProfile",
    "ContentGenerationRequest",
    "ContentGenerationResponse",
    "DocumentTemplate",
    "GenerationOptions",
    "GenerationResult",
    "GuardrailRequestContext",
    "JobStatus",
    "QualityAnalysis",
    "LLMQualityAnalyzer",
    "parse_quality_response",
    "TemplateCatalog",
]
