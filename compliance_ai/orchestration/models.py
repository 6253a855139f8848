"""
Request, result and progress models for document generation.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..guardrails.models import GuardrailAction, GuardrailContext, GuardrailVerdict
from ..providers.base_provider import ProviderId, ProviderTarget


class DocumentTemplate(BaseModel):
    """A compliance document to generate."""
    id: str
    title: str
    description: str = ""
    framework: str
    category: str
    document_type: str = "policy"
    priority: int = 1
    required: bool = True


class CompanyProfile(BaseModel):
    """Organization details the generated documents are tailored to."""
    company_name: str
    industry: str
    company_size: str
    headquarters: str = ""
    cloud_infrastructure: List[str] = Field(default_factory=list)
    data_classification: str = "Confidential"
    business_applications: str = ""
    compliance_frameworks: List[str] = Field(default_factory=list)


class GuardrailRequestContext(BaseModel):
    """Caller metadata attached to guardrail checks."""
    user_id: Optional[str] = None
    organization_id: Optional[str] = None
    ip_address: Optional[str] = None

    def to_context(self,
                   request_id: str,
                   provider: Optional[ProviderId] = None,
                   model_name: Optional[str] = None) -> GuardrailContext:
        return GuardrailContext(
            request_id=request_id,
            user_id=self.user_id,
            organization_id=self.organization_id,
            provider=provider.value if provider else None,
            model_name=model_name,
            ip_address=self.ip_address,
        )


class GenerationOptions(BaseModel):
    """Per-request generation options."""
    target_provider: ProviderTarget = ProviderTarget.AUTO
    include_quality_analysis: bool = False
    enable_cross_validation: bool = False
    enable_guardrails: bool = True
    guardrail_context: GuardrailRequestContext = Field(default_factory=GuardrailRequestContext)
    request_id: Optional[str] = None


class QualityAnalysis(BaseModel):
    """Quality assessment of a generated document."""
    score: float
    feedback: str = ""
    suggestions: List[str] = Field(default_factory=list)

    @field_validator("score")
    @classmethod
    def clamp_score(cls, v):
        return max(1.0, min(100.0, float(v)))


class GenerationResult(BaseModel):
    """Outcome of generating one document."""
    content: str
    provider_used: Optional[ProviderId] = None
    request_id: Optional[str] = None
    title: Optional[str] = None
    quality_score: Optional[float] = None
    feedback: Optional[str] = None
    suggestions: Optional[List[str]] = None
    fallback_used: bool = False
    blocked: bool = False
    blocked_reason: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return not self.blocked and self.error is None


class BatchProgress(BaseModel):
    """Emitted once per batch item, before it is generated."""
    percent_complete: int
    current_item_label: str
    completed_count: int
    total_count: int
    provider_used: ProviderId


class ContentGenerationRequest(BaseModel):
    """Free-form generation request."""
    prompt: str
    target_provider: ProviderTarget = ProviderTarget.AUTO
    enable_guardrails: bool = True
    guardrail_context: GuardrailRequestContext = Field(default_factory=GuardrailRequestContext)
    request_id: Optional[str] = None


class ContentGenerationResponse(BaseModel):
    """Free-form generation outcome."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    result: Optional[str] = None
    provider_used: Optional[ProviderId] = None
    request_id: Optional[str] = None
    fallback_used: bool = False
    # Full verdict only on allowed responses; blocked ones expose the action and audit id
    guardrail_verdict: Optional[GuardrailVerdict] = None
    guardrail_action: Optional[GuardrailAction] = None
    audit_log_id: Optional[str] = None
    blocked: bool = False
    blocked_reason: Optional[str] = None


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class BatchJob(BaseModel):
    """Trackable record of a background batch generation."""
    job_id: str
    framework: str
    status: JobStatus = JobStatus.PENDING
    progress: Optional[BatchProgress] = None
    results: List[GenerationResult] = Field(default_factory=list)
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def is_finished(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)

    def summary(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "framework": self.framework,
            "status": self.status.value,
            "percent_complete": self.progress.percent_complete if self.progress else 0,
            "result_count": len(self.results),
            "error": self.error,
        }
