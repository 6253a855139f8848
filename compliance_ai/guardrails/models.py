"""Verdict and context types produced by the guardrail pipeline."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Set


class GuardrailAction(str, Enum):
    """Authoritative decision of one guardrail check"""
    ALLOWED = "allowed"
    BLOCKED = "blocked"
    REDACTED = "redacted"
    FLAGGED = "flagged"
    HUMAN_REVIEW_REQUIRED = "human_review_required"


class Severity(str, Enum):
    """Severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


PERMISSIVE_ACTIONS = frozenset({
    GuardrailAction.ALLOWED,
    GuardrailAction.REDACTED,
    GuardrailAction.FLAGGED,
})


@dataclass
class GuardrailContext:
    """Caller metadata recorded with every check"""
    request_id: str
    user_id: Optional[str] = None
    organization_id: Optional[str] = None
    provider: Optional[str] = None
    model_name: Optional[str] = None
    ip_address: Optional[str] = None


@dataclass
class GuardrailVerdict:
    """Result of one guardrail pipeline run"""
    action: GuardrailAction
    severity: Severity
    prompt_risk_score: float = 0.0
    response_risk_score: float = 0.0
    pii_detected: bool = False
    pii_types: Set[str] = field(default_factory=set)
    sanitized_prompt: Optional[str] = None
    sanitized_response: Optional[str] = None
    requires_human_review: bool = False
    content_categories: Set[str] = field(default_factory=set)
    moderation_flags: Dict[str, float] = field(default_factory=dict)
    audit_log_id: Optional[str] = None
    processing_time_ms: Optional[float] = None

    @property
    def allowed(self) -> bool:
        return self.action in PERMISSIVE_ACTIONS

    @classmethod
    def fail_secure(cls, processing_time_ms: Optional[float] = None) -> 'GuardrailVerdict':
        """Most restrictive verdict, returned when the pipeline itself fails"""
        return cls(
            action=GuardrailAction.BLOCKED,
            severity=Severity.CRITICAL,
            prompt_risk_score=10.0,
            requires_human_review=True,
            content_categories={"error"},
            processing_time_ms=processing_time_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "action": self.action.value,
            "severity": self.severity.value,
            "prompt_risk_score": self.prompt_risk_score,
            "response_risk_score": self.response_risk_score,
            "pii_detected": self.pii_detected,
            "pii_types": sorted(self.pii_types),
            "sanitized_prompt": self.sanitized_prompt,
            "sanitized_response": self.sanitized_response,
            "requires_human_review": self.requires_human_review,
            "content_categories": sorted(self.content_categories),
            "moderation_flags": dict(self.moderation_flags),
            "audit_log_id": self.audit_log_id,
            "processing_time_ms": self.processing_time_ms,
        }
