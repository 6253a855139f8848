"""
Guardrails package: detection, risk scoring, audit and the guardrail pipeline.
"""

from .audit import AuditEntry, AuditSink, InMemoryAuditSink, JsonlAuditSink, ReviewDecision
from .detectors import PIIDetectionResult, PIIDetector, PIIEntity, PromptShield, ShieldResult
from .models import GuardrailAction, GuardrailContext, GuardrailVerdict, Severity
from .pipeline import GuardrailPipeline
from .risk_scorer import KeywordModerationClassifier, ModerationClassifier, RiskScorer

__all__ = [
    "AuditEntry",
    "AuditSink",
    "InMemoryAuditSink",
    "JsonlAuditSink",
    "ReviewDecision",
    "PIIDetector",
    "PIIDetectionResult",
    "PIIEntity",
    "PromptShield",
    "ShieldResult",
    "GuardrailAction",
    "GuardrailContext",
    "GuardrailVerdict",
    "Severity",
    "GuardrailPipeline",
    "RiskScorer",
    "ModerationClassifier",
    "KeywordModerationClassifier",
]
