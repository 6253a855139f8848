"""
Guardrail Pipeline

Runs every prompt (and optionally its response) through injection
detection, PII redaction, risk scoring, moderation and audit logging, and
decides one authoritative action. Any internal failure produces the
fail-secure verdict.
"""
import logging
import time
from typing import Any, Dict, Optional, Set, Tuple

from ..config.guardrail_config import GuardrailConfig
from ..utils.exceptions import GuardrailInvocationError
from ..utils.logging import log_guardrail_check
from .audit import AuditEntry, AuditSink, InMemoryAuditSink
from .detectors import PIIDetectionResult, PIIDetector, PromptShield
from .models import GuardrailAction, GuardrailContext, GuardrailVerdict, Severity
from .risk_scorer import (
    KeywordModerationClassifier,
    ModerationClassifier,
    ResponseAnalysis,
    RiskScorer,
)


class GuardrailPipeline:
    """Coordinates all guardrail checks for a single prompt/response pair"""

    def __init__(self,
                 config: Optional[GuardrailConfig] = None,
                 audit_sink: Optional[AuditSink] = None,
                 moderation_classifier: Optional[ModerationClassifier] = None,
                 pii_detector: Optional[PIIDetector] = None,
                 shield: Optional[PromptShield] = None,
                 scorer: Optional[RiskScorer] = None):
        self.config = config or GuardrailConfig()
        self.logger = logging.getLogger(__name__)

        self.audit_sink = audit_sink if audit_sink is not None else InMemoryAuditSink()
        self.moderation_classifier = moderation_classifier or KeywordModerationClassifier()
        self.pii_detector = pii_detector or PIIDetector()
        self.shield = shield or PromptShield(
            self.config.high_risk_keywords, self.config.moderate_risk_keywords
        )
        self.scorer = scorer or RiskScorer(
            self.config.scoring, self.config.thresholds, self.pii_detector
        )

        self.stats = {
            "total_checks": 0,
            "actions": {action.value: 0 for action in GuardrailAction},
            "fail_secure": 0,
        }

    async def check(self,
                    prompt: str,
                    response: Optional[str],
                    context: GuardrailContext) -> GuardrailVerdict:
        """Check a prompt and optional response, returning one verdict"""
        if context is None or not context.request_id:
            raise GuardrailInvocationError("Guardrail context requires a request_id")

        start_time = time.perf_counter()
        self.stats["total_checks"] += 1
        decision: Optional[Tuple[GuardrailAction, Severity]] = None

        try:
            if not self.config.enabled:
                self.logger.warning(
                    f"Guardrails disabled; allowing request {context.request_id} unchecked"
                )
                return GuardrailVerdict(action=GuardrailAction.ALLOWED, severity=Severity.LOW)

            if not isinstance(prompt, str):
                raise TypeError(f"prompt must be str, got {type(prompt).__name__}")

            # 1. Prompt injection and PII
            shield_result = self.shield.scan(prompt)
            prompt_pii = self.pii_detector.detect_pii(prompt)
            prompt_score = self.scorer.score_prompt(prompt, shield_result)

            # 2. Response analysis
            response_analysis: Optional[ResponseAnalysis] = None
            response_score = 0.0
            if response is not None:
                response_analysis = self.scorer.analyze_response(response)
                response_score = response_analysis.risk_score
            response_pii = response_analysis.pii_result if response_analysis else None

            pii_types = self._collect_pii_types(prompt_pii, response_pii)

            # 3. Severity and action
            severity = self.scorer.determine_severity(prompt_score, response_score)
            requires_review = (
                severity == Severity.CRITICAL
                or prompt_score > self.config.thresholds.human_review_prompt_score
            )
            action = self._determine_action(
                prompt_score, response_score, bool(pii_types), requires_review
            )
            decision = (action, severity)

            # 4. Categories
            categories: Set[str] = {f"pii_{pii_type}" for pii_type in pii_types}
            categories.update(shield_result.risk_factors)
            if response_analysis:
                categories.update(response_analysis.content_categories)

            # 5. Moderation
            moderation_flags = self.moderation_classifier.classify(prompt, response)

            sanitized_prompt = prompt_pii.redacted_text if prompt_pii.has_pii else None
            sanitized_response = (
                response_pii.redacted_text if response_pii and response_pii.has_pii else None
            )

            # 6. Audit
            processing_time_ms = (time.perf_counter() - start_time) * 1000
            audit_log_id = None
            if self.config.audit.enabled:
                audit_log_id = await self.audit_sink.record(self._build_audit_entry(
                    prompt=prompt,
                    response=response,
                    context=context,
                    action=action,
                    severity=severity,
                    prompt_score=prompt_score,
                    response_score=response_score,
                    pii_types=pii_types,
                    sanitized_prompt=sanitized_prompt,
                    sanitized_response=sanitized_response,
                    categories=categories,
                    moderation_flags=moderation_flags,
                    requires_review=requires_review,
                    processing_time_ms=processing_time_ms,
                ))

            verdict = GuardrailVerdict(
                action=action,
                severity=severity,
                prompt_risk_score=prompt_score,
                response_risk_score=response_score,
                pii_detected=bool(pii_types),
                pii_types=pii_types,
                sanitized_prompt=sanitized_prompt,
                sanitized_response=sanitized_response,
                requires_human_review=requires_review,
                content_categories=categories,
                moderation_flags=moderation_flags,
                audit_log_id=audit_log_id,
                processing_time_ms=(time.perf_counter() - start_time) * 1000,
            )

            self.stats["actions"][action.value] += 1
            log_guardrail_check(
                request_id=context.request_id,
                action=action.value,
                severity=severity.value,
                prompt_risk_score=prompt_score,
                response_risk_score=response_score,
                duration=verdict.processing_time_ms / 1000,
            )
            return verdict

        except Exception as e:
            processing_time_ms = (time.perf_counter() - start_time) * 1000
            self.stats["fail_secure"] += 1
            self.stats["actions"][GuardrailAction.BLOCKED.value] += 1

            computed = (
                f"{decision[0].value}/{decision[1].value}" if decision else "not reached"
            )
            self.logger.error(
                f"Error in guardrails processing for {context.request_id} "
                f"(computed decision: {computed}): {e}"
            )
            self.logger.critical(
                f"Security alert: guardrails_processing_error for request "
                f"{context.request_id}; request blocked"
            )
            return GuardrailVerdict.fail_secure(processing_time_ms=processing_time_ms)

    def _determine_action(self,
                          prompt_score: float,
                          response_score: float,
                          pii_detected: bool,
                          requires_review: bool) -> GuardrailAction:
        """First matching rule wins"""
        thresholds = self.config.thresholds

        if max(prompt_score, response_score) >= thresholds.hard_block_score:
            return GuardrailAction.BLOCKED
        if requires_review:
            return GuardrailAction.HUMAN_REVIEW_REQUIRED
        if prompt_score > thresholds.block_score or response_score > thresholds.block_score:
            return GuardrailAction.BLOCKED
        if pii_detected:
            return GuardrailAction.REDACTED
        if prompt_score > thresholds.flag_prompt_score:
            return GuardrailAction.FLAGGED
        return GuardrailAction.ALLOWED

    @staticmethod
    def _collect_pii_types(prompt_pii: PIIDetectionResult,
                           response_pii: Optional[PIIDetectionResult]) -> Set[str]:
        pii_types = set(prompt_pii.pii_types)
        if response_pii:
            pii_types.update(response_pii.pii_types)
        return pii_types

    def _build_audit_entry(self,
                           prompt: str,
                           response: Optional[str],
                           context: GuardrailContext,
                           action: GuardrailAction,
                           severity: Severity,
                           prompt_score: float,
                           response_score: float,
                           pii_types: Set[str],
                           sanitized_prompt: Optional[str],
                           sanitized_response: Optional[str],
                           categories: Set[str],
                           moderation_flags: Dict[str, float],
                           requires_review: bool,
                           processing_time_ms: float) -> AuditEntry:
        if self.config.audit.store_original_text:
            original_prompt, original_response = prompt, response
        else:
            original_prompt = sanitized_prompt if sanitized_prompt is not None else prompt
            original_response = (
                sanitized_response if sanitized_response is not None else response
            )

        return AuditEntry(
            request_id=context.request_id,
            action=action.value,
            severity=severity.value,
            original_prompt=original_prompt,
            sanitized_prompt=sanitized_prompt,
            prompt_risk_score=prompt_score,
            pii_detected=bool(pii_types),
            pii_types=sorted(pii_types),
            original_response=original_response,
            sanitized_response=sanitized_response,
            response_risk_score=response_score,
            content_categories=sorted(categories),
            moderation_flags=dict(moderation_flags),
            requires_human_review=requires_review,
            organization_id=context.organization_id,
            user_id=context.user_id,
            provider=context.provider,
            model_name=context.model_name,
            ip_address=context.ip_address,
            processing_time_ms=processing_time_ms,
        )

    def get_system_status(self) -> Dict[str, Any]:
        """Get current guardrail pipeline status"""
        return {
            "enabled": self.config.enabled,
            "audit_enabled": self.config.audit.enabled,
            "thresholds": {
                "hard_block": self.config.thresholds.hard_block_score,
                "block": self.config.thresholds.block_score,
                "human_review_prompt": self.config.thresholds.human_review_prompt_score,
                "flag_prompt": self.config.thresholds.flag_prompt_score,
            },
            "statistics": self.stats,
        }
