"""
Risk Scoring

Pure functions turning detector output into bounded risk scores, a
severity band, and coarse moderation flags.
"""
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

from ..config.guardrail_config import ScoringConfig, ThresholdConfig
from .detectors import PIIDetectionResult, PIIDetector, ShieldResult
from .models import Severity

CONTAINS_PII = "contains_pii"
CONTAINS_CODE = "contains_code"
POTENTIALLY_HARMFUL = "potentially_harmful"

HARMFUL_PATTERNS: List[re.Pattern[str]] = [
    re.compile(r'\b(password|secret|token|api[_\s]key)\s*[:=]', re.IGNORECASE),
    re.compile(r'\b(kill|harm|hurt|attack)\b', re.IGNORECASE),
    re.compile(r'\bdiscriminat\w*', re.IGNORECASE),
]

MODERATION_CATEGORIES = ("hate", "harassment", "violence", "sexual", "self_harm", "pii")

_EMAIL = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b')


@dataclass
class ResponseAnalysis:
    """Risk assessment of a provider response"""
    risk_score: float
    content_categories: List[str] = field(default_factory=list)
    pii_result: Optional[PIIDetectionResult] = None


def _clamp(score: float, maximum: float) -> float:
    return max(0.0, min(float(score), maximum))


class RiskScorer:
    """Deterministic prompt and response risk scoring on a 0-10 scale"""

    def __init__(self,
                 scoring: Optional[ScoringConfig] = None,
                 thresholds: Optional[ThresholdConfig] = None,
                 pii_detector: Optional[PIIDetector] = None):
        self.scoring = scoring or ScoringConfig()
        self.thresholds = thresholds or ThresholdConfig()
        self.pii_detector = pii_detector or PIIDetector()

    def score_prompt(self, text: str, shield_result: ShieldResult) -> float:
        """Score a prompt from its shield risk factors"""
        score = 0.0

        high_risk = shield_result.high_risk_factors
        if high_risk:
            score += self.scoring.injection_base_score
        score += len(high_risk) * self.scoring.injection_factor_weight
        score += len(shield_result.moderate_risk_factors) * self.scoring.sensitive_factor_weight

        if len(text) > self.scoring.long_input_chars:
            score += self.scoring.long_input_penalty

        return _clamp(score, self.scoring.max_score)

    def analyze_response(self, text: str) -> ResponseAnalysis:
        """Score a response and tag its content"""
        score = 0.0
        categories: List[str] = []

        pii_result = self.pii_detector.detect_pii(text)
        if pii_result.has_pii:
            score += self.scoring.response_pii_penalty
            categories.append(CONTAINS_PII)

        if "```" in text:
            categories.append(CONTAINS_CODE)

        for pattern in HARMFUL_PATTERNS:
            if pattern.search(text):
                score += self.scoring.harmful_pattern_weight
                if POTENTIALLY_HARMFUL not in categories:
                    categories.append(POTENTIALLY_HARMFUL)

        return ResponseAnalysis(
            risk_score=_clamp(score, self.scoring.max_score),
            content_categories=categories,
            pii_result=pii_result,
        )

    def score_response(self, text: str) -> float:
        return self.analyze_response(text).risk_score

    def determine_severity(self, prompt_score: float, response_score: float = 0.0) -> Severity:
        max_score = max(prompt_score, response_score)

        if max_score >= self.thresholds.critical_severity:
            return Severity.CRITICAL
        if max_score >= self.thresholds.high_severity:
            return Severity.HIGH
        if max_score >= self.thresholds.medium_severity:
            return Severity.MEDIUM
        return Severity.LOW


class ModerationClassifier(Protocol):
    """Anything that maps prompt/response text to per-category scores in [0, 1]"""

    def classify(self, prompt: str, response: Optional[str]) -> Dict[str, float]:
        ...


class KeywordModerationClassifier:
    """
    Keyword-presence moderation heuristic.

    This is not a trained moderation model; the scores are fixed values
    chosen by keyword presence. Swap in a real classifier through the
    ModerationClassifier protocol.
    """

    def classify(self, prompt: str, response: Optional[str]) -> Dict[str, float]:
        combined = f"{prompt} {response or ''}".lower()

        return {
            "hate": 0.8 if "hate" in combined else 0.1,
            "harassment": 0.7 if "harass" in combined else 0.1,
            "violence": 0.6 if ("violen" in combined or "kill" in combined) else 0.1,
            "sexual": 0.5 if ("sexual" in combined or "explicit" in combined) else 0.1,
            "self_harm": 0.9 if ("suicide" in combined or "self-harm" in combined) else 0.1,
            "pii": 0.8 if _EMAIL.search(combined) else 0.1,
        }
