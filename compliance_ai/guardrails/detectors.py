"""
PII and Prompt Injection Detection

Stateless pattern matchers used by the guardrail pipeline: regular
expression PII detection with marker-based redaction, and a keyword
prompt shield that tags injection attempts and secret exposure.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

from ..config.guardrail_config import (
    DEFAULT_HIGH_RISK_KEYWORDS,
    DEFAULT_MODERATE_RISK_KEYWORDS,
)

logger = logging.getLogger(__name__)


# Ordered: redaction is applied type by type in this order
PII_PATTERNS: Dict[str, str] = {
    "email": r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b',
    "ssn": r'\b\d{3}-\d{2}-\d{4}\b',
    "credit_card": r'\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b',
    "phone": r'\b(\+\d{1,2}\s?)?((\(\d{3}\)|\d{3})[\s.-]?\d{3}[\s.-]?\d{4}|\d{3}-\d{4})\b',
    "ip_address": r'\b(?:\d{1,3}\.){3}\d{1,3}\b',
}

INJECTION_PREFIX = "injection_attempt_"
SENSITIVE_PREFIX = "sensitive_"
PROMPT_INJECTION = "prompt_injection"
CODE_BLOCK_DETECTED = "code_block_detected"
POTENTIAL_XSS = "potential_xss"
HTML_TAGS_DETECTED = "html_tags_detected"

_SCRIPT_BLOCK = re.compile(r'<script[^>]*>.*?</script>', re.IGNORECASE | re.DOTALL)
_ANY_TAG = re.compile(r'<[^>]+>')
_EVENT_HANDLER_CALL = re.compile(r'(?:alert|onerror|onclick|onload)\s*\(', re.IGNORECASE)
_ANGLE_BRACKET = re.compile(r'[<>]')


def redaction_marker(pii_type: str) -> str:
    """Literal replacement for a matched PII span"""
    return f"[REDACTED_{pii_type.upper()}]"


def _tag(prefix: str, keyword: str) -> str:
    return prefix + re.sub(r'\s+', '_', keyword.strip().lower())


@dataclass
class PIIEntity:
    """Represents a detected PII entity"""
    entity_type: str
    text: str
    start_pos: int
    end_pos: int


@dataclass
class PIIDetectionResult:
    """Result of PII detection scan"""
    has_pii: bool
    entities_found: List[PIIEntity]
    pii_types: List[str]
    redacted_text: str


@dataclass
class ShieldResult:
    """Risk factors found by the prompt shield"""
    risk_factors: List[str] = field(default_factory=list)

    @property
    def high_risk_factors(self) -> List[str]:
        return [
            rf for rf in self.risk_factors
            if rf.startswith(INJECTION_PREFIX) or rf == PROMPT_INJECTION
        ]

    @property
    def moderate_risk_factors(self) -> List[str]:
        return [rf for rf in self.risk_factors if rf.startswith(SENSITIVE_PREFIX)]

    @property
    def injection_detected(self) -> bool:
        return bool(self.high_risk_factors)


class PIIDetector:
    """Detects PII using fixed regular expressions and redacts it with markers"""

    def __init__(self, patterns: Optional[Dict[str, str]] = None):
        self.patterns = dict(patterns or PII_PATTERNS)
        self.compiled_patterns: Dict[str, re.Pattern[str]] = {
            pii_type: re.compile(pattern) for pii_type, pattern in self.patterns.items()
        }

    def detect_pii(self, text: str) -> PIIDetectionResult:
        """Detect PII in the given text and build its redacted form"""
        entities_found: List[PIIEntity] = []
        pii_types: List[str] = []
        redacted_text = text

        for pii_type, pattern in self.compiled_patterns.items():
            matches = list(pattern.finditer(text))
            if not matches:
                continue

            pii_types.append(pii_type)
            entities_found.extend(
                PIIEntity(
                    entity_type=pii_type,
                    text=match.group(),
                    start_pos=match.start(),
                    end_pos=match.end(),
                )
                for match in matches
            )
            redacted_text = pattern.sub(redaction_marker(pii_type), redacted_text)

        entities_found.sort(key=lambda e: e.start_pos)

        return PIIDetectionResult(
            has_pii=bool(pii_types),
            entities_found=entities_found,
            pii_types=pii_types,
            redacted_text=redacted_text,
        )

    def redact(self, text: str) -> str:
        """Return text with every PII span replaced by its marker"""
        return self.detect_pii(text).redacted_text

    def contains_pii(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in self.compiled_patterns.values())


class PromptShield:
    """Keyword based detection of injection attempts and secret exposure"""

    def __init__(self,
                 high_risk_keywords: Optional[Sequence[str]] = None,
                 moderate_risk_keywords: Optional[Sequence[str]] = None):
        self.high_risk_keywords = list(
            DEFAULT_HIGH_RISK_KEYWORDS if high_risk_keywords is None else high_risk_keywords
        )
        self.moderate_risk_keywords = list(
            DEFAULT_MODERATE_RISK_KEYWORDS if moderate_risk_keywords is None
            else moderate_risk_keywords
        )

    def scan(self, text: str) -> ShieldResult:
        """Collect risk factor tags for the given text"""
        risk_factors: List[str] = []
        seen: Set[str] = set()
        lowered = text.lower()

        def add(tag: str):
            if tag not in seen:
                seen.add(tag)
                risk_factors.append(tag)

        for keyword in self.high_risk_keywords:
            if keyword.lower() in lowered:
                add(_tag(INJECTION_PREFIX, keyword))

        if "ignore" in lowered and ("instructions" in lowered or "prompts" in lowered):
            add(PROMPT_INJECTION)

        for keyword in self.moderate_risk_keywords:
            if keyword.lower() in lowered:
                add(_tag(SENSITIVE_PREFIX, keyword))

        if "```" in text or "---" in text:
            add(CODE_BLOCK_DETECTED)

        if _SCRIPT_BLOCK.search(text) or (
            _ANY_TAG.search(text) and _EVENT_HANDLER_CALL.search(text)
        ):
            add(POTENTIAL_XSS)
        elif _ANGLE_BRACKET.search(text):
            add(HTML_TAGS_DETECTED)

        return ShieldResult(risk_factors=risk_factors)
