"""
Guardrail Configuration Management

Keyword lists, scoring weights and action thresholds used by the guardrail
pipeline, with environment and file based overrides.
"""
import json
import os
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from ..utils.exceptions import ConfigurationError


DEFAULT_HIGH_RISK_KEYWORDS = [
    "ignore previous instructions",
    "disregard",
    "forget all previous",
    "new instructions",
    "system:",
    "admin mode",
    "developer mode",
    "jailbreak",
    "bypass",
]

DEFAULT_MODERATE_RISK_KEYWORDS = [
    "confidential",
    "secret",
    "password",
    "token",
    "api key",
    "private key",
]


@dataclass
class ScoringConfig:
    """Weights used by the risk scorer"""
    injection_base_score: float = 8.0
    injection_factor_weight: float = 2.0
    sensitive_factor_weight: float = 0.5
    long_input_chars: int = 10_000
    long_input_penalty: float = 1.0
    response_pii_penalty: float = 2.0
    harmful_pattern_weight: float = 1.0
    max_score: float = 10.0


@dataclass
class ThresholdConfig:
    """Severity bands and action thresholds"""
    critical_severity: float = 8.0
    high_severity: float = 6.0
    medium_severity: float = 4.0
    hard_block_score: float = 10.0
    human_review_prompt_score: float = 8.0
    block_score: float = 7.0
    flag_prompt_score: float = 5.0


@dataclass
class AuditConfig:
    """Audit trail configuration"""
    enabled: bool = True
    store_original_text: bool = True  # False keeps only redacted text in the trail
    log_path: Optional[str] = None
    max_memory_entries: int = 10_000  # bound for the in-memory trail


@dataclass
class GuardrailConfig:
    """Master guardrail configuration"""
    enabled: bool = True
    high_risk_keywords: List[str] = field(
        default_factory=lambda: list(DEFAULT_HIGH_RISK_KEYWORDS)
    )
    moderate_risk_keywords: List[str] = field(
        default_factory=lambda: list(DEFAULT_MODERATE_RISK_KEYWORDS)
    )
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    audit: AuditConfig = field(default_factory=AuditConfig)

    @classmethod
    def from_env(cls) -> 'GuardrailConfig':
        """Load configuration from environment variables"""
        config = cls()

        if os.getenv('GUARDRAILS_ENABLED'):
            config.enabled = os.getenv('GUARDRAILS_ENABLED').lower() == 'true'

        if os.getenv('GUARDRAILS_BLOCK_SCORE'):
            config.thresholds.block_score = float(os.getenv('GUARDRAILS_BLOCK_SCORE'))

        if os.getenv('GUARDRAILS_FLAG_SCORE'):
            config.thresholds.flag_prompt_score = float(os.getenv('GUARDRAILS_FLAG_SCORE'))

        if os.getenv('GUARDRAILS_AUDIT_STORE_ORIGINAL'):
            config.audit.store_original_text = (
                os.getenv('GUARDRAILS_AUDIT_STORE_ORIGINAL').lower() == 'true'
            )

        if os.getenv('GUARDRAILS_AUDIT_LOG_PATH'):
            config.audit.log_path = os.getenv('GUARDRAILS_AUDIT_LOG_PATH')

        if os.getenv('GUARDRAILS_AUDIT_MAX_ENTRIES'):
            config.audit.max_memory_entries = int(os.getenv('GUARDRAILS_AUDIT_MAX_ENTRIES'))

        return config

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GuardrailConfig':
        """Build configuration from a plain dictionary"""
        data = dict(data or {})
        try:
            return cls(
                enabled=data.get('enabled', True),
                high_risk_keywords=list(
                    data.get('high_risk_keywords', DEFAULT_HIGH_RISK_KEYWORDS)
                ),
                moderate_risk_keywords=list(
                    data.get('moderate_risk_keywords', DEFAULT_MODERATE_RISK_KEYWORDS)
                ),
                scoring=ScoringConfig(**data.get('scoring', {})),
                thresholds=ThresholdConfig(**data.get('thresholds', {})),
                audit=AuditConfig(**data.get('audit', {})),
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid guardrail configuration: {e}") from e

    @classmethod
    def from_file(cls, config_path: str) -> 'GuardrailConfig':
        """Load configuration from YAML or JSON file"""
        with open(config_path, 'r', encoding='utf-8') as f:
            if config_path.endswith('.yaml') or config_path.endswith('.yml'):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)

        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        return asdict(self)

    def save_to_file(self, config_path: str):
        """Save configuration to file"""
        data = self.to_dict()
        with open(config_path, 'w', encoding='utf-8') as f:
            if config_path.endswith('.yaml') or config_path.endswith('.yml'):
                yaml.safe_dump(data, f, default_flow_style=False)
            else:
                json.dump(data, f, indent=2)


def load_guardrail_config(config_path: Optional[str] = None) -> GuardrailConfig:
    """Load guardrail configuration from file, falling back to the environment"""
    if config_path and os.path.exists(config_path):
        return GuardrailConfig.from_file(config_path)
    return GuardrailConfig.from_env()
