"""
Configuration package for the orchestration layer.
"""

from .settings import Environment, LogLevel, Settings, get_settings
from .guardrail_config import (
    AuditConfig,
    GuardrailConfig,
    ScoringConfig,
    ThresholdConfig,
    load_guardrail_config,
)

__all__ = [
    "Settings",
    "Environment",
    "LogLevel",
    "get_settings",
    "GuardrailConfig",
    "ScoringConfig",
    "ThresholdConfig",
    "AuditConfig",
    "load_guardrail_config",
]
