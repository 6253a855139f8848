"""Unit tests for application settings and guardrail configuration."""

import pytest
from pydantic import ValidationError

from compliance_ai.config.guardrail_config import (
    DEFAULT_HIGH_RISK_KEYWORDS,
    GuardrailConfig,
    load_guardrail_config,
)
from compliance_ai.config.settings import Environment, Settings
from compliance_ai.utils.exceptions import ConfigurationError


class TestSettings:

    @pytest.mark.unit
    def test_defaults(self):
        settings = Settings()

        assert settings.circuit_breaker_threshold == 5
        assert settings.circuit_breaker_timeout == 30.0
        assert settings.batch_item_delay == 1.5
        assert settings.cross_validation_threshold == 80.0
        assert settings.default_content_provider == "openai"

    @pytest.mark.unit
    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("COMPLIANCE_AI_ENVIRONMENT", "offline")
        monkeypatch.setenv("COMPLIANCE_AI_CIRCUIT_BREAKER_THRESHOLD", "2")
        monkeypatch.setenv("COMPLIANCE_AI_DEFAULT_CONTENT_PROVIDER", "Gemini")

        settings = Settings()

        assert settings.environment == Environment.OFFLINE
        assert settings.circuit_breaker_threshold == 2
        assert settings.default_content_provider == "gemini"
        assert settings.skips_rate_limit_delay

    @pytest.mark.unit
    @pytest.mark.parametrize("value,expected", [
        ("0", None),
        ("none", None),
        ("", None),
        (-1, None),
        ("12.5", 12.5),
    ])
    def test_request_timeout_parsing(self, value, expected):
        assert Settings(provider_request_timeout=value).provider_request_timeout == expected

    @pytest.mark.unit
    def test_invalid_values_rejected(self):
        with pytest.raises(ValidationError):
            Settings(default_content_provider="mistral")
        with pytest.raises(ValidationError):
            Settings(circuit_breaker_threshold=0)

    @pytest.mark.unit
    def test_production_keeps_batch_delay(self):
        assert not Settings(environment=Environment.PRODUCTION).skips_rate_limit_delay


class TestGuardrailConfig:

    @pytest.mark.unit
    def test_from_dict_partial(self):
        config = GuardrailConfig.from_dict({
            "scoring": {"injection_base_score": 6},
            "audit": {"store_original_text": False},
        })

        assert config.enabled
        assert config.scoring.injection_base_score == 6
        assert config.scoring.injection_factor_weight == 2.0
        assert config.thresholds.hard_block_score == 10.0
        assert not config.audit.store_original_text
        assert config.high_risk_keywords == DEFAULT_HIGH_RISK_KEYWORDS

    @pytest.mark.unit
    def test_from_dict_unknown_field(self):
        with pytest.raises(ConfigurationError):
            GuardrailConfig.from_dict({"thresholds": {"panic_score": 3}})

    @pytest.mark.unit
    @pytest.mark.parametrize("filename", ["guardrails.yaml", "guardrails.json"])
    def test_file_round_trip(self, tmp_path, filename):
        path = str(tmp_path / filename)
        config = GuardrailConfig(moderate_risk_keywords=["classified"])
        config.thresholds.flag_prompt_score = 4.0

        config.save_to_file(path)
        loaded = GuardrailConfig.from_file(path)

        assert loaded == config

    @pytest.mark.unit
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("GUARDRAILS_ENABLED", "false")
        monkeypatch.setenv("GUARDRAILS_BLOCK_SCORE", "6.5")
        monkeypatch.setenv("GUARDRAILS_AUDIT_STORE_ORIGINAL", "false")

        config = GuardrailConfig.from_env()

        assert not config.enabled
        assert config.thresholds.block_score == 6.5
        assert not config.audit.store_original_text

    @pytest.mark.unit
    def test_load_falls_back_to_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GUARDRAILS_FLAG_SCORE", "3")

        config = load_guardrail_config(str(tmp_path / "missing.yaml"))

        assert config.thresholds.flag_prompt_score == 3.0
