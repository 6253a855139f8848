"""Unit tests for templates, prompts, quality analysis and orchestrator wiring."""

import logging

import pytest

from compliance_ai.config.guardrail_config import AuditConfig, GuardrailConfig
from compliance_ai.guardrails.audit import InMemoryAuditSink, JsonlAuditSink
from compliance_ai.orchestration.factory import create_orchestrator
from compliance_ai.orchestration.models import QualityAnalysis
from compliance_ai.orchestration.prompts import (
    DOCUMENT_SECTIONS,
    build_document_prompt,
    build_quality_prompt,
)
from compliance_ai.orchestration.quality import LLMQualityAnalyzer, parse_quality_response
from compliance_ai.orchestration.templates import TemplateCatalog
from compliance_ai.providers.base_provider import ProviderId
from compliance_ai.utils.exceptions import (
    ConfigurationError,
    QualityAnalysisError,
    TemplateNotFoundError,
)

TEMPLATE_YAML = """
PCI DSS:
  - id: pci-002
    title: Cardholder Data Handling Procedure
    category: operations
    document_type: procedure
    priority: 2
  - id: pci-001
    title: Payment Security Policy
    category: policy
"""


class TestTemplateCatalog:

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["SOC2", "soc2", "SOC 2", "soc-2"])
    def test_framework_names_normalized(self, name):
        templates = TemplateCatalog().get_templates(name)

        assert [t.id for t in templates][:2] == ["soc2-001", "soc2-002"]

    @pytest.mark.unit
    def test_builtin_frameworks(self):
        catalog = TemplateCatalog()

        assert catalog.frameworks() == ["ISO27001", "SOC2", "NIST", "FedRAMP"]
        assert catalog.get_template("nist-002").title == "Access Control Standard"
        assert "soc2-005" not in [t.id for t in catalog.required_templates("SOC2")]

    @pytest.mark.unit
    def test_templates_sorted_by_priority(self):
        priorities = [t.priority for t in TemplateCatalog().get_templates("ISO27001")]

        assert priorities == sorted(priorities)

    @pytest.mark.unit
    def test_unknown_lookups(self):
        catalog = TemplateCatalog()

        with pytest.raises(TemplateNotFoundError):
            catalog.get_templates("PCI")
        with pytest.raises(TemplateNotFoundError):
            catalog.get_template("pci-001")

    @pytest.mark.unit
    def test_from_yaml(self, tmp_path):
        path = tmp_path / "templates.yaml"
        path.write_text(TEMPLATE_YAML, encoding="utf-8")

        catalog = TemplateCatalog.from_yaml(str(path))
        custom_only = TemplateCatalog.from_yaml(str(path), include_builtin=False)

        assert [t.id for t in catalog.get_templates("PCI-DSS")] == ["pci-001", "pci-002"]
        assert catalog.get_template("pci-001").framework == "PCI DSS"
        assert "SOC2" in catalog.frameworks()
        assert custom_only.frameworks() == ["PCI DSS"]

    @pytest.mark.unit
    def test_from_yaml_invalid(self, tmp_path):
        not_a_mapping = tmp_path / "list.yaml"
        not_a_mapping.write_text("- a\n- b\n", encoding="utf-8")
        missing_title = tmp_path / "missing.yaml"
        missing_title.write_text("SOC2:\n  - id: x\n    category: policy\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            TemplateCatalog.from_yaml(str(not_a_mapping))
        with pytest.raises(ConfigurationError):
            TemplateCatalog.from_yaml(str(missing_title))


class TestPrompts:

    @pytest.mark.unit
    def test_document_prompt(self, policy_template, company_profile):
        prompt = build_document_prompt(policy_template, company_profile, "SOC2")

        assert "specializing in SOC2" in prompt
        assert "- Company: Acme Health" in prompt
        assert "- Cloud Infrastructure: AWS, Azure" in prompt
        assert "- Compliance Frameworks: New to compliance" in prompt
        assert "- Target Audience: All employees and stakeholders" in prompt
        assert f"{len(DOCUMENT_SECTIONS)}. Appendices" in prompt

    @pytest.mark.unit
    def test_quality_prompt_embeds_content(self):
        prompt = build_quality_prompt("# Access Policy", "NIST")

        assert prompt.endswith("Analyze this NIST document:\n\n# Access Policy")
        assert '"score"' in prompt


class TestQualityParsing:

    @pytest.mark.unit
    def test_plain_json(self):
        analysis = parse_quality_response(
            '{"score": 72, "feedback": "Thin on metrics", "suggestions": ["Add KPIs"]}'
        )

        assert analysis == QualityAnalysis(
            score=72, feedback="Thin on metrics", suggestions=["Add KPIs"]
        )

    @pytest.mark.unit
    def test_fenced_json_with_prose(self):
        analysis = parse_quality_response(
            'Here is my assessment:\n```json\n{"score": 91, "feedback": "Solid"}\n```'
        )

        assert analysis.score == 91
        assert analysis.suggestions == []

    @pytest.mark.unit
    @pytest.mark.parametrize("score,expected", [(0, 1.0), (150, 100.0), (55.5, 55.5)])
    def test_score_clamped(self, score, expected):
        assert parse_quality_response(f'{{"score": {score}}}').score == expected

    @pytest.mark.unit
    @pytest.mark.parametrize("text", [
        "no json here",
        '{"feedback": "missing score"}',
        '{"score": "high"}',
        '{"score": 80,,}',
    ])
    def test_malformed_responses(self, text):
        with pytest.raises(QualityAnalysisError):
            parse_quality_response(text)


class TestLLMQualityAnalyzer:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_asks_configured_provider(self, registry, providers):
        providers[ProviderId.ANTHROPIC].response = '{"score": 84, "feedback": "Good"}'
        analyzer = LLMQualityAnalyzer(registry)

        analysis = await analyzer("# Policy", "SOC2")

        assert analysis.score == 84
        assert "# Policy" in providers[ProviderId.ANTHROPIC].prompts[0]
        assert providers[ProviderId.OPENAI].call_count == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_provider_failure(self, registry, providers):
        providers[ProviderId.ANTHROPIC].fail = True

        with pytest.raises(QualityAnalysisError):
            await LLMQualityAnalyzer(registry)("# Policy", "SOC2")


class TestCreateOrchestrator:

    @pytest.mark.unit
    def test_default_wiring(self, providers, test_settings):
        orchestrator = create_orchestrator(
            providers, settings=test_settings, guardrail_config=GuardrailConfig()
        )

        assert isinstance(orchestrator.quality_analyzer, LLMQualityAnalyzer)
        assert isinstance(orchestrator.guardrails.audit_sink, InMemoryAuditSink)
        assert orchestrator.registry.breaker(ProviderId.OPENAI).failure_threshold == 3

    @pytest.mark.unit
    def test_jsonl_audit_when_path_configured(self, providers, test_settings, tmp_path):
        config = GuardrailConfig(audit=AuditConfig(log_path=str(tmp_path / "audit.jsonl")))

        orchestrator = create_orchestrator(providers, settings=test_settings, guardrail_config=config)

        assert isinstance(orchestrator.guardrails.audit_sink, JsonlAuditSink)

    @pytest.mark.unit
    def test_in_memory_audit_fallback_is_bounded_and_logged(self, providers, test_settings, caplog):
        config = GuardrailConfig(audit=AuditConfig(max_memory_entries=25))

        with caplog.at_level(logging.WARNING, logger="compliance_ai.orchestration.factory"):
            orchestrator = create_orchestrator(
                providers, settings=test_settings, guardrail_config=config
            )

        assert orchestrator.guardrails.audit_sink.max_entries == 25
        assert "in-memory only" in caplog.text

    @pytest.mark.unit
    def test_quality_disabled_without_provider(self, providers, test_settings):
        calls = {ProviderId.OPENAI: providers[ProviderId.OPENAI]}

        orchestrator = create_orchestrator(
            calls, settings=test_settings, guardrail_config=GuardrailConfig()
        )

        assert orchestrator.quality_analyzer is None

    @pytest.mark.unit
    def test_requires_providers(self, test_settings):
        with pytest.raises(ConfigurationError):
            create_orchestrator({}, settings=test_settings, guardrail_config=GuardrailConfig())

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_builtin_batch_routes_by_category(self, providers, test_settings, company_profile):
        orchestrator = create_orchestrator(
            providers, settings=test_settings, guardrail_config=GuardrailConfig(),
            quality_provider=None,
        )

        results = await orchestrator.generate_batch(company_profile, "SOC 2")

        assert [r.provider_used for r in results] == [
            ProviderId.OPENAI,
            ProviderId.ANTHROPIC,
            ProviderId.GEMINI,
            ProviderId.OPENAI,
            ProviderId.ANTHROPIC,
        ]
        assert all(r.succeeded for r in results)
