"""Pytest configuration and shared fixtures for compliance AI orchestrator tests."""

from typing import Callable, Dict, List, Optional

import pytest

from compliance_ai.config.guardrail_config import GuardrailConfig
from compliance_ai.config.settings import Environment, Settings
from compliance_ai.guardrails.audit import InMemoryAuditSink
from compliance_ai.guardrails.models import GuardrailContext
from compliance_ai.guardrails.pipeline import GuardrailPipeline
from compliance_ai.orchestration.models import CompanyProfile, DocumentTemplate, QualityAnalysis
from compliance_ai.orchestration.orchestrator import AIOrchestrator
from compliance_ai.orchestration.templates import TemplateCatalog
from compliance_ai.providers.base_provider import ProviderId
from compliance_ai.providers.registry import ProviderRegistry


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeProvider:
    """Scripted provider call recording every prompt it receives."""

    def __init__(self, name: str, response: str = None, fail: bool = False):
        self.name = name
        self.response = response or f"Generated by {name}"
        self.fail = fail
        self.prompts: List[str] = []

    async def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.fail:
            raise ConnectionError(f"{self.name} unavailable")
        return self.response

    @property
    def call_count(self) -> int:
        return len(self.prompts)


class ScriptedQualityAnalyzer:
    """Returns queued scores in order, then a default."""

    def __init__(self, scores: Optional[List[float]] = None, default: float = 90.0):
        self.scores = list(scores or [])
        self.default = default
        self.calls: List[str] = []

    async def __call__(self, content: str, framework: str) -> QualityAnalysis:
        self.calls.append(content)
        score = self.scores.pop(0) if self.scores else self.default
        return QualityAnalysis(score=score, feedback="ok", suggestions=["more detail"])


@pytest.fixture
def test_settings():
    """Settings for the test environment (no batch delay)."""
    return Settings(
        environment=Environment.TEST,
        circuit_breaker_threshold=3,
        circuit_breaker_timeout=30.0,
        provider_request_timeout=None,
    )


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def providers() -> Dict[ProviderId, FakeProvider]:
    return {
        ProviderId.OPENAI: FakeProvider("openai"),
        ProviderId.ANTHROPIC: FakeProvider("anthropic"),
        ProviderId.GEMINI: FakeProvider("gemini"),
    }


@pytest.fixture
def registry(providers, fake_clock):
    return ProviderRegistry(
        providers,
        failure_threshold=3,
        reset_timeout=30.0,
        clock=fake_clock,
    )


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink()


@pytest.fixture
def guardrail_pipeline(audit_sink):
    return GuardrailPipeline(config=GuardrailConfig(), audit_sink=audit_sink)


@pytest.fixture
def guardrail_context():
    return GuardrailContext(
        request_id="req-123",
        user_id="user-1",
        organization_id="org-1",
        ip_address="10.0.0.1",
    )


@pytest.fixture
def company_profile():
    return CompanyProfile(
        company_name="Acme Health",
        industry="Healthcare",
        company_size="51-200",
        headquarters="Boston, MA",
        cloud_infrastructure=["AWS", "Azure"],
        data_classification="Restricted",
        business_applications="Patient portal, billing",
    )


@pytest.fixture
def policy_template():
    return DocumentTemplate(
        id="tst-001",
        title="Data Protection Policy",
        framework="SOC2",
        category="policy",
        document_type="policy",
    )


@pytest.fixture
def batch_templates() -> List[DocumentTemplate]:
    return [
        DocumentTemplate(id=f"tst-{i}", title=f"Document {i}", framework="TEST",
                         category="general", document_type="report", priority=i)
        for i in range(1, 5)
    ]


@pytest.fixture
def quality_analyzer():
    return ScriptedQualityAnalyzer()


@pytest.fixture
def scripted_analyzer() -> Callable[..., ScriptedQualityAnalyzer]:
    """Factory for quality analyzers returning a fixed score sequence."""
    return ScriptedQualityAnalyzer


@pytest.fixture
def make_orchestrator(registry, guardrail_pipeline, test_settings, batch_templates):
    """Factory for orchestrators sharing the test registry and pipeline."""

    def _make(quality_analyzer=None, settings=None, sleep=None) -> AIOrchestrator:
        kwargs = {"sleep": sleep} if sleep is not None else {}
        return AIOrchestrator(
            registry=registry,
            guardrails=guardrail_pipeline,
            quality_analyzer=quality_analyzer,
            templates=TemplateCatalog({"TEST": batch_templates}),
            settings=settings or test_settings,
            **kwargs,
        )

    return _make


@pytest.fixture
def orchestrator(make_orchestrator) -> AIOrchestrator:
    return make_orchestrator()
