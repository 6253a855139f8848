"""
Construction of a fully wired orchestrator from settings.
"""
import logging
from typing import Callable, Mapping, Optional, Union

from ..config.guardrail_config import GuardrailConfig, load_guardrail_config
from ..config.settings import Settings, get_settings
from ..guardrails.audit import AuditSink, InMemoryAuditSink, JsonlAuditSink
from ..guardrails.pipeline import GuardrailPipeline
from ..guardrails.risk_scorer import ModerationClassifier
from ..providers.base_provider import ProviderCall, ProviderId
from ..providers.circuit_breaker import StateChangeCallback
from ..providers.registry import ProviderRegistry
from ..utils.exceptions import ConfigurationError
from .orchestrator import AIOrchestrator
from .quality import LLMQualityAnalyzer, QualityAnalyzer
from .templates import TemplateCatalog

logger = logging.getLogger(__name__)


def create_registry(provider_calls: Mapping[Union[ProviderId, str], ProviderCall],
                    settings: Optional[Settings] = None,
                    on_state_change: Optional[StateChangeCallback] = None) -> ProviderRegistry:
    """Build the process-wide provider registry from settings"""
    settings = settings or get_settings()
    return ProviderRegistry(
        provider_calls,
        failure_threshold=settings.circuit_breaker_threshold,
        reset_timeout=settings.circuit_breaker_timeout,
        success_threshold=settings.circuit_breaker_success_threshold,
        request_timeout=settings.provider_request_timeout,
        on_state_change=on_state_change,
    )


def create_audit_sink(settings: Settings, config: GuardrailConfig) -> AuditSink:
    """JSON-lines sink when a path is configured, in-memory otherwise"""
    path = config.audit.log_path or settings.audit_log_path
    if path:
        logger.info(f"Guardrail audit trail: {path}")
        return JsonlAuditSink(path)
    logger.warning(
        "No audit log path configured; guardrail audit trail is in-memory only "
        f"(keeps the newest {config.audit.max_memory_entries} entries)"
    )
    return InMemoryAuditSink(max_entries=config.audit.max_memory_entries)


def create_orchestrator(provider_calls: Mapping[Union[ProviderId, str], ProviderCall],
                        settings: Optional[Settings] = None,
                        guardrail_config: Optional[GuardrailConfig] = None,
                        audit_sink: Optional[AuditSink] = None,
                        moderation_classifier: Optional[ModerationClassifier] = None,
                        quality_analyzer: Optional[QualityAnalyzer] = None,
                        quality_provider: Optional[ProviderId] = ProviderId.ANTHROPIC,
                        templates: Optional[TemplateCatalog] = None,
                        registry: Optional[ProviderRegistry] = None,
                        on_state_change: Optional[StateChangeCallback] = None,
                        sleep: Optional[Callable] = None) -> AIOrchestrator:
    """
    Create an orchestrator with its registry, guardrail pipeline and analyzer.

    Args:
        provider_calls: Mapping of provider id to ``async generate(prompt) -> text``
        settings: Application settings, defaults to the cached environment settings
        guardrail_config: Guardrail configuration, defaults to the configured file or env
        audit_sink: Audit destination, defaults to JSON-lines or in-memory
        moderation_classifier: Replacement for the keyword moderation heuristic
        quality_analyzer: Custom analyzer; when omitted an LLM analyzer is used if
            quality_provider is registered
        quality_provider: Provider the default LLM analyzer asks, None to disable it
        templates: Template catalog, defaults to the built-in catalog
        registry: Existing registry to share breaker state with
        on_state_change: Breaker state-change callback for a new registry
        sleep: Replacement for asyncio.sleep used between batch items

    Raises:
        ConfigurationError: if no provider calls are supplied
    """
    settings = settings or get_settings()

    if registry is None:
        if not provider_calls:
            raise ConfigurationError("No provider calls supplied")
        registry = create_registry(provider_calls, settings, on_state_change)

    config = guardrail_config or load_guardrail_config(settings.guardrails_config_path)
    pipeline = GuardrailPipeline(
        config=config,
        audit_sink=audit_sink if audit_sink is not None else create_audit_sink(settings, config),
        moderation_classifier=moderation_classifier,
    )

    if quality_analyzer is None and quality_provider is not None:
        if registry.is_registered(quality_provider):
            quality_analyzer = LLMQualityAnalyzer(registry, quality_provider)
        else:
            logger.warning(
                f"Quality provider {quality_provider.value} not registered; "
                f"quality analysis disabled"
            )

    kwargs = {"sleep": sleep} if sleep is not None else {}
    orchestrator = AIOrchestrator(
        registry=registry,
        guardrails=pipeline,
        quality_analyzer=quality_analyzer,
        templates=templates,
        settings=settings,
        **kwargs,
    )

    logger.info(
        f"Created orchestrator with providers: "
        f"{', '.join(p.value for p in registry.registered_providers())}"
    )
    return orchestrator
