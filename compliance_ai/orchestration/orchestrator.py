"""
AI Orchestrator

Public entry points for guarded document generation: single documents,
sequential batches with progress reporting and cross-validation, and
free-form content. Every prompt is checked before any provider is called,
and every response is checked before it is returned.
"""
import asyncio
import inspect
import logging
import time
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from ..config.settings import Settings, get_settings
from ..guardrails.models import GuardrailAction, GuardrailContext, GuardrailVerdict
from ..guardrails.pipeline import GuardrailPipeline
from ..providers.base_provider import ProviderId, ProviderStatus, ProviderTarget, next_provider
from ..providers.registry import ProviderRegistry
from ..providers.selection import select_optimal_provider
from ..utils.exceptions import AllProvidersFailedError, ProviderCallError, QualityAnalysisError
from ..utils.logging import OperationLogger, log_provider_call
from .models import (
    BatchProgress,
    CompanyProfile,
    ContentGenerationRequest,
    ContentGenerationResponse,
    DocumentTemplate,
    GenerationOptions,
    GenerationResult,
    QualityAnalysis,
)
from .prompts import build_document_prompt
from .quality import QualityAnalyzer
from .templates import TemplateCatalog

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[BatchProgress], Union[None, Awaitable[None]]]

BLOCKED_MESSAGE = (
    "This request could not be completed because it did not pass content safety checks."
)
REVIEW_MESSAGE = (
    "This request has been held for review by a compliance officer before it can be completed."
)


def _new_request_id() -> str:
    return str(uuid.uuid4())


class AIOrchestrator:
    """Guarded multi-provider generation facade"""

    def __init__(self,
                 registry: ProviderRegistry,
                 guardrails: Optional[GuardrailPipeline] = None,
                 quality_analyzer: Optional[QualityAnalyzer] = None,
                 templates: Optional[TemplateCatalog] = None,
                 settings: Optional[Settings] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.registry = registry
        self.guardrails = guardrails or GuardrailPipeline()
        self.quality_analyzer = quality_analyzer
        self.templates = templates or TemplateCatalog()
        self.settings = settings or get_settings()
        self._sleep = sleep

    async def generate_document(self,
                                template: DocumentTemplate,
                                profile: CompanyProfile,
                                framework: str,
                                options: Optional[GenerationOptions] = None) -> GenerationResult:
        """
        Generate one compliance document.

        Raises:
            AllProvidersFailedError: if the selected provider and its fallback both fail
        """
        options = options or GenerationOptions()
        request_id = options.request_id or _new_request_id()
        provider = self._resolve_provider(options.target_provider, template, framework)
        prompt = build_document_prompt(template, profile, framework)

        with OperationLogger("generate_document", {
            "request_id": request_id,
            "template_id": template.id,
            "framework": framework,
            "provider": provider.value,
        }) as op:
            if options.enable_guardrails:
                verdict = await self._guard(
                    prompt, None, options.guardrail_context.to_context(request_id)
                )
                if not verdict.allowed:
                    op.update_metadata(blocked="pre_check")
                    return self._blocked_result(verdict, request_id, template.title)
                if verdict.sanitized_prompt is not None:
                    prompt = verdict.sanitized_prompt

            content, provider_used, fallback_used = await self._call_with_fallback(
                provider, prompt, request_id
            )
            op.update_metadata(provider_used=provider_used.value, fallback_used=fallback_used)

            if options.enable_guardrails:
                verdict = await self._guard(
                    prompt, content,
                    options.guardrail_context.to_context(request_id, provider=provider_used),
                )
                if not verdict.allowed:
                    op.update_metadata(blocked="post_check")
                    return self._blocked_result(verdict, request_id, template.title)
                if verdict.sanitized_response is not None:
                    content = verdict.sanitized_response

            result = GenerationResult(
                content=content,
                provider_used=provider_used,
                request_id=request_id,
                title=template.title,
                fallback_used=fallback_used,
            )

            if options.include_quality_analysis:
                analysis = await self._try_quality_analysis(content, framework, request_id)
                if analysis is not None:
                    result.quality_score = analysis.score
                    result.feedback = analysis.feedback
                    result.suggestions = analysis.suggestions
                    op.update_metadata(quality_score=analysis.score)

            return result

    async def generate_batch(self,
                             profile: CompanyProfile,
                             framework: str,
                             options: Optional[GenerationOptions] = None,
                             on_progress: Optional[ProgressCallback] = None) -> List[GenerationResult]:
        """
        Generate every template of a framework sequentially.

        A failing item becomes an error placeholder and the batch continues.

        Raises:
            TemplateNotFoundError: if the framework has no templates
        """
        options = options or GenerationOptions()
        templates = self.templates.get_templates(framework)
        batch_id = options.request_id or _new_request_id()
        total = len(templates)
        threshold = self.settings.cross_validation_threshold
        results: List[GenerationResult] = []

        logger.info(f"Starting batch {batch_id}: {total} {framework} documents")

        for i, template in enumerate(templates):
            provider = self._resolve_provider(options.target_provider, template, framework)
            await self._emit_progress(on_progress, BatchProgress(
                percent_complete=round((i + 1) / total * 100),
                current_item_label=template.title,
                completed_count=i,
                total_count=total,
                provider_used=provider,
            ))

            item_options = options.model_copy(update={
                "request_id": f"{batch_id}-{i + 1}",
                "include_quality_analysis": (
                    options.include_quality_analysis or options.enable_cross_validation
                ),
            })

            try:
                result = await self.generate_document(template, profile, framework, item_options)

                if (options.enable_cross_validation
                        and result.quality_score is not None
                        and result.quality_score < threshold):
                    result = await self._cross_validate(
                        template, profile, framework, item_options, result
                    )

            except Exception as e:
                logger.error(f"Error generating {template.title} in batch {batch_id}: {e}")
                result = GenerationResult(
                    content=f"Error generating {template.title}: {e}",
                    request_id=item_options.request_id,
                    title=template.title,
                    error=str(e),
                )

            results.append(result)

            if i < total - 1 and not self.settings.skips_rate_limit_delay:
                await self._sleep(self.settings.batch_item_delay)

        logger.info(f"Finished batch {batch_id}: {sum(r.succeeded for r in results)}/{total} succeeded")
        return results

    async def _cross_validate(self,
                              template: DocumentTemplate,
                              profile: CompanyProfile,
                              framework: str,
                              options: GenerationOptions,
                              result: GenerationResult) -> GenerationResult:
        """Regenerate once with the next ring provider and keep the better-scored result"""
        alternative = next_provider(result.provider_used)
        logger.info(
            f"Low quality score ({result.quality_score}) for {template.title}, "
            f"cross-validating with {alternative.value}"
        )

        alt_options = options.model_copy(update={
            "target_provider": ProviderTarget(alternative.value),
            "include_quality_analysis": True,
            "request_id": f"{options.request_id}-cv",
        })
        try:
            alternative_result = await self.generate_document(
                template, profile, framework, alt_options
            )
        except Exception as e:
            logger.warning(f"Cross-validation failed for {template.title}: {e}")
            return result

        if (alternative_result.quality_score is not None
                and alternative_result.quality_score > result.quality_score):
            return alternative_result
        return result

    async def generate_content(self, request: ContentGenerationRequest) -> ContentGenerationResponse:
        """
        Generate free-form content from an arbitrary prompt.

        Raises:
            AllProvidersFailedError: if the primary provider and its fallback both fail
        """
        request_id = request.request_id or _new_request_id()
        provider = request.target_provider.as_provider() or ProviderId(
            self.settings.default_content_provider
        )
        prompt = request.prompt
        verdict: Optional[GuardrailVerdict] = None

        if request.enable_guardrails:
            verdict = await self._guard(
                prompt, None, request.guardrail_context.to_context(request_id)
            )
            if not verdict.allowed:
                return self._blocked_response(verdict, request_id)
            if verdict.sanitized_prompt is not None:
                prompt = verdict.sanitized_prompt

        content, provider_used, fallback_used = await self._call_with_fallback(
            provider, prompt, request_id
        )

        if request.enable_guardrails:
            verdict = await self._guard(
                prompt, content,
                request.guardrail_context.to_context(request_id, provider=provider_used),
            )
            if not verdict.allowed:
                return self._blocked_response(verdict, request_id)
            if verdict.sanitized_response is not None:
                content = verdict.sanitized_response

        return ContentGenerationResponse(
            result=content,
            provider_used=provider_used,
            request_id=request_id,
            fallback_used=fallback_used,
            guardrail_verdict=verdict,
            guardrail_action=verdict.action if verdict else None,
            audit_log_id=verdict.audit_log_id if verdict else None,
        )

    async def check_guardrails(self,
                               prompt: str,
                               response: Optional[str],
                               context: GuardrailContext) -> GuardrailVerdict:
        """
        Run the guardrail pipeline directly.

        Raises:
            GuardrailInvocationError: if the context has no request id
        """
        return await self.guardrails.check(prompt, response, context)

    async def analyze_quality(self, content: str, framework: str) -> QualityAnalysis:
        if self.quality_analyzer is None:
            raise QualityAnalysisError("No quality analyzer configured")
        return await self.quality_analyzer(content, framework)

    def get_available_providers(self) -> List[ProviderTarget]:
        """Providers currently admitting calls, plus AUTO when any is available"""
        available = [ProviderTarget(p.value) for p in self.registry.available_providers()]
        if available:
            available.append(ProviderTarget.AUTO)
        return available

    async def health_check(self) -> Dict[str, Any]:
        """Breaker-derived provider health; issues no provider calls"""
        health = self.registry.health()
        providers = {p.value: h.model_dump(mode="json") for p, h in health.items()}
        return {
            "providers": providers,
            "overall": any(h.status != ProviderStatus.UNHEALTHY for h in health.values()),
            "guardrails": self.guardrails.get_system_status(),
        }

    def _resolve_provider(self,
                          target: ProviderTarget,
                          template: DocumentTemplate,
                          framework: str) -> ProviderId:
        provider = ProviderTarget(target).as_provider()
        if provider is not None:
            return provider
        return select_optimal_provider(template.category, template.document_type, framework)

    async def _guard(self,
                     prompt: str,
                     response: Optional[str],
                     context: GuardrailContext) -> GuardrailVerdict:
        """Pipeline check where any invocation error blocks the request"""
        try:
            return await self.guardrails.check(prompt, response, context)
        except Exception as e:
            logger.error(f"Guardrail invocation failed for {context.request_id}; blocking: {e}")
            return GuardrailVerdict.fail_secure()

    async def _call_with_fallback(self,
                                  provider: ProviderId,
                                  prompt: str,
                                  request_id: str) -> Tuple[str, ProviderId, bool]:
        """Call the provider, then exactly one fallback from the ring"""
        start_time = time.perf_counter()
        try:
            content = await self.registry.call(provider, prompt)
            log_provider_call(provider.value, request_id, time.perf_counter() - start_time)
            return content, provider, False
        except ProviderCallError as primary_error:
            log_provider_call(
                provider.value, request_id, time.perf_counter() - start_time,
                error=str(primary_error),
            )
            fallback = next_provider(provider)
            logger.warning(
                f"Error with {provider.value}, falling back to {fallback.value} "
                f"for request {request_id}"
            )

            start_time = time.perf_counter()
            try:
                content = await self.registry.call(fallback, prompt)
            except ProviderCallError as fallback_error:
                log_provider_call(
                    fallback.value, request_id, time.perf_counter() - start_time,
                    fallback=True, error=str(fallback_error),
                )
                raise AllProvidersFailedError(request_id, [
                    (provider.value, primary_error),
                    (fallback.value, fallback_error),
                ]) from fallback_error

            log_provider_call(
                fallback.value, request_id, time.perf_counter() - start_time, fallback=True
            )
            return content, fallback, True

    async def _try_quality_analysis(self,
                                    content: str,
                                    framework: str,
                                    request_id: str) -> Optional[QualityAnalysis]:
        if self.quality_analyzer is None:
            return None
        try:
            return await self.quality_analyzer(content, framework)
        except Exception as e:
            logger.warning(f"Quality analysis failed for {request_id}: {e}")
            return None

    @staticmethod
    async def _emit_progress(on_progress: Optional[ProgressCallback], progress: BatchProgress):
        if on_progress is None:
            return
        try:
            outcome = on_progress(progress)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.error(f"Progress callback failed at item {progress.completed_count + 1}: {e}")

    @staticmethod
    def _blocked_reason(verdict: GuardrailVerdict) -> str:
        if verdict.action == GuardrailAction.HUMAN_REVIEW_REQUIRED:
            return REVIEW_MESSAGE
        return BLOCKED_MESSAGE

    def _blocked_result(self,
                        verdict: GuardrailVerdict,
                        request_id: str,
                        title: Optional[str] = None) -> GenerationResult:
        logger.warning(f"Request {request_id} stopped by guardrails: {verdict.action.value}")
        reason = self._blocked_reason(verdict)
        return GenerationResult(
            content=reason,
            request_id=request_id,
            title=title,
            blocked=True,
            blocked_reason=reason,
        )

    def _blocked_response(self,
                          verdict: GuardrailVerdict,
                          request_id: str) -> ContentGenerationResponse:
        logger.warning(f"Request {request_id} stopped by guardrails: {verdict.action.value}")
        return ContentGenerationResponse(
            request_id=request_id,
            guardrail_action=verdict.action,
            audit_log_id=verdict.audit_log_id,
            blocked=True,
            blocked_reason=self._blocked_reason(verdict),
        )
