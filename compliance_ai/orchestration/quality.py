"""
Document quality analysis.

The orchestrator accepts any ``async (content, framework) -> QualityAnalysis``
callable. LLMQualityAnalyzer is the default: it asks a registered provider
for a JSON assessment.
"""
import json
import logging
import re
from typing import Awaitable, Callable

from pydantic import ValidationError

from ..providers.base_provider import ProviderId
from ..providers.registry import ProviderRegistry
from ..utils.exceptions import ProviderCallError, QualityAnalysisError
from .models import QualityAnalysis
from .prompts import build_quality_prompt

logger = logging.getLogger(__name__)

QualityAnalyzer = Callable[[str, str], Awaitable[QualityAnalysis]]

_CODE_FENCE = re.compile(r'^```(?:json)?\s*|\s*```$', re.IGNORECASE)
_JSON_OBJECT = re.compile(r'\{.*\}', re.DOTALL)


def parse_quality_response(text: str) -> QualityAnalysis:
    """Parse a provider's JSON quality assessment, tolerating code fences"""
    cleaned = _CODE_FENCE.sub("", text.strip())
    match = _JSON_OBJECT.search(cleaned)
    if not match:
        raise QualityAnalysisError("Quality response contained no JSON object")

    try:
        data = json.loads(match.group())
        return QualityAnalysis(
            score=data["score"],
            feedback=data.get("feedback") or "",
            suggestions=data.get("suggestions") or [],
        )
    except (json.JSONDecodeError, KeyError, TypeError, ValidationError) as e:
        raise QualityAnalysisError(f"Malformed quality response: {e}") from e


class LLMQualityAnalyzer:
    """Scores documents by asking a provider for a JSON assessment"""

    def __init__(self, registry: ProviderRegistry, provider: ProviderId = ProviderId.ANTHROPIC):
        self.registry = registry
        self.provider = provider

    async def __call__(self, content: str, framework: str) -> QualityAnalysis:
        try:
            response = await self.registry.call(self.provider, build_quality_prompt(content, framework))
        except ProviderCallError as e:
            raise QualityAnalysisError(f"Quality analysis call failed: {e}") from e

        analysis = parse_quality_response(response)
        logger.debug(f"Quality score {analysis.score} for {framework} document")
        return analysis
