"""Template based provider selection for AUTO requests."""
import logging
from typing import Optional, Sequence, Tuple

from .base_provider import ProviderId

logger = logging.getLogger(__name__)


# Checked in order; first keyword found in category or document type wins
SELECTION_RULES: Sequence[Tuple[Tuple[str, ...], ProviderId]] = (
    (("assessment", "analysis", "audit", "risk"), ProviderId.GEMINI),
    (("policy", "standard"), ProviderId.ANTHROPIC),
    (("procedure", "plan", "response", "playbook"), ProviderId.OPENAI),
)

DEFAULT_PROVIDER = ProviderId.OPENAI


def select_optimal_provider(category: Optional[str],
                            document_type: Optional[str] = None,
                            framework: Optional[str] = None) -> ProviderId:
    """
    Pick a provider from the template's category and document type.

    Analytical documents go to Gemini, policy writing to Anthropic and
    operational procedures to OpenAI; anything else defaults to OpenAI.
    """
    haystack = f"{category or ''} {document_type or ''}".lower()

    for keywords, provider in SELECTION_RULES:
        if any(keyword in haystack for keyword in keywords):
            logger.debug(f"Selected {provider.value} for '{haystack.strip()}' ({framework})")
            return provider

    return DEFAULT_PROVIDER
