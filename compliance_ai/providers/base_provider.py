"""
Provider identities, the fixed fallback ring and provider health models.
"""
import logging
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)


# An external text generation function: prompt in, generated text out.
ProviderCall = Callable[[str], Awaitable[str]]


class ProviderId(str, Enum):
    """Concrete LLM providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


class ProviderTarget(str, Enum):
    """Requested provider; AUTO defers to template based selection."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    AUTO = "auto"

    def as_provider(self) -> Optional[ProviderId]:
        """Concrete provider for this target, or None for AUTO."""
        if self is ProviderTarget.AUTO:
            return None
        return ProviderId(self.value)


class ProviderStatus(str, Enum):
    """Provider status enumeration."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ProviderHealth(BaseModel):
    """Provider health information derived from its circuit breaker."""
    provider: ProviderId
    status: ProviderStatus
    circuit_state: str
    consecutive_failures: int = 0
    total_requests: int = 0
    total_failures: int = 0
    last_failure_time: Optional[float] = None
    last_error: Optional[str] = None


FALLBACK_RING: Dict[ProviderId, ProviderId] = {
    ProviderId.OPENAI: ProviderId.ANTHROPIC,
    ProviderId.ANTHROPIC: ProviderId.GEMINI,
    ProviderId.GEMINI: ProviderId.OPENAI,
}


def next_provider(provider: ProviderId) -> ProviderId:
    """Next provider in the fallback ring; never returns its input."""
    return FALLBACK_RING[ProviderId(provider)]
