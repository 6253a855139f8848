"""
Provider identities, circuit breakers, registry and selection.
"""

from .base_provider import (
    FALLBACK_RING,
    ProviderCall,
    ProviderHealth,
    ProviderId,
    ProviderStatus,
    ProviderTarget,
    next_provider,
)
from .circuit_breaker import CircuitBreaker, CircuitBreakerStats, CircuitState
from .registry import ProviderRegistry
from .selection import select_optimal_provider

__all__ = [
    "FALLBACK_RING",
    "ProviderCall",
    "ProviderHealth",
    "ProviderId",
    "ProviderStatus",
    "ProviderTarget",
    "next_provider",
    "CircuitBreaker",
    "CircuitBreakerStats",
    "CircuitState",
    "ProviderRegistry",
    "select_optimal_provider",
]
