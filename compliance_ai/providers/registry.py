"""
Provider registry: the process-wide set of provider call functions, each
guarded by its own circuit breaker.
"""
import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from ..utils.exceptions import CircuitOpenError, ConfigurationError, ProviderCallError
from .base_provider import ProviderCall, ProviderHealth, ProviderId, ProviderStatus
from .circuit_breaker import CircuitBreaker, CircuitState, StateChangeCallback

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """
    Owns one circuit breaker per provider.

    Construct once at start-up and share it; breaker state lives for the
    lifetime of the registry.
    """

    def __init__(self,
                 provider_calls: Mapping[Union[ProviderId, str], ProviderCall],
                 failure_threshold: int = 5,
                 reset_timeout: float = 30.0,
                 success_threshold: int = 1,
                 request_timeout: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic,
                 on_state_change: Optional[StateChangeCallback] = None):
        if not provider_calls:
            raise ConfigurationError("At least one provider call must be registered")

        self._calls: Dict[ProviderId, ProviderCall] = {}
        self._breakers: Dict[ProviderId, CircuitBreaker] = {}

        for provider, call in provider_calls.items():
            provider_id = ProviderId(provider)
            self._calls[provider_id] = call
            self._breakers[provider_id] = CircuitBreaker(
                name=provider_id.value,
                failure_threshold=failure_threshold,
                reset_timeout=reset_timeout,
                success_threshold=success_threshold,
                request_timeout=request_timeout,
                clock=clock,
                on_state_change=on_state_change,
            )
            logger.info(f"Registered provider: {provider_id.value}")

        # Usage tracking
        self.provider_usage: Dict[ProviderId, Dict[str, Any]] = {
            provider_id: {"requests": 0, "successes": 0, "failures": 0, "total_response_time": 0.0}
            for provider_id in self._calls
        }

    def is_registered(self, provider: ProviderId) -> bool:
        return provider in self._calls

    def breaker(self, provider: ProviderId) -> CircuitBreaker:
        try:
            return self._breakers[ProviderId(provider)]
        except KeyError:
            raise ConfigurationError(f"Provider not registered: {provider}")

    async def call(self, provider: ProviderId, prompt: str) -> str:
        """
        Generate text with one provider through its breaker.

        Raises:
            ProviderCallError: on any failure, including an open breaker
                (CircuitOpenError) and unregistered providers
        """
        provider = ProviderId(provider)
        call = self._calls.get(provider)
        if call is None:
            raise ProviderCallError(provider.value, "provider not registered")

        usage = self.provider_usage[provider]
        usage["requests"] += 1
        start_time = time.perf_counter()

        try:
            result = await self._breakers[provider].execute(lambda: call(prompt))
        except CircuitOpenError:
            usage["failures"] += 1
            raise
        except asyncio.TimeoutError as e:
            usage["failures"] += 1
            raise ProviderCallError(provider.value, "request timed out", cause=e) from e
        except Exception as e:
            usage["failures"] += 1
            raise ProviderCallError(provider.value, str(e) or type(e).__name__, cause=e) from e

        if not isinstance(result, str):
            usage["failures"] += 1
            raise ProviderCallError(
                provider.value, f"expected text, got {type(result).__name__}"
            )

        usage["successes"] += 1
        usage["total_response_time"] += time.perf_counter() - start_time
        return result

    def available_providers(self) -> List[ProviderId]:
        """Registered providers whose breakers currently admit calls."""
        return [provider for provider, breaker in self._breakers.items() if breaker.is_allowing()]

    def registered_providers(self) -> List[ProviderId]:
        return list(self._calls)

    def health(self) -> Dict[ProviderId, ProviderHealth]:
        """Breaker-derived health per provider; performs no network calls."""
        report = {}
        for provider, breaker in self._breakers.items():
            stats = breaker.stats()
            if stats.state == CircuitState.OPEN:
                status = ProviderStatus.UNHEALTHY
            elif stats.state == CircuitState.HALF_OPEN or stats.consecutive_failures > 0:
                status = ProviderStatus.DEGRADED
            else:
                status = ProviderStatus.HEALTHY

            report[provider] = ProviderHealth(
                provider=provider,
                status=status,
                circuit_state=stats.state.value,
                consecutive_failures=stats.consecutive_failures,
                total_requests=stats.total_requests,
                total_failures=stats.total_failures,
                last_failure_time=stats.last_failure_time,
                last_error=stats.last_error,
            )
        return report

    def stats(self) -> Dict[str, Any]:
        return {
            provider.value: {
                "circuit_breaker": breaker.stats().to_dict(),
                "usage": dict(self.provider_usage[provider]),
            }
            for provider, breaker in self._breakers.items()
        }

    async def reset_breakers(self):
        for breaker in self._breakers.values():
            await breaker.reset()
