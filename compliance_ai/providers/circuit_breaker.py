"""
Per-provider circuit breaker.

States:
- CLOSED: normal operation, calls pass through
- OPEN: provider considered down, calls fail fast until the cooldown elapses
- HALF_OPEN: one trial call at a time decides between CLOSED and OPEN

Usage:
    breaker = CircuitBreaker("openai", failure_threshold=5, reset_timeout=30)
    text = await breaker.execute(lambda: generate(prompt))
"""
import asyncio
import logging
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from ..utils.exceptions import CircuitOpenError

logger = logging.getLogger(__name__)

T = TypeVar("T")

StateChangeCallback = Callable[[str, "CircuitState", "CircuitState"], None]


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerStats:
    """Point-in-time view of a breaker."""
    name: str
    state: CircuitState
    consecutive_failures: int
    opened_at: Optional[float]
    total_requests: int
    total_failures: int
    total_successes: int
    rejected_requests: int
    last_failure_time: Optional[float]
    last_success_time: Optional[float]
    last_error: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        return data


class CircuitBreaker:
    """Fails fast after repeated provider failures, then probes for recovery."""

    def __init__(self,
                 name: str,
                 failure_threshold: int = 5,
                 reset_timeout: float = 30.0,
                 success_threshold: int = 1,
                 request_timeout: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic,
                 on_state_change: Optional[StateChangeCallback] = None):
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if success_threshold < 1:
            raise ValueError("success_threshold must be at least 1")

        self.name = name
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.success_threshold = success_threshold
        self.request_timeout = request_timeout
        self._clock = clock
        self._on_state_change = on_state_change
        self._lock = asyncio.Lock()

        self.state = CircuitState.CLOSED
        self.consecutive_failures = 0
        self.opened_at: Optional[float] = None
        self._half_open_successes = 0
        self._trial_in_flight = False

        self.total_requests = 0
        self.total_failures = 0
        self.total_successes = 0
        self.rejected_requests = 0
        self.last_failure_time: Optional[float] = None
        self.last_success_time: Optional[float] = None
        self.last_error: Optional[str] = None

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run operation under breaker protection."""
        is_trial = await self._before_call()

        try:
            if self.request_timeout is not None:
                result = await asyncio.wait_for(operation(), timeout=self.request_timeout)
            else:
                result = await operation()
        except asyncio.CancelledError:
            if is_trial:
                async with self._lock:
                    self._trial_in_flight = False
            raise
        except Exception as e:
            await self._on_failure(e, is_trial)
            raise

        await self._on_success(is_trial)
        return result

    def is_allowing(self) -> bool:
        """Whether a call issued now would be let through (no state change)."""
        if self.state == CircuitState.CLOSED:
            return True
        if self.state == CircuitState.HALF_OPEN:
            return not self._trial_in_flight
        return self._cooldown_elapsed()

    def stats(self) -> CircuitBreakerStats:
        return CircuitBreakerStats(
            name=self.name,
            state=self.state,
            consecutive_failures=self.consecutive_failures,
            opened_at=self.opened_at,
            total_requests=self.total_requests,
            total_failures=self.total_failures,
            total_successes=self.total_successes,
            rejected_requests=self.rejected_requests,
            last_failure_time=self.last_failure_time,
            last_success_time=self.last_success_time,
            last_error=self.last_error,
        )

    async def reset(self):
        """Force the breaker back to CLOSED."""
        async with self._lock:
            self.consecutive_failures = 0
            self.opened_at = None
            self._half_open_successes = 0
            self._trial_in_flight = False
            self._transition(CircuitState.CLOSED)
        logger.info(f"Circuit breaker {self.name} manually reset")

    def _cooldown_elapsed(self) -> bool:
        return (
            self.opened_at is not None
            and self._clock() - self.opened_at >= self.reset_timeout
        )

    async def _before_call(self) -> bool:
        """Admit or reject a call; returns True when the call is the HALF_OPEN trial."""
        async with self._lock:
            if self.state == CircuitState.OPEN:
                if not self._cooldown_elapsed():
                    self.rejected_requests += 1
                    retry_after = self.reset_timeout - (self._clock() - self.opened_at)
                    raise CircuitOpenError(self.name, retry_after=max(retry_after, 0.0))
                self._half_open_successes = 0
                self._transition(CircuitState.HALF_OPEN)

            if self.state == CircuitState.HALF_OPEN:
                if self._trial_in_flight:
                    self.rejected_requests += 1
                    raise CircuitOpenError(self.name)
                self._trial_in_flight = True
                self.total_requests += 1
                return True

            self.total_requests += 1
            return False

    async def _on_success(self, is_trial: bool):
        async with self._lock:
            self.total_successes += 1
            self.last_success_time = self._clock()

            if is_trial:
                self._trial_in_flight = False
                self._half_open_successes += 1
                if self._half_open_successes >= self.success_threshold:
                    self.consecutive_failures = 0
                    self.opened_at = None
                    self._transition(CircuitState.CLOSED)
            elif self.state == CircuitState.CLOSED:
                self.consecutive_failures = 0

    async def _on_failure(self, error: Exception, is_trial: bool):
        async with self._lock:
            self.total_failures += 1
            self.consecutive_failures += 1
            self.last_failure_time = self._clock()
            self.last_error = str(error) or type(error).__name__

            if is_trial:
                self._trial_in_flight = False
                self.opened_at = self._clock()
                self._transition(CircuitState.OPEN)
                logger.warning(f"Circuit breaker {self.name} re-opened after failed trial call")
            elif (self.state == CircuitState.CLOSED
                  and self.consecutive_failures >= self.failure_threshold):
                self.opened_at = self._clock()
                self._transition(CircuitState.OPEN)
                logger.error(
                    f"Circuit breaker {self.name} opened after "
                    f"{self.consecutive_failures} consecutive failures"
                )

    def _transition(self, new_state: CircuitState):
        old_state = self.state
        if old_state == new_state:
            return
        self.state = new_state
        logger.info(f"Circuit breaker {self.name}: {old_state.value} -> {new_state.value}")

        if self._on_state_change:
            try:
                self._on_state_change(self.name, old_state, new_state)
            except Exception as e:
                logger.error(f"Circuit breaker state-change callback failed: {e}")
