"""
CultureTour Backend — Circuit Breaker
======================================

What:  Failure guard shared by the Appwrite and Cloudinary gateways.
How:   Counts consecutive transient failures; once the threshold is hit every
       call fails fast with CircuitBreakerOpenError until the recovery
       timeout elapses and a single test call is let through.
Who:   One instance per upstream, owned by DocumentStore and MediaService.

State Machine:
    CLOSED (normal operation)
        → On failure: increment failure_count
        → When failure_count >= threshold: transition to OPEN

    OPEN (rejecting all requests)
        → All calls raise CircuitBreakerOpenError immediately
        → After recovery_timeout seconds: transition to HALF_OPEN

    HALF_OPEN (testing recovery)
        → On success: transition to CLOSED (reset failure_count)
        → On failure: transition back to OPEN (reset timer)

Thread Safety:
    Counters are plain attributes. The breaker is only touched from the
    event loop (the SDK call itself runs in a worker thread), so a single
    uvicorn worker sees consistent state.
"""

import logging
import time
from typing import Optional

from culturetour.exceptions import CircuitBreakerOpenError

logger = logging.getLogger(__name__)


class CircuitBreaker:
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, name: str, failure_threshold: int = 5, recovery_timeout: int = 30):
        """
        Args:
            name: Upstream name used in logs and error messages ("appwrite")
            failure_threshold: Consecutive failures before opening circuit
            recovery_timeout: Seconds to wait before testing recovery
        """
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Check if a request is allowed through the circuit breaker.

        Raises:
            CircuitBreakerOpenError if the circuit is OPEN and the recovery
            timeout hasn't elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker [%s] transitioning to HALF_OPEN after %.1fs",
                    self.name,
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = max(int(self.recovery_timeout - elapsed), 1)
            raise CircuitBreakerOpenError(recovery_time=remaining, service=self.name)

        # HALF_OPEN: let the test request through
        return True

    def record_success(self) -> None:
        """Record a successful call. Resets the breaker to CLOSED."""
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker [%s] transitioning to CLOSED (service recovered)", self.name)
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        """Record a failed call. May trigger CLOSED → OPEN transition."""
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker [%s] returning to OPEN (test request failed)", self.name)
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker [%s] OPENING after %d consecutive failures",
                self.name,
                self.failure_count,
            )
            self.state = self.OPEN
