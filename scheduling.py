"""Rate-limit and retry policy shared by the sequencer and the orchestrator."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import ElectionSourceConfig
from errors import GatewayError, StageFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class SchedulingPolicy:
    """Fixed delays between model calls plus the gateway retry budget.

    ``sleep`` is the only way the pipeline waits, so tests swap in a recorder
    instead of the wall clock.
    """

    position_delay: float = ElectionSourceConfig.POSITION_DELAY_SECONDS
    post_research_delay: float = ElectionSourceConfig.POST_RESEARCH_DELAY_SECONDS
    seed_delay: float = ElectionSourceConfig.SEED_DELAY_SECONDS
    max_attempts: int = ElectionSourceConfig.RETRY_MAX_ATTEMPTS
    base_backoff: float = ElectionSourceConfig.RETRY_BASE_DELAY_SECONDS
    max_backoff: float = ElectionSourceConfig.RETRY_MAX_DELAY_SECONDS
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def __post_init__(self) -> None:
        self.max_attempts = max(1, int(self.max_attempts))
        for name in ("position_delay", "post_research_delay", "seed_delay", "base_backoff", "max_backoff"):
            setattr(self, name, max(0.0, float(getattr(self, name))))

    def pause(self, seconds: float, reason: str = "") -> None:
        if seconds <= 0:
            return
        suffix = f" {reason}" if reason else ""
        logger.info(f"Waiting {seconds:g} seconds{suffix}...")
        self.sleep(seconds)

    def call_with_retry(self, fn: Callable[[], T], stage: str, seed_name: str = "") -> T:
        """Run ``fn`` with exponential backoff on ``GatewayError``.

        Exhausting the budget raises ``StageFailure``; any other exception
        (including ``ConfigurationError``) propagates on the first attempt.
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.base_backoff, max=self.max_backoff),
            retry=retry_if_exception_type(GatewayError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self.sleep,
            reraise=True,
        )
        try:
            return retrying(fn)
        except GatewayError as exc:
            raise StageFailure(
                stage,
                f"gave up after {self.max_attempts} attempt(s): {exc}",
                seed_name=seed_name or None,
            ) from exc

    @classmethod
    def immediate(cls, **overrides) -> "SchedulingPolicy":
        """Policy with every delay zeroed; used for dry runs."""
        values = dict(position_delay=0, post_research_delay=0, seed_delay=0, base_backoff=0)
        values.update(overrides)
        return cls(**values)
