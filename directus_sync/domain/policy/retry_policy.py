import random
from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff for idempotent metadata reads."""
    
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: bool = True

    def __post_init__(self) -> None:
        """Validate retry policy."""
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {self.max_retries}")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("base_delay and max_delay must be >= 0")

    def delay_for(self, attempt: int) -> float:
        """Delay before retrying after the given zero-based attempt."""
        delay = min(self.base_delay * (2**attempt), self.max_delay)
        if self.jitter:
            # +/-25%
            delay += delay * 0.25 * (2 * random.random() - 1)
        return max(0.0, delay)


NO_RETRY = RetryPolicy(max_retries=1, base_delay=0.0, jitter=False)
