"""Per-model rate limiting for oracle calls."""

from typing import Optional

from aiolimiter import AsyncLimiter

DEFAULT_MODEL_KEY = "default"


class ModelRateLimiter:
    """Per-model rate limiting to stay under the oracle provider's quotas.

    Uses aiolimiter AsyncLimiter to throttle calls on a per-model basis.
    Each model name gets its own limiter; calls that leave the model to the
    SDK default share one limiter.
    """

    def __init__(self, default_rate: float = 30.0, time_period: float = 60.0):
        """Initialize the model rate limiter.

        Args:
            default_rate: Maximum calls per time_period (default: 30 per minute)
            time_period: Time period in seconds (default: 60 seconds)
        """
        self.limiters: dict[str, AsyncLimiter] = {}
        self.default_rate = default_rate
        self.time_period = time_period

    async def acquire(self, model: Optional[str] = None) -> None:
        """Acquire a rate limit token for the model.

        Args:
            model: Model name, or None for the SDK default model
        """
        key = model or DEFAULT_MODEL_KEY

        if key not in self.limiters:
            self.limiters[key] = AsyncLimiter(
                max_rate=self.default_rate, time_period=self.time_period
            )

        await self.limiters[key].acquire()
