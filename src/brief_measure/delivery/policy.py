from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class BackoffPolicy:
    """Doubling retry delay bounded by [base_seconds, max_seconds].

    Unlike a per-call retry loop, the delay is carried across drain passes:
    advance() hands out the current delay and doubles the stored one, and
    only reset() (a success, a 429 or a configuration change) brings it back
    to the base.
    """

    base_seconds: float = 60.0
    max_seconds: float = 86_400.0
    multiplier: float = 2.0
    current: float = field(init=False)

    def __post_init__(self) -> None:
        if self.base_seconds <= 0:
            raise ValueError("base_seconds must be > 0")
        if self.max_seconds < self.base_seconds:
            raise ValueError("max_seconds must be >= base_seconds")
        if self.multiplier < 1.0:
            raise ValueError("multiplier must be >= 1.0")
        self.current = self.base_seconds

    def advance(self) -> float:
        """Return the delay to wait now and escalate the next one."""
        delay = self.current
        self.current = min(self.current * self.multiplier, self.max_seconds)
        return delay

    def reset(self) -> None:
        self.current = self.base_seconds

    @property
    def at_base(self) -> bool:
        return self.current == self.base_seconds
