"""
Retry policy for failed publish attempts.

Per platform: a retry cap and a delay ladder. Attempt n (1-based retry_count)
waits delays[n-1]; once the ladder runs out the last delay repeats.
"""
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from publication_service.config import Settings, get_settings
from publication_service.enums import Platform


def parse_delays(raw: str) -> tuple[float, ...]:
    """'60, 300,900' -> (60.0, 300.0, 900.0). Empty or invalid entries are ignored."""
    delays = []
    for part in (raw or "").split(","):
        part = part.strip()
        if not part:
            continue
        try:
            value = float(part)
        except ValueError:
            continue
        if value >= 0:
            delays.append(value)
    return tuple(delays)


@dataclass(frozen=True)
class PlatformRetryRule:
    max_retries: int
    delays: Sequence[float]

    def delay_for(self, retry_count: int) -> float:
        if not self.delays:
            return 0.0
        index = min(max(retry_count, 1), len(self.delays)) - 1
        return float(self.delays[index])


class RetryPolicy:
    """Decides whether a failed post goes back to pending, and when."""

    def __init__(self, rules: Dict[Platform, PlatformRetryRule]) -> None:
        self.rules = rules

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RetryPolicy":
        settings = settings or get_settings()
        return cls(
            {
                Platform.LINKEDIN: PlatformRetryRule(
                    max_retries=settings.linkedin_max_retries,
                    delays=parse_delays(settings.linkedin_retry_delays),
                ),
                Platform.X: PlatformRetryRule(
                    max_retries=settings.x_max_retries,
                    delays=parse_delays(settings.x_retry_delays),
                ),
            }
        )

    def rule_for(self, platform: str) -> PlatformRetryRule:
        return self.rules.get(Platform(platform), PlatformRetryRule(max_retries=0, delays=()))

    def should_retry(self, platform: str, retry_count: int) -> bool:
        """
        retry_count is the value after mark_failed, i.e. failures so far.
        max_retries=3 allows three retries: four attempts in total.
        """
        return retry_count <= self.rule_for(platform).max_retries

    def next_delay(self, platform: str, retry_count: int) -> float:
        return self.rule_for(platform).delay_for(retry_count)
