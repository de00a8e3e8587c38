"""Configuration for the AI enrichment trigger."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import env_float, env_int, optional_env, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy


@dataclass(frozen=True, slots=True)
class EnrichmentConfig:
    endpoint: str | None = None
    token: str | None = None
    timeout_seconds: float = 5.0
    max_calls_per_second: int = 10
    retry: RetryPolicy = field(default_factory=lambda: RetryPolicy(total=2))

    @property
    def enabled(self) -> bool:
        return self.endpoint is not None

    def resilience(self) -> ResilienceConfig:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else None
        return ResilienceConfig(
            name="enrichment",
            timeout_seconds=self.timeout_seconds,
            retry=self.retry,
            ratelimit=RateLimit(max_calls=self.max_calls_per_second, per_seconds=1.0),
            cache=None,
            default_headers=headers,
        )


def get_enrichment_config() -> EnrichmentConfig:
    token = optional_env("REGWATCH_ENRICHMENT_TOKEN")
    if token is not None:
        # A token alone would silently disable enrichment.
        require_env_vars(["REGWATCH_ENRICHMENT_URL"])
    return EnrichmentConfig(
        endpoint=optional_env("REGWATCH_ENRICHMENT_URL"),
        token=token,
        timeout_seconds=env_float("REGWATCH_ENRICHMENT_TIMEOUT", 5.0, minimum=0.1),
        max_calls_per_second=env_int("REGWATCH_ENRICHMENT_RATE", 10, minimum=1),
    )
