from __future__ import annotations

import json

import httpx
import pytest

from regwatch.adapters import enrichment
from regwatch.adapters.enrichment import (
    HttpEnrichmentTrigger,
    NullEnrichmentTrigger,
    build_enrichment_trigger,
)
from regwatch.config import EnrichmentConfig, RetryPolicy
from regwatch.domain.ports import EnrichmentTrigger


def _config() -> EnrichmentConfig:
    return EnrichmentConfig(
        endpoint="https://enrich.example.com/events",
        token="secret",
        retry=RetryPolicy(total=0),
    )


def test_trigger_posts_one_request_per_event() -> None:
    bodies: list[dict[str, str]] = []
    auth: list[str | None] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        auth.append(request.headers.get("Authorization"))
        return httpx.Response(202)

    trigger = HttpEnrichmentTrigger(_config(), transport=httpx.MockTransport(handler))

    trigger.request(["evt-1", "evt-2"])

    assert bodies == [{"event_id": "evt-1"}, {"event_id": "evt-2"}]
    assert auth == ["Bearer secret", "Bearer secret"]
    assert (trigger.sent, trigger.failed) == (2, 0)


def test_trigger_failures_never_raise() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("events") and b"evt-1" in request.content:
            return httpx.Response(500)
        return httpx.Response(202)

    trigger = HttpEnrichmentTrigger(_config(), transport=httpx.MockTransport(handler))

    trigger.request(["evt-1", "evt-2"])

    assert (trigger.sent, trigger.failed) == (1, 1)


def test_unexpected_transport_errors_are_swallowed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if b"evt-1" in request.content:
            raise RuntimeError("cache storage unavailable")
        return httpx.Response(202)

    trigger = HttpEnrichmentTrigger(_config(), transport=httpx.MockTransport(handler))

    trigger.request(["evt-1", "evt-2"])

    assert (trigger.sent, trigger.failed) == (1, 1)


def test_client_setup_failure_counts_every_event_as_failed(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def broken_client(*_args: object, **_kwargs: object) -> None:
        raise httpx.InvalidURL("Invalid URL 'enrich'")

    monkeypatch.setattr(enrichment, "ResilientClient", broken_client)
    trigger = HttpEnrichmentTrigger(_config())

    trigger.request(["evt-1", "evt-2"])

    assert (trigger.sent, trigger.failed) == (0, 2)


def test_empty_request_makes_no_calls() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError(f"unexpected call to {request.url}")

    trigger = HttpEnrichmentTrigger(_config(), transport=httpx.MockTransport(handler))

    trigger.request([])

    assert trigger.sent == 0


def test_trigger_is_disabled_without_an_endpoint() -> None:
    trigger = build_enrichment_trigger(EnrichmentConfig())

    assert isinstance(trigger, NullEnrichmentTrigger)
    assert isinstance(trigger, EnrichmentTrigger)
    trigger.request(["evt-1"])


def test_configured_endpoint_builds_http_trigger() -> None:
    assert isinstance(build_enrichment_trigger(_config()), HttpEnrichmentTrigger)
