from __future__ import annotations

import httpx
import pytest

from regwatch.adapters.sources import DatasetFetcher
from regwatch.config import ResilienceConfig, RetryPolicy

CSV_BODY = "\ufeffID,City,State\n1,MIAMI,FL\n2,TAMPA,FL\n"


def _config() -> ResilienceConfig:
    return ResilienceConfig(name="test-download", retry=RetryPolicy(total=0), cache=None)


def test_fetch_rows_parses_by_extension() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, content=CSV_BODY.encode("utf-8"))

    fetcher = DatasetFetcher(resilience=_config(), transport=httpx.MockTransport(handler))

    rows = fetcher.fetch_rows("https://data.example.com/daily/OSHA/x/rows.csv")

    assert rows == [
        {"ID": "1", "City": "MIAMI", "State": "FL"},
        {"ID": "2", "City": "TAMPA", "State": "FL"},
    ]
    assert seen == ["https://data.example.com/daily/OSHA/x/rows.csv"]


def test_fetch_raises_for_error_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, request=request)

    fetcher = DatasetFetcher(resilience=_config(), transport=httpx.MockTransport(handler))

    with pytest.raises(httpx.HTTPStatusError):
        fetcher.fetch_text("https://data.example.com/missing.csv")
