"""
Pytest configuration and shared fixtures
"""
import asyncio
import json
import os
import sys
from datetime import datetime, timezone
from http import HTTPStatus

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from config import SiteAuditConfig
from history_store import HistoryStore
from models import (
    AnalysisResult, NetworkResult, PerformanceChannelResult, PerformanceResult, ScoreResult, SeoResult
)
from throttler import AnalysisThrottler


SAMPLE_HTML = """
<html lang="en">
  <head>
    <title>Example Page</title>
    <meta name="description" content="Sample description" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <link rel="canonical" href="https://example.com" />
    <script type="application/ld+json">{"@type":"Organization"}</script>
    <meta property="og:title" content="Example" />
    <meta name="twitter:card" content="summary" />
  </head>
  <body>
    <a href="#main" class="skip">Skip to content</a>
    <header></header>
    <main id="main">
      <h1>Example H1</h1>
      <h2>Example H2</h2>
      <img src="a.jpg" alt="alt text" />
      <img src="b.jpg" />
      <a href="/internal">Internal</a>
      <a href="https://external.com">External</a>
      <form>
        <input id="email" type="email" />
        <label for="email">Email</label>
      </form>
    </main>
  </body>
</html>
"""


class FakeResponse:
    """aiohttp-shaped response used by the fake session"""

    def __init__(self, status=200, body="", headers=None, payload=None, url=None, reason=None, delay=0):
        self.status = status
        self.body = body
        self.headers = headers or {}
        self.payload = payload
        self.final_url = url
        self.reason = reason if reason is not None else _phrase(status)
        self.delay = delay
        self.url = url

    async def text(self, **kwargs):
        return self.body

    async def json(self, **kwargs):
        if self.payload is not None:
            return self.payload
        return json.loads(self.body)


def _phrase(status):
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


class FakeRequest:
    def __init__(self, http, method, url, kwargs):
        self.http = http
        self.method = method
        self.url = url
        self.kwargs = kwargs

    async def __aenter__(self):
        self.http.calls.append((self.method, self.url, self.kwargs))
        outcome = self.http.resolve(self.method, self.url, self.kwargs)
        if isinstance(outcome, BaseException):
            raise outcome

        self.http.active += 1
        self.http.max_active = max(self.http.max_active, self.http.active)
        if outcome.delay:
            await asyncio.sleep(outcome.delay)
        if outcome.final_url is None:
            outcome.url = self.url
        return outcome

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.http.active -= 1
        return False


class FakeSession:
    def __init__(self, http):
        self.http = http

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.http.sessions_closed += 1
        return False

    def get(self, url, **kwargs):
        return FakeRequest(self.http, 'GET', url, kwargs)

    def head(self, url, **kwargs):
        return FakeRequest(self.http, 'HEAD', url, kwargs)

    def post(self, url, **kwargs):
        return FakeRequest(self.http, 'POST', url, kwargs)


class FakeHttp:
    """Routes (method, url) pairs to canned responses or exceptions"""

    def __init__(self):
        self.routes = {}
        self.default = None
        self.calls = []
        self.timeouts = []
        self.active = 0
        self.max_active = 0
        self.sessions_closed = 0

    def add(self, method, url, outcome):
        self.routes[(method, url)] = outcome

    def resolve(self, method, url, kwargs):
        outcome = self.routes.get((method, url), self.default)
        if callable(outcome) and not isinstance(outcome, (FakeResponse, BaseException)):
            outcome = outcome(method, url, kwargs)
        if outcome is None:
            return FakeResponse(status=200)
        return outcome

    def factory(self, timeout):
        self.timeouts.append(timeout)
        return FakeSession(self)

    def methods_for(self, url):
        return [method for method, called_url, _ in self.calls if called_url == url]


@pytest.fixture
def fake_http():
    """Fake aiohttp layer; pass fake_http.factory as a session factory"""
    return FakeHttp()


@pytest.fixture
def sample_html():
    return SAMPLE_HTML


@pytest.fixture
def history_path(tmp_path):
    """Temporary history file location"""
    return str(tmp_path / "App_Data" / "scan-history.json")


@pytest.fixture
def test_config(tmp_path, history_path):
    """Test configuration with every external provider disabled"""
    return SiteAuditConfig(
        performance_api_key=None,
        performance_api_base_url=None,
        seo_api_key=None,
        seo_api_base_url=None,
        openai_api_key=None,
        max_concurrent_scans=2,
        history_path=history_path,
        log_dir=str(tmp_path / "logs"),
        enricher_timeout=5,
    )


@pytest.fixture
def history_store(history_path):
    return HistoryStore(history_path)


@pytest.fixture
def throttler():
    return AnalysisThrottler(max_concurrent=2)


@pytest.fixture
def sample_network():
    return NetworkResult(
        url="https://example.com/",
        status_code=200,
        response_time_ms=450,
        checked_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def good_seo():
    """SEO result with every signal present"""
    return SeoResult(
        title="Example title for SEO",
        title_length=22,
        meta_description="A detailed description that falls within ideal range",
        meta_description_length=62,
        canonical_url="https://example.com",
        is_indexable=True,
        h1_count=1,
        h2_count=2,
        has_viewport_meta=True,
        viewport_content="width=device-width, initial-scale=1",
        total_images=4,
        images_without_alt=0,
        internal_link_count=10,
        external_link_count=2,
        uses_https=True,
        has_language_attribute=True,
        has_skip_link=True,
        landmark_count=2,
        structured_data_count=1,
        structured_data_types=("Organization",),
        has_open_graph_tags=True,
        has_twitter_card=True,
    )


@pytest.fixture
def sample_performance():
    return PerformanceResult(
        mobile=PerformanceChannelResult(
            strategy="mobile",
            score=91,
            largest_contentful_paint_ms=2100,
            first_contentful_paint_ms=1200,
            cumulative_layout_shift=0.05,
            total_blocking_time_ms=150,
        )
    )


@pytest.fixture
def sample_analysis(sample_network, good_seo):
    return AnalysisResult(
        url="https://example.com/",
        checked_at=sample_network.checked_at,
        network=sample_network,
        seo=good_seo,
        score=ScoreResult(overall=90, seo=94, speed=100),
    )
