"""
Tests for the performance, off-page and AI insight providers
"""
from dataclasses import replace

import aiohttp
import pytest

from ai_insights import SYSTEM_PROMPT, AiInsightsService, build_prompt, format_snippet
from conftest import FakeResponse
from models import OffPageSeoResult
from offpage_analyzer import OffPageAnalyzer
from performance_analyzer import PerformanceAnalyzer

LIGHTHOUSE_PAYLOAD = {
    "lighthouseResult": {
        "categories": {"performance": {"score": 0.875}},
        "audits": {
            "largest-contentful-paint": {"numericValue": 2450.5},
            "first-contentful-paint": {"numericValue": 1200},
            "cumulative-layout-shift": {"numericValue": 0.02},
            "total-blocking-time": {"numericValue": 180},
            "render-blocking-resources": {
                "title": "Eliminate render-blocking resources",
                "description": "Resources are blocking the first paint.",
                "score": 0.42,
                "details": {"type": "opportunity", "overallSavingsMs": 640},
            },
            "uses-long-cache-ttl": {
                "title": "Serve static assets with an efficient cache policy",
                "details": {"type": "table"},
            },
        },
    }
}


@pytest.fixture
def performance_config(test_config):
    return replace(test_config, performance_api_key="perf-key",
                   performance_api_base_url="https://perf.example.test/run")


@pytest.fixture
def offpage_config(test_config):
    return replace(test_config, seo_api_key="seo-key", seo_api_base_url="https://seo.example.test/metrics?v=2")


@pytest.fixture
def ai_config(test_config):
    return replace(test_config, openai_api_key="sk-test", openai_api_base_url="https://ai.example.test/chat")


class TestPerformanceAnalyzer:
    """Tests for PerformanceAnalyzer"""

    @pytest.mark.asyncio
    async def test_disabled_without_configuration(self, test_config, fake_http):
        analyzer = PerformanceAnalyzer(test_config, fake_http.factory)

        assert await analyzer.analyze("https://example.com/") is None
        assert fake_http.calls == []

    def test_request_url(self, performance_config, fake_http):
        analyzer = PerformanceAnalyzer(performance_config, fake_http.factory)

        assert analyzer.build_request_url("https://example.com/a b") == (
            "https://perf.example.test/run?url=https%3A%2F%2Fexample.com%2Fa%20b&strategy=mobile&key=perf-key"
        )

    @pytest.mark.asyncio
    async def test_parses_lighthouse_payload(self, performance_config, fake_http):
        fake_http.default = FakeResponse(status=200, payload=LIGHTHOUSE_PAYLOAD)
        analyzer = PerformanceAnalyzer(performance_config, fake_http.factory)

        result = await analyzer.analyze("https://example.com/")

        assert result.desktop is None
        assert result.mobile.strategy == "mobile"
        assert result.mobile.score == 88
        assert result.mobile.largest_contentful_paint_ms == 2450.5
        assert result.mobile.total_blocking_time_ms == 180
        assert result.overall_score == 88
        assert fake_http.timeouts == [performance_config.enricher_timeout]

    def test_only_opportunities_become_suggestions(self, performance_config):
        result = PerformanceAnalyzer(performance_config).parse_payload(LIGHTHOUSE_PAYLOAD, "mobile")

        assert len(result.suggestions) == 1
        suggestion = result.suggestions[0]
        assert suggestion.title == "Eliminate render-blocking resources"
        assert suggestion.score == 42
        assert suggestion.estimated_savings_ms == 640

    def test_desktop_strategy_fills_desktop_channel(self, performance_config):
        result = PerformanceAnalyzer(performance_config).parse_payload(LIGHTHOUSE_PAYLOAD, "desktop")

        assert result.mobile is None
        assert result.desktop.score == 88
        assert result.primary is result.desktop

    def test_missing_lighthouse_result(self, performance_config):
        assert PerformanceAnalyzer(performance_config).parse_payload({"error": "quota"}, "mobile") is None

    @pytest.mark.asyncio
    async def test_error_status_returns_none(self, performance_config, fake_http):
        fake_http.default = FakeResponse(status=429)
        analyzer = PerformanceAnalyzer(performance_config, fake_http.factory)

        assert await analyzer.analyze("https://example.com/") is None

    @pytest.mark.asyncio
    async def test_transport_error_returns_none(self, performance_config, fake_http):
        fake_http.default = aiohttp.ClientConnectionError("refused")
        analyzer = PerformanceAnalyzer(performance_config, fake_http.factory)

        assert await analyzer.analyze("https://example.com/") is None


class TestOffPageAnalyzer:
    """Tests for OffPageAnalyzer"""

    @pytest.mark.asyncio
    async def test_disabled_without_configuration(self, test_config, fake_http):
        assert await OffPageAnalyzer(test_config, fake_http.factory).get_metrics("example.com") is None
        assert fake_http.calls == []

    @pytest.mark.asyncio
    async def test_reads_data_envelope(self, offpage_config, fake_http):
        fake_http.default = FakeResponse(status=200, payload={
            "data": {"domainAuthority": 54, "backlinks": 1200.6, "referringDomains": 88, "spamScore": 1.5}
        })

        result = await OffPageAnalyzer(offpage_config, fake_http.factory).get_metrics("example.com")

        assert result == OffPageSeoResult(domain_authority=54.0, backlinks=1201, referring_domains=88, spam_score=1.5)
        method, url, kwargs = fake_http.calls[0]
        assert url == "https://seo.example.test/metrics?v=2&domain=example.com"
        assert kwargs["headers"]["Authorization"] == "Bearer seo-key"

    @pytest.mark.asyncio
    async def test_reads_root_payload(self, offpage_config, fake_http):
        fake_http.default = FakeResponse(status=200, payload={"domainAuthority": 12.5, "backlinks": "many"})

        result = await OffPageAnalyzer(offpage_config, fake_http.factory).get_metrics("example.com")

        assert result.domain_authority == 12.5
        assert result.backlinks is None
        assert result.referring_domains is None

    @pytest.mark.asyncio
    async def test_error_status_returns_none(self, offpage_config, fake_http):
        fake_http.default = FakeResponse(status=401)
        assert await OffPageAnalyzer(offpage_config, fake_http.factory).get_metrics("example.com") is None


class TestAiInsights:
    """Tests for AI insight generation"""

    def test_format_snippet(self):
        assert format_snippet(None) == "Missing"
        assert format_snippet("  ") == "Missing"
        assert format_snippet("line one\nline two") == "line one line two"
        long_text = "x" * 400
        assert format_snippet(long_text) == "x" * 277 + "..."

    def test_prompt_lists_measurements_and_instructions(self, sample_analysis, sample_performance):
        analysis = replace(sample_analysis, performance=sample_performance)

        prompt = build_prompt(analysis)

        assert "Host: example.com" in prompt
        assert "HTTP status: 200" in prompt
        assert "Network error: None" in prompt
        assert "Mobile Largest Contentful Paint (ms): 2100" in prompt
        assert "Desktop score" not in prompt
        assert "Title text: Example title for SEO" in prompt
        assert "Structured data types: Organization" in prompt
        assert "Instructions:" in prompt
        assert '- Reference "example.com" or "https://example.com/" explicitly' in prompt
        assert "Domain authority" not in prompt

    def test_payload(self, ai_config, sample_analysis):
        payload = AiInsightsService(ai_config).build_payload(sample_analysis)

        assert payload["model"] == ai_config.openai_model
        assert payload["temperature"] == 0.2
        assert payload["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
        assert payload["messages"][1]["role"] == "user"

    @pytest.mark.asyncio
    async def test_disabled_without_key(self, test_config, fake_http, sample_analysis):
        service = AiInsightsService(test_config, fake_http.factory)

        assert await service.generate_insights(sample_analysis) is None
        assert fake_http.calls == []

    @pytest.mark.asyncio
    async def test_returns_trimmed_content(self, ai_config, fake_http, sample_analysis):
        fake_http.default = FakeResponse(status=200, payload={
            "choices": [{"message": {"role": "assistant", "content": "  ## SEO\n- [ ] Add schema  "}}]
        })
        service = AiInsightsService(ai_config, fake_http.factory)

        result = await service.generate_insights(sample_analysis)

        assert result.recommendations == "## SEO\n- [ ] Add schema"
        method, url, kwargs = fake_http.calls[0]
        assert (method, url) == ("POST", "https://ai.example.test/chat")
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"choices": []},
        {"choices": [{"message": {"content": "   "}}]},
        {"unexpected": True},
    ])
    async def test_empty_content_returns_none(self, ai_config, fake_http, sample_analysis, payload):
        fake_http.default = FakeResponse(status=200, payload=payload)
        service = AiInsightsService(ai_config, fake_http.factory)

        assert await service.generate_insights(sample_analysis) is None

    @pytest.mark.asyncio
    async def test_provider_error_returns_none(self, ai_config, fake_http, sample_analysis):
        fake_http.default = FakeResponse(status=500)
        service = AiInsightsService(ai_config, fake_http.factory)

        assert await service.generate_insights(sample_analysis) is None
