"""
Site Audit orchestrator - runs every analysis step for one URL
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from ai_insights import AiInsightsService
from browser_utils import HeadlessDomAnalyzer
from config import SiteAuditConfig, config as default_config
from history_store import HistoryStore
from link_checker import LinkHealthChecker
from models import (
    AnalysisRequest, AnalysisResult, NetworkResult, ScanMode, ScanRecord, ScoreResult, SeoResult
)
from monitoring import MetricsCollector
from network_probe import NetworkProbe
from offpage_analyzer import OffPageAnalyzer
from performance_analyzer import PerformanceAnalyzer
from scoring import calculate_scores
from seo_extractor import SeoExtractor
from throttler import AnalysisThrottler
from utils import PerformanceMonitor, get_host, try_normalize_url

logger = logging.getLogger(__name__)

INVALID_URL_MESSAGE = "A valid URL is required."


class SiteAuditor:
    """Coordinates fetch, extraction, enrichment, scoring and history for an analysis"""

    def __init__(self, throttler: AnalysisThrottler, history_store: HistoryStore,
                 settings: Optional[SiteAuditConfig] = None,
                 network_probe: Optional[NetworkProbe] = None,
                 dom_analyzer: Optional[HeadlessDomAnalyzer] = None,
                 seo_extractor: Optional[SeoExtractor] = None,
                 link_checker: Optional[LinkHealthChecker] = None,
                 performance_analyzer: Optional[PerformanceAnalyzer] = None,
                 offpage_analyzer: Optional[OffPageAnalyzer] = None,
                 ai_insights: Optional[AiInsightsService] = None,
                 metrics_collector: Optional[MetricsCollector] = None):
        self.config = settings or default_config
        self.throttler = throttler
        self.history_store = history_store
        self.network_probe = network_probe or NetworkProbe()
        self.dom_analyzer = dom_analyzer or HeadlessDomAnalyzer(self.config)
        self.seo_extractor = seo_extractor or SeoExtractor()
        self.link_checker = link_checker or LinkHealthChecker()
        self.performance_analyzer = performance_analyzer or PerformanceAnalyzer(self.config)
        self.offpage_analyzer = offpage_analyzer or OffPageAnalyzer(self.config)
        self.ai_insights = ai_insights or AiInsightsService(self.config)
        self.metrics_collector = metrics_collector

    async def analyze(self, request: AnalysisRequest, save_history: bool = True) -> AnalysisResult:
        """
        Run a full analysis under one throttle slot

        Optional steps (headless render, link checks, enrichers, AI insights)
        are best-effort and never fail the analysis. A failing history write
        does propagate.

        Args:
            request: URL and scan mode
            save_history: Persist a ScanRecord before AI enrichment

        Returns:
            AnalysisResult; an invalid URL yields a zero-score result without any request
        """
        async with self.throttler.acquire():
            return await self._analyze(request, save_history)

    async def _analyze(self, request: AnalysisRequest, save_history: bool) -> AnalysisResult:
        original_url = (request.url or "").strip()
        mode = request.mode

        normalized_url = try_normalize_url(original_url)
        if normalized_url is None:
            logger.warning(f"Rejected invalid URL: {original_url!r}")
            return self._invalid_result(original_url)

        logger.info(f"Starting {mode.value} analysis for {normalized_url}")
        monitor = PerformanceMonitor()
        site_host = get_host(normalized_url)

        monitor.start_timer("fetch")
        page = await self.network_probe.probe(normalized_url, mode)
        network = page.network
        monitor.end_timer("fetch")

        dom_counts = None
        if mode == ScanMode.DEEP:
            monitor.start_timer("headless_render")
            try:
                dom_counts = await self.dom_analyzer.analyze(normalized_url, site_host)
            except Exception as e:
                logger.warning(f"Headless render failed for {normalized_url}, using static HTML: {e}")
            monitor.end_timer("headless_render")

        seo, crawlable_links = self.seo_extractor.build_seo_result(
            normalized_url, page.html, page.headers, dom_counts
        )

        monitor.start_timer("link_check")
        try:
            broken_links = await self.link_checker.find_broken_links(normalized_url, crawlable_links, mode)
            if broken_links:
                seo = seo.with_broken_links(broken_links)
        except Exception as e:
            logger.warning(f"Link health check failed for {normalized_url}: {e}")
        monitor.end_timer("link_check")

        performance = None
        if mode != ScanMode.FAST:
            monitor.start_timer("performance")
            try:
                performance = await self.performance_analyzer.analyze(normalized_url)
            except Exception as e:
                logger.warning(f"Performance analysis failed for {normalized_url}: {e}")
            monitor.end_timer("performance")

        off_page = None
        if mode == ScanMode.DEEP:
            monitor.start_timer("off_page")
            try:
                off_page = await self.offpage_analyzer.get_metrics(site_host)
            except Exception as e:
                logger.warning(f"Off-page analysis failed for {site_host}: {e}")
            monitor.end_timer("off_page")

        score = calculate_scores(seo, performance, network)

        result = AnalysisResult(
            url=normalized_url,
            checked_at=network.checked_at,
            network=network,
            seo=seo,
            score=score,
            performance=performance,
            off_page_seo=off_page,
        )

        if save_history:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self.history_store.add_record, ScanRecord.from_analysis(result))

        monitor.start_timer("ai_insights")
        try:
            insights = await self.ai_insights.generate_insights(result)
            if insights is not None:
                result = result.with_ai_insights(insights)
        except Exception as e:
            logger.warning(f"AI insights failed for {normalized_url}: {e}")
        monitor.end_timer("ai_insights")

        if self.metrics_collector is not None:
            self.metrics_collector.record_scan(network.response_time_ms, reachable=network.status_code != 0)

        timings = ", ".join(
            f"{name}={values['duration']:.2f}s" for name, values in monitor.get_metrics().items()
            if 'duration' in values
        )
        logger.info(
            f"Completed analysis for {normalized_url}: overall={score.overall} seo={score.seo} "
            f"speed={score.speed} ({timings})"
        )
        return result

    @staticmethod
    def _invalid_result(original_url: str) -> AnalysisResult:
        timestamp = datetime.now(timezone.utc)
        network = NetworkResult(
            url=original_url,
            status_code=0,
            response_time_ms=0,
            checked_at=timestamp,
            error_message=INVALID_URL_MESSAGE,
        )
        return AnalysisResult(
            url=original_url,
            checked_at=timestamp,
            network=network,
            seo=SeoResult.empty(),
            score=ScoreResult(overall=0, seo=0, speed=0),
        )
