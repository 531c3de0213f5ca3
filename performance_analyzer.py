"""
Lab performance metrics from a PageSpeed-style provider
"""
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from config import SiteAuditConfig, config as default_config
from http_client import SessionFactory, session_factory_for
from models import PerformanceChannelResult, PerformanceResult, PerformanceSuggestion

logger = logging.getLogger(__name__)

METRIC_AUDITS = {
    'largest_contentful_paint_ms': 'largest-contentful-paint',
    'first_contentful_paint_ms': 'first-contentful-paint',
    'cumulative_layout_shift': 'cumulative-layout-shift',
    'total_blocking_time_ms': 'total-blocking-time',
}


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _child(node: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


class PerformanceAnalyzer:
    """Fetches lab metrics and improvement opportunities for a URL"""

    def __init__(self, settings: Optional[SiteAuditConfig] = None,
                 session_factory: Optional[SessionFactory] = None):
        self.config = settings or default_config
        self.session_factory = session_factory or session_factory_for(self.config)

    def build_request_url(self, url: str) -> str:
        base_url = self.config.performance_api_base_url
        separator = '&' if '?' in base_url else '?'
        return (f"{base_url}{separator}url={quote(url, safe='')}"
                f"&strategy={self.config.performance_strategy}"
                f"&key={quote(self.config.performance_api_key, safe='')}")

    async def analyze(self, url: str) -> Optional[PerformanceResult]:
        """Return performance metrics, or None when unconfigured or unavailable"""
        if not self.config.performance_enabled:
            return None

        strategy = self.config.performance_strategy
        try:
            async with self.session_factory(self.config.enricher_timeout) as session:
                async with session.get(self.build_request_url(url)) as response:
                    if response.status < 200 or response.status >= 300:
                        logger.warning(f"Performance API returned {response.status} for {url} ({strategy})")
                        return None
                    payload = await response.json(content_type=None)
        except Exception as e:
            logger.warning(f"Failed to retrieve performance metrics for {url} ({strategy}): {e}")
            return None

        return self.parse_payload(payload, strategy)

    def parse_payload(self, payload: Any, strategy: str) -> Optional[PerformanceResult]:
        lighthouse = _child(payload, 'lighthouseResult')
        if not isinstance(lighthouse, dict):
            return None

        score = _number(_child(lighthouse, 'categories', 'performance', 'score'))
        metrics = {
            field_name: _number(_child(lighthouse, 'audits', audit_id, 'numericValue'))
            for field_name, audit_id in METRIC_AUDITS.items()
        }
        channel = PerformanceChannelResult(
            strategy=strategy,
            score=round(score * 100) if score is not None else None,
            **metrics
        )

        suggestions = tuple(self._extract_suggestions(lighthouse))
        if strategy.lower() == 'desktop':
            return PerformanceResult(desktop=channel, suggestions=suggestions)
        return PerformanceResult(mobile=channel, suggestions=suggestions)

    def _extract_suggestions(self, lighthouse: Dict[str, Any]) -> List[PerformanceSuggestion]:
        audits = lighthouse.get('audits')
        if not isinstance(audits, dict):
            return []

        suggestions = []
        for audit_id, audit in audits.items():
            details = _child(audit, 'details')
            audit_type = _child(details, 'type')
            if not isinstance(audit_type, str) or audit_type.lower() != 'opportunity':
                continue

            title = audit.get('title')
            description = audit.get('description')
            score = _number(audit.get('score'))
            suggestions.append(PerformanceSuggestion(
                title=title if isinstance(title, str) else audit_id,
                description=description if isinstance(description, str) else None,
                score=float(round(score * 100)) if score is not None else None,
                estimated_savings_ms=_number(details.get('overallSavingsMs')),
            ))

        return suggestions
