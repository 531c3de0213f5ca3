"""
Off-page authority metrics for an audited domain
"""
import logging
from typing import Any, Optional
from urllib.parse import quote

from config import SiteAuditConfig, config as default_config
from http_client import SessionFactory, session_factory_for
from models import OffPageSeoResult

logger = logging.getLogger(__name__)


class OffPageAnalyzer:
    """Reads domain authority and backlink counts from the SEO provider"""

    def __init__(self, settings: Optional[SiteAuditConfig] = None,
                 session_factory: Optional[SessionFactory] = None):
        self.config = settings or default_config
        self.session_factory = session_factory or session_factory_for(self.config)

    async def get_metrics(self, domain: str) -> Optional[OffPageSeoResult]:
        """Get off-page metrics for a host, or None when unconfigured or unavailable"""
        if not self.config.offpage_enabled:
            return None

        base_url = self.config.seo_api_base_url
        separator = '&' if '?' in base_url else '?'
        request_url = f"{base_url}{separator}domain={quote(domain, safe='')}"
        headers = {'Authorization': f"Bearer {self.config.seo_api_key}"}

        logger.info(f"Requesting off-page metrics for {domain}")
        try:
            async with self.session_factory(self.config.enricher_timeout) as session:
                async with session.get(request_url, headers=headers) as response:
                    if response.status < 200 or response.status >= 300:
                        logger.warning(f"Off-page SEO API returned {response.status} for {domain}")
                        return None
                    payload = await response.json(content_type=None)
        except Exception as e:
            logger.warning(f"Failed to retrieve off-page SEO metrics for {domain}: {e}")
            return None

        source = payload.get('data') if isinstance(payload, dict) and 'data' in payload else payload
        return OffPageSeoResult(
            domain_authority=self._get_float(source, 'domainAuthority'),
            backlinks=self._get_int(source, 'backlinks'),
            referring_domains=self._get_int(source, 'referringDomains'),
            spam_score=self._get_float(source, 'spamScore'),
        )

    @staticmethod
    def _get_float(source: Any, name: str) -> Optional[float]:
        if not isinstance(source, dict):
            return None
        value = source.get(name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return float(value)

    @classmethod
    def _get_int(cls, source: Any, name: str) -> Optional[int]:
        value = cls._get_float(source, name)
        return round(value) if value is not None else None
