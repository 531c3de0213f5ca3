"""
Shared aiohttp session construction
"""
from typing import Callable, Optional

import aiohttp

from config import SiteAuditConfig, config as default_config

# A factory takes a total-timeout in seconds and returns a ClientSession
SessionFactory = Callable[[float], aiohttp.ClientSession]


def create_session(timeout_seconds: float, settings: Optional[SiteAuditConfig] = None,
                   limit: int = 10) -> aiohttp.ClientSession:
    """Build a ClientSession with the service's identity headers"""
    settings = settings or default_config
    connector = aiohttp.TCPConnector(
        limit=limit,
        limit_per_host=5,
        ttl_dns_cache=300,
        use_dns_cache=True
    )

    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout_seconds),
        headers={
            'User-Agent': settings.user_agent,
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
            'Accept-Language': 'en-US,en;q=0.5',
        }
    )


def session_factory_for(settings: Optional[SiteAuditConfig] = None) -> SessionFactory:
    """Session factory bound to a configuration"""
    return lambda timeout_seconds: create_session(timeout_seconds, settings)
