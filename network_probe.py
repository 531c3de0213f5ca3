"""
Primary page fetch with timing and failure capture
"""
import time
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple

from http_client import SessionFactory, session_factory_for
from models import NetworkResult, ScanMode

logger = logging.getLogger(__name__)

FAST_TIMEOUT_SECONDS = 15
DEEP_TIMEOUT_SECONDS = 30


@dataclass(frozen=True)
class FetchedPage:
    """Network outcome plus the body and headers needed for extraction"""
    network: NetworkResult
    html: str = ""
    headers: Tuple[Tuple[str, str], ...] = ()


class NetworkProbe:
    """Performs the single GET an analysis is based on"""

    def __init__(self, session_factory: Optional[SessionFactory] = None):
        self.session_factory = session_factory or session_factory_for()

    @staticmethod
    def timeout_for(mode: ScanMode) -> int:
        return DEEP_TIMEOUT_SECONDS if mode == ScanMode.DEEP else FAST_TIMEOUT_SECONDS

    async def probe(self, url: str, mode: ScanMode = ScanMode.FAST) -> FetchedPage:
        """
        Fetch a normalized URL

        Transport failures are reported as status 0 with the error text;
        only cancellation propagates.
        """
        checked_at = datetime.now(timezone.utc)
        started = time.monotonic()

        try:
            async with self.session_factory(self.timeout_for(mode)) as session:
                async with session.get(url, allow_redirects=True) as response:
                    html = await response.text(errors='replace')
                    elapsed_ms = int((time.monotonic() - started) * 1000)
                    final_url = str(response.url)
                    redirect_count = 0 if final_url.lower() == url.lower() else 1

                    logger.info(f"GET {url} -> {response.status} in {elapsed_ms} ms")
                    network = NetworkResult(
                        url=url,
                        status_code=response.status,
                        response_time_ms=elapsed_ms,
                        checked_at=checked_at,
                        redirect_count=redirect_count,
                    )
                    return FetchedPage(network, html, tuple(response.headers.items()))

        except Exception as e:
            elapsed_ms = int((time.monotonic() - started) * 1000)
            message = str(e) or type(e).__name__
            logger.warning(f"Request to {url} failed after {elapsed_ms} ms: {message}")
            return FetchedPage(NetworkResult(
                url=url,
                status_code=0,
                response_time_ms=elapsed_ms,
                checked_at=checked_at,
                error_message=message,
            ))
