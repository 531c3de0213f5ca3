"""
Concurrent health checks for links found on an audited page
"""
import asyncio
import logging
from typing import List, Optional

from http_client import SessionFactory, session_factory_for
from models import BrokenLink, ScanMode
from utils import get_host

logger = logging.getLogger(__name__)

# (max links, per-request timeout seconds, concurrent requests)
LINK_CHECK_LIMITS = {
    ScanMode.FAST: (10, 5, 2),
    ScanMode.DEEP: (30, 12, 5),
}


class LinkHealthChecker:
    """Checks a bounded sample of links with HEAD (GET fallback on 405)"""

    def __init__(self, session_factory: Optional[SessionFactory] = None):
        self.session_factory = session_factory or session_factory_for()

    async def find_broken_links(self, site_url: str, links: List[str],
                                mode: ScanMode = ScanMode.FAST) -> List[BrokenLink]:
        """
        Check links and return the ones that failed

        Args:
            site_url: Normalized URL of the audited page
            links: Crawlable links in document order
            mode: Scan depth; decides link cap, timeout and concurrency

        Returns:
            Broken links, internal first, then by URL
        """
        if not links:
            return []

        max_links, timeout_seconds, concurrency = LINK_CHECK_LIMITS[mode]
        candidates = self._select_candidates(links, max_links)
        if not candidates:
            return []

        site_host = get_host(site_url)
        gate = asyncio.Semaphore(concurrency)
        tasks = []

        async with self.session_factory(timeout_seconds) as session:
            try:
                for link in candidates:
                    # Hold a slot before dispatching so at most `concurrency` checks run
                    await gate.acquire()
                    tasks.append(asyncio.ensure_future(
                        self._check_and_release(session, link, self._is_internal(link, site_host), gate)
                    ))
                results = await asyncio.gather(*tasks)
            except asyncio.CancelledError:
                for task in tasks:
                    task.cancel()
                raise

        broken = [result for result in results if result is not None]
        broken.sort(key=lambda link: (not link.is_internal, link.url.lower()))

        logger.info(f"Checked {len(candidates)} links for {site_url}: {len(broken)} broken")
        return broken

    @staticmethod
    def _select_candidates(links: List[str], max_links: int) -> List[str]:
        """Case-insensitive distinct non-blank links, first spelling kept"""
        seen = set()
        selected = []
        for link in links:
            if link is None or not link.strip():
                continue
            key = link.lower()
            if key in seen:
                continue
            seen.add(key)
            selected.append(link)
            if len(selected) >= max_links:
                break
        return selected

    @staticmethod
    def _is_internal(link: str, site_host: str) -> bool:
        host = get_host(link)
        return bool(host) and host == site_host

    async def _check_and_release(self, session, link: str, is_internal: bool,
                                 gate: asyncio.Semaphore) -> Optional[BrokenLink]:
        try:
            return await self._check_link(session, link, is_internal)
        finally:
            gate.release()

    async def _check_link(self, session, link: str, is_internal: bool) -> Optional[BrokenLink]:
        try:
            async with session.head(link, allow_redirects=True) as response:
                status, reason = response.status, response.reason

            if status == 405:
                async with session.get(link, allow_redirects=True) as response:
                    status, reason = response.status, response.reason

            if 200 <= status < 300:
                return None

            return BrokenLink(url=link, is_internal=is_internal, status_code=status, reason=reason)

        except Exception as e:
            message = str(e) or type(e).__name__
            logger.debug(f"Link check failed for {link}: {message}")
            return BrokenLink(url=link, is_internal=is_internal, status_code=0, reason=message)
