"""
Headless browser utilities for Site Audit
"""
import logging
from typing import Optional

from playwright.async_api import async_playwright

from config import SiteAuditConfig, config as default_config
from models import DomCounts
from utils import get_host, is_absolute_http_url, should_skip_link

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    '--no-sandbox',
    '--disable-extensions',
    '--disable-dev-shm-usage',
    '--disable-background-networking',
    '--mute-audio',
    '--no-first-run',
]


class HeadlessDomAnalyzer:
    """Renders a page in headless Chromium and counts images and links in the live DOM"""

    def __init__(self, settings: Optional[SiteAuditConfig] = None):
        self.config = settings or default_config

    async def analyze(self, url: str, target_host: str) -> DomCounts:
        """
        Render a page and count its images and links

        Args:
            url: Page to load
            target_host: Host used to tell internal from external links

        Raises:
            playwright errors on launch or navigation failure
        """
        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(headless=True, args=LAUNCH_ARGS)
            try:
                context = await browser.new_context(
                    user_agent=self.config.user_agent,
                    viewport={'width': 1920, 'height': 1080}
                )
                page = await context.new_page()
                await page.goto(url, wait_until='networkidle', timeout=self.config.headless_timeout * 1000)

                images = await page.query_selector_all('img')
                images_without_alt = 0
                for image in images:
                    alt = await image.get_attribute('alt')
                    if alt is None or not alt.strip():
                        images_without_alt += 1

                internal_links = 0
                external_links = 0
                for link in await page.query_selector_all('a[href]'):
                    href = ((await link.get_attribute('href')) or '').strip()
                    if should_skip_link(href):
                        continue
                    if is_absolute_http_url(href):
                        if get_host(href) == target_host.lower():
                            internal_links += 1
                        else:
                            external_links += 1
                    else:
                        internal_links += 1

                counts = DomCounts(
                    total_images=len(images),
                    images_without_alt=images_without_alt,
                    internal_link_count=internal_links,
                    external_link_count=external_links,
                )
                logger.info(f"Headless DOM for {url}: {counts.total_images} images, "
                            f"{internal_links} internal / {external_links} external links")
                return counts
            finally:
                await browser.close()
