"""
On-page SEO and accessibility extraction for Site Audit
"""
import json
import logging
from dataclasses import replace
from typing import Any, Iterable, List, Optional, Tuple
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup

from models import DomCounts, SeoResult
from utils import get_host, is_absolute_http_url, safe_extract_attribute, safe_extract_text, should_skip_link

logger = logging.getLogger(__name__)

LANDMARK_TAGS = {'header', 'nav', 'main', 'aside', 'footer'}
LANDMARK_ROLES = {'main', 'banner', 'navigation', 'contentinfo', 'complementary'}
IGNORED_INPUT_TYPES = {'hidden', 'submit', 'button', 'reset', 'image'}
MAX_STRUCTURED_DATA_TYPES = 10


class SeoExtractor:
    """Builds an SeoResult and the crawlable link list from a page's HTML"""

    def build_seo_result(self, site_url: str, html: Optional[str], headers=None,
                         dom_counts: Optional[DomCounts] = None) -> Tuple[SeoResult, List[str]]:
        """
        Extract SEO signals from static HTML

        Args:
            site_url: Normalized URL of the page
            html: Raw HTML body (may be empty)
            headers: Response headers, as a multi-map or (name, value) pairs
            dom_counts: Counts from a headless render; override the static counts

        Returns:
            (SeoResult, crawlable absolute links in document order)
        """
        uses_https = urlsplit(site_url).scheme.lower() == 'https'
        dom_from_headless = dom_counts is not None

        if html is None or not html.strip():
            return replace(
                SeoResult.empty(),
                uses_https=uses_https,
                total_images=dom_counts.total_images if dom_counts else 0,
                images_without_alt=dom_counts.images_without_alt if dom_counts else 0,
                internal_link_count=dom_counts.internal_link_count if dom_counts else 0,
                external_link_count=dom_counts.external_link_count if dom_counts else 0,
                dom_from_headless_browser=dom_from_headless,
            ), []

        soup = BeautifulSoup(html, 'html.parser')

        title = safe_extract_text(soup.find('title'))
        meta_description = safe_extract_attribute(self._find_meta(soup, 'description'), 'content').strip()
        canonical_url = self._extract_canonical_url(soup, site_url)

        viewport = self._find_meta(soup, 'viewport')

        total_images, images_without_alt = self._count_images(soup)
        internal_links, external_links, crawlable_links = self._extract_links(soup, site_url)

        structured_data_scripts = [
            script for script in soup.find_all('script')
            if safe_extract_attribute(script, 'type').lower() == 'application/ld+json'
        ]

        if dom_counts is not None:
            total_images = dom_counts.total_images
            images_without_alt = dom_counts.images_without_alt
            internal_links = dom_counts.internal_link_count
            external_links = dom_counts.external_link_count

        seo = SeoResult(
            title=title,
            title_length=len(title),
            meta_description=meta_description,
            meta_description_length=len(meta_description),
            canonical_url=canonical_url,
            is_indexable=not self._has_noindex_directive(soup, headers),
            h1_count=len(soup.find_all('h1')),
            h2_count=len(soup.find_all('h2')),
            has_viewport_meta=viewport is not None,
            viewport_content=safe_extract_attribute(viewport, 'content').strip(),
            total_images=total_images,
            images_without_alt=images_without_alt,
            internal_link_count=internal_links,
            external_link_count=external_links,
            uses_https=uses_https,
            dom_from_headless_browser=dom_from_headless,
            has_language_attribute=self._has_language_attribute(soup),
            has_skip_link=self._has_skip_link(soup),
            landmark_count=self._count_landmarks(soup),
            form_controls_without_labels=self._count_form_controls_without_labels(soup),
            structured_data_count=len(structured_data_scripts),
            structured_data_types=tuple(self._extract_structured_data_types(structured_data_scripts)),
            has_open_graph_tags=self._has_meta_prefix(soup, 'property', 'og:'),
            has_twitter_card=self._has_meta_prefix(soup, 'name', 'twitter:'),
        )

        logger.debug(
            f"Extracted SEO for {site_url}: {seo.h1_count} H1, {seo.total_images} images, "
            f"{len(crawlable_links)} crawlable links"
        )
        return seo, crawlable_links

    def _find_meta(self, soup, name: str):
        """First <meta> whose name matches case-insensitively"""
        for meta in soup.find_all('meta'):
            if safe_extract_attribute(meta, 'name').lower() == name:
                return meta
        return None

    def _extract_canonical_url(self, soup, site_url: str) -> str:
        """Extract canonical URL, resolved against the page URL when relative"""
        canonical = None
        for link in soup.find_all('link'):
            if safe_extract_attribute(link, 'rel').lower() == 'canonical':
                canonical = link
                break

        href = safe_extract_attribute(canonical, 'href').strip()
        if not href:
            return ""
        if is_absolute_http_url(href):
            return href
        try:
            return urljoin(site_url, href)
        except ValueError:
            return href

    def _has_noindex_directive(self, soup, headers) -> bool:
        for meta in soup.find_all('meta'):
            if safe_extract_attribute(meta, 'name').lower() != 'robots':
                continue
            if self._contains_noindex(safe_extract_attribute(meta, 'content')):
                return True

        return any(self._contains_noindex(value) for value in _header_values(headers, 'X-Robots-Tag'))

    @staticmethod
    def _contains_noindex(value: Optional[str]) -> bool:
        if not value or not value.strip():
            return False
        return any(directive.strip().lower() == 'noindex' for directive in value.split(','))

    def _count_images(self, soup) -> Tuple[int, int]:
        """Count images and images without alt text"""
        images = soup.find_all('img')
        without_alt = sum(1 for img in images if not safe_extract_attribute(img, 'alt').strip())
        return len(images), without_alt

    def _extract_links(self, soup, site_url: str) -> Tuple[int, int, List[str]]:
        """Classify anchors as internal/external and collect crawlable targets"""
        internal_count = 0
        external_count = 0
        crawlable = []
        site_host = get_host(site_url)

        for link in soup.find_all('a', href=True):
            href = safe_extract_attribute(link, 'href').strip()
            if should_skip_link(href):
                continue

            if is_absolute_http_url(href):
                crawlable.append(href)
                if get_host(href) == site_host:
                    internal_count += 1
                else:
                    external_count += 1
                continue

            try:
                resolved = urljoin(site_url, href)
            except ValueError:
                resolved = None

            if resolved and is_absolute_http_url(resolved):
                crawlable.append(resolved)
            internal_count += 1

        return internal_count, external_count, crawlable

    def _has_language_attribute(self, soup) -> bool:
        return bool(safe_extract_attribute(soup.find('html'), 'lang').strip())

    def _has_skip_link(self, soup) -> bool:
        for link in soup.find_all('a', href=True):
            href = safe_extract_attribute(link, 'href')
            text = safe_extract_text(link).lower()

            if href.startswith('#') and any(marker in href.lower() for marker in ('main', 'content', 'skip')):
                return True

            if text and ('skip to content' in text or 'skip navigation' in text or text.startswith('skip')):
                return True

        return False

    def _count_landmarks(self, soup) -> int:
        """Landmark elements and ARIA landmark roles, each element counted once"""
        count = 0
        for element in soup.find_all(True):
            if element.name in LANDMARK_TAGS or element.get('role') in LANDMARK_ROLES:
                count += 1
        return count

    def _count_form_controls_without_labels(self, soup) -> int:
        count = 0
        for control in soup.find_all(['input', 'textarea', 'select']):
            if control.name == 'input':
                input_type = safe_extract_attribute(control, 'type', 'text').lower()
                if input_type in IGNORED_INPUT_TYPES:
                    continue
            if not self._is_labeled(control, soup):
                count += 1
        return count

    def _is_labeled(self, control, soup) -> bool:
        control_id = safe_extract_attribute(control, 'id')
        if control_id.strip() and soup.find('label', attrs={'for': control_id}) is not None:
            return True

        if control.find_parent('label') is not None:
            return True

        return bool(
            safe_extract_attribute(control, 'aria-label').strip()
            or safe_extract_attribute(control, 'aria-labelledby').strip()
        )

    def _extract_structured_data_types(self, scripts) -> List[str]:
        """Extract schema.org @type values from JSON-LD blocks"""
        types = []
        for script in scripts:
            payload = script.get_text().strip()
            if not payload:
                continue
            try:
                data = json.loads(payload)
            except ValueError as e:
                logger.debug(f"Skipping malformed JSON-LD block: {e}")
                continue
            _collect_schema_types(data, types)

        distinct = []
        seen = set()
        for value in types:
            value = value.strip()
            if not value or value.lower() in seen:
                continue
            seen.add(value.lower())
            distinct.append(value)

        return distinct[:MAX_STRUCTURED_DATA_TYPES]

    def _has_meta_prefix(self, soup, attribute: str, prefix: str) -> bool:
        return any(
            safe_extract_attribute(meta, attribute).lower().startswith(prefix)
            for meta in soup.find_all('meta')
        )


def _collect_schema_types(element: Any, output: List[str]):
    if isinstance(element, dict):
        schema_type = element.get('@type')
        if isinstance(schema_type, str):
            if schema_type.strip():
                output.append(schema_type)
        elif isinstance(schema_type, list):
            output.extend(t for t in schema_type if isinstance(t, str) and t.strip())

        for value in element.values():
            _collect_schema_types(value, output)
    elif isinstance(element, list):
        for child in element:
            _collect_schema_types(child, output)


def _header_values(headers, name: str) -> Iterable[str]:
    """All values of a header, matched case-insensitively"""
    if not headers:
        return []
    if hasattr(headers, 'getall'):
        return headers.getall(name, [])

    items = headers.items() if hasattr(headers, 'items') else headers
    values = []
    for key, value in items:
        if key.lower() != name.lower():
            continue
        if isinstance(value, (list, tuple)):
            values.extend(value)
        else:
            values.append(value)
    return values
