"""
Utility functions for URL handling, HTML access and timing
"""
import re
import time
import logging
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

logger = logging.getLogger(__name__)

_SKIPPED_LINK_PREFIXES = ("javascript:", "mailto:", "tel:")
_EXPLICIT_SCHEME = re.compile(r'^([a-zA-Z][a-zA-Z0-9+.-]*)://')


class InvalidUrlError(ValueError):
    """Raised when a URL cannot be normalized into an absolute http(s) URL"""


def normalize_url(raw_url: Optional[str]) -> str:
    """
    Normalize a raw string into an absolute http(s) URL

    Adds https:// when no scheme is given, lower-cases scheme and host and
    uses "/" for an empty path, so normalizing twice gives the same string.

    Raises:
        InvalidUrlError: if the input is blank, unparseable or not http(s)
    """
    if raw_url is None or not raw_url.strip():
        raise InvalidUrlError("A URL is required.")

    candidate = raw_url.strip()
    explicit_scheme = _EXPLICIT_SCHEME.match(candidate)
    if explicit_scheme is None:
        candidate = f"https://{candidate}"
    elif explicit_scheme.group(1).lower() not in ("http", "https"):
        raise InvalidUrlError("Only http and https URLs are supported.")

    try:
        parts = urlsplit(candidate)
        hostname = parts.hostname
        port = parts.port
    except ValueError as e:
        raise InvalidUrlError(f"A valid URL is required: {e}") from e

    if parts.scheme.lower() not in ("http", "https"):
        raise InvalidUrlError("Only http and https URLs are supported.")
    if not hostname or any(ch.isspace() for ch in hostname):
        raise InvalidUrlError("A valid URL is required.")
    # Empty port ("host:") parses to None on some interpreters
    if parts.netloc.endswith(":"):
        raise InvalidUrlError("A valid URL is required.")

    host = f"[{hostname}]" if ":" in hostname else hostname
    netloc = host.lower()
    if port is not None:
        netloc = f"{netloc}:{port}"
    if "@" in parts.netloc:
        netloc = f"{parts.netloc.rsplit('@', 1)[0]}@{netloc}"

    return urlunsplit((parts.scheme.lower(), netloc, parts.path or "/", parts.query, parts.fragment))


def try_normalize_url(raw_url: Optional[str]) -> Optional[str]:
    """Normalize a URL, returning None instead of raising"""
    try:
        return normalize_url(raw_url)
    except InvalidUrlError:
        return None


def get_host(url: str) -> str:
    """Extract the lower-cased host of an absolute URL, or an empty string"""
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def is_absolute_http_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
        return parts.scheme.lower() in ("http", "https") and bool(parts.hostname)
    except ValueError:
        return False


def should_skip_link(href: Optional[str]) -> bool:
    """Anchors, mailto:, tel: and javascript: targets are never crawled"""
    if href is None or not href.strip():
        return True
    href = href.strip()
    if href.startswith("#"):
        return True
    return href.lower().startswith(_SKIPPED_LINK_PREFIXES)


def safe_extract_text(element, default: str = "") -> str:
    """Safely extract trimmed text from BeautifulSoup element"""
    try:
        if element:
            return element.get_text().strip()
        return default
    except Exception:
        return default


def safe_extract_attribute(element, attribute: str, default: str = "") -> str:
    """Safely extract a string attribute from BeautifulSoup element"""
    if element is None:
        return default
    value = element.get(attribute)
    if value is None:
        return default
    # Multi-valued attributes (rel, class) come back as lists
    if isinstance(value, (list, tuple)):
        return " ".join(value)
    return str(value)


class PerformanceMonitor:
    """Monitor and log timings of named operations"""

    def __init__(self):
        self.metrics = {}

    def start_timer(self, operation: str):
        """Start timing an operation"""
        self.metrics[operation] = {'start': time.monotonic()}

    def end_timer(self, operation: str) -> float:
        """End timing and log results"""
        entry = self.metrics.get(operation)
        if not entry:
            return 0
        duration = time.monotonic() - entry['start']
        entry['duration'] = duration
        logger.debug(f"Operation '{operation}' completed in {duration:.2f} seconds")
        return duration

    def get_metrics(self) -> dict:
        """Get all recorded metrics"""
        return {name: dict(values) for name, values in self.metrics.items()}
