"""
Configuration file for Site Audit
"""
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

# Pick up a local .env before reading the environment
load_dotenv()


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_int(name: str, default: int) -> int:
    value = _env(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass
class SiteAuditConfig:
    """Configuration settings for the site audit service"""

    # Performance provider (PageSpeed-style)
    performance_api_key: Optional[str] = field(default_factory=lambda: _env("PERFORMANCE_API_KEY"))
    performance_api_base_url: Optional[str] = field(default_factory=lambda: _env("PERFORMANCE_API_BASE_URL"))
    performance_strategy: str = field(default_factory=lambda: _env("PERFORMANCE_API_STRATEGY", "mobile"))

    # Off-page authority provider
    seo_api_key: Optional[str] = field(default_factory=lambda: _env("SEO_API_KEY"))
    seo_api_base_url: Optional[str] = field(default_factory=lambda: _env("SEO_API_BASE_URL"))

    # AI insight provider
    openai_api_key: Optional[str] = field(default_factory=lambda: _env("OPENAI_API_KEY"))
    openai_api_base_url: str = field(
        default_factory=lambda: _env("OPENAI_API_BASE_URL", "https://api.openai.com/v1/chat/completions")
    )
    openai_model: str = field(default_factory=lambda: _env("OPENAI_MODEL", "gpt-4o-mini"))

    # Concurrency
    max_concurrent_scans: int = field(default_factory=lambda: _env_int("MAX_CONCURRENT_SCANS", 4))
    scan_queue_max_pending: int = field(default_factory=lambda: _env_int("SCAN_QUEUE_MAX_PENDING", 0))

    # Timeouts (seconds)
    enricher_timeout: int = field(default_factory=lambda: _env_int("ENRICHER_TIMEOUT", 60))
    headless_timeout: int = 30

    # Storage
    history_path: str = field(
        default_factory=lambda: _env("HISTORY_PATH", os.path.join("App_Data", "scan-history.json"))
    )

    # HTTP identity
    user_agent: str = field(
        default_factory=lambda: _env(
            "USER_AGENT",
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 SiteAudit/1.0",
        )
    )

    # Logging
    log_level: str = field(default_factory=lambda: _env("LOG_LEVEL", "INFO").upper())
    log_dir: str = field(default_factory=lambda: _env("LOG_DIR", "logs"))
    log_format: str = "%(asctime)s - %(levelname)s - %(message)s"

    def __post_init__(self):
        if self.max_concurrent_scans < 1:
            self.max_concurrent_scans = 1
        if self.scan_queue_max_pending < 0:
            self.scan_queue_max_pending = 0

    @property
    def performance_enabled(self) -> bool:
        return bool(self.performance_api_key and self.performance_api_base_url)

    @property
    def offpage_enabled(self) -> bool:
        return bool(self.seo_api_key and self.seo_api_base_url)

    @property
    def ai_enabled(self) -> bool:
        return bool(self.openai_api_key and self.openai_api_base_url)


# Default configuration instance
config = SiteAuditConfig()
