"""
Data models for Site Audit
"""
from dataclasses import dataclass, fields, is_dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


def _camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part.capitalize() for part in rest)


def to_json(value: Any) -> Any:
    """Convert models into JSON-ready structures with camelCase keys"""
    if is_dataclass(value) and not isinstance(value, type):
        return {_camel(f.name): to_json(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [to_json(item) for item in value]
    if isinstance(value, dict):
        return {key: to_json(item) for key, item in value.items()}
    return value


class ScanMode(Enum):
    FAST = "Fast"
    DEEP = "Deep"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ScanMode":
        """Parse a mode name case-insensitively; missing means Fast"""
        if value is None:
            return cls.FAST
        if isinstance(value, cls):
            return value
        for mode in cls:
            if mode.value.lower() == str(value).strip().lower():
                return mode
        raise ValueError(f"Unknown scan mode: {value}")


class ScanJobState(Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    FAILED = "Failed"


@dataclass(frozen=True)
class AnalysisRequest:
    """Input for a single analysis"""
    url: str
    mode: ScanMode = ScanMode.FAST


@dataclass(frozen=True)
class NetworkResult:
    """Outcome of the primary GET; status_code 0 means no response"""
    url: str
    status_code: int
    response_time_ms: int
    checked_at: datetime
    error_message: Optional[str] = None
    redirect_count: int = 0


@dataclass(frozen=True)
class DomCounts:
    """Image and link counts taken from a headless-rendered DOM"""
    total_images: int
    images_without_alt: int
    internal_link_count: int
    external_link_count: int


@dataclass(frozen=True)
class BrokenLink:
    """A link that failed its health check; status_code 0 means connection failure"""
    url: str
    is_internal: bool
    status_code: int
    reason: Optional[str] = None


@dataclass(frozen=True)
class SeoResult:
    """On-page SEO and accessibility signals"""
    title: str = ""
    title_length: int = 0
    meta_description: str = ""
    meta_description_length: int = 0
    canonical_url: str = ""
    is_indexable: bool = True
    h1_count: int = 0
    h2_count: int = 0
    has_viewport_meta: bool = False
    viewport_content: str = ""
    total_images: int = 0
    images_without_alt: int = 0
    internal_link_count: int = 0
    external_link_count: int = 0
    uses_https: bool = False
    dom_from_headless_browser: bool = False
    has_language_attribute: bool = False
    has_skip_link: bool = False
    landmark_count: int = 0
    form_controls_without_labels: int = 0
    structured_data_count: int = 0
    structured_data_types: Tuple[str, ...] = ()
    has_open_graph_tags: bool = False
    has_twitter_card: bool = False
    broken_link_count: int = 0
    broken_links: Tuple[BrokenLink, ...] = ()

    @classmethod
    def empty(cls) -> "SeoResult":
        """Result used when no HTML could be retrieved"""
        return cls()

    def with_broken_links(self, links: List[BrokenLink]) -> "SeoResult":
        links = tuple(links)
        return replace(self, broken_link_count=len(links), broken_links=links)


@dataclass(frozen=True)
class PerformanceSuggestion:
    """An improvement opportunity reported by the performance provider"""
    title: str
    description: Optional[str] = None
    score: Optional[float] = None
    estimated_savings_ms: Optional[float] = None


@dataclass(frozen=True)
class PerformanceChannelResult:
    """Lab metrics for one strategy (mobile or desktop)"""
    strategy: str
    score: Optional[int] = None
    largest_contentful_paint_ms: Optional[float] = None
    first_contentful_paint_ms: Optional[float] = None
    cumulative_layout_shift: Optional[float] = None
    total_blocking_time_ms: Optional[float] = None


@dataclass(frozen=True)
class PerformanceResult:
    """Performance provider output"""
    mobile: Optional[PerformanceChannelResult] = None
    desktop: Optional[PerformanceChannelResult] = None
    suggestions: Tuple[PerformanceSuggestion, ...] = ()

    @property
    def primary(self) -> Optional[PerformanceChannelResult]:
        return self.mobile or self.desktop

    @property
    def overall_score(self) -> Optional[int]:
        return self.primary.score if self.primary else None


@dataclass(frozen=True)
class OffPageSeoResult:
    """Off-page authority metrics"""
    domain_authority: Optional[float] = None
    backlinks: Optional[int] = None
    referring_domains: Optional[int] = None
    spam_score: Optional[float] = None


@dataclass(frozen=True)
class AiInsightsResult:
    """Markdown-like insight text from the AI provider"""
    recommendations: str


@dataclass(frozen=True)
class ScoreResult:
    overall: int
    seo: int
    speed: int


@dataclass(frozen=True)
class AnalysisResult:
    """Aggregate result of one analysis"""
    url: str
    checked_at: datetime
    network: NetworkResult
    seo: SeoResult
    score: ScoreResult
    performance: Optional[PerformanceResult] = None
    off_page_seo: Optional[OffPageSeoResult] = None
    ai_insights: Optional[AiInsightsResult] = None

    def with_ai_insights(self, insights: AiInsightsResult) -> "AnalysisResult":
        return replace(self, ai_insights=insights)

    def to_dict(self) -> Dict[str, Any]:
        return to_json(self)


@dataclass(frozen=True)
class ScanRecord:
    """History entry persisted for each saved analysis"""
    url: str
    timestamp: datetime
    status_code: int
    response_time_ms: int
    performance_score: Optional[int]
    is_indexable: bool
    uses_https: bool
    overall_score: int
    seo_score: int
    speed_score: int

    @classmethod
    def from_analysis(cls, result: AnalysisResult) -> "ScanRecord":
        return cls(
            url=result.url,
            timestamp=result.network.checked_at,
            status_code=result.network.status_code,
            response_time_ms=result.network.response_time_ms,
            performance_score=result.performance.overall_score if result.performance else None,
            is_indexable=result.seo.is_indexable,
            uses_https=result.seo.uses_https,
            overall_score=result.score.overall,
            seo_score=result.score.seo,
            speed_score=result.score.speed,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScanRecord":
        return cls(
            url=data["url"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            status_code=int(data.get("statusCode", 0)),
            response_time_ms=int(data.get("responseTimeMs", 0)),
            performance_score=data.get("performanceScore"),
            is_indexable=bool(data.get("isIndexable", False)),
            uses_https=bool(data.get("usesHttps", False)),
            overall_score=int(data.get("overallScore", 0)),
            seo_score=int(data.get("seoScore", 0)),
            speed_score=int(data.get("speedScore", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return to_json(self)


@dataclass(frozen=True)
class ScanJob:
    """A queued analysis request"""
    id: str
    request: AnalysisRequest
    save_history: bool = True


@dataclass(frozen=True)
class ScanJobStatus:
    """Point-in-time status of a queued scan"""
    id: str
    state: ScanJobState
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None

    @classmethod
    def pending(cls, job_id: str) -> "ScanJobStatus":
        return cls(job_id, ScanJobState.PENDING)

    @classmethod
    def processing(cls, job_id: str) -> "ScanJobStatus":
        return cls(job_id, ScanJobState.PROCESSING)

    @classmethod
    def completed(cls, job_id: str, result: AnalysisResult) -> "ScanJobStatus":
        return cls(job_id, ScanJobState.COMPLETED, result=result)

    @classmethod
    def failed(cls, job_id: str, error: str) -> "ScanJobStatus":
        return cls(job_id, ScanJobState.FAILED, error=error)

    def to_dict(self) -> Dict[str, Any]:
        return to_json(self)


@dataclass(frozen=True)
class Recommendation:
    title: str
    description: str
    category: str


@dataclass(frozen=True)
class ChecklistSection:
    title: str
    items: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ReportSummary:
    url: str
    checked_at: datetime
    status_code: int
    response_time_ms: int
    score: ScoreResult
    is_indexable: bool
    uses_https: bool
    error_message: Optional[str] = None


@dataclass(frozen=True)
class AnalysisReport:
    """Report derived from an analysis result"""
    summary: ReportSummary
    recommendations: Tuple[Recommendation, ...] = ()
    checklist: Tuple[ChecklistSection, ...] = ()
    analysis: Optional[AnalysisResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return to_json(self)
