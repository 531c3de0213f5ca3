"""
Weighted SEO, speed and overall scores
"""
from typing import Optional

from models import NetworkResult, PerformanceResult, ScoreResult, SeoResult

# Speed thresholds: (good, poor); at or below good scores 100, at or above poor scores 0
LCP_RANGE = (2500, 6000)
FCP_RANGE = (1800, 4000)
TBT_RANGE = (200, 900)
CLS_RANGE = (0.1, 0.25)
RESPONSE_TIME_RANGE = (800, 4000)

TITLE_LENGTH_RANGE = (35, 65)
DESCRIPTION_LENGTH_RANGE = (80, 155)


def clamp_score(value: float) -> float:
    return max(0.0, min(100.0, value))


def score_from_range(value: float, good: float, poor: float) -> float:
    """Linear score between a good and a poor threshold"""
    if value <= good:
        return 100.0
    if value >= poor:
        return 0.0
    ratio = (value - good) / (poor - good)
    return clamp_score(100 - ratio * 100)


def score_text_length(length: int, ideal_min: int, ideal_max: int) -> float:
    """100 inside the ideal range, minus 2 per character outside it (max 70)"""
    if length <= 0:
        return 0.0
    if ideal_min <= length <= ideal_max:
        return 100.0
    diff = ideal_min - length if length < ideal_min else length - ideal_max
    return clamp_score(100 - min(70, diff * 2))


class _WeightedAverage:
    def __init__(self):
        self.weighted = 0.0
        self.total_weight = 0.0

    def add(self, weight: float, value: Optional[float]):
        if value is None:
            return
        self.weighted += weight * clamp_score(value)
        self.total_weight += weight

    def result(self) -> Optional[int]:
        if self.total_weight <= 0:
            return None
        return round(self.weighted / self.total_weight)


def calculate_seo_score(seo: SeoResult) -> int:
    """Weighted on-page score from indexability, metadata, technical basics,
    content structure, accessibility and social tags"""
    average = _WeightedAverage()

    average.add(0.25, 100 if seo.is_indexable else 0)

    metadata = (score_text_length(seo.title_length, *TITLE_LENGTH_RANGE) * 0.5
                + score_text_length(seo.meta_description_length, *DESCRIPTION_LENGTH_RANGE) * 0.5)
    average.add(0.2, metadata)

    technical = 45 if seo.uses_https else 10
    technical += 35 if seo.has_viewport_meta else 0
    technical += 20 if seo.canonical_url.strip() else 10
    average.add(0.15, technical)

    if seo.h1_count == 0:
        heading = 20
    elif seo.h1_count == 1:
        heading = 100
    else:
        heading = 70
    if seo.total_images == 0:
        alt_coverage = 100.0
    else:
        alt_coverage = clamp_score(100 - seo.images_without_alt / seo.total_images * 100)
    structured = 100 if seo.structured_data_count > 0 else 60
    average.add(0.2, heading * 0.4 + alt_coverage * 0.35 + structured * 0.25)

    accessibility = 100
    if not seo.has_language_attribute:
        accessibility -= 20
    if not seo.has_skip_link:
        accessibility -= 10
    if seo.landmark_count == 0:
        accessibility -= 10
    if seo.form_controls_without_labels > 0:
        accessibility -= min(40, seo.form_controls_without_labels * 4)
    average.add(0.15, accessibility)

    social = (60 if seo.has_open_graph_tags else 0) + (40 if seo.has_twitter_card else 0)
    average.add(0.05, social)

    return average.result() or 0


def calculate_speed_score(performance: Optional[PerformanceResult], network: NetworkResult) -> int:
    """Speed from lab metrics when available, otherwise from response time alone"""
    if network.status_code == 0 or network.status_code >= 400:
        return 0

    channel = performance.primary if performance else None
    if channel is not None:
        average = _WeightedAverage()
        for weight, value, bounds in (
            (0.35, channel.largest_contentful_paint_ms, LCP_RANGE),
            (0.15, channel.first_contentful_paint_ms, FCP_RANGE),
            (0.2, channel.total_blocking_time_ms, TBT_RANGE),
            (0.15, channel.cumulative_layout_shift, CLS_RANGE),
            (0.15, network.response_time_ms, RESPONSE_TIME_RANGE),
        ):
            if value is not None:
                average.add(weight, score_from_range(value, *bounds))
        score = average.result()
        if score is not None:
            return score

    return round(score_from_range(network.response_time_ms, *RESPONSE_TIME_RANGE))


def calculate_scores(seo: SeoResult, performance: Optional[PerformanceResult],
                     network: NetworkResult) -> ScoreResult:
    seo_score = calculate_seo_score(seo)
    speed_score = calculate_speed_score(performance, network)
    overall = round(speed_score * 0.6 + seo_score * 0.4)
    return ScoreResult(
        overall=max(0, min(100, overall)),
        seo=max(0, min(100, seo_score)),
        speed=max(0, min(100, speed_score)),
    )
