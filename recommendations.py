"""
Rule-based recommendations and checklist parsing for analysis reports
"""
import re
from typing import List, Optional

from models import AnalysisReport, AnalysisResult, ChecklistSection, Recommendation, ReportSummary

MARKDOWN_HEADING = re.compile(r'^#{1,6}\s*(.+)$')
EXPLICIT_HEADING = re.compile(r'^(.+?)[：:]\s*$')
# Optional bullet or number, then an optional checkbox ("- [ ] item")
BULLET = re.compile(r'^(?:(?:[-*•]|\d+\.)\s+)?(?:\[\s?[xX]?\]\s+)?(.+)$')

DEFAULT_CHECKLIST_TITLE = "Checklist"
SLOW_SPEED_THRESHOLD = 70
BROKEN_LINK_EXAMPLES = 3


def build_recommendations(analysis: AnalysisResult) -> List[Recommendation]:
    """Derive prioritized recommendations from an analysis"""
    recommendations = []
    network = analysis.network
    seo = analysis.seo

    if network.status_code == 0:
        recommendations.append(Recommendation(
            "Site unreachable",
            "The site did not respond successfully. Confirm DNS/hosting and try again.",
            "Network"))
    elif network.status_code >= 400:
        recommendations.append(Recommendation(
            "HTTP errors detected",
            f"The site returned status code {network.status_code}. "
            "Resolve application errors for a successful response.",
            "Network"))

    suggestions = analysis.performance.suggestions if analysis.performance else ()
    if suggestions:
        with_savings = [s for s in suggestions if s.estimated_savings_ms is not None]
        top = max(with_savings, key=lambda s: s.estimated_savings_ms) if with_savings else suggestions[0]
        recommendations.append(Recommendation(
            f"Performance: {top.title}",
            top.description if top.description is not None else "Address this opportunity to improve load speed.",
            "Performance"))
    elif analysis.score.speed < SLOW_SPEED_THRESHOLD:
        recommendations.append(Recommendation(
            "Improve load times",
            "Average response times are elevated. Review caching, media compression, and third-party scripts.",
            "Performance"))

    if not seo.is_indexable:
        recommendations.append(Recommendation(
            "Page blocked from indexing",
            "Robots directives indicate search engines cannot index this URL. "
            "Remove the noindex directive if this page should rank.",
            "SEO"))

    if not seo.has_viewport_meta:
        recommendations.append(Recommendation(
            "Missing mobile viewport",
            "Add a `<meta name=\"viewport\">` tag so mobile devices render the layout correctly.",
            "SEO"))

    if not seo.uses_https:
        recommendations.append(Recommendation(
            "Upgrade to HTTPS",
            "Serve the page over HTTPS to boost trust, rankings, and security.",
            "SEO"))

    if seo.total_images > 0 and seo.images_without_alt > 0:
        recommendations.append(Recommendation(
            "Add image alt text",
            f"Found {seo.images_without_alt} images without descriptive `alt` text. "
            "Add alt attributes for accessibility and relevance.",
            "SEO"))

    if not seo.has_language_attribute:
        recommendations.append(Recommendation(
            "Missing language attribute",
            "Add a `lang` attribute to the `<html>` element so assistive technologies know which language to use.",
            "Accessibility"))

    if seo.form_controls_without_labels > 0:
        recommendations.append(Recommendation(
            "Add form labels",
            f"Detected {seo.form_controls_without_labels} form controls without associated labels. "
            "Provide labels or aria attributes to describe each field.",
            "Accessibility"))

    if seo.broken_link_count > 0:
        examples = ", ".join(link.url for link in seo.broken_links[:BROKEN_LINK_EXAMPLES])
        recommendations.append(Recommendation(
            "Repair broken links",
            f"Found {seo.broken_link_count} broken links (e.g., {examples}). "
            "Update or remove them to avoid crawl waste and 404 UX traps.",
            "SEO"))

    return recommendations


def parse_checklist(text: Optional[str]) -> List[ChecklistSection]:
    """
    Split free-form insight text into titled checklist sections

    Markdown headings and lines ending in a colon start a new section;
    bullet, numbered and checkbox markers are stripped from items. Sections
    without items are dropped.
    """
    if text is None or not text.strip():
        return []

    sections = []
    current_title = DEFAULT_CHECKLIST_TITLE
    current_items = []

    def push_section():
        nonlocal current_items
        if current_items:
            sections.append(ChecklistSection(current_title, tuple(current_items)))
            current_items = []

    for raw_line in re.split(r'[\r\n]', text):
        line = raw_line.strip()
        if not line:
            continue

        heading = MARKDOWN_HEADING.match(line)
        if heading:
            push_section()
            current_title = heading.group(1).strip()
            continue

        explicit = EXPLICIT_HEADING.match(line)
        if explicit and len(explicit.group(1).strip()) > 1:
            push_section()
            current_title = explicit.group(1).strip()
            continue

        bullet = BULLET.match(line)
        item = bullet.group(1).strip() if bullet else line
        if item:
            current_items.append(item)

    push_section()
    return sections


def build_report(analysis: AnalysisResult) -> AnalysisReport:
    """Summary, recommendations and parsed checklist for an analysis"""
    summary = ReportSummary(
        url=analysis.url,
        checked_at=analysis.checked_at,
        status_code=analysis.network.status_code,
        response_time_ms=analysis.network.response_time_ms,
        score=analysis.score,
        is_indexable=analysis.seo.is_indexable,
        uses_https=analysis.seo.uses_https,
        error_message=analysis.network.error_message,
    )
    insights = analysis.ai_insights.recommendations if analysis.ai_insights else None

    return AnalysisReport(
        summary=summary,
        recommendations=tuple(build_recommendations(analysis)),
        checklist=tuple(parse_checklist(insights)),
        analysis=analysis,
    )
