"""
AI-generated optimization checklist for an analysis
"""
import logging
from typing import Any, List, Optional

from config import SiteAuditConfig, config as default_config
from http_client import SessionFactory, session_factory_for
from models import AiInsightsResult, AnalysisResult, PerformanceChannelResult
from utils import get_host

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert website performance and SEO analyst. Use the provided crawl metrics to craft "
    "a site-specific optimization checklist. Cite the measured values or markup (e.g., 4.2s LCP, "
    "missing viewport meta). Output Markdown with '## Performance' and '## SEO' sections. Keep each "
    "step concise but actionable. Never start the response with {} or [] and avoid any leading "
    "special characters besides ':' in the final text."
)

MAX_SNIPPET_LENGTH = 280
MAX_PROMPT_SUGGESTIONS = 5


def format_snippet(value: Optional[str]) -> str:
    """Single-line snippet, "Missing" when blank, truncated to 280 characters"""
    if value is None or not value.strip():
        return "Missing"
    single_line = " ".join(value.splitlines()).strip()
    if len(single_line) > MAX_SNIPPET_LENGTH:
        return f"{single_line[:MAX_SNIPPET_LENGTH - 3]}..."
    return single_line


def _format_number(value: Any) -> str:
    if value is None:
        return "0"
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def _channel_lines(label: str, channel: PerformanceChannelResult) -> List[str]:
    return [
        f"{label} score: {_format_number(channel.score)}",
        f"{label} Largest Contentful Paint (ms): {_format_number(channel.largest_contentful_paint_ms)}",
        f"{label} First Contentful Paint (ms): {_format_number(channel.first_contentful_paint_ms)}",
        f"{label} Cumulative Layout Shift: {_format_number(channel.cumulative_layout_shift)}",
        f"{label} Total Blocking Time (ms): {_format_number(channel.total_blocking_time_ms)}",
    ]


def build_prompt(analysis: AnalysisResult) -> str:
    """User prompt listing every measured value plus output instructions"""
    host = get_host(analysis.url) or analysis.url
    network = analysis.network
    seo = analysis.seo
    performance = analysis.performance

    lines = [
        f"Host: {host}",
        f"URL: {analysis.url}",
        f"HTTP status: {network.status_code}",
        f"Network error: {network.error_message or 'None'}",
        f"Response time (ms): {network.response_time_ms}",
        f"Redirect count: {network.redirect_count}",
        f"Performance score: {analysis.score.speed}",
        f"SEO score: {analysis.score.seo}",
    ]

    if performance and performance.mobile:
        lines.extend(_channel_lines("Mobile", performance.mobile))
    if performance and performance.desktop:
        lines.extend(_channel_lines("Desktop", performance.desktop))
    if performance and performance.suggestions:
        lines.append("PageSpeed suggestions:")
        for suggestion in performance.suggestions[:MAX_PROMPT_SUGGESTIONS]:
            savings = _format_number(suggestion.estimated_savings_ms) \
                if suggestion.estimated_savings_ms is not None else "n/a"
            lines.append(f"- {suggestion.title} :: {suggestion.description or ''} "
                         f"(estimated savings ms: {savings})")

    lines.extend([
        f"Title text: {format_snippet(seo.title)}",
        f"Title length: {seo.title_length}",
        f"Meta description: {format_snippet(seo.meta_description)}",
        f"Meta description length: {seo.meta_description_length}",
        f"Canonical URL: {format_snippet(seo.canonical_url)}",
        f"Indexable: {seo.is_indexable}",
        f"Viewport meta present: {seo.has_viewport_meta}",
        f"Viewport content: {format_snippet(seo.viewport_content)}",
        f"HTTPS: {seo.uses_https}",
        f"H1 count: {seo.h1_count}",
        f"H2 count: {seo.h2_count}",
        f"Internal links: {seo.internal_link_count}",
        f"External links: {seo.external_link_count}",
        f"Images without alt text: {seo.images_without_alt}/{seo.total_images}",
        f"Structured data blocks: {seo.structured_data_count}",
        f"Structured data types: {', '.join(seo.structured_data_types)}",
        f"Open Graph tags: {seo.has_open_graph_tags}",
        f"Twitter card: {seo.has_twitter_card}",
        f"Language attribute present: {seo.has_language_attribute}",
        f"Skip link present: {seo.has_skip_link}",
        f"Landmark count: {seo.landmark_count}",
        f"Form controls without labels: {seo.form_controls_without_labels}",
    ])

    off_page = analysis.off_page_seo
    if off_page:
        lines.extend([
            f"Domain authority: {_format_number(off_page.domain_authority)}",
            f"Backlinks: {_format_number(off_page.backlinks)}",
            f"Referring domains: {_format_number(off_page.referring_domains)}",
            f"Spam score: {_format_number(off_page.spam_score)}",
        ])

    lines.extend([
        "",
        "Instructions:",
        f"- Reference \"{host}\" or \"{analysis.url}\" explicitly in every checklist item.",
        "- Quote the measured values or markup names when describing the fix.",
        "- Explain why resolving the issue matters for that metric.",
        "- Include at least one concrete step that describes how to execute the fix for each issue.",
        "- Only highlight issues that the above data exposes; avoid generic filler.",
        "- Format output exactly as markdown with '## Performance' and '## SEO' sections containing '- [ ]' bullets.",
        "- Return as many or as few checklist bullets as the data requires; skip padding.",
        "- Do not output code fences or raw HTML snippets; summarize the required fix in plain language.",
    ])
    return "\n".join(lines) + "\n"


class AiInsightsService:
    """Asks a chat-completions model for a site-specific checklist"""

    def __init__(self, settings: Optional[SiteAuditConfig] = None,
                 session_factory: Optional[SessionFactory] = None):
        self.config = settings or default_config
        self.session_factory = session_factory or session_factory_for(self.config)

    def build_payload(self, analysis: AnalysisResult) -> dict:
        return {
            'model': self.config.openai_model,
            'temperature': 0.2,
            'messages': [
                {'role': 'system', 'content': SYSTEM_PROMPT},
                {'role': 'user', 'content': build_prompt(analysis)},
            ],
        }

    async def generate_insights(self, analysis: AnalysisResult) -> Optional[AiInsightsResult]:
        """Return insight text, or None when unconfigured, failed or empty"""
        if not self.config.ai_enabled:
            return None

        headers = {'Authorization': f"Bearer {self.config.openai_api_key}"}
        try:
            async with self.session_factory(self.config.enricher_timeout) as session:
                async with session.post(self.config.openai_api_base_url,
                                        json=self.build_payload(analysis), headers=headers) as response:
                    if response.status < 200 or response.status >= 300:
                        logger.warning(f"OpenAI API returned {response.status}")
                        return None
                    payload = await response.json(content_type=None)
        except Exception as e:
            logger.warning(f"Failed to generate AI recommendations: {e}")
            return None

        content = self._extract_content(payload)
        if content is None:
            logger.warning("AI response did not contain any recommendations")
            return None
        return AiInsightsResult(recommendations=content)

    @staticmethod
    def _extract_content(payload: Any) -> Optional[str]:
        if not isinstance(payload, dict):
            return None
        choices = payload.get('choices')
        if not isinstance(choices, list) or not choices:
            return None
        message = choices[0].get('message') if isinstance(choices[0], dict) else None
        content = message.get('content') if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            return None
        return content.strip()
