"""
Markdown formatting utilities for Sift.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sift.config import get_config
from sift.core.article import Article
from sift.core.result import ScoreResult, TriageAction

# Configure logging
logger = logging.getLogger(__name__)

SECTION_TITLES = {
    TriageAction.FLAG: "Auto-flagged",
    TriageAction.REVIEW: "Needs Review",
    TriageAction.JUNK: "Auto-junked",
    TriageAction.DELETE: "Auto-deleted",
}

# Order in which sections appear in the report
SECTION_ORDER = [TriageAction.FLAG, TriageAction.REVIEW, TriageAction.JUNK, TriageAction.DELETE]


class MarkdownFormatter:
    """
    Formats scored articles into a Markdown triage report.
    """
    def __init__(self, title: Optional[str] = None):
        """
        Initialize the MarkdownFormatter.

        Args:
            title: Report heading (defaults to report.title in config)
        """
        self.title = title or get_config('report.title', 'Article Triage')
        self.today = datetime.now().strftime("%B %d, %Y")

    def group(
        self,
        articles: Sequence[Article],
        results: Sequence[ScoreResult],
    ) -> Dict[TriageAction, List[Tuple[Article, ScoreResult]]]:
        """
        Group articles by triage action, highest confidence first.

        Args:
            articles: Scored articles
            results: Results in the same order as articles

        Returns:
            Mapping of action to (article, result) pairs
        """
        if len(articles) != len(results):
            raise ValueError("articles and results must have the same length")

        grouped: Dict[TriageAction, List[Tuple[Article, ScoreResult]]] = {
            action: [] for action in SECTION_ORDER
        }
        for article, result in zip(articles, results):
            grouped[result.action].append((article, result))

        for items in grouped.values():
            items.sort(key=lambda pair: pair[1].confidence, reverse=True)
        return grouped

    def _format_article(self, article: Article, result: ScoreResult) -> str:
        title = article.title or "Untitled"
        heading = f"[{title}]({article.link})" if article.link else title
        lines = [f"### {heading}", ""]

        metadata = [f"**Confidence:** {result.confidence}%", f"**Band:** {result.band.value}"]
        if article.source_name:
            metadata.insert(0, f"**Source:** {article.source_name}")
        lines.append(" | ".join(metadata))
        lines.append("")

        if article.description:
            lines.append(article.description.strip())
            lines.append("")

        lines.append(f"> {result.reasoning}")
        lines.append("")
        return "\n".join(lines)

    def format_report(self, articles: Sequence[Article], results: Sequence[ScoreResult]) -> str:
        """
        Render the full triage report.

        Args:
            articles: Scored articles
            results: Results in the same order as articles

        Returns:
            Markdown text
        """
        grouped = self.group(articles, results)

        content = f"# {self.title}\n\n"
        content += f"*{self.today}*\n\n"

        summary = ", ".join(
            f"{SECTION_TITLES[action]}: {len(grouped[action])}" for action in SECTION_ORDER
        )
        content += f"**{len(results)} articles scored** - {summary}\n\n"

        for action in SECTION_ORDER:
            items = grouped[action]
            if not items:
                continue
            content += f"## {SECTION_TITLES[action]}\n\n"
            for article, result in items:
                content += self._format_article(article, result) + "\n"

        logger.debug(f"Formatted triage report with {len(results)} articles")
        return content
